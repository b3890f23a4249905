"""Shared pytest fixtures for the Tempo test suite.

These fixtures provide:
* A throwaway SQLite database per test
* An OpenAI-compatible client with queued responses
* In-process fakes for the context and report services (httpx.MockTransport)
"""

from __future__ import annotations

import json
import os
from types import SimpleNamespace
from typing import Any, Callable

import httpx
import pytest

os.environ.setdefault("APP_ENV", "test")

from tempo.config import get_settings  # noqa: E402
from tempo.db import create_schema, reset_engine  # noqa: E402
from tempo.services.context import ContextAggregator  # noqa: E402
from tempo.services.model_gateway import ModelGateway  # noqa: E402

CONTEXT_URL = "http://context.test/api/tempo"
REPORTS_URL = "http://reports.test/api/reports"


class DummyLLMClient:
    """Minimal AsyncOpenAI-compatible client for deterministic unit tests."""

    def __init__(self) -> None:
        self._queued: list[Any] = []
        self.calls: list[dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create_completion))

    def queue_response(self, payload: Any) -> None:
        """Queue a JSON (or dict) reply; an exception instance is raised instead."""
        if not isinstance(payload, (str, BaseException)):
            payload = json.dumps(payload)
        self._queued.append(payload)

    async def _create_completion(self, **kwargs: Any) -> SimpleNamespace:
        if not self._queued:
            raise AssertionError("DummyLLMClient received a call with no queued responses.")
        content = self._queued.pop(0)
        self.calls.append(kwargs)
        if isinstance(content, BaseException):
            raise content
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_axes(count: int = 3, **overrides: Any) -> dict[str, Any]:
    axes = [
        {
            "priority": i + 1,
            "title": f"Axe {i + 1}",
            "summary": f"Resume {i + 1}",
            "rationale": f"Pourquoi {i + 1}",
            "caution": f"Vigilance {i + 1}",
        }
        for i in range(count)
    ]
    for axis in axes:
        axis.update(overrides)
    return {"axes": axes}


def context_payload(student_id: str = "stu-1") -> dict[str, Any]:
    return {
        "student": {"id": student_id, "firstName": "Lea", "lastName": "Martin", "playingHand": "right"},
        "aiContext": "Index 18, slice chronique au driver.",
        "summaries": {
            "tpi": "Rotation thoracique limitee.",
            "reports": "2 rapports recents.",
            "radar": "Dispersion droite.",
            "tests": "Aucun test.",
        },
    }


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh SQLite schema under tmp_path, wired through DATABASE_URL."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'tempo.db'}")
    monkeypatch.setenv("APP_ENV", "test")
    get_settings.cache_clear()
    reset_engine()
    create_schema()
    yield
    reset_engine()
    get_settings.cache_clear()


@pytest.fixture
def llm() -> DummyLLMClient:
    return DummyLLMClient()


@pytest.fixture
def gateway(llm) -> ModelGateway:
    return ModelGateway(client=llm, model="test-model", temperature=0.0)


@pytest.fixture
def context_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def context_handler(context_requests) -> Callable[[httpx.Request], httpx.Response]:
    def _handler(request: httpx.Request) -> httpx.Response:
        context_requests.append(request)
        return httpx.Response(200, json=context_payload(request.url.params.get("studentId", "stu-1")))

    return _handler


@pytest.fixture
def aggregator(context_handler) -> ContextAggregator:
    return ContextAggregator(
        base_url=CONTEXT_URL,
        timeout_seconds=1,
        cache_ttl_seconds=0,
        transport=httpx.MockTransport(context_handler),
    )


@pytest.fixture
def report_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def reports_transport(report_requests) -> httpx.MockTransport:
    def _handler(request: httpx.Request) -> httpx.Response:
        report_requests.append(request)
        return httpx.Response(201, json={"reportId": "rep-42"})

    return httpx.MockTransport(_handler)
