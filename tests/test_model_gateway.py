from __future__ import annotations

import json

import httpx
import pytest
from openai import APIConnectionError

from conftest import context_payload, make_axes
from tempo.errors import ClarificationError, GenerationTransportError
from tempo.schemas import Clarification, TempoContext
from tempo.services.model_gateway import build_brief_text, coerce_json
from tempo.validators import DecisionBriefInput

BRIEF = DecisionBriefInput(club="Driver", constat="Slice chronique", intent="Chemin de club")
CONTEXT = TempoContext.model_validate(context_payload())


def _connection_error() -> APIConnectionError:
    return APIConnectionError(request=httpx.Request("POST", "https://api.openai.test/v1/chat/completions"))


def test_build_brief_text_skips_empty_intent():
    assert build_brief_text(BRIEF) == "Club: Driver\nConstat: Slice chronique\nTravail souhaite: Chemin de club"
    bare = DecisionBriefInput(club="Fer 7", constat="Gratte")
    assert build_brief_text(bare) == "Club: Fer 7\nConstat: Gratte"


def test_coerce_json_strips_code_fence():
    assert coerce_json('```json\n{"a": 1}\n```') == {"a": 1}
    assert coerce_json('{"a": 2}') == {"a": 2}


async def test_clarify_sends_json_mode_request(gateway, llm):
    llm.queue_response({"confidence": 0.4, "questions": [{"id": "q1", "question": "Trajectoire ?", "type": "text"}]})

    response = await gateway.clarify(BRIEF, CONTEXT)

    assert response.confidence == 0.4
    assert response.questions[0].id == "q1"
    call = llm.calls[0]
    assert call["model"] == "test-model"
    assert call["response_format"] == {"type": "json_object"}
    payload = json.loads(call["messages"][1]["content"])
    assert payload["sectionContent"].startswith("Club: Driver")
    assert payload["tpiContext"] == "Rotation thoracique limitee."


async def test_clarify_rejects_malformed_reply(gateway, llm):
    llm.queue_response("pas du json")
    with pytest.raises(ClarificationError):
        await gateway.clarify(BRIEF, CONTEXT)

    llm.queue_response({"confidence": 3, "questions": []})
    with pytest.raises(ClarificationError):
        await gateway.clarify(BRIEF, CONTEXT)


async def test_clarify_transport_failure_is_recoverable(gateway, llm):
    llm.queue_response(_connection_error())
    with pytest.raises(ClarificationError) as excinfo:
        await gateway.clarify(BRIEF, CONTEXT)
    assert excinfo.value.retryable is True


async def test_generate_axes_returns_raw_reply(gateway, llm):
    llm.queue_response(make_axes())
    clarifications = [Clarification(question="Trajectoire ?", answer="Slice")]

    raw = await gateway.generate_axes(BRIEF, clarifications, CONTEXT)

    assert json.loads(raw) == make_axes()
    payload = json.loads(llm.calls[0]["messages"][1]["content"])
    assert payload["clarifications"] == [{"question": "Trajectoire ?", "answer": "Slice"}]


async def test_generate_axes_transport_failure(gateway, llm):
    llm.queue_response(_connection_error())
    with pytest.raises(GenerationTransportError):
        await gateway.generate_axes(BRIEF, [], CONTEXT)
