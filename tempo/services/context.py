"""Client for the student context service.

The context service summarises a student's history (TPI profile, published
reports, radar extractions, normalized tests) into a compact digest used to
ground every model call. It is an external collaborator: this module only
fetches, validates and briefly caches its answer.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx
from pydantic import ValidationError

from tempo.cache_utils import TTLCache
from tempo.config import get_settings
from tempo.errors import ContextUnavailableError
from tempo.schemas import TempoContext

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def trim_text(value: Optional[str], max_chars: int = 240) -> str:
    text = _WHITESPACE.sub(" ", value or "").strip()
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    safe_max = max(4, max_chars)
    return f"{text[: safe_max - 3].strip()}..."


class ContextAggregator:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        cache_ttl_seconds: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.context_url).rstrip("/")
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.context_timeout_seconds
        ttl = cache_ttl_seconds if cache_ttl_seconds is not None else settings.context_cache_ttl_seconds
        self._cache: TTLCache[TempoContext] = TTLCache(ttl_seconds=ttl)
        self._transport = transport

    async def fetch_context(self, student_id: str) -> TempoContext:
        cached = self._cache.get(student_id)
        if cached is not None:
            return cached

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                resp = await client.get(f"{self.base_url}/context", params={"studentId": student_id})
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("context_unavailable", extra={"student_id": student_id, "error": str(exc)})
            raise ContextUnavailableError("Contexte eleve indisponible.") from exc

        try:
            context = TempoContext.model_validate(payload)
        except ValidationError as exc:
            logger.warning("context_invalid", extra={"student_id": student_id, "error": str(exc)})
            raise ContextUnavailableError("Contexte Tempo invalide.") from exc

        self._cache.set(student_id, context)
        logger.info("context_loaded", extra={"student_id": student_id, "chars": len(context.ai_context)})
        return context

    def invalidate(self, student_id: Optional[str] = None) -> None:
        if student_id is None:
            self._cache.clear()
        else:
            self._cache.pop(student_id)
