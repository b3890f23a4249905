"""Chat-completion gateway for the two Tempo model calls: clarify and axes."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from tempo.config import get_settings
from tempo.errors import ClarificationError, GenerationTransportError
from tempo.schemas import Clarification, ClarifyResponse, TempoContext
from tempo.validators import DecisionBriefInput

logger = logging.getLogger(__name__)

SECTION_TITLE = "Aide a la decision"

BASE_PROMPT = (
    "Tu es un coach de golf expert. Reponds en francais."
    " Reste clair et utile. Ne t arrete pas au milieu d une phrase."
    " Appuie toi uniquement sur le brief du coach et le contexte eleve fournis."
)

CLARIFY_SYSTEM_PROMPT = (
    BASE_PROMPT
    + """
Le coach prepare 3 axes prioritaires pour la seance en cours.
Avant de les proposer, evalue si le brief suffit.

INPUT: un JSON avec sectionTitle, sectionContent (club, constat, travail souhaite),
studentContext (digest de l historique) et tpiContext.

TU DOIS RENVOYER UN JSON STRICT:
{
  "confidence": 0.0 a 1.0,
  "questions": [
    {
      "id": "q1",
      "question": "question courte",
      "type": "text|choices",
      "choices": ["..."],
      "multi": false,
      "required": false,
      "placeholder": "..."
    }
  ]
}

Regles:
- Au maximum 3 questions, uniquement si elles changent les priorites.
- Prefere type="choices" avec 2 a 5 choix courts quand c est possible.
- Si le brief est suffisant, renvoie "questions": [].
"""
)

AXES_SYSTEM_PROMPT = (
    BASE_PROMPT
    + """
Genere exactement 3 axes de travail priorises, actionnables pendant la seance.

INPUT: un JSON avec sectionTitle, sectionContent (club, constat, travail souhaite),
clarifications (questions/reponses du coach), studentContext et tpiContext.

TU DOIS RENVOYER UN JSON STRICT:
{
  "axes": [
    {
      "priority": 1,
      "title": "titre court (140 caracteres max)",
      "summary": "cap de seance, 1 a 2 phrases",
      "rationale": "pourquoi cet axe est prioritaire",
      "caution": "point de vigilance"
    }
  ]
}

Regles:
- Exactement 3 axes, priorites 1, 2 et 3 (1 = priorite immediate).
- Tous les champs sont obligatoires et non vides.
- Pas de points de suspension, pas de texte hors du JSON.
"""
)


def build_brief_text(brief: DecisionBriefInput) -> str:
    lines = [f"Club: {brief.club}", f"Constat: {brief.constat}"]
    if brief.intent:
        lines.append(f"Travail souhaite: {brief.intent}")
    return "\n".join(lines)


def coerce_json(raw: Optional[str]) -> Any:
    """Decode a model reply, tolerating a surrounding Markdown code fence."""
    text = (raw or "").strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lstrip().lower().startswith("json"):
            text = text.split("\n", 1)[1] if "\n" in text else ""
    return json.loads(text)


class ModelGateway:
    def __init__(
        self,
        client: Optional[Any] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self.model = model or settings.tempo_model
        self.temperature = temperature if temperature is not None else settings.model_temperature

    @property
    def client(self) -> Any:
        if self._client is None:
            settings = get_settings()
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key or None,
                timeout=settings.model_timeout_seconds,
                max_retries=1,
            )
        return self._client

    async def _complete(self, system_prompt: str, payload: dict[str, Any]) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": json.dumps(payload, ensure_ascii=False)},
            ],
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )
        return response.choices[0].message.content or ""

    async def clarify(self, brief: DecisionBriefInput, context: TempoContext) -> ClarifyResponse:
        payload = {
            "sectionTitle": SECTION_TITLE,
            "sectionContent": build_brief_text(brief),
            "targetSections": ["Axes prioritaires"],
            "studentContext": context.ai_context,
            "tpiContext": context.summaries.tpi,
        }
        try:
            raw = await self._complete(CLARIFY_SYSTEM_PROMPT, payload)
        except OpenAIError as exc:
            logger.warning("clarify_transport_error", extra={"error": str(exc)})
            raise ClarificationError("Clarification IA impossible.") from exc

        try:
            parsed = ClarifyResponse.model_validate(coerce_json(raw))
        except (ValueError, ValidationError) as exc:
            logger.warning("clarify_invalid_response", extra={"error": str(exc)})
            raise ClarificationError("Reponse de clarification invalide.") from exc

        logger.info(
            "clarification_received",
            extra={"confidence": parsed.confidence, "questions": len(parsed.questions)},
        )
        return parsed

    async def generate_axes(
        self,
        brief: DecisionBriefInput,
        clarifications: Sequence[Clarification],
        context: TempoContext,
    ) -> str:
        """Return the raw model reply; judging its shape is the axis contract's job."""
        payload = {
            "sectionTitle": SECTION_TITLE,
            "sectionContent": build_brief_text(brief),
            "clarifications": [c.model_dump() for c in clarifications],
            "studentContext": context.ai_context,
            "tpiContext": context.summaries.tpi,
        }
        try:
            return await self._complete(AXES_SYSTEM_PROMPT, payload)
        except OpenAIError as exc:
            logger.warning("axes_transport_error", extra={"error": str(exc)})
            raise GenerationTransportError("Generation IA impossible.") from exc
