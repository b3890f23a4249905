"""Decision assistant: context, clarification round, then axis generation.

A cycle either finishes in one call (the model asked no questions) or parks
its clarification round under a draft id until the coach confirms answers.
Parked drafts live in memory only and expire; clarification questions are
never persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Mapping, Optional
from uuid import uuid4

from pydantic import ValidationError

from tempo.cache_utils import TTLCache
from tempo.config import get_settings
from tempo.errors import ClarificationStateError, ValidationFailedError
from tempo.schemas import ClarificationQuestion, DecisionRunRecord, TempoContext
from tempo.services.clarification import ClarificationProtocol, ClarifyingModel
from tempo.services.context import ContextAggregator
from tempo.services.decision_runs import AxisGenerator
from tempo.services.sessions import get_or_create_session
from tempo.validators import AnswerValue, DecisionBriefInput

logger = logging.getLogger(__name__)


@dataclass
class DecisionCycle:
    status: Literal["generated", "clarify"]
    session_id: str
    run: Optional[DecisionRunRecord] = None
    draft_id: Optional[str] = None
    confidence: Optional[float] = None
    questions: list[ClarificationQuestion] = field(default_factory=list)
    answers: dict[str, AnswerValue] = field(default_factory=dict)


@dataclass
class _PendingDraft:
    protocol: ClarificationProtocol
    session_id: str
    coach_id: str
    brief: DecisionBriefInput
    context: TempoContext


class DecisionAssistant:
    def __init__(
        self,
        context_aggregator: ContextAggregator,
        clarifier: ClarifyingModel,
        generator: AxisGenerator,
        draft_ttl_seconds: Optional[int] = None,
    ) -> None:
        self.context_aggregator = context_aggregator
        self.clarifier = clarifier
        self.generator = generator
        ttl = draft_ttl_seconds if draft_ttl_seconds is not None else get_settings().clarify_ttl_seconds
        self._drafts: TTLCache[_PendingDraft] = TTLCache(ttl_seconds=ttl)

    async def start(
        self,
        student_id: str,
        coach_id: str,
        brief: DecisionBriefInput | Mapping[str, str],
        session_id: Optional[str] = None,
    ) -> DecisionCycle:
        if not isinstance(brief, DecisionBriefInput):
            try:
                brief = DecisionBriefInput.model_validate(brief)
            except ValidationError as exc:
                raise ValidationFailedError("Renseigne au minimum le club et le constat.") from exc

        context = await self.context_aggregator.fetch_context(student_id)
        session = get_or_create_session(
            student_id, coach_id, "decision", club=brief.club, session_id=session_id
        )

        protocol = ClarificationProtocol(self.clarifier)
        outcome = await protocol.request(brief, context)
        if outcome.ready:
            run = await self.generator.generate(session.id, coach_id, brief, [], context)
            return DecisionCycle(status="generated", session_id=session.id, run=run, confidence=outcome.confidence)

        draft_id = uuid4().hex
        self._drafts.set(
            draft_id,
            _PendingDraft(protocol=protocol, session_id=session.id, coach_id=coach_id, brief=brief, context=context),
        )
        logger.info("decision_draft_parked", extra={"draft_id": draft_id, "session_id": session.id})
        return DecisionCycle(
            status="clarify",
            session_id=session.id,
            draft_id=draft_id,
            confidence=outcome.confidence,
            questions=outcome.questions,
            answers=dict(protocol.answers),
        )

    async def confirm(
        self, draft_id: str, coach_id: str, answers: Optional[Mapping[str, AnswerValue]] = None
    ) -> DecisionCycle:
        draft = self._drafts.get(draft_id)
        if draft is None or draft.coach_id != coach_id:
            raise ClarificationStateError("Clarification expiree ou inconnue, relance la generation.")
        clarifications = draft.protocol.confirm(answers)
        self._drafts.pop(draft_id)
        run = await self.generator.generate(draft.session_id, coach_id, draft.brief, clarifications, draft.context)
        return DecisionCycle(status="generated", session_id=draft.session_id, run=run)

    def cancel(self, draft_id: str, coach_id: str) -> bool:
        draft = self._drafts.get(draft_id)
        if draft is None or draft.coach_id != coach_id:
            return False
        self._drafts.pop(draft_id)
        draft.protocol.reset()
        return True
