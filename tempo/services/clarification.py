"""Clarification round-trip that gates axis generation.

States: ``idle`` until a brief is submitted; ``clarify`` while the model's
questions wait for the coach's answers. A reply with zero questions never
leaves ``idle`` and is immediately ready for generation. Any failure while
asking returns the protocol to ``idle``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Protocol

from tempo.errors import ClarificationStateError
from tempo.schemas import Clarification, ClarificationQuestion, ClarifyResponse, TempoContext
from tempo.validators import AnswerValue, DecisionBriefInput

logger = logging.getLogger(__name__)


class ClarificationPhase(str, Enum):
    IDLE = "idle"
    CLARIFY = "clarify"


class ClarifyingModel(Protocol):
    async def clarify(self, brief: DecisionBriefInput, context: TempoContext) -> ClarifyResponse: ...


@dataclass
class ClarificationOutcome:
    """Result of asking the model; ``ready`` means generation may start now."""

    confidence: float
    questions: list[ClarificationQuestion] = field(default_factory=list)
    clarifications: list[Clarification] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return not self.questions


def _answer_values(value: Optional[AnswerValue]) -> list[str]:
    if isinstance(value, (list, tuple)):
        items = list(value)
    elif isinstance(value, str):
        items = [value]
    else:
        items = []
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]


def flatten_answers(
    questions: list[ClarificationQuestion], answers: Mapping[str, AnswerValue]
) -> list[Clarification]:
    """Pair each answered question with its answer; unanswered questions are dropped."""
    pairs: list[Clarification] = []
    for question in questions:
        values = _answer_values(answers.get(question.id))
        if not values:
            continue
        pairs.append(Clarification(question=question.question[:500], answer=", ".join(values)[:2000]))
    return pairs


class ClarificationProtocol:
    def __init__(self, model: ClarifyingModel) -> None:
        self.model = model
        self.phase = ClarificationPhase.IDLE
        self.brief: Optional[DecisionBriefInput] = None
        self.questions: list[ClarificationQuestion] = []
        self.answers: dict[str, AnswerValue] = {}
        self.confidence: float = 0.0

    def reset(self) -> None:
        self.phase = ClarificationPhase.IDLE
        self.brief = None
        self.questions = []
        self.answers = {}
        self.confidence = 0.0

    async def request(self, brief: DecisionBriefInput, context: TempoContext) -> ClarificationOutcome:
        if self.phase is not ClarificationPhase.IDLE:
            raise ClarificationStateError("A clarification round is already waiting for answers.")
        try:
            response = await self.model.clarify(brief, context)
        except BaseException:
            self.reset()
            raise

        self.confidence = response.confidence
        if not response.questions:
            logger.info("clarification_fast_path", extra={"confidence": response.confidence})
            self.reset()
            return ClarificationOutcome(confidence=response.confidence)

        self.phase = ClarificationPhase.CLARIFY
        self.brief = brief
        self.questions = list(response.questions)
        self.answers = {q.id: ([] if q.multi else "") for q in self.questions}
        logger.info("clarification_requested", extra={"questions": len(self.questions)})
        return ClarificationOutcome(confidence=response.confidence, questions=list(self.questions))

    def set_answer(self, question_id: str, value: AnswerValue) -> None:
        if self.phase is not ClarificationPhase.CLARIFY:
            raise ClarificationStateError("No clarification round is waiting for answers.")
        if question_id not in self.answers:
            raise ClarificationStateError(f"Unknown clarification question: {question_id}")
        self.answers[question_id] = value

    def confirm(self, answers: Optional[Mapping[str, AnswerValue]] = None) -> list[Clarification]:
        if self.phase is not ClarificationPhase.CLARIFY:
            raise ClarificationStateError("No clarification round is waiting for answers.")
        for question_id, value in (answers or {}).items():
            if question_id in self.answers:
                self.answers[question_id] = value
        clarifications = flatten_answers(self.questions, self.answers)
        logger.info(
            "clarification_confirmed",
            extra={"questions": len(self.questions), "answered": len(clarifications)},
        )
        self.reset()
        return clarifications
