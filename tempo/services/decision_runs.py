from __future__ import annotations

import logging
from threading import Lock
from typing import Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from tempo.config import get_settings
from tempo.db import session_scope
from tempo.errors import DecisionRunNotSavedError, GenerationInProgressError, InvalidAxesError
from tempo.models import TempoDecisionRun, utcnow
from tempo.schemas import Clarification, DecisionAxis, DecisionRunRecord, TempoContext
from tempo.services.axes import InvalidAxes, parse_axes_payload
from tempo.services.sessions import require_session, touch_session
from tempo.validators import DecisionBriefInput

logger = logging.getLogger(__name__)


class AxesModel(Protocol):
    async def generate_axes(
        self, brief: DecisionBriefInput, clarifications: Sequence[Clarification], context: TempoContext
    ) -> str: ...


class AxisGenerator:
    """Turns a resolved brief into a persisted DecisionRun.

    One generation per session may be in flight; a second call for the same
    session is rejected rather than allowed to race a second run into
    existence.
    """

    def __init__(self, model: AxesModel, title_max_chars: Optional[int] = None) -> None:
        self.model = model
        self.title_max_chars = title_max_chars or get_settings().axis_title_max_chars
        self._in_flight: set[str] = set()
        self._lock = Lock()

    def _claim(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._in_flight:
                raise GenerationInProgressError("Une generation est deja en cours pour cette session.")
            self._in_flight.add(session_id)

    def _release(self, session_id: str) -> None:
        with self._lock:
            self._in_flight.discard(session_id)

    def is_generating(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._in_flight

    async def generate(
        self,
        session_id: str,
        coach_id: str,
        brief: DecisionBriefInput,
        clarifications: Sequence[Clarification],
        context: TempoContext,
    ) -> DecisionRunRecord:
        with session_scope() as s:
            require_session(s, session_id, mode="decision")

        self._claim(session_id)
        try:
            raw = await self.model.generate_axes(brief, clarifications, context)
            result = parse_axes_payload(raw, self.title_max_chars)
            if isinstance(result, InvalidAxes):
                logger.warning(
                    "decision_axes_invalid",
                    extra={"session_id": session_id, "reason": result.reason, "details": result.details[:5]},
                )
                raise InvalidAxesError(result.reason)
            if result.normalized:
                logger.info("decision_axes_normalized", extra={"session_id": session_id})
            return self._persist(session_id, coach_id, brief, clarifications, result.axes, context)
        finally:
            self._release(session_id)

    def _persist(
        self,
        session_id: str,
        coach_id: str,
        brief: DecisionBriefInput,
        clarifications: Sequence[Clarification],
        axes: list[DecisionAxis],
        context: TempoContext,
    ) -> DecisionRunRecord:
        now = utcnow()
        try:
            with session_scope() as s:
                run = TempoDecisionRun(
                    session_id=session_id,
                    coach_id=coach_id,
                    club=brief.club,
                    constat=brief.constat,
                    coach_intent=brief.coach_intent,
                    clarifications_json=[c.model_dump() for c in clarifications],
                    axes_json=[axis.model_dump() for axis in axes],
                    context_snapshot_json={
                        "generated_at": now.isoformat(),
                        "context": context.summaries.model_dump(),
                    },
                    created_at=now,
                )
                s.add(run)
                touch_session(s, session_id, club=brief.club)
                s.flush()
                record = DecisionRunRecord.model_validate(run)
        except SQLAlchemyError as exc:
            logger.error("decision_run_not_saved", extra={"session_id": session_id, "error": str(exc)})
            raise DecisionRunNotSavedError(
                "Generation terminee, mais sauvegarde impossible. Relance la generation."
            ) from exc

        logger.info(
            "decision_run_created",
            extra={"session_id": session_id, "run_id": record.id, "clarifications": len(record.clarifications)},
        )
        return record


def list_runs(session_id: str, limit: Optional[int] = None) -> list[DecisionRunRecord]:
    limit = limit or get_settings().runs_page_size
    with session_scope() as s:
        require_session(s, session_id)
        rows = (
            s.execute(
                select(TempoDecisionRun)
                .where(TempoDecisionRun.session_id == session_id)
                .order_by(TempoDecisionRun.created_at.desc(), TempoDecisionRun.id.desc())
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return [DecisionRunRecord.model_validate(r) for r in rows]


def active_run(session_id: str) -> Optional[DecisionRunRecord]:
    """The session's current plan: its most recent run."""
    runs = list_runs(session_id, limit=1)
    return runs[0] if runs else None
