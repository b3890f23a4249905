"""Session store: notes and decision sessions scoped to a coach/student pair.

`get_or_create_session` is atomic: the check and the create run in one
transaction guarded by the unique (student, coach, mode) pointer in
``tempo_current_sessions``. A concurrent writer that loses the race re-reads
the winner's pointer instead of creating a duplicate.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tempo.db import session_scope
from tempo.errors import NotFoundError, SessionModeError, ValidationFailedError
from tempo.models import SESSION_MODES, TempoCurrentSession, TempoSession, utcnow
from tempo.schemas import SessionRecord

logger = logging.getLogger(__name__)

DEFAULT_TITLES = {
    "notes": "Prise de notes",
    "decision": "Aide a la decision",
}


def _clean_title(title: Optional[str], mode: str) -> str:
    text = (title or "").strip() or DEFAULT_TITLES[mode]
    return text[:140]


def _clean_club(club: Optional[str]) -> Optional[str]:
    text = (club or "").strip()
    return text[:120] or None


def _check_mode(mode: str) -> None:
    if mode not in SESSION_MODES:
        raise ValidationFailedError(f"mode must be one of {SESSION_MODES}")


def _pointer(s: Session, student_id: str, coach_id: str, mode: str) -> TempoCurrentSession | None:
    return s.execute(
        select(TempoCurrentSession).where(
            TempoCurrentSession.student_id == student_id,
            TempoCurrentSession.coach_id == coach_id,
            TempoCurrentSession.mode == mode,
        )
    ).scalar_one_or_none()


def _point_to(s: Session, pointer: TempoCurrentSession | None, session: TempoSession) -> None:
    if pointer is None:
        s.add(
            TempoCurrentSession(
                student_id=session.student_id,
                coach_id=session.coach_id,
                mode=session.mode,
                session_id=session.id,
            )
        )
    else:
        pointer.session_id = session.id
        pointer.updated_at = utcnow()


def _new_session(
    s: Session, student_id: str, coach_id: str, mode: str, title: Optional[str], club: Optional[str]
) -> TempoSession:
    now = utcnow()
    session = TempoSession(
        student_id=student_id,
        coach_id=coach_id,
        mode=mode,
        title=_clean_title(title, mode),
        status="active",
        club=_clean_club(club),
        next_order_index=0,
        created_at=now,
        updated_at=now,
    )
    s.add(session)
    s.flush()
    return session


def _matches(session: TempoSession | None, student_id: str, coach_id: str, mode: str) -> bool:
    return (
        session is not None
        and session.status == "active"
        and session.student_id == student_id
        and session.coach_id == coach_id
        and session.mode == mode
    )


def _resolve_current(s: Session, student_id: str, coach_id: str, mode: str) -> TempoSession | None:
    pointer = _pointer(s, student_id, coach_id, mode)
    if pointer is None:
        return None
    session = s.get(TempoSession, pointer.session_id)
    return session if _matches(session, student_id, coach_id, mode) else None


def get_or_create_session(
    student_id: str,
    coach_id: str,
    mode: str,
    title: Optional[str] = None,
    club: Optional[str] = None,
    session_id: Optional[str] = None,
) -> SessionRecord:
    """Return the session to write into, creating it only when none exists.

    A caller-selected ``session_id`` wins when it is active and belongs to the
    same student, coach and mode; it also becomes the current session.
    """
    _check_mode(mode)
    try:
        with session_scope() as s:
            pointer = _pointer(s, student_id, coach_id, mode)
            if session_id:
                selected = s.get(TempoSession, session_id)
                if _matches(selected, student_id, coach_id, mode):
                    if pointer is None or pointer.session_id != selected.id:
                        _point_to(s, pointer, selected)
                    return SessionRecord.model_validate(selected)

            current = _resolve_current(s, student_id, coach_id, mode)
            if current is not None:
                return SessionRecord.model_validate(current)

            created = _new_session(s, student_id, coach_id, mode, title, club)
            _point_to(s, pointer, created)
            s.flush()
            logger.info(
                "tempo_session_created",
                extra={"session_id": created.id, "student_id": student_id, "mode": mode},
            )
            return SessionRecord.model_validate(created)
    except IntegrityError:
        # Another writer created the pointer between our read and our insert.
        with session_scope() as s:
            current = _resolve_current(s, student_id, coach_id, mode)
            if current is None:
                raise
            logger.info("tempo_session_reused_after_race", extra={"session_id": current.id, "mode": mode})
            return SessionRecord.model_validate(current)


def start_new_session(
    student_id: str,
    coach_id: str,
    mode: str,
    title: Optional[str] = None,
    club: Optional[str] = None,
) -> SessionRecord:
    """Always create a fresh session and make it the current one."""
    _check_mode(mode)
    with session_scope() as s:
        pointer = _pointer(s, student_id, coach_id, mode)
        created = _new_session(s, student_id, coach_id, mode, title, club)
        _point_to(s, pointer, created)
        s.flush()
        logger.info(
            "tempo_session_started",
            extra={"session_id": created.id, "student_id": student_id, "mode": mode},
        )
        return SessionRecord.model_validate(created)


def get_session(session_id: str) -> SessionRecord:
    with session_scope() as s:
        session = s.get(TempoSession, session_id)
        if session is None:
            raise NotFoundError("Session Tempo introuvable.")
        return SessionRecord.model_validate(session)


def require_session(s: Session, session_id: str, mode: Optional[str] = None) -> TempoSession:
    session = s.get(TempoSession, session_id)
    if session is None:
        raise NotFoundError("Session Tempo introuvable.")
    if mode is not None and session.mode != mode:
        raise SessionModeError(f"Session {session_id} is a {session.mode} session, expected {mode}.")
    return session


def list_sessions(student_id: str, coach_id: Optional[str] = None, mode: Optional[str] = None) -> list[SessionRecord]:
    with session_scope() as s:
        q = select(TempoSession).where(TempoSession.student_id == student_id)
        if coach_id:
            q = q.where(TempoSession.coach_id == coach_id)
        if mode:
            _check_mode(mode)
            q = q.where(TempoSession.mode == mode)
        rows = s.execute(q.order_by(TempoSession.updated_at.desc(), TempoSession.created_at.desc())).scalars().all()
        return [SessionRecord.model_validate(r) for r in rows]


def touch_session(s: Session, session_id: str, club: Optional[str] = None) -> None:
    values: dict[str, object] = {"updated_at": utcnow()}
    if club is not None:
        values["club"] = _clean_club(club)
    s.execute(update(TempoSession).where(TempoSession.id == session_id).values(**values))


def set_session_club(session_id: str, club: Optional[str]) -> SessionRecord:
    with session_scope() as s:
        session = require_session(s, session_id)
        session.club = _clean_club(club)
        session.updated_at = utcnow()
        s.flush()
        return SessionRecord.model_validate(session)


def next_order_index(s: Session, session_id: str) -> int:
    """Reserve the next note position for a session.

    The increment is a single UPDATE so two writers in separate transactions
    can never be handed the same index.
    """
    s.execute(
        update(TempoSession)
        .where(TempoSession.id == session_id)
        .values(next_order_index=TempoSession.next_order_index + 1, updated_at=utcnow())
    )
    reserved = s.execute(select(TempoSession.next_order_index).where(TempoSession.id == session_id)).scalar_one()
    return reserved - 1
