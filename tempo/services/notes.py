from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import select

from tempo.db import session_scope
from tempo.errors import NotFoundError, ValidationFailedError
from tempo.models import TempoNoteCard, utcnow
from tempo.schemas import NoteCardRecord
from tempo.services.sessions import get_or_create_session, next_order_index, require_session, touch_session
from tempo.validators import NoteCardInput

logger = logging.getLogger(__name__)


def _validated(card_type: str, content: str) -> NoteCardInput:
    try:
        return NoteCardInput(card_type=card_type, content=content)
    except ValidationError as exc:
        raise ValidationFailedError(str(exc)) from exc


def append_note(
    session_id: str,
    coach_id: str,
    card_type: str,
    content: str,
    occurred_at: Optional[dt.datetime] = None,
) -> NoteCardRecord:
    body = _validated(card_type, content)
    with session_scope() as s:
        require_session(s, session_id, mode="notes")
        now = utcnow()
        note = TempoNoteCard(
            session_id=session_id,
            coach_id=coach_id,
            card_type=body.card_type,
            content=body.content,
            order_index=next_order_index(s, session_id),
            occurred_at=occurred_at or now,
            created_at=now,
            updated_at=now,
        )
        s.add(note)
        s.flush()
        logger.info(
            "note_card_appended",
            extra={"session_id": session_id, "note_id": note.id, "order_index": note.order_index},
        )
        return NoteCardRecord.model_validate(note)


def append_note_for_student(
    student_id: str,
    coach_id: str,
    card_type: str,
    content: str,
    session_id: Optional[str] = None,
) -> NoteCardRecord:
    """Append to the selected notes session, creating one lazily if needed."""
    _validated(card_type, content)
    session = get_or_create_session(student_id, coach_id, "notes", session_id=session_id)
    return append_note(session.id, coach_id, card_type, content)


def edit_note(note_id: str, card_type: str, content: str) -> NoteCardRecord:
    body = _validated(card_type, content)
    with session_scope() as s:
        note = s.get(TempoNoteCard, note_id)
        if note is None:
            raise NotFoundError("Note introuvable.")
        note.card_type = body.card_type
        note.content = body.content
        note.updated_at = utcnow()
        touch_session(s, note.session_id)
        s.flush()
        return NoteCardRecord.model_validate(note)


def delete_note(note_id: str) -> None:
    with session_scope() as s:
        note = s.get(TempoNoteCard, note_id)
        if note is None:
            raise NotFoundError("Note introuvable.")
        session_id = note.session_id
        s.delete(note)
        touch_session(s, session_id)
    logger.info("note_card_deleted", extra={"session_id": session_id, "note_id": note_id})


def list_notes(session_id: str) -> list[NoteCardRecord]:
    with session_scope() as s:
        require_session(s, session_id)
        rows = (
            s.execute(
                select(TempoNoteCard)
                .where(TempoNoteCard.session_id == session_id)
                .order_by(TempoNoteCard.order_index.asc(), TempoNoteCard.occurred_at.asc())
            )
            .scalars()
            .all()
        )
        return [NoteCardRecord.model_validate(r) for r in rows]
