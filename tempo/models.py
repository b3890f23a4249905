from __future__ import annotations

import datetime as dt
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

SESSION_MODES = ("notes", "decision")
SESSION_STATUSES = ("active", "archived")
NOTE_CARD_TYPES = ("constat", "consigne", "objectif", "mesure", "libre")


def _uuid() -> str:
    return str(uuid4())


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class TempoSession(Base):
    __tablename__ = "tempo_sessions"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    student_id: Mapped[str] = mapped_column(String(36), index=True)
    coach_id: Mapped[str] = mapped_column(String(36), index=True)
    mode: Mapped[str] = mapped_column(String(16))
    title: Mapped[str] = mapped_column(String(140))
    status: Mapped[str] = mapped_column(String(16), default="active")
    club: Mapped[str | None] = mapped_column(String(120))
    next_order_index: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)
    __table_args__ = (
        CheckConstraint("mode in ('notes', 'decision')", name="ck_tempo_sessions_mode"),
        CheckConstraint("status in ('active', 'archived')", name="ck_tempo_sessions_status"),
        CheckConstraint("next_order_index >= 0", name="ck_tempo_sessions_next_order_index"),
        Index("ix_tempo_sessions_student_updated", "student_id", "updated_at"),
    )


class TempoCurrentSession(Base):
    """Explicit pointer to the session a coach is working in for one student and mode."""

    __tablename__ = "tempo_current_sessions"
    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[str] = mapped_column(String(36))
    coach_id: Mapped[str] = mapped_column(String(36))
    mode: Mapped[str] = mapped_column(String(16))
    session_id: Mapped[str] = mapped_column(ForeignKey("tempo_sessions.id"))
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)
    __table_args__ = (UniqueConstraint("student_id", "coach_id", "mode", name="uq_tempo_current_session"),)


class TempoNoteCard(Base):
    __tablename__ = "tempo_note_cards"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    session_id: Mapped[str] = mapped_column(ForeignKey("tempo_sessions.id"), index=True)
    coach_id: Mapped[str] = mapped_column(String(36))
    card_type: Mapped[str] = mapped_column(String(16))
    content: Mapped[str] = mapped_column(Text)
    order_index: Mapped[int] = mapped_column(Integer)
    occurred_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)
    __table_args__ = (
        CheckConstraint(
            "card_type in ('constat', 'consigne', 'objectif', 'mesure', 'libre')",
            name="ck_tempo_note_cards_card_type",
        ),
        CheckConstraint("order_index >= 0", name="ck_tempo_note_cards_order_index"),
        Index("ix_tempo_note_cards_session_order", "session_id", "order_index", "occurred_at"),
    )


class TempoDecisionRun(Base):
    __tablename__ = "tempo_decision_runs"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    session_id: Mapped[str] = mapped_column(ForeignKey("tempo_sessions.id"), index=True)
    coach_id: Mapped[str] = mapped_column(String(36))
    club: Mapped[str] = mapped_column(String(120))
    constat: Mapped[str] = mapped_column(Text)
    coach_intent: Mapped[str | None] = mapped_column(Text)
    clarifications_json: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    axes_json: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    context_snapshot_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)
    __table_args__ = (Index("ix_tempo_decision_runs_session_created", "session_id", "created_at"),)
