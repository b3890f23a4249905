"""Tests for Pydantic input validation models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tempo.validators import DecisionBriefInput, DraftReportInput, NoteCardInput, SessionCreateInput


# --- NoteCardInput ---

def test_note_defaults_to_free_text():
    note = NoteCardInput(content="  Tempo trop rapide ")
    assert note.card_type == "libre"
    assert note.content == "Tempo trop rapide"


def test_note_rejects_blank_and_unknown_type():
    with pytest.raises(ValidationError):
        NoteCardInput(content="   ")
    with pytest.raises(ValidationError):
        NoteCardInput(card_type="humeur", content="x")


# --- SessionCreateInput ---

def test_session_blank_title_and_club_become_none():
    body = SessionCreateInput(student_id="stu-1", mode="decision", title="  ", club="")
    assert body.title is None
    assert body.club is None


def test_session_unknown_mode():
    with pytest.raises(ValidationError):
        SessionCreateInput(student_id="stu-1", mode="range")


# --- DecisionBriefInput ---

def test_brief_requires_club_and_constat():
    with pytest.raises(ValidationError):
        DecisionBriefInput(club=" ", constat="Slice")
    with pytest.raises(ValidationError):
        DecisionBriefInput(club="Driver", constat="")


def test_brief_intent_is_optional():
    brief = DecisionBriefInput(club=" Driver ", constat="Slice", intent=None)
    assert brief.club == "Driver"
    assert brief.coach_intent is None
    assert DecisionBriefInput(club="Driver", constat="Slice", intent=" Chemin ").coach_intent == "Chemin"


# --- DraftReportInput ---

def test_draft_title_bounds():
    assert DraftReportInput(title="  ").title is None
    with pytest.raises(ValidationError):
        DraftReportInput(title="ab")
