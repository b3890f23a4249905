"""Pydantic validation models for all coach-facing data entry points."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from tempo.schemas import NoteCardType, SessionMode

AnswerValue = Union[str, list[str]]


class NoteCardInput(BaseModel):
    card_type: NoteCardType = "libre"
    content: str = Field(min_length=1, max_length=8000)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v):
        return v.strip() if isinstance(v, str) else v


class SessionCreateInput(BaseModel):
    student_id: str = Field(min_length=1, max_length=36)
    mode: SessionMode
    title: Optional[str] = Field(default=None, max_length=140)
    club: Optional[str] = Field(default=None, max_length=120)

    @field_validator("title", "club", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v or None


class DecisionBriefInput(BaseModel):
    """Club, constat and optional coach intent typed in during a live session."""

    club: str = Field(min_length=1, max_length=120)
    constat: str = Field(min_length=1, max_length=8000)
    intent: str = Field(default="", max_length=4000)

    @field_validator("club", "constat", "intent", mode="before")
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @property
    def coach_intent(self) -> Optional[str]:
        return self.intent or None


class DraftReportInput(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=180)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v or None
