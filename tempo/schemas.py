"""Pydantic shapes shared by the Tempo services and the HTTP layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SessionMode = Literal["notes", "decision"]
SessionStatus = Literal["active", "archived"]
NoteCardType = Literal["constat", "consigne", "objectif", "mesure", "libre"]


class SessionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    coach_id: str
    mode: SessionMode
    title: str
    status: SessionStatus
    club: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class NoteCardRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    coach_id: str
    card_type: NoteCardType
    content: str
    order_index: int
    occurred_at: datetime
    created_at: datetime
    updated_at: datetime


class Clarification(BaseModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1, max_length=2000)


class DecisionAxis(BaseModel):
    """One prioritized recommendation; the strict validation lives in services.axes."""

    priority: int
    title: str
    summary: str
    rationale: str
    caution: str


class DecisionRunRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    session_id: str
    coach_id: str
    club: str
    constat: str
    coach_intent: Optional[str] = None
    clarifications: list[Clarification] = Field(default_factory=list, validation_alias="clarifications_json")
    axes: list[DecisionAxis] = Field(default_factory=list, validation_alias="axes_json")
    context_snapshot: dict[str, Any] = Field(default_factory=dict, validation_alias="context_snapshot_json")
    created_at: datetime


class ClarificationQuestion(BaseModel):
    id: str = Field(min_length=1)
    question: str = Field(min_length=1)
    type: Literal["text", "choices"]
    choices: Optional[list[str]] = None
    multi: Optional[bool] = None
    required: Optional[bool] = None
    placeholder: Optional[str] = None

    @field_validator("id", "question")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ClarifyResponse(BaseModel):
    confidence: float = Field(ge=0, le=1)
    questions: list[ClarificationQuestion]


class ContextStudent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    email: Optional[str] = None
    playing_hand: Optional[str] = Field(default=None, alias="playingHand")

    @property
    def display_name(self) -> str:
        name = " ".join(part.strip() for part in (self.first_name, self.last_name) if part and part.strip())
        return name or "Eleve"


class ContextSummaries(BaseModel):
    tpi: str
    reports: str
    radar: str
    tests: str


class TempoContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student: Optional[ContextStudent] = None
    ai_context: str = Field(alias="aiContext")
    summaries: ContextSummaries
