from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from tempo.schemas import ClarificationQuestion, DecisionRunRecord, NoteCardType
from tempo.validators import AnswerValue, DecisionBriefInput, DraftReportInput, SessionCreateInput


class HealthOut(BaseModel):
    status: Literal["ok"] = "ok"
    env: str


class SessionOpenRequest(SessionCreateInput):
    session_id: Optional[str] = None
    new: bool = False


class NoteCreateRequest(BaseModel):
    student_id: str = Field(min_length=1, max_length=36)
    session_id: Optional[str] = None
    card_type: NoteCardType = "libre"
    content: str


class NoteUpdateRequest(BaseModel):
    card_type: NoteCardType
    content: str


class DecisionStartRequest(DecisionBriefInput):
    student_id: str = Field(min_length=1, max_length=36)
    session_id: Optional[str] = None

    def brief(self) -> DecisionBriefInput:
        return DecisionBriefInput(club=self.club, constat=self.constat, intent=self.intent)


class DecisionConfirmRequest(BaseModel):
    answers: dict[str, AnswerValue] = Field(default_factory=dict)


class DecisionCycleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: Literal["generated", "clarify"]
    session_id: str
    run: Optional[DecisionRunRecord] = None
    draft_id: Optional[str] = None
    confidence: Optional[float] = None
    questions: list[ClarificationQuestion] = Field(default_factory=list)
    answers: dict[str, AnswerValue] = Field(default_factory=dict)


class DraftReportRequest(DraftReportInput):
    pass


class DraftReportOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    report_id: str = Field(alias="reportId")
