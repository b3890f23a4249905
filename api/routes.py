import logging
from typing import Optional

from fastapi import APIRouter, Query, Request, Response, status

from api.deps import Aggregator, Assistant, CoachId, ReportBridge
from api.ratelimit import ai_rate_limit, limiter
from api.schemas import (
    DecisionConfirmRequest,
    DecisionCycleOut,
    DecisionStartRequest,
    DraftReportOut,
    DraftReportRequest,
    HealthOut,
    NoteCreateRequest,
    NoteUpdateRequest,
    SessionOpenRequest,
)
from tempo.config import get_settings
from tempo.errors import NotFoundError
from tempo.schemas import DecisionRunRecord, NoteCardRecord, SessionMode, SessionRecord, TempoContext
from tempo.services import decision_runs, notes, sessions

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/api/v1")


@router.get("/health", response_model=HealthOut, tags=["health"])
def health():
    return HealthOut(env=settings.app_env)


@router.get("/tempo/context", response_model=TempoContext, tags=["context"])
async def get_context(aggregator: Aggregator, coach_id: CoachId, student_id: str = Query(min_length=1)):
    return await aggregator.fetch_context(student_id)


@router.get("/tempo/sessions", response_model=list[SessionRecord], tags=["sessions"])
def list_tempo_sessions(
    coach_id: CoachId,
    student_id: str = Query(min_length=1),
    mode: Optional[SessionMode] = None,
):
    return sessions.list_sessions(student_id, coach_id=coach_id, mode=mode)


@router.post("/tempo/sessions", response_model=SessionRecord, tags=["sessions"])
def open_tempo_session(body: SessionOpenRequest, coach_id: CoachId):
    if body.new:
        return sessions.start_new_session(body.student_id, coach_id, body.mode, title=body.title, club=body.club)
    return sessions.get_or_create_session(
        body.student_id, coach_id, body.mode, title=body.title, club=body.club, session_id=body.session_id
    )


@router.get("/tempo/sessions/{session_id}/notes", response_model=list[NoteCardRecord], tags=["notes"])
def list_session_notes(session_id: str, coach_id: CoachId):
    return notes.list_notes(session_id)


@router.post("/tempo/notes", response_model=NoteCardRecord, status_code=201, tags=["notes"])
def create_note(body: NoteCreateRequest, coach_id: CoachId):
    return notes.append_note_for_student(
        body.student_id, coach_id, body.card_type, body.content, session_id=body.session_id
    )


@router.patch("/tempo/notes/{note_id}", response_model=NoteCardRecord, tags=["notes"])
def update_note(note_id: str, body: NoteUpdateRequest, coach_id: CoachId):
    return notes.edit_note(note_id, body.card_type, body.content)


@router.delete("/tempo/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["notes"])
def remove_note(note_id: str, coach_id: CoachId):
    notes.delete_note(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/tempo/decisions", response_model=DecisionCycleOut, tags=["decisions"])
@limiter.limit(ai_rate_limit)
async def start_decision(
    request: Request,
    response: Response,
    body: DecisionStartRequest,
    coach_id: CoachId,
    assistant: Assistant,
):
    cycle = await assistant.start(body.student_id, coach_id, body.brief(), session_id=body.session_id)
    return DecisionCycleOut.model_validate(cycle)


@router.post("/tempo/decisions/{draft_id}/confirm", response_model=DecisionCycleOut, tags=["decisions"])
@limiter.limit(ai_rate_limit)
async def confirm_decision(
    request: Request,
    response: Response,
    draft_id: str,
    body: DecisionConfirmRequest,
    coach_id: CoachId,
    assistant: Assistant,
):
    cycle = await assistant.confirm(draft_id, coach_id, body.answers)
    return DecisionCycleOut.model_validate(cycle)


@router.delete("/tempo/decisions/{draft_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["decisions"])
def cancel_decision(draft_id: str, coach_id: CoachId, assistant: Assistant):
    if not assistant.cancel(draft_id, coach_id):
        raise NotFoundError("Clarification introuvable.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/tempo/sessions/{session_id}/runs", response_model=list[DecisionRunRecord], tags=["decisions"])
def list_session_runs(
    session_id: str,
    coach_id: CoachId,
    limit: int = Query(settings.runs_page_size, ge=1, le=100),
):
    return decision_runs.list_runs(session_id, limit=limit)


@router.get("/tempo/sessions/{session_id}/runs/active", response_model=DecisionRunRecord, tags=["decisions"])
def get_active_run(session_id: str, coach_id: CoachId):
    run = decision_runs.active_run(session_id)
    if run is None:
        raise NotFoundError("Aucune decision Tempo pour cette session.")
    return run


@router.post(
    "/tempo/sessions/{session_id}/draft-report",
    response_model=DraftReportOut,
    status_code=201,
    tags=["reports"],
)
async def create_draft_report(
    session_id: str,
    coach_id: CoachId,
    bridge: ReportBridge,
    body: Optional[DraftReportRequest] = None,
):
    created = await bridge.create_draft_from_session(session_id, coach_id, title=body.title if body else None)
    logger.info("draft_report_requested", extra={"session_id": session_id, "coach_id": coach_id})
    return DraftReportOut.model_validate(created)
