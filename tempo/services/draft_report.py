"""Hand-off from a Tempo session to a draft report in the reports service."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from tempo.config import get_settings
from tempo.errors import DraftReportEmptyError, DraftReportError
from tempo.schemas import DecisionRunRecord, NoteCardRecord, SessionRecord
from tempo.services.context import trim_text
from tempo.services.decision_runs import active_run
from tempo.services.notes import list_notes
from tempo.services.sessions import get_session

logger = logging.getLogger(__name__)

NOTE_TYPE_LABELS = {
    "constat": "Constat",
    "consigne": "Consigne",
    "objectif": "Objectif",
    "mesure": "Mesure",
    "libre": "Note",
}

# Sections every draft carries, in order, after the ones seeded from the session.
CORE_SECTIONS = (
    ("Resume du rapport", "text"),
    ("Planification 7 jours", "text"),
    ("Images de la seance", "image"),
    ("Video de reference", "video"),
)


@dataclass
class DraftSection:
    title: str
    type: str
    content: str


@dataclass
class DraftReport:
    title: str
    report_date: str
    coach_observations: Optional[str]
    coach_work: Optional[str]
    coach_club: Optional[str]
    sections: list[DraftSection] = field(default_factory=list)

    def to_payload(self, session: SessionRecord) -> dict[str, object]:
        return {
            "studentId": session.student_id,
            "authorId": session.coach_id,
            "tempoSessionId": session.id,
            "title": self.title,
            "reportDate": self.report_date,
            "coachObservations": self.coach_observations,
            "coachWork": self.coach_work,
            "coachClub": self.coach_club,
            "sections": [
                {"title": s.title, "type": s.type, "content": s.content, "position": index}
                for index, s in enumerate(self.sections)
            ],
        }


def _append_section(target: list[DraftSection], seed: Optional[DraftSection]) -> None:
    if seed is None:
        return
    key = seed.title.strip().lower()
    if not key or any(item.title.strip().lower() == key for item in target):
        return
    if seed.type == "video" and any(item.type == "video" for item in target):
        return
    target.append(seed)


def _date_tag(value: dt.datetime) -> str:
    return value.strftime("%d/%m/%Y %H:%M")


def build_draft_report(
    session: SessionRecord,
    notes: list[NoteCardRecord],
    latest_run: Optional[DecisionRunRecord],
    title: Optional[str] = None,
    student_name: str = "Eleve",
    today: Optional[dt.date] = None,
) -> DraftReport:
    if not notes and latest_run is None:
        raise DraftReportEmptyError("Ajoute des notes ou une decision Tempo avant de creer un brouillon.")
    today = today or dt.date.today()

    notes_lines = [
        f"- [{_date_tag(note.occurred_at)}] {NOTE_TYPE_LABELS.get(note.card_type, 'Note')}: {trim_text(note.content, 2000)}"
        for note in notes
    ]

    observations = [trim_text(n.content, 4000) for n in notes if n.card_type in {"constat", "mesure"}]
    if latest_run and latest_run.constat:
        observations.append(trim_text(latest_run.constat, 4000))

    work = [trim_text(n.content, 4000) for n in notes if n.card_type in {"consigne", "objectif"}]
    if latest_run and latest_run.coach_intent:
        work.append(trim_text(latest_run.coach_intent, 4000))

    club = trim_text(session.club, 120) or (trim_text(latest_run.club, 120) if latest_run else "") or None

    axes = latest_run.axes[:3] if latest_run else []
    axes_text = "\n".join(
        f"{axis.priority}. {trim_text(axis.title, 120)} - {trim_text(axis.summary, 320)}" for axis in axes
    )

    sections: list[DraftSection] = []
    if notes_lines:
        _append_section(sections, DraftSection("Notes de seance", "text", "\n".join(notes_lines)))
    if axes_text:
        _append_section(sections, DraftSection("Axes de travail", "text", axes_text))
    if observations:
        _append_section(sections, DraftSection("Diagnostic swing", "text", "\n".join(observations)))
    if work:
        _append_section(sections, DraftSection("Objectifs de travail", "text", "\n".join(work)))
    for section_title, section_type in CORE_SECTIONS:
        _append_section(sections, DraftSection(section_title, section_type, ""))

    report_title = (
        (title or "").strip()
        or trim_text(session.title, 180)
        or f"Seance Tempo - {student_name} - {today.strftime('%d/%m/%Y')}"
    )
    return DraftReport(
        title=report_title,
        report_date=today.isoformat(),
        coach_observations="\n".join(observations).strip() or None,
        coach_work="\n".join(work).strip() or None,
        coach_club=club,
        sections=sections,
    )


class DraftReportBridge:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.reports_url).rstrip("/")
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.reports_timeout_seconds
        self._transport = transport

    async def create_draft_from_session(
        self,
        session_id: str,
        coach_id: str,
        title: Optional[str] = None,
        student_name: str = "Eleve",
    ) -> dict[str, str]:
        session = get_session(session_id)
        notes = list_notes(session_id) if session.mode == "notes" else []
        latest = active_run(session_id) if session.mode == "decision" else None
        draft = build_draft_report(session, notes, latest, title=title, student_name=student_name)

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.base_url}/drafts",
                    json=draft.to_payload(session),
                    headers={"X-Coach-ID": coach_id},
                )
                resp.raise_for_status()
                report_id = str(resp.json()["reportId"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.warning("draft_report_failed", extra={"session_id": session_id, "error": str(exc)})
            raise DraftReportError("Creation du brouillon impossible.") from exc

        logger.info(
            "draft_report_created",
            extra={
                "session_id": session_id,
                "report_id": report_id,
                "notes_count": len(notes),
                "axes_count": len(latest.axes) if latest else 0,
            },
        )
        return {"reportId": report_id}
