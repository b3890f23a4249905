from __future__ import annotations

import httpx
import pytest

from conftest import CONTEXT_URL, make_axes
from tempo.errors import (
    ClarificationError,
    ClarificationStateError,
    ContextUnavailableError,
    InvalidAxesError,
    ValidationFailedError,
)
from tempo.services.context import ContextAggregator
from tempo.services.decision_runs import AxisGenerator, active_run, list_runs
from tempo.services.pipeline import DecisionAssistant
from tempo.services.sessions import list_sessions

CLARIFY_QUESTIONS = {
    "confidence": 0.35,
    "questions": [
        {"id": "q1", "question": "Depart de balle ?", "type": "choices", "choices": ["Gauche", "Droite"]},
        {"id": "q2", "question": "Contacts ?", "type": "choices", "choices": ["Talon", "Pointe"], "multi": True},
    ],
}


@pytest.fixture
def assistant(aggregator, gateway):
    return DecisionAssistant(aggregator, gateway, AxisGenerator(gateway), draft_ttl_seconds=60)


async def test_confident_brief_generates_in_one_call(db, assistant, llm):
    llm.queue_response({"confidence": 0.9, "questions": []})
    llm.queue_response(make_axes())

    cycle = await assistant.start("stu-1", "coach-1", {"club": "Driver", "constat": "Slice chronique"})

    assert cycle.status == "generated"
    assert cycle.draft_id is None
    assert cycle.run.clarifications == []
    assert [a.priority for a in cycle.run.axes] == [1, 2, 3]
    assert cycle.run.club == "Driver"
    assert active_run(cycle.session_id).id == cycle.run.id
    assert len(llm.calls) == 2


async def test_clarification_round_then_confirm(db, assistant, llm):
    llm.queue_response(CLARIFY_QUESTIONS)
    cycle = await assistant.start(
        "stu-1", "coach-1", {"club": "Fer 7", "constat": "Gratte", "intent": "Point bas"}
    )

    assert cycle.status == "clarify"
    assert cycle.draft_id
    assert [q.id for q in cycle.questions] == ["q1", "q2"]
    assert cycle.answers == {"q1": "", "q2": []}
    assert list_runs(cycle.session_id) == []

    llm.queue_response(make_axes())
    done = await assistant.confirm(cycle.draft_id, "coach-1", {"q1": "Droite", "q2": ["Talon", "Pointe"]})

    assert done.status == "generated"
    assert done.session_id == cycle.session_id
    assert [(c.question, c.answer) for c in done.run.clarifications] == [
        ("Depart de balle ?", "Droite"),
        ("Contacts ?", "Talon, Pointe"),
    ]
    assert done.run.coach_intent == "Point bas"

    with pytest.raises(ClarificationStateError):
        await assistant.confirm(cycle.draft_id, "coach-1", {})


async def test_draft_belongs_to_its_coach(db, assistant, llm):
    llm.queue_response(CLARIFY_QUESTIONS)
    cycle = await assistant.start("stu-1", "coach-1", {"club": "Driver", "constat": "Slice"})

    with pytest.raises(ClarificationStateError):
        await assistant.confirm(cycle.draft_id, "coach-2", {})

    assert assistant.cancel(cycle.draft_id, "coach-1") is True
    assert assistant.cancel(cycle.draft_id, "coach-1") is False


async def test_invalid_axes_after_clarification_leave_no_run(db, assistant, llm):
    llm.queue_response({"confidence": 0.95, "questions": []})
    llm.queue_response(make_axes(count=2))

    with pytest.raises(InvalidAxesError):
        await assistant.start("stu-1", "coach-1", {"club": "Driver", "constat": "Slice"})

    sessions = list_sessions("stu-1", mode="decision")
    assert len(sessions) == 1
    assert list_runs(sessions[0].id) == []


async def test_missing_club_is_rejected_before_any_call(db, assistant, llm):
    with pytest.raises(ValidationFailedError):
        await assistant.start("stu-1", "coach-1", {"club": "  ", "constat": "Slice"})
    assert llm.calls == []


async def test_context_failure_stops_the_cycle(db, gateway, llm):
    broken = ContextAggregator(
        base_url=CONTEXT_URL,
        cache_ttl_seconds=0,
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    assistant = DecisionAssistant(broken, gateway, AxisGenerator(gateway), draft_ttl_seconds=60)

    with pytest.raises(ContextUnavailableError):
        await assistant.start("stu-1", "coach-1", {"club": "Driver", "constat": "Slice"})
    assert llm.calls == []
    assert list_sessions("stu-1") == []


async def test_blank_clarification_question_is_a_recoverable_clarify_failure(db, assistant, llm):
    llm.queue_response({"confidence": 0.2, "questions": [{"id": "q1", "question": "  ", "type": "text"}]})

    with pytest.raises(ClarificationError) as excinfo:
        await assistant.start("stu-1", "coach-1", {"club": "Driver", "constat": "Slice"})

    assert excinfo.value.retryable is True
    sessions = list_sessions("stu-1", mode="decision")
    assert list_runs(sessions[0].id) == []


async def test_cancel_is_limited_to_the_drafting_coach(db, assistant, llm):
    llm.queue_response(CLARIFY_QUESTIONS)
    cycle = await assistant.start("stu-1", "coach-1", {"club": "Driver", "constat": "Slice"})

    assert assistant.cancel(cycle.draft_id, "coach-2") is False

    llm.queue_response(make_axes())
    done = await assistant.confirm(cycle.draft_id, "coach-1", {"q1": "Droite"})
    assert done.status == "generated"
