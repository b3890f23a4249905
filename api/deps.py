from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from tempo.services.context import ContextAggregator
from tempo.services.decision_runs import AxisGenerator
from tempo.services.draft_report import DraftReportBridge
from tempo.services.model_gateway import ModelGateway
from tempo.services.pipeline import DecisionAssistant


def get_coach_id(x_coach_id: Annotated[Optional[str], Header(alias="X-Coach-ID")] = None) -> str:
    coach_id = (x_coach_id or "").strip()
    if not coach_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "COACH_REQUIRED", "message": "En-tete X-Coach-ID manquant.", "retryable": False},
        )
    return coach_id


@lru_cache
def get_context_aggregator() -> ContextAggregator:
    return ContextAggregator()


@lru_cache
def get_model_gateway() -> ModelGateway:
    return ModelGateway()


@lru_cache
def get_axis_generator() -> AxisGenerator:
    return AxisGenerator(get_model_gateway())


@lru_cache
def get_decision_assistant() -> DecisionAssistant:
    return DecisionAssistant(get_context_aggregator(), get_model_gateway(), get_axis_generator())


@lru_cache
def get_draft_report_bridge() -> DraftReportBridge:
    return DraftReportBridge()


def reset_providers() -> None:
    for provider in (
        get_context_aggregator,
        get_model_gateway,
        get_axis_generator,
        get_decision_assistant,
        get_draft_report_bridge,
    ):
        provider.cache_clear()


CoachId = Annotated[str, Depends(get_coach_id)]
Aggregator = Annotated[ContextAggregator, Depends(get_context_aggregator)]
Assistant = Annotated[DecisionAssistant, Depends(get_decision_assistant)]
ReportBridge = Annotated[DraftReportBridge, Depends(get_draft_report_bridge)]
