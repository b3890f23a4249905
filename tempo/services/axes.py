"""Contract for the three prioritized decision axes.

`parse_axes_payload` is the only place that decides whether a model reply is
a usable plan. It tries the strict contract first, then a loose parse followed
by normalisation, and accepts the result only when exactly three complete
axes survive. Anything else is reported as `InvalidAxes`, never as a partial
plan.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator, model_validator

from tempo.schemas import DecisionAxis
from tempo.services.model_gateway import coerce_json

AXIS_COUNT = 3
TITLE_MAX_CHARS = 140

_WHITESPACE = re.compile(r"\s+")
_TRAILING_ELLIPSIS = re.compile(r"(?:\.{3,}|…)+\s*$")


class StrictAxis(BaseModel):
    model_config = ConfigDict(strict=True)

    priority: int = Field(ge=1, le=3)
    title: str = Field(min_length=1)
    summary: str = Field(min_length=1, max_length=500)
    rationale: str = Field(min_length=1, max_length=1200)
    caution: str = Field(min_length=1, max_length=500)

    @field_validator("title", "summary", "rationale", "caution")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("title")
    @classmethod
    def title_within_limit(cls, v: str, info: ValidationInfo) -> str:
        limit = (info.context or {}).get("title_max_chars", TITLE_MAX_CHARS)
        if len(v) > limit:
            raise ValueError(f"title longer than {limit} characters")
        return v


class StrictAxesResponse(BaseModel):
    axes: list[StrictAxis] = Field(min_length=AXIS_COUNT, max_length=AXIS_COUNT)

    @model_validator(mode="after")
    def priorities_are_one_two_three(self):
        if sorted(axis.priority for axis in self.axes) != [1, 2, 3]:
            raise ValueError("priorities must be exactly 1, 2 and 3")
        return self


class LooseAxis(BaseModel):
    priority: Optional[float] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    rationale: Optional[str] = None
    caution: Optional[str] = None


class LooseAxesResponse(BaseModel):
    axes: list[LooseAxis]


@dataclass(frozen=True)
class ValidAxes:
    axes: list[DecisionAxis]
    normalized: bool = False


@dataclass(frozen=True)
class InvalidAxes:
    reason: str
    details: list[str] = field(default_factory=list)


AxisParseResult = Union[ValidAxes, InvalidAxes]


def collapse_whitespace(value: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", value or "").strip()


def clamp_text(value: Optional[str], max_chars: int) -> str:
    text = collapse_whitespace(value)
    if len(text) <= max_chars:
        return text
    return text[: max(1, max_chars)].rstrip()


def clean_title(value: Optional[str], max_chars: int = TITLE_MAX_CHARS) -> str:
    return _TRAILING_ELLIPSIS.sub("", clamp_text(value, max_chars)).strip()


def normalize_axes(axes: list[LooseAxis], title_max_chars: int = TITLE_MAX_CHARS) -> list[DecisionAxis]:
    """Clean loose axes; returns an empty list unless exactly three survive."""
    survivors = []
    for axis in axes:
        title = clean_title(axis.title, title_max_chars)
        summary = collapse_whitespace(axis.summary)
        rationale = collapse_whitespace(axis.rationale)
        caution = collapse_whitespace(axis.caution)
        if not (title and summary and rationale and caution):
            continue
        survivors.append((title, summary, rationale, caution))

    kept = survivors[:AXIS_COUNT]
    if len(kept) != AXIS_COUNT:
        return []
    return [
        DecisionAxis(priority=index + 1, title=title, summary=summary, rationale=rationale, caution=caution)
        for index, (title, summary, rationale, caution) in enumerate(kept)
    ]


def _decode(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        return coerce_json(raw)
    return raw


def parse_axes_payload(raw: Any, title_max_chars: int = TITLE_MAX_CHARS) -> AxisParseResult:
    try:
        payload = _decode(raw)
    except (ValueError, json.JSONDecodeError) as exc:
        return InvalidAxes("not_json", [str(exc)])

    try:
        strict = StrictAxesResponse.model_validate(payload, context={"title_max_chars": title_max_chars})
        return ValidAxes(axes=[DecisionAxis(**axis.model_dump()) for axis in strict.axes], normalized=False)
    except ValidationError as strict_exc:
        strict_errors = [err["msg"] for err in strict_exc.errors()]

    if isinstance(payload, list):
        payload = {"axes": payload}
    try:
        loose = LooseAxesResponse.model_validate(payload)
    except ValidationError as loose_exc:
        return InvalidAxes("unrecognized_shape", strict_errors + [err["msg"] for err in loose_exc.errors()])

    normalized = normalize_axes(loose.axes, title_max_chars)
    if not normalized:
        return InvalidAxes("wrong_axis_count", strict_errors)
    return ValidAxes(axes=normalized, normalized=True)


def format_axes_text(axes: list[DecisionAxis]) -> str:
    return "\n\n".join(
        f"{axis.priority}. {axis.title}\n{axis.summary}\nPourquoi: {axis.rationale}\nVigilance: {axis.caution}"
        for axis in axes
    )
