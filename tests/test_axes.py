from __future__ import annotations

import json

from conftest import make_axes
from tempo.services.axes import (
    InvalidAxes,
    ValidAxes,
    clean_title,
    format_axes_text,
    parse_axes_payload,
)


def test_strict_payload_round_trips_unchanged():
    payload = make_axes()
    result = parse_axes_payload(json.dumps(payload))

    assert isinstance(result, ValidAxes)
    assert result.normalized is False
    assert [axis.model_dump() for axis in result.axes] == payload["axes"]


def test_loose_payload_is_normalized_and_renumbered():
    payload = {
        "axes": [
            {"priority": 3, "title": "  Chemin   de club...", "summary": "a", "rationale": "b", "caution": "c"},
            {"priority": 7.5, "title": "Grip", "summary": "d", "rationale": "e", "caution": "f"},
            {"title": "Posture…", "summary": "g", "rationale": "h", "caution": "i"},
        ]
    }
    result = parse_axes_payload(payload)

    assert isinstance(result, ValidAxes)
    assert result.normalized is True
    assert [a.priority for a in result.axes] == [1, 2, 3]
    assert [a.title for a in result.axes] == ["Chemin de club", "Grip", "Posture"]


def test_extra_axes_are_cut_to_the_first_three():
    result = parse_axes_payload(make_axes(count=4))
    assert isinstance(result, ValidAxes)
    assert [a.title for a in result.axes] == ["Axe 1", "Axe 2", "Axe 3"]


def test_incomplete_axes_are_dropped_before_counting():
    payload = make_axes()
    payload["axes"][1]["caution"] = "   "
    result = parse_axes_payload(payload)
    assert isinstance(result, InvalidAxes)
    assert result.reason == "wrong_axis_count"


def test_two_axes_are_rejected():
    result = parse_axes_payload(make_axes(count=2))
    assert isinstance(result, InvalidAxes)
    assert result.reason == "wrong_axis_count"


def test_top_level_list_and_code_fences_are_accepted():
    fenced = "```json\n" + json.dumps(make_axes()["axes"]) + "\n```"
    result = parse_axes_payload(fenced)
    assert isinstance(result, ValidAxes)
    assert len(result.axes) == 3


def test_garbage_payloads():
    assert parse_axes_payload("pas du json").reason == "not_json"
    assert parse_axes_payload({"axes": "trois axes"}).reason == "unrecognized_shape"


def test_long_titles_are_clamped():
    result = parse_axes_payload(make_axes(title="T" * 200), title_max_chars=140)
    assert isinstance(result, ValidAxes)
    assert result.normalized is True
    assert all(len(a.title) == 140 for a in result.axes)


def test_clean_title_and_text_rendering():
    assert clean_title("Rotation   du bassin ...") == "Rotation du bassin"
    result = parse_axes_payload(make_axes())
    text = format_axes_text(result.axes)
    assert text.startswith("1. Axe 1\nResume 1")
    assert "Vigilance: Vigilance 3" in text


def test_configured_title_limit_applies_to_strict_replies():
    result = parse_axes_payload(make_axes(title="T" * 50), title_max_chars=20)

    assert isinstance(result, ValidAxes)
    assert result.normalized is True
    assert all(a.title == "T" * 20 for a in result.axes)
    assert parse_axes_payload(make_axes(title="T" * 50), title_max_chars=60).normalized is False
