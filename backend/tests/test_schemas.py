"""Boundary validation of the request and record models."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.health import DailyLogCreate  # noqa: E402
from schemas.reports import Finding, FindingStatus  # noqa: E402


def _payload(**overrides) -> dict:
    values = {"date": "2026-10-18", "mood": 3, "stress": 3, "sleep_quality": 3, "pain": 1, "energy": 3}
    values.update(overrides)
    return values


def test_ratings_are_clamped_not_rejected():
    entry = DailyLogCreate(**_payload(mood=9, stress=0, sleep_quality=-4, pain="7", energy=4.6))
    assert (entry.mood, entry.stress, entry.sleep_quality, entry.pain, entry.energy) == (5, 1, 1, 5, 5)


def test_wearable_values_are_normalized():
    entry = DailyLogCreate(**_payload(steps=-20, heart_rate=0, sleep_hours=-1, calories="1800.5"))
    assert entry.steps == 0
    assert entry.heart_rate is None
    assert entry.sleep_hours == 0.0
    assert entry.calories == 1800.5

    blank = DailyLogCreate(**_payload(steps="", sleep_hours=None))
    assert blank.steps is None
    assert blank.sleep_hours is None


def test_log_date_must_be_iso():
    assert DailyLogCreate(**_payload(date="2026-10-18T07:30:00Z")).date == "2026-10-18T07:30:00Z"
    with pytest.raises(ValidationError):
        DailyLogCreate(**_payload(date="yesterday"))


def test_non_numeric_rating_still_fails_validation():
    with pytest.raises(ValidationError):
        DailyLogCreate(**_payload(mood="great"))


def test_finding_status_falls_back_to_unknown():
    assert Finding(parameter="LDL", status="CRITICAL").status == FindingStatus.critical
    assert Finding(parameter="LDL", status=None).status == FindingStatus.unknown
    assert Finding(parameter="LDL", value=None).value == ""


def test_finding_keeps_enum_status_given_in_python():
    for status in FindingStatus:
        assert Finding(parameter="LDL", status=status).status is status
