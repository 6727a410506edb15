"""Deterministic risk indicators derived from the recent daily-log window.

Pure functions only: no I/O, no clock reads except where a reference date is
passed in explicitly.
"""
from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date

from schemas.health import DailyLogEntry, MonthlySummary, RiskAssessment, RiskLevel

RISK_WINDOW = 7
DEFAULT_SLEEP_HOURS = 7.0
IDEAL_SLEEP_HOURS = 7.5

STRESS_LEVELS = ((80, RiskLevel.severe), (60, RiskLevel.high), (40, RiskLevel.moderate))
SLEEP_LEVELS = ((75, RiskLevel.severe), (50, RiskLevel.high), (25, RiskLevel.moderate))
BURNOUT_LEVELS = ((70, RiskLevel.high), (40, RiskLevel.moderate))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp_score(value: float) -> int:
    return min(100, max(0, _round_half_up(value)))


def _level_for(score: float, thresholds: tuple[tuple[int, RiskLevel], ...]) -> RiskLevel:
    for floor_exclusive, level in thresholds:
        if score > floor_exclusive:
            return level
    return RiskLevel.low


def _average(window: Sequence[DailyLogEntry], field: str) -> float | None:
    """Mean of ``field`` over entries that supply it; None when none do."""
    values = [getattr(entry, field) for entry in window if getattr(entry, field) is not None]
    if not values:
        return None
    return sum(values) / len(values)


def _stress_risk(avg_stress: float) -> RiskAssessment:
    raw = (avg_stress / 5) * 100
    return RiskAssessment(
        title="Chronic Stress Risk",
        score=_clamp_score(raw),
        level=_level_for(raw, STRESS_LEVELS),
        description=f"Your recent stress levels average {avg_stress:.1f}/5.",
        suggestions=(
            ["Practice 4-7-8 breathing", "Reduce caffeine intake", "Schedule 15min downtime"]
            if raw > 60
            else ["Maintain current balance", "Regular exercise"]
        ),
    )


def _sleep_risk(avg_sleep_hours: float, avg_sleep_quality: float) -> RiskAssessment:
    # 20 points per hour below the ideal, 10 per quality point below 5.
    hours_penalty = max(0.0, (IDEAL_SLEEP_HOURS - avg_sleep_hours) * 20)
    quality_penalty = max(0.0, (5 - avg_sleep_quality) * 10)
    raw = min(100.0, hours_penalty + quality_penalty)
    return RiskAssessment(
        title="Sleep Deprivation",
        score=_clamp_score(raw),
        level=_level_for(raw, SLEEP_LEVELS),
        description=f"Averaging {avg_sleep_hours:.1f} hours at {avg_sleep_quality:.1f}/5 quality.",
        suggestions=(
            ["Set a strict bedtime", "Avoid screens 1h before bed", "Keep room cool"]
            if raw > 50
            else ["Good sleep hygiene detected"]
        ),
    )


def _burnout_risk(avg_stress: float, avg_energy: float, avg_mood: float) -> RiskAssessment:
    # No Severe tier for burnout.
    raw = ((avg_stress + (6 - avg_energy) + (6 - avg_mood)) / 15) * 100
    return RiskAssessment(
        title="Burnout Likelihood",
        score=_clamp_score(raw),
        level=_level_for(raw, BURNOUT_LEVELS),
        description="Based on combined stress, energy, and mood patterns.",
        suggestions=(
            ["Prioritize rest immediately", "Delegate tasks if possible", "Seek social support"]
            if raw > 50
            else ["Energy levels look sustainable"]
        ),
    )


def calculate_health_risks(logs: Sequence[DailyLogEntry]) -> list[RiskAssessment]:
    """Score stress, sleep deprivation and burnout over the newest seven logs.

    ``logs`` must be ordered newest first, as ``RecordStore.list_logs`` returns
    them. An empty input yields no assessments.
    """
    if not logs:
        return []

    window = list(logs[:RISK_WINDOW])
    avg_stress = _average(window, "stress") or 0.0
    avg_sleep_quality = _average(window, "sleep_quality") or 0.0
    avg_energy = _average(window, "energy") or 0.0
    avg_mood = _average(window, "mood") or 0.0
    avg_sleep_hours = _average(window, "sleep_hours")
    if avg_sleep_hours is None:
        avg_sleep_hours = DEFAULT_SLEEP_HOURS

    return [
        _stress_risk(avg_stress),
        _sleep_risk(avg_sleep_hours, avg_sleep_quality),
        _burnout_risk(avg_stress, avg_energy, avg_mood),
    ]


def build_monthly_summary(
    logs: Sequence[DailyLogEntry],
    risks: Sequence[RiskAssessment],
    today: date,
) -> MonthlySummary:
    """Figures for the monthly export: log count, mean steps (missing counts as 0), risks."""
    total_steps = sum(entry.steps or 0 for entry in logs)
    avg_steps = total_steps / (len(logs) or 1)
    return MonthlySummary(
        month=today.strftime("%B %Y"),
        total_logs=len(logs),
        avg_steps=_round_half_up(avg_steps),
        risks=list(risks),
    )
