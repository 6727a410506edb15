"""Tests for the stress, sleep and burnout scoring and the monthly summary."""
from __future__ import annotations

import math
import random
import sys
from datetime import date, timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.health import DailyLogEntry, RiskLevel  # noqa: E402
from services.risk_service import build_monthly_summary, calculate_health_risks  # noqa: E402


def _log(day_offset: int = 0, **overrides) -> DailyLogEntry:
    values = {
        "id": f"log-{day_offset}",
        "user_id": "u1",
        "date": (date(2026, 10, 18) - timedelta(days=day_offset)).isoformat(),
        "mood": 3,
        "stress": 3,
        "sleep_quality": 3,
        "pain": 1,
        "energy": 3,
    }
    values.update(overrides)
    return DailyLogEntry(**values)


def _mean(window, field, default=0.0):
    values = [getattr(entry, field) for entry in window if getattr(entry, field) is not None]
    return sum(values) / len(values) if values else default


def _raw_scores(logs) -> dict[str, float]:
    window = logs[:7]
    stress = _mean(window, "stress")
    hours = _mean(window, "sleep_hours", default=7.0)
    quality = _mean(window, "sleep_quality")
    return {
        "Chronic Stress Risk": (stress / 5) * 100,
        "Sleep Deprivation": min(100.0, max(0.0, (7.5 - hours) * 20) + max(0.0, (5 - quality) * 10)),
        "Burnout Likelihood": ((stress + (6 - _mean(window, "energy")) + (6 - _mean(window, "mood"))) / 15) * 100,
    }


def _expected_level(title: str, score: float) -> RiskLevel:
    tables = {
        "Chronic Stress Risk": ((80, RiskLevel.severe), (60, RiskLevel.high), (40, RiskLevel.moderate)),
        "Sleep Deprivation": ((75, RiskLevel.severe), (50, RiskLevel.high), (25, RiskLevel.moderate)),
        "Burnout Likelihood": ((70, RiskLevel.high), (40, RiskLevel.moderate)),
    }
    for bound, level in tables[title]:
        if score > bound:
            return level
    return RiskLevel.low


def test_empty_log_list_yields_no_risks():
    assert calculate_health_risks([]) == []


def test_stress_example_scores_94_severe():
    logs = [_log(i, stress=s) for i, s in enumerate([5, 5, 4, 5, 5, 4, 5])]
    risks = {r.title: r for r in calculate_health_risks(logs)}

    stress = risks["Chronic Stress Risk"]
    assert stress.score == 94
    assert stress.level == RiskLevel.severe
    assert stress.description == "Your recent stress levels average 4.7/5."
    assert "Practice 4-7-8 breathing" in stress.suggestions


def test_missing_sleep_hours_default_to_seven():
    logs = [_log(i, sleep_quality=5) for i in range(3)]
    sleep = {r.title: r for r in calculate_health_risks(logs)}["Sleep Deprivation"]

    # (7.5 - 7.0) * 20 with a perfect quality rating
    assert sleep.score == 10
    assert sleep.level == RiskLevel.low
    assert sleep.suggestions == ["Good sleep hygiene detected"]


def test_short_sleep_is_penalized_and_capped():
    logs = [_log(i, sleep_hours=3.0, sleep_quality=1) for i in range(4)]
    sleep = {r.title: r for r in calculate_health_risks(logs)}["Sleep Deprivation"]
    assert sleep.score == 100
    assert sleep.level == RiskLevel.severe
    assert "Set a strict bedtime" in sleep.suggestions


def test_only_newest_seven_logs_are_scored():
    logs = [_log(i, stress=5) for i in range(7)] + [_log(30, stress=1)]
    stress = calculate_health_risks(logs)[0]
    assert stress.score == 100


def test_burnout_has_no_severe_tier():
    logs = [_log(i, stress=5, energy=1, mood=1) for i in range(7)]
    burnout = {r.title: r for r in calculate_health_risks(logs)}["Burnout Likelihood"]
    assert burnout.score == 100
    assert burnout.level == RiskLevel.high
    assert burnout.suggestions[0] == "Prioritize rest immediately"


def test_scores_stay_in_range_and_match_level_table():
    rng = random.Random(2026)
    for _ in range(200):
        window = [
            _log(
                i,
                mood=rng.randint(1, 5),
                stress=rng.randint(1, 5),
                sleep_quality=rng.randint(1, 5),
                energy=rng.randint(1, 5),
                sleep_hours=rng.choice([None, rng.uniform(0, 12)]),
            )
            for i in range(rng.randint(1, 10))
        ]
        raw = _raw_scores(window)
        for risk in calculate_health_risks(window):
            assert 0 <= risk.score <= 100
            assert risk.score == min(100, max(0, math.floor(raw[risk.title] + 0.5)))
            assert risk.level == _expected_level(risk.title, raw[risk.title])


def test_level_follows_unrounded_score_at_tier_edges():
    # (7.5 - 6.24) * 20 = 25.2, just over the Moderate floor
    sleep = {r.title: r for r in calculate_health_risks([_log(0, sleep_quality=5, sleep_hours=6.24)])}[
        "Sleep Deprivation"
    ]
    assert sleep.score == 25
    assert sleep.level == RiskLevel.moderate

    # burnout averages out to 74/105, about 70.48
    logs = [_log(i, stress=5, energy=2, mood=5) for i in range(3)]
    logs += [_log(i + 3, stress=5, energy=2, mood=4) for i in range(4)]
    burnout = {r.title: r for r in calculate_health_risks(logs)}["Burnout Likelihood"]
    assert burnout.score == 70
    assert burnout.level == RiskLevel.high
    assert burnout.suggestions[0] == "Prioritize rest immediately"


def test_monthly_summary_counts_missing_steps_as_zero():
    logs = [_log(0, steps=1000), _log(1), _log(2, steps=2000)]
    risks = calculate_health_risks(logs)

    summary = build_monthly_summary(logs, risks, date(2026, 10, 18))

    assert summary.month == "October 2026"
    assert summary.total_logs == 3
    assert summary.avg_steps == 1000
    assert [r.title for r in summary.risks] == [
        "Chronic Stress Risk",
        "Sleep Deprivation",
        "Burnout Likelihood",
    ]


def test_monthly_summary_with_no_logs():
    summary = build_monthly_summary([], [], date(2026, 1, 5))
    assert summary.total_logs == 0
    assert summary.avg_steps == 0
    assert summary.month == "January 2026"
