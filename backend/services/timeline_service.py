from __future__ import annotations

import asyncio

from schemas.health import DailyLogEntry, TimelineEvent, TimelineEventType
from schemas.reports import SavedReport
from services.record_store import RecordStore
from utils.datetime_utils import sort_key_desc_safe, to_iso

SUMMARY_EXCERPT_CHARS = 100


def report_event(report: SavedReport) -> TimelineEvent:
    if report.is_symptom_check:
        event_type = TimelineEventType.symptom_check
        title = "Symptom Check"
    else:
        event_type = TimelineEventType.report
        title = f"Analysis: {report.file_name}"
    return TimelineEvent(
        id=report.id,
        date=to_iso(report.timestamp),
        type=event_type,
        title=title,
        summary=report.result.summary[:SUMMARY_EXCERPT_CHARS] + "...",
        details=report,
    )


def log_event(entry: DailyLogEntry) -> TimelineEvent:
    summary = f"Mood: {entry.mood}/5, Stress: {entry.stress}/5"
    if entry.notes:
        summary += f" - {entry.notes}"
    return TimelineEvent(
        id=entry.id,
        date=entry.date,
        type=TimelineEventType.log,
        title="Daily Health Log",
        summary=summary,
        details=entry,
    )


def merge_timeline(reports: list[SavedReport], logs: list[DailyLogEntry]) -> list[TimelineEvent]:
    """Reports then logs, newest first. The sort is stable, so equal dates keep that order."""
    events = [report_event(r) for r in reports] + [log_event(entry) for entry in logs]
    return sorted(events, key=lambda event: sort_key_desc_safe(event.date), reverse=True)


async def build_timeline(store: RecordStore, user_id: str) -> list[TimelineEvent]:
    reports, logs = await asyncio.gather(
        store.list_reports(user_id),
        store.list_logs(user_id),
    )
    return merge_timeline(reports, logs)
