from __future__ import annotations

import asyncio
import json
import logging
import threading
import uuid
from collections import defaultdict, deque
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db.models import (
    ChatMessageRecord,
    DailyLogRecord,
    EmergencyProfileRecord,
    SavedReportRecord,
    UserProfileRecord,
)
from schemas.chat import ChatMessage
from schemas.emergency import EmergencyContact, EmergencyProfile
from schemas.health import DailyLogCreate, DailyLogEntry
from schemas.reports import AnalysisResult, SavedReport, SavedReportCreate
from schemas.user import UserProfile
from utils.datetime_utils import sort_key_desc_safe, utcnow_naive

logger = logging.getLogger(__name__)

CONVERSATION_CAPACITY = 50


class StorageFault(Exception):
    """Raised when a persistence operation could not be applied. Nothing was written."""


class RecordOwnershipError(Exception):
    """The record id already belongs to another owner. Nothing was written."""


def _json_list(raw: str | None) -> list:
    if not raw:
        return []
    parsed = json.loads(raw)
    return parsed if isinstance(parsed, list) else []


def prune_messages(messages: Iterable[ChatMessage], capacity: int = CONVERSATION_CAPACITY) -> list[ChatMessage]:
    """Keep the most recent ``capacity`` messages, oldest first."""
    return list(deque(messages, maxlen=capacity))


# --- Row mappers ---

def _report_from_row(row: SavedReportRecord) -> SavedReport:
    return SavedReport(
        id=row.id,
        user_id=row.user_id,
        timestamp=row.timestamp,
        file_name=row.file_name,
        file_type=row.file_type,
        result=AnalysisResult.model_validate(json.loads(row.result_json)),
    )


def _log_from_row(row: DailyLogRecord) -> DailyLogEntry:
    return DailyLogEntry(
        id=row.id,
        user_id=row.user_id,
        date=row.date,
        mood=row.mood,
        stress=row.stress,
        sleep_quality=row.sleep_quality,
        pain=row.pain,
        energy=row.energy,
        notes=row.notes,
        steps=row.steps,
        heart_rate=row.heart_rate,
        sleep_hours=row.sleep_hours,
        calories=row.calories,
    )


def _emergency_from_row(row: EmergencyProfileRecord) -> EmergencyProfile:
    return EmergencyProfile(
        user_id=row.user_id,
        blood_group=row.blood_group or "",
        allergies=_json_list(row.allergies),
        medications=_json_list(row.medications),
        chronic_conditions=_json_list(row.chronic_conditions),
        contacts=[EmergencyContact.model_validate(c) for c in _json_list(row.contacts)],
        doctor_name=row.doctor_name,
        doctor_phone=row.doctor_phone,
    )


def _profile_from_row(row: UserProfileRecord) -> UserProfile:
    return UserProfile(
        id=row.id,
        name=row.name,
        email=row.email,
        image=row.image,
        sex=row.sex or None,
        health_history=_json_list(row.health_history),
        created_at=row.created_at,
    )


class RecordStore:
    """Owner-scoped persistence for profiles, reports, daily logs, emergency cards and chat history.

    Every public method is a coroutine that first waits the configured simulated
    latency and then runs one short unit of work. Any storage failure is rolled
    back and surfaced as ``StorageFault``.
    """

    def __init__(self, session_factory: sessionmaker, latency_ms: int = 0) -> None:
        self._session_factory = session_factory
        self._latency_s = max(int(latency_ms or 0), 0) / 1000.0
        self._owner_locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _owner_lock(self, owner_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._owner_locks[owner_id]

    async def _simulate_latency(self) -> None:
        if self._latency_s:
            await asyncio.sleep(self._latency_s)

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except (SQLAlchemyError, ValueError) as e:
            db.rollback()
            logger.error(f"Record store operation {operation} failed: {e}")
            raise StorageFault(f"{operation} could not be completed") from e
        finally:
            db.close()

    # ------------------------------------------------------------------
    # user profiles
    # ------------------------------------------------------------------
    async def save_user_profile(self, profile: UserProfile) -> UserProfile:
        await self._simulate_latency()
        with self._owner_lock(profile.id), self._unit_of_work("save_user_profile") as db:
            row = db.get(UserProfileRecord, profile.id)
            if row is None:
                row = UserProfileRecord(id=profile.id, created_at=profile.created_at)
                db.add(row)
            row.name = profile.name
            row.email = profile.email
            row.image = profile.image
            row.sex = profile.sex.value if profile.sex else None
            row.health_history = json.dumps(profile.health_history)
        return profile

    async def get_user_profile(self, user_id: str) -> UserProfile | None:
        await self._simulate_latency()
        with self._unit_of_work("get_user_profile") as db:
            row = db.get(UserProfileRecord, user_id)
            return _profile_from_row(row) if row else None

    # ------------------------------------------------------------------
    # reports
    # ------------------------------------------------------------------
    async def upsert_report(self, report: SavedReportCreate) -> SavedReport:
        await self._simulate_latency()
        stored = SavedReport(
            id=report.id or uuid.uuid4().hex,
            user_id=report.user_id,
            timestamp=utcnow_naive(),
            file_name=report.file_name,
            file_type=report.file_type,
            result=report.result,
        )
        if not stored.user_id:
            # Guest reports live only in the caller's hands.
            return stored

        with self._owner_lock(stored.user_id), self._unit_of_work("upsert_report") as db:
            row = db.query(SavedReportRecord).filter(SavedReportRecord.id == stored.id).first()
            if row is None:
                row = SavedReportRecord(id=stored.id)
                db.add(row)
            elif row.user_id != stored.user_id:
                logger.warning(f"Rejected save of report {stored.id} by {stored.user_id}: owned by another user")
                raise RecordOwnershipError(f"Report {stored.id} belongs to another user")
            row.user_id = stored.user_id
            row.timestamp = stored.timestamp
            row.file_name = stored.file_name
            row.file_type = stored.file_type
            row.result_json = stored.result.model_dump_json()
        return stored

    async def list_reports(self, user_id: str) -> list[SavedReport]:
        await self._simulate_latency()
        with self._unit_of_work("list_reports") as db:
            rows = (
                db.query(SavedReportRecord)
                .filter(SavedReportRecord.user_id == user_id)
                .order_by(SavedReportRecord.timestamp.desc(), SavedReportRecord.seq.desc())
                .all()
            )
            return [_report_from_row(row) for row in rows]

    async def delete_report(self, report_id: str, user_id: str | None = None) -> None:
        await self._simulate_latency()
        with self._unit_of_work("delete_report") as db:
            query = db.query(SavedReportRecord).filter(SavedReportRecord.id == report_id)
            if user_id is not None:
                query = query.filter(SavedReportRecord.user_id == user_id)
            query.delete(synchronize_session=False)

    async def delete_all_reports(self, user_id: str) -> None:
        await self._simulate_latency()
        with self._owner_lock(user_id), self._unit_of_work("delete_all_reports") as db:
            db.query(SavedReportRecord).filter(SavedReportRecord.user_id == user_id).delete(
                synchronize_session=False
            )

    # ------------------------------------------------------------------
    # daily logs (append-only)
    # ------------------------------------------------------------------
    async def append_log(self, entry: DailyLogCreate) -> DailyLogEntry:
        if not entry.user_id:
            raise ValueError("Daily logs require an owner id")
        await self._simulate_latency()
        stored = DailyLogEntry(**entry.model_dump(exclude={"user_id"}), user_id=entry.user_id, id=uuid.uuid4().hex)
        with self._unit_of_work("append_log") as db:
            db.add(
                DailyLogRecord(
                    id=stored.id,
                    user_id=stored.user_id,
                    date=stored.date,
                    mood=stored.mood,
                    stress=stored.stress,
                    sleep_quality=stored.sleep_quality,
                    pain=stored.pain,
                    energy=stored.energy,
                    notes=stored.notes,
                    steps=stored.steps,
                    heart_rate=stored.heart_rate,
                    sleep_hours=stored.sleep_hours,
                    calories=stored.calories,
                )
            )
        return stored

    async def list_logs(self, user_id: str) -> list[DailyLogEntry]:
        await self._simulate_latency()
        with self._unit_of_work("list_logs") as db:
            rows = (
                db.query(DailyLogRecord)
                .filter(DailyLogRecord.user_id == user_id)
                .order_by(DailyLogRecord.seq.asc())
                .all()
            )
            logs = [_log_from_row(row) for row in rows]
        return sorted(logs, key=lambda entry: sort_key_desc_safe(entry.date), reverse=True)

    # ------------------------------------------------------------------
    # emergency profile (one per user)
    # ------------------------------------------------------------------
    async def upsert_emergency_profile(self, profile: EmergencyProfile) -> EmergencyProfile:
        await self._simulate_latency()
        with self._owner_lock(profile.user_id), self._unit_of_work("upsert_emergency_profile") as db:
            row = (
                db.query(EmergencyProfileRecord)
                .filter(EmergencyProfileRecord.user_id == profile.user_id)
                .first()
            )
            if row is None:
                row = EmergencyProfileRecord(user_id=profile.user_id)
                db.add(row)
            row.blood_group = profile.blood_group
            row.allergies = json.dumps(profile.allergies)
            row.medications = json.dumps(profile.medications)
            row.chronic_conditions = json.dumps(profile.chronic_conditions)
            row.contacts = json.dumps([c.model_dump() for c in profile.contacts])
            row.doctor_name = profile.doctor_name
            row.doctor_phone = profile.doctor_phone
        return profile

    async def get_emergency_profile(self, user_id: str) -> EmergencyProfile | None:
        await self._simulate_latency()
        with self._unit_of_work("get_emergency_profile") as db:
            row = (
                db.query(EmergencyProfileRecord)
                .filter(EmergencyProfileRecord.user_id == user_id)
                .first()
            )
            return _emergency_from_row(row) if row else None

    # ------------------------------------------------------------------
    # conversation history
    # ------------------------------------------------------------------
    async def save_conversation(self, user_id: str, messages: Iterable[ChatMessage]) -> list[ChatMessage]:
        # No simulated latency: chat persistence stays snappy.
        pruned = prune_messages(messages)
        with self._owner_lock(user_id), self._unit_of_work("save_conversation") as db:
            db.query(ChatMessageRecord).filter(ChatMessageRecord.user_id == user_id).delete(
                synchronize_session=False
            )
            db.add_all(
                ChatMessageRecord(
                    user_id=user_id,
                    position=position,
                    message_id=message.id,
                    role=message.role.value,
                    text=message.text,
                )
                for position, message in enumerate(pruned)
            )
        return pruned

    async def load_conversation(self, user_id: str) -> list[ChatMessage]:
        with self._unit_of_work("load_conversation") as db:
            rows = (
                db.query(ChatMessageRecord)
                .filter(ChatMessageRecord.user_id == user_id)
                .order_by(ChatMessageRecord.position.asc())
                .all()
            )
            return [ChatMessage(id=row.message_id, role=row.role, text=row.text) for row in rows]

    async def clear_conversation(self, user_id: str) -> None:
        with self._owner_lock(user_id), self._unit_of_work("clear_conversation") as db:
            db.query(ChatMessageRecord).filter(ChatMessageRecord.user_id == user_id).delete(
                synchronize_session=False
            )
