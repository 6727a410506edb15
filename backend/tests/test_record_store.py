"""Tests for owner-scoped persistence, ordering, pruning and storage failures."""
from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import services.record_store as record_store_module  # noqa: E402
from db.database import Base  # noqa: E402
from schemas.chat import ChatMessage, ChatRole  # noqa: E402
from schemas.emergency import EmergencyContact, EmergencyProfile  # noqa: E402
from schemas.health import DailyLogCreate  # noqa: E402
from schemas.reports import AnalysisResult, SavedReportCreate  # noqa: E402
from schemas.user import Sex, UserProfile  # noqa: E402
from services.record_store import RecordOwnershipError, RecordStore, StorageFault  # noqa: E402


def _new_store(create_tables: bool = True) -> RecordStore:
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    if create_tables:
        Base.metadata.create_all(bind=engine)
    return RecordStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


def _report(report_id: str | None = None, user_id: str | None = "u1", summary: str = "Normal panel") -> SavedReportCreate:
    return SavedReportCreate(
        id=report_id,
        user_id=user_id,
        file_name="bloodwork.pdf",
        file_type="application/pdf",
        result=AnalysisResult(summary=summary),
    )


def _daily(user_id: str, day: str, **overrides) -> DailyLogCreate:
    values = {"user_id": user_id, "date": day, "mood": 3, "stress": 3, "sleep_quality": 3, "pain": 1, "energy": 3}
    values.update(overrides)
    return DailyLogCreate(**values)


def _message(i: int) -> ChatMessage:
    return ChatMessage(id=f"m{i}", role=ChatRole.user if i % 2 == 0 else ChatRole.assistant, text=f"message {i}")


def test_upsert_with_same_id_replaces_record():
    store = _new_store()

    async def _run():
        await store.upsert_report(_report("r1", summary="first"))
        await store.upsert_report(_report("r1", summary="second"))
        return await store.list_reports("u1")

    reports = asyncio.run(_run())
    assert len(reports) == 1
    assert reports[0].id == "r1"
    assert reports[0].result.summary == "second"


def test_upsert_without_id_generates_one():
    store = _new_store()
    saved = asyncio.run(store.upsert_report(_report()))
    assert saved.id
    assert [r.id for r in asyncio.run(store.list_reports("u1"))] == [saved.id]


def test_guest_reports_are_not_persisted():
    store = _new_store()
    saved = asyncio.run(store.upsert_report(_report("guest-1", user_id=None)))
    assert saved.id == "guest-1"
    assert saved.user_id is None
    assert asyncio.run(store.list_reports("")) == []


def test_reports_listed_newest_first(monkeypatch):
    store = _new_store()
    base = datetime(2026, 10, 1, 8, 0)
    stamps = iter([base, base + timedelta(days=2), base + timedelta(days=1)])
    monkeypatch.setattr(record_store_module, "utcnow_naive", lambda: next(stamps))

    async def _run():
        for report_id in ("a", "b", "c"):
            await store.upsert_report(_report(report_id))
        return await store.list_reports("u1")

    assert [r.id for r in asyncio.run(_run())] == ["b", "c", "a"]


def test_reports_are_owner_scoped():
    store = _new_store()

    async def _run():
        await store.upsert_report(_report("mine", user_id="u1"))
        await store.upsert_report(_report("theirs", user_id="u2"))
        # deleting someone else's id through the owner filter is a no-op
        await store.delete_report("theirs", user_id="u1")
        return await store.list_reports("u1"), await store.list_reports("u2")

    mine, theirs = asyncio.run(_run())
    assert [r.id for r in mine] == ["mine"]
    assert [r.id for r in theirs] == ["theirs"]


def test_delete_all_reports_only_touches_owner():
    store = _new_store()

    async def _run():
        await store.upsert_report(_report("a", user_id="u1"))
        await store.upsert_report(_report("b", user_id="u1"))
        await store.upsert_report(_report("c", user_id="u2"))
        await store.delete_all_reports("u1")
        return await store.list_reports("u1"), await store.list_reports("u2")

    mine, theirs = asyncio.run(_run())
    assert mine == []
    assert [r.id for r in theirs] == ["c"]


def test_logs_are_append_only_and_sorted_by_date_desc():
    store = _new_store()

    async def _run():
        await store.append_log(_daily("u1", "2026-10-10"))
        await store.append_log(_daily("u1", "2026-10-12", notes="later"))
        await store.append_log(_daily("u1", "2026-10-12", notes="same day, second"))
        await store.append_log(_daily("u2", "2026-10-20"))
        return await store.list_logs("u1")

    logs = asyncio.run(_run())
    assert [entry.date for entry in logs] == ["2026-10-12", "2026-10-12", "2026-10-10"]
    assert [entry.notes for entry in logs[:2]] == ["later", "same day, second"]
    assert all(entry.user_id == "u1" for entry in logs)
    assert len({entry.id for entry in logs}) == 3


def test_append_log_requires_owner():
    store = _new_store()
    with pytest.raises(ValueError):
        asyncio.run(store.append_log(_daily(None, "2026-10-10")))


def test_conversation_keeps_latest_fifty():
    store = _new_store()
    messages = [_message(i) for i in range(51)]

    async def _run():
        saved = await store.save_conversation("u1", messages)
        return saved, await store.load_conversation("u1")

    saved, loaded = asyncio.run(_run())
    assert len(saved) == 50
    assert len(loaded) == 50
    assert loaded[0].id == "m1"
    assert loaded[-1].id == "m50"
    assert [m.id for m in loaded] == [m.id for m in saved]


def test_clear_conversation_is_owner_scoped():
    store = _new_store()

    async def _run():
        await store.save_conversation("u1", [_message(0)])
        await store.save_conversation("u2", [_message(1)])
        await store.clear_conversation("u1")
        return await store.load_conversation("u1"), await store.load_conversation("u2")

    mine, theirs = asyncio.run(_run())
    assert mine == []
    assert [m.id for m in theirs] == ["m1"]


def test_emergency_profile_is_one_per_user():
    store = _new_store()
    first = EmergencyProfile(user_id="u1", blood_group="O+", allergies=["Penicillin"])
    second = EmergencyProfile(
        user_id="u1",
        blood_group="A-",
        contacts=[EmergencyContact(name="Sam", relation="Sibling", phone="555-0100")],
        doctor_name="Dr. Patel",
    )

    async def _run():
        await store.upsert_emergency_profile(first)
        await store.upsert_emergency_profile(second)
        return await store.get_emergency_profile("u1"), await store.get_emergency_profile("u2")

    stored, missing = asyncio.run(_run())
    assert missing is None
    assert stored.blood_group == "A-"
    assert stored.allergies == []
    assert stored.contacts[0].phone == "555-0100"
    assert stored.doctor_name == "Dr. Patel"


def test_user_profile_round_trip():
    store = _new_store()
    profile = UserProfile(
        id="u1",
        name="Ada",
        email="ada@example.com",
        sex=Sex.female,
        health_history=["Asthma"],
        created_at=datetime(2026, 10, 1),
    )

    stored = asyncio.run(store.save_user_profile(profile))
    loaded = asyncio.run(store.get_user_profile("u1"))

    assert stored == profile
    assert loaded.sex == Sex.female
    assert loaded.health_history == ["Asthma"]
    assert asyncio.run(store.get_user_profile("nobody")) is None


def test_storage_failure_surfaces_as_storage_fault():
    store = _new_store(create_tables=False)
    with pytest.raises(StorageFault):
        asyncio.run(store.upsert_report(_report("r1")))
    with pytest.raises(StorageFault):
        asyncio.run(store.list_logs("u1"))


def test_upsert_cannot_take_over_another_owners_report():
    store = _new_store()

    async def _run():
        await store.upsert_report(_report("r1", user_id="alice", summary="alice labs"))
        with pytest.raises(RecordOwnershipError):
            await store.upsert_report(_report("r1", user_id="bob", summary="bob labs"))
        return await store.list_reports("alice"), await store.list_reports("bob")

    alice, bob = asyncio.run(_run())
    assert [r.id for r in alice] == ["r1"]
    assert alice[0].result.summary == "alice labs"
    assert bob == []


def test_reports_with_equal_timestamps_list_latest_insert_first(monkeypatch):
    store = _new_store()
    monkeypatch.setattr(record_store_module, "utcnow_naive", lambda: datetime(2026, 10, 1, 8, 0))

    async def _run():
        for report_id in ("a", "b", "c"):
            await store.upsert_report(_report(report_id))
        return await store.list_reports("u1")

    assert [r.id for r in asyncio.run(_run())] == ["c", "b", "a"]


def _failing_commit(self):
    raise SQLAlchemyError("disk I/O error")


def test_failed_conversation_save_keeps_previous_messages(monkeypatch):
    store = _new_store()
    asyncio.run(store.save_conversation("u1", [_message(i) for i in range(3)]))

    monkeypatch.setattr(Session, "commit", _failing_commit)
    with pytest.raises(StorageFault):
        asyncio.run(store.save_conversation("u1", [_message(9)]))
    monkeypatch.undo()

    stored = asyncio.run(store.load_conversation("u1"))
    assert [m.id for m in stored] == ["m0", "m1", "m2"]


def test_failed_report_upsert_keeps_previous_version(monkeypatch):
    store = _new_store()
    asyncio.run(store.upsert_report(_report("r1", summary="first")))

    monkeypatch.setattr(Session, "commit", _failing_commit)
    with pytest.raises(StorageFault):
        asyncio.run(store.upsert_report(_report("r1", summary="second")))
    monkeypatch.undo()

    listed = asyncio.run(store.list_reports("u1"))
    assert [r.result.summary for r in listed] == ["first"]
