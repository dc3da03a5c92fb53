from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from confsched.schemas.schedule import Schedule, ScheduleItem
from confsched.services.schedule_store import InMemoryScheduleStore, ScheduleStoreError, SqlScheduleStore


def _schedule(version: int = 1) -> Schedule:
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    return Schedule(
        id="schedule_abc",
        conference_id="C1",
        created_by_admin_id="admin-1",
        created_at=now,
        status="generated",
        version=version,
        last_updated_at=now,
        items=[
            ScheduleItem(
                id="item_session_1_P1",
                schedule_id="schedule_abc",
                session_id="session_1",
                room_id="R1",
                time_slot_id="slot_2026-05-10_09:00_10:00",
                submission_ids=["P1"],
            )
        ],
    )


def test_memory_store_returns_isolated_copies():
    store = InMemoryScheduleStore()
    saved = store.save("C1", _schedule())

    saved.items[0].room_id = "R9"
    loaded = store.get("C1")
    loaded.items[0].room_id = "R8"

    assert store.get("C1").items[0].room_id == "R1"
    assert store.get("C2") is None


def test_memory_store_overwrites_unconditionally():
    store = InMemoryScheduleStore()
    store.save("C1", _schedule(version=5))
    store.save("C1", _schedule(version=2))

    assert store.get("C1").version == 2


def test_sql_store_round_trips_schedule(db_session):
    store = SqlScheduleStore(db_session)
    assert store.get("C1") is None

    store.save("C1", _schedule())
    published_at = datetime(2026, 5, 2, 9, 15, tzinfo=timezone.utc)
    updated = _schedule(version=2).model_copy(
        update={"status": "published", "conference_timezone": "Europe/Rome", "published_at": published_at}
    )
    store.save("C1", updated)

    loaded = SqlScheduleStore(db_session).get("C1")
    assert loaded.version == 2
    assert loaded.status == "published"
    assert loaded.conference_timezone == "Europe/Rome"
    assert loaded.items[0].time_slot_id == "slot_2026-05-10_09:00_10:00"
    assert loaded.items[0].submission_ids == ["P1"]
    assert loaded.published_at == published_at
    assert loaded.published_at.utcoffset() == timedelta(0)
    assert loaded.last_updated_at.tzinfo is not None


def test_sql_store_surfaces_commit_failures(db_session, monkeypatch):
    store = SqlScheduleStore(db_session)

    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("disk full"))

    monkeypatch.setattr(db_session, "commit", broken_commit)

    with pytest.raises(ScheduleStoreError):
        store.save("C1", _schedule())

    monkeypatch.undo()
    assert store.get("C1") is None
