from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from confsched.models.schedule import ConferenceScheduleRecord
from confsched.schemas.schedule import Schedule, ScheduleItem

logger = logging.getLogger(__name__)


class ScheduleStoreError(RuntimeError):
    pass


class ScheduleStore(Protocol):
    """conference id -> schedule. Writes are unconditional; callers own version checks."""

    def get(self, conference_id: str) -> Schedule | None: ...

    def save(self, conference_id: str, schedule: Schedule) -> Schedule: ...


class InMemoryScheduleStore:
    def __init__(self) -> None:
        self._schedules: dict[str, Schedule] = {}
        self._lock = Lock()

    def get(self, conference_id: str) -> Schedule | None:
        with self._lock:
            schedule = self._schedules.get(conference_id)
            return schedule.model_copy(deep=True) if schedule is not None else None

    def save(self, conference_id: str, schedule: Schedule) -> Schedule:
        stored = schedule.model_copy(deep=True)
        with self._lock:
            self._schedules[conference_id] = stored
        return stored.model_copy(deep=True)

    def clear(self) -> None:
        with self._lock:
            self._schedules.clear()


class SqlScheduleStore:
    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, conference_id: str) -> Schedule | None:
        try:
            record = self._db.get(ConferenceScheduleRecord, conference_id)
        except SQLAlchemyError as exc:
            raise ScheduleStoreError("Schedule could not be loaded") from exc
        if record is None:
            return None
        return _record_to_schedule(record)

    def save(self, conference_id: str, schedule: Schedule) -> Schedule:
        try:
            record = self._db.get(ConferenceScheduleRecord, conference_id)
            if record is None:
                record = ConferenceScheduleRecord(conference_id=conference_id)
                self._db.add(record)
            record.schedule_id = schedule.id
            record.created_by_admin_id = schedule.created_by_admin_id
            record.created_at = schedule.created_at
            record.status = schedule.status
            record.version = schedule.version
            record.last_updated_at = schedule.last_updated_at
            record.published_at = schedule.published_at
            record.published_by = schedule.published_by
            record.conference_timezone = schedule.conference_timezone
            record.items = [item.model_dump(by_alias=True) for item in schedule.items]
            self._db.commit()
            self._db.refresh(record)
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise ScheduleStoreError("Schedule could not be saved") from exc
        return _record_to_schedule(record)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive values; they were written as UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _record_to_schedule(record: ConferenceScheduleRecord) -> Schedule:
    return Schedule(
        id=record.schedule_id,
        conference_id=record.conference_id,
        created_by_admin_id=record.created_by_admin_id,
        created_at=_as_utc(record.created_at),
        status=record.status,
        items=[ScheduleItem.model_validate(item) for item in record.items or []],
        version=record.version,
        last_updated_at=_as_utc(record.last_updated_at),
        published_at=_as_utc(record.published_at),
        published_by=record.published_by,
        conference_timezone=record.conference_timezone,
    )


memory_schedule_store = InMemoryScheduleStore()
