from __future__ import annotations

from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from confsched.models.scheduling_parameters import SchedulingParametersRecord
from confsched.models.submission import Submission
from confsched.schemas.schedule import AcceptedSubmission, DailyTimeWindow, SchedulingParameters


class SubmissionRoster(Protocol):
    def list_accepted(self, conference_id: str) -> list[AcceptedSubmission]: ...


class SchedulingParametersSource(Protocol):
    def get_parameters(self, conference_id: str) -> SchedulingParameters | None: ...


def normalize_author_ids(author_ids: object) -> list[str]:
    if isinstance(author_ids, str):
        author_ids = [author_ids]
    if not isinstance(author_ids, (list, tuple)):
        return []
    cleaned = [str(item).strip() for item in author_ids if item is not None]
    return list(dict.fromkeys(item for item in cleaned if item))


class SqlSubmissionRoster:
    def __init__(self, db: Session) -> None:
        self._db = db

    def list_accepted(self, conference_id: str) -> list[AcceptedSubmission]:
        rows = self._db.execute(
            select(Submission)
            .where(
                Submission.conference_id == conference_id,
                func.lower(func.trim(Submission.status)) == "accepted",
            )
            .order_by(Submission.id)
        ).scalars()
        return [
            AcceptedSubmission(
                id=row.id,
                status=row.status,
                title=row.title or "",
                author_ids=normalize_author_ids(row.author_ids),
            )
            for row in rows
        ]


class SqlSchedulingParametersSource:
    def __init__(self, db: Session) -> None:
        self._db = db

    def get_parameters(self, conference_id: str) -> SchedulingParameters | None:
        record = self._db.get(SchedulingParametersRecord, conference_id)
        if record is None:
            return None
        return parameters_from_record(record)


def parameters_from_record(record: SchedulingParametersRecord) -> SchedulingParameters:
    window = None
    if record.daily_start_time or record.daily_end_time:
        window = DailyTimeWindow(start=record.daily_start_time or "", end=record.daily_end_time or "")
    return SchedulingParameters(
        conference_id=record.conference_id,
        conference_dates=record.conference_dates or [],
        session_length_minutes=record.session_length_minutes,
        daily_time_window=window,
        available_room_ids=record.available_room_ids or [],
    )
