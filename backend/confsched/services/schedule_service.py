"""Schedule lifecycle: generation, optimistic item edits and one-way publication.

Every operation returns a typed result instead of raising for expected
outcomes. Writes for a conference run under ``schedule_locks`` so the
read-compare-write of an edit cannot interleave with another writer; the
store itself never checks versions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging

from confsched.schemas.published import PublishedEntry, PublishedSchedule, PublishedViewError
from confsched.schemas.schedule import Schedule, ScheduleItem, ScheduleItemUpdate
from confsched.services.assignment import generate_assignment
from confsched.services.collaborators import SchedulingParametersSource, SubmissionRoster
from confsched.services.locks import KeyedLock, schedule_locks
from confsched.services.published_view import project_published_entries
from confsched.services.schedule_store import ScheduleStore, ScheduleStoreError

logger = logging.getLogger(__name__)

STALE_EDIT = "STALE_EDIT"
CONFLICT = "CONFLICT"
ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
SCHEDULE_NOT_FOUND = "SCHEDULE_NOT_FOUND"
INVALID_UPDATE = "INVALID_UPDATE"
SAVE_FAILED = "SAVE_FAILED"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EditError:
    error_code: str
    summary: str
    affected_item_id: str
    recommended_action: str
    conflicts: list[str] = field(default_factory=list)

    def to_payload(self) -> dict:
        payload = {
            "errorCode": self.error_code,
            "summary": self.summary,
            "affectedItemId": self.affected_item_id,
            "recommendedAction": self.recommended_action,
        }
        if self.conflicts:
            payload["conflicts"] = list(self.conflicts)
        return payload


@dataclass(frozen=True)
class GenerateResult:
    type: str
    schedule: Schedule | None = None
    missing: list[str] = field(default_factory=list)
    message: str = ""


@dataclass(frozen=True)
class ScheduleLookup:
    type: str
    schedule: Schedule | None = None


@dataclass(frozen=True)
class ItemLookup:
    type: str
    item: ScheduleItem | None = None
    version: int | None = None


@dataclass(frozen=True)
class EditResult:
    type: str
    item: ScheduleItem | None = None
    schedule: Schedule | None = None
    error: EditError | None = None


@dataclass(frozen=True)
class PublicationCheck:
    type: str
    message: str = ""


@dataclass(frozen=True)
class PublishResult:
    type: str
    schedule: Schedule | None = None
    published_at: datetime | None = None
    message: str = ""


@dataclass(frozen=True)
class PublishedLookup:
    type: str
    schedule: PublishedSchedule | None = None
    error: PublishedViewError | None = None


@dataclass(frozen=True)
class PresentationLookup:
    type: str
    entries: list[PublishedEntry] = field(default_factory=list)
    message: str = ""


def _save_failed(item_id: str) -> EditError:
    return EditError(
        error_code=SAVE_FAILED,
        summary="Schedule save failed due to an internal error.",
        affected_item_id=item_id,
        recommended_action="Retry the save or refresh the schedule.",
    )


def _parse_version_token(value: int | str | None) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def is_stale(token: int | str | None, current_version: int) -> bool:
    expected = _parse_version_token(token)
    return expected is None or expected != current_version


def find_conflicts(schedule: Schedule, item: ScheduleItem, room_id: str, time_slot_id: str) -> list[str]:
    submissions = set(item.submission_ids)
    conflicts: list[str] = []
    for other in schedule.items:
        if other.id == item.id:
            continue
        same_room_and_slot = other.room_id == room_id and other.time_slot_id == time_slot_id
        same_submission_and_slot = other.time_slot_id == time_slot_id and bool(submissions & set(other.submission_ids))
        if same_room_and_slot or same_submission_and_slot:
            conflicts.append(other.id)
    return conflicts


def _is_published(schedule: Schedule | None) -> bool:
    return schedule is not None and str(schedule.status or "").strip().lower() == "published"


class ScheduleService:
    def __init__(
        self,
        *,
        store: ScheduleStore,
        roster: SubmissionRoster,
        parameters_source: SchedulingParametersSource,
        locks: KeyedLock = schedule_locks,
    ) -> None:
        self._store = store
        self._roster = roster
        self._parameters_source = parameters_source
        self._locks = locks

    def generate(
        self,
        conference_id: str,
        *,
        confirm_replace: bool = False,
        created_by_admin_id: str | None = None,
    ) -> GenerateResult:
        with self._locks.hold(conference_id):
            try:
                existing = self._store.get(conference_id)
            except ScheduleStoreError:
                logger.exception("Schedule read failed before generation | conference_id=%s", conference_id)
                return GenerateResult(type="save_failed", message="Schedule could not be saved.")

            if existing is not None and confirm_replace is not True:
                return GenerateResult(
                    type="confirm_replace_required",
                    message="A schedule already exists. Set confirmReplace=true to replace it.",
                )

            submissions = self._roster.list_accepted(conference_id)
            parameters = self._parameters_source.get_parameters(conference_id)
            assignment = generate_assignment(submissions, parameters)
            if not assignment.ok:
                return GenerateResult(type=assignment.type, missing=assignment.missing, message=assignment.message)

            now = utcnow()
            schedule = Schedule(
                id=assignment.schedule_id,
                conference_id=conference_id,
                created_by_admin_id=created_by_admin_id,
                created_at=now,
                status="generated",
                items=assignment.items,
                # Continue the sequence so tokens issued against a replaced schedule stay stale.
                version=(existing.version + 1) if existing is not None else 1,
                last_updated_at=now,
            )
            try:
                saved = self._store.save(conference_id, schedule)
            except ScheduleStoreError:
                logger.exception("Generated schedule could not be saved | conference_id=%s", conference_id)
                return GenerateResult(type="save_failed", message="Schedule could not be saved.")

        logger.info(
            "Schedule generated | conference_id=%s | schedule_id=%s | items=%d | version=%d",
            conference_id,
            saved.id,
            len(saved.items),
            saved.version,
        )
        return GenerateResult(type="success", schedule=saved)

    def get_schedule(self, conference_id: str) -> ScheduleLookup:
        try:
            schedule = self._store.get(conference_id)
        except ScheduleStoreError:
            logger.exception("Schedule read failed | conference_id=%s", conference_id)
            return ScheduleLookup(type="retrieval_failed")
        if schedule is None:
            return ScheduleLookup(type="not_found")
        return ScheduleLookup(type="success", schedule=schedule)

    def get_item(self, conference_id: str, item_id: str) -> ItemLookup:
        current = self.get_schedule(conference_id)
        if current.type != "success":
            return ItemLookup(type=SCHEDULE_NOT_FOUND)
        item = current.schedule.find_item(item_id)
        if item is None:
            return ItemLookup(type=ITEM_NOT_FOUND)
        return ItemLookup(type="success", item=item, version=current.schedule.version)

    def update_item(self, conference_id: str, item_id: str, update: ScheduleItemUpdate) -> EditResult:
        target_id = str(item_id or "").strip()
        with self._locks.hold(conference_id):
            try:
                current = self._store.get(conference_id)
            except ScheduleStoreError:
                logger.exception("Schedule read failed before edit | conference_id=%s", conference_id)
                return EditResult(type=SAVE_FAILED, error=_save_failed(target_id))

            if current is None:
                return EditResult(
                    type=SCHEDULE_NOT_FOUND,
                    error=EditError(
                        error_code=SCHEDULE_NOT_FOUND,
                        summary="No current schedule is available.",
                        affected_item_id=target_id,
                        recommended_action="Generate a schedule before editing.",
                    ),
                )

            item = current.find_item(target_id)
            if item is None:
                return EditResult(
                    type=ITEM_NOT_FOUND,
                    error=EditError(
                        error_code=ITEM_NOT_FOUND,
                        summary="Selected schedule item cannot be edited.",
                        affected_item_id=target_id,
                        recommended_action="Refresh schedule and select another item.",
                    ),
                )

            if update.unsupported_fields:
                return EditResult(
                    type=INVALID_UPDATE,
                    error=EditError(
                        error_code=INVALID_UPDATE,
                        summary="Only session, room, and time slot reassignment is allowed.",
                        affected_item_id=target_id,
                        recommended_action="Remove unsupported fields and retry.",
                    ),
                )

            if is_stale(update.version, current.version):
                return EditResult(
                    type=STALE_EDIT,
                    error=EditError(
                        error_code=STALE_EDIT,
                        summary="Schedule changed since it was loaded.",
                        affected_item_id=target_id,
                        recommended_action="Refresh and retry the edit.",
                    ),
                )

            room_id = update.room_id or item.room_id
            time_slot_id = update.time_slot_id or item.time_slot_id
            conflicts = find_conflicts(current, item, room_id, time_slot_id)
            if conflicts:
                return EditResult(
                    type=CONFLICT,
                    error=EditError(
                        error_code=CONFLICT,
                        summary="Room/time slot is already occupied.",
                        affected_item_id=target_id,
                        recommended_action="Choose a different room or time slot.",
                        conflicts=conflicts,
                    ),
                )

            moved = item.model_copy(
                update={
                    "session_id": update.session_id or item.session_id,
                    "room_id": room_id,
                    "time_slot_id": time_slot_id,
                }
            )
            updated = current.model_copy(
                update={
                    "items": [moved if entry.id == target_id else entry for entry in current.items],
                    "version": current.version + 1,
                    "last_updated_at": utcnow(),
                }
            )
            try:
                saved = self._store.save(conference_id, updated)
            except ScheduleStoreError:
                logger.exception("Schedule edit could not be saved | conference_id=%s | item_id=%s", conference_id, target_id)
                return EditResult(type=SAVE_FAILED, error=_save_failed(target_id))

        return EditResult(type="success", item=saved.find_item(target_id), schedule=saved)

    def is_schedule_published(self, conference_id: str) -> bool:
        return _is_published(self._store.get(conference_id))

    def ensure_published(self, conference_id: str) -> PublicationCheck:
        if not self.is_schedule_published(conference_id):
            return PublicationCheck(type="not_published", message="Final schedule is not published yet.")
        return PublicationCheck(type="published")

    def publish(
        self,
        conference_id: str,
        *,
        conference_timezone: str = "UTC",
        published_by: str | None = None,
    ) -> PublishResult:
        with self._locks.hold(conference_id):
            try:
                existing = self._store.get(conference_id)
            except ScheduleStoreError:
                logger.exception("Schedule read failed before publish | conference_id=%s", conference_id)
                return PublishResult(type="save_failed", message="Schedule could not be published.")

            if existing is None:
                return PublishResult(type="schedule_not_found", message="No final schedule exists to publish.")
            if _is_published(existing):
                return PublishResult(
                    type="already_published",
                    schedule=existing,
                    published_at=existing.published_at,
                    message="Final schedule has already been published.",
                )

            now = utcnow()
            published = existing.model_copy(
                update={
                    "status": "published",
                    "published_at": now,
                    "published_by": str(published_by or "").strip() or None,
                    "conference_timezone": str(conference_timezone or "").strip() or "UTC",
                    "version": existing.version + 1,
                    "last_updated_at": now,
                }
            )
            try:
                saved = self._store.save(conference_id, published)
            except ScheduleStoreError:
                logger.exception("Published schedule could not be saved | conference_id=%s", conference_id)
                return PublishResult(type="save_failed", message="Schedule could not be published.")

        logger.info("Schedule published | conference_id=%s | published_by=%s", conference_id, saved.published_by)
        return PublishResult(type="success", schedule=saved, published_at=saved.published_at)

    def get_published_schedule(
        self,
        conference_id: str,
        *,
        day: str | None = None,
        session: str | None = None,
    ) -> PublishedLookup:
        try:
            schedule = self._store.get(conference_id)
        except ScheduleStoreError:
            logger.exception("Published schedule retrieval failed | conference_id=%s", conference_id)
            return PublishedLookup(
                type="retrieval_failed",
                error=PublishedViewError(
                    message="Schedule is temporarily unavailable. Please try again.",
                    can_retry=True,
                ),
            )

        if not _is_published(schedule):
            return PublishedLookup(
                type="not_published",
                error=PublishedViewError(message="Schedule is not published yet.", can_retry=False),
            )

        return PublishedLookup(
            type="success",
            schedule=PublishedSchedule(
                id=schedule.id,
                conference_id=schedule.conference_id,
                status="published",
                published_at=schedule.published_at,
                timezone=schedule.conference_timezone,
                entries=project_published_entries(schedule, day=day, session=session),
            ),
        )

    def get_submission_presentation(self, conference_id: str, submission_id: str) -> PresentationLookup:
        try:
            gate = self.ensure_published(conference_id)
        except ScheduleStoreError:
            logger.exception("Publication check failed | conference_id=%s", conference_id)
            return PresentationLookup(
                type="retrieval_failed",
                message="Schedule is temporarily unavailable. Please try again.",
            )
        if gate.type != "published":
            return PresentationLookup(type="not_published", message=gate.message)
        published = self.get_published_schedule(conference_id)
        if published.type != "success":
            return PresentationLookup(type=published.type, message=published.error.message)
        target = str(submission_id or "").strip()
        entries = [entry for entry in published.schedule.entries if target in entry.submission_ids]
        if not entries:
            return PresentationLookup(type="not_found", message="Submission is not part of the published schedule.")
        return PresentationLookup(type="success", entries=entries)
