from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

ScheduleStatus = Literal["generated", "published"]


class ScheduleModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DailyTimeWindow(ScheduleModel):
    start: str = Field(default="", max_length=16)
    end: str = Field(default="", max_length=16)

    @field_validator("start", "end", mode="before")
    @classmethod
    def strip_time(cls, value: object) -> str:
        return "" if value is None else str(value).strip()


class SchedulingParameters(ScheduleModel):
    """Inputs to one generation run; deliberately lenient so gaps can be reported field by field."""

    conference_id: str = Field(default="", alias="conferenceId")
    conference_dates: list[str] = Field(default_factory=list, alias="conferenceDates")
    session_length_minutes: int | None = Field(default=None, alias="sessionLengthMinutes")
    daily_time_window: DailyTimeWindow | None = Field(default=None, alias="dailyTimeWindow")
    available_room_ids: list[str] = Field(default_factory=list, alias="availableRoomIds")

    @field_validator("conference_dates", "available_room_ids", mode="before")
    @classmethod
    def clean_identifiers(cls, value: object) -> list[str]:
        if not isinstance(value, (list, tuple)):
            return []
        cleaned = [str(item).strip() for item in value if item is not None]
        return [item for item in cleaned if item]


class AcceptedSubmission(ScheduleModel):
    id: str
    status: str = ""
    title: str = ""
    author_ids: list[str] = Field(default_factory=list, alias="authorIds")


class CapacityUnit(ScheduleModel):
    room_id: str = Field(alias="roomId")
    date: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")

    @property
    def time_slot_id(self) -> str:
        return f"slot_{self.date}_{self.start_time}_{self.end_time}"


class ScheduleItem(ScheduleModel):
    id: str
    schedule_id: str = Field(alias="scheduleId")
    session_id: str = Field(alias="sessionId")
    room_id: str = Field(alias="roomId")
    time_slot_id: str = Field(alias="timeSlotId")
    submission_ids: list[str] = Field(default_factory=list, alias="submissionIds")


class Schedule(ScheduleModel):
    id: str
    conference_id: str = Field(alias="conferenceId")
    created_by_admin_id: str | None = Field(default=None, alias="createdByAdminId")
    created_at: datetime = Field(alias="createdAt")
    status: ScheduleStatus = "generated"
    items: list[ScheduleItem] = Field(default_factory=list)
    version: int = 1
    last_updated_at: datetime = Field(alias="lastUpdatedAt")
    published_at: datetime | None = Field(default=None, alias="publishedAt")
    published_by: str | None = Field(default=None, alias="publishedBy")
    conference_timezone: str | None = Field(default=None, alias="conferenceTimezone")

    def find_item(self, item_id: str) -> ScheduleItem | None:
        target = str(item_id or "").strip()
        for item in self.items:
            if item.id == target:
                return item
        return None


class ScheduleItemUpdate(ScheduleModel):
    """Reassignment request. Unknown keys are kept so the service can reject them explicitly."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    session_id: str | None = Field(default=None, alias="sessionId")
    room_id: str | None = Field(default=None, alias="roomId")
    time_slot_id: str | None = Field(default=None, alias="timeSlotId")
    version: int | str | None = Field(
        default=None,
        validation_alias=AliasChoices("version", "lastUpdatedAt"),
    )

    @field_validator("session_id", "room_id", "time_slot_id", mode="before")
    @classmethod
    def strip_reference(cls, value: object) -> str | None:
        if value is None:
            return None
        stripped = str(value).strip()
        return stripped or None

    @field_validator("version", mode="before")
    @classmethod
    def discard_boolean_token(cls, value: object) -> object:
        # Booleans would otherwise coerce to 0/1 and match a real version.
        if isinstance(value, bool):
            return None
        return value

    @property
    def unsupported_fields(self) -> list[str]:
        return sorted((self.model_extra or {}).keys())


class GenerateScheduleRequest(ScheduleModel):
    confirm_replace: bool = Field(default=False, alias="confirmReplace")


class PublishScheduleRequest(ScheduleModel):
    timezone: str | None = Field(default=None, max_length=64)


class SchedulingParametersIn(ScheduleModel):
    conference_dates: list[str] = Field(default_factory=list, alias="conferenceDates", max_length=60)
    session_length_minutes: int | None = Field(default=None, alias="sessionLengthMinutes", ge=1, le=24 * 60)
    daily_time_window: DailyTimeWindow | None = Field(default=None, alias="dailyTimeWindow")
    available_room_ids: list[str] = Field(default_factory=list, alias="availableRoomIds", max_length=500)


class ScheduleOut(ScheduleModel):
    conference_id: str = Field(alias="conferenceId")
    schedule: Schedule


class GenerateScheduleOut(ScheduleModel):
    conference_id: str = Field(alias="conferenceId")
    status: ScheduleStatus
    version: int
    items: list[ScheduleItem]


class ScheduleItemOut(ScheduleModel):
    item: ScheduleItem
    version: int


class ScheduleItemUpdateOut(ScheduleModel):
    item: ScheduleItem
    schedule: Schedule
    message: str = "Schedule updated successfully."


class PublishScheduleOut(ScheduleModel):
    published_at: datetime = Field(alias="publishedAt")
    notifications_enqueued_count: int = Field(alias="notificationsEnqueuedCount")
    notifications_attempted: int = Field(alias="notificationsAttempted")
    notifications_sent: int = Field(alias="notificationsSent")
    notifications_failed: int = Field(alias="notificationsFailed")
