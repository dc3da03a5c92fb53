from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PublishedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PublishedTimeSlot(PublishedModel):
    start_time: str = Field(default="", alias="startTime")
    end_time: str = Field(default="", alias="endTime")


class PublishedLocation(PublishedModel):
    name: str = ""


class PublishedEntry(PublishedModel):
    id: str
    title: str
    time_slot: PublishedTimeSlot = Field(default_factory=PublishedTimeSlot, alias="timeSlot")
    location: PublishedLocation = Field(default_factory=PublishedLocation)
    day: str = ""
    session: str = ""
    submission_ids: list[str] = Field(default_factory=list, alias="submissionIds")


class PublishedSchedule(PublishedModel):
    id: str
    conference_id: str = Field(alias="conferenceId")
    status: str = "published"
    published_at: datetime | None = Field(default=None, alias="publishedAt")
    timezone: str | None = None
    entries: list[PublishedEntry] = Field(default_factory=list)


class PublishedViewError(PublishedModel):
    message: str
    can_retry: bool = Field(default=False, alias="canRetry")
