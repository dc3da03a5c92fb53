from datetime import datetime

from pydantic import BaseModel, Field

from confsched.models.notification import NotificationChannel, NotificationStatus


class NotificationRecordOut(BaseModel):
    id: str
    conference_id: str = Field(serialization_alias="conferenceId")
    notification_type: str = Field(serialization_alias="type")
    channel: NotificationChannel
    author_id: str = Field(serialization_alias="authorId")
    paper_id: str = Field(serialization_alias="paperId")
    payload: dict
    status: NotificationStatus
    retry_count: int = Field(serialization_alias="retryCount")
    failure_reason: str | None = Field(default=None, serialization_alias="failureReason")
    last_attempt_at: datetime | None = Field(default=None, serialization_alias="lastAttemptAt")
    sent_at: datetime | None = Field(default=None, serialization_alias="sentAt")
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")

    model_config = {"from_attributes": True}


class NotificationRetryOut(BaseModel):
    attempted: int
    failed: int
