from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from confsched.core.config import Settings
from confsched.models.notification import (
    FINAL_SCHEDULE_NOTIFICATION,
    NotificationChannel,
    NotificationStatus,
    ScheduleNotification,
)
from confsched.models.user import User
from confsched.services.audit import AuditLog
from confsched.services.collaborators import SubmissionRoster, normalize_author_ids
from confsched.services.email import EmailTransport

logger = logging.getLogger(__name__)

MISSING_RECIPIENT_EMAIL = "missing_recipient_email"
NOTIFICATION_FAILED = "notification_failed"


def _safe_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc).isoformat()
    return value.isoformat()


@dataclass(frozen=True)
class EnqueueResult:
    notifications_enqueued_count: int
    notifications: list[ScheduleNotification] = field(default_factory=list)


@dataclass(frozen=True)
class DispatchResult:
    type: str
    notification_id: str
    reason: str | None = None


@dataclass(frozen=True)
class DispatchSummary:
    attempted: int = 0
    sent: int = 0
    failed: int = 0


class FinalScheduleNotifier:
    """Per-author fan-out of the final schedule announcement.

    A single failed delivery marks its own record ``failed`` and is reported to
    the audit log; it never aborts the batch or the publish that triggered it.
    """

    def __init__(
        self,
        db: Session,
        *,
        roster: SubmissionRoster,
        transport: EmailTransport,
        audit: AuditLog,
        settings: Settings,
    ) -> None:
        self._db = db
        self._roster = roster
        self._transport = transport
        self._audit = audit
        self._settings = settings

    def enqueue(
        self,
        conference_id: str,
        *,
        published_at: datetime | None,
        conference_timezone: str,
    ) -> EnqueueResult:
        payload = {
            "conferenceId": conference_id,
            "publishedAt": _safe_iso(published_at),
            "timezone": conference_timezone,
        }
        records: list[ScheduleNotification] = []
        for submission in self._roster.list_accepted(conference_id):
            for author_id in normalize_author_ids(submission.author_ids):
                for channel in (NotificationChannel.email, NotificationChannel.in_app):
                    record = ScheduleNotification(
                        conference_id=conference_id,
                        notification_type=FINAL_SCHEDULE_NOTIFICATION,
                        channel=channel,
                        author_id=author_id,
                        paper_id=submission.id,
                        payload=dict(payload),
                        status=NotificationStatus.pending,
                        retry_count=0,
                    )
                    self._db.add(record)
                    records.append(record)
        self._db.commit()
        logger.info("Final schedule notifications enqueued | conference_id=%s | count=%d", conference_id, len(records))
        return EnqueueResult(notifications_enqueued_count=len(records), notifications=records)

    def _render_body(self, record: ScheduleNotification, recipient: User) -> str:
        payload = record.payload or {}
        lines = [
            f"Hello {recipient.name},",
            "",
            f"The final schedule for conference {record.conference_id} has been published.",
            f"Paper: {record.paper_id}",
        ]
        if payload.get("publishedAt"):
            lines.append(f"Published at: {payload['publishedAt']} ({payload.get('timezone') or 'UTC'})")
        return "\n".join(lines)

    def dispatch_email(self, record: ScheduleNotification) -> DispatchResult:
        record.last_attempt_at = datetime.now(timezone.utc)
        recipient = self._db.get(User, record.author_id)
        try:
            if recipient is None or not (recipient.email or "").strip():
                raise LookupError(MISSING_RECIPIENT_EMAIL)
            self._transport.send(
                to=recipient.email.strip(),
                subject=self._settings.notification_email_subject,
                body=self._render_body(record, recipient),
            )
        except Exception as exc:
            reason = str(exc).strip() or NOTIFICATION_FAILED
            record.status = NotificationStatus.failed
            record.retry_count = (record.retry_count or 0) + 1
            record.failure_reason = reason
            self._db.commit()
            return DispatchResult(type="failed", notification_id=record.id, reason=reason)

        record.status = NotificationStatus.sent
        record.sent_at = datetime.now(timezone.utc)
        record.failure_reason = None
        self._db.commit()
        return DispatchResult(type="sent", notification_id=record.id)

    def _dispatch_batch(self, records: list[ScheduleNotification]) -> DispatchSummary:
        attempted = sent = failed = 0
        for record in records:
            if record.channel != NotificationChannel.email:
                continue
            attempted += 1
            result = self.dispatch_email(record)
            if result.type == "sent":
                sent += 1
                continue
            failed += 1
            self._audit.log_notification_failure(
                conference_id=record.conference_id,
                author_id=record.author_id,
                paper_id=record.paper_id,
                reason=result.reason,
            )
        return DispatchSummary(attempted=attempted, sent=sent, failed=failed)

    def dispatch_enqueued(self, conference_id: str, records: list[ScheduleNotification]) -> DispatchSummary:
        summary = self._dispatch_batch(records)
        logger.info(
            "Final schedule notifications dispatched | conference_id=%s | attempted=%d | sent=%d | failed=%d",
            conference_id,
            summary.attempted,
            summary.sent,
            summary.failed,
        )
        return summary

    def retry_failed_final_schedule_notifications(self) -> dict[str, int]:
        query = select(ScheduleNotification).where(
            ScheduleNotification.notification_type == FINAL_SCHEDULE_NOTIFICATION,
            ScheduleNotification.channel == NotificationChannel.email,
            ScheduleNotification.status == NotificationStatus.failed,
        )
        max_attempts = self._settings.notification_max_retry_attempts
        if max_attempts is not None:
            query = query.where(ScheduleNotification.retry_count < max(1, max_attempts))
        records = list(
            self._db.execute(query.order_by(ScheduleNotification.created_at, ScheduleNotification.id)).scalars()
        )
        summary = self._dispatch_batch(records)
        if summary.attempted:
            logger.info(
                "Final schedule notification retry | attempted=%d | failed=%d",
                summary.attempted,
                summary.failed,
            )
        return {"attempted": summary.attempted, "failed": summary.failed}

    def list_notifications(
        self,
        conference_id: str,
        *,
        status: NotificationStatus | None = None,
    ) -> list[ScheduleNotification]:
        query = select(ScheduleNotification).where(ScheduleNotification.conference_id == conference_id)
        if status is not None:
            query = query.where(ScheduleNotification.status == status)
        query = query.order_by(ScheduleNotification.paper_id, ScheduleNotification.author_id, ScheduleNotification.channel)
        return list(self._db.execute(query).scalars())
