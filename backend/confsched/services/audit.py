from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from confsched.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    *,
    actor_id: str | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
) -> None:
    record = ActivityLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(record)


class AuditLog:
    """Fire-and-forget audit sink: a failed write is logged and never propagated."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def _append(self, *, action: str, entity_id: str | None, details: dict) -> None:
        try:
            log_activity(
                self._db,
                actor_id=None,
                action=action,
                entity_type="conference_schedule",
                entity_id=entity_id,
                details=details,
            )
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            logger.exception("AUDIT WRITE FAILED | action=%s | details=%s", action, details)

    def log_notification_failure(
        self,
        *,
        conference_id: str,
        author_id: str,
        paper_id: str,
        reason: str | None,
    ) -> None:
        details = {
            "conference_id": str(conference_id or "").strip(),
            "author_id": str(author_id or "").strip(),
            "paper_id": str(paper_id or "").strip(),
            "reason": str(reason or "unknown").strip(),
        }
        logger.warning(
            "Final schedule notification failed | conference_id=%s | author_id=%s | paper_id=%s | reason=%s",
            details["conference_id"],
            details["author_id"],
            details["paper_id"],
            details["reason"],
        )
        self._append(action="final_schedule.notification_failed", entity_id=details["conference_id"], details=details)

    def log_retrieval_error(self, *, conference_id: str, reason: str | None) -> None:
        details = {
            "conference_id": str(conference_id or "").strip(),
            "reason": str(reason or "unknown").strip(),
        }
        self._append(action="final_schedule.retrieval_failed", entity_id=details["conference_id"], details=details)
