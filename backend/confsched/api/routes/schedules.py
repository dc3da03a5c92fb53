from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from confsched.api.deps import (
    get_audit_log,
    get_current_user,
    get_db,
    get_notifier,
    get_schedule_service,
    require_roles,
)
from confsched.core.config import Settings, get_settings
from confsched.core.exceptions import ScheduleApiError
from confsched.models.submission import Submission
from confsched.models.user import User, UserRole
from confsched.schemas.published import PublishedEntry, PublishedSchedule
from confsched.schemas.schedule import (
    GenerateScheduleOut,
    GenerateScheduleRequest,
    PublishScheduleOut,
    PublishScheduleRequest,
    ScheduleItemOut,
    ScheduleItemUpdate,
    ScheduleItemUpdateOut,
    ScheduleOut,
)
from confsched.services.audit import AuditLog, log_activity
from confsched.services.collaborators import normalize_author_ids
from confsched.services.notifications import FinalScheduleNotifier
from confsched.services.schedule_service import (
    CONFLICT,
    INVALID_UPDATE,
    ITEM_NOT_FOUND,
    SAVE_FAILED,
    SCHEDULE_NOT_FOUND,
    STALE_EDIT,
    ScheduleService,
)

router = APIRouter()
logger = logging.getLogger(__name__)

EDIT_ERROR_STATUS = {
    SCHEDULE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ITEM_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    INVALID_UPDATE: status.HTTP_400_BAD_REQUEST,
    STALE_EDIT: status.HTTP_409_CONFLICT,
    CONFLICT: status.HTTP_409_CONFLICT,
    SAVE_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

GENERATE_ERROR_STATUS = {
    "missing_parameters": status.HTTP_400_BAD_REQUEST,
    "confirm_replace_required": status.HTTP_409_CONFLICT,
    "unsatisfiable_constraints": status.HTTP_409_CONFLICT,
    "save_failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
}

PUBLISH_ERROR_STATUS = {
    "schedule_not_found": status.HTTP_404_NOT_FOUND,
    "already_published": status.HTTP_409_CONFLICT,
    "save_failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _record_action(db: Session, *, actor: User, action: str, conference_id: str, details: dict) -> None:
    try:
        log_activity(
            db,
            actor_id=actor.id,
            action=action,
            entity_type="conference_schedule",
            entity_id=conference_id,
            details=details,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Activity log write failed | action=%s | conference_id=%s", action, conference_id)


@router.post(
    "/conferences/{conference_id}/schedule/generate",
    response_model=GenerateScheduleOut,
    status_code=status.HTTP_201_CREATED,
)
def generate_schedule(
    conference_id: str,
    payload: GenerateScheduleRequest | None = None,
    db: Session = Depends(get_db),
    service: ScheduleService = Depends(get_schedule_service),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> GenerateScheduleOut:
    payload = payload or GenerateScheduleRequest()
    result = service.generate(
        conference_id,
        confirm_replace=payload.confirm_replace,
        created_by_admin_id=current_user.id,
    )
    if result.type != "success":
        details = {"missing": result.missing} if result.type == "missing_parameters" else None
        message = result.message
        if result.type == "missing_parameters":
            message = f"Missing scheduling parameters: {', '.join(result.missing)}"
        raise ScheduleApiError(
            result.type,
            message or "Schedule generation failed.",
            GENERATE_ERROR_STATUS.get(result.type, status.HTTP_500_INTERNAL_SERVER_ERROR),
            details,
        )

    schedule = result.schedule
    _record_action(
        db,
        actor=current_user,
        action="schedule.generate",
        conference_id=conference_id,
        details={"schedule_id": schedule.id, "items": len(schedule.items), "version": schedule.version},
    )
    return GenerateScheduleOut(
        conference_id=conference_id,
        status=schedule.status,
        version=schedule.version,
        items=schedule.items,
    )


@router.get("/conferences/{conference_id}/schedule", response_model=ScheduleOut)
def get_schedule(
    conference_id: str,
    service: ScheduleService = Depends(get_schedule_service),
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.editor)),
) -> ScheduleOut:
    result = service.get_schedule(conference_id)
    if result.type == "retrieval_failed":
        raise ScheduleApiError(
            "retrieval_failed",
            "Schedule is temporarily unavailable. Please try again.",
            status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    if result.type != "success":
        raise ScheduleApiError("schedule_not_found", "No schedule exists for this conference.", status.HTTP_404_NOT_FOUND)
    return ScheduleOut(conference_id=conference_id, schedule=result.schedule)


@router.get("/conferences/{conference_id}/schedule/items/{item_id}", response_model=ScheduleItemOut)
def get_schedule_item(
    conference_id: str,
    item_id: str,
    service: ScheduleService = Depends(get_schedule_service),
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.editor)),
) -> ScheduleItemOut:
    result = service.get_item(conference_id, item_id)
    if result.type == SCHEDULE_NOT_FOUND:
        raise ScheduleApiError(SCHEDULE_NOT_FOUND, "No current schedule is available.", status.HTTP_404_NOT_FOUND)
    if result.type == ITEM_NOT_FOUND:
        raise ScheduleApiError(ITEM_NOT_FOUND, "Schedule item not found.", status.HTTP_404_NOT_FOUND)
    return ScheduleItemOut(item=result.item, version=result.version)


@router.patch("/conferences/{conference_id}/schedule/items/{item_id}", response_model=ScheduleItemUpdateOut)
def update_schedule_item(
    conference_id: str,
    item_id: str,
    payload: ScheduleItemUpdate,
    db: Session = Depends(get_db),
    service: ScheduleService = Depends(get_schedule_service),
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.editor)),
) -> ScheduleItemUpdateOut:
    result = service.update_item(conference_id, item_id, payload)
    if result.type != "success":
        error = result.error
        details = error.to_payload()
        details.pop("errorCode")
        raise ScheduleApiError(
            error.error_code,
            error.summary,
            EDIT_ERROR_STATUS.get(error.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR),
            details,
        )

    _record_action(
        db,
        actor=current_user,
        action="schedule.item_update",
        conference_id=conference_id,
        details={
            "item_id": result.item.id,
            "room_id": result.item.room_id,
            "time_slot_id": result.item.time_slot_id,
            "version": result.schedule.version,
        },
    )
    return ScheduleItemUpdateOut(item=result.item, schedule=result.schedule)


@router.post("/conferences/{conference_id}/schedule/publish", response_model=PublishScheduleOut)
def publish_schedule(
    conference_id: str,
    payload: PublishScheduleRequest | None = None,
    db: Session = Depends(get_db),
    service: ScheduleService = Depends(get_schedule_service),
    notifier: FinalScheduleNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> PublishScheduleOut:
    payload = payload or PublishScheduleRequest()
    conference_timezone = (payload.timezone or "").strip() or settings.default_conference_timezone
    result = service.publish(conference_id, conference_timezone=conference_timezone, published_by=current_user.id)
    if result.type != "success":
        details = {"publishedAt": result.published_at.isoformat()} if result.published_at else None
        raise ScheduleApiError(
            result.type,
            result.message,
            PUBLISH_ERROR_STATUS.get(result.type, status.HTTP_500_INTERNAL_SERVER_ERROR),
            details,
        )

    enqueued_count = attempted = sent = failed = 0
    try:
        enqueued = notifier.enqueue(
            conference_id,
            published_at=result.published_at,
            conference_timezone=conference_timezone,
        )
        summary = notifier.dispatch_enqueued(conference_id, enqueued.notifications)
        enqueued_count = enqueued.notifications_enqueued_count
        attempted, sent, failed = summary.attempted, summary.sent, summary.failed
    except SQLAlchemyError:
        # The schedule is already published; the retry endpoint picks up from here.
        db.rollback()
        logger.exception("Final schedule fan-out failed | conference_id=%s", conference_id)

    _record_action(
        db,
        actor=current_user,
        action="schedule.publish",
        conference_id=conference_id,
        details={
            "timezone": conference_timezone,
            "notifications_enqueued": enqueued_count,
            "attempted": attempted,
            "sent": sent,
            "failed": failed,
        },
    )
    return PublishScheduleOut(
        published_at=result.published_at,
        notifications_enqueued_count=enqueued_count,
        notifications_attempted=attempted,
        notifications_sent=sent,
        notifications_failed=failed,
    )


@router.get("/conferences/{conference_id}/schedule/published", response_model=PublishedSchedule)
def get_published_schedule(
    conference_id: str,
    day: str | None = Query(default=None, max_length=32),
    session: str | None = Query(default=None, max_length=64),
    service: ScheduleService = Depends(get_schedule_service),
    audit: AuditLog = Depends(get_audit_log),
) -> PublishedSchedule:
    result = service.get_published_schedule(conference_id, day=day, session=session)
    if result.type == "retrieval_failed":
        audit.log_retrieval_error(conference_id=conference_id, reason="schedule_retrieval_failed")
        raise ScheduleApiError(
            "retrieval_failed",
            result.error.message,
            status.HTTP_503_SERVICE_UNAVAILABLE,
            {"canRetry": True},
        )
    if result.type != "success":
        raise ScheduleApiError(
            "not_published",
            result.error.message,
            status.HTTP_404_NOT_FOUND,
            {"canRetry": False},
        )
    return result.schedule


@router.get(
    "/conferences/{conference_id}/schedule/published/submissions/{submission_id}",
    response_model=list[PublishedEntry],
)
def get_submission_presentation(
    conference_id: str,
    submission_id: str,
    db: Session = Depends(get_db),
    service: ScheduleService = Depends(get_schedule_service),
    audit: AuditLog = Depends(get_audit_log),
    current_user: User = Depends(get_current_user),
) -> list[PublishedEntry]:
    submission = db.get(Submission, submission_id)
    if submission is None or submission.conference_id != conference_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    if current_user.role != UserRole.admin and current_user.id not in normalize_author_ids(submission.author_ids):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")

    result = service.get_submission_presentation(conference_id, submission_id)
    if result.type == "not_published":
        raise ScheduleApiError("not_published", result.message, status.HTTP_409_CONFLICT, {"canRetry": False})
    if result.type == "retrieval_failed":
        audit.log_retrieval_error(conference_id=conference_id, reason="schedule_retrieval_failed")
        raise ScheduleApiError("retrieval_failed", result.message, status.HTTP_503_SERVICE_UNAVAILABLE, {"canRetry": True})
    if result.type != "success":
        raise ScheduleApiError("not_found", result.message, status.HTTP_404_NOT_FOUND)
    return result.entries
