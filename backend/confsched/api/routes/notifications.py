from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from confsched.api.deps import get_db, get_notifier, require_roles
from confsched.models.notification import NotificationStatus
from confsched.models.user import User, UserRole
from confsched.schemas.notification import NotificationRecordOut, NotificationRetryOut
from confsched.services.audit import log_activity
from confsched.services.notifications import FinalScheduleNotifier

router = APIRouter()


@router.get("/conferences/{conference_id}/notifications", response_model=list[NotificationRecordOut])
def list_final_schedule_notifications(
    conference_id: str,
    status: NotificationStatus | None = Query(default=None),
    notifier: FinalScheduleNotifier = Depends(get_notifier),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> list[NotificationRecordOut]:
    return notifier.list_notifications(conference_id, status=status)


@router.post("/notifications/final-schedule/retry", response_model=NotificationRetryOut)
def retry_final_schedule_notifications(
    db: Session = Depends(get_db),
    notifier: FinalScheduleNotifier = Depends(get_notifier),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> NotificationRetryOut:
    outcome = notifier.retry_failed_final_schedule_notifications()
    log_activity(
        db,
        actor_id=current_user.id,
        action="notifications.final_schedule_retry",
        entity_type="schedule_notification",
        details=outcome,
    )
    db.commit()
    return NotificationRetryOut(**outcome)
