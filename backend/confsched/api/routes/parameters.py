from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from confsched.api.deps import get_db, require_roles
from confsched.models.scheduling_parameters import SchedulingParametersRecord
from confsched.models.user import User, UserRole
from confsched.schemas.schedule import SchedulingParameters, SchedulingParametersIn
from confsched.services.audit import log_activity
from confsched.services.collaborators import parameters_from_record

router = APIRouter()


@router.get("/conferences/{conference_id}/scheduling-parameters", response_model=SchedulingParameters)
def get_scheduling_parameters(
    conference_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> SchedulingParameters:
    record = db.get(SchedulingParametersRecord, conference_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scheduling parameters not found")
    return parameters_from_record(record)


@router.put("/conferences/{conference_id}/scheduling-parameters", response_model=SchedulingParameters)
def put_scheduling_parameters(
    conference_id: str,
    payload: SchedulingParametersIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> SchedulingParameters:
    record = db.get(SchedulingParametersRecord, conference_id)
    if record is None:
        record = SchedulingParametersRecord(conference_id=conference_id)
        db.add(record)

    # Stored as given; gaps are reported by the generator, not rejected here.
    window = payload.daily_time_window
    record.conference_dates = [item.strip() for item in payload.conference_dates if item and item.strip()]
    record.session_length_minutes = payload.session_length_minutes
    record.daily_start_time = (window.start or None) if window is not None else None
    record.daily_end_time = (window.end or None) if window is not None else None
    record.available_room_ids = [item.strip() for item in payload.available_room_ids if item and item.strip()]
    record.updated_by_id = current_user.id

    log_activity(
        db,
        actor_id=current_user.id,
        action="scheduling_parameters.update",
        entity_type="scheduling_parameters",
        entity_id=conference_id,
        details={
            "conference_dates": record.conference_dates,
            "session_length_minutes": record.session_length_minutes,
            "room_count": len(record.available_room_ids),
        },
    )
    db.commit()
    db.refresh(record)
    return parameters_from_record(record)
