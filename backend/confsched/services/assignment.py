from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable
import uuid

from confsched.schemas.schedule import AcceptedSubmission, CapacityUnit, ScheduleItem, SchedulingParameters
from confsched.services.slot_builder import (
    UNSATISFIABLE_CONSTRAINTS,
    UNSATISFIABLE_MESSAGE,
    build_capacity_units,
)


@dataclass(frozen=True)
class AssignmentResult:
    type: str
    schedule_id: str | None = None
    items: list[ScheduleItem] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.type == "success"


def new_schedule_id() -> str:
    return f"schedule_{uuid.uuid4().hex}"


def select_accepted(submissions: Iterable[AcceptedSubmission]) -> list[AcceptedSubmission]:
    accepted = [item for item in submissions if str(item.status or "").strip().lower() == "accepted"]
    # Plain code-point ordering keeps "P10" < "P20" < "P3" on every platform.
    return sorted(accepted, key=lambda item: str(item.id or ""))


def assign(submissions: Iterable[AcceptedSubmission], units: list[CapacityUnit]) -> AssignmentResult:
    ordered = select_accepted(submissions)
    if len(ordered) > len(units):
        return AssignmentResult(type=UNSATISFIABLE_CONSTRAINTS, message=UNSATISFIABLE_MESSAGE)

    schedule_id = new_schedule_id()
    items: list[ScheduleItem] = []
    for index, (submission, unit) in enumerate(zip(ordered, units), start=1):
        session_id = f"session_{index}"
        items.append(
            ScheduleItem(
                id=f"item_{session_id}_{submission.id}",
                schedule_id=schedule_id,
                session_id=session_id,
                room_id=unit.room_id,
                time_slot_id=unit.time_slot_id,
                submission_ids=[submission.id],
            )
        )
    return AssignmentResult(type="success", schedule_id=schedule_id, items=items)


def generate_assignment(
    submissions: Iterable[AcceptedSubmission],
    parameters: SchedulingParameters | None,
) -> AssignmentResult:
    capacity = build_capacity_units(parameters)
    if not capacity.ok:
        return AssignmentResult(type=capacity.type, missing=capacity.missing, message=capacity.message)
    return assign(submissions, capacity.units)
