"""Expansion of scheduling parameters into bookable (room, time-slot) capacity units.

The nesting order of the output (date, then time of day, then room) is what the
assignment step relies on for reproducible results, so both the dates and the
room identifiers are sorted before expansion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re

from confsched.schemas.schedule import CapacityUnit, SchedulingParameters

TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

MISSING_PARAMETERS = "missing_parameters"
UNSATISFIABLE_CONSTRAINTS = "unsatisfiable_constraints"
UNSATISFIABLE_MESSAGE = "Scheduling constraints prevent generation."


@dataclass(frozen=True)
class CapacityResult:
    type: str
    units: list[CapacityUnit] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.type == "success"


def parse_time_to_minutes(value: str | None) -> int | None:
    match = TIME_PATTERN.match(str(value or "").strip())
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def collect_missing_parameters(parameters: SchedulingParameters | None) -> list[str]:
    if parameters is None:
        return ["conferenceDates", "sessionLengthMinutes", "dailyTimeWindow", "availableRoomIds"]

    missing: list[str] = []
    if not parameters.conference_dates:
        missing.append("conferenceDates")
    if parameters.session_length_minutes is None or parameters.session_length_minutes <= 0:
        missing.append("sessionLengthMinutes")
    window = parameters.daily_time_window
    if window is None or not window.start or not window.end:
        missing.append("dailyTimeWindow")
    if not parameters.available_room_ids:
        missing.append("availableRoomIds")
    return missing


def build_capacity_units(parameters: SchedulingParameters | None) -> CapacityResult:
    missing = collect_missing_parameters(parameters)
    if missing:
        return CapacityResult(type=MISSING_PARAMETERS, missing=missing)

    window = parameters.daily_time_window
    start = parse_time_to_minutes(window.start)
    end = parse_time_to_minutes(window.end)
    if start is None or end is None or end <= start:
        return CapacityResult(type=UNSATISFIABLE_CONSTRAINTS, message=UNSATISFIABLE_MESSAGE)

    session_length = parameters.session_length_minutes
    dates = sorted(parameters.conference_dates)
    room_ids = sorted(parameters.available_room_ids)

    units: list[CapacityUnit] = []
    for day in dates:
        at = start
        while at + session_length <= end:
            slot_start = format_minutes(at)
            slot_end = format_minutes(at + session_length)
            for room_id in room_ids:
                units.append(CapacityUnit(room_id=room_id, date=day, start_time=slot_start, end_time=slot_end))
            at += session_length

    if not units:
        # The window is shorter than a single session.
        return CapacityResult(type=UNSATISFIABLE_CONSTRAINTS, message=UNSATISFIABLE_MESSAGE)
    return CapacityResult(type="success", units=units)
