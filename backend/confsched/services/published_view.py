from __future__ import annotations

import re

from confsched.schemas.published import PublishedEntry, PublishedLocation, PublishedTimeSlot
from confsched.schemas.schedule import Schedule

SLOT_ID_PATTERN = re.compile(r"^slot_(.+)_(\d{1,2}:\d{2})_(\d{1,2}:\d{2})$")


def parse_slot_id(slot_id: str | None) -> dict[str, str]:
    match = SLOT_ID_PATTERN.match(str(slot_id or "").strip())
    if not match:
        return {"day": "", "startTime": "", "endTime": ""}
    return {"day": match.group(1), "startTime": match.group(2), "endTime": match.group(3)}


def _entry_title(submission_ids: list[str]) -> str:
    cleaned = [item.strip() for item in submission_ids if item and item.strip()]
    if not cleaned:
        return "Session"
    return f"Session: {', '.join(cleaned)}"


def to_published_entries(schedule: Schedule | None) -> list[PublishedEntry]:
    if schedule is None:
        return []
    entries: list[PublishedEntry] = []
    for item in schedule.items:
        slot = parse_slot_id(item.time_slot_id)
        entries.append(
            PublishedEntry(
                id=item.id,
                title=_entry_title(item.submission_ids),
                time_slot=PublishedTimeSlot(start_time=slot["startTime"], end_time=slot["endTime"]),
                location=PublishedLocation(name=item.room_id.strip()),
                day=slot["day"],
                session=item.session_id.strip(),
                submission_ids=list(item.submission_ids),
            )
        )
    return entries


def has_complete_entry(entry: PublishedEntry | None) -> bool:
    if entry is None:
        return False
    return bool(
        entry.time_slot.start_time.strip()
        and entry.time_slot.end_time.strip()
        and entry.location.name.strip()
    )


def _normalize_filter(value: str | None) -> str:
    return str(value or "").strip()


def apply_published_filters(
    entries: list[PublishedEntry],
    *,
    day: str | None = None,
    session: str | None = None,
) -> list[PublishedEntry]:
    wanted_day = _normalize_filter(day)
    wanted_session = _normalize_filter(session)
    filtered: list[PublishedEntry] = []
    for entry in entries:
        if wanted_day and _normalize_filter(entry.day) != wanted_day:
            continue
        if wanted_session and _normalize_filter(entry.session) != wanted_session:
            continue
        filtered.append(entry)
    return filtered


def project_published_entries(
    schedule: Schedule,
    *,
    day: str | None = None,
    session: str | None = None,
) -> list[PublishedEntry]:
    complete = [entry for entry in to_published_entries(schedule) if has_complete_entry(entry)]
    return apply_published_filters(complete, day=day, session=session)
