from datetime import datetime, timezone

from confsched.schemas.published import PublishedEntry, PublishedLocation, PublishedTimeSlot
from confsched.schemas.schedule import Schedule, ScheduleItem
from confsched.services.published_view import (
    apply_published_filters,
    has_complete_entry,
    parse_slot_id,
    project_published_entries,
    to_published_entries,
)


def _item(item_id: str, *, room: str, slot: str, session: str, submissions: list[str]) -> ScheduleItem:
    return ScheduleItem(
        id=item_id,
        schedule_id="schedule_x",
        session_id=session,
        room_id=room,
        time_slot_id=slot,
        submission_ids=submissions,
    )


def _schedule(items: list[ScheduleItem]) -> Schedule:
    now = datetime(2026, 5, 1, tzinfo=timezone.utc)
    return Schedule(
        id="schedule_x",
        conference_id="C1",
        created_at=now,
        last_updated_at=now,
        status="published",
        published_at=now,
        items=items,
    )


def test_parse_slot_id_splits_day_and_times():
    assert parse_slot_id("slot_2026-05-10_09:00_10:00") == {
        "day": "2026-05-10",
        "startTime": "09:00",
        "endTime": "10:00",
    }
    assert parse_slot_id("garbage") == {"day": "", "startTime": "", "endTime": ""}
    assert parse_slot_id(None) == {"day": "", "startTime": "", "endTime": ""}


def test_entries_carry_title_location_and_session():
    entries = to_published_entries(
        _schedule(
            [
                _item("i1", room="R1", slot="slot_2026-05-10_09:00_10:00", session="session_1", submissions=["P1", "P2"]),
                _item("i2", room="R2", slot="slot_2026-05-10_09:00_10:00", session="session_2", submissions=[]),
            ]
        )
    )

    assert entries[0].title == "Session: P1, P2"
    assert entries[0].location.name == "R1"
    assert entries[0].time_slot.start_time == "09:00"
    assert entries[0].day == "2026-05-10"
    assert entries[1].title == "Session"
    assert to_published_entries(None) == []


def test_incomplete_entries_are_excluded_from_projection():
    schedule = _schedule(
        [
            _item("ok", room="R1", slot="slot_2026-05-10_09:00_10:00", session="session_1", submissions=["P1"]),
            _item("no-slot", room="R1", slot="tbd", session="session_2", submissions=["P2"]),
            _item("no-room", room=" ", slot="slot_2026-05-10_10:00_11:00", session="session_3", submissions=["P3"]),
        ]
    )

    assert [entry.id for entry in project_published_entries(schedule)] == ["ok"]
    assert has_complete_entry(None) is False


def test_filters_are_trimmed_case_sensitive_exact_matches():
    entries = [
        PublishedEntry(
            id=f"e{n}",
            title="Session",
            time_slot=PublishedTimeSlot(start_time="09:00", end_time="10:00"),
            location=PublishedLocation(name="R1"),
            day=day,
            session=session,
        )
        for n, (day, session) in enumerate(
            [("2026-05-10", "Keynote"), ("2026-05-11", "Keynote"), ("2026-05-10", "Keynote Extra")]
        )
    ]

    assert [e.id for e in apply_published_filters(entries, day=" 2026-05-10 ")] == ["e0", "e2"]
    assert [e.id for e in apply_published_filters(entries, session=" Keynote ")] == ["e0", "e1"]
    assert [e.id for e in apply_published_filters(entries, day="2026-05-10", session="Keynote")] == ["e0"]
    assert apply_published_filters(entries, session="keynote") == []
    assert apply_published_filters(entries, day="  ") == entries
