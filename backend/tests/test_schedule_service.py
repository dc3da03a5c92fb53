from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import threading

import pytest

from confsched.schemas.schedule import (
    AcceptedSubmission,
    DailyTimeWindow,
    ScheduleItemUpdate,
    SchedulingParameters,
)
from confsched.services.locks import KeyedLock
from confsched.services.schedule_service import ScheduleService
from confsched.services.schedule_store import InMemoryScheduleStore, ScheduleStoreError


class StaticRoster:
    def __init__(self, submissions: list[AcceptedSubmission]):
        self.submissions = submissions

    def list_accepted(self, conference_id):
        return list(self.submissions)


class StaticParameters:
    def __init__(self, parameters: SchedulingParameters | None):
        self.parameters = parameters

    def get_parameters(self, conference_id):
        return self.parameters


class FlakyStore(InMemoryScheduleStore):
    def __init__(self):
        super().__init__()
        self.fail_saves = False
        self.fail_reads = False

    def get(self, conference_id):
        if self.fail_reads:
            raise ScheduleStoreError("read failed")
        return super().get(conference_id)

    def save(self, conference_id, schedule):
        if self.fail_saves:
            raise ScheduleStoreError("write failed")
        return super().save(conference_id, schedule)


def _parameters(rooms=("R1", "R2"), dates=("2026-05-10",), end="13:00") -> SchedulingParameters:
    return SchedulingParameters(
        conference_id="C1",
        conference_dates=list(dates),
        session_length_minutes=60,
        daily_time_window=DailyTimeWindow(start="09:00", end=end),
        available_room_ids=list(rooms),
    )


def _submissions(*ids: str) -> list[AcceptedSubmission]:
    return [AcceptedSubmission(id=item, status="accepted", author_ids=[f"A-{item}"]) for item in ids]


def _service(store=None, submissions=None, parameters="default") -> ScheduleService:
    return ScheduleService(
        store=store if store is not None else InMemoryScheduleStore(),
        roster=StaticRoster(submissions if submissions is not None else _submissions("P1", "P2", "P3")),
        parameters_source=StaticParameters(_parameters() if parameters == "default" else parameters),
        locks=KeyedLock(),
    )


def test_three_papers_fill_the_first_three_units():
    service = _service()

    result = service.generate("C1", created_by_admin_id="admin-1")

    assert result.type == "success"
    schedule = result.schedule
    assert schedule.status == "generated"
    assert schedule.version == 1
    assert [(item.submission_ids[0], item.room_id, item.time_slot_id) for item in schedule.items] == [
        ("P1", "R1", "slot_2026-05-10_09:00_10:00"),
        ("P2", "R2", "slot_2026-05-10_09:00_10:00"),
        ("P3", "R1", "slot_2026-05-10_10:00_11:00"),
    ]


def test_generate_requires_confirmation_to_replace():
    store = InMemoryScheduleStore()
    service = _service(store=store)
    first = service.generate("C1").schedule

    blocked = service.generate("C1", confirm_replace=False)
    assert blocked.type == "confirm_replace_required"
    assert store.get("C1").id == first.id

    replaced = service.generate("C1", confirm_replace=True)
    assert replaced.type == "success"
    assert replaced.schedule.id != first.id
    assert replaced.schedule.version == first.version + 1


def test_generation_failures_leave_store_untouched():
    store = InMemoryScheduleStore()
    _service(store=store).generate("C1")
    before = store.get("C1")

    missing = _service(store=store, parameters=None).generate("C1", confirm_replace=True)
    crowded = _service(store=store, submissions=_submissions(*[f"P{n}" for n in range(20)])).generate(
        "C1", confirm_replace=True
    )

    assert missing.type == "missing_parameters"
    assert missing.missing == ["conferenceDates", "sessionLengthMinutes", "dailyTimeWindow", "availableRoomIds"]
    assert crowded.type == "unsatisfiable_constraints"
    assert store.get("C1") == before


def test_save_failure_is_reported_and_prior_schedule_kept():
    store = FlakyStore()
    service = _service(store=store)
    original = service.generate("C1").schedule

    store.fail_saves = True
    result = service.generate("C1", confirm_replace=True)

    assert result.type == "save_failed"
    store.fail_saves = False
    assert store.get("C1").id == original.id


def test_get_schedule_and_item_lookups():
    service = _service()
    assert service.get_schedule("C1").type == "not_found"
    assert service.get_item("C1", "item_session_1_P1").type == "SCHEDULE_NOT_FOUND"

    service.generate("C1")

    assert service.get_schedule("C1").type == "success"
    found = service.get_item("C1", "item_session_1_P1")
    assert found.type == "success"
    assert found.version == 1
    assert service.get_item("C1", "missing").type == "ITEM_NOT_FOUND"


def test_update_item_moves_only_the_target_and_bumps_version():
    store = InMemoryScheduleStore()
    service = _service(store=store)
    schedule = service.generate("C1").schedule

    result = service.update_item(
        "C1",
        "item_session_1_P1",
        ScheduleItemUpdate(room_id="R2", time_slot_id="slot_2026-05-10_11:00_12:00", version=schedule.version),
    )

    assert result.type == "success"
    assert result.item.room_id == "R2"
    assert result.item.time_slot_id == "slot_2026-05-10_11:00_12:00"
    assert result.schedule.version == 2
    assert result.schedule.last_updated_at >= schedule.last_updated_at

    persisted = store.get("C1")
    assert persisted == result.schedule
    assert persisted.items[1:] == schedule.items[1:]


def test_stale_token_is_rejected_without_mutation():
    store = InMemoryScheduleStore()
    service = _service(store=store)
    schedule = service.generate("C1").schedule
    service.update_item("C1", "item_session_3_P3", ScheduleItemUpdate(room_id="R2", version=1))
    before = store.get("C1")

    result = service.update_item("C1", "item_session_1_P1", ScheduleItemUpdate(room_id="R1", version=schedule.version))

    assert result.type == "STALE_EDIT"
    assert result.error.to_payload() == {
        "errorCode": "STALE_EDIT",
        "summary": "Schedule changed since it was loaded.",
        "affectedItemId": "item_session_1_P1",
        "recommendedAction": "Refresh and retry the edit.",
    }
    assert store.get("C1") == before


def test_missing_token_counts_as_stale():
    service = _service()
    service.generate("C1")

    result = service.update_item("C1", "item_session_1_P1", ScheduleItemUpdate(room_id="R2"))

    assert result.type == "STALE_EDIT"


def test_boolean_token_counts_as_stale():
    service = _service()
    service.generate("C1")

    update = ScheduleItemUpdate.model_validate({"roomId": "R2", "version": True})
    assert update.version is None

    result = service.update_item("C1", "item_session_1_P1", update)

    assert result.type == "STALE_EDIT"
    assert service.get_schedule("C1").schedule.version == 1


def test_last_updated_at_alias_carries_the_token():
    service = _service()
    service.generate("C1")

    update = ScheduleItemUpdate.model_validate({"roomId": "R2", "timeSlotId": "slot_2026-05-10_12:00_13:00", "lastUpdatedAt": "1"})
    result = service.update_item("C1", "item_session_1_P1", update)

    assert result.type == "success"


def test_occupied_room_and_slot_is_a_conflict():
    store = InMemoryScheduleStore()
    service = _service(store=store)
    service.generate("C1")
    before = store.get("C1")

    result = service.update_item(
        "C1",
        "item_session_3_P3",
        ScheduleItemUpdate(room_id="R1", time_slot_id="slot_2026-05-10_09:00_10:00", version=1),
    )

    assert result.type == "CONFLICT"
    assert result.error.conflicts == ["item_session_1_P1"]
    assert result.error.to_payload()["conflicts"] == ["item_session_1_P1"]
    assert store.get("C1") == before


def test_checks_run_in_documented_order():
    service = _service()
    assert service.update_item("C1", "x", ScheduleItemUpdate(version=1)).type == "SCHEDULE_NOT_FOUND"

    service.generate("C1")
    assert service.update_item("C1", "x", ScheduleItemUpdate(version=99)).type == "ITEM_NOT_FOUND"

    unsupported = ScheduleItemUpdate.model_validate({"version": 99, "submissionIds": ["P9"]})
    assert service.update_item("C1", "item_session_1_P1", unsupported).type == "INVALID_UPDATE"

    # Stale wins over conflict.
    clash = ScheduleItemUpdate(room_id="R2", time_slot_id="slot_2026-05-10_09:00_10:00", version=99)
    assert service.update_item("C1", "item_session_1_P1", clash).type == "STALE_EDIT"


def test_token_from_replaced_schedule_is_stale():
    service = _service()
    old = service.generate("C1").schedule
    service.generate("C1", confirm_replace=True)

    result = service.update_item("C1", "item_session_1_P1", ScheduleItemUpdate(room_id="R2", version=old.version))

    assert result.type == "STALE_EDIT"


def test_edit_save_failure_writes_nothing():
    store = FlakyStore()
    service = _service(store=store)
    service.generate("C1")
    before = store.get("C1")

    store.fail_saves = True
    result = service.update_item("C1", "item_session_1_P1", ScheduleItemUpdate(room_id="R2", version=1))
    store.fail_saves = False

    assert result.type == "SAVE_FAILED"
    assert result.error.error_code == "SAVE_FAILED"
    assert store.get("C1") == before


def test_concurrent_edits_with_the_same_token_admit_one_winner():
    store = InMemoryScheduleStore()
    service = _service(store=store, submissions=_submissions(*[f"P{n}" for n in range(1, 9)]))
    service.generate("C1")
    barrier = threading.Barrier(4)

    def attempt(index: int):
        barrier.wait()
        return service.update_item(
            "C1",
            f"item_session_{index}_P{index}",
            ScheduleItemUpdate(session_id=f"session_moved_{index}", version=1),
        )

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(attempt, range(1, 5)))

    assert sorted(result.type for result in results) == ["STALE_EDIT", "STALE_EDIT", "STALE_EDIT", "success"]
    assert store.get("C1").version == 2


def test_keyed_lock_releases_idle_keys():
    locks = KeyedLock()

    with locks.hold("C1"):
        with locks.hold("C2"):
            assert len(locks) == 2
        assert len(locks) == 1
    assert len(locks) == 0

    with pytest.raises(RuntimeError):
        with locks.hold("C3"):
            raise RuntimeError("boom")
    assert len(locks) == 0


def test_publish_is_single_shot():
    service = _service()
    assert service.publish("C1").type == "schedule_not_found"
    service.generate("C1")

    first = service.publish("C1", conference_timezone="Europe/Rome", published_by="admin-1")
    second = service.publish("C1", conference_timezone="UTC", published_by="admin-2")

    assert first.type == "success"
    assert first.schedule.status == "published"
    assert first.schedule.conference_timezone == "Europe/Rome"
    assert first.schedule.published_by == "admin-1"
    assert second.type == "already_published"
    assert second.published_at == first.published_at
    assert service.get_schedule("C1").schedule.published_by == "admin-1"


def test_ensure_published_gate():
    service = _service()
    service.generate("C1")
    assert service.is_schedule_published("C1") is False
    assert service.ensure_published("C1").type == "not_published"

    service.publish("C1")
    assert service.is_schedule_published("C1") is True
    assert service.ensure_published("C1").type == "published"


def test_published_view_states():
    store = FlakyStore()
    service = _service(store=store)

    absent = service.get_published_schedule("C1")
    assert absent.type == "not_published"
    assert absent.error.can_retry is False

    service.generate("C1")
    assert service.get_published_schedule("C1").type == "not_published"

    service.publish("C1", conference_timezone="UTC")
    store.fail_reads = True
    failed = service.get_published_schedule("C1")
    assert failed.type == "retrieval_failed"
    assert failed.error.can_retry is True

    store.fail_reads = False
    published = service.get_published_schedule("C1", day="2026-05-10", session=" session_2 ")
    assert published.type == "success"
    assert published.schedule.timezone == "UTC"
    assert [entry.id for entry in published.schedule.entries] == ["item_session_2_P2"]


def test_submission_presentation_requires_publication():
    service = _service()
    service.generate("C1")
    assert service.get_submission_presentation("C1", "P2").type == "not_published"

    service.publish("C1")
    found = service.get_submission_presentation("C1", "P2")
    assert found.type == "success"
    assert found.entries[0].location.name == "R2"
    assert service.get_submission_presentation("C1", "P99").type == "not_found"
