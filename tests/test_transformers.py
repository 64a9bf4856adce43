"""
Tests for backend <-> appointment mapping.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from schedule_draft.application.dto.booking import BackendCalendarEvent
from schedule_draft.application.exceptions import InvalidAppointmentError, InvalidEventDataError
from schedule_draft.application.utils.resource_directory import build_resource_directory
from schedule_draft.application.utils.transformers import (
    appointment_to_booking_request,
    appointment_to_calendar_event,
    appointment_to_update_request,
    backend_to_appointment,
    calendar_date_range,
    to_utc_iso,
    update_appointment,
    validate_time_range,
    with_primary_resources,
)
from schedule_draft.domain.entities.appointment import Appointment, ResourceRef

from helpers import make_event


def test_backend_to_appointment_takes_first_entries_and_keeps_offsets():
    event = make_event(5)
    event.workers.append(event.workers[0].model_copy(update={"id": 9, "name": "Backup"}))

    appt = backend_to_appointment(event)

    assert appt.id == "5"
    assert (appt.client_name, appt.service, appt.provider, appt.room) == ("Alex", "Mani", "Elsa", "Room #1")
    assert (appt.client_id, appt.service_id, appt.provider_id, appt.room_id) == (7, 1, 5, 1)
    assert appt.start_time == "2025-10-02T06:00:00-02:00"
    assert appt.end_time == "2025-10-02T07:00:00-02:00"
    assert appt.provider_locked is False
    assert [w.id for w in appt.workers] == [5, 9]
    assert appt.is_multi_resource is True


def test_backend_to_appointment_with_missing_resources():
    event = BackendCalendarEvent.model_validate(
        {"id": 12, "starting": "2025-10-02T06:00:00Z", "ending": "2025-10-02T07:00:00Z"}
    )

    appt = backend_to_appointment(event)

    assert (appt.client_name, appt.service, appt.provider, appt.room) == ("", "", "", "")
    assert appt.client_id is None and appt.room_id is None
    assert appt.conflicts == ()


def test_backend_to_appointment_passes_conflicts_through():
    event = make_event(
        5,
        conflicts=[{"evaluationCriteria": "ResourceAvailableForErrand", "results": [{"bookingId": 5, "workers": [5]}]}],
    )

    appt = backend_to_appointment(event)

    assert appt.conflicts[0].evaluation_criteria == "ResourceAvailableForErrand"
    assert appt.conflicts[0].results[0].workers == (5,)


def test_booking_request_omits_unresolved_resources():
    appt = Appointment(
        id="",
        client_name="Alex",
        service="Mani",
        start_time="2025-10-02T06:00:00-02:00",
        end_time="2025-10-02T07:00:00-02:00",
        client_id=7,
    )

    payload = appointment_to_booking_request(appt, calendar_id=2).to_payload()

    assert payload["calendarId"] == 2
    assert payload["name"] == "Alex - Mani"
    assert payload["clients"] == [{"id": 7, "IsLocked": False}]
    assert payload["locations"] == []
    assert payload["workers"] == []
    assert payload["servicesIds"] == []
    assert payload["starting"] == "2025-10-02T08:00:00.000Z"
    assert payload["ending"] == "2025-10-02T09:00:00.000Z"
    assert "id" not in payload


def test_update_request_requires_persisted_id():
    appt = backend_to_appointment(make_event(5))

    payload = appointment_to_update_request(appt).to_payload()
    assert payload["id"] == 5
    assert payload["locations"] == [{"id": 1, "IsLocked": False}]

    with pytest.raises(InvalidAppointmentError):
        appointment_to_update_request(appt.with_changes(id="draft-1700000000000"))


def test_round_trip_preserves_primary_ids_and_names():
    original = backend_to_appointment(make_event(5))
    directory = build_resource_directory([original])

    payload = appointment_to_update_request(original).to_payload()
    echoed = BackendCalendarEvent.model_validate(
        {
            "id": payload["id"],
            "starting": payload["starting"],
            "ending": payload["ending"],
            "clients": [{"id": c["id"], "name": original.client_name} for c in payload["clients"]],
            "services": [{"id": s, "name": original.service} for s in payload["servicesIds"]],
            "workers": [{"id": w["id"], "name": directory.worker_name(w["id"])} for w in payload["workers"]],
            "locations": [{"id": loc["id"], "name": directory.location_name(loc["id"])} for loc in payload["locations"]],
        }
    )

    again = backend_to_appointment(echoed)

    assert (again.client_id, again.service_id, again.provider_id, again.room_id) == (7, 1, 5, 1)
    assert (again.client_name, again.service, again.provider, again.room) == ("Alex", "Mani", "Elsa", "Room #1")


def test_to_utc_iso_rejects_garbage():
    with pytest.raises(InvalidEventDataError):
        to_utc_iso("not a date")
    with pytest.raises(InvalidEventDataError):
        to_utc_iso("")


def test_validate_time_range_requires_start_before_end():
    validate_time_range("2025-10-02T06:00:00-02:00", "2025-10-02T07:00:00-02:00")
    with pytest.raises(InvalidEventDataError):
        validate_time_range("2025-10-02T07:00:00-02:00", "2025-10-02T06:00:00-02:00")
    # Same instant expressed in two offsets
    with pytest.raises(InvalidEventDataError):
        validate_time_range("2025-10-02T08:00:00Z", "2025-10-02T06:00:00-02:00")


def test_update_appointment_patches_one_entry_in_place():
    a = backend_to_appointment(make_event(1))
    b = backend_to_appointment(make_event(2))

    patched = update_appointment([a, b], "2", room="Room #2")

    assert [p.id for p in patched] == ["1", "2"]
    assert patched[0] is a
    assert patched[1].room == "Room #2"
    assert update_appointment([a], "missing", room="x") == [a]


def test_with_primary_resources_promotes_new_room():
    appt = Appointment(
        id="5",
        room="Room #2",
        room_id=2,
        locations=(ResourceRef(1, "Room #1"), ResourceRef(3, "Annex")),
    )

    synced = with_primary_resources(appt)

    assert [loc.id for loc in synced.locations] == [2, 3]
    assert synced.locations[0].name == "Room #2"


def test_with_primary_resources_clears_list_when_primary_removed():
    appt = Appointment(
        id="5",
        room="",
        room_id=None,
        provider="Elsa",
        provider_id=5,
        locations=(ResourceRef(1, "Room #1"), ResourceRef(3, "Annex")),
        workers=(ResourceRef(5, "Elsa"),),
    )

    synced = with_primary_resources(appt)

    assert synced.locations == ()
    assert [w.id for w in synced.workers] == [5]


def test_calendar_event_marks_conflicts():
    appt = backend_to_appointment(
        make_event(5, conflicts=[{"evaluationCriteria": "X", "results": [{"bookingId": 5}]}])
    )

    view = appointment_to_calendar_event(appt)

    assert view["title"] == "Alex - Mani"
    assert view["class_name"] == "fc-event-conflicting"
    assert view["extended_props"]["is_conflicting"] is True


def test_calendar_date_range_snaps_to_whole_days():
    tz = timezone(timedelta(hours=-4))
    date_range = calendar_date_range(datetime(2025, 10, 2, 13, 0, tzinfo=tz), datetime(2025, 10, 3, 0, 0, tzinfo=tz))

    assert date_range.start == datetime(2025, 10, 2, 0, 0, tzinfo=tz)
    assert date_range.end.date() == datetime(2025, 10, 2).date()
    assert (date_range.end.hour, date_range.end.minute) == (23, 59)
