import json
from datetime import datetime, timezone

import httpx
import pytest
import respx

from schedule_draft.domain.entities.appointment import Appointment, DateRange
from schedule_draft.infrastructure.booking.http_gateway import HttpBookingGateway

BASE = "https://api.test"
RANGE = DateRange(
    start=datetime(2025, 10, 2, 0, 0, tzinfo=timezone.utc),
    end=datetime(2025, 10, 3, 0, 0, tzinfo=timezone.utc),
)

EVENT = {
    "id": 5,
    "name": "Booking Alex 1",
    "description": "",
    "starting": "2025-10-02T06:00:00-02:00",
    "ending": "2025-10-02T11:00:00-02:00",
    "services": [{"id": 1, "name": "Mani", "description": "Manicure"}],
    "locations": [{"id": 1, "name": "Room #1", "isLocked": True, "maxCapacity": 1}],
    "workers": [{"id": 5, "name": "Elsa", "isLocked": False}],
    "clients": [{"id": 7, "name": "Alex", "description": "", "preferrableResources": []}],
    "isLocked": False,
    "calendarId": 2,
}

APPOINTMENT = Appointment(
    id="5",
    client_name="Alex",
    service="Mani",
    provider="Elsa",
    room="Room #1",
    start_time="2025-10-02T06:00:00-02:00",
    end_time="2025-10-02T07:00:00-02:00",
    client_id=7,
    service_id=1,
    provider_id=5,
    room_id=1,
    room_locked=True,
)


def _gateway() -> HttpBookingGateway:
    return HttpBookingGateway(base_url=BASE, calendar_id=2, timeout=5)


@pytest.mark.asyncio
async def test_fetch_events_sends_range_and_calendar():
    with respx.mock(base_url=BASE) as m:
        route = m.get("/booking").respond(200, json=[EVENT])

        result = await _gateway().fetch_events(RANGE)

        assert result.success
        assert [e.id for e in result.events] == [5]
        assert result.events[0].locations[0].is_locked is True
        params = route.calls.last.request.url.params
        assert params["from"] == "2025-10-02T00:00:00.000Z"
        assert params["to"] == "2025-10-03T00:00:00.000Z"
        assert params["calendarId"] == "2"


@pytest.mark.asyncio
async def test_fetch_events_reports_http_status():
    with respx.mock(base_url=BASE) as m:
        m.get("/booking").respond(500, text="boom")

        result = await _gateway().fetch_events(RANGE)

        assert result.success is False
        assert "status: 500" in result.error


@pytest.mark.asyncio
async def test_transport_errors_become_failed_results():
    with respx.mock(base_url=BASE) as m:
        m.get("/booking").mock(side_effect=httpx.ConnectError("refused"))

        result = await _gateway().fetch_events(RANGE)

        assert result.success is False
        assert "refused" in result.error


@pytest.mark.asyncio
async def test_update_sends_single_element_list_with_utc_times():
    with respx.mock(base_url=BASE) as m:
        route = m.put("/booking").respond(200, json={"ok": True})

        result = await _gateway().update_booking(APPOINTMENT)

        assert result.success
        [body] = json.loads(route.calls.last.request.content)
        assert body["id"] == 5
        assert body["calendarId"] == 2
        assert body["starting"] == "2025-10-02T08:00:00.000Z"
        assert body["locations"] == [{"id": 1, "IsLocked": True}]
        assert body["workers"] == [{"id": 5, "IsLocked": False}]
        assert body["servicesIds"] == [1]


@pytest.mark.asyncio
async def test_update_rejects_draft_ids_without_calling_out():
    with respx.mock(base_url=BASE, assert_all_called=False) as m:
        route = m.put("/booking").respond(200)

        result = await _gateway().update_booking(APPOINTMENT.with_changes(id="draft-1"))

        assert result.success is False
        assert not route.called


@pytest.mark.asyncio
async def test_create_accepts_empty_body():
    with respx.mock(base_url=BASE) as m:
        route = m.post("/booking").respond(201)

        result = await _gateway().create_booking(APPOINTMENT.with_changes(id="draft-1"))

        assert result.success
        assert result.data is None
        body = json.loads(route.calls.last.request.content)
        assert "id" not in body
        assert body["clients"] == [{"id": 7, "IsLocked": False}]


@pytest.mark.asyncio
async def test_delete_passes_id_as_query():
    with respx.mock(base_url=BASE) as m:
        route = m.delete("/booking").respond(204)

        result = await _gateway().delete_booking("5")

        assert result.success
        assert route.calls.last.request.url.params["id"] == "5"


@pytest.mark.asyncio
async def test_evaluate_parses_conflicts():
    conflicts = [
        {
            "evaluationCriteria": "SolutionResourceDoubleBooked",
            "results": [{"bookingId": 5, "locations": [1], "workers": [], "conflictsWithIds": [6]}],
        }
    ]
    with respx.mock(base_url=BASE) as m:
        route = m.post("/booking/evaluate").respond(200, json=conflicts)

        result = await _gateway().evaluate_bookings([APPOINTMENT])

        assert result.success
        assert result.conflicts[0].results[0].conflicts_with_ids == [6]
        assert [b["id"] for b in json.loads(route.calls.last.request.content)] == [5]


@pytest.mark.asyncio
async def test_optimize_reads_wrapped_payload_and_validity():
    with respx.mock(base_url=BASE) as m:
        m.post("/booking/optimize").respond(200, json={"optimizedEvents": [EVENT], "isValid": False})

        result = await _gateway().optimize_bookings(RANGE)

        assert result.success
        assert [e.id for e in result.optimized_events] == [5]
        assert result.is_valid is False


@pytest.mark.asyncio
async def test_optimize_bare_list_leaves_validity_unknown():
    with respx.mock(base_url=BASE) as m:
        m.post("/booking/optimize").respond(200, json=[EVENT])

        result = await _gateway().optimize_bookings(RANGE)

        assert result.success
        assert result.is_valid is None


@pytest.mark.asyncio
async def test_directory_fetch_falls_back_to_empty_list():
    with respx.mock(base_url=BASE) as m:
        m.get("/worker/all").respond(200, json=[{"id": 5, "name": "Elsa"}])
        m.get("/location/all").respond(503)

        workers = await _gateway().fetch_workers()
        locations = await _gateway().fetch_locations()

        assert [w.name for w in workers] == ["Elsa"]
        assert locations == []
