from __future__ import annotations

from schedule_draft.application.dto.booking import (
    BackendCalendarEvent,
    BackendClient,
    BackendConflict,
    BackendLocation,
    BackendServiceRef,
    BackendWorker,
)
from schedule_draft.application.ports.booking_gateway import (
    BookingGatewayPort,
    EvaluateResult,
    FetchEventsResult,
    MutationResult,
    OptimizeResult,
)
from schedule_draft.domain.entities.appointment import Appointment, DateRange


def make_event(
    booking_id: int,
    *,
    client: tuple[int, str] = (7, "Alex"),
    service: tuple[int, str] = (1, "Mani"),
    worker: tuple[int, str] = (5, "Elsa"),
    location: tuple[int, str] = (1, "Room #1"),
    starting: str = "2025-10-02T06:00:00-02:00",
    ending: str = "2025-10-02T07:00:00-02:00",
    conflicts: list[dict] | None = None,
) -> BackendCalendarEvent:
    return BackendCalendarEvent.model_validate(
        {
            "id": booking_id,
            "name": f"Booking {booking_id}",
            "description": "",
            "starting": starting,
            "ending": ending,
            "clients": [{"id": client[0], "name": client[1], "description": "", "preferrableResources": []}],
            "services": [{"id": service[0], "name": service[1], "description": ""}],
            "workers": [{"id": worker[0], "name": worker[1], "isLocked": False}],
            "locations": [{"id": location[0], "name": location[1], "isLocked": False, "maxCapacity": 1}],
            "isLocked": False,
            "calendarId": 2,
            "conflicts": conflicts,
        }
    )


class ScriptedGateway(BookingGatewayPort):
    """Gateway double that replays canned responses and records every call."""

    def __init__(
        self,
        events: list[BackendCalendarEvent] | None = None,
        optimized: list[BackendCalendarEvent] | None = None,
        is_valid: bool = True,
    ) -> None:
        self.events = list(events or [])
        self.optimized = list(optimized or [])
        self.is_valid = is_valid
        self.fetch_ok = True
        self.optimize_ok = True
        self.failing_updates: set[str] = set()
        self.failing_creates = False
        self.conflicts: list[BackendConflict] = []
        self.calls: list[tuple[str, object]] = []

    def named(self, name: str) -> list[object]:
        return [arg for call, arg in self.calls if call == name]

    async def fetch_events(self, date_range: DateRange) -> FetchEventsResult:
        self.calls.append(("fetch_events", date_range))
        if not self.fetch_ok:
            return FetchEventsResult(success=False, error="HTTP error! status: 500")
        return FetchEventsResult(success=True, events=list(self.events))

    async def fetch_clients(self) -> list[BackendClient]:
        return [BackendClient(id=7, name="Alex")]

    async def fetch_services(self) -> list[BackendServiceRef]:
        return [BackendServiceRef(id=1, name="Mani")]

    async def fetch_workers(self) -> list[BackendWorker]:
        return [BackendWorker(id=5, name="Elsa")]

    async def fetch_locations(self) -> list[BackendLocation]:
        return [BackendLocation(id=1, name="Room #1")]

    async def create_booking(self, appointment: Appointment) -> MutationResult:
        self.calls.append(("create_booking", appointment))
        if self.failing_creates:
            return MutationResult(success=False, error="HTTP error! status: 400")
        return MutationResult(success=True, data={"id": 100 + len(self.named("create_booking"))})

    async def update_booking(self, appointment: Appointment) -> MutationResult:
        self.calls.append(("update_booking", appointment))
        if appointment.id in self.failing_updates:
            return MutationResult(success=False, error="HTTP error! status: 500")
        return MutationResult(success=True)

    async def delete_booking(self, appointment_id: str) -> MutationResult:
        self.calls.append(("delete_booking", appointment_id))
        return MutationResult(success=True)

    async def evaluate_bookings(self, appointments: list[Appointment]) -> EvaluateResult:
        self.calls.append(("evaluate_bookings", [a.id for a in appointments]))
        return EvaluateResult(success=True, conflicts=list(self.conflicts))

    async def optimize_bookings(self, date_range: DateRange) -> OptimizeResult:
        self.calls.append(("optimize_bookings", date_range))
        if not self.optimize_ok:
            return OptimizeResult(success=False, error="optimizer unavailable")
        return OptimizeResult(success=True, optimized_events=list(self.optimized), is_valid=self.is_valid)
