from __future__ import annotations

import logging
from datetime import datetime
from itertools import combinations

from schedule_draft.application.dto.booking import (
    BackendCalendarEvent,
    BackendClient,
    BackendConflict,
    BackendConflictResult,
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
from schedule_draft.application.utils.conflict_explanation import DOUBLE_BOOKED
from schedule_draft.application.utils.transformers import parse_timestamp
from schedule_draft.domain.entities.appointment import Appointment, DateRange


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.astimezone()


def _overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    a_start, a_end, b_start, b_end = (_aware(v) for v in (a_start, a_end, b_start, b_end))
    return a_start < b_end and b_start < a_end


def _default_catalog() -> tuple[list[BackendClient], list[BackendServiceRef], list[BackendWorker], list[BackendLocation]]:
    services = [
        BackendServiceRef(id=1, name="Mani", description="Manicure"),
        BackendServiceRef(id=2, name="Pedi", description="Pedicure"),
        BackendServiceRef(id=4, name="Massage", description="Massage"),
    ]
    clients = [
        BackendClient(id=7, name="Alex", description="Alex customer"),
        BackendClient(id=8, name="Jamie", description="Jamie customer"),
    ]
    workers = [
        BackendWorker(id=5, name="Elsa", description="Elsa worker", available_services=services),
        BackendWorker(id=6, name="Anna", description="Anna worker", available_services=services[:2]),
    ]
    locations = [
        BackendLocation(id=1, name="Room #1", max_capacity=1, available_services=services),
        BackendLocation(id=2, name="Room #2", max_capacity=1, available_services=services[1:]),
    ]
    return clients, services, workers, locations


class MockBookingGateway(BookingGatewayPort):
    """In-memory scheduling backend for local development.

    Evaluation only detects double-booked rooms and providers; the optimizer
    proposes the stored bookings unchanged and reports whether they are valid.
    """

    def __init__(self, events: list[BackendCalendarEvent] | None = None) -> None:
        self._clients, self._services, self._workers, self._locations = _default_catalog()
        self._events: dict[int, BackendCalendarEvent] = {e.id: e for e in events or []}
        self._next_id = max(self._events, default=0) + 1
        self._logger = logging.getLogger(__name__)

    async def fetch_events(self, date_range: DateRange) -> FetchEventsResult:
        events = [e for e in self._events.values() if self._in_range(e, date_range)]
        return FetchEventsResult(success=True, events=sorted(events, key=lambda e: e.starting))

    async def fetch_clients(self) -> list[BackendClient]:
        return list(self._clients)

    async def fetch_services(self) -> list[BackendServiceRef]:
        return list(self._services)

    async def fetch_workers(self) -> list[BackendWorker]:
        return list(self._workers)

    async def fetch_locations(self) -> list[BackendLocation]:
        return list(self._locations)

    async def create_booking(self, appointment: Appointment) -> MutationResult:
        event = self._to_event(self._next_id, appointment)
        self._events[event.id] = event
        self._next_id += 1
        self._logger.info("Mock booking created", extra={"appointment_id": str(event.id)})
        return MutationResult(success=True, data={"id": event.id})

    async def update_booking(self, appointment: Appointment) -> MutationResult:
        booking_id = appointment.numeric_id
        if booking_id is None or booking_id not in self._events:
            return MutationResult(success=False, error=f"Booking {appointment.id} not found")
        self._events[booking_id] = self._to_event(booking_id, appointment)
        self._logger.info("Mock booking updated", extra={"appointment_id": appointment.id})
        return MutationResult(success=True)

    async def delete_booking(self, appointment_id: str) -> MutationResult:
        removed = self._events.pop(int(appointment_id), None) if appointment_id.isdigit() else None
        if removed is None:
            return MutationResult(success=False, error=f"Booking {appointment_id} not found")
        self._logger.info("Mock booking deleted", extra={"appointment_id": appointment_id})
        return MutationResult(success=True)

    async def evaluate_bookings(self, appointments: list[Appointment]) -> EvaluateResult:
        events = [self._to_event(a.numeric_id or 0, a) for a in appointments]
        return EvaluateResult(success=True, conflicts=self._double_bookings(events))

    async def optimize_bookings(self, date_range: DateRange) -> OptimizeResult:
        events = [e for e in self._events.values() if self._in_range(e, date_range)]
        conflicts = self._double_bookings(events)
        return OptimizeResult(success=True, optimized_events=events, is_valid=not conflicts)

    def _in_range(self, event: BackendCalendarEvent, date_range: DateRange) -> bool:
        return _overlaps(
            parse_timestamp(event.starting),
            parse_timestamp(event.ending),
            date_range.start,
            date_range.end,
        )

    def _to_event(self, booking_id: int, appointment: Appointment) -> BackendCalendarEvent:
        a = appointment
        return BackendCalendarEvent(
            id=booking_id,
            name=f"{a.client_name} - {a.service}",
            description=a.service,
            starting=a.start_time,
            ending=a.end_time,
            clients=[BackendClient(id=a.client_id, name=a.client_name)] if a.client_id is not None else [],
            services=[BackendServiceRef(id=a.service_id, name=a.service)] if a.service_id is not None else [],
            workers=(
                [BackendWorker(id=a.provider_id, name=a.provider, is_locked=bool(a.provider_locked))]
                if a.provider_id is not None
                else []
            ),
            locations=(
                [BackendLocation(id=a.room_id, name=a.room, is_locked=bool(a.room_locked))]
                if a.room_id is not None
                else []
            ),
        )

    def _double_bookings(self, events: list[BackendCalendarEvent]) -> list[BackendConflict]:
        hits: dict[int, BackendConflictResult] = {}
        for a, b in combinations(events, 2):
            if not _overlaps(
                parse_timestamp(a.starting),
                parse_timestamp(a.ending),
                parse_timestamp(b.starting),
                parse_timestamp(b.ending),
            ):
                continue
            shared_locations = {loc.id for loc in a.locations} & {loc.id for loc in b.locations}
            shared_workers = {w.id for w in a.workers} & {w.id for w in b.workers}
            if not shared_locations and not shared_workers:
                continue
            for own, other in ((a, b), (b, a)):
                result = hits.setdefault(own.id, BackendConflictResult(booking_id=own.id))
                result.locations = sorted(set(result.locations) | shared_locations)
                result.workers = sorted(set(result.workers) | shared_workers)
                result.conflicts_with_ids = sorted(set(result.conflicts_with_ids) | {other.id})

        if not hits:
            return []
        return [BackendConflict(evaluation_criteria=DOUBLE_BOOKED, results=list(hits.values()))]


def demo_events() -> list[BackendCalendarEvent]:
    """Two overlapping bookings sharing Room #1, enough to exercise the draft flow."""
    clients, services, workers, locations = _default_catalog()
    return [
        BackendCalendarEvent(
            id=5,
            name="Booking Alex 1",
            starting="2025-10-02T06:00:00-02:00",
            ending="2025-10-02T11:00:00-02:00",
            clients=[clients[0]],
            services=[services[0]],
            workers=[workers[0]],
            locations=[locations[0]],
        ),
        BackendCalendarEvent(
            id=6,
            name="Booking Jamie 1",
            starting="2025-10-02T09:00:00-02:00",
            ending="2025-10-02T10:00:00-02:00",
            clients=[clients[1]],
            services=[services[1]],
            workers=[workers[1]],
            locations=[locations[0]],
        ),
    ]
