from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from schedule_draft.application.dto.booking import (
    BackendCalendarEvent,
    BackendClient,
    BackendConflict,
    BackendLocation,
    BackendServiceRef,
    BackendWorker,
)
from schedule_draft.domain.entities.appointment import Appointment, DateRange


@dataclass(frozen=True)
class FetchEventsResult:
    success: bool
    events: list[BackendCalendarEvent] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class MutationResult:
    success: bool
    error: str | None = None
    data: Any = None


@dataclass(frozen=True)
class EvaluateResult:
    success: bool
    conflicts: list[BackendConflict] | None = None
    error: str | None = None


@dataclass(frozen=True)
class OptimizeResult:
    success: bool
    optimized_events: list[BackendCalendarEvent] | None = None
    is_valid: bool | None = None
    error: str | None = None


class BookingGatewayPort(ABC):
    """Remote scheduling service.

    Implementations never raise for remote failures; they report them through
    the returned result objects (directory fetches return an empty list).
    """

    @abstractmethod
    async def fetch_events(self, date_range: DateRange) -> FetchEventsResult:
        """List bookings overlapping the range."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_clients(self) -> list[BackendClient]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_services(self) -> list[BackendServiceRef]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_workers(self) -> list[BackendWorker]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_locations(self) -> list[BackendLocation]:
        raise NotImplementedError

    @abstractmethod
    async def create_booking(self, appointment: Appointment) -> MutationResult:
        raise NotImplementedError

    @abstractmethod
    async def update_booking(self, appointment: Appointment) -> MutationResult:
        """Update a persisted booking. The appointment ID must be numeric."""
        raise NotImplementedError

    @abstractmethod
    async def delete_booking(self, appointment_id: str) -> MutationResult:
        raise NotImplementedError

    @abstractmethod
    async def evaluate_bookings(self, appointments: list[Appointment]) -> EvaluateResult:
        """Check a candidate booking set for conflicts without persisting it."""
        raise NotImplementedError

    @abstractmethod
    async def optimize_bookings(self, date_range: DateRange) -> OptimizeResult:
        """Ask the backend optimizer for a complete proposed booking set."""
        raise NotImplementedError
