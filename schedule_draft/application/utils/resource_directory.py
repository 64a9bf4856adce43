from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from schedule_draft.domain.entities.appointment import Appointment, ResourceRef


@dataclass(frozen=True)
class ResourceDirectory:
    """ID -> entity lookups for the resources referenced by the loaded bookings.

    Only covers what the visible appointments embed, not the full backend catalog.
    """

    locations: dict[int, ResourceRef] = field(default_factory=dict)
    workers: dict[int, ResourceRef] = field(default_factory=dict)
    appointments: dict[int, Appointment] = field(default_factory=dict)

    def location_name(self, location_id: int) -> str:
        location = self.locations.get(location_id)
        return location.name if location else f"#{location_id}"

    def worker_name(self, worker_id: int) -> str:
        worker = self.workers.get(worker_id)
        return worker.name if worker else f"#{worker_id}"

    def appointment(self, booking_id: int) -> Appointment | None:
        return self.appointments.get(booking_id)


def build_resource_directory(appointments: Sequence[Appointment]) -> ResourceDirectory:
    locations: dict[int, ResourceRef] = {}
    workers: dict[int, ResourceRef] = {}
    by_id: dict[int, Appointment] = {}

    for appointment in appointments:
        booking_id = appointment.numeric_id
        if booking_id is not None:
            by_id.setdefault(booking_id, appointment)
        for location in appointment.locations:
            locations.setdefault(location.id, location)
        for worker in appointment.workers:
            workers.setdefault(worker.id, worker)

    return ResourceDirectory(locations=locations, workers=workers, appointments=by_id)


class ResourceDirectoryCache:
    """Memoizes the directory on the identity of the appointment list."""

    def __init__(self) -> None:
        self._source: Sequence[Appointment] | None = None
        self._directory = ResourceDirectory()

    def get(self, appointments: Sequence[Appointment]) -> ResourceDirectory:
        if appointments is not self._source:
            self._directory = build_resource_directory(appointments)
            self._source = appointments
        return self._directory
