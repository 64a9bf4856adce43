from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime

_NUMERIC_ID = re.compile(r"\d+", re.ASCII)


@dataclass(frozen=True)
class ResourceRef:
    """A location or worker as embedded in a backend booking."""

    id: int
    name: str
    is_locked: bool = False


@dataclass(frozen=True)
class ConflictResult:
    booking_id: int
    locations: tuple[int, ...] = ()
    workers: tuple[int, ...] = ()
    conflicts_with_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class ConflictRecord:
    evaluation_criteria: str
    results: tuple[ConflictResult, ...] = ()


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Appointment:
    id: str  # numeric for persisted bookings, "draft-<ms>" for local drafts, "" for unsaved forms
    client_name: str = ""
    service: str = ""
    provider: str = ""
    room: str = ""
    start_time: str = ""  # ISO 8601, offset kept as received
    end_time: str = ""
    client_id: int | None = None
    service_id: int | None = None
    provider_id: int | None = None
    room_id: int | None = None
    provider_locked: bool | None = None
    room_locked: bool | None = None
    conflicts: tuple[ConflictRecord, ...] = ()
    # Every location/worker the backend attached; the primary fields mirror index 0.
    locations: tuple[ResourceRef, ...] = ()
    workers: tuple[ResourceRef, ...] = ()

    @property
    def numeric_id(self) -> int | None:
        if _NUMERIC_ID.fullmatch(self.id):
            return int(self.id)
        return None

    @property
    def is_persisted(self) -> bool:
        return self.numeric_id is not None

    @property
    def is_multi_resource(self) -> bool:
        return len(self.locations) > 1 or len(self.workers) > 1

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    def with_changes(self, **fields) -> Appointment:
        return replace(self, **fields)
