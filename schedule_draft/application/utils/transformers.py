from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from typing import Any

from schedule_draft.application.dto.booking import (
    BackendCalendarEvent,
    CreateBookingRequest,
    ResourceLink,
    UpdateBookingRequest,
)
from schedule_draft.application.exceptions import InvalidAppointmentError, InvalidEventDataError
from schedule_draft.core.config import settings
from schedule_draft.domain.entities.appointment import Appointment, DateRange, ResourceRef


def parse_timestamp(value: str | None) -> datetime:
    if not value:
        raise InvalidEventDataError("Missing start or end time")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        raise InvalidEventDataError(f"Invalid timestamp: {value!r}")


def to_utc_iso(value: str) -> str:
    """Re-serialize a timestamp as UTC ISO 8601 with milliseconds and a Z suffix."""
    dt = parse_timestamp(value).astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_time_range(start_time: str | None, end_time: str | None) -> None:
    start = parse_timestamp(start_time)
    end = parse_timestamp(end_time)
    if (start.tzinfo is None) != (end.tzinfo is None):
        start = start.astimezone()
        end = end.astimezone()
    if start >= end:
        raise InvalidEventDataError("End time must be after start time")


def backend_to_appointment(event: BackendCalendarEvent) -> Appointment:
    """Project a backend booking onto the flat appointment model.

    The first client, service, worker and location are treated as primary;
    all workers and locations are still kept on the appointment.
    """
    client = event.clients[0] if event.clients else None
    service = event.services[0] if event.services else None
    worker = event.workers[0] if event.workers else None
    location = event.locations[0] if event.locations else None

    return Appointment(
        id=str(event.id),
        client_name=client.name if client else "",
        service=service.name if service else "",
        provider=worker.name if worker else "",
        room=location.name if location else "",
        client_id=client.id if client else None,
        service_id=service.id if service else None,
        provider_id=worker.id if worker else None,
        room_id=location.id if location else None,
        provider_locked=worker.is_locked if worker else None,
        room_locked=location.is_locked if location else None,
        # Keep backend offsets as received
        start_time=event.starting,
        end_time=event.ending,
        conflicts=tuple(c.to_entity() for c in event.conflicts or []),
        locations=tuple(loc.to_ref() for loc in event.locations),
        workers=tuple(w.to_ref() for w in event.workers),
    )


def appointment_to_booking_request(
    appointment: Appointment,
    calendar_id: int | None = None,
) -> CreateBookingRequest:
    return CreateBookingRequest(
        calendar_id=calendar_id if calendar_id is not None else settings.SCHEDULE_CALENDAR_ID,
        name=f"{appointment.client_name} - {appointment.service}",
        description=appointment.service,
        starting=to_utc_iso(appointment.start_time),
        ending=to_utc_iso(appointment.end_time),
        locations=(
            [ResourceLink(id=appointment.room_id, is_locked=bool(appointment.room_locked))]
            if appointment.room_id is not None
            else []
        ),
        workers=(
            [ResourceLink(id=appointment.provider_id, is_locked=bool(appointment.provider_locked))]
            if appointment.provider_id is not None
            else []
        ),
        clients=[ResourceLink(id=appointment.client_id)] if appointment.client_id is not None else [],
        services_ids=[appointment.service_id] if appointment.service_id is not None else [],
        is_locked=False,
    )


def appointment_to_update_request(
    appointment: Appointment,
    calendar_id: int | None = None,
) -> UpdateBookingRequest:
    booking_id = appointment.numeric_id
    if booking_id is None:
        raise InvalidAppointmentError(f"Appointment {appointment.id!r} has not been saved yet")
    request = appointment_to_booking_request(appointment, calendar_id)
    return UpdateBookingRequest(**request.model_dump(), id=booking_id)


def appointment_to_calendar_event(appointment: Appointment) -> dict[str, Any]:
    """Thin view model for the calendar widget."""
    is_conflicting = appointment.has_conflicts
    title = f"{appointment.client_name} - {appointment.service}".strip(" -") or "Event"
    return {
        "id": appointment.id,
        "title": title,
        "start": appointment.start_time,
        "end": appointment.end_time,
        "editable": True,
        "class_name": "fc-event-conflicting" if is_conflicting else "fc-event-normal",
        "extended_props": {
            "client_name": appointment.client_name,
            "provider": appointment.provider,
            "room": appointment.room,
            "service": appointment.service,
            "provider_locked": bool(appointment.provider_locked),
            "room_locked": bool(appointment.room_locked),
            "is_conflicting": is_conflicting,
        },
    }


def update_appointment(
    appointments: list[Appointment] | tuple[Appointment, ...],
    appointment_id: str,
    **fields: Any,
) -> list[Appointment]:
    """Return a new list with one appointment patched; unknown IDs leave the list as is."""
    return [a.with_changes(**fields) if a.id == appointment_id else a for a in appointments]


def calendar_date_range(active_start: datetime, active_end: datetime) -> DateRange:
    """Snap a calendar view window to whole days.

    The widget's `active_end` is exclusive (midnight of the following day),
    so the last covered day ends one microsecond before it.
    """
    range_start = datetime.combine(active_start.date(), time.min, tzinfo=active_start.tzinfo)
    last = active_end - timedelta(microseconds=1)
    range_end = datetime.combine(last.date(), time.max, tzinfo=active_end.tzinfo)
    return DateRange(start=range_start, end=range_end)


def with_primary_resources(appointment: Appointment) -> Appointment:
    """Make the embedded location/worker lists agree with the primary room/provider fields."""
    return appointment.with_changes(
        locations=_promote(appointment.locations, appointment.room_id, appointment.room, appointment.room_locked),
        workers=_promote(appointment.workers, appointment.provider_id, appointment.provider, appointment.provider_locked),
    )


def _promote(
    refs: tuple[ResourceRef, ...],
    resource_id: int | None,
    name: str,
    locked: bool | None,
) -> tuple[ResourceRef, ...]:
    if resource_id is None:
        # No primary resource: nothing may sit at index 0
        return ()
    rest = tuple(r for r in refs[1:] if r.id != resource_id)
    return (ResourceRef(id=resource_id, name=name, is_locked=bool(locked)), *rest)
