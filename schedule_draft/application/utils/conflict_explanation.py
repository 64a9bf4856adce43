from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from schedule_draft.application.utils.resource_directory import ResourceDirectory
from schedule_draft.domain.entities.appointment import Appointment, ConflictRecord, ConflictResult

SERVICE_NOT_PROVIDED = "EachErrandResourceHaveAServiceProvidedByParentErrand"
CAPACITY_MISMATCH = "ServicingResourceCapacityMatchesCustomerResourcesCapacity"
RESOURCE_UNAVAILABLE = "ResourceAvailableForErrand"
DOUBLE_BOOKED = "SolutionResourceDoubleBooked"

CONFLICT_BASE_MESSAGES: dict[str, str] = {
    DOUBLE_BOOKED: "Same resource booked for overlapping errands in the solution.",
    SERVICE_NOT_PROVIDED: (
        "Each resource assigned to an errand must have a service provided by the parent errand."
    ),
    CAPACITY_MISMATCH: (
        "The capacity of the servicing resource must match the capacity of the customer resource."
    ),
    RESOURCE_UNAVAILABLE: (
        "Resource must be available for the errand according to its availability calendar."
    ),
}

# (label, display name, owning result); rooms are listed before providers
_Resource = tuple[str, str, ConflictResult]


def build_explanation(
    conflicts: Sequence[ConflictRecord] | None,
    current_appointment: Appointment,
    directory: ResourceDirectory,
) -> str:
    """Render backend conflict records as user-facing text.

    One block per record, joined with newlines. Pure: same inputs, same text.
    """
    if not conflicts:
        return ""

    blocks: list[str] = []
    for record in conflicts:
        block = _explain_record(record, current_appointment, directory)
        if block:
            blocks.append(block)
    return "\n".join(blocks)


def _explain_record(
    record: ConflictRecord,
    current: Appointment,
    directory: ResourceDirectory,
) -> str:
    criteria = record.evaluation_criteria
    resources = list(_iter_resources(record.results, directory))

    if criteria == DOUBLE_BOOKED:
        details = [
            _double_booked_line(label, name, result, current, directory)
            for label, name, result in resources
        ]
        return " ".join(details)

    if criteria == SERVICE_NOT_PROVIDED:
        service = current.service or "this service"
        details = [f"{label} '{name}' cannot provide {service}." for label, name, _ in resources]
        return _join(CONFLICT_BASE_MESSAGES[criteria], details)

    if criteria in (CAPACITY_MISMATCH, RESOURCE_UNAVAILABLE):
        return CONFLICT_BASE_MESSAGES[criteria]

    details = [f"{label} '{name}' is involved in this conflict." for label, name, _ in resources]
    return _join(f"Conflict detected: {criteria}.", details)


def _iter_resources(results: Iterable[ConflictResult], directory: ResourceDirectory) -> Iterable[_Resource]:
    for result in results:
        for location_id in result.locations:
            yield "Room", directory.location_name(location_id), result
        for worker_id in result.workers:
            yield "Provider", directory.worker_name(worker_id), result


def _double_booked_line(
    label: str,
    name: str,
    result: ConflictResult,
    current: Appointment,
    directory: ResourceDirectory,
) -> str:
    own_id = current.numeric_id
    summaries = [
        _booking_summary(other_id, directory)
        for other_id in result.conflicts_with_ids
        if other_id != own_id
    ]
    if not summaries:
        return f"{label} '{name}' is already booked at this time."
    return f"{label} '{name}' is also booked for {', '.join(summaries)}."


def _booking_summary(booking_id: int, directory: ResourceDirectory) -> str:
    other = directory.appointment(booking_id)
    if other is None or not (other.client_name or other.service):
        return f"booking #{booking_id}"
    who = other.client_name or "unknown client"
    parts = [p for p in (other.service, _time_range(other)) if p]
    return f"{who} ({', '.join(parts)})" if parts else who


def _time_range(appointment: Appointment) -> str:
    start = _clock(appointment.start_time)
    end = _clock(appointment.end_time)
    if start and end:
        return f"{start}-{end}"
    return start or end


def _clock(value: str) -> str:
    # Wall-clock time in the booking's own offset
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%H:%M")
    except (ValueError, AttributeError):
        return ""


def _join(base: str, details: list[str]) -> str:
    return " ".join([base, *details])

