from __future__ import annotations

from typing import Sequence

from schedule_draft.domain.entities.appointment import Appointment

# Shallow comparison; conflicts, IDs and lock flags are not compared.
DIFF_FIELDS = ("start_time", "end_time", "provider", "room", "service", "client_name")


def is_changed(before: Appointment, after: Appointment) -> bool:
    return any(getattr(before, name) != getattr(after, name) for name in DIFF_FIELDS)


def diff_appointments(before: Sequence[Appointment], after: Sequence[Appointment]) -> set[str]:
    """IDs in `after` that are new or differ from their counterpart in `before`."""
    previous = {a.id: a for a in before}
    changed: set[str] = set()
    for appointment in after:
        old = previous.get(appointment.id)
        if old is None or is_changed(old, appointment):
            changed.add(appointment.id)
    return changed


def omitted_appointment_ids(before: Sequence[Appointment], after: Sequence[Appointment]) -> set[str]:
    """Persisted IDs present in `before` but missing from `after`."""
    kept = {a.id for a in after}
    return {a.id for a in before if a.is_persisted and a.id not in kept}
