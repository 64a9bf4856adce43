from __future__ import annotations

import logging
from typing import Sequence

from schedule_draft.application.dto.booking import BackendConflict
from schedule_draft.application.ports.booking_gateway import BookingGatewayPort
from schedule_draft.core.config import settings
from schedule_draft.domain.entities.appointment import Appointment, ConflictRecord, ConflictResult


def merge_conflicts(
    appointments: Sequence[Appointment],
    conflicts: list[BackendConflict],
) -> list[Appointment]:
    """Attach evaluator results to the appointments they belong to.

    Results are regrouped per booking ID, keeping one record per criteria.
    Appointments without a match get an empty tuple so stale annotations clear.
    """
    by_booking: dict[int, list[ConflictRecord]] = {}
    for conflict in conflicts:
        grouped: dict[int, list[ConflictResult]] = {}
        for result in conflict.results:
            grouped.setdefault(result.booking_id, []).append(result.to_entity())
        for booking_id, results in grouped.items():
            by_booking.setdefault(booking_id, []).append(
                ConflictRecord(evaluation_criteria=conflict.evaluation_criteria, results=tuple(results))
            )

    merged: list[Appointment] = []
    for appointment in appointments:
        records = by_booking.get(appointment.numeric_id, []) if appointment.is_persisted else []
        merged.append(appointment.with_changes(conflicts=tuple(records)))
    return merged


class ConflictRefreshUseCase:
    def __init__(self, gateway: BookingGatewayPort, draft_prefix: str | None = None) -> None:
        self._gateway = gateway
        self._draft_prefix = draft_prefix or settings.DRAFT_ID_PREFIX
        self._logger = logging.getLogger(__name__)

    def evaluable(self, appointments: Sequence[Appointment]) -> list[Appointment]:
        # The evaluator only knows persisted booking IDs
        return [
            a for a in appointments
            if a.is_persisted and not a.id.startswith(self._draft_prefix)
        ]

    async def execute(self, appointments: Sequence[Appointment]) -> list[Appointment] | None:
        """Evaluate the set and return it re-annotated, or None when skipped or failed."""
        candidates = self.evaluable(appointments)
        if not candidates:
            self._logger.debug("Skipping evaluation, nothing persisted to check")
            return None

        result = await self._gateway.evaluate_bookings(candidates)
        if not result.success:
            self._logger.warning("Conflict evaluation failed", extra={"error": result.error})
            return None

        conflicts = result.conflicts or []
        self._logger.info(
            "Conflicts evaluated",
            extra={"count": len(candidates), "status": f"{len(conflicts)} records"},
        )
        return merge_conflicts(appointments, conflicts)
