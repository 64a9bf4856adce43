from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, fields
from typing import Awaitable, Callable

from schedule_draft.application.exceptions import (
    AppointmentNotFoundError,
    InvalidAppointmentError,
    InvalidEventDataError,
)
from schedule_draft.application.ports.booking_gateway import BookingGatewayPort, MutationResult
from schedule_draft.application.use_cases.conflict_refresh import ConflictRefreshUseCase
from schedule_draft.application.utils.conflict_explanation import build_explanation
from schedule_draft.application.utils.draft_diff import diff_appointments, omitted_appointment_ids
from schedule_draft.application.utils.resource_directory import ResourceDirectory, ResourceDirectoryCache
from schedule_draft.application.utils.transformers import (
    backend_to_appointment,
    update_appointment,
    validate_time_range,
    with_primary_resources,
)
from schedule_draft.core.config import settings
from schedule_draft.domain.entities.appointment import Appointment, DateRange
from schedule_draft.domain.entities.schedule_session import Notification, ScheduleSession

INVALID_EVENT_DATA = "Invalid event data"
SAVE_FAILED = "Some changes failed to save. Please try again."
DRAFT_KEPT = "Draft in progress. Save or reset to load server changes."


@dataclass(frozen=True)
class ReconciliationResult:
    action: str
    success: bool
    message: str | None = None
    revert: bool = False  # the calendar widget should undo the gesture
    reason: str | None = None  # "not_found" | "invalid" | "remote" | "state"
    appointment_id: str | None = None
    notification: Notification | None = None


class DraftReconciliationUseCase:
    """Routes every calendar mutation either to the backend or to the local draft.

    Normal mode: each mutation is a remote call followed by a re-fetch of the
    visible range. Draft mode (entered through the optimizer): mutations stay
    local, their IDs accumulate in `modified_event_ids`, and conflicts are
    refreshed in the background until the draft is saved or reset.
    """

    def __init__(
        self,
        gateway: BookingGatewayPort,
        session: ScheduleSession,
        conflict_refresh: ConflictRefreshUseCase | None = None,
        clock: Callable[[], float] = time.time,
        draft_prefix: str | None = None,
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._draft_prefix = draft_prefix or settings.DRAFT_ID_PREFIX
        self._conflict_refresh = conflict_refresh or ConflictRefreshUseCase(gateway, self._draft_prefix)
        self._clock = clock
        self._directory_cache = ResourceDirectoryCache()
        self._background: set[asyncio.Task] = set()
        self._logger = logging.getLogger(__name__)

    @property
    def session(self) -> ScheduleSession:
        return self._session

    @property
    def directory(self) -> ResourceDirectory:
        return self._directory_cache.get(self._session.appointments)

    def explain(self, appointment_id: str) -> str:
        appointment = self._session.find(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        return build_explanation(appointment.conflicts, appointment, self.directory)

    # --- loading -----------------------------------------------------------

    async def load_range(self, date_range: DateRange | None = None) -> ReconciliationResult:
        date_range = date_range or self._session.visible_range
        if date_range is None:
            return self._fail("load", "No visible date range")
        self._session.visible_range = date_range

        if self._session.is_draft_mode:
            # The draft list stays authoritative until Save or Reset
            self._logger.info("Keeping draft appointments on range change", extra={"action": "load"})
            return ReconciliationResult(action="load", success=True, message=DRAFT_KEPT)

        result = await self._gateway.fetch_events(date_range)
        if not result.success:
            self._logger.error("Failed to load appointments", extra={"error": result.error})
            return self._fail("load", result.error or "Failed to load appointments", reason="remote")

        appointments = [backend_to_appointment(e) for e in result.events]
        revision = self._session.replace_appointments(appointments)
        self._logger.info("Appointments loaded", extra={"count": len(appointments), "revision": revision})
        return ReconciliationResult(action="load", success=True)

    # --- draft lifecycle ---------------------------------------------------

    async def enter_draft(self, date_range: DateRange | None = None) -> ReconciliationResult:
        """Run the optimizer over the visible range and hold its proposal as a local draft."""
        date_range = date_range or self._session.visible_range
        if date_range is None:
            return self._fail("optimize", "No visible date range")
        self._session.visible_range = date_range

        result = await self._gateway.optimize_bookings(date_range)
        if not result.success:
            self._logger.error("Optimization failed", extra={"error": result.error})
            return self._fail("optimize", result.error or "Failed to optimize schedule", reason="remote")

        before = self._session.appointments
        proposed = [backend_to_appointment(e) for e in result.optimized_events or []]
        modified = diff_appointments(before, proposed)
        removed = omitted_appointment_ids(before, proposed)

        original = before
        if self._session.is_draft_mode:
            # Re-optimizing inside a draft keeps the first snapshot and never forgets touched IDs
            original = self._session.original_appointments
            modified |= self._session.modified_event_ids
            removed |= self._session.removed_event_ids

        is_valid = result.is_valid is True
        self._session.begin_draft(original, proposed, modified, removed, is_valid)

        if is_valid:
            notification = Notification("success", "Optimized schedule is valid. Review and save the changes.", True)
        else:
            notification = Notification("warning", "Optimized schedule still has conflicts. Review before saving.", True)
        self._session.notification = notification

        self._logger.info(
            "Entered draft mode",
            extra={"count": len(modified), "status": "valid" if is_valid else "invalid"},
        )
        return ReconciliationResult(action="optimize", success=True, notification=notification)

    async def save_draft(self) -> ReconciliationResult:
        """Persist the draft: update persisted bookings, create drafts, delete removals.

        Creates and deletes that went through on an earlier failed attempt are
        remembered on the session and not sent again.
        """
        session = self._session
        if not session.is_draft_mode:
            return self._fail("save", "Not in draft mode")

        pending = [a for a in session.appointments if a.id in session.modified_event_ids]
        operations: list[tuple[str, str]] = []
        calls: list[Awaitable[MutationResult]] = []
        for appointment in pending:
            if appointment.is_persisted:
                operations.append(("update", appointment.id))
                calls.append(self._gateway.update_booking(appointment))
            elif appointment.id in session.saved_draft_ids:
                server_id = session.saved_draft_ids[appointment.id]
                if server_id is None:
                    continue
                operations.append(("update", appointment.id))
                calls.append(self._gateway.update_booking(appointment.with_changes(id=server_id)))
            else:
                operations.append(("create", appointment.id))
                calls.append(self._gateway.create_booking(appointment))
        for appointment_id in sorted(session.removed_event_ids - session.deleted_event_ids):
            operations.append(("delete", appointment_id))
            calls.append(self._gateway.delete_booking(appointment_id))

        outcomes = await asyncio.gather(*calls, return_exceptions=True)
        failures = 0
        for (kind, appointment_id), outcome in zip(operations, outcomes):
            if isinstance(outcome, BaseException) or not outcome.success:
                failures += 1
            elif kind == "create":
                session.saved_draft_ids[appointment_id] = _created_id(outcome.data)
            elif kind == "delete":
                session.deleted_event_ids.add(appointment_id)

        if failures:
            self._logger.error(
                "Draft save failed",
                extra={"count": failures, "status": f"{len(outcomes) - failures} saved"},
            )
            notification = Notification("error", SAVE_FAILED)
            session.notification = notification
            return ReconciliationResult(
                action="save",
                success=False,
                message=SAVE_FAILED,
                reason="remote",
                notification=notification,
            )

        session.end_draft()
        notification = Notification("success", "All changes saved.")
        session.notification = notification
        self._logger.info("Draft saved", extra={"count": len(outcomes)})
        if session.visible_range is not None:
            await self.load_range(session.visible_range)
        return ReconciliationResult(action="save", success=True, notification=notification)

    async def reset_draft(self) -> ReconciliationResult:
        self._session.end_draft()
        self._session.notification = None
        self._logger.info("Draft discarded")
        if self._session.visible_range is None:
            return ReconciliationResult(action="reset", success=True)
        loaded = await self.load_range(self._session.visible_range)
        return ReconciliationResult(action="reset", success=loaded.success, message=loaded.message)

    # --- mutations ---------------------------------------------------------

    async def move_appointment(
        self,
        appointment_id: str,
        start_time: str | None,
        end_time: str | None,
    ) -> ReconciliationResult:
        """Drag or resize: new start/end for an existing appointment."""
        try:
            if not start_time or not end_time:
                raise InvalidEventDataError(INVALID_EVENT_DATA)
            validate_time_range(start_time, end_time)
            existing = self._require(appointment_id)
        except (InvalidEventDataError, AppointmentNotFoundError) as e:
            return self._reject("move", appointment_id, e)

        updated = existing.with_changes(start_time=start_time, end_time=end_time)
        return await self._apply_update("move", existing, updated)

    async def edit_appointment(self, appointment: Appointment) -> ReconciliationResult:
        try:
            validate_time_range(appointment.start_time, appointment.end_time)
            existing = self._require(appointment.id)
        except (InvalidEventDataError, AppointmentNotFoundError) as e:
            return self._reject("edit", appointment.id, e)

        updated = with_primary_resources(appointment.with_changes(conflicts=existing.conflicts))
        return await self._apply_update("edit", existing, updated)

    async def create_appointment(self, appointment: Appointment) -> ReconciliationResult:
        try:
            validate_time_range(appointment.start_time, appointment.end_time)
        except InvalidEventDataError as e:
            return self._reject("create", appointment.id or None, e)

        if self._session.is_draft_mode:
            created = with_primary_resources(appointment.with_changes(id=self._new_draft_id(), conflicts=()))
            self._session.replace_appointments([*self._session.appointments, created])
            self._session.mark_modified(created.id)
            self._logger.info("Draft appointment created", extra={"appointment_id": created.id})
            self._schedule_refresh()
            return ReconciliationResult(action="create", success=True, appointment_id=created.id)

        result = await self._gateway.create_booking(appointment)
        if not result.success:
            return self._remote_failure("create", None, result.error or "Failed to create appointment")
        await self._reload_after_mutation()
        return ReconciliationResult(action="create", success=True)

    async def delete_appointment(self, appointment_id: str) -> ReconciliationResult:
        try:
            existing = self._require(appointment_id)
        except AppointmentNotFoundError as e:
            return self._reject("delete", appointment_id, e)

        if self._session.is_draft_mode:
            remaining = [a for a in self._session.appointments if a.id != appointment_id]
            self._session.replace_appointments(remaining)
            server_id = existing.id if existing.is_persisted else self._session.saved_draft_ids.get(appointment_id)
            if server_id is not None:
                self._session.removed_event_ids.add(server_id)
            self._session.mark_modified(appointment_id)
            self._logger.info("Draft appointment deleted", extra={"appointment_id": appointment_id})
            self._schedule_refresh()
            return ReconciliationResult(action="delete", success=True, appointment_id=appointment_id)

        result = await self._gateway.delete_booking(appointment_id)
        if not result.success:
            return self._remote_failure("delete", appointment_id, result.error or "Failed to delete appointment")
        await self._reload_after_mutation()
        return ReconciliationResult(action="delete", success=True, appointment_id=appointment_id)

    # --- conflict annotations ---------------------------------------------

    async def refresh_conflicts(self) -> ReconciliationResult:
        """Evaluate the current list now and merge the results if nothing changed meanwhile."""
        applied = await self._refresh_conflicts(self._session.appointments, self._session.revision)
        return ReconciliationResult(action="evaluate", success=applied)

    async def wait_for_background(self) -> None:
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _schedule_refresh(self) -> None:
        task = asyncio.create_task(self._refresh_conflicts(self._session.appointments, self._session.revision))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _refresh_conflicts(self, snapshot: tuple[Appointment, ...], revision: int) -> bool:
        try:
            merged = await self._conflict_refresh.execute(snapshot)
        except Exception as e:
            self._logger.exception("Conflict refresh crashed", extra={"error": str(e)})
            return False
        if merged is None:
            return False
        if self._session.revision != revision:
            self._logger.info(
                "Discarding stale conflict refresh",
                extra={"revision": revision, "status": f"current={self._session.revision}"},
            )
            return False
        self._session.replace_appointments(merged)
        return True

    # --- helpers -----------------------------------------------------------

    async def _apply_update(self, action: str, existing: Appointment, updated: Appointment) -> ReconciliationResult:
        if self._session.is_draft_mode:
            patched = update_appointment(self._session.appointments, existing.id, **_fields(updated))
            self._session.replace_appointments(patched)
            self._session.mark_modified(existing.id)
            self._logger.info("Draft appointment updated", extra={"appointment_id": existing.id, "action": action})
            self._schedule_refresh()
            return ReconciliationResult(action=action, success=True, appointment_id=existing.id)

        if not existing.is_persisted:
            return self._reject(action, existing.id, InvalidAppointmentError("Appointment has not been saved yet"))

        result = await self._gateway.update_booking(updated)
        if not result.success:
            return self._remote_failure(action, existing.id, result.error or "Failed to update appointment")
        await self._reload_after_mutation()
        return ReconciliationResult(action=action, success=True, appointment_id=existing.id)

    async def _reload_after_mutation(self) -> None:
        if self._session.visible_range is not None:
            await self.load_range(self._session.visible_range)

    def _require(self, appointment_id: str) -> Appointment:
        appointment = self._session.find(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    def _new_draft_id(self) -> str:
        stamp = int(self._clock() * 1000)
        while self._session.find(f"{self._draft_prefix}{stamp}") is not None:
            stamp += 1
        return f"{self._draft_prefix}{stamp}"

    def _reject(self, action: str, appointment_id: str | None, error: Exception) -> ReconciliationResult:
        message = str(error)
        reason = "not_found" if isinstance(error, AppointmentNotFoundError) else "invalid"
        self._logger.warning(message, extra={"appointment_id": appointment_id, "action": action})
        notification = Notification("error", message)
        self._session.notification = notification
        return ReconciliationResult(
            action=action,
            success=False,
            message=message,
            revert=True,
            reason=reason,
            appointment_id=appointment_id,
            notification=notification,
        )

    def _remote_failure(self, action: str, appointment_id: str | None, error: str) -> ReconciliationResult:
        self._logger.error("Remote mutation failed", extra={"appointment_id": appointment_id, "action": action, "error": error})
        notification = Notification("error", error)
        self._session.notification = notification
        return ReconciliationResult(
            action=action,
            success=False,
            message=error,
            revert=True,
            reason="remote",
            appointment_id=appointment_id,
            notification=notification,
        )

    def _fail(self, action: str, message: str, reason: str = "state") -> ReconciliationResult:
        notification = Notification("error", message)
        self._session.notification = notification
        return ReconciliationResult(
            action=action, success=False, message=message, reason=reason, notification=notification
        )


def _fields(appointment: Appointment) -> dict:
    return {f.name: getattr(appointment, f.name) for f in fields(appointment) if f.name != "id"}


def _created_id(data: object) -> str | None:
    """Server ID from a create response, when the backend returns one."""
    if isinstance(data, list) and len(data) == 1:
        data = data[0]
    if isinstance(data, dict) and data.get("id") is not None:
        return str(data["id"])
    return None
