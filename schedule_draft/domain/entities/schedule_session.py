from __future__ import annotations

from dataclasses import dataclass, field

from schedule_draft.domain.entities.appointment import Appointment, DateRange


@dataclass(frozen=True)
class Notification:
    severity: str  # "info" | "success" | "warning" | "error"
    message: str
    persistent: bool = False


@dataclass
class ScheduleSession:
    """Shared calendar state.

    Only DraftReconciliationUseCase writes to a session; everything else reads.
    `appointments` is always replaced with a new tuple so identity changes
    whenever the list does.
    """

    appointments: tuple[Appointment, ...] = ()
    visible_range: DateRange | None = None
    is_draft_mode: bool = False
    original_appointments: tuple[Appointment, ...] = ()
    modified_event_ids: set[str] = field(default_factory=set)
    removed_event_ids: set[str] = field(default_factory=set)
    is_schedule_valid: bool | None = None
    notification: Notification | None = None
    revision: int = 0
    # Progress of earlier Save attempts, so a retry only sends what is still pending
    saved_draft_ids: dict[str, str | None] = field(default_factory=dict)
    deleted_event_ids: set[str] = field(default_factory=set)

    def find(self, appointment_id: str) -> Appointment | None:
        for appointment in self.appointments:
            if appointment.id == appointment_id:
                return appointment
        return None

    def replace_appointments(self, appointments: list[Appointment] | tuple[Appointment, ...]) -> int:
        self.appointments = tuple(appointments)
        self.revision += 1
        return self.revision

    def begin_draft(
        self,
        original: tuple[Appointment, ...],
        proposed: list[Appointment],
        modified_ids: set[str],
        removed_ids: set[str],
        is_valid: bool,
    ) -> None:
        self.original_appointments = original
        self.replace_appointments(proposed)
        self.modified_event_ids = set(modified_ids)
        self.removed_event_ids = set(removed_ids)
        self.is_schedule_valid = is_valid
        self.is_draft_mode = True

    def end_draft(self) -> None:
        self.is_draft_mode = False
        self.original_appointments = ()
        self.modified_event_ids = set()
        self.removed_event_ids = set()
        self.is_schedule_valid = None
        self.saved_draft_ids = {}
        self.deleted_event_ids = set()

    def mark_modified(self, appointment_id: str) -> None:
        self.modified_event_ids.add(appointment_id)
