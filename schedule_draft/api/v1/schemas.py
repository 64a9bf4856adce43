from __future__ import annotations

from pydantic import BaseModel, Field

from schedule_draft.domain.entities.appointment import Appointment, ConflictRecord
from schedule_draft.domain.entities.schedule_session import Notification, ScheduleSession


class ConflictResultSchema(BaseModel):
    booking_id: int
    locations: list[int] = Field(default_factory=list)
    workers: list[int] = Field(default_factory=list)
    conflicts_with_ids: list[int] = Field(default_factory=list)


class ConflictRecordSchema(BaseModel):
    evaluation_criteria: str
    results: list[ConflictResultSchema] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, record: ConflictRecord) -> ConflictRecordSchema:
        return cls(
            evaluation_criteria=record.evaluation_criteria,
            results=[
                ConflictResultSchema(
                    booking_id=r.booking_id,
                    locations=list(r.locations),
                    workers=list(r.workers),
                    conflicts_with_ids=list(r.conflicts_with_ids),
                )
                for r in record.results
            ],
        )


class AppointmentInputSchema(BaseModel):
    client_name: str = ""
    service: str = ""
    provider: str = ""
    room: str = ""
    start_time: str
    end_time: str
    client_id: int | None = None
    service_id: int | None = None
    provider_id: int | None = None
    room_id: int | None = None
    provider_locked: bool | None = None
    room_locked: bool | None = None

    def to_entity(self, appointment_id: str = "", base: Appointment | None = None) -> Appointment:
        fields = self.model_dump()
        if base is not None:
            return base.with_changes(**fields)
        return Appointment(id=appointment_id, **fields)


class AppointmentSchema(AppointmentInputSchema):
    id: str
    conflicts: list[ConflictRecordSchema] = Field(default_factory=list)
    is_conflicting: bool = False
    is_multi_resource: bool = False

    @classmethod
    def from_entity(cls, appointment: Appointment) -> AppointmentSchema:
        return cls(
            id=appointment.id,
            client_name=appointment.client_name,
            service=appointment.service,
            provider=appointment.provider,
            room=appointment.room,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            client_id=appointment.client_id,
            service_id=appointment.service_id,
            provider_id=appointment.provider_id,
            room_id=appointment.room_id,
            provider_locked=appointment.provider_locked,
            room_locked=appointment.room_locked,
            conflicts=[ConflictRecordSchema.from_entity(c) for c in appointment.conflicts],
            is_conflicting=appointment.has_conflicts,
            is_multi_resource=appointment.is_multi_resource,
        )


class MoveRequestSchema(BaseModel):
    start_time: str | None = None
    end_time: str | None = None


class NotificationSchema(BaseModel):
    severity: str
    message: str
    persistent: bool = False

    @classmethod
    def from_entity(cls, notification: Notification | None) -> NotificationSchema | None:
        if notification is None:
            return None
        return cls(severity=notification.severity, message=notification.message, persistent=notification.persistent)


class SessionSchema(BaseModel):
    is_draft_mode: bool
    modified_event_ids: list[str]
    removed_event_ids: list[str]
    is_schedule_valid: bool | None = None
    range_start: str | None = None
    range_end: str | None = None
    notification: NotificationSchema | None = None
    appointments: list[AppointmentSchema]

    @classmethod
    def from_entity(cls, session: ScheduleSession) -> SessionSchema:
        visible = session.visible_range
        return cls(
            is_draft_mode=session.is_draft_mode,
            modified_event_ids=sorted(session.modified_event_ids),
            removed_event_ids=sorted(session.removed_event_ids),
            is_schedule_valid=session.is_schedule_valid,
            range_start=visible.start.isoformat() if visible else None,
            range_end=visible.end.isoformat() if visible else None,
            notification=NotificationSchema.from_entity(session.notification),
            appointments=[AppointmentSchema.from_entity(a) for a in session.appointments],
        )


class ReconciliationResponseSchema(BaseModel):
    action: str
    success: bool
    message: str | None = None
    appointment_id: str | None = None
    notification: NotificationSchema | None = None
    session: SessionSchema


class ExplanationResponseSchema(BaseModel):
    appointment_id: str
    explanation: str
