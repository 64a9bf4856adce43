from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from schedule_draft.domain.entities.appointment import ConflictRecord, ConflictResult, ResourceRef


class _BackendModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BackendServiceRef(_BackendModel):
    id: int
    name: str = ""
    description: str = ""
    calendar_id: int | None = Field(default=None, alias="calendarId")


class BackendAbsence(_BackendModel):
    absence_time_range: dict[str, str] = Field(default_factory=dict, alias="absenceTimeRange")
    reason: str = ""


class BackendPreferrableResource(_BackendModel):
    resource_id: int = Field(alias="resourceId")
    on_services_ids: list[int] = Field(default_factory=list, alias="onServicesIds")


class BackendLocation(_BackendModel):
    id: int
    name: str = ""
    is_locked: bool = Field(default=False, alias="isLocked")
    description: str = ""
    max_capacity: int | None = Field(default=None, alias="maxCapacity")
    available_services: list[BackendServiceRef] = Field(default_factory=list, alias="availableServices")
    absences: list[BackendAbsence] = Field(default_factory=list)
    calendar_id: int | None = Field(default=None, alias="calendarId")

    def to_ref(self) -> ResourceRef:
        return ResourceRef(id=self.id, name=self.name, is_locked=self.is_locked)


class BackendWorker(_BackendModel):
    id: int
    name: str = ""
    is_locked: bool = Field(default=False, alias="isLocked")
    description: str = ""
    available_services: list[BackendServiceRef] = Field(default_factory=list, alias="availableServices")
    absences: list[BackendAbsence] = Field(default_factory=list)
    custom_data: str | None = Field(default=None, alias="customData")
    preferrable_resources: list[BackendPreferrableResource] = Field(
        default_factory=list, alias="preferrableResources"
    )
    calendar_id: int | None = Field(default=None, alias="calendarId")

    def to_ref(self) -> ResourceRef:
        return ResourceRef(id=self.id, name=self.name, is_locked=self.is_locked)


class BackendClient(_BackendModel):
    id: int
    name: str = ""
    description: str = ""
    preferrable_resources: list[BackendPreferrableResource] = Field(
        default_factory=list, alias="preferrableResources"
    )
    calendar_id: int | None = Field(default=None, alias="calendarId")


class BackendConflictResult(_BackendModel):
    booking_id: int = Field(alias="bookingId")
    locations: list[int] = Field(default_factory=list)
    workers: list[int] = Field(default_factory=list)
    conflicts_with_ids: list[int] = Field(default_factory=list, alias="conflictsWithIds")

    def to_entity(self) -> ConflictResult:
        return ConflictResult(
            booking_id=self.booking_id,
            locations=tuple(self.locations),
            workers=tuple(self.workers),
            conflicts_with_ids=tuple(self.conflicts_with_ids),
        )


class BackendConflict(_BackendModel):
    evaluation_criteria: str = Field(alias="evaluationCriteria")
    results: list[BackendConflictResult] = Field(default_factory=list)

    def to_entity(self) -> ConflictRecord:
        return ConflictRecord(
            evaluation_criteria=self.evaluation_criteria,
            results=tuple(r.to_entity() for r in self.results),
        )


class BackendCalendarEvent(_BackendModel):
    id: int
    name: str = ""
    description: str = ""
    starting: str
    ending: str
    services: list[BackendServiceRef] = Field(default_factory=list)
    locations: list[BackendLocation] = Field(default_factory=list)
    workers: list[BackendWorker] = Field(default_factory=list)
    clients: list[BackendClient] = Field(default_factory=list)
    is_locked: bool = Field(default=False, alias="isLocked")
    calendar_id: int | None = Field(default=None, alias="calendarId")
    conflicts: list[BackendConflict] | None = None


class ResourceLink(_BackendModel):
    id: int
    # The booking endpoints spell this one with a capital I.
    is_locked: bool = Field(default=False, alias="IsLocked")


class CreateBookingRequest(_BackendModel):
    calendar_id: int = Field(alias="calendarId")
    name: str
    description: str
    starting: str
    ending: str
    locations: list[ResourceLink] = Field(default_factory=list)
    workers: list[ResourceLink] = Field(default_factory=list)
    clients: list[ResourceLink] = Field(default_factory=list)
    services_ids: list[int] = Field(default_factory=list, alias="servicesIds")
    is_locked: bool = Field(default=False, alias="isLocked")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class UpdateBookingRequest(CreateBookingRequest):
    id: int
