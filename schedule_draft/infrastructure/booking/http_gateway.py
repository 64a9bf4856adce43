from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from schedule_draft.application.dto.booking import (
    BackendCalendarEvent,
    BackendClient,
    BackendConflict,
    BackendLocation,
    BackendServiceRef,
    BackendWorker,
)
from schedule_draft.application.exceptions import BookingGatewayError
from schedule_draft.application.ports.booking_gateway import (
    BookingGatewayPort,
    EvaluateResult,
    FetchEventsResult,
    MutationResult,
    OptimizeResult,
)
from schedule_draft.application.utils.transformers import (
    appointment_to_booking_request,
    appointment_to_update_request,
)
from schedule_draft.core.config import settings
from schedule_draft.domain.entities.appointment import Appointment, DateRange

ModelT = TypeVar("ModelT", bound=BaseModel)


def _format_instant(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _unwrap_list(data: Any, *keys: str) -> list[Any]:
    """Accept either a bare JSON array or an object wrapping one under a known key."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            value = data.get(key)
            if isinstance(value, list):
                return value
    return []


class HttpBookingGateway(BookingGatewayPort):
    def __init__(
        self,
        base_url: str | None = None,
        calendar_id: int | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or settings.SCHEDULE_API_BASE_URL).rstrip("/")
        self._calendar_id = calendar_id if calendar_id is not None else settings.SCHEDULE_CALENDAR_ID
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout or settings.SCHEDULE_HTTP_TIMEOUT,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        self._logger = logging.getLogger(__name__)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        try:
            resp = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            raise BookingGatewayError(f"Request to {path} failed: {e}") from e

        if resp.status_code >= 400:
            self._logger.error(
                "Scheduling API error",
                extra={"status": resp.status_code, "action": f"{method} {path}", "error": resp.text[:500]},
            )
            raise BookingGatewayError(f"HTTP error! status: {resp.status_code}, {resp.text}")

        # Mutations may answer with an empty or non-JSON body
        content_type = resp.headers.get("content-type", "")
        if "application/json" not in content_type or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise BookingGatewayError(f"Invalid JSON from {path}") from e

    async def _fetch_directory(self, kind: str, model: type[ModelT]) -> list[ModelT]:
        try:
            data = await self._request("GET", f"/{kind}/all", params={"calendarId": self._calendar_id})
            return [model.model_validate(item) for item in _unwrap_list(data)]
        except (BookingGatewayError, ValueError) as e:
            self._logger.error("Error fetching resource directory", extra={"action": kind, "error": str(e)})
            return []

    async def fetch_events(self, date_range: DateRange) -> FetchEventsResult:
        params = {
            "from": _format_instant(date_range.start),
            "to": _format_instant(date_range.end),
            "calendarId": self._calendar_id,
        }
        try:
            data = await self._request("GET", "/booking", params=params)
            events = [BackendCalendarEvent.model_validate(e) for e in _unwrap_list(data, "events", "bookings")]
        except (BookingGatewayError, ValueError) as e:
            self._logger.error("Error fetching events", extra={"error": str(e)})
            return FetchEventsResult(success=False, error=str(e))

        self._logger.info("Events fetched", extra={"count": len(events)})
        return FetchEventsResult(success=True, events=events)

    async def fetch_clients(self) -> list[BackendClient]:
        return await self._fetch_directory("client", BackendClient)

    async def fetch_services(self) -> list[BackendServiceRef]:
        return await self._fetch_directory("service", BackendServiceRef)

    async def fetch_workers(self) -> list[BackendWorker]:
        return await self._fetch_directory("worker", BackendWorker)

    async def fetch_locations(self) -> list[BackendLocation]:
        return await self._fetch_directory("location", BackendLocation)

    async def create_booking(self, appointment: Appointment) -> MutationResult:
        try:
            payload = appointment_to_booking_request(appointment, self._calendar_id).to_payload()
            data = await self._request("POST", "/booking", json=payload)
        except (BookingGatewayError, ValueError) as e:
            self._logger.error("Error creating booking", extra={"appointment_id": appointment.id, "error": str(e)})
            return MutationResult(success=False, error=str(e))

        self._logger.info("Booking created", extra={"appointment_id": appointment.id})
        return MutationResult(success=True, data=data)

    async def update_booking(self, appointment: Appointment) -> MutationResult:
        try:
            payload = [appointment_to_update_request(appointment, self._calendar_id).to_payload()]
            data = await self._request("PUT", "/booking", json=payload)
        except (BookingGatewayError, ValueError) as e:
            self._logger.error("Error updating booking", extra={"appointment_id": appointment.id, "error": str(e)})
            return MutationResult(success=False, error=str(e))

        self._logger.info("Booking updated", extra={"appointment_id": appointment.id})
        return MutationResult(success=True, data=data)

    async def delete_booking(self, appointment_id: str) -> MutationResult:
        try:
            await self._request(
                "DELETE",
                "/booking",
                params={"id": appointment_id, "calendarId": self._calendar_id},
            )
        except BookingGatewayError as e:
            self._logger.error("Error deleting booking", extra={"appointment_id": appointment_id, "error": str(e)})
            return MutationResult(success=False, error=str(e))

        self._logger.info("Booking deleted", extra={"appointment_id": appointment_id})
        return MutationResult(success=True)

    async def evaluate_bookings(self, appointments: list[Appointment]) -> EvaluateResult:
        try:
            payload = [appointment_to_update_request(a, self._calendar_id).to_payload() for a in appointments]
            data = await self._request(
                "POST",
                "/booking/evaluate",
                params={"calendarId": self._calendar_id},
                json=payload,
            )
            conflicts = [BackendConflict.model_validate(c) for c in _unwrap_list(data, "conflicts")]
        except (BookingGatewayError, ValueError) as e:
            self._logger.error("Error evaluating bookings", extra={"count": len(appointments), "error": str(e)})
            return EvaluateResult(success=False, error=str(e))

        return EvaluateResult(success=True, conflicts=conflicts)

    async def optimize_bookings(self, date_range: DateRange) -> OptimizeResult:
        params = {
            "from": _format_instant(date_range.start),
            "to": _format_instant(date_range.end),
            "calendarId": self._calendar_id,
        }
        try:
            data = await self._request("POST", "/booking/optimize", params=params)
            events = [
                BackendCalendarEvent.model_validate(e)
                for e in _unwrap_list(data, "optimizedEvents", "bookings", "events")
            ]
        except (BookingGatewayError, ValueError) as e:
            self._logger.error("Error optimizing bookings", extra={"error": str(e)})
            return OptimizeResult(success=False, error=str(e))

        is_valid = data.get("isValid") if isinstance(data, dict) else None
        self._logger.info("Optimization finished", extra={"count": len(events), "status": f"valid={is_valid}"})
        return OptimizeResult(success=True, optimized_events=events, is_valid=is_valid)
