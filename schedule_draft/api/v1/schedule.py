from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from schedule_draft.api.v1.schemas import (
    AppointmentInputSchema,
    ExplanationResponseSchema,
    MoveRequestSchema,
    NotificationSchema,
    ReconciliationResponseSchema,
    SessionSchema,
)
from schedule_draft.application.exceptions import AppointmentNotFoundError
from schedule_draft.application.ports.booking_gateway import BookingGatewayPort
from schedule_draft.application.use_cases.draft_reconciliation import (
    DraftReconciliationUseCase,
    ReconciliationResult,
)
from schedule_draft.application.utils.transformers import appointment_to_calendar_event, calendar_date_range
from schedule_draft.wiring.dependencies import get_booking_gateway, get_reconciliation_use_case

router = APIRouter()

_STATUS_BY_REASON = {"not_found": 404, "invalid": 422, "remote": 502, "state": 409}


def _respond(result: ReconciliationResult, uc: DraftReconciliationUseCase) -> ReconciliationResponseSchema:
    if not result.success:
        raise HTTPException(
            status_code=_STATUS_BY_REASON.get(result.reason or "state", 409),
            detail={"message": result.message, "revert": result.revert, "action": result.action},
        )
    return ReconciliationResponseSchema(
        action=result.action,
        success=result.success,
        message=result.message,
        appointment_id=result.appointment_id,
        notification=NotificationSchema.from_entity(result.notification),
        session=SessionSchema.from_entity(uc.session),
    )


@router.get("/session", response_model=SessionSchema)
def get_session(uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case)):
    return SessionSchema.from_entity(uc.session)


@router.get("/calendar-events")
def calendar_events(uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case)):
    """Current appointments shaped for the calendar widget."""
    return [appointment_to_calendar_event(a) for a in uc.session.appointments]


@router.get("/events", response_model=ReconciliationResponseSchema)
async def load_events(
    start: datetime = Query(..., description="Calendar view activeStart"),
    end: datetime = Query(..., description="Calendar view activeEnd (exclusive)"),
    uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case),
):
    if end <= start:
        raise HTTPException(status_code=400, detail="end must be after start")
    result = await uc.load_range(calendar_date_range(start, end))
    return _respond(result, uc)


@router.post("/draft", response_model=ReconciliationResponseSchema)
async def enter_draft(uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case)):
    return _respond(await uc.enter_draft(), uc)


@router.post("/draft/save", response_model=ReconciliationResponseSchema)
async def save_draft(uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case)):
    return _respond(await uc.save_draft(), uc)


@router.post("/draft/reset", response_model=ReconciliationResponseSchema)
async def reset_draft(uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case)):
    return _respond(await uc.reset_draft(), uc)


@router.post("/appointments", response_model=ReconciliationResponseSchema, status_code=201)
async def create_appointment(
    req: AppointmentInputSchema,
    uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case),
):
    return _respond(await uc.create_appointment(req.to_entity()), uc)


@router.put("/appointments/{appointment_id}", response_model=ReconciliationResponseSchema)
async def edit_appointment(
    appointment_id: str,
    req: AppointmentInputSchema,
    uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case),
):
    # Start from the loaded appointment so extra embedded resources survive the edit
    base = uc.session.find(appointment_id)
    return _respond(await uc.edit_appointment(req.to_entity(appointment_id, base=base)), uc)


@router.patch("/appointments/{appointment_id}/times", response_model=ReconciliationResponseSchema)
async def move_appointment(
    appointment_id: str,
    req: MoveRequestSchema,
    uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case),
):
    result = await uc.move_appointment(appointment_id, req.start_time, req.end_time)
    return _respond(result, uc)


@router.delete("/appointments/{appointment_id}", response_model=ReconciliationResponseSchema)
async def delete_appointment(
    appointment_id: str,
    uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case),
):
    return _respond(await uc.delete_appointment(appointment_id), uc)


@router.post("/conflicts/evaluate", response_model=ReconciliationResponseSchema)
async def evaluate_conflicts(uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case)):
    result = await uc.refresh_conflicts()
    if not result.success:
        raise HTTPException(status_code=502, detail="Conflict evaluation failed or nothing to evaluate")
    return _respond(result, uc)


@router.get("/appointments/{appointment_id}/explanation", response_model=ExplanationResponseSchema)
def explain_conflicts(
    appointment_id: str,
    uc: DraftReconciliationUseCase = Depends(get_reconciliation_use_case),
):
    try:
        explanation = uc.explain(appointment_id)
    except AppointmentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ExplanationResponseSchema(appointment_id=appointment_id, explanation=explanation)


@router.get("/resources/{kind}")
async def list_resources(
    kind: str,
    gateway: BookingGatewayPort = Depends(get_booking_gateway),
):
    fetchers = {
        "clients": gateway.fetch_clients,
        "services": gateway.fetch_services,
        "workers": gateway.fetch_workers,
        "locations": gateway.fetch_locations,
    }
    fetch = fetchers.get(kind)
    if fetch is None:
        raise HTTPException(status_code=404, detail=f"Unknown resource kind: {kind}")
    return [item.model_dump(mode="json", by_alias=True) for item in await fetch()]
