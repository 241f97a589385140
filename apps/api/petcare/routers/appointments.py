"""Appointment booking, listing and lifecycle endpoints."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ..dependencies import get_actor, get_lifecycle, get_query_service
from ..models.actor import Actor
from ..models.appointment import Appointment, CompletionDetails
from ..models.enums import AppointmentStatus, AppointmentType
from ..schemas import appointments as appointments_schema
from ..schemas.booking import BookingRequest
from ..services import catalog
from ..services.lifecycle import AppointmentLifecycle
from ..services.queries import AppointmentQueryService
from ..services.summary import summarize

router = APIRouter()


@router.get("/types", response_model=list[appointments_schema.AppointmentTypeOption])
async def list_appointment_types() -> list[appointments_schema.AppointmentTypeOption]:
    """Return appointment types with their default durations."""

    return [
        appointments_schema.AppointmentTypeOption(
            value=info.value, label=info.label, duration_minutes=info.duration_minutes
        )
        for info in catalog.list_types()
    ]


@router.post("", response_model=Appointment, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    payload: BookingRequest,
    actor: Actor = Depends(get_actor),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
) -> Appointment:
    """Validate and submit a booking request."""

    if actor.is_veterinarian:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Only pet owners can book appointments"
        )
    return await lifecycle.book(payload, actor=actor)


@router.get("", response_model=appointments_schema.AppointmentListView)
async def list_appointments(
    status_filter: AppointmentStatus | None = Query(default=None, alias="status"),
    type_filter: AppointmentType | None = Query(default=None, alias="type"),
    pet_id: str | None = Query(default=None, alias="petId"),
    on_date: date | None = Query(default=None, alias="date"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    queries: AppointmentQueryService = Depends(get_query_service),
) -> appointments_schema.OwnerAppointmentView | appointments_schema.VeterinarianDirectoryView:
    """Return the owner's appointments or, for veterinarians, the peer directory."""

    filters = appointments_schema.AppointmentFilters(
        status=status_filter,
        type=type_filter,
        pet_id=pet_id,
        on_date=on_date,
        page=page,
        limit=limit,
    )
    return await queries.list(actor, filters)


@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
) -> Appointment:
    appointment = await lifecycle.fetch(appointment_id)
    _ensure_participant(actor, appointment)
    return appointment


@router.get("/{appointment_id}/summary", response_model=appointments_schema.SchedulingSummary)
async def get_appointment_summary(
    appointment_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
) -> appointments_schema.SchedulingSummary:
    """Return display labels for the appointment's date, start and end time."""

    appointment = await lifecycle.fetch(appointment_id)
    _ensure_participant(actor, appointment)
    return summarize(appointment)


@router.post("/{appointment_id}/confirm", response_model=Appointment)
async def confirm_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_actor),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
) -> Appointment:
    appointment = await lifecycle.fetch(appointment_id)
    return await lifecycle.confirm(appointment, actor=actor)


@router.post("/{appointment_id}/complete", response_model=Appointment)
async def complete_appointment(
    appointment_id: str,
    details: CompletionDetails | None = Body(default=None),
    actor: Actor = Depends(get_actor),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
) -> Appointment:
    appointment = await lifecycle.fetch(appointment_id)
    return await lifecycle.complete(appointment, actor=actor, details=details)


@router.post("/{appointment_id}/cancel", response_model=Appointment)
async def cancel_appointment(
    appointment_id: str,
    payload: appointments_schema.CancelRequest,
    actor: Actor = Depends(get_actor),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
) -> Appointment:
    appointment = await lifecycle.fetch(appointment_id)
    return await lifecycle.cancel(appointment, payload.reason, actor=actor)


@router.post("/{appointment_id}/propose-time", response_model=Appointment)
async def propose_time_change(
    appointment_id: str,
    payload: appointments_schema.TimeChangeRequest,
    actor: Actor = Depends(get_actor),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
) -> Appointment:
    appointment = await lifecycle.fetch(appointment_id)
    return await lifecycle.propose_time_change(appointment, payload.proposed_at, payload.reason, actor=actor)


def _ensure_participant(actor: Actor, appointment: Appointment) -> None:
    """Only the owner and the assigned veterinarian may view an appointment."""

    if actor.id not in (appointment.owner_id, appointment.vet_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to access this appointment"
        )
