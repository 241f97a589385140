"""Shared fixtures for scheduling tests."""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any, Callable

import pytest

from petcare.core.errors import BackendError
from petcare.models.actor import Actor
from petcare.models.appointment import Appointment, TimeChangeProposal
from petcare.models.enums import AppointmentStatus, AppointmentType
from petcare.models.veterinarian import VeterinarianSummary
from petcare.schemas.appointments import AppointmentFilters
from petcare.schemas.booking import BookingPayload
from petcare.services.transitions import StatusChange

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class FakeAppointmentRepository:
    """In-memory stand-in for the remote appointment store."""

    def __init__(self) -> None:
        self.records: dict[str, Appointment] = {}
        self.created: list[BookingPayload] = []
        self.updates: list[tuple[str, StatusChange]] = []
        self.list_calls: list[tuple[str, AppointmentFilters]] = []
        self.write_actors: list[Actor | None] = []
        self.veterinarians: list[VeterinarianSummary] = []
        self.owner_id = "owner-1"
        self.initial_status = AppointmentStatus.PENDING
        self.fail_create_with: Exception | None = None
        self.fail_updates_with: Exception | None = None
        self.hold_reads: asyncio.Event | None = None
        self._ids = count(100)

    def add(self, appointment: Appointment) -> Appointment:
        self.records[appointment.id] = appointment
        return appointment

    async def create_appointment(self, payload: BookingPayload, *, actor: Actor | None = None) -> Appointment:
        await asyncio.sleep(0)
        if self.fail_create_with is not None:
            raise self.fail_create_with
        self.created.append(payload)
        self.write_actors.append(actor)
        data = payload.model_dump()
        data["owner_id"] = data["owner_id"] or self.owner_id
        appointment = Appointment(
            id=f"appt-{next(self._ids)}",
            status=self.initial_status,
            created_at=NOW,
            **data,
        )
        return self.add(appointment)

    async def list_appointments(self, owner_id: str, filters: AppointmentFilters) -> list[Appointment]:
        self.list_calls.append((owner_id, filters))
        return list(self.records.values())

    async def get_appointment(self, appointment_id: str) -> Appointment:
        try:
            record = self.records[appointment_id]
        except KeyError:
            raise BackendError("Appointment not found", status_code=404) from None
        if self.hold_reads is not None:
            await self.hold_reads.wait()
        return record

    async def update_status(
        self, appointment_id: str, change: StatusChange, *, actor: Actor | None = None
    ) -> Appointment:
        self.updates.append((appointment_id, change))
        self.write_actors.append(actor)
        await asyncio.sleep(0)
        if self.fail_updates_with is not None:
            raise self.fail_updates_with
        data = self.records[appointment_id].model_dump()
        data["status"] = change.status
        data["cancellation_reason"] = change.cancellation_reason
        if change.vet_accepted_at is not None:
            data["vet_accepted_at"] = change.vet_accepted_at
        if change.details is not None:
            data.update(change.details.model_dump(exclude_none=True))
        return self.add(Appointment.model_validate(data))

    async def list_veterinarians(self) -> list[VeterinarianSummary]:
        return list(self.veterinarians)

    async def propose_time_change(
        self, appointment_id: str, proposal: TimeChangeProposal, *, actor: Actor | None = None
    ) -> Appointment:
        self.write_actors.append(actor)
        current = self.records[appointment_id]
        updated = current.model_copy(
            update={"proposed_time_changes": [*current.proposed_time_changes, proposal]}
        )
        return self.add(updated)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def repository() -> FakeAppointmentRepository:
    return FakeAppointmentRepository()


@pytest.fixture
def make_appointment() -> Callable[..., Appointment]:
    def _make(**overrides: Any) -> Appointment:
        data: dict[str, Any] = {
            "id": "appt-1",
            "pet_id": "pet-1",
            "owner_id": "owner-1",
            "vet_id": "vet-1",
            "type": AppointmentType.CHECKUP,
            "reason": "Annual checkup",
            "scheduled_at": NOW + timedelta(days=1),
            "status": AppointmentStatus.PENDING,
            "created_at": NOW,
        }
        data.update(overrides)
        return Appointment(**data)

    return _make
