"""Role-specific appointment listings."""
from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Iterable

from ..core.config import settings
from ..models.actor import Actor
from ..models.appointment import Appointment
from ..repositories.appointments import AppointmentRepository
from ..schemas.appointments import (
    AppointmentFilters,
    OwnerAppointmentView,
    VeterinarianDirectoryView,
)

logger = logging.getLogger(__name__)


def matches(
    appointment: Appointment,
    filters: AppointmentFilters,
    *,
    owner_id: str | None = None,
    tz: tzinfo | None = None,
) -> bool:
    """Return True when the appointment satisfies every filter that is set."""

    if owner_id is not None and appointment.owner_id != owner_id:
        return False
    if filters.status is not None and appointment.status is not filters.status:
        return False
    if filters.type is not None and appointment.type is not filters.type:
        return False
    if filters.pet_id and appointment.pet_id != filters.pet_id:
        return False
    if filters.on_date is not None:
        local_day = appointment.scheduled_at.astimezone(tz or settings.clinic_tz).date()
        if local_day != filters.on_date:
            return False
    return True


def apply_filters(
    appointments: Iterable[Appointment],
    filters: AppointmentFilters,
    *,
    owner_id: str | None = None,
    tz: tzinfo | None = None,
) -> list[Appointment]:
    """Filter appointments, keeping their original order."""

    return [item for item in appointments if matches(item, filters, owner_id=owner_id, tz=tz)]


class AppointmentQueryService:
    """Build the listing an actor sees on the appointments page.

    Pet owners get their own appointments. Veterinarians manage their
    schedule elsewhere and get the directory of fellow veterinarians from the
    same entry point, whatever filters they pass.
    """

    def __init__(self, repository: AppointmentRepository, *, tz: tzinfo | None = None) -> None:
        self._repository = repository
        self._tz = tz

    async def veterinarian_directory(self, actor: Actor) -> VeterinarianDirectoryView:
        veterinarians = await self._repository.list_veterinarians()
        peers = [vet for vet in veterinarians if vet.id != actor.id]
        return VeterinarianDirectoryView(veterinarians=peers)

    async def owner_appointments(
        self,
        actor: Actor,
        filters: AppointmentFilters | None = None,
    ) -> OwnerAppointmentView:
        filters = filters or AppointmentFilters()
        fetched = await self._repository.list_appointments(actor.id, filters)
        appointments = apply_filters(fetched, filters, owner_id=actor.id, tz=self._tz)
        if len(appointments) != len(fetched):
            logger.debug(
                "Dropped %d appointments outside filters for owner %s",
                len(fetched) - len(appointments),
                actor.id,
            )
        return OwnerAppointmentView(appointments=appointments)

    async def list(
        self,
        actor: Actor,
        filters: AppointmentFilters | None = None,
    ) -> OwnerAppointmentView | VeterinarianDirectoryView:
        if actor.is_veterinarian:
            return await self.veterinarian_directory(actor)
        return await self.owner_appointments(actor, filters)
