"""Booking and status lifecycle for appointments.

Only one status change per appointment id runs at a time. A caller that had
to wait for another change on the same id, or whose copy disagrees with the
latest record seen here, is re-checked against a freshly fetched record so
that a racing cancel and complete cannot both succeed. A failed backend write
leaves the latest known record as it was, and a read that lands after a newer
write never replaces the newer record.
"""
from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo

from ..core.clock import Clock, ensure_tz, utcnow
from ..core.errors import (
    AlreadyFinalized,
    BackendError,
    BookingValidationError,
    StaleAppointmentError,
    TransitionNotPermitted,
)
from ..models.actor import Actor
from ..models.appointment import Appointment, CompletionDetails, TimeChangeProposal
from ..models.enums import AppointmentStatus
from ..repositories.appointments import AppointmentRepository
from ..schemas.booking import BookingRequest, FieldError, ValidationCode
from .transitions import ensure_permitted, is_behind, is_terminal, plan_transition
from .validation import validate_booking

logger = logging.getLogger(__name__)

DEFAULT_MAX_TRACKED = 1024


@dataclass
class _IdLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class AppointmentLifecycle:
    """Validate bookings and mediate status changes against the backend.

    At most ``max_tracked`` latest records are kept, least recently used
    first out. Records with a change in flight are never evicted.
    """

    def __init__(
        self,
        repository: AppointmentRepository,
        *,
        clock: Clock = utcnow,
        max_tracked: int = DEFAULT_MAX_TRACKED,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._max_tracked = max_tracked
        self._locks: dict[str, _IdLock] = {}
        self._latest: OrderedDict[str, Appointment] = OrderedDict()

    def latest(self, appointment_id: str) -> Appointment | None:
        """Return the most recent record seen for ``appointment_id``."""

        return self._latest.get(appointment_id)

    async def book(
        self,
        request: BookingRequest,
        *,
        actor: Actor | None = None,
        tz: tzinfo | None = None,
    ) -> Appointment:
        """Validate a booking request and create it on the backend.

        The booking belongs to ``actor`` when given. The initial status is
        whatever the backend assigns.
        """

        payload = validate_booking(request, clock=self._clock, tz=tz).raise_for_errors()
        if actor is not None:
            payload = payload.model_copy(update={"owner_id": actor.id})
        try:
            appointment = await self._repository.create_appointment(payload, actor=actor)
        except BackendError as exc:
            logger.warning("Booking for pet %s rejected: %s", payload.pet_id, exc)
            raise
        self._remember(appointment)
        logger.info(
            "Booked appointment %s (%s, %s min) with status %s",
            appointment.id,
            appointment.type.value,
            appointment.estimated_duration_minutes,
            appointment.status.value,
        )
        return appointment

    async def fetch(self, appointment_id: str) -> Appointment:
        """Read the record from the backend, keeping any newer one already seen."""

        return self._remember(await self._repository.get_appointment(appointment_id))

    async def confirm(self, appointment: Appointment, *, actor: Actor | None = None) -> Appointment:
        return await self._transition(appointment, AppointmentStatus.CONFIRMED, actor=actor)

    async def complete(
        self,
        appointment: Appointment,
        *,
        actor: Actor | None = None,
        details: CompletionDetails | None = None,
    ) -> Appointment:
        return await self._transition(appointment, AppointmentStatus.COMPLETED, actor=actor, details=details)

    async def cancel(
        self,
        appointment: Appointment,
        reason: str,
        *,
        actor: Actor | None = None,
    ) -> Appointment:
        return await self._transition(appointment, AppointmentStatus.CANCELLED, actor=actor, reason=reason)

    async def propose_time_change(
        self,
        appointment: Appointment,
        proposed_at: datetime,
        reason: str | None,
        *,
        actor: Actor,
    ) -> Appointment:
        """Suggest a different time for a pending or confirmed appointment."""

        if actor.id not in (appointment.owner_id, appointment.vet_id):
            raise TransitionNotPermitted(
                appointment.id, f"{actor.id} may not propose a new time for appointment {appointment.id}"
            )
        now = ensure_tz(self._clock())
        proposed_at = ensure_tz(proposed_at)
        if proposed_at <= now:
            raise BookingValidationError(
                [
                    FieldError(
                        code=ValidationCode.DATE_NOT_IN_FUTURE,
                        field="proposedAt",
                        message="Please select a future date and time",
                    )
                ]
            )

        async with self._exclusive(appointment.id) as contended:
            current = await self._current(appointment, refresh=contended)
            if is_terminal(current.status):
                raise AlreadyFinalized(current.id, current.status, None, action="propose a new time")
            if current.status is not appointment.status:
                raise StaleAppointmentError(current.id, current.status, None, appointment.status)
            proposal = TimeChangeProposal(
                proposed_at=proposed_at,
                reason=(reason or "").strip() or None,
                proposed_by=actor.id,
                created_at=now,
            )
            try:
                updated = await self._repository.propose_time_change(appointment.id, proposal, actor=actor)
            except BackendError as exc:
                logger.warning("Proposing a new time for appointment %s failed: %s", appointment.id, exc)
                raise
            self._remember(updated)
        logger.info("Time change proposed for appointment %s by %s", appointment.id, actor.id)
        return updated

    async def _transition(
        self,
        appointment: Appointment,
        target: AppointmentStatus,
        *,
        actor: Actor | None,
        reason: str | None = None,
        details: CompletionDetails | None = None,
    ) -> Appointment:
        if actor is not None:
            ensure_permitted(actor, appointment, target)

        async with self._exclusive(appointment.id) as contended:
            current = await self._current(appointment, refresh=contended)
            change = plan_transition(current, target, reason=reason, expected=appointment.status)
            if change is None:
                logger.info("Appointment %s already %s", current.id, current.status.value)
                return current

            if target is AppointmentStatus.CONFIRMED:
                change = replace(change, vet_accepted_at=ensure_tz(self._clock()))
            elif details is not None:
                change = replace(change, details=details)

            try:
                updated = await self._repository.update_status(appointment.id, change, actor=actor)
            except BackendError as exc:
                logger.warning(
                    "Moving appointment %s to %s failed: %s", appointment.id, target.value, exc
                )
                raise
            self._remember(updated)

        logger.info(
            "Appointment %s moved from %s to %s",
            appointment.id,
            current.status.value,
            updated.status.value,
        )
        return updated

    async def _current(self, appointment: Appointment, *, refresh: bool) -> Appointment:
        known = self._latest.get(appointment.id)
        if refresh or (known is not None and known.status is not appointment.status):
            return await self.fetch(appointment.id)
        return known or appointment

    def _remember(self, appointment: Appointment) -> Appointment:
        known = self._latest.get(appointment.id)
        if known is not None and is_behind(appointment.status, known.status):
            logger.info(
                "Ignoring stale read of appointment %s (%s, already %s)",
                appointment.id,
                appointment.status.value,
                known.status.value,
            )
            appointment = known
        self._latest[appointment.id] = appointment
        self._latest.move_to_end(appointment.id)
        for key in list(self._latest):
            if len(self._latest) <= self._max_tracked:
                break
            if key not in self._locks:
                del self._latest[key]
        return appointment

    @asynccontextmanager
    async def _exclusive(self, appointment_id: str) -> AsyncIterator[bool]:
        """Hold the lock for ``appointment_id``; yields True if another caller got there first."""

        entry = self._locks.setdefault(appointment_id, _IdLock())
        contended = entry.users > 0
        entry.users += 1
        try:
            async with entry.lock:
                yield contended
        finally:
            entry.users -= 1
            if not entry.users:
                del self._locks[appointment_id]
