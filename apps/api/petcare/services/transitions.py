"""Appointment status graph and transition legality checks."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..core.errors import (
    AlreadyFinalized,
    InvalidTransition,
    MissingCancellationReason,
    StaleAppointmentError,
    TransitionNotPermitted,
)
from ..models.actor import Actor
from ..models.appointment import Appointment, CompletionDetails
from ..models.enums import AppointmentStatus

TransitionMap = dict[AppointmentStatus, frozenset[AppointmentStatus]]

VALID_TRANSITIONS: TransitionMap = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES: frozenset[AppointmentStatus] = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)


@dataclass(frozen=True)
class StatusChange:
    """Status update sent to the backend."""

    status: AppointmentStatus
    cancellation_reason: str | None = None
    details: CompletionDetails | None = None
    vet_accepted_at: datetime | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": self.status.value}
        if self.cancellation_reason:
            payload["cancellationReason"] = self.cancellation_reason
        if self.vet_accepted_at is not None:
            payload["vetAccepted"] = True
            payload["vetAcceptedAt"] = self.vet_accepted_at.isoformat()
        if self.details is not None:
            payload.update(self.details.model_dump(by_alias=True, mode="json", exclude_none=True))
        return payload


def is_terminal(status: AppointmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def get_valid_targets(status: AppointmentStatus) -> frozenset[AppointmentStatus]:
    return VALID_TRANSITIONS.get(status, frozenset())


def reachable_from(status: AppointmentStatus) -> frozenset[AppointmentStatus]:
    """Return every status reachable from ``status`` in one or more steps."""

    seen: set[AppointmentStatus] = set()
    frontier = list(get_valid_targets(status))
    while frontier:
        nxt = frontier.pop()
        if nxt not in seen:
            seen.add(nxt)
            frontier.extend(get_valid_targets(nxt))
    return frozenset(seen)


def is_behind(candidate: AppointmentStatus, known: AppointmentStatus) -> bool:
    """Return True when ``candidate`` is an earlier point in the lifecycle than ``known``."""

    if candidate is known:
        return False
    return is_terminal(known) or known in reachable_from(candidate)


def plan_transition(
    current: Appointment,
    target: AppointmentStatus,
    *,
    reason: str | None = None,
    expected: AppointmentStatus | None = None,
) -> StatusChange | None:
    """Return the change needed to move ``current`` to ``target``.

    ``None`` means the change is already applied (a repeated cancel with the
    same reason). ``expected`` is the status the caller last saw; a mismatch
    means the caller is working from a stale copy.
    """

    target = AppointmentStatus(target)
    cleaned_reason = (reason or "").strip()
    if target is AppointmentStatus.CANCELLED:
        if not cleaned_reason:
            raise MissingCancellationReason(current.id)
        if current.status is AppointmentStatus.CANCELLED and current.cancellation_reason == cleaned_reason:
            return None

    if is_terminal(current.status):
        raise AlreadyFinalized(current.id, current.status, target)
    if expected is not None and AppointmentStatus(expected) is not current.status:
        raise StaleAppointmentError(current.id, current.status, target, AppointmentStatus(expected))
    if target not in get_valid_targets(current.status):
        raise InvalidTransition(current.id, current.status, target)

    return StatusChange(
        status=target,
        cancellation_reason=cleaned_reason if target is AppointmentStatus.CANCELLED else None,
    )


def ensure_permitted(actor: Actor, appointment: Appointment, target: AppointmentStatus) -> None:
    """Apply the role rules for who may trigger each change.

    Confirming and completing belong to the assigned veterinarian (any
    veterinarian while none is assigned). Owners and the assigned
    veterinarian may cancel.
    """

    is_assigned_vet = actor.is_veterinarian and appointment.vet_id in (None, actor.id)
    if target is AppointmentStatus.CANCELLED:
        allowed = is_assigned_vet or (not actor.is_veterinarian and actor.id == appointment.owner_id)
    else:
        allowed = is_assigned_vet
    if not allowed:
        raise TransitionNotPermitted(
            appointment.id,
            f"{actor.role.value} {actor.id} may not move appointment {appointment.id} to {target.value}",
        )
