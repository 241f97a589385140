"""Error taxonomy for appointment scheduling.

Validation errors are user-correctable and carry field-tagged details.
Lifecycle errors report an illegal status change. Backend errors come from the
remote store and are retryable by the caller; nothing here retries them.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from ..models.enums import AppointmentStatus
    from ..schemas.booking import FieldError


class PetCareError(Exception):
    """Base class for scheduling errors."""


class BookingValidationError(PetCareError):
    """Raised when a booking request fails one or more field rules."""

    def __init__(self, errors: Iterable["FieldError"]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(error.message for error in self.errors) or "Invalid booking request")


class UnknownTypeError(PetCareError, ValueError):
    """Raised when an appointment type is missing from the catalog."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Unknown appointment type: {value!r}")


class LifecycleError(PetCareError):
    """Base class for rejected status changes."""

    def __init__(self, appointment_id: str, message: str) -> None:
        self.appointment_id = appointment_id
        super().__init__(message)


class InvalidTransition(LifecycleError):
    """Raised when the requested status is not reachable from the current one.

    ``target`` is ``None`` for changes that do not move the status, such as a
    time change proposal.
    """

    def __init__(
        self,
        appointment_id: str,
        current: "AppointmentStatus",
        target: "AppointmentStatus | None",
        message: str | None = None,
    ) -> None:
        self.current = current
        self.target = target
        super().__init__(
            appointment_id,
            message or f"Cannot move appointment {appointment_id} from {current.value} to {target.value}",
        )


class AlreadyFinalized(InvalidTransition):
    """Raised for any change attempted from a terminal status."""

    def __init__(
        self,
        appointment_id: str,
        current: "AppointmentStatus",
        target: "AppointmentStatus | None",
        *,
        action: str | None = None,
    ) -> None:
        message = f"Appointment {appointment_id} is already {current.value}"
        if action:
            message = f"{message}; cannot {action}"
        super().__init__(appointment_id, current, target, message)


class StaleAppointmentError(InvalidTransition):
    """Raised when the caller's copy no longer matches the latest known status."""

    def __init__(
        self,
        appointment_id: str,
        current: "AppointmentStatus",
        target: "AppointmentStatus | None",
        expected: "AppointmentStatus",
    ) -> None:
        self.expected = expected
        super().__init__(
            appointment_id,
            current,
            target,
            f"Appointment {appointment_id} changed from {expected.value} to {current.value}; reload and retry",
        )


class MissingCancellationReason(LifecycleError):
    """Raised when a cancellation is requested without a reason."""

    def __init__(self, appointment_id: str) -> None:
        super().__init__(appointment_id, "A cancellation reason is required")


class TransitionNotPermitted(LifecycleError):
    """Raised when the acting user may not trigger the requested change."""


class BackendError(PetCareError):
    """Raised when the remote appointment store reports a failure."""

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class BookingRejected(BackendError):
    """Raised when the backend refuses to create an appointment."""


class TransitionRejected(BackendError):
    """Raised when the backend refuses a status update."""


class BackendUnavailable(BackendError):
    """Raised on transport failures, timeouts and 5xx responses."""
