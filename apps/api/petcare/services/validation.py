"""Booking request validation.

Every rule is evaluated on its own so the caller gets all field errors in one
pass. The function is pure: the clock and clinic timezone are passed in.
"""
from __future__ import annotations

from datetime import date, datetime, time, tzinfo

from ..core.clock import Clock, ensure_tz, utcnow
from ..core.config import settings
from ..schemas.booking import (
    BookingPayload,
    BookingRequest,
    FieldError,
    ValidationCode,
    ValidationResult,
)
from . import catalog

MAX_REASON_LENGTH = 200
MAX_NOTES_LENGTH = 500


def validate_booking(
    request: BookingRequest,
    *,
    clock: Clock = utcnow,
    tz: tzinfo | None = None,
) -> ValidationResult:
    """Check a booking request and build the normalized payload."""

    errors: list[FieldError] = []
    pet_id = _clean(request.pet_id)
    vet_id = _clean(request.vet_id)
    reason = _clean(request.reason)
    notes = _clean(request.notes)

    if not pet_id:
        errors.append(_error(ValidationCode.MISSING_PET, "petId", "Please select a pet"))
    if not vet_id:
        errors.append(_error(ValidationCode.MISSING_VETERINARIAN, "vetId", "Please select a veterinarian"))
    if not catalog.is_known(_clean(request.type)):
        errors.append(
            _error(ValidationCode.MISSING_OR_INVALID_TYPE, "type", "Please select appointment type")
        )
    if not reason:
        errors.append(
            _error(ValidationCode.MISSING_REASON, "reason", "Please provide a reason for the visit")
        )
    elif len(reason) > MAX_REASON_LENGTH:
        errors.append(
            _error(
                ValidationCode.REASON_TOO_LONG,
                "reason",
                f"Reason cannot be more than {MAX_REASON_LENGTH} characters",
            )
        )
    if notes and len(notes) > MAX_NOTES_LENGTH:
        errors.append(
            _error(
                ValidationCode.NOTES_TOO_LONG,
                "notes",
                f"Notes cannot be more than {MAX_NOTES_LENGTH} characters",
            )
        )

    scheduled_at = combine_date_time(request.preferred_date, request.preferred_time, tz=tz)
    if scheduled_at is None:
        errors.append(
            _error(
                ValidationCode.MISSING_DATE_TIME,
                "date",
                "Please select a preferred date and time",
            )
        )
    elif scheduled_at <= ensure_tz(clock()):
        errors.append(
            _error(
                ValidationCode.DATE_NOT_IN_FUTURE,
                "date",
                "Please select a future date and time",
            )
        )

    if errors:
        return ValidationResult(errors=errors)

    appointment_type = catalog.lookup(_clean(request.type)).value
    payload = BookingPayload(
        pet_id=pet_id,
        vet_id=vet_id,
        type=appointment_type,
        reason=reason,
        scheduled_at=scheduled_at,
        estimated_duration_minutes=catalog.duration_for(appointment_type),
        notes=notes or None,
    )
    return ValidationResult(payload=payload)


def combine_date_time(
    day: date | str | None,
    at: time | str | None,
    *,
    tz: tzinfo | None = None,
) -> datetime | None:
    """Merge separately supplied date and time into one aware UTC timestamp.

    Returns ``None`` when either part is missing or cannot be parsed.
    """

    parsed_day = _parse_date(day)
    parsed_time = _parse_time(at)
    if parsed_day is None or parsed_time is None:
        return None
    zone = tz or settings.clinic_tz
    local = datetime.combine(parsed_day, parsed_time.replace(tzinfo=None), tzinfo=zone)
    return ensure_tz(local)


def _parse_date(value: date | str | None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def _parse_time(value: time | str | None) -> time | None:
    if isinstance(value, time):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return time.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def _clean(value: str | None) -> str:
    return value.strip() if isinstance(value, str) else ""


def _error(code: ValidationCode, field: str, message: str) -> FieldError:
    return FieldError(code=code, field=field, message=message)
