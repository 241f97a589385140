"""Schemas for booking requests and their validation outcome."""
from __future__ import annotations

from datetime import date, datetime, time
import enum

from pydantic import AliasChoices, BaseModel, Field

from ..core.errors import BookingValidationError
from ..models.base import WireModel
from ..models.enums import AppointmentType


class ValidationCode(str, enum.Enum):
    MISSING_PET = "MissingPet"
    MISSING_VETERINARIAN = "MissingVeterinarian"
    MISSING_OR_INVALID_TYPE = "MissingOrInvalidType"
    MISSING_REASON = "MissingReason"
    MISSING_DATE_TIME = "MissingDateTime"
    DATE_NOT_IN_FUTURE = "DateNotInFuture"
    REASON_TOO_LONG = "ReasonTooLong"
    NOTES_TOO_LONG = "NotesTooLong"


class FieldError(BaseModel):
    code: ValidationCode
    field: str
    message: str


class BookingRequest(WireModel):
    """Raw booking form input; every field may be missing or malformed."""

    pet_id: str | None = None
    vet_id: str | None = None
    type: str | None = None
    reason: str | None = None
    preferred_date: date | str | None = Field(
        default=None, validation_alias=AliasChoices("date", "preferredDate", "preferred_date")
    )
    preferred_time: time | str | None = Field(
        default=None, validation_alias=AliasChoices("time", "preferredTime", "preferred_time")
    )
    notes: str | None = None


class BookingPayload(WireModel):
    """Normalized booking handed to the backend."""

    pet_id: str
    owner_id: str | None = None
    vet_id: str
    type: AppointmentType
    reason: str
    scheduled_at: datetime
    estimated_duration_minutes: int
    notes: str | None = None


class ValidationResult(BaseModel):
    payload: BookingPayload | None = None
    errors: list[FieldError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and self.payload is not None

    @property
    def codes(self) -> set[ValidationCode]:
        return {error.code for error in self.errors}

    def raise_for_errors(self) -> BookingPayload:
        """Return the payload or raise ``BookingValidationError``."""

        if self.errors or self.payload is None:
            raise BookingValidationError(self.errors)
        return self.payload
