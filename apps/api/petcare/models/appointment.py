"""Appointment model."""
from __future__ import annotations

import re
from datetime import date, datetime

from pydantic import AliasChoices, Field, field_validator, model_validator

from ..core.clock import ensure_tz
from ..services import catalog
from .base import WireModel, reference_id
from .enums import AppointmentStatus, AppointmentType, ProposalStatus

UNSPECIFIED_CANCELLATION_REASON = "No reason provided"

_CANCELLATION_NOTE = re.compile(r"Cancelled by [^:\n]*:[ \t]*(.+)")


class TimeChangeProposal(WireModel):
    """Alternative time suggested by the owner or the veterinarian."""

    proposed_at: datetime = Field(
        validation_alias=AliasChoices("proposedAt", "proposedDate", "proposed_at"),
        serialization_alias="proposedAt",
    )
    reason: str | None = None
    proposed_by: str
    status: ProposalStatus = ProposalStatus.PENDING
    created_at: datetime | None = None

    @field_validator("proposed_by", mode="before")
    @classmethod
    def _collapse_reference(cls, value: object) -> object:
        return reference_id(value)

    @field_validator("proposed_at", "created_at")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return ensure_tz(value) if value is not None else None


class CompletionDetails(WireModel):
    """Clinical outcome recorded when a visit is completed."""

    diagnosis: str | None = None
    treatment: str | None = None
    follow_up_date: date | None = None


class Appointment(WireModel):
    """Booked visit as stored by the backend."""

    id: str = Field(validation_alias=AliasChoices("id", "_id"), serialization_alias="id")
    pet_id: str = Field(validation_alias=AliasChoices("petId", "pet", "pet_id"), serialization_alias="petId")
    owner_id: str = Field(
        validation_alias=AliasChoices("ownerId", "owner", "owner_id"), serialization_alias="ownerId"
    )
    vet_id: str | None = Field(
        default=None, validation_alias=AliasChoices("vetId", "vet", "vet_id"), serialization_alias="vetId"
    )
    type: AppointmentType
    reason: str
    scheduled_at: datetime = Field(
        validation_alias=AliasChoices("scheduledAt", "scheduledDate", "appointmentDate", "scheduled_at"),
        serialization_alias="scheduledAt",
    )
    estimated_duration_minutes: int | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "estimatedDurationMinutes", "estimatedDuration", "duration", "estimated_duration_minutes"
        ),
        serialization_alias="estimatedDurationMinutes",
    )
    status: AppointmentStatus
    cancellation_reason: str | None = None
    notes: str | None = None
    created_at: datetime | None = None

    vet_accepted_at: datetime | None = None
    diagnosis: str | None = None
    treatment: str | None = None
    follow_up_date: date | None = None
    proposed_time_changes: list[TimeChangeProposal] = Field(default_factory=list)

    @field_validator("pet_id", "owner_id", "vet_id", mode="before")
    @classmethod
    def _collapse_reference(cls, value: object) -> object:
        return reference_id(value)

    @field_validator("scheduled_at", "created_at", "vet_accepted_at")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return ensure_tz(value) if value is not None else None

    @model_validator(mode="after")
    def _check_invariants(self) -> "Appointment":
        # Duration always follows the catalog, whatever the backend stored.
        self.estimated_duration_minutes = catalog.duration_for(self.type)

        reason = (self.cancellation_reason or "").strip()
        if self.status is AppointmentStatus.CANCELLED:
            # Older records keep the reason only in the cancellation note.
            self.cancellation_reason = (
                reason or _reason_from_notes(self.notes) or UNSPECIFIED_CANCELLATION_REASON
            )
        else:
            self.cancellation_reason = None
        return self

    @property
    def duration_minutes(self) -> int:
        return catalog.duration_for(self.type)


def _reason_from_notes(notes: str | None) -> str | None:
    """Return the reason from the last ``Cancelled by <name>: <reason>`` line."""

    matches = _CANCELLATION_NOTE.findall(notes or "")
    return matches[-1].strip() if matches else None
