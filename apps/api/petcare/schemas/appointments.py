"""Schemas for appointment listing, summaries and lifecycle requests."""
from __future__ import annotations

from collections import Counter
from datetime import date, datetime
from typing import Annotated, Any, Iterable, Literal, Union

from pydantic import AliasChoices, BaseModel, Field, computed_field

from ..models.appointment import Appointment
from ..models.base import WireModel
from ..models.enums import AppointmentStatus, AppointmentType
from ..models.veterinarian import VeterinarianSummary


class AppointmentFilters(WireModel):
    """Exact-match filters; a missing value places no constraint on that field."""

    status: AppointmentStatus | None = None
    type: AppointmentType | None = None
    pet_id: str | None = None
    on_date: date | None = Field(default=None, validation_alias=AliasChoices("date", "onDate", "on_date"))
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    def to_query_params(self, owner_id: str) -> dict[str, Any]:
        """Render the filters as backend query parameters."""

        params: dict[str, Any] = {"owner": owner_id, "page": self.page, "limit": self.limit}
        if self.status is not None:
            params["status"] = self.status.value
        if self.type is not None:
            params["type"] = self.type.value
        if self.pet_id:
            params["petId"] = self.pet_id
        if self.on_date is not None:
            params["date"] = self.on_date.isoformat()
        return params


class AppointmentStats(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0
    by_type: dict[AppointmentType, int] = Field(default_factory=dict)

    @classmethod
    def from_appointments(cls, appointments: Iterable[Appointment]) -> "AppointmentStats":
        items = list(appointments)
        statuses = Counter(item.status for item in items)
        types = Counter(item.type for item in items)
        return cls(
            total=len(items),
            pending=statuses[AppointmentStatus.PENDING],
            confirmed=statuses[AppointmentStatus.CONFIRMED],
            completed=statuses[AppointmentStatus.COMPLETED],
            cancelled=statuses[AppointmentStatus.CANCELLED],
            by_type=dict(types),
        )


class OwnerAppointmentView(BaseModel):
    """Appointments booked by a pet owner."""

    kind: Literal["appointments"] = "appointments"
    appointments: list[Appointment] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def stats(self) -> AppointmentStats:
        return AppointmentStats.from_appointments(self.appointments)


class VeterinarianDirectoryView(BaseModel):
    """Peer directory shown to veterinarians instead of a booking list."""

    kind: Literal["veterinarian_directory"] = "veterinarian_directory"
    veterinarians: list[VeterinarianSummary] = Field(default_factory=list)


AppointmentListView = Annotated[
    Union[OwnerAppointmentView, VeterinarianDirectoryView],
    Field(discriminator="kind"),
]


class SchedulingSummary(BaseModel):
    appointment_id: str
    pet_id: str
    vet_id: str | None = None
    type: AppointmentType
    type_label: str
    date_label: str
    time_label: str
    end_time_label: str
    duration_minutes: int
    starts_at: datetime
    ends_at: datetime


class AppointmentTypeOption(BaseModel):
    value: AppointmentType
    label: str
    duration_minutes: int


class CancelRequest(BaseModel):
    reason: str = ""


class TimeChangeRequest(WireModel):
    proposed_at: datetime = Field(validation_alias=AliasChoices("proposedAt", "proposedDate", "proposed_at"))
    reason: str | None = None
