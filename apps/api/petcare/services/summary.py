"""Derived scheduling fields for display."""
from __future__ import annotations

from datetime import timedelta, tzinfo

from ..core.config import settings
from ..models.appointment import Appointment
from ..schemas.appointments import SchedulingSummary
from . import catalog


def summarize(
    appointment: Appointment,
    *,
    tz: tzinfo | None = None,
    date_format: str | None = None,
    time_format: str | None = None,
) -> SchedulingSummary:
    """Render date, start and end labels for an appointment.

    The end time is the start plus the catalog duration for the appointment
    type. Labels use the clinic timezone unless ``tz`` is given. The
    appointment is not modified.
    """

    zone = tz or settings.clinic_tz
    date_format = date_format or settings.date_label_format
    time_format = time_format or settings.time_label_format

    duration = catalog.duration_for(appointment.type)
    starts_at = appointment.scheduled_at.astimezone(zone)
    ends_at = starts_at + timedelta(minutes=duration)

    return SchedulingSummary(
        appointment_id=appointment.id,
        pet_id=appointment.pet_id,
        vet_id=appointment.vet_id,
        type=appointment.type,
        type_label=catalog.label_for(appointment.type),
        date_label=starts_at.strftime(date_format),
        time_label=starts_at.strftime(time_format),
        end_time_label=ends_at.strftime(time_format),
        duration_minutes=duration,
        starts_at=starts_at,
        ends_at=ends_at,
    )
