"""Static catalog of appointment types and their default durations."""
from __future__ import annotations

from dataclasses import dataclass

from ..core.errors import UnknownTypeError
from ..models.enums import AppointmentType


@dataclass(frozen=True)
class AppointmentTypeInfo:
    value: AppointmentType
    label: str
    duration_minutes: int


CATALOG: dict[AppointmentType, AppointmentTypeInfo] = {
    info.value: info
    for info in (
        AppointmentTypeInfo(AppointmentType.CHECKUP, "Regular Checkup", 30),
        AppointmentTypeInfo(AppointmentType.VACCINATION, "Vaccination", 15),
        AppointmentTypeInfo(AppointmentType.EMERGENCY, "Emergency", 60),
        AppointmentTypeInfo(AppointmentType.SURGERY, "Surgery Consultation", 45),
        AppointmentTypeInfo(AppointmentType.CONSULTATION, "General Consultation", 30),
        AppointmentTypeInfo(AppointmentType.DENTAL, "Dental Care", 45),
        AppointmentTypeInfo(AppointmentType.GROOMING, "Grooming", 60),
    )
}


def lookup(value: object) -> AppointmentTypeInfo:
    """Return the catalog entry for a type value or raise ``UnknownTypeError``."""

    try:
        key = AppointmentType(value)
    except (TypeError, ValueError) as exc:
        raise UnknownTypeError(value) from exc
    info = CATALOG.get(key)
    if info is None:
        raise UnknownTypeError(value)
    return info


def duration_for(value: object) -> int:
    return lookup(value).duration_minutes


def label_for(value: object) -> str:
    return lookup(value).label


def is_known(value: object) -> bool:
    try:
        lookup(value)
    except UnknownTypeError:
        return False
    return True


def list_types() -> list[AppointmentTypeInfo]:
    """Return catalog entries in declaration order."""

    return list(CATALOG.values())
