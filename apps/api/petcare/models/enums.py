"""Enumerations shared by the scheduling models."""
from __future__ import annotations

import enum


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AppointmentType(str, enum.Enum):
    CHECKUP = "checkup"
    VACCINATION = "vaccination"
    EMERGENCY = "emergency"
    SURGERY = "surgery"
    CONSULTATION = "consultation"
    DENTAL = "dental"
    GROOMING = "grooming"


class ProposalStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ActorRole(str, enum.Enum):
    OWNER = "owner"
    VETERINARIAN = "veterinarian"

    @classmethod
    def _missing_(cls, value: object) -> "ActorRole | None":
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "vet":
                return cls.VETERINARIAN
            for member in cls:
                if member.value == lowered:
                    return member
        return None
