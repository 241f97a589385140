"""Expose domain models."""
from .actor import Actor
from .appointment import Appointment, CompletionDetails, TimeChangeProposal
from .enums import ActorRole, AppointmentStatus, AppointmentType, ProposalStatus
from .veterinarian import VeterinarianSummary

__all__ = [
    "Actor",
    "ActorRole",
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "CompletionDetails",
    "ProposalStatus",
    "TimeChangeProposal",
    "VeterinarianSummary",
]
