"""Veterinarian directory entry."""
from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, model_validator

from .base import WireModel


class VeterinarianSummary(WireModel):
    """Read-only view of a veterinarian user."""

    id: str = Field(validation_alias=AliasChoices("id", "_id"), serialization_alias="id")
    name: str
    email: str | None = None
    specialization: str | None = None
    clinic_name: str | None = None
    avatar: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _lift_profile(cls, data: Any) -> Any:
        """Pull profile fields up from the nested user document."""

        if isinstance(data, dict) and isinstance(data.get("profile"), dict):
            profile = data["profile"]
            data = {**data}
            data.setdefault("specialization", profile.get("specialization"))
            data.setdefault("clinicName", profile.get("clinicName"))
        return data
