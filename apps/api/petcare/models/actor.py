"""Acting user."""
from __future__ import annotations

from dataclasses import dataclass

from .enums import ActorRole


@dataclass(frozen=True)
class Actor:
    """Authenticated party performing an operation."""

    id: str
    role: ActorRole

    @property
    def is_veterinarian(self) -> bool:
        return self.role is ActorRole.VETERINARIAN
