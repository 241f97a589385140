"""Shared pydantic base for records exchanged with the backend."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model using camelCase names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def reference_id(value: object) -> object:
    """Collapse a populated reference (``{"_id": ..., "name": ...}``) to its id."""

    if isinstance(value, dict):
        return value.get("_id") or value.get("id")
    return value
