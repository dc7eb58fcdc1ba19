# src/marginalia/models/world_entry.py
"""Data model for world-building entries (places, items, organizations, events)."""

from __future__ import annotations

from pydantic import Field, field_validator

from .entity import EntityCategory
from .mixins import IDMixin
from .validators import validate_non_empty


class WorldEntry(IDMixin):
    """Encyclopedia entry describing one element of the story world."""

    name: str = Field(..., min_length=1)
    category: EntityCategory = EntityCategory.PLACE
    description: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        return validate_non_empty(v)


__all__ = ["WorldEntry"]
