# src/marginalia/models/entity.py
"""Recognizable story entities (characters and world entries)."""

from __future__ import annotations

from enum import Enum

from pydantic import ConfigDict, Field

from .base_model import MarginaliaBaseModel as BaseModel


class EntityCategory(str, Enum):
    """Enumeration of possible entity categories."""

    CHARACTER = "Character"
    PLACE = "Place"
    ITEM = "Item"
    ORGANIZATION = "Organization"
    EVENT = "Event"


class Entity(BaseModel):
    """A named story element the annotation engine can recognize by name.

    Read-only from the engine's perspective: instances are derived from the
    story's characters and world entries whenever those change.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    category: EntityCategory
    description: str = ""


__all__ = ["Entity", "EntityCategory"]
