# src/marginalia/models/character.py
"""Data model for story characters."""

from __future__ import annotations

from pydantic import Field, field_validator

from .base_model import MarginaliaBaseModel as BaseModel
from .mixins import IDMixin
from .validators import validate_non_empty


class Relationship(BaseModel):
    """Directed relationship from the owning character to another one."""

    character_id: str
    type: str = ""
    description: str = ""


class Character(IDMixin):
    """Character profile as edited by the author.

    ``avatar_url`` is a derived binary asset: it is blanked in version
    snapshots and re-merged from the live character on restore.
    """

    name: str = Field(..., min_length=1)
    description: str = ""
    appearance: str = ""
    role: str = ""
    narrative_arc: str = ""
    avatar_url: str = ""
    relationships: list[Relationship] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        # Allow human-readable names; only require non-empty.
        return validate_non_empty(v)


# Fields produced from the live character rather than stored in snapshots.
DERIVED_CHARACTER_FIELDS = frozenset({"avatar_url"})


__all__ = ["Character", "Relationship", "DERIVED_CHARACTER_FIELDS"]
