# src/marginalia/models/mixins.py
"""Common reusable mixin models."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import Field

from .base_model import MarginaliaBaseModel


def new_id(prefix: str) -> str:
    """Return a fresh identifier such as ``ver-3f2a...``."""
    return f"{prefix}-{uuid4().hex}"


def utcnow() -> datetime:
    return datetime.now(UTC)


class IDMixin(MarginaliaBaseModel):
    """Mixin that provides a unique string identifier."""

    id: str = Field(default_factory=lambda: uuid4().hex)


class TimestampsMixin(MarginaliaBaseModel):
    """Mixin that adds a creation timestamp."""

    created_at: datetime = Field(default_factory=utcnow)


__all__ = ["IDMixin", "TimestampsMixin", "new_id", "utcnow"]
