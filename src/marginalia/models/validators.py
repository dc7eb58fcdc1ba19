# src/marginalia/models/validators.py
"""Custom validators for Pydantic models."""

from __future__ import annotations


def validate_non_empty(value: str) -> str:
    """Ensure ``value`` is not empty or whitespace."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("must not be empty")
    return value


def strip_items(values: list[str]) -> list[str]:
    """Trim every string and drop the ones left empty."""
    if not isinstance(values, list):
        raise ValueError("must be a list")
    return [item.strip() for item in values if isinstance(item, str) and item.strip()]


__all__ = ["validate_non_empty", "strip_items"]
