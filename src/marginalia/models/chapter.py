# src/marginalia/models/chapter.py
"""Data model for story chapters."""

from __future__ import annotations

from pydantic import Field

from .mixins import IDMixin


class Chapter(IDMixin):
    """Representation of a narrative chapter; ``content`` is plain text."""

    title: str = Field(..., min_length=1)
    summary: str = ""
    content: str = ""

    @property
    def word_count(self) -> int:
        return len(self.content.split())


__all__ = ["Chapter"]
