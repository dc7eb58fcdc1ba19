# src/marginalia/editor/collaborators.py
"""Interfaces of the external services the edit session talks to."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from marginalia.models import ConsistencyVerdict, Suggestion


@runtime_checkable
class ConsistencyService(Protocol):
    async def verify(
        self, paragraph_text: str, entity_name: str, entity_description: str
    ) -> ConsistencyVerdict: ...


@runtime_checkable
class ShowTellService(Protocol):
    async def analyze(self, full_text: str) -> list[Suggestion]: ...


@runtime_checkable
class GenerationService(Protocol):
    async def continue_text(self, text: str) -> str: ...

    async def modify(self, text: str, context: str, instruction: str) -> str: ...

    async def format_rich(self, text: str) -> str: ...


__all__ = ["ConsistencyService", "GenerationService", "ShowTellService"]
