from __future__ import annotations

import asyncio

import pytest

from marginalia.config import EditorConfig, VersionConfig
from marginalia.core.logs import get_event_logger
from marginalia.models import (
    Chapter,
    Character,
    ConsistencyVerdict,
    EntityCategory,
    Story,
    Suggestion,
    WorldEntry,
)

CHAPTER_TEXT = (
    "Old King Bren arrived at Ironhold before dawn.\n\n"
    "Mara waited by the gate. She was very sad.\n\n"
    "Bren smiled at her with his green eyes."
)


class FakeConsistency:
    """Records every call; verdicts are looked up by entity name.

    A verdict may be an exception instance, which is raised. When ``gate`` is
    set, calls block until it is released.
    """

    def __init__(self, verdicts: dict[str, object] | None = None) -> None:
        self.verdicts = verdicts or {}
        self.calls: list[tuple[str, str, str]] = []
        self.gate: asyncio.Event | None = None

    async def verify(
        self, paragraph_text: str, entity_name: str, entity_description: str
    ) -> ConsistencyVerdict:
        self.calls.append((paragraph_text, entity_name, entity_description))
        if self.gate is not None:
            await self.gate.wait()
        verdict = self.verdicts.get(entity_name, ConsistencyVerdict(is_contradictory=False))
        if isinstance(verdict, BaseException):
            raise verdict
        return verdict


class FakeShowTell:
    def __init__(self, suggestions: list[Suggestion] | None = None, error: Exception | None = None):
        self.suggestions = suggestions or []
        self.error = error
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def analyze(self, full_text: str) -> list[Suggestion]:
        self.calls.append(full_text)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.suggestions)


class FakeGeneration:
    def __init__(self, reply: str = "The wind rose.", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, ...]] = []

    async def continue_text(self, text: str) -> str:
        self.calls.append(("continue_text", text))
        if self.error is not None:
            raise self.error
        return self.reply

    async def modify(self, text: str, context: str, instruction: str) -> str:
        self.calls.append(("modify", text, context, instruction))
        if self.error is not None:
            raise self.error
        return self.reply

    async def format_rich(self, text: str) -> str:
        self.calls.append(("format_rich", text))
        if self.error is not None:
            raise self.error
        return f"<p>{text}</p>"


@pytest.fixture(autouse=True)
def _clear_events():
    get_event_logger().clear_logs()
    yield
    get_event_logger().clear_logs()


@pytest.fixture
def story() -> Story:
    return Story(
        id="story-1",
        title="The Long Road",
        genre="Fantasy",
        synopsis="A king returns.",
        characters=[
            Character(id="c-bren", name="Bren", description="Bren has grey eyes.", avatar_url="bren.png"),
            Character(
                id="c-king",
                name="Old King Bren",
                description="The exiled king of Ironhold.",
                avatar_url="king.png",
            ),
            Character(id="c-mara", name="Mara", description="A young guard."),
        ],
        world=[
            WorldEntry(id="w-iron", name="Ironhold", category=EntityCategory.PLACE, description="A fortress."),
        ],
        chapters=[Chapter(id="ch-1", title="Arrival", content=CHAPTER_TEXT)],
    )


@pytest.fixture
def editor_settings() -> EditorConfig:
    return EditorConfig(
        highlight_delay=0.0,
        verify_delay=0.01,
        min_verify_length=10,
        min_entity_name_length=3,
        max_concurrent_checks=4,
    )


@pytest.fixture
def version_settings() -> VersionConfig:
    return VersionConfig(autosave_delay=0.01, autosave_limit=20, autosave_prefix="Autosave")
