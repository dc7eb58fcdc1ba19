# src/marginalia/models/story.py
"""Story aggregate: creative content, version log and action log."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import ConfigDict, Field

from .base_model import MarginaliaBaseModel as BaseModel
from .chapter import Chapter
from .character import DERIVED_CHARACTER_FIELDS, Character
from .mixins import IDMixin, TimestampsMixin, new_id, utcnow
from .world_entry import WorldEntry


class StoryContent(BaseModel):
    """The creative content of a story; the unit captured by versions."""

    title: str = ""
    genre: str = ""
    synopsis: str = ""
    characters: list[Character] = Field(default_factory=list)
    chapters: list[Chapter] = Field(default_factory=list)
    world: list[WorldEntry] = Field(default_factory=list)
    cover_url: str | None = None


# Fields captured by version snapshots and written back on restore; cover art
# and other derived assets stay with the live story.
SNAPSHOT_FIELDS = ("title", "genre", "synopsis", "characters", "chapters", "world")


class VersionKind(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class Version(TimestampsMixin):
    """Immutable point-in-time copy of story content."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("ver"))
    name: str = Field(..., min_length=1)
    kind: VersionKind = VersionKind.MANUAL
    snapshot: StoryContent


class Actor(str, Enum):
    USER = "user"
    AGENT = "agent"


class ActionLogEntry(BaseModel):
    id: str = Field(default_factory=lambda: new_id("log"))
    timestamp: datetime = Field(default_factory=utcnow)
    actor: Actor = Actor.USER
    action: str


class Story(StoryContent, IDMixin):
    """A manuscript with its history.

    The annotation engine reads characters and world entries, appends to
    ``versions`` and ``action_log``, and overwrites content fields on restore.
    """

    author_id: str = ""
    versions: list[Version] = Field(default_factory=list)
    action_log: list[ActionLogEntry] = Field(default_factory=list)
    autosave_enabled: bool = True

    def chapter(self, chapter_id: str) -> Chapter:
        for chapter in self.chapters:
            if chapter.id == chapter_id:
                return chapter
        raise KeyError(f"Unknown chapter {chapter_id!r}")

    def content_snapshot(self) -> StoryContent:
        """Deep copy of the content fields with derived character assets blanked."""
        content = StoryContent.model_validate(
            self.model_dump(include=set(SNAPSHOT_FIELDS))
        )
        blank = {name: "" for name in DERIVED_CHARACTER_FIELDS}
        content.characters = [c.model_copy(update=blank) for c in content.characters]
        return content

    def log_action(self, action: str, actor: Actor = Actor.USER) -> ActionLogEntry:
        entry = ActionLogEntry(actor=actor, action=action)
        self.action_log.append(entry)
        return entry


__all__ = [
    "ActionLogEntry",
    "Actor",
    "SNAPSHOT_FIELDS",
    "Story",
    "StoryContent",
    "Version",
    "VersionKind",
]
