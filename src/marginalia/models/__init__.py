"""Pydantic models for stories, their entities and annotation payloads."""

from .base_model import MarginaliaBaseModel
from .chapter import Chapter
from .character import DERIVED_CHARACTER_FIELDS, Character, Relationship
from .entity import Entity, EntityCategory
from .mixins import IDMixin, TimestampsMixin
from .responses import ConsistencyVerdict, Suggestion, SuggestionList
from .story import (
    SNAPSHOT_FIELDS,
    ActionLogEntry,
    Actor,
    Story,
    StoryContent,
    Version,
    VersionKind,
)
from .world_entry import WorldEntry

__all__ = [
    "MarginaliaBaseModel",
    "IDMixin",
    "TimestampsMixin",
    "Chapter",
    "Character",
    "Relationship",
    "DERIVED_CHARACTER_FIELDS",
    "Entity",
    "EntityCategory",
    "WorldEntry",
    "StoryContent",
    "Story",
    "Version",
    "VersionKind",
    "ActionLogEntry",
    "Actor",
    "SNAPSHOT_FIELDS",
    "ConsistencyVerdict",
    "Suggestion",
    "SuggestionList",
]
