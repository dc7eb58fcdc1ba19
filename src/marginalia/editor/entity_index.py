# src/marginalia/editor/entity_index.py
"""Name -> entity lookup derived from a story's characters and world entries."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache

from marginalia.config import config
from marginalia.core.logs import EventType, get_event_logger
from marginalia.models import Entity, EntityCategory, Story

event_logger = get_event_logger()

# Stands in for masked text; a non-word character so name anchors still hold.
_MASK = "\x00"


@dataclass(frozen=True)
class Mention:
    start: int
    end: int
    entity: Entity


def story_entities(story: Story) -> tuple[Entity, ...]:
    """Characters first, then world entries, in story order."""
    entities = [
        Entity(id=c.id, name=c.name.strip(), category=EntityCategory.CHARACTER, description=c.description)
        for c in story.characters
    ]
    entities.extend(
        Entity(id=w.id, name=w.name.strip(), category=w.category, description=w.description)
        for w in story.world
    )
    return tuple(entities)


class EntityIndex:
    """Case-insensitive mapping from display name to entity.

    Names shorter than ``min_name_length`` are ignored. When two entities share
    a name (case-insensitively) the first one wins. The match pattern lists
    names longest first so a longer name always preempts a name it contains.
    """

    def __init__(self, entities: Iterable[Entity], min_name_length: int = 3) -> None:
        self.min_name_length = min_name_length
        self.by_name: dict[str, Entity] = {}
        for entity in entities:
            key = entity.name.casefold()
            if len(entity.name) < min_name_length or key in self.by_name:
                continue
            self.by_name[key] = entity
        self.by_id: dict[str, Entity] = {e.id: e for e in self.by_name.values()}
        names = sorted(
            (e.name for e in self.by_name.values()), key=lambda n: (-len(n), n.casefold())
        )
        self.pattern: re.Pattern[str] | None = None
        if names:
            alternation = "|".join(re.escape(name) for name in names)
            self.pattern = re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)

    def __len__(self) -> int:
        return len(self.by_name)

    def __contains__(self, name: str) -> bool:
        return name.casefold() in self.by_name

    def lookup(self, name: str) -> Entity | None:
        return self.by_name.get(name.casefold())

    def find_mentions(
        self, text: str, excluded: Sequence[tuple[int, int]] = ()
    ) -> list[Mention]:
        """Non-overlapping mentions in ``text``, skipping ``excluded`` ranges."""
        if self.pattern is None or not text:
            return []
        if excluded:
            chars = list(text)
            for start, end in excluded:
                chars[start:end] = _MASK * (end - start)
            text = "".join(chars)
        mentions = []
        for match in self.pattern.finditer(text):
            entity = self.by_name.get(match.group(0).casefold())
            if entity is not None:
                mentions.append(Mention(match.start(), match.end(), entity))
        return mentions

    def mentioned_entities(self, text: str) -> list[Entity]:
        """Distinct entities mentioned in ``text``, in order of first mention."""
        seen: dict[str, Entity] = {}
        for mention in self.find_mentions(text):
            seen.setdefault(mention.entity.id, mention.entity)
        return list(seen.values())


@lru_cache(maxsize=32)
def _cached_index(entities: tuple[Entity, ...], min_name_length: int) -> EntityIndex:
    event_logger.debug(
        f"Rebuilding entity index over {len(entities)} entities",
        event_type=EventType.ENTITY_INDEX,
        component=__name__,
    )
    return EntityIndex(entities, min_name_length)


def build_entity_index(story: Story, min_name_length: int | None = None) -> EntityIndex:
    """Return the index for ``story``'s current entities, reusing a cached one
    when names, categories and descriptions are unchanged."""
    if min_name_length is None:
        min_name_length = config.editor.min_entity_name_length
    return _cached_index(story_entities(story), min_name_length)


__all__ = ["EntityIndex", "Mention", "build_entity_index", "story_entities"]
