from __future__ import annotations

from marginalia.editor.entity_index import EntityIndex, build_entity_index, story_entities
from marginalia.models import Entity, EntityCategory


def _entity(entity_id: str, name: str) -> Entity:
    return Entity(id=entity_id, name=name, category=EntityCategory.CHARACTER)


def test_longest_name_wins() -> None:
    index = EntityIndex([_entity("bren", "Bren"), _entity("king", "Old King Bren")])

    mentions = index.find_mentions("Old King Bren arrived")

    assert [(m.start, m.end, m.entity.id) for m in mentions] == [(0, 13, "king")]


def test_matching_is_case_insensitive_and_word_anchored() -> None:
    index = EntityIndex([_entity("mara", "Mara")])

    mentions = index.find_mentions("MARA met mara, not Marathon or Samara.")

    assert [(m.start, m.end) for m in mentions] == [(0, 4), (9, 13)]


def test_short_names_are_not_indexed() -> None:
    index = EntityIndex([_entity("al", "Al"), _entity("bo", "Bob")])

    assert "Al" not in index
    assert index.lookup("bob").id == "bo"
    assert [m.entity.id for m in index.find_mentions("Al and Bob")] == ["bo"]


def test_duplicate_names_keep_the_first_entity() -> None:
    index = EntityIndex([_entity("one", "Vell"), _entity("two", "vell")])
    assert index.lookup("VELL").id == "one"
    assert len(index) == 1


def test_names_with_punctuation() -> None:
    index = EntityIndex([_entity("dr", "Dr. Vell")])
    assert [m.start for m in index.find_mentions("Then Dr. Vell. left.")] == [5]


def test_excluded_ranges_are_skipped_without_shifting_offsets() -> None:
    index = EntityIndex([_entity("mara", "Mara")])
    text = "Mara saw Mara"

    mentions = index.find_mentions(text, excluded=[(0, 4)])

    assert [(m.start, m.end) for m in mentions] == [(9, 13)]


def test_mentioned_entities_are_distinct_in_first_mention_order() -> None:
    index = EntityIndex([_entity("a", "Anna"), _entity("b", "Boris")])
    found = index.mentioned_entities("Boris, Anna and Boris")
    assert [e.id for e in found] == ["b", "a"]


def test_story_entities_list_characters_then_world(story) -> None:
    entities = story_entities(story)
    assert [e.id for e in entities] == ["c-bren", "c-king", "c-mara", "w-iron"]
    assert entities[-1].category is EntityCategory.PLACE


def test_index_is_reused_while_entities_are_unchanged(story) -> None:
    first = build_entity_index(story, 3)
    assert build_entity_index(story, 3) is first

    story.characters[0].description = "Bren has blue eyes."
    assert build_entity_index(story, 3) is not first
