from __future__ import annotations

import pytest
from pydantic import ValidationError

from marginalia.models import (
    Chapter,
    ConsistencyVerdict,
    EntityCategory,
    Suggestion,
    SuggestionList,
    Version,
    VersionKind,
    WorldEntry,
)


def test_world_entry_category_is_matched_loosely() -> None:
    entry = WorldEntry(name="Guild of Ash", category="organization")
    assert entry.category is EntityCategory.ORGANIZATION


def test_blank_explanation_becomes_none() -> None:
    verdict = ConsistencyVerdict.model_validate({"isContradictory": True, "explanation": "  "})
    assert verdict.is_contradictory is True
    assert verdict.explanation is None


def test_suggestion_list_accepts_a_bare_list() -> None:
    parsed = SuggestionList.model_validate(
        [{"original_text": "He felt angry", "alternatives": " He slammed the door. "}]
    )
    assert parsed.suggestions == [
        Suggestion(original_text="He felt angry", alternatives=["He slammed the door."])
    ]


def test_suggestion_needs_a_phrase() -> None:
    with pytest.raises(ValidationError):
        Suggestion(original_text="")


def test_version_is_immutable(story) -> None:
    version = Version(name="Draft", kind=VersionKind.MANUAL, snapshot=story.content_snapshot())
    with pytest.raises(ValidationError):
        version.name = "Other"


def test_chapter_word_count() -> None:
    assert Chapter(title="One", content="Three little words").word_count == 3


def test_unknown_chapter(story) -> None:
    with pytest.raises(KeyError):
        story.chapter("missing")
