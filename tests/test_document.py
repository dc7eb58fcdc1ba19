from __future__ import annotations

import pytest

from marginalia.editor.document import Document


def test_blocks_split_on_blank_lines() -> None:
    doc = Document("one\n\ntwo\n\n\n\nthree")
    assert [b.text for b in doc] == ["one", "two", "", "three"]
    assert doc.text == "one\n\ntwo\n\n\n\nthree"
    assert doc.word_count == 3


def test_editing_one_paragraph_keeps_the_others() -> None:
    doc = Document("alpha\n\nbeta\n\ngamma")
    ids = [b.id for b in doc]

    change = doc.set_text("alpha\n\nbeta!\n\ngamma")

    assert [b.id for b in doc] == ids
    assert change.changed == [ids[1]]
    assert change.added == [] and change.removed == []
    assert doc.block(ids[0]).edit_counter == 0
    assert doc.block(ids[1]).edit_counter == 1
    assert doc.revision == 1


def test_unchanged_text_is_not_a_change() -> None:
    doc = Document("alpha\n\nbeta")
    change = doc.set_text("alpha\n\nbeta")
    assert not change
    assert doc.revision == 0


def test_inserting_and_removing_paragraphs() -> None:
    doc = Document("alpha\n\ngamma")
    first, last = (b.id for b in doc)

    added = doc.set_text("alpha\n\nbeta\n\ngamma")
    assert len(added.added) == 1
    assert [b.id for b in doc][0] == first and [b.id for b in doc][-1] == last

    removed = doc.set_text("alpha\n\ngamma")
    assert removed.removed == added.added
    assert doc.get(added.added[0]) is None


def test_locate_and_offsets() -> None:
    doc = Document("abc\n\ndefg")
    second = doc.blocks[1]

    assert doc.offset_of(second.id) == 5
    assert doc.locate(6) == (second, 1)
    assert doc.locate(4) == (doc.blocks[0], 3)
    assert doc.locate(100) == (second, 4)


def test_replace_range_checks_bounds() -> None:
    doc = Document("abc")
    doc.replace_range(1, 2, "XYZ")
    assert doc.text == "aXYZc"
    with pytest.raises(ValueError):
        doc.replace_range(2, 99, "")
