# src/marginalia/editor/document.py
"""Live text buffer as an ordered list of paragraph blocks."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from uuid import uuid4

from marginalia.editor.decorations import Block

PARAGRAPH_SEPARATOR = "\n\n"


def _new_block(text: str) -> Block:
    return Block(id=uuid4().hex, text=text)


@dataclass
class TextChange:
    """Blocks touched by one mutation of the document text."""

    changed: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def touched(self) -> list[str]:
        return self.changed + self.added

    def __bool__(self) -> bool:
        return bool(self.changed or self.added or self.removed)


class Document:
    """Paragraph blocks separated by blank lines.

    ``revision`` increases on every text mutation and each block keeps its own
    ``edit_counter``; both serve as staleness tokens for async results.
    Decorations are written by the annotation passes, text only through
    :meth:`set_text` and :meth:`replace_range`.
    """

    def __init__(self, text: str = "") -> None:
        self.blocks: list[Block] = [_new_block(t) for t in text.split(PARAGRAPH_SEPARATOR)]
        self.revision = 0

    def __iter__(self) -> Iterator[Block]:
        return iter(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)

    @property
    def text(self) -> str:
        return PARAGRAPH_SEPARATOR.join(block.text for block in self.blocks)

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    def get(self, block_id: str) -> Block | None:
        for block in self.blocks:
            if block.id == block_id:
                return block
        return None

    def block(self, block_id: str) -> Block:
        block = self.get(block_id)
        if block is None:
            raise KeyError(f"Unknown block {block_id!r}")
        return block

    def offset_of(self, block_id: str) -> int:
        """Document offset at which ``block_id``'s text starts."""
        offset = 0
        for block in self.blocks:
            if block.id == block_id:
                return offset
            offset += len(block.text) + len(PARAGRAPH_SEPARATOR)
        raise KeyError(f"Unknown block {block_id!r}")

    def locate(self, offset: int) -> tuple[Block, int]:
        """Return the block containing document ``offset`` and the local offset.

        Offsets inside a separator resolve to the end of the preceding block.
        """
        offset = max(0, min(offset, len(self.text)))
        start = 0
        for block in self.blocks:
            end = start + len(block.text)
            if offset <= end:
                return block, offset - start
            if offset < end + len(PARAGRAPH_SEPARATOR):
                return block, len(block.text)
            start = end + len(PARAGRAPH_SEPARATOR)
        last = self.blocks[-1]
        return last, len(last.text)

    def set_text(self, text: str) -> TextChange:
        """Replace the whole text, keeping identity of untouched paragraphs.

        Blocks matching the new paragraphs by common prefix and suffix keep
        their id and counter; the differing middle is reconciled by position.
        """
        new_texts = text.split(PARAGRAPH_SEPARATOR)
        old = self.blocks
        change = TextChange()

        prefix = 0
        while prefix < min(len(old), len(new_texts)) and old[prefix].text == new_texts[prefix]:
            prefix += 1
        suffix = 0
        while (
            suffix < min(len(old), len(new_texts)) - prefix
            and old[len(old) - 1 - suffix].text == new_texts[len(new_texts) - 1 - suffix]
        ):
            suffix += 1

        old_middle = old[prefix : len(old) - suffix]
        new_middle = new_texts[prefix : len(new_texts) - suffix]
        middle: list[Block] = []
        for index, paragraph in enumerate(new_middle):
            if index < len(old_middle):
                block = old_middle[index]
                if block.set_text(paragraph):
                    change.changed.append(block.id)
            else:
                block = _new_block(paragraph)
                change.added.append(block.id)
            middle.append(block)
        change.removed.extend(b.id for b in old_middle[len(new_middle) :])

        if change:
            self.blocks = old[:prefix] + middle + old[len(old) - suffix :]
            self.revision += 1
        return change

    def replace_range(self, start: int, end: int, replacement: str) -> TextChange:
        """Replace document text ``[start, end)`` with ``replacement``."""
        text = self.text
        if not 0 <= start <= end <= len(text):
            raise ValueError(f"Range [{start}, {end}) outside document of length {len(text)}")
        return self.set_text(text[:start] + replacement + text[end:])


__all__ = ["Document", "PARAGRAPH_SEPARATOR", "TextChange"]
