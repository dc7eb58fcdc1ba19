# src/marginalia/editor/decorations.py
"""Decoration model: tagged, offset-bounded annotations over block text.

A block's decorations are grouped by the pass that owns them. Each pass
replaces its own group wholesale (:func:`apply_decorations`) and never patches
individual spans. Within a group spans never overlap; spans of different groups
may, and :func:`render` resolves the overlap by kind priority.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from marginalia.core.logs import get_event_logger
from marginalia.editor.errors import OverlapError

event_logger = get_event_logger()


class DecorationKind(str, Enum):
    HIGHLIGHT = "highlight"
    INCONSISTENCY = "inconsistency"
    TELLING_PHRASE = "telling_phrase"

    @property
    def priority(self) -> int:
        return _PRIORITY[self]


_PRIORITY = {
    DecorationKind.INCONSISTENCY: 3,
    DecorationKind.HIGHLIGHT: 2,
    DecorationKind.TELLING_PHRASE: 1,
}

# Kinds written by the entity highlighter in a single pass.
ENTITY_KINDS = frozenset({DecorationKind.HIGHLIGHT, DecorationKind.INCONSISTENCY})


@dataclass(frozen=True)
class Decoration:
    """Half-open span ``[start, end)`` over a block's plain text.

    ``ref_id`` points at an entity for highlight/inconsistency decorations and
    at a suggestion index for telling-phrase decorations.
    """

    start: int
    end: int
    kind: DecorationKind
    ref_id: str

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(f"Invalid decoration span [{self.start}, {self.end})")

    def overlaps(self, other: Decoration) -> bool:
        return self.start < other.end and other.start < self.end

    def covers(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end


@dataclass(frozen=True)
class Run:
    """One piece of the rendered partition; ``decoration`` is None for plain text."""

    start: int
    end: int
    text: str
    decoration: Decoration | None = None

    @property
    def kind(self) -> DecorationKind | None:
        return self.decoration.kind if self.decoration else None


@dataclass
class Block:
    """A paragraph: plain text, its decorations and a monotonic edit counter."""

    id: str
    text: str = ""
    decorations: list[Decoration] = field(default_factory=list)
    edit_counter: int = 0

    def set_text(self, text: str) -> bool:
        """Replace the text; return True (and bump the counter) if it changed.

        Offsets of existing decorations are meaningless after a change, so all
        decorations are dropped until the owning passes run again.
        """
        if text == self.text:
            return False
        self.text = text
        self.edit_counter += 1
        self.decorations = []
        return True

    def decorations_of(self, kinds: DecorationKind | Iterable[DecorationKind]) -> list[Decoration]:
        wanted = _as_kinds(kinds)
        return [d for d in self.decorations if d.kind in wanted]

    def fingerprint(self, kinds: DecorationKind | Iterable[DecorationKind] | None = None) -> str:
        """Stable hash of the (optionally filtered) decoration list."""
        decorations = self.decorations if kinds is None else self.decorations_of(kinds)
        return span_fingerprint(decorations)


def _as_kinds(kinds: DecorationKind | Iterable[DecorationKind]) -> frozenset[DecorationKind]:
    if isinstance(kinds, DecorationKind):
        return frozenset({kinds})
    return frozenset(kinds)


def span_fingerprint(decorations: Iterable[Decoration]) -> str:
    digest = hashlib.sha1()
    for d in decorations:
        digest.update(f"{d.start}:{d.end}:{d.kind.value}:{d.ref_id};".encode("utf-8"))
    return digest.hexdigest()


def _sort_key(d: Decoration) -> tuple[int, int, int]:
    return (d.start, -d.kind.priority, d.end)


def apply_decorations(
    block: Block,
    new_spans: Iterable[Decoration],
    kinds: DecorationKind | Iterable[DecorationKind],
) -> None:
    """Replace every decoration of ``kinds`` in ``block`` with ``new_spans``.

    Decorations of other kinds are left untouched. Raises :class:`OverlapError`
    if ``new_spans`` overlap each other, and ``ValueError`` if a span lies
    outside the text or has a kind outside ``kinds``; in both cases the block
    is left exactly as it was.
    """
    replaced = _as_kinds(kinds)
    spans = sorted(new_spans, key=_sort_key)
    text_length = len(block.text)
    previous: Decoration | None = None
    for span in spans:
        if span.kind not in replaced:
            raise ValueError(f"Decoration kind {span.kind.value} is not part of this pass")
        if span.end > text_length:
            raise ValueError(
                f"Decoration [{span.start}, {span.end}) exceeds block length {text_length}"
            )
        if previous is not None and previous.overlaps(span):
            event_logger.error(
                f"Overlapping spans [{previous.start}, {previous.end}) and "
                f"[{span.start}, {span.end}) rejected",
                component=__name__,
                block_id=block.id,
            )
            raise OverlapError(
                f"Spans [{previous.start}, {previous.end}) and [{span.start}, {span.end}) overlap"
            )
        previous = span

    kept = [d for d in block.decorations if d.kind not in replaced]
    block.decorations = sorted(kept + spans, key=_sort_key)


def render(block: Block) -> list[Run]:
    """Partition the block text into plain and decorated runs.

    Where decorations of different kinds cover the same offset the one with
    the highest priority wins (inconsistency > highlight > telling phrase).
    Joining the ``text`` of all runs reproduces the block text exactly.
    """
    text = block.text
    if not text:
        return []
    decorations = [d for d in block.decorations if d.end <= len(text)]
    boundaries = sorted({0, len(text)} | {d.start for d in decorations} | {d.end for d in decorations})

    runs: list[Run] = []
    for start, end in zip(boundaries, boundaries[1:]):
        covering = [d for d in decorations if d.covers(start, end)]
        winner = max(covering, key=lambda d: (d.kind.priority, -d.start)) if covering else None
        if runs and runs[-1].decoration is winner:
            last = runs.pop()
            runs.append(Run(last.start, end, text[last.start : end], winner))
        else:
            runs.append(Run(start, end, text[start:end], winner))
    return runs


__all__ = [
    "Block",
    "Decoration",
    "DecorationKind",
    "ENTITY_KINDS",
    "Run",
    "apply_decorations",
    "render",
    "span_fingerprint",
]
