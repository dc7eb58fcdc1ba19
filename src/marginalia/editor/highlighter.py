# src/marginalia/editor/highlighter.py
"""Entity highlighter: decorates every known-entity mention in the document."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from marginalia.core.logs import EventType, get_event_logger
from marginalia.editor.decorations import (
    ENTITY_KINDS,
    Block,
    Decoration,
    DecorationKind,
    apply_decorations,
)
from marginalia.editor.document import Document
from marginalia.editor.entity_index import EntityIndex
from marginalia.editor.errors import OverlapError

event_logger = get_event_logger()


class EntityHighlighter:
    """Produces highlight/inconsistency decorations from an entity index.

    A pass is a pure function of (block text, index, inconsistency map,
    non-entity decorations) and replaces the block's entity decorations
    wholesale, so repeated passes over unchanged input are identical.
    """

    def __init__(
        self,
        index: EntityIndex,
        inconsistencies: Mapping[str, str],
        *,
        session_id: str | None = None,
    ) -> None:
        self.index = index
        self.inconsistencies = inconsistencies
        self.session_id = session_id
        self.passes = 0

    def spans_for(self, block: Block) -> list[Decoration]:
        excluded = [
            (d.start, d.end) for d in block.decorations if d.kind not in ENTITY_KINDS
        ]
        spans = []
        for mention in self.index.find_mentions(block.text, excluded):
            kind = (
                DecorationKind.INCONSISTENCY
                if self.inconsistencies.get(mention.entity.id) is not None
                else DecorationKind.HIGHLIGHT
            )
            spans.append(Decoration(mention.start, mention.end, kind, mention.entity.id))
        return spans

    def highlight_block(self, block: Block) -> bool:
        """Re-decorate one block; return False if the pass was aborted."""
        try:
            apply_decorations(block, self.spans_for(block), ENTITY_KINDS)
        except (OverlapError, ValueError) as exc:
            event_logger.error(
                f"Highlight pass aborted, keeping previous decorations: {exc}",
                event_type=EventType.HIGHLIGHT_PASS,
                session_id=self.session_id,
                component=__name__,
                block_id=block.id,
            )
            return False
        return True

    def run(self, document: Document, block_ids: Iterable[str] | None = None) -> int:
        """Highlight the given blocks (all blocks by default); return the span count."""
        wanted = None if block_ids is None else set(block_ids)
        total = 0
        for block in document:
            if wanted is not None and block.id not in wanted:
                continue
            if self.highlight_block(block):
                total += len(block.decorations_of(ENTITY_KINDS))
        self.passes += 1
        event_logger.debug(
            f"Highlight pass {self.passes} produced {total} spans",
            event_type=EventType.HIGHLIGHT_PASS,
            session_id=self.session_id,
            component=__name__,
        )
        return total


__all__ = ["EntityHighlighter"]
