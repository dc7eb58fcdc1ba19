# src/marginalia/editor/show_tell.py
"""On-demand "show, don't tell" overlay over the whole document."""

from __future__ import annotations

from dataclasses import dataclass

from marginalia.core.logs import EventType, get_event_logger
from marginalia.editor.collaborators import ShowTellService
from marginalia.editor.decorations import Decoration, DecorationKind, apply_decorations
from marginalia.editor.document import Document
from marginalia.editor.errors import GenerationFailure, StaleResultDiscarded
from marginalia.models import Suggestion

event_logger = get_event_logger()

KIND = DecorationKind.TELLING_PHRASE


@dataclass(frozen=True)
class Placement:
    """Where a suggestion's phrase was found: block and local ``[start, end)``."""

    suggestion_index: int
    block_id: str
    start: int
    end: int


class ShowTellOverlay:
    """Suggestion overlay that lives only until the next edit.

    ``active`` is True from :meth:`enter` until :meth:`exit`; while active the
    session suspends edit-triggered highlighting. Suggestions are held as one
    batch and discarded as a whole.
    """

    def __init__(
        self, document: Document, service: ShowTellService, *, session_id: str | None = None
    ) -> None:
        self.document = document
        self.service = service
        self.session_id = session_id
        self.active = False
        self.suggestions: list[Suggestion] = []
        self.placements: dict[int, Placement] = {}
        self._entered_at: int | None = None

    async def enter(self) -> list[Placement]:
        """Analyze the full text and decorate each suggested phrase.

        Raises :class:`GenerationFailure` if the analysis service fails. If the
        document is edited (or the overlay exited) while the analysis runs, the
        result is discarded and an empty list returned.
        """
        self.exit()
        self.active = True
        revision = self._entered_at = self.document.revision
        event_logger.info(
            "Entering show/tell overlay",
            event_type=EventType.OVERLAY,
            session_id=self.session_id,
            component=__name__,
        )
        try:
            suggestions = await self.service.analyze(self.document.text)
        except Exception as exc:
            if self._entered_at == revision:
                self.exit()
            event_logger.warning(
                f"Show/tell analysis failed: {exc}",
                event_type=EventType.OVERLAY,
                session_id=self.session_id,
                component=__name__,
            )
            raise GenerationFailure(
                "Could not analyze the text for telling phrases. Please try again.",
                operation="analyze_show_tell",
            ) from exc

        if not self.active or self._entered_at != revision or self.document.revision != revision:
            stale = StaleResultDiscarded("*", revision, self.document.revision)
            event_logger.info(
                str(stale),
                event_type=EventType.STALE_RESULT,
                session_id=self.session_id,
                component=__name__,
            )
            return []

        self.suggestions = list(suggestions)
        self._place()
        return list(self.placements.values())

    def _place(self) -> None:
        per_block: dict[str, list[Decoration]] = {block.id: [] for block in self.document}
        self.placements = {}
        for index, suggestion in enumerate(self.suggestions):
            phrase = suggestion.original_text
            for block in self.document:
                start = block.text.find(phrase)
                if start < 0:
                    continue
                span = Decoration(start, start + len(phrase), KIND, str(index))
                # First occurrence only; earlier suggestions win conflicts.
                if not any(span.overlaps(placed) for placed in per_block[block.id]):
                    per_block[block.id].append(span)
                    self.placements[index] = Placement(index, block.id, span.start, span.end)
                break
        for block in self.document:
            apply_decorations(block, per_block[block.id], KIND)
        event_logger.info(
            f"Placed {len(self.placements)} of {len(self.suggestions)} suggestions",
            event_type=EventType.OVERLAY,
            session_id=self.session_id,
            component=__name__,
        )

    def selection_range(self, suggestion_index: int) -> tuple[int, int]:
        """Document offsets of the phrase a suggestion decorates."""
        placement = self.placements.get(suggestion_index)
        if not self.active or placement is None:
            raise KeyError(f"No placed suggestion {suggestion_index}")
        offset = self.document.offset_of(placement.block_id)
        return offset + placement.start, offset + placement.end

    def alternative(self, suggestion_index: int, alternative_index: int) -> str:
        return self.suggestions[suggestion_index].alternatives[alternative_index]

    def exit(self) -> None:
        """Leave overlay mode and drop every suggestion and telling-phrase decoration."""
        was_active = self.active
        self.active = False
        self._entered_at = None
        self.suggestions = []
        self.placements = {}
        for block in self.document:
            if block.decorations_of(KIND):
                apply_decorations(block, [], KIND)
        if was_active:
            event_logger.info(
                "Exited show/tell overlay",
                event_type=EventType.OVERLAY,
                session_id=self.session_id,
                component=__name__,
            )


__all__ = ["Placement", "ShowTellOverlay"]
