# src/marginalia/editor/session.py
"""Edit session: the single owner of one chapter's live buffer and its annotations."""

from __future__ import annotations

from uuid import uuid4

from marginalia.config import EditorConfig, VersionConfig, config
from marginalia.core.logs import EventType, get_event_logger
from marginalia.core.scheduler import Debouncer
from marginalia.editor.collaborators import (
    ConsistencyService,
    GenerationService,
    ShowTellService,
)
from marginalia.editor.decorations import Run, render
from marginalia.editor.document import PARAGRAPH_SEPARATOR, Document, TextChange
from marginalia.editor.entity_index import EntityIndex, build_entity_index
from marginalia.editor.errors import GenerationFailure, SessionClosedError, StaleResultDiscarded
from marginalia.editor.highlighter import EntityHighlighter
from marginalia.editor.show_tell import Placement, ShowTellOverlay
from marginalia.editor.verifier import ConsistencyVerifier
from marginalia.editor.versions import VersionScheduler
from marginalia.models import Actor, Chapter, Story, Version

event_logger = get_event_logger()

HIGHLIGHT_KEY = "highlight"


class EditSession:
    """Live editing of one chapter of ``story``.

    Only the session mutates the buffer text. Every edit goes through
    :meth:`set_text` (or :meth:`replace_range`), which exits the show/tell
    overlay, schedules a highlight pass, a consistency check of the caret's
    block and an autosave. All timers and in-flight calls belong to one
    :class:`Debouncer` and are cancelled by :meth:`close`.

    A session's timers and in-flight calls run on one event loop at a time.

    Use as an async context manager, or call :meth:`close` explicitly.
    """

    def __init__(
        self,
        story: Story,
        chapter_id: str,
        *,
        consistency: ConsistencyService,
        show_tell: ShowTellService,
        generation: GenerationService,
        editor_settings: EditorConfig | None = None,
        version_settings: VersionConfig | None = None,
        session_id: str | None = None,
    ) -> None:
        self.story = story
        self.chapter_id = chapter_id
        self.generation = generation
        self.editor_settings = editor_settings or config.editor
        self.version_settings = version_settings or config.versions
        self.session_id = session_id or uuid4().hex

        chapter = story.chapter(chapter_id)
        self._chapter_title = chapter.title
        self.document = Document(chapter.content)
        self.debouncer = Debouncer()
        self.index = self._build_index()
        self.verifier = ConsistencyVerifier(
            self.document,
            self.index,
            consistency,
            self.debouncer,
            self._on_inconsistencies_changed,
            settings=self.editor_settings,
            session_id=self.session_id,
        )
        self.highlighter = EntityHighlighter(
            self.index, self.verifier.record, session_id=self.session_id
        )
        self.overlay = ShowTellOverlay(self.document, show_tell, session_id=self.session_id)
        self.versions = VersionScheduler(
            story,
            self.debouncer,
            before_snapshot=self._flush,
            settings=self.version_settings,
            session_id=self.session_id,
        )
        self.highlighter.run(self.document)
        event_logger.info(
            f"Opened session on chapter {chapter_id}",
            event_type=EventType.SESSION,
            session_id=self.session_id,
            component=__name__,
            metadata={"blocks": len(self.document)},
        )

    async def __aenter__(self) -> EditSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self.debouncer.closed

    @property
    def text(self) -> str:
        return self.document.text

    @property
    def word_count(self) -> int:
        return self.document.word_count

    def _ensure_open(self) -> None:
        if self.closed:
            raise SessionClosedError(f"Session {self.session_id} is closed")

    def _build_index(self) -> EntityIndex:
        return build_entity_index(self.story, self.editor_settings.min_entity_name_length)

    # --- Editing ---

    def set_text(self, text: str, caret: int | None = None) -> TextChange:
        """Replace the buffer with ``text``; ``caret`` is a document offset.

        Without a caret every touched block is scheduled for verification.
        """
        self._ensure_open()
        if self.overlay.active:
            self.overlay.exit()
            self._highlight()
        change = self.document.set_text(text)
        if not change:
            return change

        for block_id in change.removed:
            self.verifier.cancel(block_id)
        self._schedule_highlight()
        if caret is None:
            for block_id in change.touched:
                self.verifier.schedule(block_id)
        else:
            block, _ = self.document.locate(caret)
            self.verifier.schedule(block.id)
        self.versions.schedule_autosave()
        return change

    def replace_range(self, start: int, end: int, replacement: str) -> TextChange:
        """Replace ``[start, end)`` and put the caret after the replacement."""
        text = self.document.text
        if not 0 <= start <= end <= len(text):
            raise ValueError(f"Range [{start}, {end}) outside document of length {len(text)}")
        return self.set_text(
            text[:start] + replacement + text[end:], caret=start + len(replacement)
        )

    def insert(self, offset: int, text: str) -> TextChange:
        return self.replace_range(offset, offset, text)

    # --- Highlighting ---

    def _schedule_highlight(self) -> None:
        if self.overlay.active:
            return
        delay = self.editor_settings.highlight_delay
        if delay <= 0:
            self.debouncer.cancel(HIGHLIGHT_KEY)
            self._highlight()
        else:
            self.debouncer.schedule(HIGHLIGHT_KEY, delay, self._highlight)

    def _highlight(self) -> None:
        if self.closed:
            return
        self.highlighter.run(self.document)

    def _on_inconsistencies_changed(self) -> None:
        # Deferred until the overlay exits.
        if not self.overlay.active:
            self._highlight()

    def refresh_entities(self) -> None:
        """Rebuild the entity index after characters or world entries changed."""
        self._ensure_open()
        self.index = self._build_index()
        self.highlighter.index = self.index
        self.verifier.index = self.index
        known = self.index.by_id
        for entity_id in [e for e in self.verifier.record if e not in known]:
            self.verifier.record.clear_entity(entity_id)
        if not self.overlay.active:
            self._highlight()

    # --- Show/tell overlay ---

    async def enter_show_tell(self) -> list[Placement]:
        """Analyze the buffer and overlay the telling phrases found.

        Raises :class:`GenerationFailure` if the analysis fails.
        """
        self._ensure_open()
        self.debouncer.cancel(HIGHLIGHT_KEY)
        try:
            return await self.overlay.enter()
        finally:
            # Runs the pass cancelled above; entity spans yield to placed phrases.
            if not self.closed:
                self._highlight()

    def exit_show_tell(self) -> None:
        self._ensure_open()
        if self.overlay.active:
            self.overlay.exit()
            self._highlight()

    def select_alternative(self, suggestion_index: int, alternative_index: int) -> TextChange:
        """Replace a suggestion's phrase with one of its alternatives and leave the overlay."""
        self._ensure_open()
        start, end = self.overlay.selection_range(suggestion_index)
        replacement = self.overlay.alternative(suggestion_index, alternative_index)
        return self.replace_range(start, end, replacement)

    # --- Generation ---

    async def continue_writing(self) -> str:
        """Append a generated continuation to the buffer and return it."""
        self._ensure_open()
        try:
            continuation = await self.generation.continue_text(self.document.text)
        except Exception as exc:
            raise self._generation_failed(
                "Could not continue the text. Please try again.", "continue_writing", exc
            ) from exc
        self._ensure_open()
        current = self.document.text.strip()
        continuation = continuation.strip()
        text = f"{current}{PARAGRAPH_SEPARATOR}{continuation}" if current else continuation
        self.set_text(text, caret=len(text))
        return continuation

    async def modify_selection(self, start: int, end: int, instruction: str) -> str:
        """Rewrite ``[start, end)`` following ``instruction`` and return the new text."""
        self._ensure_open()
        text = self.document.text
        selected = text[start:end]
        if not 0 <= start < end <= len(text) or not selected.strip():
            raise ValueError("Select some text to modify")
        try:
            modified = await self.generation.modify(selected, text, instruction)
        except Exception as exc:
            raise self._generation_failed(
                "Could not modify the selected text. Please try again.", "modify_selection", exc
            ) from exc
        self._ensure_open()
        if self.document.text[start:end] != selected:
            stale = StaleResultDiscarded("*", 0, self.document.revision)
            raise self._generation_failed(
                "The selection changed while it was being rewritten. Please try again.",
                "modify_selection",
                stale,
            )
        self.replace_range(start, end, modified.strip())
        return modified.strip()

    async def format_rich(self) -> str:
        """Return an HTML rendering of the buffer; the buffer itself is unchanged."""
        self._ensure_open()
        try:
            return await self.generation.format_rich(self.document.text)
        except Exception as exc:
            raise self._generation_failed(
                "Could not format the text. Please try again.", "format_rich", exc
            ) from exc

    def _generation_failed(
        self, message: str, operation: str, exc: BaseException
    ) -> GenerationFailure:
        event_logger.warning(
            f"{operation} failed: {exc}",
            event_type=EventType.GENERATION,
            session_id=self.session_id,
            component=__name__,
            metadata={"operation": operation, "error_type": type(exc).__name__},
        )
        return GenerationFailure(message, operation=operation)

    # --- Story and versions ---

    def _chapter(self) -> Chapter:
        """The edited chapter, re-created at the end of the story if a restore removed it."""
        try:
            chapter = self.story.chapter(self.chapter_id)
        except KeyError:
            chapter = Chapter(id=self.chapter_id, title=self._chapter_title)
            self.story.chapters = [*self.story.chapters, chapter]
            chapter = self.story.chapter(self.chapter_id)
        self._chapter_title = chapter.title
        return chapter

    def _flush(self) -> None:
        chapter = self._chapter()
        if chapter.content != self.document.text:
            chapter.content = self.document.text

    def save(self) -> None:
        """Write the buffer into the chapter."""
        self._ensure_open()
        self._flush()
        chapter = self._chapter()
        self.story.log_action(f"Saved chapter '{chapter.title}'.", Actor.USER)

    def save_version(self, name: str) -> Version:
        self._ensure_open()
        return self.versions.save_manual(name)

    def set_autosave(self, enabled: bool) -> None:
        self._ensure_open()
        self.versions.set_autosave(enabled)

    def restore_version(self, version_id: str) -> Version:
        """Restore a version and reload the buffer from the restored chapter.

        If the edited chapter does not exist in the restored content the buffer
        is emptied; the next save or autosave writes it back as a new chapter
        with the same id and title.
        """
        self._ensure_open()
        self.overlay.exit()
        version = self.versions.restore(version_id)
        for block in self.document:
            self.verifier.cancel(block.id)
        self.debouncer.cancel(HIGHLIGHT_KEY)
        try:
            content = self.story.chapter(self.chapter_id).content
        except KeyError:
            content = ""
        self.document.set_text(content)
        self.verifier.record.reset()
        self.index = self._build_index()
        self.highlighter.index = self.index
        self.verifier.index = self.index
        self._highlight()
        return version

    # --- Rendering and lifecycle ---

    def render(self) -> list[list[Run]]:
        """Decorated runs of every block, in document order."""
        return [render(block) for block in self.document]

    def inconsistency(self, entity_id: str) -> str | None:
        return self.verifier.record.get(entity_id)

    def close(self) -> None:
        """Cancel every pending timer and in-flight call; idempotent."""
        if self.closed:
            return
        self.debouncer.cancel_all()
        event_logger.info(
            "Closed session",
            event_type=EventType.SESSION,
            session_id=self.session_id,
            component=__name__,
        )


__all__ = ["EditSession", "HIGHLIGHT_KEY"]
