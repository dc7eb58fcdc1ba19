# src/marginalia/editor/verifier.py
"""Consistency verifier: per-paragraph lore checks against mentioned entities."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator, Mapping

from marginalia.config import EditorConfig, config
from marginalia.core.logs import EventType, get_event_logger
from marginalia.core.scheduler import Debouncer
from marginalia.editor.collaborators import ConsistencyService
from marginalia.editor.document import Document
from marginalia.editor.entity_index import EntityIndex
from marginalia.editor.errors import StaleResultDiscarded, VerificationFailure
from marginalia.models import ConsistencyVerdict, Entity

event_logger = get_event_logger()

DEFAULT_EXPLANATION = "Contradicts the established lore."


class InconsistencyRecord(Mapping[str, str]):
    """entity id -> explanation of the latest detected contradiction.

    Written only by :class:`ConsistencyVerifier`; the highlighter reads it to
    choose between highlight and inconsistency decorations.
    """

    def __init__(self) -> None:
        self._explanations: dict[str, str] = {}

    def __getitem__(self, entity_id: str) -> str:
        return self._explanations[entity_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._explanations)

    def __len__(self) -> int:
        return len(self._explanations)

    def set(self, entity_id: str, explanation: str | None) -> bool:
        explanation = explanation or DEFAULT_EXPLANATION
        if self._explanations.get(entity_id) == explanation:
            return False
        self._explanations[entity_id] = explanation
        return True

    def clear_entity(self, entity_id: str) -> bool:
        return self._explanations.pop(entity_id, None) is not None

    def reset(self) -> None:
        self._explanations.clear()


class ConsistencyVerifier:
    """Schedules debounced checks per block and applies their verdicts.

    Each scheduled check captures the block's edit counter. A verdict is only
    applied if the block still exists and its counter is unchanged, so results
    computed against superseded text are dropped regardless of the order in
    which calls complete.
    """

    def __init__(
        self,
        document: Document,
        index: EntityIndex,
        service: ConsistencyService,
        debouncer: Debouncer,
        on_change: Callable[[], None],
        *,
        settings: EditorConfig | None = None,
        session_id: str | None = None,
    ) -> None:
        self.document = document
        self.index = index
        self.service = service
        self.debouncer = debouncer
        self.on_change = on_change
        self.settings = settings or config.editor
        self.session_id = session_id
        self.record = InconsistencyRecord()
        self._semaphore = asyncio.Semaphore(max(1, self.settings.max_concurrent_checks))

    @staticmethod
    def debounce_key(block_id: str) -> tuple[str, str]:
        return ("verify", block_id)

    def schedule(self, block_id: str) -> bool:
        """(Re)schedule a check of ``block_id`` after the debounce window.

        Returns False when the block is too short to be worth checking.
        """
        block = self.document.get(block_id)
        if block is None or len(block.text) < self.settings.min_verify_length:
            return False
        captured = block.edit_counter
        self.debouncer.schedule(
            self.debounce_key(block_id),
            self.settings.verify_delay,
            lambda: self.check_block(block_id, captured),
        )
        event_logger.debug(
            f"Consistency check scheduled at edit counter {captured}",
            event_type=EventType.VERIFICATION_SCHEDULED,
            session_id=self.session_id,
            component=__name__,
            block_id=block_id,
        )
        return True

    def cancel(self, block_id: str) -> None:
        self.debouncer.cancel(self.debounce_key(block_id))

    async def check_block(self, block_id: str, captured: int) -> None:
        """Verify every entity mentioned in the block, applying each verdict as it lands."""
        block = self.document.get(block_id)
        if not self._is_current(block_id, captured):
            return
        text = block.text
        entities = self.index.mentioned_entities(text)
        if not entities:
            return
        await asyncio.gather(
            *(self._verify_entity(block_id, captured, text, entity) for entity in entities)
        )

    async def _verify_entity(self, block_id: str, captured: int, text: str, entity: Entity) -> None:
        async with self._semaphore:
            if not self._is_current(block_id, captured):
                return
            try:
                verdict = await self.service.verify(text, entity.name, entity.description)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                failure = VerificationFailure(entity.id, block_id, exc)
                event_logger.warning(
                    str(failure),
                    event_type=EventType.VERIFICATION_FAILED,
                    session_id=self.session_id,
                    component=__name__,
                    block_id=block_id,
                    metadata={"entity_id": entity.id, "error_type": type(exc).__name__},
                )
                return
        self.apply_result(block_id, captured, entity.id, verdict)

    def _is_current(self, block_id: str, captured: int) -> bool:
        block = self.document.get(block_id)
        current = block.edit_counter if block is not None else None
        if current == captured:
            return True
        stale = StaleResultDiscarded(block_id, captured, current)
        event_logger.info(
            str(stale),
            event_type=EventType.STALE_RESULT,
            session_id=self.session_id,
            component=__name__,
            block_id=block_id,
        )
        return False

    def apply_result(
        self, block_id: str, captured: int, entity_id: str, verdict: ConsistencyVerdict
    ) -> bool:
        """Apply one verdict; return False if it was discarded as stale."""
        if self.debouncer.closed or not self._is_current(block_id, captured):
            return False
        if verdict.is_contradictory:
            self.record.set(entity_id, verdict.explanation)
        else:
            self.record.clear_entity(entity_id)
        event_logger.info(
            f"Entity {entity_id} is {'contradictory' if verdict.is_contradictory else 'consistent'}",
            event_type=EventType.VERIFICATION_APPLIED,
            session_id=self.session_id,
            component=__name__,
            block_id=block_id,
            metadata={"entity_id": entity_id, "explanation": verdict.explanation},
        )
        self.on_change()
        return True


__all__ = ["ConsistencyVerifier", "DEFAULT_EXPLANATION", "InconsistencyRecord"]
