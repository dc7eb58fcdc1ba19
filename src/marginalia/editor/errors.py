# src/marginalia/editor/errors.py
"""Exceptions raised by the annotation engine."""

from __future__ import annotations


class MarginaliaError(Exception):
    """Base class for engine errors."""


class OverlapError(MarginaliaError, ValueError):
    """Spans handed to one decoration pass overlap each other.

    Signals a bug in the pass that produced them; the pass is aborted and the
    block keeps its previous decorations.
    """


class VerificationFailure(MarginaliaError):
    """A consistency check for one entity could not be completed."""

    def __init__(self, entity_id: str, block_id: str, cause: BaseException | None = None):
        self.entity_id = entity_id
        self.block_id = block_id
        self.cause = cause
        super().__init__(f"Consistency check failed for entity {entity_id} in block {block_id}: {cause}")


class GenerationFailure(MarginaliaError):
    """A generation request failed; ``user_message`` is safe to show to the author."""

    def __init__(self, user_message: str, operation: str = ""):
        self.user_message = user_message
        self.operation = operation
        super().__init__(user_message)


class StaleResultDiscarded(MarginaliaError):
    """An async result was computed against text that has since changed."""

    def __init__(self, block_id: str, captured: int, current: int | None):
        self.block_id = block_id
        self.captured = captured
        self.current = current
        super().__init__(
            f"Discarding result for block {block_id}: computed at revision {captured}, now {current}"
        )


class SessionClosedError(MarginaliaError):
    """The edit session was closed and no longer accepts operations."""


__all__ = [
    "GenerationFailure",
    "MarginaliaError",
    "OverlapError",
    "SessionClosedError",
    "StaleResultDiscarded",
    "VerificationFailure",
]
