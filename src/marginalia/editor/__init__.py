"""Live annotation engine for the manuscript editor."""

from .collaborators import ConsistencyService, GenerationService, ShowTellService
from .decorations import (
    ENTITY_KINDS,
    Block,
    Decoration,
    DecorationKind,
    Run,
    apply_decorations,
    render,
)
from .document import Document, TextChange
from .entity_index import EntityIndex, Mention, build_entity_index, story_entities
from .errors import (
    GenerationFailure,
    MarginaliaError,
    OverlapError,
    SessionClosedError,
    StaleResultDiscarded,
    VerificationFailure,
)
from .highlighter import EntityHighlighter
from .session import EditSession
from .show_tell import Placement, ShowTellOverlay
from .verifier import ConsistencyVerifier, InconsistencyRecord
from .versions import VersionScheduler, apply_retention

__all__ = [
    "ENTITY_KINDS",
    "Block",
    "ConsistencyService",
    "ConsistencyVerifier",
    "Decoration",
    "DecorationKind",
    "Document",
    "EditSession",
    "EntityHighlighter",
    "EntityIndex",
    "GenerationFailure",
    "GenerationService",
    "InconsistencyRecord",
    "MarginaliaError",
    "Mention",
    "OverlapError",
    "Placement",
    "Run",
    "SessionClosedError",
    "ShowTellOverlay",
    "ShowTellService",
    "StaleResultDiscarded",
    "TextChange",
    "VerificationFailure",
    "VersionScheduler",
    "apply_decorations",
    "apply_retention",
    "build_entity_index",
    "render",
    "story_entities",
]
