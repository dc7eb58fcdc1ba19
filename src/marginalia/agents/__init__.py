"""LLM-backed collaborators for the edit session."""

from .base import Agent
from .co_writer import CoWriter
from .continuity_editor import ContinuityEditor
from .writing_coach import WritingCoach

__all__ = ["Agent", "CoWriter", "ContinuityEditor", "WritingCoach"]
