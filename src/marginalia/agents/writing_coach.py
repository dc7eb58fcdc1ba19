# src/marginalia/agents/writing_coach.py
"""WritingCoach agent: finds "telling" phrases and proposes showing rewrites."""

from __future__ import annotations

from marginalia.agents.base import Agent
from marginalia.core.logs import log_calls
from marginalia.models import Suggestion, SuggestionList


class WritingCoach(Agent):
    """Show/tell analysis collaborator."""

    def __init__(self, *, model: str | None = None) -> None:
        super().__init__(
            model=model, default_model_env="WRITING_COACH_MODEL", config_field="writing_coach"
        )

    @log_calls
    async def analyze(self, full_text: str) -> list[Suggestion]:
        prompt = (
            'Act as an experienced creative writing coach focused on "show, don\'t tell". '
            "Find phrases in the text below that tell emotions, feelings or qualities "
            "instead of showing them through action, dialogue or sensory detail, such "
            'as "she was sad", "he felt angry" or "the room was luxurious".\n'
            "For each one, copy the phrase exactly as it appears in the text into "
            "original_text, explain the problem, and give 2 to 3 rewritten alternatives "
            "that show the same idea. If nothing is found, return an empty list.\n\n"
            f"Text to analyze:\n---\n{full_text}\n---"
        )
        result = await self.call_llm_structured(prompt, SuggestionList)
        return result.suggestions


__all__ = ["WritingCoach"]
