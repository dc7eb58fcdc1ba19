# src/marginalia/agents/continuity_editor.py
"""ContinuityEditor agent: checks manuscript paragraphs against entity lore."""

from __future__ import annotations

from marginalia.agents.base import Agent
from marginalia.core.logs import log_calls
from marginalia.models import ConsistencyVerdict


class ContinuityEditor(Agent):
    """Consistency collaborator: one structured call per (paragraph, entity)."""

    def __init__(self, *, model: str | None = None) -> None:
        super().__init__(
            model=model,
            default_model_env="CONTINUITY_EDITOR_MODEL",
            config_field="continuity_editor",
        )

    @log_calls
    async def verify(
        self, paragraph_text: str, entity_name: str, entity_description: str
    ) -> ConsistencyVerdict:
        prompt = (
            "Act as a meticulous continuity editor. Decide whether the manuscript "
            "paragraph contradicts the official lore sheet of one entity.\n"
            "Focus ONLY on direct factual contradictions (eye colour, alive or dead, "
            "ownership of an item). A vague paragraph, or one without conflicting "
            "information, is not a contradiction. When it is, explain the conflict in "
            "one sentence.\n\n"
            f'- Entity name: "{entity_name}"\n'
            f'- Official lore sheet: "{entity_description}"\n'
            f'- Manuscript paragraph: "{paragraph_text}"'
        )
        return await self.call_llm_structured(prompt, ConsistencyVerdict)


__all__ = ["ContinuityEditor"]
