# src/marginalia/agents/co_writer.py
"""CoWriter agent: continues, rewrites and formats manuscript text."""

from __future__ import annotations

import re

from marginalia.agents.base import Agent
from marginalia.core.logs import EventType, get_event_logger, log_calls

event_logger = get_event_logger()

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def _clean(reply: str) -> str:
    """Strip whitespace and a surrounding code fence from a free-text reply."""
    return _FENCE_RE.sub("", reply.strip()).strip()


class CoWriter(Agent):
    """Generation collaborator of the edit session."""

    def __init__(self, *, model: str | None = None) -> None:
        super().__init__(model=model, default_model_env="CO_WRITER_MODEL", config_field="co_writer")

    def _record(self, operation: str, text: str) -> None:
        event_logger.info(
            f"{self.__class__.__name__} {operation}",
            event_type=EventType.GENERATION,
            component=__name__,
            metadata={"operation": operation, "chars": len(text)},
        )

    @log_calls
    async def continue_text(self, text: str) -> str:
        """Return one or two paragraphs that continue ``text``."""
        prompt = (
            "You are a creative writing assistant. Continue the following story from "
            "where it stops, adding one or two paragraphs. Keep the tone, the style and "
            "the characters consistent. Return only the new paragraphs.\n\n"
            f"Story so far:\n---\n{text}\n---"
        )
        self._record("continue_text", text)
        return _clean(await self.call_llm(prompt))

    @log_calls
    async def modify(self, text: str, context: str, instruction: str) -> str:
        """Rewrite ``text`` following ``instruction``; ``context`` is the full chapter."""
        prompt = (
            "You are a skilled text editor. Follow this instruction to modify the "
            f'excerpt below: "{instruction}"\n\n'
            f"Full chapter, for tone and style reference:\n---\n{context}\n---\n\n"
            f"Excerpt to modify:\n---\n{text}\n---\n\n"
            "Return only the modified excerpt, without comments or extra formatting."
        )
        self._record("modify", text)
        return _clean(await self.call_llm(prompt))

    @log_calls
    async def format_rich(self, text: str) -> str:
        """Return ``text`` as simple HTML (<p>, <i>, <b>) without changing any word."""
        prompt = (
            "Act as a professional formatter for a fiction manuscript. Format the text "
            "below with simple HTML tags (<p>, <i>, <b>).\n"
            "- Wrap every paragraph in <p></p>.\n"
            "- Use <i> for inner thoughts or emphasis.\n"
            "- Use <b> for strong emphasis, if any.\n"
            "- Keep each line of dialogue in its own paragraph.\n"
            "Do NOT add, remove or rewrite any word. Return only the formatted HTML.\n\n"
            f"Text to format:\n---\n{text}\n---"
        )
        self._record("format_rich", text)
        return _clean(await self.call_llm(prompt, temperature=0.1))


__all__ = ["CoWriter"]
