# src/marginalia/agents/base.py
"""Base class for the LLM-backed editor collaborators."""

from __future__ import annotations

import os
from typing import Any, TypeVar, cast

from pydantic import BaseModel

from marginalia.config import config
from marginalia.core.llm import call_llm, call_llm_structured
from marginalia.core.logs import log_calls, log_message

T = TypeVar("T", bound=BaseModel)


class Agent:
    """Base class for all Marginalia agents, providing common utilities."""

    def __init__(
        self, *, model: str | None = None, default_model_env: str, config_field: str
    ) -> None:
        """Initialize the agent with a model.

        The model can be passed directly, set through the environment variable
        ``default_model_env``, or taken from ``config.agents.<config_field>``.

        Raises
        ------
        ValueError
            If no model could be resolved.
        """
        self.model: str = cast(
            str,
            model
            or os.environ.get(default_model_env)
            or getattr(config.agents, config_field, ""),
        )
        if not self.model:
            raise ValueError(f"Model not provided and {default_model_env} not set.")

    @log_calls
    async def call_llm(self, prompt: str, *, temperature: float | None = None) -> str:
        """Free-text completion from the agent model."""
        try:
            return await call_llm(self.model, prompt, temperature=temperature)
        except Exception as exc:
            await self.log_message(f"LLM error: {exc}")
            raise

    @log_calls
    async def call_llm_structured(
        self,
        prompt: str,
        response_model: type[T],
        *,
        temperature: float | None = None,
        max_retries: int = 2,
    ) -> T:
        """Ask for a JSON reply matching ``response_model`` and return it parsed.

        Replies that fail validation are re-requested up to ``max_retries``
        times; the final failure is logged under the agent name and re-raised.
        """
        try:
            kwargs: dict[str, Any] = {"max_retries": max_retries}
            if temperature is not None:
                kwargs["temperature"] = float(temperature)
            return await call_llm_structured(self.model, prompt, response_model, **kwargs)
        except Exception as exc:
            await self.log_message(f"LLM error: {exc}")
            raise

    async def log_message(self, message: str) -> None:
        """Record ``message`` prefixed with the agent class name."""
        log_message(f"{self.__class__.__name__}: {message}")


__all__ = ["Agent"]
