# src/marginalia/core/llm.py
"""Lightweight wrapper around LiteLLM for async LLM calls with structured output support."""

from __future__ import annotations

import json
import os
import re
import time
from typing import Any, TypeVar

import dirtyjson
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from marginalia.config import config
from marginalia.core.logs import EventType, get_event_logger

event_logger = get_event_logger()

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class StructuredOutputError(ValueError):
    """Raised when an LLM reply cannot be decoded into the expected model."""


def _get_global_temperature() -> float:
    """Return global temperature from env/config with default 0.7."""
    default = 0.7
    val = os.getenv("TEMPERATURE")
    try:
        if val is not None:
            t = float(val)
        else:
            t = config.llm.temperature
            if t is None:
                t = default
    except ValueError:
        t = default
    # Clamp to a reasonable range used by common providers
    return min(max(t, 0.0), 2.0)


def _require_credentials(operation: str, model: str) -> tuple[str, str]:
    api_base = config.llm.api_base
    api_key = config.llm.api_key
    if not api_base or not api_key:
        event_logger.error(
            "OPENAI_API_BASE and OPENAI_API_KEY must be set",
            event_type=EventType.LLM_REQUEST,
            metadata={"operation": operation, "model": model},
        )
        raise RuntimeError("OPENAI_API_BASE and OPENAI_API_KEY must be set")
    return api_base, api_key


def extract_json(content: str) -> Any:
    """Decode a JSON payload from an LLM reply, tolerating fences and prose."""
    text = _FENCE_RE.sub("", (content or "").strip()).strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # Attempt to salvage the outermost object or array
        match = re.search(r"(\{.*\}|\[.*\])", text, re.DOTALL)
        if not match:
            raise StructuredOutputError(f"No JSON found in reply: {text[:80]!r}") from None
        try:
            return dirtyjson.loads(match.group(1))
        except Exception as exc:
            raise StructuredOutputError(f"Unparseable JSON in reply: {exc}") from exc


async def call_llm(model: str, prompt: str, *, temperature: float | None = None) -> str:
    """Call the configured LLM and return the generated text.

    Parameters
    ----------
    model:
        Name of the model to query.
    prompt:
        User prompt passed directly to the model.
    temperature:
        Optional sampling temperature; the global default applies when omitted.

    Raises
    ------
    RuntimeError
        If required environment variables are missing.
    """
    import litellm

    api_base, api_key = _require_credentials("call_llm", model)
    effective_temperature = _get_global_temperature() if temperature is None else temperature
    start_time = time.time()

    event_logger.debug(
        f"Sending request to {model}",
        event_type=EventType.LLM_REQUEST,
        metadata={"operation": "call_llm", "model": model, "prompt_length": len(prompt)},
    )
    try:
        response: dict[str, Any] = await litellm.acompletion(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            api_base=api_base,
            api_key=api_key,
            temperature=effective_temperature,
        )
    except Exception as e:
        event_logger.error(
            f"LLM call to {model} failed: {e}",
            event_type=EventType.LLM_REQUEST,
            metadata={
                "operation": "call_llm",
                "model": model,
                "error_type": type(e).__name__,
                "duration": time.time() - start_time,
            },
        )
        raise

    content = response["choices"][0]["message"]["content"] or ""
    event_logger.debug(
        f"Received response from {model}",
        event_type=EventType.LLM_REQUEST,
        metadata={
            "operation": "call_llm",
            "model": model,
            "duration": time.time() - start_time,
            "response_length": len(content),
        },
    )
    return content


async def call_llm_structured(
    model: str,
    prompt: str,
    response_model: type[T],
    max_retries: int = 2,
    temperature: float | None = None,
) -> T:
    """Call the LLM and validate its reply against ``response_model``.

    The model's JSON schema is embedded in the prompt. Replies that fail to
    decode or validate are retried with the error appended as feedback, up to
    ``max_retries`` extra attempts.

    Raises
    ------
    RuntimeError
        If required environment variables are missing.
    StructuredOutputError
        If no attempt produced a valid payload.
    """
    model_name = getattr(response_model, "__name__", str(response_model))
    schema = json.dumps(response_model.model_json_schema(), ensure_ascii=False)
    base_prompt = (
        "Return ONLY valid JSON. No markdown, code fences, or prose.\n"
        f"The JSON must match this schema:\n{schema}\n\n{prompt}"
    )
    # Force low temperature for structured tasks
    effective_temperature = 0.1 if temperature is None or temperature > 0.2 else temperature
    feedback: str | None = None

    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type((ValidationError, StructuredOutputError)),
            stop=stop_after_attempt(max_retries + 1),
            wait=wait_fixed(0),
            reraise=False,
        ):
            with attempt:
                attempt_prompt = base_prompt
                if feedback:
                    attempt_prompt = (
                        f"{base_prompt}\n\nPrevious attempt failed with error: {feedback}"
                    )
                content = await call_llm(
                    model, attempt_prompt, temperature=effective_temperature
                )
                try:
                    return response_model.model_validate(extract_json(content))
                except (ValidationError, StructuredOutputError) as exc:
                    feedback = str(exc)
                    event_logger.warning(
                        f"Structured reply for {model_name} rejected "
                        f"(attempt {attempt.retry_state.attempt_number})",
                        event_type=EventType.LLM_REQUEST,
                        metadata={"model": model, "response_model": model_name},
                    )
                    raise
    except RetryError as exc:
        raise StructuredOutputError(
            f"{model_name}: no valid reply after {max_retries + 1} attempts: {feedback}"
        ) from exc.last_attempt.exception()
    raise StructuredOutputError(f"{model_name}: retry loop exited without a result")


__all__ = ["StructuredOutputError", "call_llm", "call_llm_structured", "extract_json"]
