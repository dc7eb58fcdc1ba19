# src/marginalia/core/__init__.py
"""Core utilities for Marginalia."""

from .env import load_env
from .llm import call_llm, call_llm_structured
from .logs import get_event_logger, get_logger, log_message
from .scheduler import Debouncer

__all__ = [
    "call_llm",
    "call_llm_structured",
    "Debouncer",
    "load_env",
    "get_event_logger",
    "get_logger",
    "log_message",
]
