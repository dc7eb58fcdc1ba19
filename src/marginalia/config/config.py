# src/marginalia/config/config.py
"""Configuration system for Marginalia."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field


def _env(default: Any, name: str) -> Any:
    """Declare a config field backed by the environment variable ``name``."""
    return Field(default=default, json_schema_extra={"env": name})


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    api_base: str = _env("http://localhost:8080/v1", "OPENAI_API_BASE")
    api_key: str = _env("sk-1234", "OPENAI_API_KEY")
    # Default sampling temperature for text generation. If not set, falls back to 0.7.
    temperature: float | None = _env(None, "TEMPERATURE")


class AgentModelConfig(BaseModel):
    """Agent model configuration."""

    co_writer: str = _env("openai/qwen3-a3b", "CO_WRITER_MODEL")
    continuity_editor: str = _env("openai/qwen3-a3b", "CONTINUITY_EDITOR_MODEL")
    writing_coach: str = _env("openai/qwen3-a3b", "WRITING_COACH_MODEL")


class EditorConfig(BaseModel):
    """Timings and thresholds for the live annotation engine."""

    highlight_delay: float = _env(0.5, "HIGHLIGHT_DELAY")
    verify_delay: float = _env(2.0, "VERIFY_DELAY")
    min_verify_length: int = _env(10, "MIN_VERIFY_LENGTH")
    min_entity_name_length: int = _env(3, "MIN_ENTITY_NAME_LENGTH")
    max_concurrent_checks: int = _env(4, "MAX_CONCURRENT_CHECKS")


class VersionConfig(BaseModel):
    """Version history settings."""

    autosave_delay: float = _env(5.0, "AUTOSAVE_DELAY")
    autosave_limit: int = _env(20, "AUTOSAVE_LIMIT")
    autosave_prefix: str = _env("Autosave", "AUTOSAVE_PREFIX")


class SystemConfig(BaseModel):
    """System configuration settings."""

    log_level: str = _env("INFO", "MARGINALIA_LOG_LEVEL")
    log_format: str = _env("", "MARGINALIA_LOG_FORMAT")
    log_file: str = _env("", "MARGINALIA_LOG_FILE")


class MarginaliaConfig(BaseModel):
    """Main configuration class."""

    llm: LLMConfig = LLMConfig()
    agents: AgentModelConfig = AgentModelConfig()
    editor: EditorConfig = EditorConfig()
    versions: VersionConfig = VersionConfig()
    system: SystemConfig = SystemConfig()

    @classmethod
    def load(cls, environ: dict[str, str] | None = None) -> MarginaliaConfig:
        """Load configuration from environment variables."""
        environ = dict(os.environ if environ is None else environ)
        sections: dict[str, dict[str, Any]] = {}
        for section_name, section_field in cls.model_fields.items():
            section_cls = section_field.annotation
            values: dict[str, Any] = {}
            for name, field in section_cls.model_fields.items():
                extra = field.json_schema_extra or {}
                env_name = extra.get("env") if isinstance(extra, dict) else None
                if env_name and env_name in environ and environ[env_name] != "":
                    values[name] = environ[env_name]
            sections[section_name] = values
        return cls.model_validate(sections)


# Global configuration instance
config = MarginaliaConfig.load()
