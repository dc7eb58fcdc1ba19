"""Configuration package for Marginalia."""

from .config import (
    AgentModelConfig,
    EditorConfig,
    LLMConfig,
    MarginaliaConfig,
    SystemConfig,
    VersionConfig,
    config,
)

__all__ = [
    "AgentModelConfig",
    "EditorConfig",
    "LLMConfig",
    "MarginaliaConfig",
    "SystemConfig",
    "VersionConfig",
    "config",
]
