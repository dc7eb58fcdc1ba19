# src/marginalia/core/env.py
"""Environment configuration utilities."""

from __future__ import annotations

from dotenv import find_dotenv, load_dotenv

from ..config import MarginaliaConfig, config


def load_env(dotenv_path: str | None = None, *, reload_config: bool = True) -> MarginaliaConfig:
    """Load variables from a ``.env`` file and refresh ``config`` in place.

    Without ``dotenv_path`` the file is searched from the working directory
    upwards. Variables already set in the process environment win.
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True))
    if reload_config:
        fresh = MarginaliaConfig.load()
        for section in MarginaliaConfig.model_fields:
            setattr(config, section, getattr(fresh, section))
    return config


def get_config() -> MarginaliaConfig:
    """Get the global configuration instance."""
    return config


__all__ = ["load_env", "get_config"]
