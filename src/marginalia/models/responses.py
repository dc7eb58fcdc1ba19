# src/marginalia/models/responses.py
"""Structured reply contracts for the LLM-backed collaborators."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator, model_validator

from .base_model import MarginaliaBaseModel as BaseModel
from .validators import strip_items


class ConsistencyVerdict(BaseModel):
    """Whether a manuscript paragraph contradicts an entity's lore."""

    is_contradictory: bool = False
    explanation: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data: Any) -> Any:
        if isinstance(data, dict) and "isContradictory" in data:
            data = {**data, "is_contradictory": data["isContradictory"]}
        return data

    @field_validator("explanation", mode="before")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Suggestion(BaseModel):
    """One "telling" phrase with rewrites that show instead."""

    original_text: str = Field(..., min_length=1)
    explanation: str = ""
    alternatives: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "originalText" in data:
            data.setdefault("original_text", data["originalText"])
        if "suggestions" in data:
            data.setdefault("alternatives", data["suggestions"])
        return data

    @field_validator("alternatives", mode="before")
    @classmethod
    def _validate_alternatives(cls, v: list[str]) -> list[str]:
        if isinstance(v, str):
            v = [v]
        return strip_items(v)


class SuggestionList(BaseModel):
    suggestions: list[Suggestion] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"suggestions": data}
        return data


__all__ = ["ConsistencyVerdict", "Suggestion", "SuggestionList"]
