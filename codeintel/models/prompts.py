"""Data models for prompt templates and API connections."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Helper utilities
# ---------------------------------------------------------------------------


def to_camel(value: str) -> str:
    """Convert ``snake_case`` ``value`` into ``camelCase`` for JSON aliases."""

    components = value.split("_")
    if not components:
        return value
    first, *rest = components
    return first + "".join(token.capitalize() for token in rest)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return value if value.strip() else None


class CamelModel(BaseModel):
    """Base model applying camelCase aliases and ignoring unknown fields."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class PromptType(str, Enum):
    """Request categories a prompt template can serve."""

    INSTRUCT = "INSTRUCT"
    CHAT = "CHAT"

    def __str__(self) -> str:  # pragma: no cover - trivial wrapper
        return self.value

    @property
    def label(self) -> str:
        return _PROMPT_TYPE_LABELS[self]

    @classmethod
    def of_label(cls, label: str | None) -> Optional["PromptType"]:
        """Return the member whose display label matches ``label``."""

        wanted = (label or "").strip().lower()
        for member in cls:
            if member.label.lower() == wanted:
                return member
        return None


_PROMPT_TYPE_LABELS = {
    PromptType.INSTRUCT: "Instruct",
    PromptType.CHAT: "Chat",
}


class ApiType(str, Enum):
    """Provider kinds an API connection can talk to."""

    OPENAI = "OPENAI"
    OLLAMA = "OLLAMA"
    ANTHROPIC = "ANTHROPIC"
    GEMINI = "GEMINI"
    XAI = "XAI"

    def __str__(self) -> str:  # pragma: no cover - trivial wrapper
        return self.value

    @property
    def label(self) -> str:
        return _API_TYPE_LABELS[self]


_API_TYPE_LABELS = {
    ApiType.OPENAI: "OpenAI",
    ApiType.OLLAMA: "Ollama",
    ApiType.ANTHROPIC: "Anthropic",
    ApiType.GEMINI: "Gemini",
    ApiType.XAI: "xAI",
}


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------


class PromptTemplate(CamelModel):
    """A named, typed and optionally connection/model scoped prompt blueprint."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    name: str = Field(default="", description="User-facing label")
    type: PromptType = Field(
        default=PromptType.INSTRUCT, description="Request category served"
    )
    connection_name: Optional[str] = Field(
        default=None,
        description="Connection the template is limited to; empty applies to all",
    )
    model_id: Optional[str] = Field(
        default=None,
        description="Model the template is limited to; empty applies to all",
    )
    prompt: str = Field(default="", description="Template text with placeholders")
    enabled: bool = Field(default=False)

    @field_validator("name", "prompt", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Optional[str]) -> str:
        return "" if value is None else value

    @property
    def is_fallback(self) -> bool:
        """Return ``True`` when the template pins neither connection nor model."""

        return not self.connection_name and not self.model_id

    def with_changes(self, **changes: object) -> "PromptTemplate":
        """Return a validated copy of the template with ``changes`` applied."""

        data = self.model_dump()
        data.update(changes)
        return PromptTemplate.model_validate(data)


# ---------------------------------------------------------------------------
# API connections
# ---------------------------------------------------------------------------


class AiApiConnection(CamelModel):
    """Configured identity for a provider endpoint."""

    name: str = Field(default="")
    type: ApiType = Field(default=ApiType.OPENAI)
    base_uri: Optional[str] = Field(default=None)
    api_key: Optional[str] = Field(default=None, repr=False)
    enabled: bool = Field(default=False)

    @field_validator("base_uri", "api_key", mode="before")
    @classmethod
    def _blank_fields(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


__all__ = [
    "AiApiConnection",
    "ApiType",
    "CamelModel",
    "PromptTemplate",
    "PromptType",
    "to_camel",
]
