"""Exceptions raised by the prompt resolution core."""

from __future__ import annotations


class PromptCoreError(ValueError):
    """Base error raised by prompt rendering and configuration resolution."""


class TemplateSyntaxError(PromptCoreError):
    """Raised when prompt template text cannot be parsed."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        self.message = message
        self.line = line
        super().__init__(f"{message} (line {line})" if line is not None else message)


class ConfigParseError(PromptCoreError):
    """Raised when a configuration overlay is not a valid JSON object."""

    def __init__(
        self,
        connection_name: str | None,
        request_type: str,
        reason: str,
    ) -> None:
        self.connection_name = connection_name
        self.request_type = request_type
        self.reason = reason
        super().__init__(
            f"Invalid {request_type} overlay for connection "
            f"'{connection_name}': {reason}"
        )


class DuplicateFallbackError(PromptCoreError):
    """Raised when a second enabled fallback template of one type is stored."""

    def __init__(self, prompt_type: str, existing: str) -> None:
        self.prompt_type = prompt_type
        self.existing = existing
        super().__init__(
            f"An enabled {prompt_type} fallback template already exists: '{existing}'"
        )


class StorageError(RuntimeError):
    """Raised when persisted preferences cannot be read or written."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Preference '{key}': {reason}")


__all__ = [
    "ConfigParseError",
    "DuplicateFallbackError",
    "PromptCoreError",
    "StorageError",
    "TemplateSyntaxError",
]
