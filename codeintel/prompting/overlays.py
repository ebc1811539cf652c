"""Per-connection JSON overlays merged into outgoing request bodies."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Protocol

from codeintel.models.prompts import ApiType, PromptType
from codeintel.observability.logger import get_logger

from .errors import ConfigParseError

logger = get_logger(__name__)


class OverlaySource(Protocol):
    """Anything able to look up overlay JSON text for a connection."""

    def get(self, connection_name: str) -> Mapping[str, str]:
        ...


def parse_overlay(
    text: str, *, connection_name: Optional[str], prompt_type: PromptType
) -> dict[str, Any]:
    """Parse ``text`` as a JSON object.

    Raises
    ------
    ConfigParseError
        If ``text`` is not valid JSON or does not describe an object.
    """

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(connection_name, prompt_type.name, str(exc)) from exc
    if not isinstance(payload, dict):
        raise ConfigParseError(
            connection_name,
            prompt_type.name,
            f"expected a JSON object, got {type(payload).__name__}",
        )
    return payload


class ConfigResolver:
    """Merge stored overlays into request bodies."""

    def __init__(self, source: OverlaySource) -> None:
        self._source = source

    def overlay_text(
        self, connection_name: Optional[str], prompt_type: PromptType
    ) -> Optional[str]:
        """Return the raw overlay for the pair, or ``None`` when absent or blank."""

        if not connection_name:
            return None
        text = self._source.get(connection_name).get(prompt_type.name)
        if text is None or not text.strip():
            return None
        return text

    def overlay(
        self, connection_name: Optional[str], prompt_type: PromptType
    ) -> dict[str, Any]:
        """Return the parsed overlay for the pair (empty when absent)."""

        text = self.overlay_text(connection_name, prompt_type)
        if text is None:
            return {}
        return parse_overlay(
            text, connection_name=connection_name, prompt_type=prompt_type
        )

    def merge(
        self,
        base: Mapping[str, Any],
        connection_name: Optional[str],
        prompt_type: PromptType,
    ) -> Mapping[str, Any]:
        """Return ``base`` with the overlay's top-level keys merged over it.

        ``base`` is returned as is when no overlay applies and is never mutated.

        Raises
        ------
        ConfigParseError
            If the stored overlay is not a JSON object.
        """

        overlay = self.overlay(connection_name, prompt_type)
        if not overlay:
            return base
        merged = dict(base)
        merged.update(overlay)
        return merged

    def merge_fail_open(
        self,
        base: Mapping[str, Any],
        connection_name: Optional[str],
        prompt_type: PromptType,
    ) -> Mapping[str, Any]:
        """Like :meth:`merge` but log and skip a malformed overlay."""

        try:
            return self.merge(base, connection_name, prompt_type)
        except ConfigParseError as exc:
            logger.warning(
                "config_overlay_ignored",
                connection=exc.connection_name,
                prompt_type=exc.request_type,
                reason=exc.reason,
            )
            return base


# Starter overlays offered when a user first configures a connection.
_OLLAMA_SUGGESTION = """\
{
  "options": {
    "num_ctx": 8192,
    "num_batch": 2048
  },
  "keep_alive": "15m"
}
"""

_OPENAI_SUGGESTION = """\
{
  "reasoning_effort": "medium",
  "temperature": 0.3
}
"""

OVERLAY_SUGGESTIONS: Mapping[tuple[ApiType, PromptType], str] = {
    (ApiType.OLLAMA, PromptType.CHAT): _OLLAMA_SUGGESTION,
    (ApiType.OLLAMA, PromptType.INSTRUCT): _OLLAMA_SUGGESTION,
    (ApiType.OPENAI, PromptType.CHAT): _OPENAI_SUGGESTION,
    (ApiType.OPENAI, PromptType.INSTRUCT): _OPENAI_SUGGESTION,
}


def suggest_overlay(api_type: ApiType, prompt_type: PromptType) -> Optional[str]:
    """Return a starter overlay for the provider kind, if one is known."""

    return OVERLAY_SUGGESTIONS.get((api_type, prompt_type))


__all__ = [
    "ConfigResolver",
    "OVERLAY_SUGGESTIONS",
    "OverlaySource",
    "parse_overlay",
    "suggest_overlay",
]
