"""Tests for merging per-connection JSON overlays into request bodies."""

from __future__ import annotations

import json
from typing import Mapping

import pytest

from codeintel.models.prompts import ApiType, PromptType
from codeintel.prompting.errors import ConfigParseError
from codeintel.prompting.overlays import (
    ConfigResolver,
    parse_overlay,
    suggest_overlay,
)


class _Overlays:
    def __init__(self, data: Mapping[str, Mapping[str, str]]) -> None:
        self._data = data

    def get(self, connection_name: str) -> Mapping[str, str]:
        return self._data.get(connection_name, {})


def _resolver(**per_connection: Mapping[str, str]) -> ConfigResolver:
    return ConfigResolver(_Overlays(per_connection))


def test_overlay_wins_on_shared_keys() -> None:
    resolver = _resolver(openai={"CHAT": '{"temperature": 0.3, "top_p": 0.9}'})
    base = {"model": "gpt-4o", "temperature": 1.0}

    merged = resolver.merge(base, "openai", PromptType.CHAT)

    assert merged == {"model": "gpt-4o", "temperature": 0.3, "top_p": 0.9}


def test_merge_is_shallow() -> None:
    resolver = _resolver(ollama={"CHAT": '{"options": {"num_ctx": 4096}}'})
    base = {"options": {"temperature": 0.2, "num_ctx": 2048}}

    merged = resolver.merge(base, "ollama", PromptType.CHAT)

    assert merged["options"] == {"num_ctx": 4096}


def test_base_is_not_mutated() -> None:
    resolver = _resolver(openai={"CHAT": '{"temperature": 0.3}'})
    base = {"temperature": 1.0}

    resolver.merge(base, "openai", PromptType.CHAT)

    assert base == {"temperature": 1.0}


@pytest.mark.parametrize("connection", [None, "", "unknown"])
def test_no_overlay_returns_base_unchanged(connection: str | None) -> None:
    resolver = _resolver(openai={"CHAT": '{"temperature": 0.3}'})
    base = {"temperature": 1.0}

    assert resolver.merge(base, connection, PromptType.CHAT) is base


def test_overlay_is_scoped_by_request_type() -> None:
    resolver = _resolver(openai={"INSTRUCT": '{"temperature": 0.0}'})
    base = {"temperature": 1.0}

    assert resolver.merge(base, "openai", PromptType.CHAT) == base
    assert resolver.merge(base, "openai", PromptType.INSTRUCT) == {"temperature": 0.0}


def test_blank_overlay_is_ignored() -> None:
    resolver = _resolver(openai={"CHAT": "   \n"})

    assert resolver.overlay_text("openai", PromptType.CHAT) is None
    assert resolver.overlay("openai", PromptType.CHAT) == {}


def test_invalid_json_raises_config_parse_error() -> None:
    resolver = _resolver(openai={"CHAT": "{invalid"})

    with pytest.raises(ConfigParseError) as excinfo:
        resolver.merge({}, "openai", PromptType.CHAT)

    assert excinfo.value.connection_name == "openai"
    assert excinfo.value.request_type == "CHAT"


def test_non_object_overlay_is_rejected() -> None:
    with pytest.raises(ConfigParseError, match="expected a JSON object"):
        parse_overlay("[1, 2]", connection_name="x", prompt_type=PromptType.CHAT)


def test_fail_open_returns_base_for_bad_overlay() -> None:
    resolver = _resolver(openai={"CHAT": "{invalid"})
    base = {"model": "gpt-4o", "temperature": 1.0}

    assert resolver.merge_fail_open(base, "openai", PromptType.CHAT) is base


def test_fail_open_still_merges_valid_overlay() -> None:
    resolver = _resolver(openai={"CHAT": '{"stream": false}'})

    merged = resolver.merge_fail_open({"stream": True}, "openai", PromptType.CHAT)

    assert merged == {"stream": False}


@pytest.mark.parametrize("prompt_type", list(PromptType))
def test_suggestions_are_valid_overlays(prompt_type: PromptType) -> None:
    ollama = json.loads(suggest_overlay(ApiType.OLLAMA, prompt_type) or "")
    openai = json.loads(suggest_overlay(ApiType.OPENAI, prompt_type) or "")

    assert ollama == {"options": {"num_ctx": 8192, "num_batch": 2048}, "keep_alive": "15m"}
    assert openai == {"reasoning_effort": "medium", "temperature": 0.3}


def test_no_suggestion_for_other_providers() -> None:
    assert suggest_overlay(ApiType.ANTHROPIC, PromptType.CHAT) is None
