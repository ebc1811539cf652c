"""Tests for template selection by request type, connection and model."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from codeintel.models.prompts import PromptTemplate, PromptType
from codeintel.prompting.defaults import DEFAULT_TEMPLATE_NAME, default_prompt
from codeintel.prompting.resolver import (
    Specificity,
    TemplateResolver,
    match_specificity,
)


@dataclass
class _Templates:
    items: list[PromptTemplate] = field(default_factory=list)

    @property
    def templates(self) -> tuple[PromptTemplate, ...]:
        return tuple(self.items)


def _template(
    prompt: str,
    *,
    type: PromptType = PromptType.CHAT,
    connection: str | None = None,
    model: str | None = None,
    enabled: bool = True,
) -> PromptTemplate:
    return PromptTemplate(
        name=prompt,
        type=type,
        connection_name=connection,
        model_id=model,
        prompt=prompt,
        enabled=enabled,
    )


def _resolver(*templates: PromptTemplate) -> TemplateResolver:
    return TemplateResolver(_Templates(list(templates)))


def test_connection_specific_beats_fallback() -> None:
    resolver = _resolver(
        _template("P1", connection="openai"),
        _template("P2"),
    )

    assert resolver.resolve(PromptType.CHAT, "openai", None).prompt == "P1"
    assert resolver.resolve(PromptType.CHAT, "anthropic", None).prompt == "P2"


def test_specificity_ordering_is_independent_of_list_order() -> None:
    templates = [
        _template("fallback"),
        _template("model", model="gpt-4o"),
        _template("connection", connection="openai"),
        _template("both", connection="openai", model="gpt-4o"),
    ]

    for ordering in (templates, list(reversed(templates))):
        resolver = _resolver(*ordering)
        assert resolver.resolve(PromptType.CHAT, "openai", "gpt-4o").prompt == "both"
        assert resolver.resolve(PromptType.CHAT, "openai", "o3").prompt == "connection"
        assert resolver.resolve(PromptType.CHAT, "ollama", "gpt-4o").prompt == "model"
        assert resolver.resolve(PromptType.CHAT, "ollama", "llama3").prompt == "fallback"


def test_earlier_template_wins_within_a_tier() -> None:
    resolver = _resolver(
        _template("first", connection="openai"),
        _template("second", connection="openai"),
    )

    assert resolver.resolve(PromptType.CHAT, "openai").prompt == "first"


def test_disabled_and_other_type_templates_are_ignored() -> None:
    resolver = _resolver(
        _template("disabled", connection="openai", enabled=False),
        _template("instruct", type=PromptType.INSTRUCT, connection="openai"),
        _template("chat"),
    )

    assert resolver.resolve(PromptType.CHAT, "openai").prompt == "chat"
    assert resolver.resolve(PromptType.INSTRUCT, "openai").prompt == "instruct"


def test_pinned_template_does_not_match_missing_context() -> None:
    resolver = _resolver(_template("pinned", connection="openai", model="gpt-4o"))

    assert resolver.resolve(PromptType.CHAT) is None
    assert resolver.resolve(PromptType.CHAT, "openai") is None
    assert resolver.resolve(PromptType.CHAT, None, "gpt-4o") is None


def test_empty_string_behaves_like_none() -> None:
    resolver = _resolver(_template("any", connection="", model=""))

    assert resolver.resolve(PromptType.CHAT, "", "").prompt == "any"
    assert match_specificity(
        _template("x", connection="", model=""), None, None
    ) is Specificity.FALLBACK


def test_matching_is_case_sensitive() -> None:
    resolver = _resolver(_template("pinned", connection="OpenAI"))

    assert resolver.resolve(PromptType.CHAT, "openai") is None
    assert resolver.resolve(PromptType.CHAT, "OpenAI").prompt == "pinned"


def test_resolution_is_deterministic() -> None:
    resolver = _resolver(
        _template("a", model="m"),
        _template("b", model="m"),
        _template("c"),
    )

    results = {resolver.resolve(PromptType.CHAT, "x", "m").prompt for _ in range(10)}

    assert results == {"a"}


@pytest.mark.parametrize("prompt_type", list(PromptType))
def test_resolve_or_default_falls_back_to_builtin(prompt_type: PromptType) -> None:
    resolver = _resolver()

    template = resolver.resolve_or_default(prompt_type, "openai", "gpt-4o")

    assert template.name == DEFAULT_TEMPLATE_NAME
    assert template.type is prompt_type
    assert template.prompt == default_prompt(prompt_type)
    assert template.enabled


def test_candidates_keep_stored_order() -> None:
    resolver = _resolver(
        _template("one"),
        _template("skip", enabled=False),
        _template("two", model="m"),
    )

    assert [t.prompt for t in resolver.candidates(PromptType.CHAT)] == ["one", "two"]


def test_resolver_sees_source_changes() -> None:
    source = _Templates()
    resolver = TemplateResolver(source)
    assert resolver.resolve(PromptType.CHAT) is None

    source.items.append(_template("late"))

    assert resolver.resolve(PromptType.CHAT).prompt == "late"
