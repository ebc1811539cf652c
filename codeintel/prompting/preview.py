"""Markdown previews of prompt templates for editors."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping

from markdown_it import MarkdownIt

from codeintel.models.prompts import PromptType

from .defaults import COMPLETION_DEMO_DATA
from .renderer import render

_DEMO_ASSISTANT_REPLY = (
    "It seems like you're testing or checking something."
    " Could you clarify what you need help with?"
    " Whether it's a specific question, a problem to solve,"
    " or just exploring, I'm here to assist!"
)


@dataclass(frozen=True)
class PreviewMessage:
    """A single rendered message of a chat preview."""

    role: str
    html: str


@lru_cache(maxsize=1)
def _markdown() -> MarkdownIt:
    return MarkdownIt("commonmark").enable(["table", "strikethrough"])


def markdown_to_html(markdown: str) -> str:
    """Convert ``markdown`` to HTML with tables and strikethrough enabled."""

    return _markdown().render(markdown or "")


def preview_instruct(
    prompt: str, variables: Mapping[str, Any] | None = None
) -> str:
    """Render a completion template against demo data and return HTML."""

    data = COMPLETION_DEMO_DATA if variables is None else variables
    return markdown_to_html(render((prompt or "").strip(), data))


def preview_chat(prompt: str) -> list[PreviewMessage]:
    """Return the demo conversation used to preview a chat system prompt."""

    system = (
        "<details open><summary>System Prompt</summary>"
        f"{prompt or ''}"
        "</details>"
    )
    messages = [
        ("system", system),
        ("user", "test"),
        ("assistant", _DEMO_ASSISTANT_REPLY),
    ]
    return [PreviewMessage(role, markdown_to_html(text)) for role, text in messages]


def preview(prompt_type: PromptType, prompt: str) -> list[PreviewMessage]:
    """Return preview messages appropriate for ``prompt_type``."""

    if prompt_type == PromptType.CHAT:
        return preview_chat(prompt)
    return [PreviewMessage("user", preview_instruct(prompt))]


__all__ = [
    "PreviewMessage",
    "markdown_to_html",
    "preview",
    "preview_chat",
    "preview_instruct",
]
