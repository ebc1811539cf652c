"""Template selection, rendering and request configuration for AI requests."""

from .defaults import (
    COMPLETION_DEMO_DATA,
    DEFAULT_TEMPLATE_NAME,
    default_prompt,
    default_template,
)
from .errors import (
    ConfigParseError,
    DuplicateFallbackError,
    PromptCoreError,
    StorageError,
    TemplateSyntaxError,
)
from .indentation import strip_common_indent
from .overlays import ConfigResolver, parse_overlay, suggest_overlay
from .payloads import CompletionPrompt, RequestBodyBuilder
from .preview import PreviewMessage, markdown_to_html, preview
from .renderer import CompiledTemplate, compile_template, render
from .resolver import Specificity, TemplateResolver, match_specificity
from .service import PromptService, RenderedPrompt

__all__ = [
    "COMPLETION_DEMO_DATA",
    "DEFAULT_TEMPLATE_NAME",
    "default_prompt",
    "default_template",
    "ConfigParseError",
    "DuplicateFallbackError",
    "PromptCoreError",
    "StorageError",
    "TemplateSyntaxError",
    "strip_common_indent",
    "ConfigResolver",
    "parse_overlay",
    "suggest_overlay",
    "CompletionPrompt",
    "RequestBodyBuilder",
    "PreviewMessage",
    "markdown_to_html",
    "preview",
    "CompiledTemplate",
    "compile_template",
    "render",
    "Specificity",
    "TemplateResolver",
    "match_specificity",
    "PromptService",
    "RenderedPrompt",
]
