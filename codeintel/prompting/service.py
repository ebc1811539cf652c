"""Facade combining template selection, rendering and request preparation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from codeintel.config.settings import Settings, get_settings
from codeintel.models.prompts import ApiType, PromptTemplate, PromptType
from codeintel.observability.logger import get_logger, log_prompt

from .defaults import default_template
from .errors import TemplateSyntaxError
from .overlays import ConfigResolver, OverlaySource
from .payloads import (
    DEFAULT_COMPLETION_TEMPERATURE,
    CompletionPrompt,
    Message,
    RequestBodyBuilder,
)
from .renderer import render
from .resolver import TemplateResolver, TemplateSource

logger = get_logger(__name__)


@dataclass(frozen=True)
class RenderedPrompt:
    """Prompt text together with the template it was produced from."""

    template: PromptTemplate
    text: str


class PromptService:
    """Everything a request handler needs to turn context into a request body."""

    def __init__(
        self,
        templates: TemplateSource,
        overlays: OverlaySource,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.resolver = TemplateResolver(templates)
        self.config = ConfigResolver(overlays)
        self.bodies = RequestBodyBuilder(self.config, self._settings.requests)

    def select_template(
        self,
        prompt_type: PromptType,
        connection_name: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> PromptTemplate:
        return self.resolver.resolve_or_default(prompt_type, connection_name, model_id)

    def render_prompt(
        self,
        prompt_type: PromptType,
        variables: Optional[Mapping[str, Any]] = None,
        *,
        connection_name: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> RenderedPrompt:
        """Render the selected template with ``variables``.

        A stored template that fails to parse is logged and replaced by the
        built-in prompt, so a broken user template never blocks a request.
        """

        template = self.select_template(prompt_type, connection_name, model_id)
        try:
            text = render(template.prompt.strip(), variables)
        except TemplateSyntaxError as exc:
            logger.warning(
                "prompt_template_invalid",
                template=template.name,
                prompt_type=prompt_type.value,
                error=str(exc),
            )
            template = default_template(prompt_type)
            text = render(template.prompt.strip(), variables)

        log_prompt(
            text,
            prompt_type=prompt_type.value,
            template_name=template.name,
            connection=connection_name,
            model=model_id,
        )
        return RenderedPrompt(template=template, text=text)

    def completion_request(
        self,
        api_type: ApiType,
        connection_name: Optional[str],
        model_id: str,
        variables: Mapping[str, Any],
        *,
        temperature: float = DEFAULT_COMPLETION_TEMPERATURE,
    ) -> dict[str, Any]:
        """Return the request body for a code completion."""

        rendered = self.render_prompt(
            PromptType.INSTRUCT,
            variables,
            connection_name=connection_name,
            model_id=model_id,
        )
        prompt = CompletionPrompt.prerendered(
            temperature, rendered.template.prompt, rendered.text, variables
        )
        return self.bodies.completion_body(api_type, connection_name, model_id, prompt)

    def chat_request(
        self,
        api_type: ApiType,
        connection_name: Optional[str],
        model_id: str,
        messages: Iterable[Message],
        *,
        stream: bool = True,
    ) -> dict[str, Any]:
        """Return the request body for a chat turn with the resolved system prompt."""

        rendered = self.render_prompt(
            PromptType.CHAT, connection_name=connection_name, model_id=model_id
        )
        return self.bodies.chat_body(
            api_type,
            connection_name,
            model_id,
            messages,
            system_prompt=rendered.text or None,
            stream=stream,
        )


__all__ = ["PromptService", "RenderedPrompt"]
