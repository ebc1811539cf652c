"""Selection of the prompt template that best matches a request."""

from __future__ import annotations

from enum import IntEnum
from typing import Callable, Iterable, Optional, Protocol

from codeintel.models.prompts import PromptTemplate, PromptType
from codeintel.observability.logger import get_logger

from .defaults import default_template

logger = get_logger(__name__)


class TemplateSource(Protocol):
    """Anything exposing an ordered snapshot of prompt templates."""

    @property
    def templates(self) -> tuple[PromptTemplate, ...]:
        ...


class Specificity(IntEnum):
    """Ranking of a template match; higher values win."""

    FALLBACK = 0
    MODEL = 1
    CONNECTION = 2
    CONNECTION_AND_MODEL = 3


def _pinned(value: Optional[str]) -> Optional[str]:
    return value or None


def match_specificity(
    template: PromptTemplate,
    connection_name: Optional[str],
    model_id: Optional[str],
) -> Optional[Specificity]:
    """Return how specifically ``template`` matches, or ``None`` if it does not.

    Empty and ``None`` values are interchangeable wildcards on both sides and
    comparisons are exact and case-sensitive.
    """

    template_connection = _pinned(template.connection_name)
    template_model = _pinned(template.model_id)

    if template_connection is not None and template_connection != _pinned(
        connection_name
    ):
        return None
    if template_model is not None and template_model != _pinned(model_id):
        return None

    if template_connection is not None and template_model is not None:
        return Specificity.CONNECTION_AND_MODEL
    if template_connection is not None:
        return Specificity.CONNECTION
    if template_model is not None:
        return Specificity.MODEL
    return Specificity.FALLBACK


class TemplateResolver:
    """Resolve the enabled template to use for a request type and context."""

    def __init__(
        self,
        source: TemplateSource,
        *,
        fallback: Callable[[PromptType], PromptTemplate] = default_template,
    ) -> None:
        self._source = source
        self._fallback = fallback

    def candidates(self, prompt_type: PromptType) -> list[PromptTemplate]:
        """Return enabled templates of ``prompt_type`` in stored order."""

        return [
            template
            for template in self._source.templates
            if template.enabled and template.type == prompt_type
        ]

    def resolve(
        self,
        prompt_type: PromptType,
        connection_name: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> Optional[PromptTemplate]:
        """Return the best matching template or ``None`` when nothing applies."""

        return _best_match(
            self.candidates(prompt_type), connection_name, model_id
        )

    def resolve_or_default(
        self,
        prompt_type: PromptType,
        connection_name: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> PromptTemplate:
        """Return the best matching template, falling back to the built-in one."""

        template = self.resolve(prompt_type, connection_name, model_id)
        if template is not None:
            return template
        logger.info(
            "prompt_template_default_used",
            prompt_type=prompt_type.value,
            connection=connection_name,
            model=model_id,
        )
        return self._fallback(prompt_type)


def _best_match(
    templates: Iterable[PromptTemplate],
    connection_name: Optional[str],
    model_id: Optional[str],
) -> Optional[PromptTemplate]:
    best: Optional[PromptTemplate] = None
    best_rank: Optional[Specificity] = None
    for template in templates:
        rank = match_specificity(template, connection_name, model_id)
        if rank is None:
            continue
        # Strictly greater keeps the earliest template within a tier.
        if best_rank is None or rank > best_rank:
            best, best_rank = template, rank
            if rank is Specificity.CONNECTION_AND_MODEL:
                break
    return best


__all__ = [
    "Specificity",
    "TemplateResolver",
    "TemplateSource",
    "match_specificity",
]
