"""Ordered, persisted collection of prompt templates."""

from __future__ import annotations

from typing import Any, Iterable

from codeintel.models.prompts import PromptTemplate
from codeintel.prompting.errors import DuplicateFallbackError

from .base import SnapshotStore
from .preferences import PreferenceStore

DEFAULT_TEMPLATES_KEY = "promptTemplates"


class TemplateStore(SnapshotStore[list[PromptTemplate]]):
    """Ordered CRUD over :class:`PromptTemplate` records.

    Templates are addressed by position because names are not unique. Order is
    significant: it breaks ties between equally specific templates. Editing
    operations refuse a second enabled fallback of the same type; data that
    is loaded or replaced wholesale is taken as is.
    """

    def __init__(
        self, preferences: PreferenceStore, key: str = DEFAULT_TEMPLATES_KEY
    ) -> None:
        super().__init__(preferences, key)

    def _empty(self) -> list[PromptTemplate]:
        return []

    def _decode(self, payload: Any) -> list[PromptTemplate]:
        if not isinstance(payload, list):
            raise TypeError("expected a JSON array of templates")
        return [PromptTemplate.model_validate(item) for item in payload]

    def _encode(self, snapshot: list[PromptTemplate]) -> Any:
        return [
            template.model_dump(mode="json", by_alias=True) for template in snapshot
        ]

    @property
    def templates(self) -> tuple[PromptTemplate, ...]:
        """Return an immutable view of the templates in stored order."""

        with self._lock:
            return tuple(self._current())

    def __len__(self) -> int:
        return len(self.templates)

    def get(self, index: int) -> PromptTemplate:
        with self._lock:
            return self._current()[self._check_index(index)]

    def add(self, template: PromptTemplate) -> int:
        """Append ``template`` and return its position."""

        with self._lock:
            templates = self._current()
            self._check_fallback(templates, template)
            templates.append(template)
            position = len(templates) - 1
        self._notify()
        return position

    def insert(self, index: int, template: PromptTemplate) -> int:
        """Insert ``template`` before ``index`` (clamped to the list bounds)."""

        with self._lock:
            templates = self._current()
            self._check_fallback(templates, template)
            position = max(0, min(index, len(templates)))
            templates.insert(position, template)
        self._notify()
        return position

    def update(self, index: int, template: PromptTemplate) -> PromptTemplate:
        """Replace the template at ``index`` and return the previous one."""

        with self._lock:
            templates = self._current()
            position = self._check_index(index)
            self._check_fallback(templates, template, skip=position)
            previous = templates[position]
            templates[position] = template
        self._notify()
        return previous

    def remove(self, index: int) -> PromptTemplate:
        with self._lock:
            removed = self._current().pop(self._check_index(index))
        self._notify()
        return removed

    def move_up(self, index: int) -> int:
        """Swap the template with its predecessor; returns the new position."""

        return self._move(index, -1)

    def move_down(self, index: int) -> int:
        """Swap the template with its successor; returns the new position."""

        return self._move(index, 1)

    def replace_all(self, templates: Iterable[PromptTemplate]) -> None:
        replacement = list(templates)
        with self._lock:
            self._snapshot = replacement
        self._notify()

    def _move(self, index: int, offset: int) -> int:
        with self._lock:
            templates = self._current()
            position = self._check_index(index)
            target = position + offset
            if target < 0 or target >= len(templates):
                return position
            templates[position], templates[target] = (
                templates[target],
                templates[position],
            )
        self._notify()
        return target

    @staticmethod
    def _check_fallback(
        templates: list[PromptTemplate], template: PromptTemplate, skip: int = -1
    ) -> None:
        if not (template.enabled and template.is_fallback):
            return
        for position, other in enumerate(templates):
            if (
                position != skip
                and other.enabled
                and other.is_fallback
                and other.type is template.type
            ):
                raise DuplicateFallbackError(template.type.name, other.name)

    def _check_index(self, index: int) -> int:
        size = len(self._current())
        if index < 0 or index >= size:
            raise IndexError(f"Template index {index} is out of range (0..{size - 1})")
        return index


__all__ = ["DEFAULT_TEMPLATES_KEY", "TemplateStore"]
