"""Mustache-style rendering for prompt templates.

Supported syntax:

``{{name}}``
    Interpolates ``name``; dotted names walk nested mappings or attributes.
    Missing values render as an empty string.
``{{#name}} ... {{/name}}``
    Repeats the fragment for each element of a list, renders it once for any
    other truthy value and skips it for missing or falsy values. ``{{.}}``
    refers to the current element.
``{{^name}} ... {{/name}}``
    Renders the fragment only when ``name`` is missing, falsy or empty.
``{{! comment }}``
    Dropped from the output.

Output is never HTML-escaped, so ``{{{name}}}`` and ``{{&name}}`` behave like
``{{name}}``. Section and comment tags that stand alone on a line remove the
whole line, which keeps multi-line prompts free of stray blank lines.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence, Set
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Union

from .errors import TemplateSyntaxError

__all__ = ["CompiledTemplate", "compile_template", "render"]

_TAG = re.compile(r"\{\{(\{)?\s*([#^/!&]?)\s*([^{}]*?)\s*(?(1)\})\}\}")
_COMMENT = re.compile(r"\{\{\s*!.*?\}\}", re.DOTALL)
_NAME = re.compile(r"\S+")
_STANDALONE_SIGILS = frozenset({"#", "^", "/", "!"})
_SCALARS = (str, bytes, bytearray, int, float, bool)


@dataclass(frozen=True)
class _Text:
    value: str


@dataclass(frozen=True)
class _Variable:
    name: str


@dataclass
class _Section:
    name: str
    inverted: bool
    line: int
    children: list["_Node"] = field(default_factory=list)


_Node = Union[_Text, _Variable, _Section]


def _line_number(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _parse(text: str) -> list[_Node]:
    root: list[_Node] = []
    open_sections: list[_Section] = []
    current = root
    pos = 0
    length = len(text)

    while pos < length:
        start = text.find("{{", pos)
        if start < 0:
            current.append(_Text(text[pos:]))
            break

        line = _line_number(text, start)
        # Comments may hold any text, braces included, up to the first "}}".
        comment = _COMMENT.match(text, start)
        if comment is not None:
            sigil, name, end = "!", "", comment.end()
        else:
            match = _TAG.match(text, start)
            if match is None:
                raise TemplateSyntaxError("Unterminated tag", line=line)
            sigil, name, end = match.group(2), match.group(3), match.end()
        literal_end = start

        if sigil in _STANDALONE_SIGILS:
            line_start = text.rfind("\n", 0, start) + 1
            line_end = text.find("\n", end)
            next_pos = length if line_end < 0 else line_end + 1
            if line_end < 0:
                line_end = length
            if (
                line_start >= pos
                and not text[line_start:start].strip()
                and not text[end:line_end].strip()
            ):
                literal_end = line_start
                end = next_pos

        if literal_end > pos:
            current.append(_Text(text[pos:literal_end]))
        pos = end

        if sigil == "!":
            continue
        if not name:
            raise TemplateSyntaxError("Empty tag", line=line)
        if not _NAME.fullmatch(name):
            raise TemplateSyntaxError(f"Invalid tag name '{name}'", line=line)

        if sigil in ("#", "^"):
            section = _Section(name=name, inverted=sigil == "^", line=line)
            current.append(section)
            open_sections.append(section)
            current = section.children
        elif sigil == "/":
            if not open_sections:
                raise TemplateSyntaxError(
                    f"Closing tag '{name}' has no matching section", line=line
                )
            section = open_sections.pop()
            if section.name != name:
                raise TemplateSyntaxError(
                    f"Closing tag '{name}' does not match section "
                    f"'{section.name}' opened on line {section.line}",
                    line=line,
                )
            current = open_sections[-1].children if open_sections else root
        else:
            current.append(_Variable(name))

    if open_sections:
        unclosed = open_sections[-1]
        raise TemplateSyntaxError(
            f"Section '{unclosed.name}' is never closed", line=unclosed.line
        )
    return root


def _is_list(value: Any) -> bool:
    return isinstance(value, (Sequence, Set)) and not isinstance(
        value, (str, bytes, bytearray)
    )


def _is_truthy(value: Any) -> bool:
    if _is_list(value):
        return len(value) > 0
    return bool(value)


def _get(scope: Any, key: str) -> tuple[bool, Any]:
    if isinstance(scope, Mapping):
        if key in scope:
            return True, scope[key]
        return False, None
    if scope is None or isinstance(scope, _SCALARS) or _is_list(scope):
        return False, None
    if hasattr(scope, key):
        return True, getattr(scope, key)
    return False, None


def _lookup(name: str, scopes: list[Any]) -> Any:
    if name == ".":
        return scopes[-1] if scopes else None

    head, *rest = name.split(".")
    for scope in reversed(scopes):
        found, value = _get(scope, head)
        if found:
            break
    else:
        return None

    for part in rest:
        found, value = _get(value, part)
        if not found:
            return None
    return value


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _render_nodes(nodes: list[_Node], scopes: list[Any], out: list[str]) -> None:
    for node in nodes:
        if isinstance(node, _Text):
            out.append(node.value)
        elif isinstance(node, _Variable):
            out.append(_to_text(_lookup(node.name, scopes)))
        else:
            value = _lookup(node.name, scopes)
            if node.inverted:
                if not _is_truthy(value):
                    _render_nodes(node.children, scopes, out)
            elif _is_list(value):
                for item in value:
                    scopes.append(item)
                    try:
                        _render_nodes(node.children, scopes, out)
                    finally:
                        scopes.pop()
            elif _is_truthy(value):
                scopes.append(value)
                try:
                    _render_nodes(node.children, scopes, out)
                finally:
                    scopes.pop()


def _collect_names(nodes: list[_Node], names: dict[str, None]) -> None:
    for node in nodes:
        if isinstance(node, _Variable):
            if node.name != ".":
                names.setdefault(node.name, None)
        elif isinstance(node, _Section):
            names.setdefault(node.name, None)
            _collect_names(node.children, names)


class CompiledTemplate:
    """A parsed prompt template that can be rendered repeatedly."""

    def __init__(self, source: str, nodes: list[_Node]) -> None:
        self._source = source
        self._nodes = nodes

    @property
    def source(self) -> str:
        return self._source

    @property
    def variables(self) -> tuple[str, ...]:
        """Return referenced variable and section names in order of appearance."""

        names: dict[str, None] = {}
        _collect_names(self._nodes, names)
        return tuple(names)

    def render(self, variables: Mapping[str, Any] | None = None) -> str:
        out: list[str] = []
        _render_nodes(self._nodes, [dict(variables or {})], out)
        return "".join(out)


@lru_cache(maxsize=256)
def compile_template(text: str) -> CompiledTemplate:
    """Parse ``text`` into a :class:`CompiledTemplate`.

    Raises
    ------
    TemplateSyntaxError
        If a tag is unterminated or empty, or sections are unbalanced.
    """

    return CompiledTemplate(text, _parse(text))


def render(template_text: str, variables: Mapping[str, Any] | None = None) -> str:
    """Render ``template_text`` with ``variables``."""

    return compile_template(template_text or "").render(variables)
