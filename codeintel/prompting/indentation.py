"""Helpers for normalising the indentation of embedded code snippets."""

from __future__ import annotations

__all__ = ["strip_common_indent"]


def _leading_whitespace(line: str) -> int:
    count = 0
    for char in line:
        if not char.isspace():
            break
        count += 1
    return count


def strip_common_indent(text: str | None) -> str | None:
    """Remove the indentation shared by every non-blank line of ``text``.

    Blank lines do not take part in computing the common indentation and are
    kept verbatim unless they are at least as long as the removed prefix.
    Lines are rejoined with ``\\n`` and no trailing newline is introduced.
    """

    if not text:
        return text

    lines = text.split("\n")

    indents = [_leading_whitespace(line) for line in lines if line.strip()]
    if not indents:
        return text
    common = min(indents)
    if common == 0:
        return text

    return "\n".join(
        line[common:] if len(line) >= common else line for line in lines
    )
