"""Tests for common-indentation stripping of code snippets."""

from __future__ import annotations

import pytest

from codeintel.prompting.indentation import strip_common_indent


def test_strips_shared_prefix() -> None:
    text = "    def f():\n        return 1"

    assert strip_common_indent(text) == "def f():\n    return 1"


def test_blank_lines_do_not_lower_the_minimum() -> None:
    text = "    a\n\n    b"

    assert strip_common_indent(text) == "a\n\nb"


def test_whitespace_only_lines_shorter_than_prefix_are_kept() -> None:
    text = "    a\n  \n    b"

    assert strip_common_indent(text) == "a\n  \nb"


def test_whitespace_only_lines_longer_than_prefix_are_trimmed_by_prefix() -> None:
    text = "  a\n      \n  b"

    assert strip_common_indent(text) == "a\n    \nb"


def test_unindented_text_is_returned_unchanged() -> None:
    text = "a\n    b"

    assert strip_common_indent(text) == text


def test_blank_only_input_is_returned_unchanged() -> None:
    assert strip_common_indent("   \n\t\n") == "   \n\t\n"


@pytest.mark.parametrize("value", ["", None])
def test_empty_input_is_returned_unchanged(value: str | None) -> None:
    assert strip_common_indent(value) == value


def test_trailing_newline_is_preserved_not_added() -> None:
    assert strip_common_indent("  a\n  b\n") == "a\nb\n"
    assert strip_common_indent("  a\n  b") == "a\nb"


def test_tabs_count_as_single_characters() -> None:
    assert strip_common_indent("\t\tx\n\ty") == "\tx\ny"


@pytest.mark.parametrize(
    "text",
    [
        "    a\n  b\n      c",
        "  a\n      \n  b",
        "\t\tx\n\ty",
        " \n  x\n",
        "x",
        "      only one line",
    ],
)
def test_is_idempotent(text: str) -> None:
    once = strip_common_indent(text)

    assert strip_common_indent(once) == once


@pytest.mark.parametrize("text", ["    a\n  b\n      c", "  x\n\n  y\n"])
def test_preserves_line_count_and_suffixes(text: str) -> None:
    result = strip_common_indent(text)
    assert result is not None

    original_lines = text.split("\n")
    result_lines = result.split("\n")
    assert len(result_lines) == len(original_lines)
    for before, after in zip(original_lines, result_lines):
        assert before.endswith(after)
