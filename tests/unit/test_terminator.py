"""Tests for EscapeAwareTerminator - string bounding and unescaping."""

from __future__ import annotations

import json

import pytest

from src.sitecraft.streaming.terminator import EscapeAwareTerminator


@pytest.fixture
def terminator() -> EscapeAwareTerminator:
    return EscapeAwareTerminator()


@pytest.mark.parametrize(
    "original",
    [
        'He said "hi"',
        "C:\\temp\\new",
        "line one\nline two\n\tindented",
        'mix \\" of "quotes" and \\\\ slashes\n\t"',
        "",
    ],
)
def test_complete_fragment_round_trips_original_content(terminator: EscapeAwareTerminator, original: str) -> None:
    encoded = json.dumps(original)[1:]  # drop the opening quote
    fragment = encoded + "}]}"

    result = terminator.extract(fragment)

    assert result.is_complete
    assert result.value == original


def test_escaped_quote_followed_by_brace_does_not_close(terminator: EscapeAwareTerminator) -> None:
    fragment = 'const a = {b: \\"x\\"} + 1"}'

    result = terminator.extract(fragment)

    assert result.value == 'const a = {b: "x"} + 1'
    assert result.closing_index == len(fragment) - 2


def test_unescaped_quote_not_followed_by_brace_is_content(terminator: EscapeAwareTerminator) -> None:
    fragment = '<a href="x">link</a>"}'

    result = terminator.extract(fragment)

    assert result.value == '<a href="x">link</a>'


def test_quote_at_fragment_end_closes(terminator: EscapeAwareTerminator) -> None:
    result = terminator.extract('body { margin: 0 }"')

    assert result.is_complete
    assert result.value == "body { margin: 0 }"


def test_whitespace_between_quote_and_brace_is_allowed(terminator: EscapeAwareTerminator) -> None:
    result = terminator.extract('hello" \n }')

    assert result.is_complete
    assert result.value == "hello"


def test_truncated_fragment_is_incomplete(terminator: EscapeAwareTerminator) -> None:
    result = terminator.extract("<h1>Hi")

    assert not result.is_complete
    assert result.value == "<h1>Hi"


def test_trailing_backslash_from_split_escape_is_dropped(terminator: EscapeAwareTerminator) -> None:
    result = terminator.extract("first line\\")

    assert not result.is_complete
    assert result.value == "first line"


def test_trailing_noise_pattern_is_stripped() -> None:
    terminator = EscapeAwareTerminator()

    assert terminator.strip_trailing_noise('abc" } ] }') == "abc"
    assert terminator.strip_trailing_noise('abc"}') == "abc"
    assert terminator.strip_trailing_noise("abc") == "abc"


def test_unknown_escape_sequences_are_kept_verbatim(terminator: EscapeAwareTerminator) -> None:
    assert terminator.unescape("a\\qb") == "a\\qb"
    assert terminator.unescape("\\uZZZZ") == "\\uZZZZ"
    assert terminator.unescape("tab\\there") == "tab\there"


def test_carriage_return_and_slash_escapes_are_decoded(terminator: EscapeAwareTerminator) -> None:
    result = terminator.extract('a\\r\\nb <\\/p>"}')

    assert result.value == "a\r\nb </p>"


@pytest.mark.parametrize("original", ["café ☕", "emoji 😀 here", "line\r\nbreak"])
def test_ascii_escaped_content_round_trips(terminator: EscapeAwareTerminator, original: str) -> None:
    fragment = json.dumps(original, ensure_ascii=True)[1:] + "}]}"

    assert terminator.extract(fragment).value == original


def test_unicode_escape_split_by_chunk_boundary_is_dropped(terminator: EscapeAwareTerminator) -> None:
    assert terminator.unescape("caf\\u00") == "caf"
    assert terminator.unescape("smile \\ud83d") == "smile "
