from __future__ import annotations

import re

import pytest

from topicbus import InvalidTopicError, is_valid_specifier, normalize, subscription_key


def test_literal_key_escapes_pattern_characters() -> None:
    assert subscription_key("a.b") == r"a\.b"
    assert subscription_key("^part1.*") == r"\^part1\.\*"


def test_literal_key_never_collides_with_pattern_key() -> None:
    assert subscription_key("/a/") == r"\/a\/"
    assert subscription_key(re.compile("a")) == "/a/"
    assert subscription_key("/a/") != subscription_key(re.compile("a"))


def test_pattern_key_includes_flags() -> None:
    assert subscription_key(re.compile("a", re.IGNORECASE | re.MULTILINE)) == "/a/im"
    assert subscription_key(re.compile("a", re.ASCII)) == "/a/a"
    assert subscription_key(re.compile("a")) != subscription_key(re.compile("a", re.I))


def test_identical_patterns_share_a_key() -> None:
    assert normalize(re.compile(r"x\.y")).key == normalize(re.compile(r"x\.y")).key


def test_literal_predicate_is_exact() -> None:
    predicate = normalize("a.b").predicate

    assert predicate("a.b")
    assert not predicate("axb")
    assert not predicate("a.b.c")
    assert not predicate("a.b\n")
    assert not predicate("")


def test_empty_literal_matches_only_empty_topic() -> None:
    predicate = normalize("").predicate

    assert predicate("")
    assert not predicate("a")


def test_pattern_predicate_uses_search_semantics() -> None:
    predicate = normalize(re.compile(r"part3")).predicate

    assert predicate("part1.part3.part4")
    assert not predicate("part1")


@pytest.mark.parametrize("spec", ["", "topic", re.compile("x")])
def test_valid_specifiers(spec: object) -> None:
    assert is_valid_specifier(spec)


@pytest.mark.parametrize("spec", [None, 1, b"topic", re.compile(b"x"), ["topic"]])
def test_invalid_specifiers(spec: object) -> None:
    assert not is_valid_specifier(spec)


def test_normalize_rejects_invalid_specifiers() -> None:
    with pytest.raises(InvalidTopicError):
        normalize(42)  # type: ignore[arg-type]
    with pytest.raises(InvalidTopicError):
        subscription_key(re.compile(b"x"))  # type: ignore[arg-type]
