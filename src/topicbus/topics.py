"""Topic specifier normalisation into lookup keys and match predicates.

A specifier is either a literal topic string or a compiled ``str`` pattern.
Literal topics are escaped so they never act as patterns, and both kinds share
a single string key space used to group subscriptions in the registry.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final, TypeAlias

from .errors import InvalidTopicError

TopicSpecifier: TypeAlias = str | re.Pattern[str]
MatchPredicate: TypeAlias = Callable[[str], bool]

_FLAG_LETTERS: Final[tuple[tuple[re.RegexFlag, str], ...]] = (
    (re.ASCII, "a"),
    (re.IGNORECASE, "i"),
    (re.MULTILINE, "m"),
    (re.DOTALL, "s"),
    (re.VERBOSE, "x"),
)


@dataclass(frozen=True, slots=True)
class NormalizedTopic:
    """Canonical lookup key and match predicate derived from a specifier."""

    key: str
    predicate: MatchPredicate


def is_valid_specifier(spec: object) -> bool:
    """Return True when *spec* is a topic string or a compiled ``str`` pattern."""

    if isinstance(spec, str):
        return True
    return isinstance(spec, re.Pattern) and isinstance(spec.pattern, str)


def escape_literal(topic: str) -> str:
    """Escape *topic* so that it only ever matches itself."""

    # Escaping "/" keeps literal keys apart from pattern keys, which start with "/".
    return re.escape(topic).replace("/", r"\/")


def subscription_key(spec: TopicSpecifier) -> str:
    """Return the registry lookup key for *spec*."""

    if isinstance(spec, re.Pattern):
        if not isinstance(spec.pattern, str):
            raise InvalidTopicError("Byte patterns cannot be used as topic specifiers")
        flags = "".join(letter for flag, letter in _FLAG_LETTERS if spec.flags & flag)
        return f"/{spec.pattern}/{flags}"
    if isinstance(spec, str):
        return escape_literal(spec)
    raise InvalidTopicError(f"Unsupported topic specifier: {spec!r}")


def normalize(spec: TopicSpecifier) -> NormalizedTopic:
    """Normalise *spec* into its lookup key and match predicate.

    Patterns keep their own search semantics, so anchoring is whatever the
    pattern itself declares. Literal topics match only the exact same string.
    """

    key = subscription_key(spec)
    if isinstance(spec, re.Pattern):
        pattern = spec
    else:
        pattern = re.compile(rf"\A{re.escape(spec)}\Z")
    return NormalizedTopic(key=key, predicate=_search_predicate(pattern))


def _search_predicate(pattern: re.Pattern[str]) -> MatchPredicate:
    def _matches(topic: str) -> bool:
        return pattern.search(topic) is not None

    return _matches
