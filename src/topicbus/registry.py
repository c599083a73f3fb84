"""Primary subscription store keyed by normalised topic keys."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from .models import Callback, SubscriptionToken
from .topics import MatchPredicate


@dataclass(slots=True)
class RegistryEntry:
    """Match predicate plus the ordered token-to-callback mapping for one key."""

    predicate: MatchPredicate
    callbacks: dict[SubscriptionToken, Callback] = field(default_factory=dict)


class SubscriptionRegistry:
    """Maps lookup keys to registry entries, dropping entries once they are empty."""

    def __init__(self) -> None:
        """Create an empty registry."""

        self._entries: dict[str, RegistryEntry] = {}

    def get(self, key: str) -> RegistryEntry | None:
        """Return the entry stored under *key*, if any."""

        return self._entries.get(key)

    def exists(self, key: str) -> bool:
        """Return True when at least one subscription is stored under *key*."""

        return key in self._entries

    def add(
        self,
        key: str,
        predicate: MatchPredicate,
        token: SubscriptionToken,
        callback: Callback,
    ) -> None:
        """Store *callback* under *key* for *token*.

        The predicate of the first registration for *key* is kept; later
        registrations reuse it.
        """

        entry = self._entries.get(key)
        if entry is None:
            entry = RegistryEntry(predicate=predicate)
            self._entries[key] = entry
        entry.callbacks[token] = callback

    def remove(self, key: str, token: SubscriptionToken) -> bool:
        """Remove *token* from the entry under *key*; return whether it was present."""

        entry = self._entries.get(key)
        if entry is None:
            return False
        removed = entry.callbacks.pop(token, None) is not None
        if not entry.callbacks:
            del self._entries[key]
        return removed

    def for_each(self, visitor: Callable[[str, RegistryEntry], None]) -> None:
        """Invoke *visitor* with each key and entry in insertion order."""

        for key, entry in list(self._entries.items()):
            visitor(key, entry)

    def count(self) -> int:
        """Return the number of distinct keys with live subscriptions."""

        return len(self._entries)

    def topics(self) -> dict[str, int]:
        """Return a snapshot of keys and their subscriber counts."""

        return {key: len(entry.callbacks) for key, entry in self._entries.items()}

    def __iter__(self) -> Iterator[tuple[str, RegistryEntry]]:
        """Iterate over a snapshot of ``(key, entry)`` pairs."""

        return iter(list(self._entries.items()))

    def __len__(self) -> int:
        """Return the number of distinct keys."""

        return len(self._entries)
