"""Reverse indexes kept consistent with the subscription registry.

Both indexes prune empty inner containers eagerly so that repeated
subscribe/unsubscribe churn leaves nothing behind.
"""

from __future__ import annotations

from collections.abc import Mapping, Set

from .models import Callback, Scope, SubscriptionToken


class CallbackIndex:
    """Maps a callback to the keys it is subscribed under and the tokens per key."""

    def __init__(self) -> None:
        """Create an empty callback index."""

        self._store: dict[Callback, dict[str, set[SubscriptionToken]]] = {}

    def record(self, callback: Callback, key: str, token: SubscriptionToken) -> None:
        """Remember that *token* subscribed *callback* under *key*."""

        self._store.setdefault(callback, {}).setdefault(key, set()).add(token)

    def forget(self, callback: Callback, key: str, token: SubscriptionToken) -> None:
        """Drop *token* and prune any container left empty."""

        by_key = self._store.get(callback)
        if by_key is None:
            return
        tokens = by_key.get(key)
        if tokens is not None:
            tokens.discard(token)
            if not tokens:
                del by_key[key]
        if not by_key:
            del self._store[callback]

    def exists(self, callback: Callback) -> bool:
        """Return True when *callback* has at least one live subscription."""

        return callback in self._store

    def lookup(self, callback: Callback) -> Mapping[str, Set[SubscriptionToken]] | None:
        """Return the key-to-tokens mapping for *callback*, if any."""

        return self._store.get(callback)

    def __len__(self) -> int:
        """Return the number of indexed callbacks."""

        return len(self._store)


class ScopeIndex:
    """Maps a scope to the tokens subscribed through it."""

    def __init__(self) -> None:
        """Create an empty scope index."""

        self._store: dict[Scope, set[SubscriptionToken]] = {}

    def lookup(self, scope: Scope) -> Set[SubscriptionToken] | None:
        """Return the tokens recorded for *scope*, if any."""

        return self._store.get(scope)

    def record(self, scope: Scope, token: SubscriptionToken) -> None:
        """Remember that *token* belongs to *scope*."""

        self._store.setdefault(scope, set()).add(token)

    def forget(self, scope: Scope, token: SubscriptionToken) -> None:
        """Drop *token* from *scope*, removing the scope once it has no tokens."""

        tokens = self._store.get(scope)
        if tokens is None:
            return
        tokens.discard(token)
        if not tokens:
            del self._store[scope]

    def __len__(self) -> int:
        """Return the number of scopes holding tokens."""

        return len(self._store)
