"""Identity and snapshot types shared by the subscription engine."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from itertools import count
from typing import Any, TypeAlias

Callback: TypeAlias = Callable[[str, Any], object]

_SCOPE_SEQUENCE = count(1)


@dataclass(frozen=True, slots=True, eq=False)
class Scope:
    """Opaque namespace identity grouping subscriptions for bulk removal.

    Scopes compare and hash by identity only; the label exists for debugging.
    """

    label: str = field(default_factory=lambda: f"scope-{next(_SCOPE_SEQUENCE)}")

    def __repr__(self) -> str:
        """Render the scope label without exposing any comparable value."""

        return f"<Scope {self.label}>"


ROOT_SCOPE = Scope("root")


@dataclass(frozen=True, slots=True, eq=False)
class SubscriptionToken:
    """Unique handle for one subscription; calling it unsubscribes.

    Every ``subscribe`` call yields a distinct token, even for an identical topic
    and callback. Invoking the token returns True only when a live
    subscription was removed; subsequent invocations return False.
    """

    scope: Scope
    key: str
    callback: Callback
    _release: Callable[[SubscriptionToken], bool] = field(repr=False)

    def __call__(self) -> bool:
        """Remove the subscription identified by this token."""

        return self._release(self)

    def unsubscribe(self) -> bool:
        """Alias for calling the token directly."""

        return self()


@dataclass(frozen=True, slots=True)
class RegistryStats:
    """Counts of live registry and index entries."""

    entries: int
    tokens: int
    callbacks: int
    scopes: int

    @property
    def empty(self) -> bool:
        """Return True when no subscription state is retained at all."""

        return not (self.entries or self.tokens or self.callbacks or self.scopes)
