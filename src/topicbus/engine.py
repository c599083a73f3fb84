"""Subscription engine shared by the root API and every isolated scope.

The engine owns the registry, the reverse indexes and the set of live tokens.
Every mutation and every publish-time snapshot happens under a single
re-entrant lock that is never held while subscriber callbacks run, so
callbacks may subscribe, unsubscribe or publish from within a delivery.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Iterable
from typing import Any

from .dispatch import Delivery, resolve_callbacks
from .indexes import CallbackIndex, ScopeIndex
from .models import Callback, RegistryStats, Scope, SubscriptionToken
from .registry import SubscriptionRegistry
from .scheduler import Scheduler
from .telemetry import NullTelemetrySink, PublishMetrics, TelemetrySink
from .topics import (
    MatchPredicate,
    TopicSpecifier,
    is_valid_specifier,
    normalize,
    subscription_key,
)

logger = logging.getLogger(__name__)


def is_valid_callback(callback: object) -> bool:
    """Return True when *callback* can be registered as a subscriber."""

    return callable(callback) and isinstance(callback, Hashable)


class SubscriptionEngine:
    """Registry, reverse indexes, token protocol and dispatch in one place."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        telemetry: TelemetrySink | None = None,
        run_coroutines: bool = True,
    ) -> None:
        """Create an empty engine delivering deferred events through *scheduler*."""

        self._scheduler = scheduler
        self._telemetry = telemetry or NullTelemetrySink()
        self._run_coroutines = run_coroutines
        self._registry = SubscriptionRegistry()
        self._callbacks = CallbackIndex()
        self._scopes = ScopeIndex()
        self._tokens: set[SubscriptionToken] = set()
        self._lock = threading.RLock()

    @property
    def scheduler(self) -> Scheduler:
        """Return the scheduler used for deferred delivery."""

        return self._scheduler

    def subscribe(
        self, scope: Scope, spec: TopicSpecifier, callback: Callback
    ) -> SubscriptionToken | None:
        """Register *callback* for *spec* on behalf of *scope*.

        Returns None when the callback is not a hashable callable or the
        specifier is neither a string nor a compiled ``str`` pattern.
        """

        if not is_valid_callback(callback) or not is_valid_specifier(spec):
            return None
        topic = normalize(spec)
        token = self._new_token(scope, topic.key, callback)
        self._store(token, topic.predicate, callback)
        return token

    def subscribe_once(
        self, scope: Scope, spec: TopicSpecifier, callback: Callback
    ) -> SubscriptionToken | None:
        """Register *callback* for a single delivery.

        The registered handler releases its token and then invokes *callback*.
        A fired flag, separate from token liveness, keeps the callback to one
        invocation across re-entrant or already-scheduled publishes; a delivery
        scheduled before the token was released still runs.
        """

        if not is_valid_callback(callback) or not is_valid_specifier(spec):
            return None
        topic = normalize(spec)
        token = self._new_token(scope, topic.key, callback)
        fired = threading.Event()

        def _deliver_once(event_topic: str, data: Any) -> object:
            with self._lock:
                if fired.is_set():
                    return None
                fired.set()
            self.release(token)
            return callback(event_topic, data)

        self._store(token, topic.predicate, _deliver_once)
        return token

    def _new_token(self, scope: Scope, key: str, callback: Callback) -> SubscriptionToken:
        return SubscriptionToken(scope=scope, key=key, callback=callback, _release=self.release)

    def _store(
        self, token: SubscriptionToken, predicate: MatchPredicate, handler: Callback
    ) -> None:
        with self._lock:
            self._registry.add(token.key, predicate, token, handler)
            self._tokens.add(token)
            self._callbacks.record(token.callback, token.key, token)
            self._scopes.record(token.scope, token)
        logger.debug("Subscribed %r under key %r", token.scope, token.key)

    def release(self, token: SubscriptionToken) -> bool:
        """Remove *token* from the registry and every index.

        Returns True only when the token was live; releasing an already removed
        token is a no-op returning False.
        """

        with self._lock:
            if token not in self._tokens:
                return False
            self._tokens.discard(token)
            self._registry.remove(token.key, token)
            self._callbacks.forget(token.callback, token.key, token)
            self._scopes.forget(token.scope, token)
        logger.debug("Released subscription under key %r", token.key)
        return True

    def _release_all(self, tokens: Iterable[SubscriptionToken]) -> bool:
        removed = False
        for token in tokens:
            removed = self.release(token) or removed
        return removed

    def unsubscribe(self, target: object, callback: Callback | None = None) -> bool:
        """Unsubscribe by token, by callback, or by topic and callback.

        Resolution order:
            1. *target* is a live token: remove it.
            2. *target* is a subscribed callback and *callback* is None: remove
               all of its subscriptions across every topic.
            3. *target* is a topic specifier and *callback* is subscribed: remove
               that callback's subscriptions under the specifier.

        Anything else is a no-op. Returns True when at least one live
        subscription was removed.
        """

        with self._lock:
            tokens = self._resolve_targets(target, callback)
        return self._release_all(tokens)

    def unsubscribe_token(self, token: SubscriptionToken) -> bool:
        """Remove the single subscription identified by *token*."""

        if not isinstance(token, SubscriptionToken):
            return False
        return self.release(token)

    def unsubscribe_callback(self, callback: Callback) -> bool:
        """Remove every subscription registered with *callback*."""

        with self._lock:
            tokens = self._tokens_for_callback(callback)
        return self._release_all(tokens)

    def unsubscribe_topic_callback(self, spec: TopicSpecifier, callback: Callback) -> bool:
        """Remove the subscriptions of *callback* registered under *spec*."""

        with self._lock:
            tokens = self._tokens_for_topic_callback(spec, callback)
        return self._release_all(tokens)

    def _resolve_targets(
        self, target: object, callback: Callback | None
    ) -> list[SubscriptionToken]:
        if isinstance(target, SubscriptionToken) and target in self._tokens:
            return [target]
        if callback is None:
            return self._tokens_for_callback(target)
        return self._tokens_for_topic_callback(target, callback)

    def _tokens_for_callback(self, callback: object) -> list[SubscriptionToken]:
        if not is_valid_callback(callback):
            return []
        by_key = self._callbacks.lookup(callback)  # type: ignore[arg-type]
        if by_key is None:
            return []
        return [token for tokens in by_key.values() for token in tokens]

    def _tokens_for_topic_callback(
        self, spec: object, callback: object
    ) -> list[SubscriptionToken]:
        if not is_valid_specifier(spec) or not is_valid_callback(callback):
            return []
        by_key = self._callbacks.lookup(callback)  # type: ignore[arg-type]
        if by_key is None:
            return []
        return list(by_key.get(subscription_key(spec), ()))  # type: ignore[arg-type]

    def unsubscribe_all(self, scope: Scope | None, spec: TopicSpecifier | None = None) -> bool:
        """Remove every subscription, optionally limited to *scope* and/or *spec*.

        A *scope* of None means no scope filter. With *spec*, only the
        subscriptions stored under the specifier's key are considered; a scope
        without subscriptions yields nothing to remove.
        """

        with self._lock:
            if spec is None:
                if scope is None:
                    tokens = list(self._tokens)
                else:
                    tokens = list(self._scopes.lookup(scope) or ())
            elif not is_valid_specifier(spec):
                tokens = []
            else:
                entry = self._registry.get(subscription_key(spec))
                tokens = [] if entry is None else list(entry.callbacks)
                if scope is not None:
                    scoped = self._scopes.lookup(scope) or frozenset()
                    tokens = [token for token in tokens if token in scoped]
        return self._release_all(tokens)

    def publish(self, topic: str, data: Any = None, sync: bool = False) -> bool:
        """Deliver *data* to every callback matching *topic*.

        Returns False when nothing matches. Otherwise delivers inline when
        *sync* is set, or hands the delivery to the scheduler, and returns True
        without waiting for deferred delivery to complete.
        """

        if not isinstance(topic, str):
            return False
        with self._lock:
            callbacks = resolve_callbacks(self._registry, topic)
        if not callbacks:
            return False
        delivery = Delivery(
            callbacks,
            topic,
            data,
            telemetry=self._telemetry,
            run_coroutines=self._run_coroutines,
        )
        self._telemetry.record_metric(
            PublishMetrics(topic=topic, matched=len(callbacks), sync=sync)
        )
        logger.debug("Publishing %r to %s subscriber(s) (sync=%s)", topic, len(callbacks), sync)
        if sync:
            delivery()
        else:
            self._scheduler.defer(delivery)
        return True

    def has_subscribers(self, topic: str | None = None) -> bool:
        """Return True when anything is subscribed, or when *topic* would match."""

        with self._lock:
            if topic is None:
                return self._registry.count() > 0
            if not isinstance(topic, str):
                return False
            return bool(resolve_callbacks(self._registry, topic))

    def topics(self) -> dict[str, int]:
        """Return a snapshot of lookup keys and subscriber counts."""

        with self._lock:
            return self._registry.topics()

    def stats(self) -> RegistryStats:
        """Return counts of live registry and index entries."""

        with self._lock:
            return RegistryStats(
                entries=len(self._registry),
                tokens=len(self._tokens),
                callbacks=len(self._callbacks),
                scopes=len(self._scopes),
            )
