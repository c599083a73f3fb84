"""Public publish/subscribe facades: the root API and isolated scopes."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Self

from .config import PubSubConfig
from .engine import SubscriptionEngine
from .models import ROOT_SCOPE, Callback, RegistryStats, Scope, SubscriptionToken
from .scheduler import Scheduler, build_scheduler
from .telemetry import TelemetrySink
from .topics import TopicSpecifier

logger = logging.getLogger(__name__)


class _Facade:
    """Operations shared by the root API and isolated scopes."""

    def __init__(self, engine: SubscriptionEngine, scope: Scope) -> None:
        self._engine = engine
        self._scope = scope

    def subscribe(self, topic: TopicSpecifier, callback: Callback) -> SubscriptionToken | None:
        """Subscribe *callback* to a topic string or compiled pattern."""

        return self._engine.subscribe(self._scope, topic, callback)

    def subscribe_once(
        self, topic: TopicSpecifier, callback: Callback
    ) -> SubscriptionToken | None:
        """Subscribe *callback* for the first matching event only."""

        return self._engine.subscribe_once(self._scope, topic, callback)

    def publish(self, topic: str, data: Any = None, sync: bool = False) -> bool:
        """Publish *data* on *topic* to every matching subscriber in any scope."""

        return self._engine.publish(topic, data, sync)

    def has_subscribers(self, topic: str | None = None) -> bool:
        """Return True when any subscriber exists, or when one would receive *topic*."""

        return self._engine.has_subscribers(topic)

    def unsubscribe(self, target: object, callback: Callback | None = None) -> bool:
        """Unsubscribe by token, by callback, or by topic and callback."""

        return self._engine.unsubscribe(target, callback)

    def unsubscribe_token(self, token: SubscriptionToken) -> bool:
        """Unsubscribe the subscription identified by *token*."""

        return self._engine.unsubscribe_token(token)

    def unsubscribe_callback(self, callback: Callback) -> bool:
        """Unsubscribe *callback* from every topic."""

        return self._engine.unsubscribe_callback(callback)

    def unsubscribe_topic_callback(self, topic: TopicSpecifier, callback: Callback) -> bool:
        """Unsubscribe *callback* from *topic* only."""

        return self._engine.unsubscribe_topic_callback(topic, callback)

    def stats(self) -> RegistryStats:
        """Return counts of live registry and index entries."""

        return self._engine.stats()


class IsolatedPubSub(_Facade):
    """Facade bound to a private scope.

    Publishing and unsubscribing are global; only :meth:`unsubscribe_all`
    is restricted to the subscriptions made through this facade.
    """

    @property
    def scope(self) -> Scope:
        """Return the scope identity owned by this facade."""

        return self._scope

    def unsubscribe_all(self, topic: TopicSpecifier | None = None) -> bool:
        """Remove this scope's subscriptions, optionally only those for *topic*."""

        return self._engine.unsubscribe_all(self._scope, topic)


class PubSub(_Facade):
    """Root publish/subscribe API backed by one engine instance."""

    def __init__(
        self,
        config: PubSubConfig | None = None,
        *,
        scheduler: Scheduler | None = None,
        telemetry: TelemetrySink | None = None,
    ) -> None:
        """Create an engine using *config*, or inject a *scheduler* directly.

        An injected scheduler stays owned by the caller and is not closed by
        :meth:`close`.
        """

        self._config = config or PubSubConfig()
        self._owns_scheduler = scheduler is None
        resolved = scheduler if scheduler is not None else build_scheduler(self._config)
        engine = SubscriptionEngine(
            resolved,
            telemetry=telemetry,
            run_coroutines=self._config.run_coroutines,
        )
        super().__init__(engine, ROOT_SCOPE)

    @property
    def config(self) -> PubSubConfig:
        """Return the configuration used to build this instance."""

        return self._config

    @property
    def scheduler(self) -> Scheduler:
        """Return the scheduler used for deferred delivery."""

        return self._engine.scheduler

    def isolate(self, label: str | None = None) -> IsolatedPubSub:
        """Return a facade bound to a fresh scope sharing this registry."""

        scope = Scope() if label is None else Scope(label)
        logger.debug("Created isolated scope %r", scope)
        return IsolatedPubSub(self._engine, scope)

    def unsubscribe_all(self, topic: TopicSpecifier | None = None) -> bool:
        """Remove every subscription in every scope, optionally only for *topic*."""

        return self._engine.unsubscribe_all(None, topic)

    def topics(self) -> dict[str, int]:
        """Return a snapshot of lookup keys and their subscriber counts."""

        return self._engine.topics()

    def run_pending(self) -> int:
        """Run deferred deliveries held by the scheduler; return how many ran."""

        return self._engine.scheduler.run_pending()

    def close(self) -> None:
        """Shut down the scheduler when this instance created it."""

        if self._owns_scheduler:
            self._engine.scheduler.close()

    def __enter__(self) -> Self:
        """Return the instance for use in a ``with`` block."""

        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the instance when leaving a ``with`` block."""

        self.close()


def create_pubsub(
    config: PubSubConfig | None = None,
    *,
    scheduler: Scheduler | None = None,
    telemetry: TelemetrySink | None = None,
) -> PubSub:
    """Return a new, independent publish/subscribe instance."""

    return PubSub(config, scheduler=scheduler, telemetry=telemetry)
