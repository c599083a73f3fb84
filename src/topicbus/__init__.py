"""In-process topic-based publish/subscribe engine."""

from __future__ import annotations

from .config import PubSubConfig, SchedulerKind
from .errors import InvalidTopicError, SchedulerClosedError, SchedulerError, TopicBusError
from .models import ROOT_SCOPE, RegistryStats, Scope, SubscriptionToken
from .pubsub import IsolatedPubSub, PubSub, create_pubsub
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler, ThreadScheduler
from .telemetry import (
    CallbackErrorEvent,
    NullTelemetrySink,
    PublishMetrics,
    TelemetrySink,
)
from .topics import TopicSpecifier, is_valid_specifier, normalize, subscription_key

__all__ = [
    "ROOT_SCOPE",
    "AsyncioScheduler",
    "CallbackErrorEvent",
    "InvalidTopicError",
    "IsolatedPubSub",
    "ManualScheduler",
    "NullTelemetrySink",
    "PubSub",
    "PubSubConfig",
    "PublishMetrics",
    "RegistryStats",
    "Scheduler",
    "SchedulerClosedError",
    "SchedulerError",
    "SchedulerKind",
    "Scope",
    "SubscriptionToken",
    "TelemetrySink",
    "ThreadScheduler",
    "TopicBusError",
    "TopicSpecifier",
    "create_pubsub",
    "is_valid_specifier",
    "normalize",
    "subscription_key",
]
