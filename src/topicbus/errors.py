"""Exception hierarchy for the topicbus library."""

from __future__ import annotations


class TopicBusError(Exception):
    """Base exception for all topicbus errors."""


class InvalidTopicError(TopicBusError, ValueError):
    """Raised when a value is neither a topic string nor a compiled ``str`` pattern."""


class SchedulerError(TopicBusError):
    """Raised when deferred delivery cannot be scheduled."""


class SchedulerClosedError(SchedulerError):
    """Raised when work is deferred onto a scheduler that has been closed."""
