"""Callback resolution and isolated delivery of published events."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Sequence
from typing import Any

from .models import Callback
from .registry import SubscriptionRegistry
from .telemetry import CallbackErrorEvent, NullTelemetrySink, TelemetrySink

logger = logging.getLogger(__name__)

_background_tasks: set[asyncio.Future[Any]] = set()


def resolve_callbacks(registry: SubscriptionRegistry, topic: str) -> list[Callback]:
    """Return every callback whose entry matches *topic*.

    Callbacks are ordered by entry insertion, then by insertion within an entry.
    The returned list is a snapshot; later registry changes do not affect it.
    """

    matching: list[Callback] = []
    for _key, entry in registry:
        if entry.predicate(topic):
            matching.extend(entry.callbacks.values())
    return matching


def callback_name(callback: object) -> str:
    """Return a readable name for *callback* used in diagnostics."""

    name = getattr(callback, "__qualname__", None) or getattr(callback, "__name__", None)
    return str(name) if name else repr(callback)


class Delivery:
    """Delivers one published event to a fixed list of callbacks.

    Each callback runs in isolation: an exception is logged at DEBUG, reported
    to telemetry and swallowed so the remaining callbacks still run.
    """

    def __init__(
        self,
        callbacks: Sequence[Callback],
        topic: str,
        data: Any,
        *,
        telemetry: TelemetrySink | None = None,
        run_coroutines: bool = True,
    ) -> None:
        """Capture *callbacks* and the event they will receive."""

        self._callbacks = tuple(callbacks)
        self._topic = topic
        self._data = data
        self._telemetry = telemetry or NullTelemetrySink()
        self._run_coroutines = run_coroutines

    @property
    def callbacks(self) -> tuple[Callback, ...]:
        """Return the callbacks captured at publish time."""

        return self._callbacks

    def __call__(self) -> None:
        """Invoke every captured callback with ``(topic, data)``."""

        for callback in self._callbacks:
            try:
                result = callback(self._topic, self._data)
            except Exception as exc:
                self._report(callback, exc)
                continue
            if inspect.isawaitable(result):
                self._handle_awaitable(callback, result)

    def _handle_awaitable(self, callback: Callback, awaitable: Awaitable[Any]) -> None:
        if not self._run_coroutines:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is None:
            try:
                asyncio.run(_consume(awaitable))
            except Exception as exc:
                self._report(callback, exc)
            return
        future = asyncio.ensure_future(awaitable, loop=loop)
        _background_tasks.add(future)
        future.add_done_callback(lambda done: self._finish(callback, done))

    def _finish(self, callback: Callback, future: asyncio.Future[Any]) -> None:
        _background_tasks.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if isinstance(exc, Exception):
            self._report(callback, exc)

    def _report(self, callback: Callback, exc: Exception) -> None:
        name = callback_name(callback)
        logger.debug(
            "Subscriber %s failed while handling topic %r", name, self._topic, exc_info=exc
        )
        self._telemetry.record_event(
            CallbackErrorEvent(
                topic=self._topic,
                callback_name=name,
                error_type=exc.__class__.__name__,
                message=str(exc),
            )
        )


async def _consume(awaitable: Awaitable[Any]) -> None:
    await awaitable
