"""Deferred-execution strategies used for asynchronous delivery."""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from collections import deque
from collections.abc import Callable
from typing import Protocol, TypeAlias

from .config import PubSubConfig, SchedulerKind
from .errors import SchedulerClosedError

logger = logging.getLogger(__name__)

Task: TypeAlias = Callable[[], object]


class Scheduler(Protocol):
    """Runs a task later, after the caller's synchronous work has completed."""

    def defer(self, task: Task) -> None:  # pragma: no cover - protocol
        """Schedule *task* to run with no arguments at some later point."""
        ...

    def run_pending(self) -> int:  # pragma: no cover - protocol
        """Run tasks the scheduler is holding for the caller; return the count."""
        ...

    def close(self) -> None:  # pragma: no cover - protocol
        """Release resources held by the scheduler."""
        ...


class ManualScheduler(Scheduler):
    """FIFO queue of deferred tasks drained explicitly by the host."""

    def __init__(self) -> None:
        """Create an empty queue."""

        self._pending: deque[Task] = deque()
        self._closed = False

    @property
    def pending(self) -> int:
        """Return the number of tasks waiting to run."""

        return len(self._pending)

    def defer(self, task: Task) -> None:
        """Append *task* to the queue."""

        if self._closed:
            raise SchedulerClosedError("Cannot defer work on a closed scheduler")
        self._pending.append(task)

    def run_pending(self) -> int:
        """Run queued tasks, including ones queued while draining; return the count."""

        executed = 0
        while self._pending:
            task = self._pending.popleft()
            task()
            executed += 1
        return executed

    def close(self) -> None:
        """Stop accepting work; queued tasks are discarded."""

        self._closed = True
        self._pending.clear()


class AsyncioScheduler(ManualScheduler):
    """Defers tasks onto an asyncio event loop, queueing them while no loop runs.

    Tasks go to *loop* when one is bound, otherwise to the loop running in the
    publishing thread. Without any loop they wait in a FIFO queue until
    :meth:`run_pending` drains them or a later defer finds a running loop, which
    receives the backlog first. Either way a task never runs before the code
    that deferred it has returned control.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Bind to *loop*, or to whichever loop is running at defer time."""

        super().__init__()
        self._bound_loop = loop

    def defer(self, task: Task) -> None:
        """Schedule *task* on the event loop, or queue it when none is running."""

        if self._closed:
            raise SchedulerClosedError("Cannot defer work on a closed scheduler")
        loop = self._resolve_loop()
        if loop is None:
            self._pending.append(task)
            return
        while self._pending:
            loop.call_soon_threadsafe(self._pending.popleft())
        loop.call_soon_threadsafe(task)

    def _resolve_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._bound_loop is not None:
            if self._bound_loop.is_closed():
                raise SchedulerClosedError("The bound event loop is closed")
            return self._bound_loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None


class ThreadScheduler(Scheduler):
    """Runs deferred tasks in order on a single daemon worker thread.

    Opt-in only: callbacks run concurrently with the publisher's code, so
    subscribers must tolerate observing state the publisher is still updating.
    """

    _STOP = object()

    def __init__(self, *, name: str = "topicbus-delivery") -> None:
        """Create a scheduler whose worker thread starts on first use."""

        self._name = name
        self._queue: queue.SimpleQueue[object] = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._closed = False

    def defer(self, task: Task) -> None:
        """Queue *task* for the worker thread."""

        with self._lock:
            if self._closed:
                raise SchedulerClosedError("Cannot defer work on a closed scheduler")
            if self._thread is None:
                self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._thread.start()
                logger.info("Started delivery worker %s", self._name)
            self._queue.put(task)

    def run_pending(self) -> int:
        """Return 0; queued work is drained by the worker thread, not the caller."""

        return 0

    def close(self, timeout: float | None = None) -> None:
        """Run remaining tasks, then stop and join the worker thread."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
            if thread is not None:
                self._queue.put(self._STOP)
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Delivery worker %s stopped", self._name)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is self._STOP:
                return
            try:
                item()  # type: ignore[operator]
            except Exception:  # pragma: no cover - delivery units isolate their own failures
                logger.exception("Deferred task failed on %s", self._name)


def build_scheduler(config: PubSubConfig) -> Scheduler:
    """Instantiate the scheduler selected by *config*."""

    if config.scheduler is SchedulerKind.MANUAL:
        return ManualScheduler()
    if config.scheduler is SchedulerKind.THREAD:
        return ThreadScheduler(name=config.worker_name)
    return AsyncioScheduler()
