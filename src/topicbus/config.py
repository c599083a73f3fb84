"""Configuration schema for the topicbus engine."""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field

ENV_SCHEDULER = "TOPICBUS_SCHEDULER"
ENV_WORKER_NAME = "TOPICBUS_WORKER_NAME"
ENV_RUN_COROUTINES = "TOPICBUS_RUN_COROUTINES"


class SchedulerKind(str, Enum):
    """Identifies the deferred-delivery strategy used for asynchronous publishes."""

    THREAD = "thread"
    ASYNCIO = "asyncio"
    MANUAL = "manual"


_FALSE_STRINGS: frozenset[str] = frozenset({"0", "false", "no", "off"})


def _parse_bool_flag(raw: str) -> bool:
    """Interpret configuration flags accepting common "disabled" spellings."""

    return raw.strip().lower() not in _FALSE_STRINGS


class PubSubConfig(BaseModel):
    """Runtime options for a publish/subscribe engine instance."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    scheduler: SchedulerKind = Field(
        default=SchedulerKind.ASYNCIO,
        description=(
            "Deferred delivery strategy: the asyncio event loop (queueing until drained "
            "when no loop runs), a manual queue drained by the host application, or an "
            "opt-in background worker thread that runs callbacks concurrently"
        ),
    )
    worker_name: str = Field(
        default="topicbus-delivery",
        min_length=1,
        description="Thread name used by the background delivery worker",
    )
    run_coroutines: bool = Field(
        default=True,
        description=(
            "Run awaitables returned by callbacks. When disabled they are closed "
            "without being awaited."
        ),
    )

    @classmethod
    def from_environment(
        cls,
        *,
        env: Mapping[str, str] | None = None,
        dotenv_path: Path | str | None = None,
    ) -> PubSubConfig:
        """Build a configuration from environment variables.

        Recognised variables:
            - ``TOPICBUS_SCHEDULER`` → ``scheduler`` (``thread``, ``asyncio`` or ``manual``)
            - ``TOPICBUS_WORKER_NAME`` → ``worker_name``
            - ``TOPICBUS_RUN_COROUTINES`` → ``run_coroutines``

        When *dotenv_path* is given, values from that file fill in anything the
        process environment (or *env*) does not define.
        """

        source: dict[str, str] = {}
        if dotenv_path is not None:
            for key, value in dotenv_values(dotenv_path).items():
                if value is not None:
                    source[key] = value
        source.update(os.environ if env is None else env)

        overrides: dict[str, object] = {}
        scheduler = source.get(ENV_SCHEDULER)
        if scheduler:
            overrides["scheduler"] = scheduler.strip().lower()
        worker_name = source.get(ENV_WORKER_NAME)
        if worker_name:
            overrides["worker_name"] = worker_name
        run_coroutines = source.get(ENV_RUN_COROUTINES)
        if run_coroutines is not None:
            overrides["run_coroutines"] = _parse_bool_flag(run_coroutines)
        return cls.model_validate(overrides)
