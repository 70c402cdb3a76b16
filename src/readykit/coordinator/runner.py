# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio
import uuid
import weakref
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from ..api.errors import ChannelInUse, InvalidTaskKey, NotStarted, QueueFrozen
from ..api.events import EventLike, RunEvent, TaskEvent
from ..core.config import PreloaderConfig
from ..core.log import get_logger, log_context
from ..core.time import Clock, LoopTimer, SystemClock, Timer
from ..core.types import Handler, RunId, TaskKey
from ..events.channel import Channel, EventChannel
from .operations import watch
from .records import RunReport, TaskRecord, TaskStatus

# Run-level events whose handlers are released once the run completes.
_RELEASED_ON_COMPLETE = (RunEvent.start, RunEvent.timeout, RunEvent.loaded, RunEvent.complete)

# id(channel) -> coordinator that owns it until its run completes
_channel_owners: dict[int, weakref.ref[Coordinator]] = {}


def _claim_channel(channel: Channel, coord: Coordinator) -> None:
    ref = _channel_owners.get(id(channel))
    owner = ref() if ref is not None else None
    if owner is not None and owner is not coord and not owner.finished:
        raise ChannelInUse(f"channel is in use by run {owner.run_id}; it can be reused once that run completes")
    _channel_owners[id(channel)] = weakref.ref(coord)


def _release_channel(channel: Channel, coord: Coordinator) -> None:
    ref = _channel_owners.get(id(channel))
    if ref is not None and ref() in (coord, None):
        del _channel_owners[id(channel)]


class Coordinator:
    """
    Gates startup on a fixed set of named operations.

    Populate the queue, call `start()` from inside a running event loop, and
    subscribe to events (or `await wait()`). Every task reports exactly one
    of `<key>:loaded` / `<key>:error`; the run ends with a single `complete`
    once all tasks settled or the timeout fired, whichever comes first.

    `channel`, `timer` and `clock` are injectable for tests. A channel serves
    one run at a time: passing a channel whose previous run has not completed
    raises `ChannelInUse`.
    """

    def __init__(
        self,
        queue: Mapping[TaskKey, Any] | None = None,
        *,
        cfg: PreloaderConfig | None = None,
        timeout_sec: float | None = None,
        channel: Channel | None = None,
        timer: Timer | None = None,
        clock: Clock | None = None,
    ) -> None:
        if timeout_sec is not None:
            cfg = PreloaderConfig(timeout_sec=timeout_sec)
        self.cfg = cfg or PreloaderConfig.load()
        self.channel: Channel = channel or EventChannel()
        self.timer: Timer = timer or LoopTimer()
        self.clock: Clock = clock or SystemClock()

        self._run_id = uuid.uuid4().hex[:8]
        self._started = False
        self._starting = False
        self._finished = False
        self._records: dict[TaskKey, TaskRecord] = {}
        self._settled = 0
        self._total = 0
        self._timer_handle: Any | None = None
        self._done: asyncio.Future[RunReport] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._watched: set[asyncio.Future] = set()
        self._t0_ms = 0

        self.log = get_logger("coordinator")

        self._queue: dict[TaskKey, Any] = {}
        for key, op in (queue or {}).items():
            self.add(key, op)

        _claim_channel(self.channel, self)

    # ---- queue

    def add(self, key: TaskKey, operation: Any) -> None:
        if self._started:
            raise QueueFrozen(f"cannot add {key!r}: run already started")
        if not isinstance(key, str) or not key:
            raise InvalidTaskKey(f"task key must be a non-empty string, got {key!r}")
        self._queue[key] = operation

    @property
    def queue(self) -> Mapping[TaskKey, Any]:
        return MappingProxyType(self._queue)

    # ---- subscriptions (delegated to the channel)

    def on(self, event: EventLike, handler: Handler) -> Handler:
        return self.channel.on(event, handler)

    def once(self, event: EventLike, handler: Handler) -> Handler:
        once = getattr(self.channel, "once", None)
        if once is None:
            raise TypeError(f"{type(self.channel).__name__} does not support once()")
        return once(event, handler)

    def off(self, event: EventLike | None = None, handler: Handler | None = None) -> int:
        return self.channel.off(event, handler)

    def emit(self, event: EventLike, *args: Any) -> int:
        return self.channel.emit(event, *args)

    # ---- state

    @property
    def run_id(self) -> RunId:
        return self._run_id

    @property
    def started(self) -> bool:
        return self._started

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def records(self) -> Mapping[TaskKey, TaskRecord]:
        return MappingProxyType(self._records)

    @property
    def settled_count(self) -> int:
        return self._settled

    @property
    def total_count(self) -> int:
        return self._total

    @property
    def timeout_sec(self) -> float:
        return self.cfg.timeout_sec

    def status(self, key: TaskKey) -> TaskStatus:
        return self._records[key].status

    # ---- lifecycle

    def start(self) -> None:
        """
        Begin the run. Must be called with a running event loop; returns
        immediately. Calling it again is a no-op.
        """
        if self._started or self._starting:
            self.log.debug("start ignored: already started", event="preload.start.repeat", run_id=self._run_id)
            return
        self._loop = asyncio.get_running_loop()

        with log_context(run_id=self._run_id):
            # start handlers may still add() to the queue
            self._starting = True
            try:
                self.emit(RunEvent.start)
            finally:
                self._starting = False
            self._started = True
            self._records = {key: TaskRecord(key=key, operation=op) for key, op in self._queue.items()}
            self._total = len(self._records)
            self._settled = 0
            self._t0_ms = self.clock.mono_ms()
            self._done = self._loop.create_future()
            self.log.debug(
                "preloader started",
                event="preload.start",
                total=self._total,
                timeout_sec=self.cfg.timeout_sec,
            )

            # armed first so a sweep that raises still ends in `complete`
            self._timer_handle = self.timer.schedule(self.cfg.timeout_ms, self._on_timeout)
            self._sweep()

            if self._settled >= self._total:
                self._finish(forced=False)

    async def wait(self, timeout: float | None = None) -> RunReport:
        """
        Wait for `complete` and return the run report. `timeout` bounds only
        this wait (raising `TimeoutError`); the run itself keeps going.
        """
        if self._done is None:
            raise NotStarted("start() has not been called")
        return await asyncio.wait_for(asyncio.shield(self._done), timeout)

    async def run(self) -> RunReport:
        self.start()
        return await self.wait()

    # ---- internal: settlement

    def _sweep(self) -> None:
        assert self._loop is not None
        for key, rec in self._records.items():
            if rec.status is not TaskStatus.pending:
                continue
            rec.status = TaskStatus.loading
            rec.started_ms = self.clock.mono_ms()
            fut = watch(
                rec.operation,
                lambda value, key=key: self._on_loaded(key, value),
                lambda reason, key=key: self._on_error(key, reason),
                loop=self._loop,
                label=key,
            )
            if fut is not None and not fut.done():
                self._watched.add(fut)
                fut.add_done_callback(self._watched.discard)
            self.log.debug("task loading", event="preload.task.loading", key=key)
            self.emit(TaskEvent.loading(key), rec)

    def _accept(self, key: TaskKey, outcome: str) -> TaskRecord | None:
        rec = self._records.get(key)
        if self._finished or rec is None or rec.done:
            self.log.debug(
                "late settlement ignored",
                event="preload.task.late",
                run_id=self._run_id,
                key=key,
                outcome=outcome,
            )
            return None
        return rec

    def _on_loaded(self, key: TaskKey, value: Any) -> None:
        rec = self._accept(key, "loaded")
        if rec is None:
            return
        with log_context(run_id=self._run_id, key=key):
            rec.status = TaskStatus.settled
            rec.result = value
            rec.finished_ms = self.clock.mono_ms()
            self._settled += 1
            self.log.debug(
                "task loaded",
                event="preload.task.loaded",
                settled=self._settled,
                total=self._total,
                duration_ms=rec.duration_ms,
            )

            self.emit(RunEvent.loaded, self.records, key)
            self.emit(TaskEvent.loaded(key), rec)

            self._sweep()
            if self._settled >= self._total:
                self._finish(forced=False)

    def _on_error(self, key: TaskKey, reason: Any) -> None:
        rec = self._accept(key, "error")
        if rec is None:
            return
        with log_context(run_id=self._run_id, key=key):
            rec.status = TaskStatus.failed
            rec.error = reason
            rec.finished_ms = self.clock.mono_ms()
            self._settled += 1
            self.log.warning(
                "task failed",
                event="preload.task.error",
                settled=self._settled,
                total=self._total,
                error=repr(reason),
            )

            self.emit(RunEvent.error, self.records, key, reason)
            self.emit(TaskEvent.error(key), rec, reason)

            if self._settled >= self._total:
                self._finish(forced=False)

    # ---- internal: timeout & teardown

    def _on_timeout(self) -> None:
        self._timer_handle = None
        if self._finished:
            return
        with log_context(run_id=self._run_id):
            if self._settled < self._total:
                pending = [k for k, r in self._records.items() if not r.done]
                self.log.warning(
                    "preloader timed out",
                    event="preload.timeout",
                    settled=self._settled,
                    total=self._total,
                    pending=pending,
                )
                self.emit(RunEvent.timeout, self.records)
            self._finish(forced=True)

    def _finish(self, *, forced: bool) -> None:
        if self._finished:
            return
        self._finished = True

        report = RunReport.from_records(
            self._records.values(),
            run_id=self._run_id,
            forced=forced,
            settled=self._settled,
            elapsed_ms=self.clock.mono_ms() - self._t0_ms,
        )
        self.log.info(
            "preloader complete",
            event="preload.complete",
            report=report.model_dump(),
        )
        self.emit(RunEvent.complete, report)

        if self._timer_handle is not None:
            self.timer.cancel(self._timer_handle)
            self._timer_handle = None
        for ev in _RELEASED_ON_COMPLETE:
            self.off(ev)
        _release_channel(self.channel, self)

        if self._done is not None and not self._done.done():
            self._done.set_result(report)
