# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Attach success/failure continuations to whatever a caller put in the queue.

Supported operations:
- asyncio futures and tasks,
- coroutines and other awaitables (scheduled with `ensure_future`),
- `concurrent.futures.Future` (bridged with `wrap_future`),
- objects implementing the `Deferred` capability (`then(ok, err)`),
  a `then` that raises counts as a failure with that exception,
- any other value, which counts as already resolved with itself.

Continuations never run inside `watch()` itself: they are always delivered
later by the loop, one at a time.
"""

import asyncio
import concurrent.futures
import inspect
from collections.abc import Callable
from typing import Any

from ..api.operations import Deferred
from ..core.log import get_logger

_log = get_logger("coordinator.operations")


class _Settle:
    """Forwards the first outcome only; later calls are dropped."""

    __slots__ = ("_on_success", "_on_failure", "_fired", "_label")

    def __init__(self, on_success: Callable[[Any], Any], on_failure: Callable[[Any], Any], label: str) -> None:
        self._on_success = on_success
        self._on_failure = on_failure
        self._fired = False
        self._label = label

    def _claim(self) -> bool:
        if self._fired:
            _log.debug("duplicate settlement dropped", event="preload.operation.duplicate", key=self._label)
            return False
        self._fired = True
        return True

    def success(self, value: Any = None) -> None:
        if self._claim():
            self._on_success(value)

    def failure(self, reason: Any) -> None:
        if self._claim():
            self._on_failure(reason)

    def from_future(self, fut: asyncio.Future) -> None:
        try:
            value = fut.result()
        except (asyncio.CancelledError, Exception) as e:
            self.failure(e)
        else:
            self.success(value)


def watch(
    operation: Any,
    on_success: Callable[[Any], Any],
    on_failure: Callable[[Any], Any],
    *,
    loop: asyncio.AbstractEventLoop,
    label: str = "",
) -> asyncio.Future | None:
    """
    Register exactly-once continuations on `operation`.

    Returns the asyncio future being observed (callers keep a reference so a
    scheduled coroutine is not garbage-collected), or None for deferreds and
    plain values.
    """
    settle = _Settle(on_success, on_failure, label)

    fut: asyncio.Future
    if isinstance(operation, concurrent.futures.Future):
        fut = asyncio.wrap_future(operation, loop=loop)
    elif asyncio.isfuture(operation):
        fut = operation
    elif inspect.isawaitable(operation):
        fut = asyncio.ensure_future(operation, loop=loop)
    elif isinstance(operation, Deferred):

        def _ok(*args: Any) -> None:
            loop.call_soon_threadsafe(settle.success, args[0] if args else None)

        def _err(*args: Any) -> None:
            loop.call_soon_threadsafe(settle.failure, args[0] if args else None)

        try:
            operation.then(_ok, _err)
        except Exception as e:
            _log.warning("deferred.then() raised", event="preload.operation.then_failed", key=label, error=repr(e))
            loop.call_soon(settle.failure, e)
        return None
    else:
        loop.call_soon(settle.success, operation)
        return None

    fut.add_done_callback(settle.from_future)
    return fut
