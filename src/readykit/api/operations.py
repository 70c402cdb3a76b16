# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Capability protocol for promise-like operations that are not asyncio awaitables.

asyncio futures, tasks, coroutines and `concurrent.futures.Future` are handled
natively by the Coordinator. Anything else only needs `then(on_success,
on_failure)`: register one continuation of each kind, exactly one of which is
invoked once at some later point.
"""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Deferred(Protocol):
    def then(
        self,
        on_success: Callable[[Any], Any],
        on_failure: Callable[[BaseException], Any],
    ) -> Any: ...
