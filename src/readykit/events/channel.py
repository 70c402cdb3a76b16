# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Named-event publish/subscribe surface.

This module defines:
- `Channel` protocol: the three operations the Coordinator relies on.
- `EventChannel`: an in-process implementation with `once`, a catch-all
  `all` event and per-handler error isolation.

Handlers run synchronously inside `emit()`, in subscription order.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from ..api.events import EventLike, RunEvent, event_name
from ..core.log import get_logger, swallow
from ..core.types import Handler

_ALL = RunEvent.all.value


@runtime_checkable
class Channel(Protocol):
    """
    Minimal pub/sub contract.

    `off(event)` with no handler removes every handler of that event;
    `off()` with no arguments removes everything.
    """

    def on(self, event: EventLike, handler: Handler) -> Handler: ...
    def off(self, event: EventLike | None = None, handler: Handler | None = None) -> int: ...
    def emit(self, event: EventLike, *args: Any) -> int: ...


class EventChannel:
    """Synchronous in-process event channel."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._log = get_logger("events")

    def on(self, event: EventLike, handler: Handler) -> Handler:
        if not callable(handler):
            raise TypeError("handler must be callable")
        self._handlers.setdefault(event_name(event), []).append(handler)
        return handler

    def once(self, event: EventLike, handler: Handler) -> Handler:
        """Subscribe a handler that is removed right before its first call."""
        name = event_name(event)

        def _once(*args: Any) -> Any:
            self.off(name, _once)
            return handler(*args)

        _once.__wrapped__ = handler  # type: ignore[attr-defined]
        return self.on(name, _once)

    def off(self, event: EventLike | None = None, handler: Handler | None = None) -> int:
        if event is None:
            if handler is None:
                removed = sum(len(hs) for hs in self._handlers.values())
                self._handlers.clear()
                return removed
            return sum(self._remove(name, handler) for name in list(self._handlers))
        name = event_name(event)
        if handler is None:
            return len(self._handlers.pop(name, []))
        return self._remove(name, handler)

    def emit(self, event: EventLike, *args: Any) -> int:
        """
        Call every handler of `event`, then every `all` handler with the event
        name prepended. Returns the number of handlers invoked.
        """
        name = event_name(event)
        called = 0
        for h in list(self._handlers.get(name, ())):
            self._invoke(name, h, args)
            called += 1
        if name != _ALL:
            for h in list(self._handlers.get(_ALL, ())):
                self._invoke(name, h, (name, *args))
                called += 1
        return called

    def listeners(self, event: EventLike) -> list[Handler]:
        return list(self._handlers.get(event_name(event), ()))

    # subscribe/unsubscribe naming used by some callers
    subscribe = on
    unsubscribe = off

    # ---- internal

    def _remove(self, name: str, handler: Handler) -> int:
        hs = self._handlers.get(name)
        if not hs:
            return 0
        kept = [h for h in hs if h is not handler and getattr(h, "__wrapped__", None) is not handler]
        removed = len(hs) - len(kept)
        if kept:
            self._handlers[name] = kept
        else:
            del self._handlers[name]
        return removed

    def _invoke(self, name: str, handler: Callable[..., Any], args: tuple[Any, ...]) -> None:
        with swallow(
            logger=self._log,
            level=logging.ERROR,
            code="events.handler",
            msg="event handler failed",
            extra={"event": name, "handler": getattr(handler, "__qualname__", repr(handler))},
            expected=False,
        ):
            handler(*args)
