from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Runtime package version, resolved from the installed distribution metadata.
try:
    __version__ = _pkg_version("readykit")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from collections.abc import Mapping
from typing import Any

from .api.errors import ChannelInUse, InvalidTaskKey, NotStarted, QueueFrozen, ReadykitError
from .api.events import Phase, RunEvent, TaskEvent
from .coordinator.records import RunReport, TaskRecord, TaskStatus
from .coordinator.runner import Coordinator
from .core.config import PreloaderConfig
from .core.types import Handler
from .events.channel import Channel, EventChannel


async def preload(
    queue: Mapping[str, Any],
    *,
    timeout_sec: float | None = None,
    cfg: PreloaderConfig | None = None,
    **handlers: Handler,
) -> RunReport:
    """
    Run one coordinator over `queue` and return its report.

    Keyword handlers named `on_<event>` are subscribed before the run starts,
    e.g. `on_complete=...`, `on_error=...`, `on_timeout=...`.
    """
    coord = Coordinator(queue, cfg=cfg, timeout_sec=timeout_sec)
    for name, handler in handlers.items():
        if not name.startswith("on_"):
            raise TypeError(f"unexpected keyword argument {name!r}")
        coord.on(RunEvent(name[3:]), handler)
    return await coord.run()


__all__ = [
    "Channel",
    "ChannelInUse",
    "Coordinator",
    "EventChannel",
    "InvalidTaskKey",
    "NotStarted",
    "Phase",
    "PreloaderConfig",
    "QueueFrozen",
    "ReadykitError",
    "RunEvent",
    "RunReport",
    "TaskEvent",
    "TaskRecord",
    "TaskStatus",
    "__version__",
    "preload",
]
