from __future__ import annotations

"""
readykit.core.types
===================

Shared type aliases and small constants used across the codebase.
Keep this module **tiny** and dependency-free.
"""

from collections.abc import Callable
from typing import Any, Final

# ---- Time --------------------------------------------------------------------

Millis = int
TimestampMs = int  # wall-clock epoch timestamp (ms)
MonotonicMs = int  # process-local monotonic time (ms)

# ---- Identifiers ---------------------------------------------------------------

TaskKey = str
RunId = str

# ---- Callables -----------------------------------------------------------------

Handler = Callable[..., Any]
Callback = Callable[[], Any]

# ---- Constants -----------------------------------------------------------------

# Seconds until a run gives up and forces `complete`.
DEFAULT_TIMEOUT_SEC: Final[float] = 10.0

# Separator between a task key and its phase in per-key event names.
EVENT_SEP: Final[str] = ":"


__all__ = [
    "Millis",
    "TimestampMs",
    "MonotonicMs",
    "TaskKey",
    "RunId",
    "Handler",
    "Callback",
    "DEFAULT_TIMEOUT_SEC",
    "EVENT_SEP",
]
