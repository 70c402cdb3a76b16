# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
readykit public API: errors, typed event identifiers and the Deferred capability.
"""

from .errors import ChannelInUse, InvalidTaskKey, NotStarted, QueueFrozen, ReadykitError
from .events import EventLike, Phase, RunEvent, TaskEvent, event_name, parse_event
from .operations import Deferred

__all__ = [
    # errors
    "ReadykitError",
    "QueueFrozen",
    "InvalidTaskKey",
    "NotStarted",
    "ChannelInUse",
    # events
    "EventLike",
    "Phase",
    "RunEvent",
    "TaskEvent",
    "event_name",
    "parse_event",
    # operations
    "Deferred",
]
