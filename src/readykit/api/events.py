# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Typed event identifiers.

Run-level events are a closed set (`RunEvent`). Per-task events are a
(key, phase) pair (`TaskEvent`) whose wire name is `"<key>:<phase>"`, so
subscribers can still address a single task by string if they prefer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..core.types import EVENT_SEP


class RunEvent(str, Enum):
    """Events emitted once per run (or once per settlement, for loaded/error)."""

    start = "start"
    loaded = "loaded"
    error = "error"
    timeout = "timeout"
    complete = "complete"
    # catch-all: handlers receive (event_name, *payload) for every emission
    all = "all"


class Phase(str, Enum):
    """Per-task lifecycle phase carried by a TaskEvent."""

    loading = "loading"
    loaded = "loaded"
    error = "error"


@dataclass(frozen=True)
class TaskEvent:
    """
    Event scoped to one task.

    Attributes:
        key: Task key as registered on the Coordinator.
        phase: Which transition of that task the event reports.
    """

    key: str
    phase: Phase

    @property
    def name(self) -> str:
        return f"{self.key}{EVENT_SEP}{self.phase.value}"

    def __str__(self) -> str:
        return self.name

    @classmethod
    def loading(cls, key: str) -> TaskEvent:
        return cls(key, Phase.loading)

    @classmethod
    def loaded(cls, key: str) -> TaskEvent:
        return cls(key, Phase.loaded)

    @classmethod
    def error(cls, key: str) -> TaskEvent:
        return cls(key, Phase.error)


EventLike = Union[str, RunEvent, TaskEvent]


def event_name(event: EventLike) -> str:
    """Normalize any accepted event identifier to its string name."""
    if isinstance(event, TaskEvent):
        return event.name
    if isinstance(event, RunEvent):
        return event.value
    if isinstance(event, str) and event:
        return event
    raise TypeError(f"unsupported event identifier: {event!r}")


def parse_event(name: str) -> RunEvent | TaskEvent | str:
    """
    Map an event name back to its typed form.

    Keys may contain the separator themselves; only the last segment is
    treated as the phase. Unknown names are returned unchanged.
    """
    try:
        return RunEvent(name)
    except ValueError:
        pass
    key, sep, phase = name.rpartition(EVENT_SEP)
    if sep and key:
        try:
            return TaskEvent(key, Phase(phase))
        except ValueError:
            pass
    return name
