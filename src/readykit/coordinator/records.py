# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Per-task records and the run report.

`TaskRecord` is mutable and owned by the Coordinator; subscribers receive the
live object and should treat it as read-only. `RunReport` is an immutable
pydantic snapshot built once, at completion.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    """pending -> loading -> settled | failed. The last two are terminal."""

    pending = "pending"
    loading = "loading"
    settled = "settled"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.settled, TaskStatus.failed)


@dataclass(eq=False)
class TaskRecord:
    key: str
    operation: Any
    status: TaskStatus = TaskStatus.pending
    result: Any = None
    error: Any = None
    started_ms: int | None = None
    finished_ms: int | None = None

    @property
    def done(self) -> bool:
        return self.status.is_terminal

    @property
    def duration_ms(self) -> int | None:
        if self.started_ms is None or self.finished_ms is None:
            return None
        return self.finished_ms - self.started_ms


class RunReport(BaseModel):
    """
    Outcome of one coordinator run, passed to `complete` handlers and returned
    by `Coordinator.wait()`.

    Fields:
        run_id: Identifier of the run (also bound into log context).
        forced: True when `complete` came from the timeout path.
        total: Number of tasks in the run.
        settled: Tasks that reached a terminal status (success or failure).
        loaded: Keys that succeeded.
        failed: Keys that failed.
        pending: Keys that had not settled at completion.
        elapsed_ms: Time from `start()` to completion.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    run_id: str
    forced: bool = False
    total: int = Field(ge=0)
    settled: int = Field(ge=0)
    loaded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    pending: list[str] = Field(default_factory=list)
    elapsed_ms: int = Field(default=0, ge=0)

    @property
    def ok(self) -> bool:
        """All tasks settled in time and none failed."""
        return not self.forced and not self.failed

    @classmethod
    def from_records(
        cls,
        records: Iterable[TaskRecord],
        *,
        run_id: str,
        forced: bool,
        settled: int,
        elapsed_ms: int,
    ) -> RunReport:
        recs = list(records)
        return cls(
            run_id=run_id,
            forced=forced,
            total=len(recs),
            settled=settled,
            loaded=[r.key for r in recs if r.status is TaskStatus.settled],
            failed=[r.key for r in recs if r.status is TaskStatus.failed],
            pending=[r.key for r in recs if not r.done],
            elapsed_ms=max(0, elapsed_ms),
        )
