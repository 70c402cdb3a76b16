# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
The coordination state machine and its record types.
"""

from .operations import watch
from .records import RunReport, TaskRecord, TaskStatus
from .runner import Coordinator

__all__ = [
    "Coordinator",
    "RunReport",
    "TaskRecord",
    "TaskStatus",
    "watch",
]
