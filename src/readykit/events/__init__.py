# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Event channel abstraction and the default in-process implementation.
"""

from .channel import Channel, EventChannel

__all__ = [
    "Channel",
    "EventChannel",
]
