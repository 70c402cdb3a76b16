# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Error taxonomy for readykit.

Task failures are *not* raised: they are reported through `error` events.
These exceptions cover misuse of the Coordinator itself.
"""


class ReadykitError(Exception):
    """Base class for all readykit errors."""

    ...


class QueueFrozen(ReadykitError):
    """A task was added after `start()`; membership is fixed once a run begins."""

    ...


class InvalidTaskKey(ReadykitError, ValueError):
    """Task keys must be non-empty strings."""

    ...


class NotStarted(ReadykitError):
    """The run has not been started yet, so there is nothing to wait for."""

    ...


class ChannelInUse(ReadykitError):
    """The channel already belongs to a coordinator whose run has not completed."""

    ...
