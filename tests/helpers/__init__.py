from .events import BrokenDeferred, EventRecorder, FakeDeferred, Recorded, drain, fail_after, ok_after

__all__ = [
    "BrokenDeferred",
    "EventRecorder",
    "FakeDeferred",
    "Recorded",
    "drain",
    "fail_after",
    "ok_after",
]
