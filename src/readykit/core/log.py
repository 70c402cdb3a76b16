from __future__ import annotations

"""
readykit.core.log
=================

Structured logging on the stdlib `logging` module.

- `log_context` / `bind_context` carry fields such as `run_id` and `key`
  through contextvars; both formatters read them at format time.
- `get_logger` returns an adapter that accepts keyword fields:
  `log.debug("task loaded", event="preload.task.loaded", key="config")`.
- Nothing is printed unless an application or the test-suite calls
  `enable_stdout_logging` or `configure_from_env`.
"""

import contextvars
import json
import logging
import os
import sys
from collections.abc import Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, ClassVar, Final

__all__ = [
    "bind_context",
    "configure_from_env",
    "disable_stdout_logging",
    "enable_stdout_logging",
    "get_logger",
    "log_context",
    "set_level",
    "swallow",
]

_ROOT_LOGGER_NAME: Final[str] = "readykit"
_STDOUT_HANDLER: Final[str] = "_readykit_stdout_handler"

# ---------- Context ----------

_log_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar("readykit_log_ctx", default=None)


def _current() -> dict[str, Any]:
    ctx = _log_context.get()
    return dict(ctx) if ctx else {}


def _present(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


def bind_context(**fields: Any) -> None:
    """Merge fields into the log context for the rest of the current context."""
    _log_context.set({**_current(), **_present(fields)})


@contextmanager
def log_context(**fields: Any):
    """Add fields to the log context until the block exits."""
    token = _log_context.set({**_current(), **_present(fields)})
    try:
        yield
    finally:
        _log_context.reset(token)


# ---------- Formatters ----------

# LogRecord attributes that are not user fields.
_RECORD_ATTRS: Final[frozenset[str]] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "asctime",
    }
)


def _utc_iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, message, context and extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {"ts": _utc_iso(record.created), "level": record.levelname, "logger": record.name}
        msg = record.getMessage()
        if msg:
            out["message"] = msg
        out.update(_current())
        for k, v in record.__dict__.items():
            if k not in _RECORD_ATTRS:
                out.setdefault(k, v)
        if record.exc_info:
            etype, err = record.exc_info[0], record.exc_info[1]
            out["error"] = {"type": etype.__name__ if etype else "Exception", "message": str(err) if err else None}
        return json.dumps(out, ensure_ascii=False, separators=(",", ":"), default=repr)


class HumanFormatter(logging.Formatter):
    """Single-line format for local runs, with run/key/test context appended."""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    _context_keys: ClassVar[tuple[str, ...]] = ("run_id", "key", "test")

    def format(self, record: logging.LogRecord) -> str:
        line = f"{self.formatTime(record)} {record.levelname:<5} {record.name}: {record.getMessage()}"
        ctx = _current()
        shown = [f"{k}={ctx[k]}" for k in self._context_keys if ctx.get(k) is not None]
        if shown:
            line += f"  [{', '.join(shown)}]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ---------- Adapter ----------


class _KwExtraAdapter(logging.LoggerAdapter):
    """
    Moves keyword arguments logging does not know into `extra`. Names that
    collide with LogRecord attributes are stored as `field_<name>`.
    """

    _passthrough: ClassVar[frozenset[str]] = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

    def process(self, msg, kwargs):
        extra = kwargs.get("extra")
        if not isinstance(extra, dict):
            extra = {}
        for k in [k for k in kwargs if k not in self._passthrough]:
            extra.setdefault(f"field_{k}" if k in _RECORD_ATTRS else k, kwargs.pop(k))
        kwargs["extra"] = extra
        return msg, kwargs


# ---------- Configuration ----------

_bootstrapped = False


def _truthy_env(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


def _resolve_level(level: int | str) -> int:
    if isinstance(level, str):
        lvl = logging.getLevelName(level.upper())
        if not isinstance(lvl, int):
            raise ValueError(f"Invalid level name: {level!r}")
        return lvl
    return level


def _bootstrap() -> None:
    global _bootstrapped
    if _bootstrapped:
        return
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    lg.setLevel(logging.DEBUG)
    if not any(isinstance(h, logging.NullHandler) for h in lg.handlers):
        lg.addHandler(logging.NullHandler())
    _bootstrapped = True


def get_logger(name: str | None = None) -> logging.LoggerAdapter:
    """Return an adapter for `readykit.<name>` that accepts keyword fields."""
    _bootstrap()
    base = logging.getLogger(_ROOT_LOGGER_NAME)
    return _KwExtraAdapter(base.getChild(name) if name else base, {})


def set_level(level: int | str) -> None:
    logging.getLogger(_ROOT_LOGGER_NAME).setLevel(_resolve_level(level))


def enable_stdout_logging(*, level: int | str = logging.DEBUG, json_output: bool = False) -> None:
    """Attach one stdout handler (human format, or JSON lines), replacing a previous one."""
    _bootstrap()
    disable_stdout_logging()
    h = logging.StreamHandler(sys.stdout)
    h.set_name(_STDOUT_HANDLER)
    h.setLevel(_resolve_level(level))
    h.setFormatter(JsonFormatter() if json_output else HumanFormatter())
    logging.getLogger(_ROOT_LOGGER_NAME).addHandler(h)


def disable_stdout_logging() -> None:
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    for h in list(lg.handlers):
        if h.get_name() == _STDOUT_HANDLER:
            lg.removeHandler(h)


def configure_from_env() -> None:
    """
    Apply logging settings from the environment:
      - READYKIT_LOG_STDOUT=1 -> log to stdout
      - READYKIT_LOG_LEVEL=DEBUG|INFO|...
      - READYKIT_LOG_PRETTY=1 -> human format instead of JSON
    """
    level = os.getenv("READYKIT_LOG_LEVEL", "DEBUG")
    _bootstrap()
    set_level(level)
    if _truthy_env("READYKIT_LOG_STDOUT"):
        enable_stdout_logging(level=level, json_output=not _truthy_env("READYKIT_LOG_PRETTY"))
    else:
        disable_stdout_logging()


# ---------- Exception swallowing with trace ----------


@contextmanager
def swallow(
    *,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
    level: int = logging.DEBUG,
    code: str,
    msg: str | None = None,
    extra: Mapping[str, Any] | None = None,
    expected: bool = True,
):
    """
    Log and suppress an exception raised inside the block.

        with swallow(logger=log, code="events.handler", level=logging.ERROR):
            handler(*args)
    """
    log = logger or get_logger("swallow")
    if not isinstance(log, logging.LoggerAdapter):
        log = _KwExtraAdapter(log, {})
    try:
        yield
    except Exception as e:
        log.log(level, msg or "Suppressed exception", exc_info=e, code=code, expected=expected, **dict(extra or {}))


_bootstrap()
