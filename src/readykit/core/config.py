from __future__ import annotations

"""
readykit.core.config
====================

Typed configuration for the Coordinator.
- No external deps; optional JSON file loading.
- Derives the millisecond timeout from seconds once.
- Small env override for convenience.

If a config file path is not provided or not found, defaults are used.
"""

import json
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .types import DEFAULT_TIMEOUT_SEC


def _try_load_json(path: Path | None) -> dict[str, Any]:
    if not path:
        return {}
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            return data if isinstance(data, dict) else {}
    except (OSError, ValueError):
        # Fail soft (callers may still override)
        pass
    return {}


@dataclass
class PreloaderConfig:
    """Coordinator configuration loaded from JSON/env with a derived millisecond field."""

    # Seconds until the run gives up and forces `complete`.
    timeout_sec: float = DEFAULT_TIMEOUT_SEC

    # ---- Derived (ms)
    timeout_ms: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.timeout_sec, bool) or not isinstance(self.timeout_sec, (int, float)):
            raise ValueError("timeout_sec must be a number")
        if not math.isfinite(self.timeout_sec) or self.timeout_sec < 0:
            raise ValueError("timeout_sec must be a finite, non-negative number")
        self.timeout_sec = float(self.timeout_sec)
        self.timeout_ms = int(self.timeout_sec * 1000)

    @classmethod
    def load(cls, path: Path | str | None = None, *, overrides: dict[str, Any] | None = None) -> PreloaderConfig:
        """
        Load config from a JSON file (if provided), then apply env and overrides.

        Env overrides:
          - READYKIT_TIMEOUT_SEC
        """
        data: dict[str, Any] = {}

        file_path: Path | None = Path(path) if path else None
        data.update(_try_load_json(file_path))

        env_timeout = os.getenv("READYKIT_TIMEOUT_SEC")
        if env_timeout:
            try:
                data["timeout_sec"] = float(env_timeout)
            except ValueError as e:
                raise ValueError(f"READYKIT_TIMEOUT_SEC must be a number, got {env_timeout!r}") from e

        if overrides:
            data.update(overrides)

        data.pop("timeout_ms", None)
        return cls(**data)
