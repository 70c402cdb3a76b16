from __future__ import annotations

import json

import pytest

from readykit import Coordinator, PreloaderConfig

pytestmark = [pytest.mark.unit]


def test_defaults():
    cfg = PreloaderConfig()
    assert cfg.timeout_sec == 10.0
    assert cfg.timeout_ms == 10_000


def test_load_without_file_uses_defaults(tmp_path):
    cfg = PreloaderConfig.load(tmp_path / "missing.json")
    assert cfg.timeout_sec == 10.0


def test_load_precedence_file_env_overrides(tmp_path, monkeypatch):
    p = tmp_path / "readykit.json"
    p.write_text(json.dumps({"timeout_sec": 3}), encoding="utf-8")
    assert PreloaderConfig.load(p).timeout_ms == 3_000

    monkeypatch.setenv("READYKIT_TIMEOUT_SEC", "1.5")
    assert PreloaderConfig.load(p).timeout_ms == 1_500

    cfg = PreloaderConfig.load(p, overrides={"timeout_sec": 0.25})
    assert cfg.timeout_sec == 0.25 and cfg.timeout_ms == 250


def test_unreadable_file_fails_soft(tmp_path):
    p = tmp_path / "broken.json"
    p.write_text("{not json", encoding="utf-8")
    assert PreloaderConfig.load(p).timeout_sec == 10.0


def test_bad_env_value_raises(monkeypatch):
    monkeypatch.setenv("READYKIT_TIMEOUT_SEC", "soon")
    with pytest.raises(ValueError):
        PreloaderConfig.load()


@pytest.mark.parametrize("bad", [-1, float("nan"), float("inf"), "10", True])
def test_invalid_timeout_rejected(bad):
    with pytest.raises(ValueError):
        PreloaderConfig(timeout_sec=bad)


def test_unknown_option_rejected():
    with pytest.raises(TypeError):
        PreloaderConfig.load(overrides={"retries": 3})


def test_coordinator_timeout_precedence(monkeypatch):
    monkeypatch.setenv("READYKIT_TIMEOUT_SEC", "4")
    assert Coordinator().timeout_sec == 4.0
    assert Coordinator(timeout_sec=0.5).timeout_sec == 0.5
    assert Coordinator(cfg=PreloaderConfig(timeout_sec=2)).timeout_sec == 2.0
