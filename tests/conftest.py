# conftest.py
from __future__ import annotations

import os
import uuid

import pytest

from readykit import Coordinator, EventChannel
from readykit.core.log import (
    bind_context,
    configure_from_env,
    enable_stdout_logging,
    get_logger,
    log_context,
)
from readykit.core.time import ManualClock, ManualTimer
from tests.helpers import EventRecorder


def pytest_addoption(parser):
    parser.addoption(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit readykit logs in JSON format during tests",
    )


@pytest.fixture(scope="session", autouse=True)
def _configure_readykit_logging(request):
    configure_from_env()
    prefer_json = request.config.getoption("--log-json")
    # Enable stdout ourselves unless the environment already did (human-readable by default)
    if os.getenv("READYKIT_LOG_STDOUT", "").lower() not in ("1", "true", "yes", "on"):
        enable_stdout_logging(level="DEBUG", json_output=prefer_json)
    bind_context(role="pytest")


@pytest.fixture(scope="session")
def session_run_id():
    return uuid.uuid4().hex[:8]


@pytest.fixture(autouse=True)
def _test_log_context(request, session_run_id):
    log = get_logger("test")
    with log_context(test=request.node.name, test_run=session_run_id):
        log.debug("pytest.test.start", event="pytest.test.start")
        yield


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    rep = outcome.get_result()
    if rep.when == "call":
        log = get_logger("test")
        with log_context(test=item.name):
            log.debug(
                "pytest.test.finish",
                event="pytest.test.finish",
                outcome=rep.outcome,
                duration=getattr(rep, "duration", None),
            )


@pytest.fixture(autouse=True)
def _no_env_timeout(monkeypatch):
    monkeypatch.delenv("READYKIT_TIMEOUT_SEC", raising=False)


@pytest.fixture
def tlog():
    return get_logger("test")


@pytest.fixture
def manual_clock():
    return ManualClock()


@pytest.fixture
def manual_timer(manual_clock):
    return ManualTimer(manual_clock)


@pytest.fixture
def channel():
    return EventChannel()


@pytest.fixture
def make_coord(manual_timer, manual_clock):
    """
    Coordinator factory on a manual timer: the timeout only fires when a test
    calls `manual_timer.advance(...)`. Returns (coordinator, recorder).
    """

    def _make(queue=None, *, timeout_sec: float = 10.0):
        c = Coordinator(queue, timeout_sec=timeout_sec, timer=manual_timer, clock=manual_clock)
        return c, EventRecorder.attach(c)

    return _make
