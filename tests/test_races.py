# tests/test_races.py
"""
Tests for bot_core.races.

Covers:
- race returns the result or re-raises the call's own exception
- a lost race raises WorldTimeout after running cleanup
- a failing cleanup is logged and the timeout still propagates
- subscribed() removes its listener on every exit path
- shutdown_pool() drops the shared pool; the next race builds a new one
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

import bot_core.races as races
from bot_core.races import race, shutdown_pool, subscribed
from bot_core.testing import FakeWorldClient
from spec.errors import WorldTimeout
from spec.world import CHAT


@pytest.fixture
def pool():
    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="test-race")
    yield executor
    executor.shutdown(wait=False)


@pytest.fixture
def gate():
    release = threading.Event()
    yield release
    release.set()


def test_race_returns_result(pool) -> None:
    assert race(lambda: 42, 1.0, what="Answer", pool=pool) == 42


def test_race_reraises_call_error(pool) -> None:
    def broken():
        raise KeyError("no such block")

    with pytest.raises(KeyError, match="no such block"):
        race(broken, 1.0, what="Lookup", pool=pool)


def test_lost_race_runs_cleanup_then_times_out(pool, gate) -> None:
    cleaned = []

    with pytest.raises(WorldTimeout) as excinfo:
        race(lambda: gate.wait(5.0), 0.05, what="Mining", cleanup=lambda: cleaned.append(True), pool=pool)

    assert cleaned == [True]
    assert str(excinfo.value) == "Mining timeout after 0.1s"
    assert excinfo.value.details == {"timeout_s": 0.05}


def test_failing_cleanup_is_logged(pool, gate, caplog) -> None:
    def bad_cleanup():
        raise RuntimeError("goal already gone")

    with caplog.at_level(logging.ERROR, logger="bot_core.races"):
        with pytest.raises(WorldTimeout):
            race(lambda: gate.wait(5.0), 0.05, what="Pathfinding", cleanup=bad_cleanup, pool=pool)

    assert "Cleanup after Pathfinding timeout failed" in caplog.text


def test_subscribed_removes_listener_on_error() -> None:
    world = FakeWorldClient()
    heard = []

    with pytest.raises(RuntimeError):
        with subscribed(world, CHAT, lambda *args: heard.append(args)):
            assert world.listener_count(CHAT) == 1
            world.emit(CHAT, "Steve", "hi")
            raise RuntimeError("handler failed")

    assert heard == [("Steve", "hi")]
    assert world.listener_count(CHAT) == 0


def test_shutdown_pool_resets_shared_pool() -> None:
    assert race(lambda: "first", 1.0, what="Warmup") == "first"
    assert races._pool is not None

    shutdown_pool()
    assert races._pool is None

    assert race(lambda: "second", 1.0, what="Warmup") == "second"
    shutdown_pool()
