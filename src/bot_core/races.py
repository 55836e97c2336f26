# src/bot_core/races.py
"""
Timeout races and scoped event subscriptions for blocking world calls.

race(fn, timeout_s, what=...) runs `fn` on a small worker pool and waits at
most `timeout_s` for it. The first of {result, exception, deadline} wins:

- result     -> returned
- exception  -> re-raised unchanged
- deadline   -> `cleanup` runs (always, before anything propagates), then
                WorldTimeout is raised

A call that lost the race keeps running on its worker thread until the world
client returns; the world client is expected to make that harmless (the
cleanup callback usually clears the goal that call was waiting on).

subscribed(world, event, callback) binds a listener for the lifetime of a
`with` block and removes it on every exit path.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from contextlib import contextmanager
from threading import Lock
from typing import Any, Callable, Iterator, Optional, TypeVar

from spec.errors import WorldTimeout

log = logging.getLogger(__name__)

T = TypeVar("T")

_pool: Optional[ThreadPoolExecutor] = None
_pool_lock = Lock()


def _get_pool() -> ThreadPoolExecutor:
    global _pool
    with _pool_lock:
        if _pool is None:
            _pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="world-race")
        return _pool


def race(
    fn: Callable[[], T],
    timeout_s: float,
    *,
    what: str,
    cleanup: Optional[Callable[[], None]] = None,
    pool: Optional[ThreadPoolExecutor] = None,
) -> T:
    """
    Run `fn()` against a deadline.

    `what` names the operation in the timeout message, e.g. "Mining" gives
    "Mining timeout after 5.0s".
    """
    future: Future = (pool or _get_pool()).submit(fn)
    try:
        return future.result(timeout=timeout_s)
    except FutureTimeout:
        future.cancel()
        if cleanup is not None:
            try:
                cleanup()
            except Exception:
                log.exception("Cleanup after %s timeout failed", what)
        raise WorldTimeout(
            f"{what} timeout after {timeout_s:.1f}s",
            {"timeout_s": timeout_s},
        ) from None


@contextmanager
def subscribed(world: Any, event: str, callback: Callable[..., None]) -> Iterator[None]:
    """Listen to `event` on `world` for the duration of the block."""
    world.on(event, callback)
    try:
        yield
    finally:
        world.remove_listener(event, callback)


def shutdown_pool(wait: bool = False) -> None:
    """Stop the shared worker pool (runtime shutdown), cancelling queued calls."""
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.shutdown(wait=wait, cancel_futures=True)
            _pool = None
