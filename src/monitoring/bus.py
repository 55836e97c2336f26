# EventBus for monitoring events and control commands
# src/monitoring/bus.py
"""
In-process pub/sub for monitoring.

- Subscribers receive MonitoringEvent objects (dashboard, JSONL logger).
- Command handlers receive ControlCommand objects (AgentController).

Events are published from the control thread and from world-client
callback threads, so the subscriber lists sit behind a lock and every
publish iterates over a copy.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, List

from .events import ControlCommand, MonitoringEvent

logger = logging.getLogger(__name__)

SubscriberFn = Callable[[MonitoringEvent], None]
CommandHandlerFn = Callable[[ControlCommand], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: List[SubscriberFn] = []
        self._cmd_handlers: List[CommandHandlerFn] = []
        self._lock = Lock()

    # --------------------------------------------------------
    # Subscriptions
    # --------------------------------------------------------

    def subscribe(self, fn: SubscriberFn) -> None:
        with self._lock:
            self._subscribers.append(fn)

    def unsubscribe(self, fn: SubscriberFn) -> None:
        """Remove a subscriber; unknown callbacks are ignored."""
        with self._lock:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

    def subscribe_commands(self, fn: CommandHandlerFn) -> None:
        with self._lock:
            self._cmd_handlers.append(fn)

    def unsubscribe_commands(self, fn: CommandHandlerFn) -> None:
        with self._lock:
            if fn in self._cmd_handlers:
                self._cmd_handlers.remove(fn)

    # --------------------------------------------------------
    # Publishing
    # --------------------------------------------------------

    def publish(self, event: MonitoringEvent) -> None:
        """
        Deliver `event` to every subscriber.

        A failing subscriber is logged and skipped; the rest still run and
        the publisher never sees the error.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        for fn in subscribers:
            try:
                fn(event)
            except Exception:
                logger.exception("Monitoring subscriber %r failed on %s", fn, event.event_type.name)

    def publish_command(self, cmd: ControlCommand) -> None:
        with self._lock:
            handlers = list(self._cmd_handlers)

        for fn in handlers:
            try:
                fn(cmd)
            except Exception:
                logger.exception("Command handler %r failed on %s", fn, cmd.cmd.name)

    def clear(self) -> None:
        """Drop all subscribers and handlers (tests)."""
        with self._lock:
            self._subscribers.clear()
            self._cmd_handlers.clear()
