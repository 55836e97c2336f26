# JSON logger subscribing to EventBus
# src/monitoring/logger.py
"""
Structured event logging.

Provides:
- JsonFileLogger: subscribes to an EventBus and appends MonitoringEvents as JSONL.
- log_event: build a MonitoringEvent and publish it in one call.

    bus = EventBus()
    sink = JsonFileLogger(Path("logs/monitoring/events.log"), bus)
    log_event(
        bus=bus,
        module="agent.loop",
        event_type=EventType.PLAN_CREATED,
        message="New plan",
        payload={"goal": "get wood", "tasks": 3},
    )
"""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .bus import EventBus
from .events import EventType, MonitoringEvent

logger = logging.getLogger(__name__)


class JsonFileLogger:
    """
    JSON-lines sink for MonitoringEvent instances.

    One object per line, UTF-8, parent directory created on demand. Writes
    are serialized because events can arrive from several threads.
    """

    def __init__(self, path: Path, bus: EventBus) -> None:
        self._path = path
        self._bus = bus
        path.parent.mkdir(parents=True, exist_ok=True)
        self._file = path.open("a", encoding="utf-8")
        self._write_lock = threading.Lock()
        self._closed = False
        bus.subscribe(self._on_event)

    @property
    def path(self) -> Path:
        return self._path

    def _on_event(self, event: MonitoringEvent) -> None:
        line = json.dumps(event.to_dict(), ensure_ascii=False, default=str)
        with self._write_lock:
            if self._closed:
                return
            try:
                self._file.write(line + "\n")
                self._file.flush()
            except OSError:
                # Disk full or handle gone: drop the event, keep the agent running.
                logger.warning("Could not write monitoring event to %s", self._path, exc_info=True)

    def close(self) -> None:
        """Unsubscribe and close the file (graceful shutdown)."""
        self._bus.unsubscribe(self._on_event)
        with self._write_lock:
            if not self._closed:
                self._closed = True
                self._file.close()


def log_event(
    bus: EventBus,
    module: str,
    event_type: EventType,
    message: str,
    payload: Optional[Dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> MonitoringEvent:
    """
    Create and publish a MonitoringEvent; returns the published event.

    module:
        Source module, e.g. "agent.loop" or "llm_stack.planner".
    payload:
        JSON-safe structured data.
    correlation_id:
        Links the events of one plan.
    """
    event = MonitoringEvent(
        ts=time.time(),
        module=module,
        event_type=event_type,
        message=message,
        payload=payload or {},
        correlation_id=correlation_id,
    )
    bus.publish(event)
    return event
