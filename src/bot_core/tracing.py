# src/bot_core/tracing.py
"""
Action traces for the executor.

One ActionTraceRecord per execute() call, kept in a bounded ring buffer and
mirrored as a single structured log line. The control loop and the
monitoring dashboard read the buffer; nothing here makes decisions.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

from spec.types import ActionResult, Operation, Position


@dataclass
class ActionTraceRecord:
    timestamp: float           # wall-clock time (time.time())
    duration_s: float

    command: str               # operation.describe()
    kind: str

    success: bool
    error: Optional[str]

    position: Dict[str, float] = field(default_factory=dict)
    details: Dict[str, Any] = field(default_factory=dict)


class ActionTracer:
    """
    In-memory action tracer with optional logging.

    - Keep a rolling buffer of recent ActionTraceRecord entries.
    - Emit one log line per action (info level).
    """

    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        max_records: int = 1_000,
    ) -> None:
        self._logger = logger or logging.getLogger("bot_core.action")
        self._records: Deque[ActionTraceRecord] = deque(maxlen=max_records)

    def record(
        self,
        *,
        operation: Operation,
        result: ActionResult,
        duration_s: float,
        position: Optional[Position] = None,
    ) -> ActionTraceRecord:
        """Record a finished execute() call, successful or not."""
        pos = {}
        if position is not None:
            pos = {"x": position.x, "y": position.y, "z": position.z}

        record = ActionTraceRecord(
            timestamp=time.time(),
            duration_s=duration_s,
            command=operation.describe(),
            kind=operation.kind,
            success=result.success,
            error=result.error,
            position=pos,
            details=dict(result.details),
        )
        self._records.append(record)

        self._logger.info(
            "action_exec cmd=%r success=%s error=%s duration=%.3fs",
            record.command,
            record.success,
            record.error,
            record.duration_s,
        )
        return record

    def get_records(self) -> List[ActionTraceRecord]:
        return list(self._records)

    def last(self) -> Optional[ActionTraceRecord]:
        return self._records[-1] if self._records else None
