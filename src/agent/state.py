# src/agent/state.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from spec.types import ActionResult


class LoopPhase(Enum):
    """
    Phases of the plan-execution control loop.

        IDLE            between tasks, nothing in flight
        AWAITING_PLAN   a plan request is out to the reasoning service
        EXECUTING_TASK  one Operation is running through the executor
        FOLLOWING       continuous pursuit; task execution is suspended

    Only one of AWAITING_PLAN / EXECUTING_TASK can hold at a time because
    ticks are serialized.
    """

    IDLE = auto()
    AWAITING_PLAN = auto()
    EXECUTING_TASK = auto()
    FOLLOWING = auto()


@dataclass
class LoopState:
    """
    Mutable bookkeeping for a ControlLoop; read by debug_state() and tests.

    ticks:
        Ticks that actually ran (skipped re-entrant ticks are not counted).
    plans_requested / plans_loaded:
        Reasoning-service round trips, and how many produced a Plan.
    last_task / last_result:
        Description and outcome of the most recent executed task.
    """

    phase: LoopPhase = LoopPhase.IDLE
    ticks: int = 0
    plans_requested: int = 0
    plans_loaded: int = 0
    tasks_executed: int = 0
    tasks_failed: int = 0
    last_task: Optional[str] = None
    last_result: Optional[ActionResult] = None
