# path: src/monitoring/events.py
"""
Event and command schemas for monitoring.

This module defines:
- EventType enum
- MonitoringEvent (structured runtime events)
- ControlCommandType enum + ControlCommand (operator-issued controls)

All events are JSON-serializable via `.to_dict()` and are intended
for use with monitoring.bus.EventBus and monitoring.logger.JsonFileLogger.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional


# ============================================================
# Event Types
# ============================================================

class EventType(Enum):
    """Typed monitoring events emitted by the control loop and its parts."""

    # Control-loop phase changes (IDLE, AWAITING_PLAN, EXECUTING_TASK, FOLLOWING)
    AGENT_PHASE_CHANGE = auto()

    # Plan lifecycle
    PLAN_REQUESTED = auto()
    PLAN_CREATED = auto()
    PLAN_FAILED = auto()       # no usable plan came back

    # One execute() call finished (success or failure)
    ACTION_EXECUTED = auto()

    # Incoming player chat that interrupted the loop
    CHAT_RECEIVED = auto()

    # Operator control surface
    CONTROL_COMMAND = auto()

    # Debug state dump
    SNAPSHOT = auto()

    # Generic log messages; payload["subtype"] narrows them
    # (LLM_TIMEOUT, LLM_ERROR, LLM_BAD_OUTPUT, AGENT_TICK_EXCEPTION)
    LOG = auto()


# ============================================================
# Monitoring Event Structure
# ============================================================

@dataclass
class MonitoringEvent:
    """
    Runtime event emitted by the control loop, planner or executor.

    All fields must be JSON-safe.
    """

    ts: float                   # UNIX timestamp (seconds)
    module: str                 # Source module ("agent.loop", "llm_stack.planner", ...)
    event_type: EventType
    message: str                # Short human-readable description
    payload: Dict[str, Any]     # Structured data (plan, action, failure, ...)
    correlation_id: Optional[str] = None  # Groups events of one plan

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dict for loggers."""
        data = asdict(self)
        data["event_type"] = self.event_type.name
        return data


# ============================================================
# Control Commands
# ============================================================

class ControlCommandType(Enum):
    """Commands an operator (or a script) can send to the control loop."""

    PAUSE = auto()          # Stop ticking
    RESUME = auto()         # Resume ticking
    SINGLE_STEP = auto()    # Run exactly one tick, then pause
    CANCEL_PLAN = auto()    # Drop the pending tasks
    SET_GOAL = auto()       # Ask for a new plan with this message
    RUN_COMMAND = auto()    # Replace the plan with one command
    DUMP_STATE = auto()     # Emit a SNAPSHOT event


@dataclass
class ControlCommand:
    """
    An external command for the agent.

    Sent through EventBus.publish_command() and interpreted by
    monitoring.controller.AgentController.
    """

    cmd: ControlCommandType
    args: Dict[str, Any]

    @staticmethod
    def pause() -> "ControlCommand":
        return ControlCommand(ControlCommandType.PAUSE, {})

    @staticmethod
    def resume() -> "ControlCommand":
        return ControlCommand(ControlCommandType.RESUME, {})

    @staticmethod
    def single_step() -> "ControlCommand":
        return ControlCommand(ControlCommandType.SINGLE_STEP, {})

    @staticmethod
    def cancel_plan() -> "ControlCommand":
        return ControlCommand(ControlCommandType.CANCEL_PLAN, {})

    @staticmethod
    def set_goal(goal: str) -> "ControlCommand":
        return ControlCommand(ControlCommandType.SET_GOAL, {"goal": goal})

    @staticmethod
    def run_command(command: str, goal: str = "Operator command") -> "ControlCommand":
        return ControlCommand(ControlCommandType.RUN_COMMAND, {"command": command, "goal": goal})

    @staticmethod
    def dump_state() -> "ControlCommand":
        return ControlCommand(ControlCommandType.DUMP_STATE, {})
