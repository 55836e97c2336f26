# AgentController linking control commands to the ControlLoop
# src/monitoring/controller.py
"""
Operator control surface.

AgentController listens for ControlCommand messages on the EventBus and
forwards them into a ControlLoop-like object:

- PAUSE / RESUME  -> stop / resume ticking
- SINGLE_STEP     -> run exactly one tick while paused
- CANCEL_PLAN     -> drop pending tasks (and any pursuit)
- SET_GOAL        -> request a new plan seeded with the goal text
- RUN_COMMAND     -> replace the plan with one parsed command
- DUMP_STATE      -> publish debug_state() as a SNAPSHOT event
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from .bus import EventBus
from .events import ControlCommand, ControlCommandType, EventType
from .logger import log_event

logger = logging.getLogger(__name__)


class LoopControl(Protocol):
    """What the controller needs from agent.loop.ControlLoop."""

    def tick(self) -> bool:
        ...

    def pause(self) -> None:
        ...

    def resume(self) -> None:
        ...

    def cancel_plan(self) -> None:
        ...

    def request_new_plan(self, message: Optional[str] = None, sender: Optional[str] = None) -> Any:
        ...

    def run_command(self, command: str, goal: str = "Operator command") -> bool:
        ...

    def debug_state(self) -> Dict[str, Any]:
        ...


class AgentController:
    def __init__(self, loop: LoopControl, bus: EventBus) -> None:
        self._loop = loop
        self._bus = bus
        self._paused = False
        self._bus.subscribe_commands(self._handle_command)

    @property
    def paused(self) -> bool:
        return self._paused

    def detach(self) -> None:
        self._bus.unsubscribe_commands(self._handle_command)

    # --------------------------------------------------------
    # Command handling
    # --------------------------------------------------------

    def _handle_command(self, cmd: ControlCommand) -> None:
        kind = cmd.cmd

        if kind == ControlCommandType.PAUSE:
            self._paused = True
            self._loop.pause()
            self._log_control("PAUSE", {"paused": True})

        elif kind == ControlCommandType.RESUME:
            self._paused = False
            self._loop.resume()
            self._log_control("RESUME", {"paused": False})

        elif kind == ControlCommandType.SINGLE_STEP:
            # Stepping only makes sense while the loop thread is held off.
            if not self._paused:
                self._paused = True
                self._loop.pause()
            ran = self._loop.tick()
            self._log_control("SINGLE_STEP", {"ran": ran, "paused": True})

        elif kind == ControlCommandType.CANCEL_PLAN:
            self._loop.cancel_plan()
            self._log_control("CANCEL_PLAN", {})

        elif kind == ControlCommandType.SET_GOAL:
            goal = str(cmd.args.get("goal", "")).strip()
            if not goal:
                logger.warning("SET_GOAL without a goal ignored")
                return
            self._loop.cancel_plan()
            plan = self._loop.request_new_plan(message=goal)
            self._log_control("SET_GOAL", {"goal": goal, "planned": plan is not None})

        elif kind == ControlCommandType.RUN_COMMAND:
            command = str(cmd.args.get("command", ""))
            goal = str(cmd.args.get("goal") or "Operator command")
            accepted = self._loop.run_command(command, goal)
            if not accepted:
                logger.warning("Operator command did not parse: %r", command)
            self._log_control("RUN_COMMAND", {"command": command, "accepted": accepted})

        elif kind == ControlCommandType.DUMP_STATE:
            log_event(
                bus=self._bus,
                module="monitoring.controller",
                event_type=EventType.SNAPSHOT,
                message="Agent state snapshot",
                payload={"state": self._loop.debug_state()},
            )

    def _log_control(self, name: str, payload: Dict[str, Any]) -> None:
        log_event(
            bus=self._bus,
            module="monitoring.controller",
            event_type=EventType.CONTROL_COMMAND,
            message=f"Control command: {name}",
            payload={"cmd": name, **payload},
        )
