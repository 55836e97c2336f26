#tests/test_monitoring_controller.py
"""
Tests for monitoring.controller.AgentController.

Covers:
- pause / resume forwarding
- single step pauses first, then runs one tick
- cancel, goal and one-off command routing
- DUMP_STATE publishes a SNAPSHOT event
- CONTROL_COMMAND audit events
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from monitoring.bus import EventBus
from monitoring.controller import AgentController
from monitoring.events import ControlCommand, EventType, MonitoringEvent


class FakeLoop:
    """Records the ControlLoop calls the controller makes."""

    def __init__(self) -> None:
        self.calls: List[Any] = []
        self.paused = False

    def tick(self) -> bool:
        self.calls.append("tick")
        return True

    def pause(self) -> None:
        self.paused = True
        self.calls.append("pause")

    def resume(self) -> None:
        self.paused = False
        self.calls.append("resume")

    def cancel_plan(self) -> None:
        self.calls.append("cancel_plan")

    def request_new_plan(self, message: Optional[str] = None, sender: Optional[str] = None) -> Any:
        self.calls.append(("request_new_plan", message))
        return object()

    def run_command(self, command: str, goal: str = "Operator command") -> bool:
        self.calls.append(("run_command", command, goal))
        return command.startswith("mine")

    def debug_state(self) -> Dict[str, Any]:
        self.calls.append("debug_state")
        return {"phase": "IDLE", "goal": "Get wood", "pending": ["mine oak_log 3"]}


def make_controller():
    bus = EventBus()
    loop = FakeLoop()
    controller = AgentController(loop, bus)
    received: List[MonitoringEvent] = []
    bus.subscribe(received.append)
    return bus, loop, controller, received


def control_events(received: List[MonitoringEvent]) -> List[Dict[str, Any]]:
    return [e.payload for e in received if e.event_type == EventType.CONTROL_COMMAND]


def test_pause_and_resume():
    bus, loop, controller, received = make_controller()
    assert controller.paused is False

    bus.publish_command(ControlCommand.pause())
    assert controller.paused is True
    assert loop.paused is True

    bus.publish_command(ControlCommand.resume())
    assert controller.paused is False
    assert loop.calls == ["pause", "resume"]
    assert [p["cmd"] for p in control_events(received)] == ["PAUSE", "RESUME"]


def test_single_step_pauses_then_ticks_once():
    bus, loop, controller, received = make_controller()

    bus.publish_command(ControlCommand.single_step())
    bus.publish_command(ControlCommand.single_step())

    assert loop.calls == ["pause", "tick", "tick"]
    assert controller.paused is True
    assert control_events(received)[-1] == {"cmd": "SINGLE_STEP", "ran": True, "paused": True}


def test_cancel_and_set_goal():
    bus, loop, _, received = make_controller()

    bus.publish_command(ControlCommand.cancel_plan())
    bus.publish_command(ControlCommand.set_goal("  Build a shelter  "))

    assert loop.calls == ["cancel_plan", "cancel_plan", ("request_new_plan", "Build a shelter")]
    assert control_events(received)[-1]["goal"] == "Build a shelter"


def test_blank_goal_is_ignored():
    bus, loop, _, received = make_controller()

    bus.publish_command(ControlCommand.set_goal("   "))

    assert loop.calls == []
    assert control_events(received) == []


def test_run_command_reports_acceptance():
    bus, loop, _, received = make_controller()

    bus.publish_command(ControlCommand.run_command("mine stone 3", "Get stone"))
    bus.publish_command(ControlCommand.run_command("dance"))

    assert loop.calls[0] == ("run_command", "mine stone 3", "Get stone")
    assert loop.calls[1] == ("run_command", "dance", "Operator command")
    assert [p["accepted"] for p in control_events(received)] == [True, False]


def test_dump_state_publishes_snapshot():
    bus, loop, _, received = make_controller()

    bus.publish_command(ControlCommand.dump_state())

    snapshots = [e for e in received if e.event_type == EventType.SNAPSHOT]
    assert len(snapshots) == 1
    assert snapshots[0].payload["state"]["goal"] == "Get wood"
    assert loop.calls == ["debug_state"]


def test_detach_stops_routing():
    bus, loop, controller, _ = make_controller()
    controller.detach()

    bus.publish_command(ControlCommand.pause())

    assert loop.calls == []
