#tests/test_monitoring_dashboard_tui.py
"""
Smoke tests for monitoring.dashboard_tui.TuiDashboard.

Covers:
- Event updates patch internal state
- Bounded action / failure / chat rows
- Layout renders to a console without crashing
"""

from __future__ import annotations

import io

from rich.console import Console

from monitoring.bus import EventBus
from monitoring.dashboard_tui import MAX_ROWS, TuiDashboard
from monitoring.events import EventType, MonitoringEvent


def make_event(event_type: EventType, payload: dict, message: str = "") -> MonitoringEvent:
    return MonitoringEvent(
        ts=0.0,
        module="test",
        event_type=event_type,
        message=message,
        payload=payload,
        correlation_id=None,
    )


def make_dashboard():
    bus = EventBus()
    console = Console(file=io.StringIO(), width=120, height=30, color_system=None)
    return bus, TuiDashboard(bus, console=console), console


def test_dashboard_tracks_plan_and_actions():
    bus, dashboard, _ = make_dashboard()

    bus.publish(make_event(EventType.AGENT_PHASE_CHANGE, {"phase": "AWAITING_PLAN"}))
    bus.publish(make_event(EventType.PLAN_CREATED, {"goal": "Get wood", "tasks": ["mine oak_log 3", "craft 36"]}))
    bus.publish(
        make_event(
            EventType.ACTION_EXECUTED,
            {"command": "mine oak_log 3", "kind": "mine", "success": True, "error": None, "progress": "1/2 completed"},
        )
    )
    bus.publish(
        make_event(
            EventType.ACTION_EXECUTED,
            {"command": "craft 36", "kind": "craft", "success": False, "error": "Missing materials", "progress": "1/2 completed"},
        )
    )

    state = dashboard.state()
    assert state["phase"] == "AWAITING_PLAN"
    assert state["goal"] == "Get wood"
    assert state["plans"] == 1
    assert state["progress"] == "1/2 completed"
    assert state["last_error"] == "Missing materials"
    assert [a["command"] for a in state["actions"]] == ["mine oak_log 3", "craft 36"]
    assert state["failures"] == ["craft: Missing materials"]


def test_dashboard_rows_are_bounded():
    bus, dashboard, _ = make_dashboard()

    for i in range(MAX_ROWS + 4):
        bus.publish(make_event(EventType.CHAT_RECEIVED, {"username": "Steve"}, message=f"Steve: {i}"))
        bus.publish(make_event(EventType.LOG, {"subtype": "LLM_TIMEOUT"}, message=f"timeout {i}"))

    state = dashboard.state()
    assert len(state["chat"]) == MAX_ROWS
    assert state["chat"][-1] == f"Steve: {MAX_ROWS + 3}"
    assert len(state["failures"]) == MAX_ROWS
    assert state["failures"][0] == "LLM_TIMEOUT: timeout 4"


def test_layout_renders():
    bus, dashboard, console = make_dashboard()
    bus.publish(make_event(EventType.PLAN_CREATED, {"goal": "Build a shelter", "tasks": []}))

    console.print(dashboard.build_layout())

    output = console.file.getvalue()
    assert "Agent Status" in output
    assert "Build a shelter" in output


def test_stop_unsubscribes():
    bus, dashboard, _ = make_dashboard()
    dashboard.stop()

    bus.publish(make_event(EventType.PLAN_CREATED, {"goal": "ignored", "tasks": []}))

    assert dashboard.state()["plans"] == 0
