# tests/test_planner.py
"""
Tests for llm_stack.planner.PlanAcquisition and build_status_message.

Covers:
- prompt layout: situation block, player message, output contract
- timeout and backend errors degrade to "wait 5000" and are published
- conversation history is sent and bounded
- status message summarises the previous goal
- successful calls are persisted with log_llm_call
"""

from __future__ import annotations

import json
from typing import List

from bot_core.testing import FakeWorldClient
from llm_stack.planner import (
    FALLBACK_RESPONSE,
    OUTPUT_CONTRACT,
    PlanAcquisition,
    build_status_message,
)
from llm_stack.testing import FakeBackend
from monitoring.bus import EventBus
from monitoring.events import EventType, MonitoringEvent
from observation.context import ContextSerializer
from observation.perception import PerceptionAggregator
from semantics.loader import load_catalog

PLAN = '{"goal": "Get wood", "reasoning": "need logs", "plan": ["mine oak_log 3"]}'


def make_planner(backend: FakeBackend, **kwargs) -> PlanAcquisition:
    kwargs.setdefault("log_calls", False)
    return PlanAcquisition(backend, ContextSerializer(load_catalog()), **kwargs)


def make_snapshot(goal=None):
    world = FakeWorldClient(inventory={"oak_log": 2})
    return PerceptionAggregator(world).snapshot(goal)


def collect(bus: EventBus) -> List[MonitoringEvent]:
    events: List[MonitoringEvent] = []
    bus.subscribe(events.append)
    return events


def test_prompt_layout() -> None:
    backend = FakeBackend([PLAN])
    planner = make_planner(backend)

    raw = planner.request_plan(make_snapshot("Get wood"), "bring me logs")

    assert raw == PLAN
    prompt = backend.last_prompt
    assert prompt.startswith("Current Situation:\nSTATUS:")
    assert "Current goal: Get wood" in prompt
    assert 'New player message: "bring me logs"' in prompt
    assert prompt.endswith(OUTPUT_CONTRACT)
    assert backend.calls[0].system_prompt is not None


def test_timeout_falls_back_to_wait() -> None:
    bus = EventBus()
    events = collect(bus)
    planner = make_planner(FakeBackend([PLAN], delay_s=0.5), timeout_s=0.05, bus=bus)

    raw = planner.request_plan(make_snapshot())

    assert raw == FALLBACK_RESPONSE
    assert planner.last_error == "LLM API timeout after 0.05 seconds"
    logs = [e for e in events if e.event_type == EventType.LOG]
    assert logs[-1].payload["subtype"] == "LLM_TIMEOUT"
    assert planner.history == ()


def test_backend_error_falls_back_to_wait() -> None:
    bus = EventBus()
    events = collect(bus)
    planner = make_planner(FakeBackend([RuntimeError("connection refused")]), bus=bus)

    assert planner.request_plan(make_snapshot()) == FALLBACK_RESPONSE
    assert planner.last_error == "LLM API error: connection refused"
    assert events[-1].payload["subtype"] == "LLM_ERROR"


def test_empty_response_is_a_failure() -> None:
    planner = make_planner(FakeBackend(["   "]))
    assert planner.request_plan(make_snapshot()) == FALLBACK_RESPONSE
    assert planner.last_error is not None


def test_last_error_clears_on_success() -> None:
    planner = make_planner(FakeBackend([RuntimeError("down"), PLAN]))
    planner.request_plan(make_snapshot())
    assert planner.last_error is not None
    planner.request_plan(make_snapshot())
    assert planner.last_error is None


def test_history_is_sent_and_bounded() -> None:
    backend = FakeBackend(["wait 1", "wait 2", "wait 3"])
    planner = make_planner(backend, history_limit=1)

    planner.request_plan(make_snapshot(), "first")
    planner.request_plan(make_snapshot(), "second")
    planner.request_plan(make_snapshot(), "third")

    assert backend.calls[0].history == []
    assert [role for role, _ in backend.calls[1].history] == ["user", "assistant"]
    assert backend.calls[2].history[1] == ("assistant", "wait 2")
    assert len(planner.history) == 2

    planner.clear_history()
    assert planner.history == ()


def test_successful_call_is_logged_to_disk(tmp_path) -> None:
    planner = make_planner(FakeBackend([PLAN]), log_calls=True, log_dir=tmp_path)

    planner.request_plan(make_snapshot(), "hello")

    files = list(tmp_path.glob("*_planner_request_plan.json"))
    assert len(files) == 1
    payload = json.loads(files[0].read_text(encoding="utf-8"))
    assert payload["raw_response"] == PLAN
    assert payload["extra"]["message"] == "hello"


def test_status_message_without_history() -> None:
    msg = build_status_message(previous_goal=None, completed=[], failed=[])
    assert msg == (
        "Check your INVENTORY carefully!\n"
        "Don't repeat tasks if you already have the materials.\n"
        "What should I do next?"
    )


def test_status_message_mentions_progress() -> None:
    msg = build_status_message(
        previous_goal="Get wood",
        completed=["a", "b", "c", "d"],
        failed=["mine oak_log 3: No oak_log found nearby"],
    )
    assert 'Previous goal: "Get wood"' in msg
    assert "Completed: b, c, d" in msg
    assert "Failed: mine oak_log 3: No oak_log found nearby" in msg
    assert "Some tasks failed - check if resources are unavailable or too far." in msg
    assert msg.endswith("What should I do next?")
