# path: tests/test_runtime_integration.py

"""
Integration tests for runtime.agent_runtime_main.

Covers:
- build_runtime wiring: loop + executor + planner + monitoring on one bus
- a few offline ticks end-to-end, with the JSONL event log and the
  per-call reasoning log on disk
- operator commands reaching the real ControlLoop through the bus
- shutdown detaching chat listeners and stopping the worker pool
- world-factory import errors and main() exit codes, including a
  malformed number in env.yaml

This does NOT require:
- a Minecraft server
- a local model file
"""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

import bot_core.races as races
from env.loader import DEFAULT_CONFIG_ROOT, load_environment
from env.schema import MonitoringConfig
from llm_stack.testing import FakeBackend
from monitoring.events import ControlCommand, EventType
from runtime.agent_runtime_main import (
    OFFLINE_IDLE,
    OFFLINE_PLAN,
    build_runtime,
    import_world_factory,
    main,
    offline_world,
)
from spec.errors import FatalConfigurationError
from spec.world import CHAT


def make_env(tmp_path: Path):
    env = load_environment(root=DEFAULT_CONFIG_ROOT, require_model=False)
    return dataclasses.replace(
        env,
        executor={"poll_interval_s": 0.01, "collect_wait_s": 0.0},
        monitoring=MonitoringConfig(
            event_log=tmp_path / "events.jsonl",
            llm_log_dir=tmp_path / "llm",
        ),
    )


def read_events(path: Path) -> List[Dict[str, Any]]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_offline_ticks_run_end_to_end(tmp_path: Path) -> None:
    env = make_env(tmp_path)
    world = offline_world(env.connection)
    runtime = build_runtime(env, world, FakeBackend([OFFLINE_PLAN, OFFLINE_IDLE]))

    runtime.loop.tick()
    runtime.loop.tick()
    state = runtime.loop.debug_state()
    runtime.shutdown()

    assert state["goal"] == "Make a crafting table"
    assert state["pending"] == ["craft 36 2", "craft 315", "place crafting_table -999 64 0"]
    assert world.items["oak_log"] == 2

    events = read_events(env.monitoring.event_log)
    types = [e["event_type"] for e in events]
    assert "PLAN_CREATED" in types
    executed = [e for e in events if e["event_type"] == "ACTION_EXECUTED"]
    assert executed[0]["payload"]["command"] == "mine oak_log 2"
    assert executed[0]["payload"]["success"] is True

    assert len(list((tmp_path / "llm").glob("*.json"))) == 1


def test_operator_commands_reach_the_loop(tmp_path: Path) -> None:
    env = make_env(tmp_path)
    world = offline_world(env.connection)
    runtime = build_runtime(env, world, FakeBackend([OFFLINE_PLAN]))
    snapshots: List[Dict[str, Any]] = []
    runtime.bus.subscribe(
        lambda e: snapshots.append(e.payload["state"]) if e.event_type == EventType.SNAPSHOT else None
    )

    runtime.bus.publish_command(ControlCommand.run_command("chat hello operator", "Greet"))
    runtime.bus.publish_command(ControlCommand.single_step())
    runtime.bus.publish_command(ControlCommand.dump_state())
    runtime.shutdown()

    assert world.chats == ["hello operator"]
    assert runtime.loop.paused is True
    assert snapshots[-1]["goal"] == "Greet"
    assert snapshots[-1]["progress"] == "1/1 completed, 0 failed, 0 remaining"


def test_shutdown_releases_listeners_and_pool(tmp_path: Path) -> None:
    env = make_env(tmp_path)
    world = offline_world(env.connection)
    runtime = build_runtime(env, world, FakeBackend([OFFLINE_PLAN]))
    runtime.loop.tick()
    runtime.loop.tick()
    assert world.listener_count(CHAT) == 2
    assert races._pool is not None

    runtime.shutdown()

    assert world.listener_count(CHAT) == 0
    assert races._pool is None


def test_import_world_factory() -> None:
    assert import_world_factory("json:loads") is json.loads

    with pytest.raises(FatalConfigurationError, match="module:callable"):
        import_world_factory("no_colon_here")
    with pytest.raises(FatalConfigurationError, match="Cannot import"):
        import_world_factory("surely_not_a_module_xyz:connect")
    with pytest.raises(FatalConfigurationError, match="not a callable"):
        import_world_factory("json:__doc__")


def test_main_exit_codes(tmp_path: Path) -> None:
    assert main(["--config-dir", str(tmp_path)]) == 2
    assert main(["--config-dir", str(DEFAULT_CONFIG_ROOT), "--offline", "--check-config"]) == 0


def test_malformed_number_exits_with_config_error(tmp_path: Path) -> None:
    shipped = (DEFAULT_CONFIG_ROOT / "env.yaml").read_text(encoding="utf-8")
    (tmp_path / "env.yaml").write_text(shipped.replace("port: 25565", "port: abc"), encoding="utf-8")
    (tmp_path / "catalog.yaml").write_text(
        (DEFAULT_CONFIG_ROOT / "catalog.yaml").read_text(encoding="utf-8"), encoding="utf-8"
    )

    assert main(["--config-dir", str(tmp_path), "--offline", "--check-config"]) == 2
