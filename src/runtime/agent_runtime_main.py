# path: src/runtime/agent_runtime_main.py

"""
Runtime wiring for the agent.

Builds, in order:
- the environment profile (env.loader) and logging
- the monitoring stack: EventBus + JsonFileLogger (+ optional TUI dashboard)
- the item catalog, action executor, perception aggregator and context serializer
- the reasoning service and plan acquisition
- the ControlLoop, plus an AgentController so operators can steer it over the bus

The world client is not part of this project. A live run imports one from
`--world-factory module:callable`; the callable receives the profile's
ConnectionConfig and returns a WorldClient. `--offline` runs against the
in-memory FakeWorldClient and a canned reasoning service instead.

Usage:
    python -m runtime.agent_runtime_main --world-factory mybridge:connect
    python -m runtime.agent_runtime_main --offline --ticks 20
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from agent.logging_config import configure_logging
from agent.loop import ControlLoop
from bot_core.actions import ActionExecutor
from bot_core.races import shutdown_pool
from bot_core.testing import FakeWorldClient
from env.loader import executor_config, load_environment, loop_config
from env.schema import ConnectionConfig, EnvProfile
from llm_stack.planner import PlanAcquisition
from llm_stack.presets import planner_preset
from llm_stack.testing import FakeBackend
from monitoring.bus import EventBus
from monitoring.controller import AgentController
from monitoring.dashboard_tui import TuiDashboard
from monitoring.logger import JsonFileLogger
from observation.context import ContextSerializer
from observation.perception import PerceptionAggregator
from semantics.loader import load_catalog
from spec.errors import FatalConfigurationError
from spec.llm import ReasoningService
from spec.types import Position
from spec.world import WorldClient

log = logging.getLogger(__name__)

WorldFactory = Callable[[ConnectionConfig], WorldClient]

# Canned plan for offline runs: enough to walk through the craft chain.
OFFLINE_PLAN = (
    '{"inventory_analysis": "Nothing yet", "goal": "Make a crafting table", '
    '"reasoning": "Logs -> planks -> table", '
    '"plan": ["mine oak_log 2", "craft 36 2", "craft 315", "place crafting_table -999 64 0"]}'
)
OFFLINE_IDLE = '{"goal": "Rest", "reasoning": "Nothing left to do", "plan": ["wait 2000"]}'


@dataclass
class AgentRuntime:
    """Everything main() builds, kept together so shutdown is one call."""
    env: EnvProfile
    bus: EventBus
    event_logger: Optional[JsonFileLogger]
    world: WorldClient
    loop: ControlLoop
    perception: PerceptionAggregator
    controller: AgentController
    dashboard: Optional[TuiDashboard] = None

    def shutdown(self) -> None:
        self.loop.stop(timeout=5.0)
        self.controller.detach()
        self.perception.detach()
        if self.dashboard is not None:
            self.dashboard.stop()
        if self.event_logger is not None:
            self.event_logger.close()
        # Queued world calls are dropped; one already running finishes on its own.
        shutdown_pool(wait=False)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def import_world_factory(spec: str) -> WorldFactory:
    """Resolve 'package.module:callable' to a world-client factory."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise FatalConfigurationError(f"World factory must look like 'module:callable', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise FatalConfigurationError(f"Cannot import world factory module {module_name!r}: {exc}") from exc
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise FatalConfigurationError(f"{spec!r} is not a callable")
    return factory


def offline_world(connection: ConnectionConfig) -> FakeWorldClient:
    """A small in-memory clearing: a dirt floor, a few oak logs and some stone."""
    blocks = {(x, 63, z): "dirt" for x in range(-6, 7) for z in range(-6, 7)}
    for y in range(64, 67):
        blocks[(4, y, 2)] = "oak_log"
        blocks[(-3, y, 5)] = "oak_log"
    for x in range(-2, 3):
        blocks[(x, 63, -4)] = "stone"
    return FakeWorldClient(
        username=connection.username,
        position=Position(0.5, 64.0, 0.5),
        blocks=blocks,
        drops={"stone": "cobblestone"},
    )


def build_backend(env: EnvProfile, offline: bool) -> ReasoningService:
    if offline:
        return FakeBackend([OFFLINE_PLAN, OFFLINE_IDLE])
    # Deferred so offline runs do not need llama-cpp-python's native build.
    from llm_stack.backend import LlamaCppBackend

    return LlamaCppBackend(env.model)


def build_runtime(
    env: EnvProfile,
    world: WorldClient,
    backend: ReasoningService,
    *,
    bus: Optional[EventBus] = None,
) -> AgentRuntime:
    """Wire the control loop and its collaborators around an existing world client."""
    bus = bus or EventBus()

    event_logger = None
    if env.monitoring.event_log is not None:
        event_logger = JsonFileLogger(path=env.monitoring.event_log, bus=bus)

    catalog = load_catalog(env.catalog_path)
    executor = ActionExecutor(world, catalog, executor_config(env))
    perception = PerceptionAggregator(world, radius=env.perception_radius)
    context = ContextSerializer(catalog)

    preset = planner_preset(
        temperature=env.model.temperature,
        max_tokens=env.model.max_tokens,
        system_prompt=env.model.system_prompt,
        stop=env.model.stop,
    )
    planner = PlanAcquisition(
        backend,
        context,
        preset=preset,
        timeout_s=env.model.timeout_s,
        history_limit=env.model.history_limit,
        bus=bus,
        log_dir=env.monitoring.llm_log_dir,
    )

    loop = ControlLoop(world, executor, perception, planner, config=loop_config(env), bus=bus)
    controller = AgentController(loop, bus)
    return AgentRuntime(
        env=env,
        bus=bus,
        event_logger=event_logger,
        world=world,
        loop=loop,
        perception=perception,
        controller=controller,
    )


def start_tui_in_background(runtime: AgentRuntime) -> threading.Thread:
    """Run the TuiDashboard on a daemon thread so it never blocks shutdown."""
    dashboard = TuiDashboard(runtime.bus)
    runtime.dashboard = dashboard
    t = threading.Thread(
        target=dashboard.run,
        kwargs={"refresh_per_second": 4.0},
        name="TuiDashboardThread",
        daemon=True,
    )
    t.start()
    return t


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mineplan-agent", description="Run the plan-execution agent.")
    parser.add_argument("--profile", help="env.yaml profile to use (default: the file's 'profile' key)")
    parser.add_argument("--config-dir", type=Path, help="config directory (default: $MINEPLAN_CONFIG_DIR or config/)")
    parser.add_argument("--world-factory", help="'module:callable' returning a connected WorldClient")
    parser.add_argument("--offline", action="store_true", help="use the in-memory world and canned plans")
    parser.add_argument("--ticks", type=int, default=0, help="run this many ticks in the foreground, then exit")
    parser.add_argument("--dashboard", action="store_true", help="show the terminal dashboard")
    parser.add_argument("--no-greet", action="store_true", help="skip the startup greeting and first plan")
    parser.add_argument("--check-config", action="store_true", help="validate configuration and exit")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        env = load_environment(args.profile, root=args.config_dir, require_model=not args.offline)
    except FatalConfigurationError as exc:
        configure_logging()
        log.error("Configuration error: %s", exc)
        return 2

    configure_logging(getattr(logging, env.monitoring.log_level, logging.INFO))
    if args.check_config:
        log.info("Environment validation OK: profile %r", env.name)
        return 0

    try:
        if args.offline:
            world: WorldClient = offline_world(env.connection)
        elif args.world_factory:
            world = import_world_factory(args.world_factory)(env.connection)
        else:
            raise FatalConfigurationError("No world client: pass --world-factory module:callable or --offline")
        backend = build_backend(env, args.offline)
    except FatalConfigurationError as exc:
        log.error("Startup failed: %s", exc)
        return 2

    runtime = build_runtime(env, world, backend)
    if args.dashboard or env.monitoring.dashboard:
        start_tui_in_background(runtime)

    try:
        if args.ticks > 0:
            # Foreground mode: deterministic number of ticks, no loop thread.
            for _ in range(args.ticks):
                runtime.loop.tick()
            log.info("Final state: %s", runtime.loop.debug_state())
        else:
            runtime.loop.start(greet=not args.no_greet)
            threading.Event().wait()
    except KeyboardInterrupt:
        log.info("Shutting down agent runtime...")
    finally:
        runtime.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
