# Path: src/agent/loop.py
"""
The plan-execution control loop.

Every `tick_interval_s` one tick runs, in this order:

  0. a pending chat interrupt (one-slot mailbox, newest wins) is served:
     pursuit stops, the queue is cleared, and a plan is requested with the
     player's message
  1. while following a player, nothing else happens
  2. an empty queue triggers an autonomous plan request
  3. otherwise exactly one task is dequeued and executed; failures go to
     the queue's retry policy and to the perception failure log

Ticks are serialized by one coarse lock; a tick that finds the lock held
(or is re-entered from its own thread) is skipped rather than queued.
Nothing raised inside a tick escapes it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from bot_core.actions import ActionExecutor
from llm_stack.plan_parser import PlanParser
from llm_stack.planner import PlanAcquisition, build_status_message
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event
from observation.perception import PerceptionAggregator
from spec.world import CHAT, WorldClient

from .state import LoopPhase, LoopState
from .task_queue import Plan, Task, TaskQueue

logger = logging.getLogger(__name__)

MODULE = "agent.loop"

GREETING = "Hello! I am an AI-powered bot. I'm here to help and explore!"
SORRY_SLOW = "Sorry, I'm thinking too long. I'll continue with what I was doing."
SORRY_CONFUSED = "Sorry, I couldn't understand the plan. I'll continue exploring."
SORRY_BROKEN = "Sorry, something went wrong."


@dataclass
class ControlLoopConfig:
    tick_interval_s: float = 1.0
    greet_delay_s: float = 2.0
    greeting: str = GREETING


def chat_prompt(username: str, message: str) -> str:
    return (
        f'Player {username} says: "{message}"\n\n'
        "Respond appropriately. If they ask you to do something, make a plan to achieve it."
    )


class ControlLoop:
    def __init__(
        self,
        world: WorldClient,
        executor: ActionExecutor,
        perception: PerceptionAggregator,
        planner: PlanAcquisition,
        *,
        parser: Optional[PlanParser] = None,
        queue: Optional[TaskQueue] = None,
        config: Optional[ControlLoopConfig] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._world = world
        self._executor = executor
        self._perception = perception
        self._planner = planner
        self._parser = parser or PlanParser()
        self._queue = queue or TaskQueue()
        self._cfg = config or ControlLoopConfig()
        self._bus = bus

        self.state = LoopState()

        self._lock = threading.RLock()
        self._in_tick = False

        self._mailbox_lock = threading.Lock()
        self._mailbox: Optional[Tuple[str, str]] = None

        self._stop = threading.Event()
        self._paused = threading.Event()
        self._thread: Optional[threading.Thread] = None

        world.on(CHAT, self.handle_chat)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def queue(self) -> TaskQueue:
        return self._queue

    @property
    def phase(self) -> LoopPhase:
        return self.state.phase

    @property
    def paused(self) -> bool:
        return self._paused.is_set()

    def pending_interrupt(self) -> Optional[Tuple[str, str]]:
        with self._mailbox_lock:
            return self._mailbox

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """
        Run one tick. Returns False if it was skipped because another tick
        (or a plan request) was already in progress.
        """
        if not self._lock.acquire(blocking=False):
            return False
        try:
            if self._in_tick:
                return False
            self._in_tick = True
            try:
                self.state.ticks += 1
                self._tick_once()
            except Exception as exc:
                logger.exception("Control-loop tick failed")
                self._emit(
                    EventType.LOG,
                    f"Tick failed: {exc}",
                    {"subtype": "AGENT_TICK_EXCEPTION", "error": repr(exc)},
                )
                self._set_phase(LoopPhase.IDLE)
            finally:
                self._in_tick = False
            return True
        finally:
            self._lock.release()

    def _tick_once(self) -> None:
        interrupt = self._take_interrupt()
        if interrupt is not None:
            self._serve_interrupt(*interrupt)
            return

        if self._executor.is_following():
            self._set_phase(LoopPhase.FOLLOWING)
            return

        if self._queue.is_empty():
            self._request_plan()
            return

        task = self._queue.dequeue()
        if task is not None:
            self._execute(task)

    def _execute(self, task: Task) -> None:
        self._set_phase(LoopPhase.EXECUTING_TASK)
        self.state.last_task = task.description

        result = self._executor.execute(task.operation)
        self.state.last_result = result
        self.state.tasks_executed += 1

        if result.success:
            self._queue.mark_completed(task)
        else:
            self.state.tasks_failed += 1
            reason = self._executor.last_error or f"{task.description} failed"
            retrying = self._queue.mark_failed(task, reason)
            self._perception.log_failure(task.kind, reason, self._failure_context())
            logger.info(
                "Task %r failed (%s)%s",
                task.description,
                reason,
                "; will retry" if retrying else "; giving up",
            )

        self._emit(
            EventType.ACTION_EXECUTED,
            f"{task.description}: {'ok' if result.success else result.error}",
            {
                "command": task.description,
                "kind": task.kind,
                "success": result.success,
                "error": result.error,
                "retry_count": task.retry_count,
                "progress": self._queue.progress(),
            },
        )
        self._set_phase(LoopPhase.FOLLOWING if self._executor.is_following() else LoopPhase.IDLE)

    def _failure_context(self) -> str:
        pos = self._world.position()
        return f"at ({pos.x:.0f}, {pos.y:.0f}, {pos.z:.0f})"

    # ------------------------------------------------------------------
    # Plan requests
    # ------------------------------------------------------------------

    def request_new_plan(self, message: Optional[str] = None, sender: Optional[str] = None) -> Optional[Plan]:
        """Operator entry point; waits for any running tick to finish first."""
        with self._lock:
            return self._request_plan(message, sender)

    def _request_plan(self, message: Optional[str] = None, sender: Optional[str] = None) -> Optional[Plan]:
        self._set_phase(LoopPhase.AWAITING_PLAN)
        self.state.plans_requested += 1
        try:
            snapshot = self._perception.snapshot(self._queue.goal)

            if message is None:
                message = build_status_message(
                    previous_goal=self._queue.goal,
                    completed=self._queue.completed_tasks(),
                    failed=self._queue.failed_tasks(),
                )
            self._emit(EventType.PLAN_REQUESTED, "Requesting plan", {"sender": sender})

            raw = self._planner.request_plan(snapshot, message)
            if self._planner.last_error and sender:
                self._world.chat(SORRY_SLOW)

            plan = self._parser.parse_plan(raw)
            if plan is None:
                logger.warning("No usable plan in response: %r", raw[:200])
                self._emit(
                    EventType.PLAN_FAILED,
                    "Could not parse plan",
                    {"subtype": "LLM_BAD_OUTPUT", "raw": raw[:500]},
                )
                if sender:
                    self._world.chat(SORRY_CONFUSED)
                return None

            self._queue.load_plan(plan)
            self.state.plans_loaded += 1
            self._emit(
                EventType.PLAN_CREATED,
                f"New plan: {plan.goal}",
                {
                    "goal": plan.goal,
                    "reasoning": plan.reasoning,
                    "tasks": [t.description for t in plan.tasks],
                    "sender": sender,
                },
            )
            if sender and not self._planner.last_error:
                self._world.chat(f"Sure! {plan.goal}")
            return plan
        finally:
            self._set_phase(LoopPhase.IDLE)

    # ------------------------------------------------------------------
    # Chat interrupts
    # ------------------------------------------------------------------

    def handle_chat(self, username: str, message: str) -> None:
        """World-client callback; only posts to the mailbox."""
        if username == self._world.username:
            return
        with self._mailbox_lock:
            replaced = self._mailbox
            self._mailbox = (username, message)
        if replaced is not None:
            logger.info("Chat from %s superseded an unserved message from %s", username, replaced[0])
        logger.info("Chat from %s: %s", username, message)
        self._emit(EventType.CHAT_RECEIVED, f"{username}: {message}", {"username": username, "message": message})

    def _take_interrupt(self) -> Optional[Tuple[str, str]]:
        with self._mailbox_lock:
            interrupt, self._mailbox = self._mailbox, None
        return interrupt

    def _serve_interrupt(self, username: str, message: str) -> None:
        try:
            self._executor.stop_following()
            self._queue.clear()
            self._request_plan(chat_prompt(username, message), sender=username)
        except Exception:
            logger.exception("Handling chat from %s failed", username)
            self._world.chat(SORRY_BROKEN)

    # ------------------------------------------------------------------
    # Operator controls
    # ------------------------------------------------------------------

    def run_command(self, command: str, goal: str = "Operator command") -> bool:
        """Replace the current plan with a single command; False if it does not parse."""
        plan = self._parser.create_single_command_plan(command, goal)
        if plan is None:
            return False
        with self._lock:
            self._executor.stop_following()
            self._queue.load_plan(plan)
        self._emit(EventType.PLAN_CREATED, f"New plan: {goal}", {"goal": goal, "tasks": [command]})
        return True

    def cancel_plan(self) -> None:
        with self._lock:
            self._executor.stop_following()
            self._queue.clear()

    def pause(self) -> None:
        self._paused.set()

    def resume(self) -> None:
        self._paused.clear()

    def debug_state(self) -> Dict[str, Any]:
        last = self.state.last_result
        return {
            "phase": self.state.phase.name,
            "goal": self._queue.goal,
            "progress": self._queue.progress(),
            "pending": self._queue.pending_descriptions(),
            "following": self._executor.following,
            "last_task": self.state.last_task,
            "last_error": last.error if last is not None else None,
            "ticks": self.state.ticks,
            "plans_requested": self.state.plans_requested,
            "recent_failures": [
                {"action": f.action, "reason": f.reason, "context": f.context}
                for f in self._perception.recent_failures()
            ],
        }

    # ------------------------------------------------------------------
    # Thread lifecycle
    # ------------------------------------------------------------------

    def run_forever(self) -> None:
        while not self._stop.is_set():
            if not self._paused.is_set():
                self.tick()
            self._stop.wait(self._cfg.tick_interval_s)

    def start(self, greet: bool = True) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()

        def main() -> None:
            if greet:
                if self._stop.wait(self._cfg.greet_delay_s):
                    return
                self._world.chat(self._cfg.greeting)
                self.request_new_plan()
            self.run_forever()

        self._thread = threading.Thread(target=main, name="control-loop", daemon=True)
        self._thread.start()
        logger.info("Control loop started (tick every %.1fs)", self._cfg.tick_interval_s)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self._world.remove_listener(CHAT, self.handle_chat)
        logger.info("Control loop stopped")

    # ------------------------------------------------------------------
    # Monitoring helpers
    # ------------------------------------------------------------------

    def _set_phase(self, phase: LoopPhase) -> None:
        if phase is self.state.phase:
            return
        previous = self.state.phase
        self.state.phase = phase
        self._emit(EventType.AGENT_PHASE_CHANGE, f"{previous.name} -> {phase.name}", {"phase": phase.name})

    def _emit(self, event_type: EventType, message: str, payload: Dict[str, Any]) -> None:
        if self._bus is None:
            return
        log_event(
            bus=self._bus,
            module=MODULE,
            event_type=event_type,
            message=message,
            payload=payload,
        )
