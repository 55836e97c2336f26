# src/agent/task_queue.py
"""
Task queue for the plan-execution loop.

Holds the Tasks of the most recently loaded Plan in FIFO order, with one
exception: a task that failed but still has retries left goes back to the
*front*, so transient failures are retried before later steps run.

Progress bookkeeping (completed / failed histories) is reset only by
load_plan(). clear() drops the pending tasks and the goal but keeps the
histories, so the next plan request can still mention what just happened.

The queue is owned by the control loop and is only touched from inside one
serialized tick, so it carries no lock of its own.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterable, List, Optional

from spec.types import Operation

log = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 2


@dataclass(eq=False)
class Task:
    """One Operation plus retry bookkeeping."""

    operation: Operation
    description: str
    retry_count: int = 0
    max_retries: int = DEFAULT_MAX_RETRIES

    @property
    def kind(self) -> str:
        return self.operation.kind


@dataclass
class Plan:
    goal: str
    reasoning: str
    tasks: List[Task] = field(default_factory=list)
    inventory_analysis: Optional[str] = None
    failure_analysis: Optional[str] = None


class TaskQueue:
    def __init__(self) -> None:
        self._queue: Deque[Task] = deque()
        self._goal: Optional[str] = None
        self._reasoning: Optional[str] = None
        self._completed: List[str] = []
        self._failed: List[str] = []
        self._in_flight: Optional[Task] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_plan(self, plan: Plan) -> None:
        """Replace everything: pending tasks, goal, reasoning and histories."""
        self._queue = deque(plan.tasks)
        self._goal = plan.goal
        self._reasoning = plan.reasoning
        self._completed = []
        self._failed = []
        self._in_flight = None
        log.info("New plan: %s (%d tasks)", plan.goal, len(plan.tasks))

    def add_tasks(self, tasks: Iterable[Task]) -> None:
        """Append tasks behind the current plan without resetting anything."""
        self._queue.extend(tasks)

    # ------------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------------

    def peek(self) -> Optional[Task]:
        return self._queue[0] if self._queue else None

    def dequeue(self) -> Optional[Task]:
        if not self._queue:
            return None
        task = self._queue.popleft()
        self._in_flight = task
        return task

    def mark_completed(self, task: Task) -> None:
        self._settle(task)
        self._completed.append(task.description)

    def mark_failed(self, task: Task, reason: str) -> bool:
        """
        Record a failed attempt.

        Returns True when the task was put back at the front for another
        attempt, False when it exhausted its retries and was moved to the
        failed history as "description: reason".
        """
        self._settle(task)
        task.retry_count += 1
        if task.retry_count < task.max_retries:
            self._queue.appendleft(task)
            log.info(
                "Retrying %r (%d/%d): %s",
                task.description, task.retry_count, task.max_retries, reason,
            )
            return True

        self._failed.append(f"{task.description}: {reason}")
        log.warning("Giving up on %r: %s", task.description, reason)
        return False

    def _settle(self, task: Task) -> None:
        if self._in_flight is task:
            self._in_flight = None

    def clear(self) -> None:
        """Drop pending tasks, goal and reasoning; histories survive."""
        self._queue.clear()
        self._goal = None
        self._reasoning = None
        self._in_flight = None

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def is_empty(self) -> bool:
        return not self._queue

    def size(self) -> int:
        return len(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def goal(self) -> Optional[str]:
        return self._goal

    @property
    def reasoning(self) -> Optional[str]:
        return self._reasoning

    @property
    def in_flight(self) -> Optional[Task]:
        """Task handed out by dequeue() and not yet marked."""
        return self._in_flight

    def completed_tasks(self) -> List[str]:
        return list(self._completed)

    def failed_tasks(self) -> List[str]:
        return list(self._failed)

    def pending_descriptions(self) -> List[str]:
        return [t.description for t in self._queue]

    def progress(self) -> str:
        in_flight = 1 if self._in_flight is not None else 0
        remaining = len(self._queue) + in_flight
        total = len(self._completed) + len(self._failed) + remaining
        return (
            f"{len(self._completed)}/{total} completed, "
            f"{len(self._failed)} failed, {remaining} remaining"
        )

    def status(self) -> str:
        if self.is_empty():
            return "Queue empty - need new plan"
        nxt = self.peek()
        return (
            f"Goal: {self._goal}\n"
            f"Progress: {self.progress()}\n"
            f"Next: {nxt.description if nxt else None}"
        )
