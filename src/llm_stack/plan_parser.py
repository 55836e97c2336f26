# src/llm_stack/plan_parser.py
"""
Reasoning-service text -> Plan.

Expected JSON object (extra prose around it is tolerated):

    {
      "inventory_analysis": "...",      optional, logged
      "failure_analysis": "...",        optional, logged
      "goal": "...",                    required
      "reasoning": "...",
      "plan": ["craft 36", "mine stone 3", ...]   required
    }

Anything else (no object, invalid JSON, missing goal/plan) falls back to
treating the first line of the response as a single command. Steps that do
not parse are dropped with a log line; a plan with no usable steps is None.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from agent.commands import first_line, try_parse
from agent.task_queue import DEFAULT_MAX_RETRIES, Plan, Task

from .json_utils import extract_json_object, load_json_or_none

logger = logging.getLogger(__name__)

SINGLE_ACTION_GOAL = "Single action"
SINGLE_ACTION_REASONING = "Fallback to single command"
USER_TASK_REASONING = "User-requested task"
NO_REASONING = "No reasoning provided"


class PlanParser:
    def __init__(self, *, max_retries: int = DEFAULT_MAX_RETRIES) -> None:
        self._max_retries = max_retries

    def _task(self, text: str) -> Optional[Task]:
        operation = try_parse(text)
        if operation is None:
            return None
        return Task(operation=operation, description=text.strip(), max_retries=self._max_retries)

    def parse_plan(self, response: str) -> Optional[Plan]:
        blob = extract_json_object(response)
        if blob is None:
            logger.info("No JSON object in response; treating it as a single command")
            return self._fallback(response)

        data, error = load_json_or_none(blob, context="plan_parser")
        if data is None:
            logger.info("Plan JSON did not parse (%s); treating it as a single command", error)
            return self._fallback(response)

        goal = data.get("goal")
        steps = data.get("plan")
        if not goal or not isinstance(steps, list):
            logger.info("Plan JSON is missing goal/plan; treating it as a single command")
            return self._fallback(response)

        tasks: List[Task] = []
        for step in steps:
            task = self._task(str(step)) if isinstance(step, (str, int, float)) else None
            if task is None:
                logger.warning("Dropping unparseable plan step: %r", step)
                continue
            tasks.append(task)

        if not tasks:
            logger.warning("Plan for %r has no usable steps", goal)
            return None

        inventory_analysis = _opt_str(data.get("inventory_analysis"))
        failure_analysis = _opt_str(data.get("failure_analysis"))
        if inventory_analysis:
            logger.info("Inventory analysis: %s", inventory_analysis)
        else:
            logger.info("No inventory_analysis provided")
        if failure_analysis:
            logger.info("Failure analysis: %s", failure_analysis)

        logger.info("Parsed plan with %d tasks", len(tasks))
        return Plan(
            goal=str(goal),
            reasoning=_opt_str(data.get("reasoning")) or NO_REASONING,
            tasks=tasks,
            inventory_analysis=inventory_analysis,
            failure_analysis=failure_analysis,
        )

    def _fallback(self, response: str) -> Optional[Plan]:
        line = first_line(response)
        task = self._task(line)
        if task is None:
            logger.info("Response is not a command either: %r", line)
            return None
        return Plan(goal=SINGLE_ACTION_GOAL, reasoning=SINGLE_ACTION_REASONING, tasks=[task])

    def create_single_command_plan(self, command: str, goal: str = "Single task") -> Optional[Plan]:
        """Operator entry point: wrap one command string in a Plan."""
        task = self._task(command)
        if task is None:
            return None
        return Plan(goal=goal, reasoning=USER_TASK_REASONING, tasks=[task])


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text or None
