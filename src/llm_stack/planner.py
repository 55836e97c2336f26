# PlanAcquisition: snapshot + message -> reasoning-service text
# src/llm_stack/planner.py
"""
Plan acquisition.

One request = context block (observation.context) + the caller's message +
the JSON output contract, sent to the reasoning service with the last few
exchanges as conversation history. The call is raced against
`timeout_s`; on timeout or error the request degrades to the text
"wait 5000" so the control loop always has something to parse.

The autonomous status message (what the loop says when nobody asked for
anything) is built by build_status_message(). Escalation on a repeatedly
failing operation kind lives in the context block (observation.context).
"""

from __future__ import annotations

import logging
import time
from collections import deque
from pathlib import Path
from typing import Deque, Optional, Sequence, Tuple

from bot_core.races import race
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event
from observation.context import ContextSerializer
from spec.errors import ServiceFailure, WorldTimeout
from spec.llm import ReasoningService
from spec.types import PerceptionSnapshot

from .log_files import log_llm_call
from .presets import RolePreset, planner_preset

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = "wait 5000"

OUTPUT_CONTRACT = """\
CRITICAL: Respond ONLY with valid JSON in THIS EXACT FORMAT (no other fields allowed):
{
  "inventory_analysis": "string describing what you have",
  "goal": "string describing your final goal",
  "reasoning": "string explaining your approach",
  "plan": ["command1", "command2", "command3"]
}

If there were recent failures, add:
  "failure_analysis": "string explaining why failures occurred"

DO NOT use fields like "task", "next_steps", "action", or any other structure.
Commands in "plan" array must be exact strings like: "craft 36", "move 120 64 210", "mine stone 20\""""


class PlanAcquisition:
    """
    Reasoning-service facade for the control loop.

    request_plan() never raises: failures are logged, published on the
    monitoring bus, and replaced by FALLBACK_RESPONSE.
    """

    def __init__(
        self,
        backend: ReasoningService,
        context: ContextSerializer,
        *,
        preset: Optional[RolePreset] = None,
        timeout_s: float = 30.0,
        history_limit: int = 10,
        bus: Optional[EventBus] = None,
        log_dir: Optional[Path] = None,
        log_calls: bool = True,
    ) -> None:
        self._backend = backend
        self._context = context
        self._preset = preset or planner_preset()
        self._timeout_s = timeout_s
        self._history: Deque[Tuple[str, str]] = deque(maxlen=history_limit * 2)
        self._bus = bus
        self._log_dir = log_dir
        self._log_calls = log_calls
        self._last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_prompt(self, snapshot: PerceptionSnapshot, message: Optional[str] = None) -> str:
        prompt = "Current Situation:\n" + self._context.build(snapshot)
        if message:
            prompt += f'\n\nNew player message: "{message}"'
        return prompt + "\n\n" + OUTPUT_CONTRACT

    def request_plan(self, snapshot: PerceptionSnapshot, message: Optional[str] = None) -> str:
        self._last_error = None
        prompt = self.build_prompt(snapshot, message)
        logger.debug("Planner prompt:\n%s", prompt)

        started = time.perf_counter()
        try:
            raw = self._call(prompt)
        except ServiceFailure as exc:
            logger.error("Reasoning service failed: %s", exc)
            self._last_error = str(exc)
            self._publish_failure(exc, prompt)
            return FALLBACK_RESPONSE

        elapsed = time.perf_counter() - started
        logger.info("Planner responded in %.1fs", elapsed)
        logger.debug("Planner output:\n%s", raw)

        self._history.append(("user", prompt))
        self._history.append(("assistant", raw))

        if self._log_calls:
            log_llm_call(
                role="planner",
                operation="request_plan",
                prompt=prompt,
                raw_response=raw,
                extra={"elapsed_s": round(elapsed, 3), "message": message},
                log_dir=self._log_dir,
            )
        return raw

    @property
    def last_error(self) -> Optional[str]:
        """Why the most recent request fell back to FALLBACK_RESPONSE, if it did."""
        return self._last_error

    def clear_history(self) -> None:
        self._history.clear()

    @property
    def history(self) -> Sequence[Tuple[str, str]]:
        return tuple(self._history)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _call(self, prompt: str) -> str:
        preset = self._preset
        history = list(self._history)

        def generate() -> str:
            return self._backend.generate(
                prompt,
                max_tokens=preset.max_tokens,
                temperature=preset.temperature,
                stop=preset.stop,
                system_prompt=preset.system_prompt,
                history=history,
            )

        try:
            raw = race(generate, self._timeout_s, what="Reasoning service")
        except WorldTimeout as exc:
            raise ServiceFailure(f"LLM API timeout after {self._timeout_s:g} seconds") from exc
        except Exception as exc:
            raise ServiceFailure(f"LLM API error: {exc}") from exc

        if not raw or not raw.strip():
            raise ServiceFailure("LLM API returned an empty response")
        return raw.strip()

    def _publish_failure(self, exc: ServiceFailure, prompt: str) -> None:
        timeout = isinstance(exc.__cause__, WorldTimeout)
        if self._log_calls:
            log_llm_call(
                role="planner",
                operation="request_plan_failed",
                prompt=prompt,
                raw_response="",
                extra={"error": str(exc)},
                log_dir=self._log_dir,
            )
        if self._bus is not None:
            log_event(
                bus=self._bus,
                module="llm_stack.planner",
                event_type=EventType.LOG,
                message=str(exc),
                payload={
                    "subtype": "LLM_TIMEOUT" if timeout else "LLM_ERROR",
                    "fallback": FALLBACK_RESPONSE,
                },
            )

# ---------------------------------------------------------------------------
# Autonomous status message
# ---------------------------------------------------------------------------


def build_status_message(
    *,
    previous_goal: Optional[str],
    completed: Sequence[str],
    failed: Sequence[str],
) -> str:
    """
    The message sent with an autonomous (nobody asked) plan request.

    Repeated-failure escalation is not repeated here: it is part of the
    RECENT FAILURES section every request carries.
    """
    lines = []
    if previous_goal:
        lines.append(f'Previous goal: "{previous_goal}"')
        if completed:
            lines.append("Completed: " + ", ".join(completed[-3:]))
        if failed:
            lines.append("Failed: " + ", ".join(failed))
            lines.append("")
            lines.append("Some tasks failed - check if resources are unavailable or too far.")
        lines.append("")

    lines.append("Check your INVENTORY carefully!")
    lines.append("Don't repeat tasks if you already have the materials.")
    lines.append("What should I do next?")
    return "\n".join(lines)
