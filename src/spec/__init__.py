# src/spec/__init__.py

from __future__ import annotations

"""
Public spec surface for core agent types.

This module re-exports *interfaces and data types* used across the codebase:
  - Operation variants and perception value objects
  - Error taxonomy
  - World client and reasoning service protocols

Deliberately does NOT export a concrete control loop to avoid circular
imports and keep runtime wiring in src/agent/ and src/runtime/.
"""

from .errors import (
    ActionError,
    FatalConfigurationError,
    ParseError,
    PreconditionFailure,
    ServiceFailure,
    WorldTimeout,
)
from .llm import PlanResponseJSON, ReasoningService
from .types import (
    ActionResult,
    Operation,
    PerceptionSnapshot,
    Position,
)
from .world import GoalFollow, GoalNear, WorldClient

__all__ = [
    # errors
    "ActionError",
    "FatalConfigurationError",
    "ParseError",
    "PreconditionFailure",
    "ServiceFailure",
    "WorldTimeout",
    # reasoning service
    "PlanResponseJSON",
    "ReasoningService",
    # world / perception
    "ActionResult",
    "Operation",
    "PerceptionSnapshot",
    "Position",
    "GoalFollow",
    "GoalNear",
    "WorldClient",
]
