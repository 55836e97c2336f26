# src/observation/__init__.py
"""
Observation: what the agent sees each tick, and how it is told to the planner.

- PerceptionAggregator -> PerceptionSnapshot (+ chat and failure ring buffers)
- ContextSerializer    -> planner-facing text sections
"""

from .context import ContextSerializer
from .perception import PerceptionAggregator, is_daytime

__all__ = [
    "ContextSerializer",
    "PerceptionAggregator",
    "is_daytime",
]
