# bot_core package
# src/bot_core/__init__.py
"""
bot_core package: turning Operations into world calls.

Exports:
    - ActionExecutor / ActionExecutorConfig: per-operation execution
    - ToolResolver: pickaxe prerequisite handling for mining
    - StuckRecovery: dig-out escape used by Move
    - ActionTracer: ring buffer of executed actions
"""

from __future__ import annotations

from .actions import ActionExecutor, ActionExecutorConfig
from .recovery import StuckRecovery
from .tools import ToolResolver
from .tracing import ActionTraceRecord, ActionTracer

__all__ = [
    "ActionExecutor",
    "ActionExecutorConfig",
    "StuckRecovery",
    "ToolResolver",
    "ActionTraceRecord",
    "ActionTracer",
]
