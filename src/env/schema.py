# EnvProfile, ConnectionConfig, MonitoringConfig dataclasses
# src/env/schema.py

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from llm_stack.config import ModelConfig


@dataclass
class ConnectionConfig:
    """Where the world client connects and as whom."""
    host: str = "localhost"
    port: int = 25565
    username: str = "Agent"
    version: Optional[str] = None    # None lets the client negotiate


@dataclass
class MonitoringConfig:
    """Event log + dashboard + reasoning-call log locations."""
    event_log: Optional[Path] = None
    llm_log_dir: Optional[Path] = None
    dashboard: bool = False
    log_level: str = "INFO"


@dataclass
class EnvProfile:
    """Top-level resolved environment profile."""
    name: str
    connection: ConnectionConfig
    model: ModelConfig
    catalog_path: Path
    perception_radius: int = 32
    # Raw override mappings for ActionExecutorConfig / ControlLoopConfig.
    executor: Dict[str, Any] = field(default_factory=dict)
    loop: Dict[str, Any] = field(default_factory=dict)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
