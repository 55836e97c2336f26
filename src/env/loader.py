# src/env/loader.py

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

import yaml

from bot_core.actions import ActionExecutorConfig
from agent.loop import ControlLoopConfig
from llm_stack.config import ModelConfig
from spec.errors import FatalConfigurationError

from .schema import ConnectionConfig, EnvProfile, MonitoringConfig

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_ROOT = PROJECT_ROOT / "config"

# GitHub Actions sets CI=true; there the model file is not on disk.
IS_CI = os.getenv("CI") == "true"


def config_root() -> Path:
    """config/ directory, or $MINEPLAN_CONFIG_DIR when set."""
    override = os.getenv("MINEPLAN_CONFIG_DIR")
    return Path(override) if override else DEFAULT_CONFIG_ROOT


def _load_yaml(name: str, root: Optional[Path] = None) -> Dict[str, Any]:
    """Load a YAML config file from the config directory."""
    path = (root or config_root()) / name
    if not path.exists():
        raise FatalConfigurationError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise FatalConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise FatalConfigurationError(f"Expected mapping at top of {path}, got {type(data).__name__}")
    return data


def _select_profile(env_cfg: Dict[str, Any], override: Optional[str] = None) -> Tuple[str, Dict[str, Any]]:
    """Return (active_profile_name, active_profile_mapping)."""
    profile_name = override or env_cfg.get("profile")
    if not profile_name:
        raise FatalConfigurationError("env.yaml must define a 'profile' key.")
    profiles = env_cfg.get("profiles")
    if not isinstance(profiles, dict):
        raise FatalConfigurationError("env.yaml must define a 'profiles' mapping.")
    if profile_name not in profiles:
        raise FatalConfigurationError(f"Profile '{profile_name}' not found in env.yaml profiles.")
    return profile_name, profiles[profile_name] or {}


def _number(section: str, key: str, value: Any, kind: Type[Any]) -> Any:
    """int() / float() a config value; bad input is a configuration error."""
    try:
        if isinstance(value, bool):
            raise TypeError(key)
        return kind(value)
    except (TypeError, ValueError):
        noun = "an integer" if kind is int else "a number"
        raise FatalConfigurationError(f"{section}.{key} must be {noun}, got {value!r}") from None


def _check_keys(section: str, raw: Dict[str, Any], target: Type[Any]) -> Dict[str, Any]:
    """Reject tuning keys the target dataclass does not have; convert numeric ones."""
    fields = {f.name: f for f in dataclasses.fields(target)}
    unknown = sorted(set(raw) - set(fields))
    if unknown:
        raise FatalConfigurationError(f"Unknown {section} settings: {', '.join(unknown)}")
    checked = dict(raw)
    for key, value in raw.items():
        kind = type(fields[key].default)
        if kind in (int, float):
            checked[key] = _number(section, key, value, kind)
    return checked


def _read_prompt(root: Path, name: str) -> str:
    """Specialization prompt text; relative names live under the config directory."""
    path = Path(os.path.expandvars(os.path.expanduser(name)))
    if not path.is_absolute():
        path = root / path
    if not path.is_file():
        raise FatalConfigurationError(f"Missing system prompt file: {path}")
    return path.read_text(encoding="utf-8").strip()


def _resolve(value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    path = Path(os.path.expandvars(os.path.expanduser(value)))
    return path if path.is_absolute() else PROJECT_ROOT / path


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_environment(
    profile: Optional[str] = None,
    *,
    root: Optional[Path] = None,
    require_model: bool = True,
) -> EnvProfile:
    """
    Main entry point: returns a fully resolved EnvProfile.

    Raises FatalConfigurationError for anything that would stop the agent
    from starting. `require_model=False` skips the model-file check (offline
    runs with a canned reasoning service).
    """
    root = root or config_root()
    env_cfg = _load_yaml("env.yaml", root)
    name, active = _select_profile(env_cfg, profile)

    conn_raw = active.get("connection") or {}
    connection = ConnectionConfig(
        host=str(conn_raw.get("host", "localhost")),
        port=_number("connection", "port", conn_raw.get("port", 25565), int),
        username=str(conn_raw.get("username", "Agent")),
        version=conn_raw.get("version"),
    )

    model_raw = active.get("model") or {}
    if not model_raw.get("model_path"):
        raise FatalConfigurationError(f"Profile '{name}' has no model.model_path")
    model_raw = dict(model_raw)
    model_raw["model_path"] = str(_resolve(model_raw["model_path"]))
    prompt_file = model_raw.pop("system_prompt_file", None)
    if prompt_file:
        if model_raw.get("system_prompt"):
            raise FatalConfigurationError("Set model.system_prompt or model.system_prompt_file, not both")
        model_raw["system_prompt"] = _read_prompt(root, prompt_file)
    try:
        model = ModelConfig.from_dict(model_raw)
    except ValueError as exc:
        raise FatalConfigurationError(str(exc)) from exc

    mon_raw = active.get("monitoring") or {}
    monitoring = MonitoringConfig(
        event_log=_resolve(mon_raw.get("event_log")),
        llm_log_dir=_resolve(mon_raw.get("llm_log_dir")),
        dashboard=bool(mon_raw.get("dashboard", False)),
        log_level=str(mon_raw.get("log_level", "INFO")).upper(),
    )

    catalog_name = active.get("catalog", "catalog.yaml")
    catalog_path = Path(catalog_name)
    if not catalog_path.is_absolute():
        catalog_path = root / catalog_path

    env = EnvProfile(
        name=name,
        connection=connection,
        model=model,
        catalog_path=catalog_path,
        perception_radius=_number(
            "profile", "perception_radius", active.get("perception_radius", 32), int
        ),
        executor=_check_keys("executor", active.get("executor") or {}, ActionExecutorConfig),
        loop=_check_keys("loop", active.get("loop") or {}, ControlLoopConfig),
        monitoring=monitoring,
    )

    _validate_env(env, require_model=require_model)
    log.info("Loaded environment profile %r (model %s)", env.name, env.model.model_path)
    return env


def _validate_env(env: EnvProfile, *, require_model: bool = True) -> None:
    """Minimal sanity checks for the environment."""
    if not env.connection.username:
        raise FatalConfigurationError("connection.username must not be empty")
    if not 0 < env.connection.port < 65536:
        raise FatalConfigurationError(f"Invalid port: {env.connection.port}")
    if env.perception_radius <= 0:
        raise FatalConfigurationError("perception_radius must be positive")

    if not env.catalog_path.exists():
        raise FatalConfigurationError(f"Missing catalog file: {env.catalog_path}")

    model_path = Path(env.model.model_path)
    if require_model and not model_path.exists():
        if IS_CI:
            log.warning("Model file %s missing (CI run, continuing)", model_path)
            return
        raise FatalConfigurationError(f"Missing model file: {model_path}")


def executor_config(env: EnvProfile) -> ActionExecutorConfig:
    return ActionExecutorConfig(**env.executor)


def loop_config(env: EnvProfile) -> ControlLoopConfig:
    return ControlLoopConfig(**env.loop)
