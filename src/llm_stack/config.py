# src/llm_stack/config.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type


@dataclass
class ModelConfig:
    """Model + request settings for the planner's reasoning service."""

    model_path: str

    # generation parameters
    max_tokens: int = 512
    temperature: float = 0.7

    # context / performance knobs
    n_ctx: int = 4096
    n_gpu_layers: Optional[int] = None
    n_threads: Optional[int] = None
    n_batch: Optional[int] = None

    # prompt shaping
    stop: Optional[List[str]] = None
    system_prompt: Optional[str] = None

    # request handling
    timeout_s: float = 30.0
    history_limit: int = 10

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelConfig":
        """
        Convenience constructor from a plain dict (e.g. YAML).

        Raises ValueError naming the offending key when a numeric setting
        does not convert.
        """
        return cls(
            model_path=data["model_path"],
            max_tokens=_number(data, "max_tokens", int, 512),
            temperature=_number(data, "temperature", float, 0.7),
            n_ctx=_number(data, "n_ctx", int, 4096),
            n_gpu_layers=_number(data, "n_gpu_layers", int, None),
            n_threads=_number(data, "n_threads", int, None),
            n_batch=_number(data, "n_batch", int, None),
            stop=data.get("stop"),
            system_prompt=data.get("system_prompt"),
            timeout_s=_number(data, "timeout_s", float, 30.0),
            history_limit=_number(data, "history_limit", int, 10),
        )


def _number(data: Dict[str, Any], key: str, kind: Type[Any], default: Any) -> Any:
    value = data.get(key, default)
    if value is None:
        return None
    try:
        if isinstance(value, bool):
            raise TypeError(key)
        return kind(value)
    except (TypeError, ValueError):
        noun = "an integer" if kind is int else "a number"
        raise ValueError(f"model.{key} must be {noun}, got {value!r}") from None
