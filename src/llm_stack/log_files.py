# src/llm_stack/log_files.py

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional


PROJECT_ROOT = Path(__file__).resolve().parents[2]
LOG_DIR_ENV = "MINEPLAN_LLM_LOG_DIR"


def default_log_dir() -> Path:
    override = os.environ.get(LOG_DIR_ENV)
    return Path(override) if override else PROJECT_ROOT / "logs" / "llm"


def log_llm_call(
    *,
    role: str,
    operation: str,
    prompt: str,
    raw_response: str,
    extra: Optional[Dict[str, Any]] = None,
    log_dir: Optional[Path] = None,
) -> Path:
    """Persist a single reasoning-service interaction as one JSON file.

    Files land in `log_dir`, else $MINEPLAN_LLM_LOG_DIR, else logs/llm/.
    Returns the path of the written file.
    """
    directory = log_dir or default_log_dir()
    directory.mkdir(parents=True, exist_ok=True)

    ts = time.strftime("%Y%m%dT%H%M%S")
    pid = os.getpid()
    # Several calls can land in the same second; the ns suffix keeps names unique.
    filename = f"{ts}_{pid}_{time.time_ns() % 1_000_000_000:09d}_{role}_{operation}.json"
    path = directory / filename

    payload = {
        "timestamp": ts,
        "pid": pid,
        "role": role,
        "operation": operation,
        "prompt": prompt,
        "raw_response": raw_response,
        "extra": extra or {},
    }

    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)

    return path
