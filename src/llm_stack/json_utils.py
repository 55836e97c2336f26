# src/llm_stack/json_utils.py

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def load_json_or_none(
    raw: str,
    *,
    context: str = "unknown",
) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Best-effort JSON loader.

    Returns (data, error_message). If parsing fails, data is None and
    error_message describes the failure. A valid JSON value that is not an
    object is reported as an error too.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        msg = f"{context}: JSONDecodeError at pos {e.pos}: {e.msg}"
        logger.debug("load_json_or_none failed: %s; raw=%r", msg, raw)
        return None, msg

    if not isinstance(data, dict):
        msg = f"{context}: expected a JSON object, got {type(data).__name__}"
        logger.debug("load_json_or_none failed: %s", msg)
        return None, msg
    return data, None


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} span in `text`, or None.

    Braces inside JSON strings (including escaped quotes) do not count, so
    prose such as `Here you go: {"plan": ["chat {hi}"]} hope it helps` yields
    exactly the object.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # Unbalanced from this brace; try the next one.
        start = text.find("{", start + 1)
    return None
