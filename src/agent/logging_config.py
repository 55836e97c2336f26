# src/agent/logging_config.py
"""
Central logging configuration for the agent runtime.

Call configure_logging() from your main entrypoint once, for example:

    from agent.logging_config import configure_logging
    configure_logging()

After that, control-loop, executor and planner logs are visible on stdout.
"""

from __future__ import annotations

import logging
import sys
from typing import Iterable

# Chatty third-party loggers kept at WARNING unless asked otherwise.
NOISY_LOGGERS = ("urllib3", "asyncio")


def configure_logging(level: int = logging.INFO, quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    """
    Configure root logging if no handlers are attached yet.

    Args:
        level: default logging level (e.g., logging.INFO, logging.DEBUG)
        quiet: logger names capped at WARNING
    """
    root = logging.getLogger()

    # Don't duplicate handlers if someone already configured logging.
    if root.handlers:
        root.setLevel(level)
        return

    handler = logging.StreamHandler(stream=sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)

    for name in quiet:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
