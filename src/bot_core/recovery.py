# src/bot_core/recovery.py
"""
Stuck recovery for Move.

When the agent has not moved for a run of consecutive polls, try to break
one obstacle around it: the cell it stands in, the cell above, then the four
lateral neighbours. Air, the unbreakable deny-list, and anything the world
says cannot be dug are skipped. The first successful dig ends the attempt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from spec.world import WorldClient
from semantics.blocks import UNBREAKABLE

from .races import race

log = logging.getLogger(__name__)

ESCAPE_OFFSETS: Tuple[Tuple[int, int, int], ...] = (
    (0, 0, 0),
    (0, 1, 0),
    (1, 0, 0),
    (-1, 0, 0),
    (0, 0, 1),
    (0, 0, -1),
)


@dataclass
class StuckRecovery:
    world: WorldClient
    dig_timeout_s: float = 5.0

    attempts: int = 0
    successes: int = 0

    def attempt(self) -> bool:
        """Break one obstacle; True if something was cleared."""
        self.attempts += 1
        here = self.world.position()
        log.warning("Agent appears stuck at %s; trying to dig out", here.fmt())

        for dx, dy, dz in ESCAPE_OFFSETS:
            pos = here.offset(dx, dy, dz).floored()
            block = self.world.block_at(pos)
            if block is None or block.name == "air" or block.name in UNBREAKABLE:
                continue
            if not self.world.can_dig(pos):
                continue

            log.info("Breaking %s at %s to escape", block.name, pos.fmt())
            try:
                race(lambda p=pos: self.world.dig(p), self.dig_timeout_s, what="Escape dig")
            except Exception as exc:
                log.info("Escape dig at %s failed: %s", pos.fmt(), exc)
                continue
            self.successes += 1
            return True

        log.warning("No breakable blocks around %s", here.fmt())
        return False
