# src/observation/perception.py
"""
Perception aggregation.

PerceptionAggregator turns the world client's query surface into one
immutable PerceptionSnapshot per control-loop tick, and owns the two ring
buffers the agent keeps between ticks:

- recent chat     (last 10 lines from other players)
- failure log     (last 5 task failures, fed back to the planner)

Chat lines arrive on the world client's callback thread while snapshots are
taken on the control thread, so both buffers sit behind one small lock.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, List, Optional, Sequence

from spec.types import (
    AgentStatus,
    ChatMessage,
    FailureRecord,
    NearbyBlock,
    NearbyEntity,
    PerceptionSnapshot,
)
from spec.world import CHAT, WorldClient
from semantics.blocks import INTERESTING_BLOCKS, is_hostile, resource_value

log = logging.getLogger(__name__)

EQUIPMENT_SLOTS = ("hand", "head", "torso", "legs", "feet")

MAX_CHAT = 10
MAX_FAILURES = 5
PERCEPTION_RADIUS = 32.0
BLOCKS_PER_TYPE = 5
MAX_BLOCKS = 20
MAX_ENTITIES = 20

# Minecraft ticks: night runs 13000..23000.
NIGHT_START = 13000
NIGHT_END = 23000


def is_daytime(time_of_day: int) -> bool:
    return time_of_day < NIGHT_START or time_of_day > NIGHT_END


class PerceptionAggregator:
    def __init__(
        self,
        world: WorldClient,
        *,
        radius: float = PERCEPTION_RADIUS,
        interesting_blocks: Sequence[str] = INTERESTING_BLOCKS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._world = world
        self._radius = radius
        self._interesting = tuple(interesting_blocks)
        self._clock = clock

        self._lock = threading.Lock()
        self._chat: Deque[ChatMessage] = deque(maxlen=MAX_CHAT)
        self._failures: Deque[FailureRecord] = deque(maxlen=MAX_FAILURES)

        world.on(CHAT, self._on_chat)

    # ------------------------------------------------------------------
    # Ring buffers
    # ------------------------------------------------------------------

    def _on_chat(self, username: str, message: str) -> None:
        if username == self._world.username:
            return
        with self._lock:
            self._chat.append(ChatMessage(username, message, self._clock()))

    def log_failure(self, action: str, reason: str, context: Optional[str] = None) -> FailureRecord:
        """Append one entry to the failure log; the oldest falls off past 5."""
        record = FailureRecord(action=action, reason=reason, timestamp=self._clock(), context=context)
        with self._lock:
            self._failures.append(record)
        log.debug("Failure logged: %s - %s", action, reason)
        return record

    def recent_failures(self) -> List[FailureRecord]:
        with self._lock:
            return list(self._failures)

    def recent_chat(self) -> List[ChatMessage]:
        with self._lock:
            return list(self._chat)

    def clear_chat(self) -> None:
        with self._lock:
            self._chat.clear()

    def clear_failures(self) -> None:
        with self._lock:
            self._failures.clear()

    def detach(self) -> None:
        self._world.remove_listener(CHAT, self._on_chat)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self, current_goal: Optional[str] = None) -> PerceptionSnapshot:
        w = self._world
        time_of_day = w.time_of_day()
        with self._lock:
            chat = tuple(self._chat)
            failures = tuple(self._failures)

        return PerceptionSnapshot(
            status=self._status(),
            inventory=tuple(w.inventory()),
            nearby_blocks=tuple(self._nearby_blocks()),
            nearby_entities=tuple(self._nearby_entities()),
            recent_chat=chat,
            recent_failures=failures,
            time_of_day=time_of_day,
            is_day=is_daytime(time_of_day),
            current_goal=current_goal,
            timestamp=self._clock(),
        )

    def _status(self) -> AgentStatus:
        w = self._world
        equipment = {}
        for slot in EQUIPMENT_SLOTS:
            item = w.equipped(slot)
            equipment[slot] = item.name if item else None
        return AgentStatus(
            position=w.position(),
            health=w.health(),
            food=w.food(),
            experience_level=w.experience_level(),
            equipment=equipment,
        )

    def _nearby_blocks(self) -> List[NearbyBlock]:
        here = self._world.position()
        found: List[NearbyBlock] = []
        for name in self._interesting:
            try:
                positions = self._world.find_blocks(
                    lambda n, target=name: n == target, self._radius, BLOCKS_PER_TYPE
                )
            except Exception:
                log.debug("Block search for %s failed", name, exc_info=True)
                continue
            for pos in positions:
                found.append(NearbyBlock(name=name, position=pos, distance=here.distance_to(pos)))

        found.sort(key=lambda b: (b.distance, -resource_value(b.name)))
        return found[:MAX_BLOCKS]

    def _nearby_entities(self) -> List[NearbyEntity]:
        here = self._world.position()
        me = self._world.username
        out: List[NearbyEntity] = []
        for entity in self._world.entities():
            if entity.kind == "player" and (entity.username or entity.name) == me:
                continue
            distance = here.distance_to(entity.position)
            if distance > self._radius:
                continue
            name = entity.name or entity.username or entity.display_name or "unknown"
            out.append(
                NearbyEntity(
                    type=entity.kind,
                    name=name,
                    position=entity.position,
                    distance=distance,
                    hostile=is_hostile(entity.display_name or name),
                    health=entity.health,
                )
            )
        out.sort(key=lambda e: e.distance)
        return out[:MAX_ENTITIES]
