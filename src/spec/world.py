# world client protocol consumed by bot_core and observation
# src/spec/world.py
"""
The narrow world-client surface the agent depends on.

A concrete client (mineflayer bridge, IPC shim, in-memory fake) implements
WorldClient. Every method may block; callers that need a deadline wrap the
call with bot_core.races.race(). Events are delivered through on() /
remove_listener(), possibly from another thread:

    "goal_reached"  -> callback()
    "path_update"   -> callback(status: str)    # "noPath", "success", ...
    "chat"          -> callback(username: str, message: str)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol, Union

from spec.types import InventoryItem, Position

if TYPE_CHECKING:
    from semantics.catalog import Recipe


GOAL_REACHED = "goal_reached"
PATH_UPDATE = "path_update"
CHAT = "chat"
NO_PATH = "noPath"


# ---------------------------------------------------------------------------
# Query results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BlockInfo:
    name: str
    position: Position


@dataclass(frozen=True)
class EntityInfo:
    """
    An entity as reported by the world client.

    kind: "player", "mob", "object" (dropped items), ...
    height: used to aim look_at at the entity's eyes / centre.
    """

    id: int
    kind: str
    name: str
    position: Position
    display_name: Optional[str] = None
    height: float = 1.8
    health: Optional[float] = None
    username: Optional[str] = None


# ---------------------------------------------------------------------------
# Movement goals
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GoalNear:
    x: float
    y: float
    z: float
    range: float = 1.0

    @property
    def position(self) -> Position:
        return Position(self.x, self.y, self.z)


@dataclass(frozen=True)
class GoalFollow:
    player: str
    range: float = 3.0


Goal = Union[GoalNear, GoalFollow]


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

class WorldClient(Protocol):
    """
    Capability handle for one connected agent.

    Created once per session and passed explicitly to every component that
    needs the world; never stored in module globals.
    """

    @property
    def username(self) -> str:
        ...

    # --- agent status -------------------------------------------------
    def position(self) -> Position:
        ...

    def health(self) -> float:
        ...

    def food(self) -> float:
        ...

    def experience_level(self) -> int:
        ...

    def time_of_day(self) -> int:
        ...

    # --- inventory ----------------------------------------------------
    def inventory(self) -> List[InventoryItem]:
        ...

    def equipped(self, slot: str) -> Optional[InventoryItem]:
        """Item in 'hand', 'head', 'torso', 'legs' or 'feet', if any."""
        ...

    # --- blocks -------------------------------------------------------
    def block_at(self, pos: Position) -> Optional[BlockInfo]:
        """Block at `pos` ('air' included), or None if not loaded."""
        ...

    def find_blocks(
        self,
        matching: Callable[[str], bool],
        max_distance: float,
        count: int = 1,
    ) -> List[Position]:
        """Positions of matching blocks within range, nearest first."""
        ...

    def can_dig(self, pos: Position) -> bool:
        ...

    # --- entities -----------------------------------------------------
    def entities(self) -> List[EntityInfo]:
        ...

    def player(self, name: str) -> Optional[EntityInfo]:
        ...

    # --- movement -----------------------------------------------------
    def set_goal(self, goal: Optional[Goal], dynamic: bool = False) -> None:
        ...

    def goto(self, goal: Goal) -> None:
        """Block until the goal is reached; raise if no path exists."""
        ...

    def stop(self) -> None:
        ...

    # --- actions ------------------------------------------------------
    def dig(self, pos: Position) -> None:
        ...

    def place_block(self, reference: Position, face: Position) -> None:
        ...

    def equip(self, item: str, destination: str = "hand") -> None:
        ...

    def consume(self) -> None:
        ...

    def attack(self, entity_id: int) -> None:
        ...

    def toss(self, item: str, count: int) -> None:
        ...

    def look_at(self, pos: Position) -> None:
        ...

    def chat(self, message: str) -> None:
        ...

    def craft(self, recipe: "Recipe", count: int, table: Optional[Position] = None) -> None:
        ...

    # --- events -------------------------------------------------------
    def on(self, event: str, callback: Callable[..., None]) -> None:
        ...

    def remove_listener(self, event: str, callback: Callable[..., None]) -> None:
        ...
