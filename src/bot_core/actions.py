# src/bot_core/actions.py
"""
Action execution: one Operation against the world, one ActionResult back.

Design constraints:
- Exactly one execute(operation) call per plan step.
- last_error is cleared at the start of every call and, on failure, holds a
  human-readable reason phrased for the planner (it is fed back into the
  next plan request).
- Every blocking world call is raced against its own deadline
  (bot_core.races.race); a lost race still clears goals and listeners.
- Nothing raised by a handler escapes execute(): ActionError subclasses
  become their message, anything else is logged with a traceback.

Per-operation failure semantics:
    move        already-near fast fail, noPath, stuck recovery, timeout
    mine        tool prerequisite, approach, re-validate, dig, verify by
                inventory totals and collect drops
    place       duplicate crafting table refusal, inventory check
    craft       id/name resolution, first satisfiable recipe, table reach
    follow      continuous pursuit goal + "following" state
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from spec.errors import ActionError, PreconditionFailure, WorldTimeout
from spec.types import (
    ActionResult,
    Attack,
    Chat,
    Craft,
    Eat,
    Equip,
    Follow,
    InventoryItem,
    Look,
    Mine,
    Move,
    Operation,
    Place,
    Position,
    StopFollow,
    Toss,
    Wait,
    format_number,
)
from spec.world import (
    GOAL_REACHED,
    NO_PATH,
    PATH_UPDATE,
    EntityInfo,
    GoalFollow,
    GoalNear,
    WorldClient,
)
from semantics.blocks import is_clearable, is_food, is_hostile
from semantics.catalog import CRAFTING_TABLE, ItemCatalog
from semantics.crafting import inventory_to_counts, missing_for, select_recipe

from .races import race, subscribed
from .recovery import StuckRecovery
from .tools import ToolResolver
from .tracing import ActionTracer


log = logging.getLogger(__name__)

# Place coordinates of -999 mean "next to me".
AUTO_COORD = -999


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@dataclass
class ActionExecutorConfig:
    """
    Timing and distance knobs for ActionExecutor.

    Defaults match a live server; tests shrink the intervals.
    """

    # Move
    poll_interval_s: float = 0.5
    move_timeout_s: float = 15.0
    near_threshold: float = 2.0
    goal_range: float = 1.0
    stuck_displacement: float = 0.5
    stuck_polls: int = 6

    # Reach / pathing
    search_radius: float = 32.0
    reach_distance: float = 4.0
    approach_range: float = 3.0
    path_timeout_s: float = 5.0

    # Mining and drop collection
    dig_timeout_s: float = 5.0
    collect_attempts: int = 3
    collect_wait_s: float = 0.5
    collect_radius: float = 5.0
    collect_path_timeout_s: float = 3.0
    clear_timeout_s: float = 3.0

    # Everything else
    craft_timeout_s: float = 10.0
    eat_timeout_s: float = 5.0
    attack_timeout_s: float = 5.0
    chat_limit: int = 256
    follow_range: float = 3.0


def _xyz(x: float, y: float, z: float) -> str:
    return f"({format_number(x)}, {format_number(y)}, {format_number(z)})"


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class ActionExecutor:
    """
    Executes Operations against a WorldClient.

    The executor is used from the single control-loop thread. The only
    state it keeps across calls is last_error and the player currently
    being followed.
    """

    def __init__(
        self,
        world: WorldClient,
        catalog: ItemCatalog,
        config: Optional[ActionExecutorConfig] = None,
        *,
        recovery: Optional[StuckRecovery] = None,
        tracer: Optional[ActionTracer] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._world = world
        self._catalog = catalog
        self._cfg = config or ActionExecutorConfig()
        self._recovery = recovery or StuckRecovery(world, dig_timeout_s=self._cfg.dig_timeout_s)
        self._tools = ToolResolver(
            world,
            catalog,
            self,
            search_radius=self._cfg.search_radius,
            reach_distance=self._cfg.reach_distance,
        )
        self._tracer = tracer or ActionTracer()
        self._sleep = sleep
        self._clock = clock
        self._log = log

        self._last_error: Optional[str] = None
        self._following: Optional[str] = None

        self._handlers: Dict[type, Callable[[Any], Dict[str, Any]]] = {
            Move: self._move,
            Look: self._look,
            Attack: self._attack,
            Mine: self._mine,
            Place: self._place,
            Craft: self._craft,
            Equip: self._equip,
            Eat: self._eat,
            Chat: self._chat,
            Wait: self._wait,
            Follow: self._follow,
            StopFollow: self._stop_follow,
            Toss: self._toss,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def following(self) -> Optional[str]:
        return self._following

    def is_following(self) -> bool:
        return self._following is not None

    @property
    def tracer(self) -> ActionTracer:
        return self._tracer

    @property
    def recovery(self) -> StuckRecovery:
        return self._recovery

    def execute(self, operation: Operation) -> ActionResult:
        """
        Execute one Operation and report the outcome.

        Never raises for per-operation failures.
        """
        self._last_error = None
        started = time.perf_counter()
        handler = self._handlers.get(type(operation))
        command = operation.describe() if hasattr(operation, "describe") else repr(operation)
        self._log.info("Executing %s", command)

        if handler is None:
            self._last_error = f"Unsupported operation: {command}"
            return ActionResult(success=False, error=self._last_error)

        try:
            details = handler(operation) or {}
            result = ActionResult(success=True, details=details)
        except ActionError as exc:
            self._last_error = str(exc)
            result = ActionResult(success=False, error=self._last_error, details=dict(exc.details))
        except Exception as exc:
            self._log.exception("Unexpected error while executing %s", command)
            self._last_error = f"{operation.kind} failed: {exc}"
            result = ActionResult(
                success=False,
                error=self._last_error,
                details={"exception_type": type(exc).__name__},
            )

        self._tracer.record(
            operation=operation,
            result=result,
            duration_s=time.perf_counter() - started,
            position=self._safe_position(),
        )
        return result

    # ------------------------------------------------------------------
    # Capabilities shared with ToolResolver
    # ------------------------------------------------------------------

    def craft_item(self, ref: Union[str, int], count: int = 1) -> Dict[str, Any]:
        """Resolve `ref`, pick the first satisfiable recipe, and craft it."""
        w = self._world
        info = self._catalog.resolve(ref)
        if info is None:
            kind = "ID" if isinstance(ref, int) else "name"
            raise PreconditionFailure(
                f"Unknown item {kind}: {ref}. Use an item ID from the CRAFTABLE list."
            )

        recipes = self._catalog.recipes_for(info.name)
        if not recipes:
            raise PreconditionFailure(f"No recipe for {info.name} (ID: {info.id})")

        counts = inventory_to_counts(w.inventory())
        recipe = select_recipe(self._catalog, info.name, counts)
        if recipe is None:
            closest = min((missing_for(r, counts) for r in recipes), key=lambda m: sum(m.values()))
            missing = ", ".join(f"{name} x{n}" for name, n in closest.items())
            raise PreconditionFailure(
                f"No craftable recipe for {info.name} - missing materials ({missing})",
                {"missing": dict(closest)},
            )

        table: Optional[Position] = None
        if recipe.requires_table:
            found = w.find_blocks(
                lambda name: name == CRAFTING_TABLE, self._cfg.search_radius, 1
            )
            if not found:
                raise PreconditionFailure(
                    "Crafting table required but not found nearby. "
                    "Need to place crafting table first."
                )
            distance = w.position().distance_to(found[0])
            if distance > self._cfg.reach_distance:
                raise PreconditionFailure(
                    f"Crafting table is too far ({distance:.1f}m away). "
                    f"Move closer first to position {found[0].fmt()}.",
                    {"table": found[0].fmt(), "distance": round(distance, 1)},
                )
            table = found[0]

        race(
            lambda: w.craft(recipe, count, table),
            self._cfg.craft_timeout_s,
            what="Crafting",
        )
        self._log.info("Crafted %dx %s", count, info.name)
        return {"item": info.name, "item_id": info.id, "count": count}

    def place_nearby(self, block: str) -> Dict[str, Any]:
        return self._place(Place(block=block, x=AUTO_COORD, y=AUTO_COORD, z=AUTO_COORD))

    def approach(self, pos: Position) -> None:
        """Path to within approach range of `pos` when it is out of reach."""
        w = self._world
        if w.position().distance_to(pos) <= self._cfg.reach_distance:
            return
        goal = GoalNear(pos.x, pos.y, pos.z, self._cfg.approach_range)
        race(
            lambda: w.goto(goal),
            self._cfg.path_timeout_s,
            what="Pathfinding",
            cleanup=lambda: w.set_goal(None),
        )

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------

    def _move(self, op: Move) -> Dict[str, Any]:
        w = self._world
        cfg = self._cfg
        target = op.target
        start = w.position()
        distance = start.distance_to(target)

        if distance < cfg.near_threshold:
            raise PreconditionFailure(
                f"Already at or near {_xyz(op.x, op.y, op.z)}. "
                f"Current position: {start.fmt()}",
                {"distance": round(distance, 2)},
            )

        self._log.info(
            "Moving from %s to %s [%.1fm]", start.fmt(), _xyz(op.x, op.y, op.z), distance
        )
        self._following = None

        reached = threading.Event()
        no_path = threading.Event()

        def on_goal_reached(*_args: Any) -> None:
            reached.set()

        def on_path_update(status: Any = None, *_args: Any) -> None:
            if getattr(status, "status", status) == NO_PATH:
                no_path.set()

        goal = GoalNear(op.x, op.y, op.z, cfg.goal_range)
        polls = 0
        recoveries = 0

        with subscribed(w, GOAL_REACHED, on_goal_reached), subscribed(w, PATH_UPDATE, on_path_update):
            try:
                w.set_goal(goal)
                deadline = self._clock() + cfg.move_timeout_s
                last = start
                stuck = 0

                while True:
                    if reached.wait(cfg.poll_interval_s):
                        break
                    if no_path.is_set():
                        raise PreconditionFailure(
                            f"Cannot reach {_xyz(op.x, op.y, op.z)} - no path found"
                        )

                    polls += 1
                    pos = w.position()
                    if pos.distance_to(target) < cfg.near_threshold:
                        break

                    moved = pos.distance_to(last)
                    last = pos
                    if moved < cfg.stuck_displacement:
                        stuck += 1
                        if stuck >= cfg.stuck_polls:
                            recoveries += 1
                            if not self._recovery.attempt():
                                raise PreconditionFailure(
                                    "Movement stuck - bot is trapped and cannot escape",
                                    {"position": pos.fmt()},
                                )
                            self._log.info("Escaped; continuing movement")
                            stuck = 0
                    else:
                        stuck = 0

                    if self._clock() >= deadline:
                        raise WorldTimeout(
                            f"Movement timeout - could not reach {_xyz(op.x, op.y, op.z)} "
                            f"in {cfg.move_timeout_s:g} seconds",
                            {"timeout_s": cfg.move_timeout_s},
                        )
            finally:
                w.set_goal(None)

        return {"position": w.position().fmt(), "polls": polls, "recoveries": recoveries}

    # ------------------------------------------------------------------
    # Look / Attack
    # ------------------------------------------------------------------

    def _find_entity(self, name: str) -> Optional[EntityInfo]:
        needle = name.lower()
        for entity in self._world.entities():
            if needle in (entity.name or "").lower() or needle in (entity.display_name or "").lower():
                return entity
        return None

    def _look(self, op: Look) -> Dict[str, Any]:
        w = self._world
        if op.target == "position":
            w.look_at(Position(op.x, op.y, op.z))  # type: ignore[arg-type]
            return {"target": _xyz(op.x, op.y, op.z)}  # type: ignore[arg-type]

        if op.target == "player":
            player = w.player(op.name or "")
            if player is None:
                raise PreconditionFailure(f"Player {op.name} not found")
            w.look_at(player.position.offset(0, player.height, 0))
            return {"target": op.name}

        entity = self._find_entity(op.name or "")
        if entity is None:
            raise PreconditionFailure(f"Entity {op.name} not found")
        w.look_at(entity.position.offset(0, entity.height / 2, 0))
        return {"target": entity.name}

    def _attack(self, op: Attack) -> Dict[str, Any]:
        w = self._world
        target: Optional[EntityInfo]
        if op.target.lower() == "nearest":
            here = w.position()
            hostiles = [e for e in w.entities() if is_hostile(e.name or "")]
            target = min(hostiles, key=lambda e: here.distance_to(e.position), default=None)
        else:
            target = self._find_entity(op.target)

        if target is None:
            raise PreconditionFailure(f"Target {op.target} not found")

        w.look_at(target.position.offset(0, target.height / 2, 0))
        race(lambda: w.attack(target.id), self._cfg.attack_timeout_s, what="Attack")
        return {"target": target.name, "entity_id": target.id}

    # ------------------------------------------------------------------
    # Mine
    # ------------------------------------------------------------------

    def _inventory_total(self) -> int:
        return sum(item.count for item in self._world.inventory())

    def _mine(self, op: Mine) -> Dict[str, Any]:
        if op.by_coordinates:
            return self._mine_at(op.target)  # type: ignore[arg-type]
        return self._mine_type(op.block_type or "", op.count or 1)

    def _mine_at(self, pos: Position) -> Dict[str, Any]:
        w = self._world
        block = w.block_at(pos)
        if block is None or block.name == "air":
            raise PreconditionFailure(f"Nothing to mine at {pos.fmt()}")

        self._tools.ensure_tool(block.name)
        self.approach(pos)

        block = w.block_at(pos)
        if block is None or block.name == "air":
            raise PreconditionFailure("Block disappeared")
        if not w.can_dig(pos):
            raise PreconditionFailure(f"Cannot dig {block.name} - wrong tool or unreachable")

        before = self._inventory_total()
        race(lambda: w.dig(pos), self._cfg.dig_timeout_s, what="Mining")

        if not self._collect(pos, before):
            raise PreconditionFailure(f"Mined {block.name} but failed to collect items")
        return {"block": block.name, "position": pos.fmt(), "mined": 1}

    def _mine_type(self, block_type: str, count: int) -> Dict[str, Any]:
        w = self._world
        drop = self._catalog.drop_of(block_type)
        if drop != block_type:
            self._log.info("Note: %s drops %s when mined", block_type, drop)

        self._tools.ensure_tool(block_type)

        mined = 0
        problem: Optional[str] = None

        for attempt in range(count):
            try:
                found = w.find_blocks(
                    lambda name: name == block_type, self._cfg.search_radius, 1
                )
                if not found:
                    if mined == 0:
                        problem = f"No {block_type} found nearby"
                    break

                pos = found[0]
                self.approach(pos)

                block = w.block_at(pos)
                if block is None or block.name == "air":
                    continue

                if not w.can_dig(pos):
                    hand = w.equipped("hand")
                    tool = hand.name if hand else "hand (empty)"
                    raise PreconditionFailure(
                        f"Cannot dig {block_type} at {pos.fmt()} - current tool: "
                        f"{tool}. Need proper pickaxe!",
                        {"tool": tool},
                    )

                before = self._inventory_total()
                self._log.info("Mining %s at %s", block_type, pos.fmt())
                race(lambda p=pos: w.dig(p), self._cfg.dig_timeout_s, what="Mining")

                if self._collect(pos, before):
                    mined += 1
                    self._log.info("Mined %d/%d %s", mined, count, block_type)
                else:
                    self._log.info("Failed to collect drops, trying next block")
            except PreconditionFailure:
                raise
            except Exception as exc:
                self._log.info(
                    "Mining error on attempt %d: %s, trying next block", attempt + 1, exc
                )
                continue

        if mined == 0:
            raise PreconditionFailure(
                problem or f"Failed to mine any {block_type} (tried {count} times)",
                {"requested": count},
            )
        return {"block": block_type, "mined": mined, "requested": count}

    def _collect(self, drop_pos: Position, before: int) -> bool:
        """Wait for, walk to, and if needed dig towards the drops of a mined block."""
        w = self._world
        cfg = self._cfg

        for _ in range(cfg.collect_attempts):
            self._sleep(cfg.collect_wait_s)
            if self._inventory_total() > before:
                return True

            drops = [
                e for e in w.entities()
                if e.kind == "object" and e.position.distance_to(drop_pos) < cfg.collect_radius
            ]
            if not drops:
                continue

            here = w.position()
            nearest = min(drops, key=lambda e: here.distance_to(e.position))
            if here.distance_to(nearest.position) > 2:
                goal = GoalNear(
                    nearest.position.x, nearest.position.y, nearest.position.z, 1
                )
                try:
                    race(
                        lambda: w.goto(goal),
                        cfg.collect_path_timeout_s,
                        what="Item collection",
                        cleanup=lambda: w.set_goal(None),
                    )
                except Exception as exc:
                    self._log.info("Could not reach drop: %s", exc)
                    if not self._clear_path_to(nearest.position):
                        continue

            self._sleep(cfg.collect_wait_s)
            if self._inventory_total() > before:
                return True

        return False

    def _clear_path_to(self, item_pos: Position) -> bool:
        """Break the one clearable block between the agent and a drop."""
        w = self._world
        here = w.position()
        dx, dy, dz = item_pos.x - here.x, item_pos.y - here.y, item_pos.z - here.z
        norm = math.sqrt(dx * dx + dy * dy + dz * dz) or 1.0
        check = here.offset(round(dx / norm), 0, round(dz / norm)).floored()

        block = w.block_at(check)
        if block is None or block.name == "air":
            return False
        if not is_clearable(block.name) or not w.can_dig(check):
            return False

        try:
            race(lambda: w.dig(check), self._cfg.clear_timeout_s, what="Clearing")
        except Exception as exc:
            self._log.info("Clearing %s failed: %s", block.name, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Place / Craft
    # ------------------------------------------------------------------

    def _find_item(self, name: str) -> Optional[InventoryItem]:
        for item in self._world.inventory():
            if item.name == name and item.count > 0:
                return item
        return None

    def _place(self, op: Place) -> Dict[str, Any]:
        w = self._world
        here = w.position()

        if AUTO_COORD in (op.x, op.y, op.z):
            base = here.floored()
            target = Position(base.x + 1, base.y, base.z)
        else:
            target = Position(op.x, op.y, op.z)
        where = _xyz(target.x, target.y, target.z)

        name = op.block
        if name.lstrip("-").isdigit():
            info = self._catalog.by_id(int(name))
            if info is None:
                raise PreconditionFailure(f"Unknown block ID: {name}")
            name = info.name

        if name == CRAFTING_TABLE:
            existing = w.find_blocks(lambda n: n == name, self._cfg.search_radius, 1)
            if existing:
                distance = here.distance_to(existing[0])
                raise PreconditionFailure(
                    f"{name} already exists nearby ({distance:.1f}m away). "
                    "Don't place another one - use the existing one!",
                    {"existing": existing[0].fmt()},
                )

        if self._find_item(name) is None:
            raise PreconditionFailure(f"{name} not in inventory. Cannot place it.")

        reference = target.offset(0, -1, 0)
        ref_block = w.block_at(reference)
        if ref_block is None or ref_block.name == "air":
            raise PreconditionFailure(
                f"Cannot place at {where}. No solid block below to place against."
            )

        try:
            w.equip(name, "hand")
            w.place_block(reference, Position(0, 1, 0))
        except ActionError:
            raise
        except Exception as exc:
            raise PreconditionFailure(
                f"Cannot place {name} at {where}. {exc}. "
                "Try different coordinates or check if space is occupied."
            ) from exc

        self._log.info("Placed %s at %s", name, where)
        return {"block": name, "position": where}

    def _craft(self, op: Craft) -> Dict[str, Any]:
        return self.craft_item(op.item, op.count)

    # ------------------------------------------------------------------
    # Equip / Eat / Chat / Wait / Toss
    # ------------------------------------------------------------------

    def _equip(self, op: Equip) -> Dict[str, Any]:
        if self._find_item(op.item) is None:
            raise PreconditionFailure(f"{op.item} not in inventory")
        self._world.equip(op.item, op.destination)
        return {"item": op.item, "destination": op.destination}

    def _eat(self, op: Eat) -> Dict[str, Any]:
        w = self._world
        food = next((i for i in w.inventory() if i.count > 0 and is_food(i.name)), None)
        if food is None:
            raise PreconditionFailure("No food in inventory")
        w.equip(food.name, "hand")
        race(w.consume, self._cfg.eat_timeout_s, what="Eating")
        return {"food": food.name}

    def _chat(self, op: Chat) -> Dict[str, Any]:
        limit = self._cfg.chat_limit
        message = op.message
        if len(message) > limit:
            message = message[: limit - 3] + "..."
        self._world.chat(message)
        return {"message": message, "truncated": message != op.message}

    def _wait(self, op: Wait) -> Dict[str, Any]:
        self._sleep(max(op.duration_ms, 0) / 1000.0)
        return {"duration_ms": op.duration_ms}

    def _toss(self, op: Toss) -> Dict[str, Any]:
        w = self._world
        have = sum(i.count for i in w.inventory() if i.name == op.item)
        if have <= 0:
            raise PreconditionFailure(f"{op.item} not in inventory")

        count = op.count if op.count and op.count <= have else have

        if op.player:
            player = w.player(op.player)
            if player is not None:
                w.look_at(player.position.offset(0, player.height, 0))
            else:
                self._log.info("Player %s not found, dropping item instead", op.player)

        w.toss(op.item, count)
        return {"item": op.item, "count": count, "player": op.player}

    # ------------------------------------------------------------------
    # Follow
    # ------------------------------------------------------------------

    def _follow(self, op: Follow) -> Dict[str, Any]:
        if self._world.player(op.player) is None:
            raise PreconditionFailure(f"Player {op.player} not found")
        self._following = op.player
        self._world.set_goal(GoalFollow(op.player, self._cfg.follow_range), dynamic=True)
        return {"player": op.player}

    def _stop_follow(self, op: Optional[StopFollow] = None) -> Dict[str, Any]:
        previous = self._following
        self._following = None
        self._world.stop()
        self._world.set_goal(None)
        return {"stopped": previous}

    def stop_following(self) -> None:
        """Drop pursuit outside of a plan (chat interrupt)."""
        if self._following is not None:
            self._log.info("Stopping pursuit of %s", self._following)
            self._stop_follow()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _safe_position(self) -> Optional[Position]:
        try:
            return self._world.position()
        except Exception:
            self._log.debug("Position unavailable for trace", exc_info=True)
            return None
