# src/bot_core/tools.py
"""
Tool-prerequisite resolution for mining.

Before digging a block that needs a pickaxe tier, make sure one is in hand:

  1. an acceptable pickaxe is already equipped          -> done
  2. the best acceptable pickaxe in the inventory       -> equip it
  3. craft the weakest acceptable tier that works       -> equip it
     (placing, reaching or crafting a crafting table first when the
     pickaxe recipe needs one)

When nothing works the caller gets a PreconditionFailure that names the
weakest acceptable tier ("need stone_pickaxe or better"); the planner reads
that message on the next request.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from spec.errors import ActionError, PreconditionFailure
from spec.types import Position
from spec.world import WorldClient
from semantics.blocks import TOOL_TIERS, pickaxe_tier, required_tiers
from semantics.catalog import CRAFTING_TABLE, ItemCatalog

log = logging.getLogger(__name__)


class Crafter(Protocol):
    """The executor capabilities tool synthesis needs."""

    def craft_item(self, ref: str, count: int = 1) -> dict:
        ...

    def place_nearby(self, block: str) -> dict:
        ...

    def approach(self, pos: Position) -> None:
        ...


class ToolResolver:
    def __init__(
        self,
        world: WorldClient,
        catalog: ItemCatalog,
        crafter: Crafter,
        *,
        search_radius: float = 32.0,
        reach_distance: float = 4.0,
    ) -> None:
        self._world = world
        self._catalog = catalog
        self._crafter = crafter
        self._search_radius = search_radius
        self._reach = reach_distance

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ensure_tool(self, block: str) -> Optional[str]:
        """
        Equip a pickaxe good enough for `block`.

        Returns the equipped tool name, or None when the block needs no tool.
        Raises PreconditionFailure when no acceptable pickaxe can be had.
        """
        tiers = required_tiers(block)
        if not tiers:
            return None

        hand = self._world.equipped("hand")
        if hand is not None and pickaxe_tier(hand.name) in tiers:
            return hand.name

        owned = self._best_owned(tiers)
        if owned is not None:
            self._world.equip(owned, "hand")
            log.info("Equipped %s for %s", owned, block)
            return owned

        crafted = self._synthesize(tiers)
        if crafted is not None:
            return crafted

        raise PreconditionFailure(
            f"Cannot mine {block} - need {tiers[0]}_pickaxe or better",
            {"block": block, "acceptable_tiers": list(tiers)},
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _inventory_names(self) -> set:
        return {item.name for item in self._world.inventory() if item.count > 0}

    def _best_owned(self, tiers: Sequence[str]) -> Optional[str]:
        names = self._inventory_names()
        for tier in reversed(TOOL_TIERS):
            if tier in tiers and f"{tier}_pickaxe" in names:
                return f"{tier}_pickaxe"
        return None

    def _synthesize(self, tiers: Sequence[str]) -> Optional[str]:
        for tier in tiers:
            pickaxe = f"{tier}_pickaxe"
            recipes = self._catalog.recipes_for(pickaxe)
            if not recipes:
                continue
            try:
                if any(r.requires_table for r in recipes):
                    self._ensure_table_in_reach()
                self._crafter.craft_item(pickaxe, 1)
            except ActionError as exc:
                log.info("Could not craft %s: %s", pickaxe, exc)
                continue

            if pickaxe in self._inventory_names():
                self._world.equip(pickaxe, "hand")
                log.info("Crafted and equipped %s", pickaxe)
                return pickaxe
        return None

    def _ensure_table_in_reach(self) -> None:
        """Walk to, place, or craft-then-place a crafting table."""
        here = self._world.position()
        found = self._world.find_blocks(
            lambda name: name == CRAFTING_TABLE, self._search_radius, 1
        )
        if found:
            if here.distance_to(found[0]) > self._reach:
                self._crafter.approach(found[0])
            return

        if CRAFTING_TABLE not in self._inventory_names():
            log.info("No crafting table around; crafting one first")
            self._crafter.craft_item(CRAFTING_TABLE, 1)
        self._crafter.place_nearby(CRAFTING_TABLE)
