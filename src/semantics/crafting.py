# craftable_items and crafting helpers
# src/semantics/crafting.py

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from spec.types import InventoryItem
from .catalog import CRAFTING_TABLE, ItemCatalog, Recipe


# Items worth advertising to the planner, roughly in tech order.
IMPORTANT_ITEMS: Tuple[str, ...] = (
    "oak_planks", "birch_planks", "spruce_planks",
    "stick",
    "crafting_table",
    "wooden_pickaxe", "stone_pickaxe", "iron_pickaxe", "diamond_pickaxe",
    "wooden_axe", "stone_axe", "iron_axe",
    "wooden_shovel", "stone_shovel", "iron_shovel",
    "wooden_sword", "stone_sword", "iron_sword",
    "furnace",
    "chest",
    "torch",
)

ALMOST_THRESHOLD = 2


@dataclass
class CraftOption:
    """A recipe that current inventory can satisfy."""

    item: str
    item_id: Optional[int]
    recipe: Recipe
    requirements: Dict[str, int] = field(default_factory=dict)

    def describe(self) -> str:
        reqs = " + ".join(f"{name} x{n}" for name, n in self.requirements.items())
        req_str = f" ({reqs})" if reqs else ""
        item_id = self.item_id if self.item_id is not None else "?"
        return f"ID {item_id}: {self.item}{req_str}"


@dataclass
class AlmostCraftable:
    """A recipe short by at most a few ingredient units."""

    item: str
    item_id: Optional[int]
    missing: Dict[str, int]

    @property
    def deficit(self) -> int:
        return sum(self.missing.values())

    def describe(self) -> str:
        missing = ", ".join(f"{name} x{n}" for name, n in self.missing.items())
        item_id = self.item_id if self.item_id is not None else "?"
        return f"ID {item_id}: {self.item} (missing {missing})"


# ---------------------------------------------------------------------------
# Inventory helpers
# ---------------------------------------------------------------------------

def inventory_to_counts(inventory: Iterable[InventoryItem]) -> Counter:
    """Sum stack counts per item name; empty stacks are ignored."""
    counts: Counter = Counter()
    for stack in inventory:
        if stack.count > 0:
            counts[stack.name] += stack.count
    return counts


def missing_for(recipe: Recipe, counts: Mapping[str, int]) -> Counter:
    """Ingredient units still needed to craft `recipe` once."""
    missing: Counter = Counter()
    for name, need in recipe.requirements().items():
        have = counts.get(name, 0)
        if have < need:
            missing[name] = need - have
    return missing


def can_craft(recipe: Recipe, counts: Mapping[str, int]) -> bool:
    return not missing_for(recipe, counts)


def select_recipe(
    catalog: ItemCatalog,
    item: str,
    counts: Mapping[str, int],
) -> Optional[Recipe]:
    """First recipe variant for `item` whose ingredient multiset is satisfied."""
    for recipe in catalog.recipes_for(item):
        if can_craft(recipe, counts):
            return recipe
    return None


def has_table_access(counts: Mapping[str, int], table_nearby: bool) -> bool:
    return table_nearby or counts.get(CRAFTING_TABLE, 0) > 0


# ---------------------------------------------------------------------------
# Craftability
# ---------------------------------------------------------------------------

def craftable_items(
    counts: Mapping[str, int],
    catalog: ItemCatalog,
    *,
    table_nearby: bool = False,
    candidates: Sequence[str] = IMPORTANT_ITEMS,
) -> List[CraftOption]:
    """
    Which candidate items can be crafted right now.

    Recipes that need a crafting table only count when one is nearby or
    carried. One entry per item: the first satisfiable variant wins.
    """
    table = has_table_access(counts, table_nearby)
    options: List[CraftOption] = []

    for item in candidates:
        for recipe in catalog.recipes_for(item):
            if recipe.requires_table and not table:
                continue
            if can_craft(recipe, counts):
                options.append(
                    CraftOption(
                        item=item,
                        item_id=catalog.item_id(item),
                        recipe=recipe,
                        requirements=dict(recipe.requirements()),
                    )
                )
                break

    return options


def almost_craftable(
    counts: Mapping[str, int],
    catalog: ItemCatalog,
    *,
    table_nearby: bool = False,
    threshold: int = ALMOST_THRESHOLD,
    candidates: Sequence[str] = IMPORTANT_ITEMS,
) -> List[AlmostCraftable]:
    """
    Items whose closest recipe variant is short by 1..threshold units.

    Items that are already craftable are not repeated here.
    """
    table = has_table_access(counts, table_nearby)
    out: List[AlmostCraftable] = []

    for item in candidates:
        best: Optional[Counter] = None
        for recipe in catalog.recipes_for(item):
            if recipe.requires_table and not table:
                continue
            missing = missing_for(recipe, counts)
            if not missing:
                best = None
                break
            if best is None or sum(missing.values()) < sum(best.values()):
                best = missing
        else:
            if best is not None and sum(best.values()) <= threshold:
                out.append(
                    AlmostCraftable(
                        item=item,
                        item_id=catalog.item_id(item),
                        missing=dict(best),
                    )
                )

    return out
