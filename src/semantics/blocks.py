# src/semantics/blocks.py
"""
Static domain tables: tool tiers, mining requirements, hostile mobs,
resource values and inventory categories.

Everything here is plain data plus small lookup helpers; nothing touches
the world client.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

# Weakest first.
TOOL_TIERS: Tuple[str, ...] = ("wooden", "stone", "iron", "diamond")

_WOOD_UP = TOOL_TIERS
_STONE_UP = ("stone", "iron", "diamond")
_IRON_UP = ("iron", "diamond")

MINING_REQUIREMENTS: Dict[str, Tuple[str, ...]] = {
    "stone": _WOOD_UP,
    "cobblestone": _WOOD_UP,
    "coal_ore": _WOOD_UP,
    "deepslate": _WOOD_UP,
    "copper_ore": _STONE_UP,
    "iron_ore": _STONE_UP,
    "lapis_ore": _STONE_UP,
    "gold_ore": _IRON_UP,
    "redstone_ore": _IRON_UP,
    "diamond_ore": _IRON_UP,
    "emerald_ore": _IRON_UP,
    "obsidian": ("diamond",),
}
# Deepslate ore variants share the tier of their plain ore.
MINING_REQUIREMENTS.update({
    f"deepslate_{name}": tiers
    for name, tiers in list(MINING_REQUIREMENTS.items())
    if name.endswith("_ore")
})

HOSTILE_MOBS: Tuple[str, ...] = (
    "zombie", "skeleton", "spider", "creeper",
    "enderman", "witch", "slime", "phantom",
)

# Blocks the perception layer reports, capped per type.
INTERESTING_BLOCKS: Tuple[str, ...] = (
    "diamond_ore", "iron_ore", "coal_ore", "gold_ore",
    "crafting_table", "furnace", "chest",
    "oak_log", "birch_log", "spruce_log",
    "stone", "cobblestone",
)

RESOURCE_VALUES: Dict[str, int] = {
    "diamond_ore": 100,
    "iron_ore": 50,
    "gold_ore": 40,
    "coal_ore": 30,
    "crafting_table": 20,
    "furnace": 20,
    "chest": 15,
}

FIXTURES: Tuple[str, ...] = ("crafting_table", "furnace", "chest")

FOOD_KEYWORDS: Tuple[str, ...] = (
    "beef", "porkchop", "chicken", "bread", "apple", "carrot", "potato",
)

# Never dug while escaping, whatever the world client says.
UNBREAKABLE: Tuple[str, ...] = (
    "bedrock", "barrier", "command_block", "end_portal_frame",
)

# Obstacles we are willing to break to reach a dropped item.
_CLEARABLE_EXACT = ("stone", "dirt", "grass_block")
_CLEARABLE_PARTS = ("log", "leaves")


def required_tiers(block: str) -> Optional[Tuple[str, ...]]:
    """Acceptable pickaxe tiers for `block`, or None if any tool will do."""
    return MINING_REQUIREMENTS.get(block)


def pickaxe_tier(item_name: Optional[str]) -> Optional[str]:
    """'iron_pickaxe' -> 'iron'; anything that is not a pickaxe -> None."""
    if not item_name or not item_name.endswith("_pickaxe"):
        return None
    tier = item_name[: -len("_pickaxe")]
    return tier if tier in TOOL_TIERS else None


def is_hostile(entity_name: str) -> bool:
    name = entity_name.lower()
    return any(mob in name for mob in HOSTILE_MOBS)


def is_food(item_name: str) -> bool:
    return any(word in item_name for word in FOOD_KEYWORDS)


def is_clearable(block_name: str) -> bool:
    return block_name in _CLEARABLE_EXACT or any(p in block_name for p in _CLEARABLE_PARTS)


def resource_value(block_name: str) -> int:
    return RESOURCE_VALUES.get(block_name, 0)


def inventory_category(item_name: str) -> str:
    """Bucket used when rendering the inventory: Tools, Ores, Food, Materials, Other."""
    if any(t in item_name for t in ("pickaxe", "sword", "axe", "shovel", "hoe")):
        return "Tools"
    if "_ore" in item_name or item_name in ("diamond", "emerald"):
        return "Ores"
    if is_food(item_name):
        return "Food"
    if any(p in item_name for p in ("log", "plank", "stone", "ingot")) or item_name in ("stick", "coal"):
        return "Materials"
    return "Other"
