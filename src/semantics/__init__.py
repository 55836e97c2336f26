# semantics package
# src/semantics/__init__.py

"""
Item/recipe semantics for the agent.

- ItemCatalog / load_catalog   -> item ids, recipes, block drops
- craftable_items / almost_craftable -> what the inventory can make
- blocks                       -> tool tiers, hostile mobs, value tables
"""

from __future__ import annotations

from .catalog import ItemCatalog, ItemInfo, Recipe
from .crafting import AlmostCraftable, CraftOption, almost_craftable, craftable_items
from .loader import load_catalog

__all__ = [
    "ItemCatalog",
    "ItemInfo",
    "Recipe",
    "CraftOption",
    "AlmostCraftable",
    "craftable_items",
    "almost_craftable",
    "load_catalog",
]
