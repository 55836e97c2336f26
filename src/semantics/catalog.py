# item / recipe catalog
# src/semantics/catalog.py
"""
In-memory item and recipe catalog.

The catalog answers three questions for the rest of the agent:

- name <-> numeric id resolution (planners use both),
- which recipe variants produce an item, and what each one consumes,
- what a block drops when mined.

Recipes are either shaped (a grid of ingredient names, None for empty
cells) or shapeless (a flat ingredient list). A shaped recipe whose grid is
larger than 2x2 needs a crafting table; a recipe can also force that with
`fixture: crafting_table` in the catalog file.

Instances are built by semantics.loader.load_catalog().
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

log = logging.getLogger(__name__)

CRAFTING_TABLE = "crafting_table"
NAMESPACE = "minecraft:"


@dataclass(frozen=True)
class ItemInfo:
    id: int
    name: str
    display_name: str
    stack_size: int = 64


@dataclass(frozen=True)
class Recipe:
    result: str
    result_count: int = 1
    shape: Optional[Tuple[Tuple[Optional[str], ...], ...]] = None
    ingredients: Optional[Tuple[str, ...]] = None
    fixture: Optional[str] = None

    @property
    def shaped(self) -> bool:
        return self.shape is not None

    @property
    def requires_table(self) -> bool:
        if self.fixture == CRAFTING_TABLE:
            return True
        if self.shape is None:
            return len(self.ingredients or ()) > 4
        width = max((len(row) for row in self.shape), default=0)
        return len(self.shape) > 2 or width > 2

    def requirements(self) -> Counter:
        """Ingredient multiset: grid cells summed (None ignored) or flat list counted."""
        need: Counter = Counter()
        if self.shape is not None:
            for row in self.shape:
                for cell in row:
                    if cell is not None:
                        need[cell] += 1
        else:
            for name in self.ingredients or ():
                need[name] += 1
        return need


@dataclass
class ItemCatalog:
    items: Dict[str, ItemInfo] = field(default_factory=dict)
    recipes: Dict[str, List[Recipe]] = field(default_factory=dict)
    drops: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._by_id: Dict[int, ItemInfo] = {info.id: info for info in self.items.values()}

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> Optional[ItemInfo]:
        if name.startswith(NAMESPACE):
            name = name[len(NAMESPACE):]
        return self.items.get(name)

    def by_id(self, item_id: int) -> Optional[ItemInfo]:
        return self._by_id.get(item_id)

    def item_id(self, name: str) -> Optional[int]:
        info = self.get(name)
        return info.id if info else None

    def resolve(self, ref: Union[str, int]) -> Optional[ItemInfo]:
        """
        Resolve a planner-supplied item reference.

        Integers are ids. Names are tried as given, then with the first
        underscore removed, pluralised, de-pluralised, and namespaced.
        """
        if isinstance(ref, int):
            return self.by_id(ref)

        info = self.get(ref)
        if info is not None:
            return info

        for variant in name_variants(ref):
            info = self.get(variant)
            if info is not None:
                log.debug("Resolved item %r as %r", ref, variant)
                return info
        return None

    def recipes_for(self, name: str) -> List[Recipe]:
        return list(self.recipes.get(name, ()))

    def drop_of(self, block: str) -> str:
        return self.drops.get(block, block)

    def names(self) -> Iterable[str]:
        return self.items.keys()


def name_variants(name: str) -> Sequence[str]:
    """Spelling fallbacks for a reasoning-service item name."""
    variants = [
        name.replace("_", "", 1),
        name + "s",
        name[:-1],
        NAMESPACE + name,
        name.lower(),
        name.strip().replace(" ", "_").lower(),
    ]
    seen = {name}
    out = []
    for v in variants:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out
