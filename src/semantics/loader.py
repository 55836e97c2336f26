# src/semantics/loader.py
"""
Catalog loader for items, recipes and block drops.

Responsibility:
  - Load config/catalog.yaml (or an explicit path)
  - Expand tag ingredients ("#planks") into one recipe variant per tag member
  - Map everything into ItemInfo / Recipe dataclasses inside an ItemCatalog

File shape:

    items:
      oak_log: {id: 1, display_name: Oak Log}
      ...
    tags:
      planks: [oak_planks, birch_planks]
    recipes:
      stick:
        - count: 4
          shape: [["#planks"], ["#planks"]]
      oak_planks:
        - count: 4
          ingredients: [oak_log]
    drops:
      stone: cobblestone
"""

from __future__ import annotations

import itertools
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

import yaml

from .catalog import ItemCatalog, ItemInfo, Recipe

log = logging.getLogger(__name__)

# Default config directory; tests point load_catalog() at their own files.
CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"
CATALOG_FILE = "catalog.yaml"


# ---------------------------------------------------------------------------
# Low-level loaders
# ---------------------------------------------------------------------------

def _load_yaml(path: Path) -> Dict[str, Any]:
    """
    Load a YAML file and return it as a dict.

    Raises FileNotFoundError if the file does not exist.
    """
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config {path} must be a mapping at top level.")
    return data


# ---------------------------------------------------------------------------
# Recipe expansion
# ---------------------------------------------------------------------------

def _tags_in(raw: Mapping[str, Any]) -> List[str]:
    cells: List[Any] = []
    for row in raw.get("shape") or []:
        cells.extend(row)
    cells.extend(raw.get("ingredients") or [])
    tags = []
    for cell in cells:
        if isinstance(cell, str) and cell.startswith("#") and cell[1:] not in tags:
            tags.append(cell[1:])
    return tags


def _substitute(cell: Optional[str], binding: Mapping[str, str]) -> Optional[str]:
    if isinstance(cell, str) and cell.startswith("#"):
        return binding[cell[1:]]
    return cell


def _expand_recipe(
    result: str,
    raw: Mapping[str, Any],
    tags: Mapping[str, List[str]],
) -> Iterator[Recipe]:
    """Yield one Recipe per combination of tag members used in `raw`."""
    used = _tags_in(raw)
    for tag in used:
        if tag not in tags:
            raise KeyError(f"Recipe for {result!r} uses unknown tag #{tag}")

    for members in itertools.product(*(tags[t] for t in used)):
        binding = dict(zip(used, members))
        shape = None
        ingredients = None
        if raw.get("shape") is not None:
            shape = tuple(
                tuple(_substitute(cell, binding) for cell in row)
                for row in raw["shape"]
            )
        else:
            ingredients = tuple(
                _substitute(cell, binding) for cell in raw.get("ingredients") or []
            )
        yield Recipe(
            result=result,
            result_count=int(raw.get("count", 1)),
            shape=shape,
            ingredients=ingredients,  # type: ignore[arg-type]
            fixture=raw.get("fixture"),
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_catalog(data: Mapping[str, Any]) -> ItemCatalog:
    """Build an ItemCatalog from an already-parsed mapping."""
    items: Dict[str, ItemInfo] = {}
    for name, raw in (data.get("items") or {}).items():
        raw = raw or {}
        if "id" not in raw:
            raise ValueError(f"Catalog item {name!r} has no id")
        items[name] = ItemInfo(
            id=int(raw["id"]),
            name=name,
            display_name=raw.get("display_name") or name.replace("_", " ").title(),
            stack_size=int(raw.get("stack_size", 64)),
        )

    tags = {k: list(v) for k, v in (data.get("tags") or {}).items()}

    recipes: Dict[str, List[Recipe]] = {}
    for result, variants in (data.get("recipes") or {}).items():
        if result not in items:
            raise ValueError(f"Recipe result {result!r} is not a catalog item")
        for raw in variants or []:
            recipes.setdefault(result, []).extend(_expand_recipe(result, raw, tags))

    drops = {str(k): str(v) for k, v in (data.get("drops") or {}).items()}

    catalog = ItemCatalog(items=items, recipes=recipes, drops=drops)
    log.debug(
        "Catalog loaded: %d items, %d recipe variants",
        len(items), sum(len(v) for v in recipes.values()),
    )
    return catalog


def load_catalog(path: Optional[Path] = None) -> ItemCatalog:
    """Load the catalog from `path` (default: config/catalog.yaml)."""
    return build_catalog(_load_yaml(path or CONFIG_DIR / CATALOG_FILE))
