# tests/test_catalog_crafting.py
"""
Tests for semantics.catalog / semantics.loader / semantics.crafting.

Covers:
- loading config/catalog.yaml and tag expansion
- item reference resolution (ids, spelling variants)
- craftable / almost-craftable lists and crafting-table gating
- shapeless recipes as a true ingredient multiset
"""

from __future__ import annotations

from collections import Counter

import pytest

from semantics.catalog import Recipe
from semantics.crafting import (
    almost_craftable,
    can_craft,
    craftable_items,
    missing_for,
    select_recipe,
)
from semantics.loader import build_catalog, load_catalog


@pytest.fixture(scope="module")
def catalog():
    return load_catalog()


def test_catalog_loads_ids_and_drops(catalog) -> None:
    assert catalog.item_id("oak_planks") == 36
    assert catalog.item_id("crafting_table") == 315
    assert catalog.by_id(848).name == "stick"
    assert catalog.drop_of("stone") == "cobblestone"
    assert catalog.drop_of("oak_log") == "oak_log"


def test_tag_recipes_expand_per_member(catalog) -> None:
    variants = catalog.recipes_for("crafting_table")
    assert len(variants) == 3
    assert {next(iter(r.requirements())) for r in variants} == {
        "oak_planks", "spruce_planks", "birch_planks",
    }
    assert all(r.requirements() == Counter({r.shape[0][0]: 4}) for r in variants)


def test_resolve_handles_ids_and_spelling(catalog) -> None:
    assert catalog.resolve(36).name == "oak_planks"
    assert catalog.resolve("oak_plank").name == "oak_planks"
    assert catalog.resolve("minecraft:stick").name == "stick"
    assert catalog.resolve("Crafting Table").name == "crafting_table"
    assert catalog.resolve("unobtainium") is None
    assert catalog.resolve(99999) is None


def test_requires_table_follows_grid_size(catalog) -> None:
    assert not catalog.recipes_for("crafting_table")[0].requires_table
    assert not catalog.recipes_for("stick")[0].requires_table
    assert catalog.recipes_for("wooden_pickaxe")[0].requires_table
    assert catalog.recipes_for("chest")[0].requires_table


def test_oak_planks_craftable_from_two_logs(catalog) -> None:
    options = craftable_items({"oak_log": 2}, catalog)
    by_item = {o.item: o for o in options}

    assert "oak_planks" in by_item
    assert by_item["oak_planks"].requirements == {"oak_log": 1}
    assert by_item["oak_planks"].describe() == "ID 36: oak_planks (oak_log x1)"


def test_nothing_craftable_from_empty_inventory(catalog) -> None:
    assert craftable_items({}, catalog) == []


def test_table_recipes_need_table_access(catalog) -> None:
    counts = {"oak_planks": 3, "stick": 2}

    without = {o.item for o in craftable_items(counts, catalog)}
    assert "wooden_pickaxe" not in without

    nearby = {o.item for o in craftable_items(counts, catalog, table_nearby=True)}
    assert "wooden_pickaxe" in nearby

    carried = {o.item for o in craftable_items({**counts, "crafting_table": 1}, catalog)}
    assert "wooden_pickaxe" in carried


def test_almost_craftable_lists_small_deficits(catalog) -> None:
    near = almost_craftable({"oak_planks": 3}, catalog)
    by_item = {a.item: a for a in near}

    assert by_item["crafting_table"].missing == {"oak_planks": 1}
    assert by_item["crafting_table"].describe() == "ID 315: crafting_table (missing oak_planks x1)"
    # stick is already craftable, so it is not repeated here
    assert "stick" not in by_item


def test_shapeless_recipe_counts_duplicates() -> None:
    recipe = Recipe(result="mix", ingredients=("dust", "dust", "gem"))

    assert recipe.requirements() == Counter({"dust": 2, "gem": 1})
    assert not can_craft(recipe, {"dust": 1, "gem": 1})
    assert missing_for(recipe, {"dust": 1, "gem": 1}) == Counter({"dust": 1})
    assert can_craft(recipe, {"dust": 2, "gem": 1})


def test_select_recipe_picks_first_satisfiable_variant(catalog) -> None:
    recipe = select_recipe(catalog, "stick", {"birch_planks": 2})
    assert recipe is not None
    assert recipe.requirements() == Counter({"birch_planks": 2})
    assert select_recipe(catalog, "stick", {"oak_planks": 1}) is None


def test_build_catalog_rejects_bad_data() -> None:
    with pytest.raises(ValueError):
        build_catalog({"items": {"a": {"id": 1}}, "recipes": {"b": [{"ingredients": ["a"]}]}})
    with pytest.raises(KeyError):
        build_catalog({"items": {"a": {"id": 1}}, "recipes": {"a": [{"ingredients": ["#nope"]}]}})
    with pytest.raises(ValueError):
        build_catalog({"items": {"a": {}}})
