# tests/test_commands.py
"""
Tests for agent.commands.

Covers:
- coordinate vs type mode for mine
- quoting and first-line handling
- describe() -> parse() stability across every operation kind
- ParseError on unknown commands and bad arguments
"""

from __future__ import annotations

import pytest

from agent.commands import first_line, parse, split_command, try_parse
from spec.errors import ParseError
from spec.types import (
    Attack,
    Chat,
    Craft,
    Eat,
    Equip,
    Follow,
    Look,
    Mine,
    Move,
    Place,
    StopFollow,
    Toss,
    Wait,
)


def test_mine_coordinate_mode() -> None:
    op = parse("mine 10 64 10")
    assert op == Mine(x=10, y=64, z=10)
    assert op.by_coordinates


def test_mine_type_mode_with_count() -> None:
    assert parse("mine iron_ore 3") == Mine(block_type="iron_ore", count=3)
    assert parse("mine oak_log") == Mine(block_type="oak_log", count=1)


def test_mine_bad_count_defaults_to_one() -> None:
    assert parse("mine stone lots") == Mine(block_type="stone", count=1)


def test_unknown_command_raises() -> None:
    with pytest.raises(ParseError):
        parse("bogus")


def test_empty_command_raises() -> None:
    with pytest.raises(ParseError):
        parse("   \n  ")


def test_move_needs_numeric_coordinates() -> None:
    with pytest.raises(ParseError):
        parse("move 1 two 3")
    with pytest.raises(ParseError):
        parse("move 1 2")


def test_only_first_line_is_parsed() -> None:
    op = parse("move 100 64 -20\nThis moves me closer to the trees.")
    assert op == Move(100, 64, -20)


def test_quoted_tokens_group() -> None:
    assert split_command('place "oak planks" 1 2 3') == ["place", "oak planks", "1", "2", "3"]
    assert parse("place 'oak planks' 1 2 3") == Place(block="oak planks", x=1, y=2, z=3)


def test_quotes_inside_a_word_are_literal() -> None:
    assert split_command("toss don't_eat 2") == ["toss", "don't_eat", "2"]
    assert split_command('look player say"hi there"') == ["look", "player", 'say"hi', 'there"']
    assert split_command("place 'oak planks 1 2 3") == ["place", "oak planks 1 2 3"]


def test_first_line_skips_blank_lines() -> None:
    assert first_line("\n\n  craft 36 \nrest") == "craft 36"


def test_craft_by_id_and_name() -> None:
    assert parse("craft 36 4") == Craft(item=36, count=4)
    assert parse("craft crafting_table") == Craft(item="crafting_table", count=1)


def test_equip_destination_validation() -> None:
    assert parse("equip iron_helmet head") == Equip(item="iron_helmet", destination="head")
    assert parse("equip stone_pickaxe") == Equip(item="stone_pickaxe", destination="hand")
    with pytest.raises(ParseError):
        parse("equip stone_pickaxe pocket")


def test_toss_variants() -> None:
    assert parse("toss bread") == Toss(item="bread")
    assert parse("toss bread 2") == Toss(item="bread", count=2)
    assert parse("toss bread 2 Steve") == Toss(item="bread", count=2, player="Steve")
    assert parse("give bread Steve") == Toss(item="bread", player="Steve")


def test_chat_keeps_raw_remainder() -> None:
    assert parse('chat Hello "friend", how are you?') == Chat(message='Hello "friend", how are you?')
    with pytest.raises(ParseError):
        parse("chat")


def test_look_targets() -> None:
    assert parse("look player Steve") == Look(target="player", name="Steve")
    assert parse("look position 1 2 3") == Look(target="position", x=1, y=2, z=3)
    with pytest.raises(ParseError):
        parse("look sideways now")


def test_wait_defaults() -> None:
    assert parse("wait") == Wait(duration_ms=1000)
    assert parse("wait 2500") == Wait(duration_ms=2500)


def test_try_parse_returns_none() -> None:
    assert try_parse("dance wildly") is None
    assert try_parse("eat") == Eat()


@pytest.mark.parametrize(
    "op",
    [
        Move(1, 2.5, -3),
        Look(target="entity", name="zombie"),
        Look(target="position", x=4, y=64, z=-1),
        Attack(target="nearest"),
        Mine(x=10, y=64, z=10),
        Mine(block_type="iron_ore", count=3),
        Place(block="crafting_table", x=-999, y=-999, z=-999),
        Craft(item=315, count=1),
        Craft(item="oak_planks", count=8),
        Equip(item="diamond_boots", destination="feet"),
        Eat(),
        Chat(message="On my way!"),
        Wait(duration_ms=500),
        Follow(player="Alex"),
        StopFollow(),
        Toss(item="cobblestone", count=16, player="Alex"),
    ],
)
def test_describe_reparses_to_same_operation(op) -> None:
    assert parse(op.describe()) == op
