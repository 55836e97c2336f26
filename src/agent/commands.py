# src/agent/commands.py
"""
Command interpreter: one plan-step string -> one typed Operation.

The reasoning service writes plan steps as short command lines such as

    move 100 64 -20
    mine iron_ore 3
    craft crafting_table
    toss bread 2 Steve

`parse()` looks only at the first line of its input (planners like to add
prose after the command), tokenizes on whitespace with '...' / "..."
grouping, and binds the remaining tokens positionally for the selected
variant. Everything here is pure: no world access, no logging side effects
beyond debug output.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional, Sequence

from spec.errors import ParseError
from spec.types import (
    EQUIP_DESTINATIONS,
    Attack,
    Chat,
    Craft,
    Eat,
    Equip,
    Follow,
    Look,
    Mine,
    Move,
    Operation,
    Place,
    StopFollow,
    Toss,
    Wait,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tokenizing
# ---------------------------------------------------------------------------


def first_line(text: str) -> str:
    """First non-empty line of `text`, stripped."""
    for line in text.strip().splitlines():
        if line.strip():
            return line.strip()
    return ""


def split_command(line: str) -> List[str]:
    """
    Whitespace tokenizer with quote grouping.

    A token opened with ' or " runs until the matching quote, so
    `place "oak planks" 1 2 3` yields four arguments after the keyword.
    Quotes only open a group at the start of a token; inside a word they
    are literal (`don't`). An unterminated quote swallows the rest of the line.
    """
    parts: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    quoted = False

    for ch in line:
        if quote is not None:
            if ch == quote:
                quote = None
            else:
                current.append(ch)
        elif ch in ("'", '"') and not current and not quoted:
            quote = ch
            quoted = True
        elif ch.isspace():
            if current or quoted:
                parts.append("".join(current))
                current = []
                quoted = False
        else:
            current.append(ch)

    if current or quoted:
        parts.append("".join(current))
    return parts


def _number(token: str, what: str, text: str) -> float:
    try:
        value = float(token)
    except ValueError:
        raise ParseError(f"{what} must be a number, got {token!r}", text) from None
    if math.isnan(value) or math.isinf(value):
        raise ParseError(f"{what} must be finite, got {token!r}", text)
    return value


def _optional_int(token: Optional[str]) -> Optional[int]:
    if token is None:
        return None
    try:
        return int(token)
    except ValueError:
        try:
            value = float(token)
        except ValueError:
            return None
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value)


def _coords(parts: Sequence[str], start: int, text: str):
    return tuple(
        _number(parts[start + i], axis, text) for i, axis in enumerate("xyz")
    )


def _require(parts: Sequence[str], n: int, usage: str, text: str) -> None:
    if len(parts) < n:
        raise ParseError(f"Usage: {usage}", text)


# ---------------------------------------------------------------------------
# Per-variant grammar
# ---------------------------------------------------------------------------


def _parse_move(parts: List[str], line: str) -> Operation:
    _require(parts, 4, "move <x> <y> <z>", line)
    x, y, z = _coords(parts, 1, line)
    return Move(x, y, z)


def _parse_look(parts: List[str], line: str) -> Operation:
    _require(parts, 3, "look entity|player <name> | look position <x> <y> <z>", line)
    subtype = parts[1].lower()
    if subtype in ("entity", "player"):
        return Look(target=subtype, name=" ".join(parts[2:]))
    if subtype == "position":
        _require(parts, 5, "look position <x> <y> <z>", line)
        x, y, z = _coords(parts, 2, line)
        return Look(target="position", x=x, y=y, z=z)
    raise ParseError(f"Unknown look target {parts[1]!r}", line)


def _parse_attack(parts: List[str], line: str) -> Operation:
    _require(parts, 2, "attack <target>", line)
    return Attack(target=" ".join(parts[1:]))


def _parse_mine(parts: List[str], line: str) -> Operation:
    _require(parts, 2, "mine <x> <y> <z> | mine <block_type> [count]", line)

    # Coordinates take precedence when three numbers are present.
    if len(parts) >= 4:
        try:
            x, y, z = _coords(parts, 1, line)
        except ParseError:
            pass
        else:
            return Mine(x=x, y=y, z=z)

    count = _optional_int(parts[2]) if len(parts) > 2 else 1
    return Mine(block_type=parts[1], count=count if count and count > 0 else 1)


def _parse_place(parts: List[str], line: str) -> Operation:
    _require(parts, 5, "place <block> <x> <y> <z>", line)
    x, y, z = _coords(parts, 2, line)
    return Place(block=parts[1], x=x, y=y, z=z)


def _parse_craft(parts: List[str], line: str) -> Operation:
    _require(parts, 2, "craft <item_id|item_name> [count]", line)
    item_id = _optional_int(parts[1]) if parts[1].lstrip("-").isdigit() else None
    count = _optional_int(parts[2]) if len(parts) > 2 else 1
    return Craft(
        item=item_id if item_id is not None else parts[1],
        count=count if count and count > 0 else 1,
    )


def _parse_equip(parts: List[str], line: str) -> Operation:
    _require(parts, 2, "equip <item> [destination]", line)
    destination = parts[2].lower() if len(parts) > 2 else "hand"
    if destination not in EQUIP_DESTINATIONS:
        raise ParseError(
            f"Unknown equip destination {parts[2]!r}; expected one of "
            f"{', '.join(EQUIP_DESTINATIONS)}",
            line,
        )
    return Equip(item=parts[1], destination=destination)


def _parse_eat(parts: List[str], line: str) -> Operation:
    return Eat()


def _parse_chat(parts: List[str], line: str) -> Operation:
    # The message is the raw remainder of the line, quotes and all.
    message = line[len(parts[0]):].strip() if line.lower().startswith(parts[0].lower()) else ""
    if not message:
        message = " ".join(parts[1:])
    if not message:
        raise ParseError("Usage: chat <message>", line)
    return Chat(message=message)


def _parse_wait(parts: List[str], line: str) -> Operation:
    duration = _optional_int(parts[1]) if len(parts) > 1 else None
    return Wait(duration_ms=duration if duration is not None else 1000)


def _parse_follow(parts: List[str], line: str) -> Operation:
    _require(parts, 2, "follow <player>", line)
    return Follow(player=" ".join(parts[1:]))


def _parse_stop_follow(parts: List[str], line: str) -> Operation:
    return StopFollow()


def _parse_toss(parts: List[str], line: str) -> Operation:
    _require(parts, 2, "toss <item> [count] [player]", line)
    count: Optional[int] = None
    player: Optional[str] = None
    if len(parts) > 2:
        count = _optional_int(parts[2])
        rest = parts[3:] if count is not None else parts[2:]
        if rest:
            player = " ".join(rest)
    return Toss(item=parts[1], count=count, player=player)


_PARSERS: Dict[str, Callable[[List[str], str], Operation]] = {
    "move": _parse_move,
    "look": _parse_look,
    "attack": _parse_attack,
    "mine": _parse_mine,
    "place": _parse_place,
    "craft": _parse_craft,
    "equip": _parse_equip,
    "eat": _parse_eat,
    "chat": _parse_chat,
    "wait": _parse_wait,
    "follow": _parse_follow,
    "stop_follow": _parse_stop_follow,
    "toss": _parse_toss,
    "give": _parse_toss,
}

KNOWN_COMMANDS = tuple(_PARSERS)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse(text: str) -> Operation:
    """
    Parse the first line of `text` into an Operation.

    Raises ParseError for an empty line, an unknown command keyword,
    missing arguments, or non-numeric coordinates.
    """
    line = first_line(text)
    parts = split_command(line)
    if not parts:
        raise ParseError("Empty command", text)

    keyword = parts[0].lower()
    parser = _PARSERS.get(keyword)
    if parser is None:
        raise ParseError(f"Unknown command {parts[0]!r}", line)

    op = parser(parts, line)
    log.debug("Parsed %r -> %r", line, op)
    return op


def try_parse(text: str) -> Optional[Operation]:
    """parse() that returns None instead of raising."""
    try:
        return parse(text)
    except ParseError as exc:
        log.debug("Unparseable command %r: %s", text, exc)
        return None
