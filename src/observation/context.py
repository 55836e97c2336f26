# src/observation/context.py
"""
Context serialization: PerceptionSnapshot -> planner-facing text.

The reasoning service reads this block at the top of every plan request.
Sections, in order (empty ones are omitted):

    STATUS               position, health/food/level, warnings
    EQUIPPED             hand and armour, with catalog ids
    NEARBY RESOURCES     grouped by type, valuable first, top 5
    ENTITIES             hostile (<=3), players, passive (<=2)
    INVENTORY            categorised, rendered as name(id, count)
    CRAFTABLE            items the inventory can make right now
    ALMOST CRAFTABLE     items short by one or two ingredients
    RECENT CHAT          last 3 lines
    RECENT FAILURES      last 5 failures with age and context, plus an
                         escalation when one operation kind failed 3+ times

Item ids come from the ItemCatalog so the planner can answer with
`craft <id>` and get an unambiguous match.
"""

from __future__ import annotations

import time
from collections import Counter
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from spec.types import FailureRecord, PerceptionSnapshot
from semantics.blocks import FIXTURES, inventory_category, resource_value
from semantics.catalog import CRAFTING_TABLE, ItemCatalog
from semantics.crafting import almost_craftable, craftable_items, inventory_to_counts

LOW_HEALTH = 10
LOW_FOOD = 10
MAX_RESOURCE_LINES = 5
REPEATED_FAILURE_THRESHOLD = 3

_CATEGORY_ORDER = ("Tools", "Materials", "Ores", "Food", "Other")
_ARMOR_SLOTS = (("head", "Head"), ("torso", "Torso"), ("legs", "Legs"), ("feet", "Feet"))


_MINE_GUIDANCE = (
    "RE-READ THE TOOL REQUIREMENTS!\n"
    'If error says "need X_pickaxe":\n'
    "   1. Find the X_pickaxe recipe\n"
    "   2. Check INVENTORY - do you have those materials?\n"
    '   3. Check "ALMOST CRAFTABLE" section - is it listed there?\n'
    "   4. If missing materials, craft them FIRST!\n"
    "   5. Example: Need stone_pickaxe but only have 1 stick?\n"
    "      -> Craft stick from planks -> Then craft stone_pickaxe"
)

_PLACE_GUIDANCE = (
    "Can't PLACE item?\n"
    "   - Check NEARBY RESOURCES - does it ALREADY EXIST nearby?\n"
    '   - If NEARBY shows "✓ crafting_table" - DON\'T try to place another one!\n'
    '   - Read the error message - does it say "already exists nearby"? Then SKIP placing!'
)

_GENERAL_GUIDANCE = (
    "Ask yourself: What basic things do I need BEFORE attempting this?\n"
    "   - Can't craft without crafting table? Do you HAVE one in inventory? Is it PLACED on ground?\n"
    "   - Can't craft item? Do you have ALL materials including intermediate items?"
)


def repeated_failure(
    failures: Sequence[FailureRecord],
    threshold: int = REPEATED_FAILURE_THRESHOLD,
) -> Optional[Tuple[str, int]]:
    """First operation kind with at least `threshold` entries in the failure log."""
    counts = Counter(f.action for f in failures)
    for action, n in counts.items():
        if n >= threshold:
            return action, n
    return None


def escalation_notice(failures: Sequence[FailureRecord]) -> str:
    """Reassess-from-scratch notice for a repeatedly failing operation kind, or ""."""
    repeated = repeated_failure(failures)
    if repeated is None:
        return ""
    action, count = repeated
    if action == "mine":
        guidance = _MINE_GUIDANCE
    elif action == "place":
        guidance = _PLACE_GUIDANCE
    else:
        guidance = _GENERAL_GUIDANCE
    return "\n".join(
        [
            f'CRITICAL: "{action}" failed {count} times!',
            "STOP and REASSESS from the beginning!",
            "You are probably missing a PREREQUISITE step OR trying something IMPOSSIBLE.",
            guidance,
            "CRITICAL: Try a DIFFERENT action, not the same one again!",
        ]
    )


class ContextSerializer:
    def __init__(
        self,
        catalog: ItemCatalog,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._catalog = catalog
        self._clock = clock

    def build(self, snapshot: PerceptionSnapshot) -> str:
        sections = [
            self._status(snapshot),
            self._equipment(snapshot),
            self._resources(snapshot),
            self._entities(snapshot),
            self._inventory(snapshot),
            self._craftable(snapshot),
            self._almost_craftable(snapshot),
            self._chat(snapshot),
            self._failures(snapshot),
        ]
        return "\n\n".join(s for s in sections if s)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _item_id(self, name: str) -> str:
        item_id = self._catalog.item_id(name)
        return "?" if item_id is None else str(item_id)

    def _status(self, snap: PerceptionSnapshot) -> str:
        st = snap.status
        warnings = []
        if st.health < LOW_HEALTH:
            warnings.append("LOW HEALTH")
        if st.food < LOW_FOOD:
            warnings.append("LOW FOOD")
        if not snap.is_day:
            warnings.append("NIGHT TIME (more dangerous)")

        lines = [
            "STATUS:",
            f"Position: ({st.position.x:.0f}, {st.position.y:.0f}, {st.position.z:.0f})",
            f"Health: {st.health:.1f}/20 | Food: {st.food:g}/20 | Level: {st.experience_level}",
        ]
        if warnings:
            lines.append("WARNINGS: " + ", ".join(warnings))
        if snap.current_goal:
            lines.append(f"Current goal: {snap.current_goal}")
        return "\n".join(lines)

    def _equipment(self, snap: PerceptionSnapshot) -> str:
        eq = snap.status.equipment
        hand = eq.get("hand")
        lines = ["EQUIPPED:"]
        lines.append(f"  Hand: {hand} (ID:{self._item_id(hand)})" if hand else "  Hand: empty")

        armor = [
            f"{label}:{eq[slot]}(ID:{self._item_id(eq[slot])})"
            for slot, label in _ARMOR_SLOTS
            if eq.get(slot)
        ]
        if armor:
            lines.append("  Armor: " + ", ".join(armor))
        return "\n".join(lines)

    def _resources(self, snap: PerceptionSnapshot) -> str:
        if not snap.nearby_blocks:
            return ""

        groups: Dict[str, Tuple[int, float]] = {}
        for block in snap.nearby_blocks:
            count, closest = groups.get(block.name, (0, float("inf")))
            groups[block.name] = (count + 1, min(closest, block.distance))

        ranked = sorted(
            groups.items(),
            key=lambda kv: (-resource_value(kv[0]), kv[1][1]),
        )[:MAX_RESOURCE_LINES]

        lines = ["NEARBY RESOURCES:"]
        for name, (count, closest) in ranked:
            prefix = "✓ " if name in FIXTURES else "  "
            lines.append(f"{prefix}{name}: {count} found, closest at {closest:.0f}m")
        return "\n".join(lines)

    def _entities(self, snap: PerceptionSnapshot) -> str:
        players = [e for e in snap.nearby_entities if e.type == "player"]
        hostile = [e for e in snap.nearby_entities if e.type == "mob" and e.hostile]
        passive = [e for e in snap.nearby_entities if e.type == "mob" and not e.hostile]

        parts: List[str] = []
        if hostile:
            parts.append("HOSTILE: " + ", ".join(f"{m.name} at {m.distance:.0f}m" for m in hostile[:3]))
        if players:
            parts.append("Players: " + ", ".join(f"{p.name} at {p.distance:.0f}m" for p in players))
        if passive and len(parts) < 2:
            parts.append("Mobs: " + ", ".join(f"{m.name} at {m.distance:.0f}m" for m in passive[:2]))

        if not parts:
            return ""
        return "ENTITIES:\n  " + "\n  ".join(parts)

    def _inventory(self, snap: PerceptionSnapshot) -> str:
        if not snap.inventory:
            return "INVENTORY: Empty"

        buckets: Dict[str, List[str]] = {c: [] for c in _CATEGORY_ORDER}
        for item in snap.inventory:
            display = f"{item.name}({self._item_id(item.name)}, {item.count})"
            buckets[inventory_category(item.name)].append(display)

        lines = [f"INVENTORY ({len(snap.inventory)} item types):"]
        for category in _CATEGORY_ORDER:
            if buckets[category]:
                lines.append(f"  {category}: " + ", ".join(buckets[category]))
        return "\n".join(lines)

    def _table_nearby(self, snap: PerceptionSnapshot) -> bool:
        return any(b.name == CRAFTING_TABLE for b in snap.nearby_blocks)

    def _craftable(self, snap: PerceptionSnapshot) -> str:
        options = craftable_items(
            inventory_to_counts(snap.inventory),
            self._catalog,
            table_nearby=self._table_nearby(snap),
        )
        if not options:
            return "CRAFTABLE:\n  Nothing yet - need materials"
        return "CRAFTABLE:\n  " + "\n  ".join(o.describe() for o in options)

    def _almost_craftable(self, snap: PerceptionSnapshot) -> str:
        near = almost_craftable(
            inventory_to_counts(snap.inventory),
            self._catalog,
            table_nearby=self._table_nearby(snap),
        )
        if not near:
            return ""
        return "ALMOST CRAFTABLE:\n  " + "\n  ".join(a.describe() for a in near)

    def _chat(self, snap: PerceptionSnapshot) -> str:
        if not snap.recent_chat:
            return ""
        lines = [f"  [{m.username}]: {m.message}" for m in snap.recent_chat[-3:]]
        return "RECENT CHAT:\n" + "\n".join(lines)

    def _failures(self, snap: PerceptionSnapshot, now: Optional[float] = None) -> str:
        if not snap.recent_failures:
            return ""
        now = self._clock() if now is None else now
        lines = []
        for f in snap.recent_failures[-5:]:
            elapsed = max(0, int(now - f.timestamp))
            context = f" ({f.context})" if f.context else ""
            lines.append(f"  [{elapsed}s ago] {f.action} failed: {f.reason}{context}")
        notice = escalation_notice(snap.recent_failures)
        if notice:
            lines.append(notice)
        return "RECENT FAILURES (learn from these!):\n" + "\n".join(lines)
