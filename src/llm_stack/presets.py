# src/llm_stack/presets.py

from dataclasses import dataclass
from typing import List, Optional


@dataclass
class RolePreset:
    """Configuration for a logical LLM role."""
    name: str
    temperature: float
    max_tokens: int
    system_prompt: Optional[str] = None
    stop: Optional[List[str]] = None


PLANNER_SYSTEM_PROMPT = """\
You control a Minecraft agent by writing short plans of text commands.

Commands (one per plan entry):
  move <x> <y> <z>
  look entity <name> | look player <name> | look position <x> <y> <z>
  attack <target|nearest>
  mine <x> <y> <z> | mine <block_type> [count]
  place <block> <x> <y> <z>      (use -999 -999 -999 for "next to me")
  craft <item_id|item_name> [count]
  equip <item> [hand|head|torso|legs|feet]
  eat
  chat <message>
  wait [milliseconds]
  follow <player> | stop_follow
  toss <item> [count] [player]

Rules:
- Prefer item IDs from the CRAFTABLE list when crafting.
- Read RECENT FAILURES before planning; never repeat a step that just failed
  the same way.
- Craft missing tools and intermediate items before using them.
"""


def planner_preset(
    *,
    temperature: float = 0.7,
    max_tokens: int = 512,
    system_prompt: Optional[str] = None,
    stop: Optional[List[str]] = None,
) -> RolePreset:
    """Preset for the plan-acquisition role; a specialization text is appended to the base prompt."""
    prompt = PLANNER_SYSTEM_PROMPT
    if system_prompt:
        prompt = f"{prompt}\n{system_prompt.strip()}\n"
    return RolePreset(
        name="planner",
        temperature=temperature,
        max_tokens=max_tokens,
        system_prompt=prompt,
        stop=stop,
    )
