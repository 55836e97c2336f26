# src/bot_core/testing/__init__.py
"""In-memory doubles for bot_core tests."""

from .fakes import FakeWorldClient, drop_entity, mob_entity, player_entity

__all__ = ["FakeWorldClient", "drop_entity", "mob_entity", "player_entity"]
