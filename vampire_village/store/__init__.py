"""
Record stores: the shared, subscribable state every client coordinates through.
"""

from typing import Optional

from ..config.game_config import GameConfig, default_config
from ..web.event_emitter import EventEmitter
from .base import GameStore
from .memory import InMemoryStore
from .sqlite_store import SQLiteStore


def create_store(config: GameConfig = default_config, event_emitter: Optional[EventEmitter] = None) -> GameStore:
    """Build the store named by ``config.store``."""
    store_type = config.store.lower()
    if store_type == "memory":
        return InMemoryStore(event_emitter)
    elif store_type == "sqlite":
        return SQLiteStore(config.database_path, event_emitter)
    else:
        raise ValueError(
            f"Unknown store: {config.store}. "
            f"Must be 'memory' or 'sqlite'"
        )


__all__ = ['GameStore', 'InMemoryStore', 'SQLiteStore', 'create_store']
