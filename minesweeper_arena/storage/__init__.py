"""Battle history persistence for Minesweeper Arena."""

from minesweeper_arena.storage.kv import (
    KeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from minesweeper_arena.storage.battle_log import BattleRepository

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "BattleRepository",
    "create_repository",
]


def create_repository(storage: str = "memory", data_dir: str = "./battle_data") -> BattleRepository:
    """Build a BattleRepository for the "memory" or "file" backend."""
    if storage == "file":
        return BattleRepository(JsonFileKeyValueStore(data_dir))
    if storage == "memory":
        return BattleRepository(InMemoryKeyValueStore())
    raise ValueError(f"Unknown storage backend: {storage}")
