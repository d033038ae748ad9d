"""
Key/value backends for battle history.

The battle repository needs plain get/set of JSON documents plus one
sorted set for listing finished battles newest first. zrange follows
Redis semantics: inclusive indexes, negative indexes count from the end.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Async key/value store with a minimal sorted-set API."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Value stored under key, or None."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    async def zadd(self, key: str, score: float, member: str) -> None:
        """Add member to a sorted set, or update its score."""
        pass

    @abstractmethod
    async def zrange(self, key: str, start: int, end: int, rev: bool = False) -> List[str]:
        """Members ranked start..end inclusive, ascending (descending with rev)."""
        pass

    @abstractmethod
    async def zcard(self, key: str) -> int:
        pass


def _slice_ranked(members: Dict[str, float], start: int, end: int, rev: bool) -> List[str]:
    ranked = sorted(members.items(), key=lambda item: (item[1], item[0]), reverse=rev)
    length = len(ranked)
    if start < 0:
        start = max(0, length + start)
    if end < 0:
        end = length + end
    if start > end or start >= length:
        return []
    return [member for member, _ in ranked[start:end + 1]]


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Everything is lost on restart."""

    def __init__(self):
        self._values: Dict[str, Any] = {}
        self._sorted_sets: Dict[str, Dict[str, float]] = {}

    async def get(self, key: str) -> Optional[Any]:
        return self._values.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    async def zadd(self, key: str, score: float, member: str) -> None:
        self._sorted_sets.setdefault(key, {})[member] = score

    async def zrange(self, key: str, start: int, end: int, rev: bool = False) -> List[str]:
        return _slice_ranked(self._sorted_sets.get(key, {}), start, end, rev)

    async def zcard(self, key: str) -> int:
        return len(self._sorted_sets.get(key, {}))


class JsonFileKeyValueStore(InMemoryKeyValueStore):
    """
    In-memory store mirrored to one JSON document on disk.

    Every write rewrites the file through a temporary sibling, so a crash
    mid-write leaves the previous document intact.
    """

    FILENAME = "battles.json"

    def __init__(self, data_dir: Union[str, Path]):
        super().__init__()
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / self.FILENAME
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        data = json.loads(self.path.read_text())
        self._values = data.get("values", {})
        self._sorted_sets = data.get("sorted_sets", {})
        logger.debug("Loaded %d keys from %s", len(self._values), self.path)

    def _save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps({
            "values": self._values,
            "sorted_sets": self._sorted_sets,
        }))
        tmp_path.replace(self.path)

    async def set(self, key: str, value: Any) -> None:
        await super().set(key, value)
        self._save()

    async def zadd(self, key: str, score: float, member: str) -> None:
        await super().zadd(key, score, member)
        self._save()
