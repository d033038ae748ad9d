"""
Battle history persistence.

Stores battle metadata, per-agent replay frames and scored results in a
KeyValueStore:

    battle:{id}                   metadata (config, agents, status, rankings)
    battle:{id}:frames:{agent}    list of frames, one per applied move
    battle:{id}:results           {agent: GameResult}
    battles:completed             sorted set, score = completion time (ms)
    battles:all                   sorted set, score = creation time (ms)

All documents use the camelCase wire form.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from games.minesweeper.config import GameConfig
from minesweeper_arena.orchestration.events import GameResult
from minesweeper_arena.storage.kv import KeyValueStore


logger = logging.getLogger(__name__)

COMPLETED_INDEX = "battles:completed"
ALL_INDEX = "battles:all"


def _battle_key(battle_id: str) -> str:
    return f"battle:{battle_id}"


def _frames_key(battle_id: str, agent_id: str) -> str:
    return f"battle:{battle_id}:frames:{agent_id}"


def _results_key(battle_id: str) -> str:
    return f"battle:{battle_id}:results"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _summary(metadata: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": metadata["id"],
        "config": metadata["config"],
        "agentIds": metadata["agentIds"],
        "status": metadata["status"],
        "rankings": metadata["rankings"],
        "createdAt": metadata["createdAt"],
        "completedAt": metadata["completedAt"],
    }


class BattleRepository:
    """Reads and writes battle history through a KeyValueStore."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    async def insert_battle(
        self,
        battle_id: str,
        config: GameConfig,
        agent_ids: List[str],
        board_seed: int,
        created_at: Optional[int] = None,
    ) -> None:
        created_at = created_at if created_at is not None else _now_ms()
        metadata = {
            "id": battle_id,
            "config": config.model_dump(by_alias=True),
            "agentIds": list(agent_ids),
            "status": "pending",
            "rankings": None,
            "boardSeed": board_seed,
            "createdAt": created_at,
            "completedAt": None,
        }
        await self.kv.set(_battle_key(battle_id), metadata)
        await self.kv.zadd(ALL_INDEX, created_at, battle_id)

    async def update_battle_completion(
        self,
        battle_id: str,
        status: str,
        rankings: Optional[List[GameResult]],
    ) -> None:
        metadata = await self.kv.get(_battle_key(battle_id))
        if metadata is None:
            logger.warning("No metadata for battle %s; completion not recorded", battle_id)
            return

        completed_at = _now_ms()
        metadata = dict(metadata)
        metadata["status"] = status
        metadata["rankings"] = [r.to_wire() for r in rankings] if rankings is not None else None
        metadata["completedAt"] = completed_at
        await self.kv.set(_battle_key(battle_id), metadata)

        if status == "complete":
            await self.kv.zadd(COMPLETED_INDEX, completed_at, battle_id)

    async def insert_frame(
        self,
        battle_id: str,
        agent_id: str,
        frame_index: int,
        action: Optional[str],
        row: Optional[int],
        col: Optional[int],
        board_encoding: str,
    ) -> None:
        key = _frames_key(battle_id, agent_id)
        frames = list(await self.kv.get(key) or [])
        frames.append({
            "frameIndex": frame_index,
            "action": action,
            "row": row,
            "col": col,
            "boardEncoding": board_encoding,
        })
        await self.kv.set(key, frames)

    async def insert_result(self, battle_id: str, agent_id: str, result: GameResult) -> None:
        key = _results_key(battle_id)
        results = dict(await self.kv.get(key) or {})
        results[agent_id] = result.to_wire()
        await self.kv.set(key, results)

    async def get_completed_battle(self, battle_id: str) -> Optional[Dict[str, Any]]:
        """Full replay data for one battle, or None if it was never stored."""
        metadata = await self.kv.get(_battle_key(battle_id))
        if metadata is None:
            return None

        frames = {}
        for agent_id in metadata["agentIds"]:
            frames[agent_id] = list(await self.kv.get(_frames_key(battle_id, agent_id)) or [])

        return {
            **metadata,
            "frames": frames,
            "results": dict(await self.kv.get(_results_key(battle_id)) or {}),
        }

    async def _load_summaries(self, battle_ids: List[str]) -> List[Dict[str, Any]]:
        summaries = []
        for battle_id in battle_ids:
            metadata = await self.kv.get(_battle_key(battle_id))
            if metadata is not None:
                summaries.append(_summary(metadata))
        return summaries

    async def list_battles(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Battle summaries, newest first.

        Completed battles are ordered by completion time; other queries by
        creation time.
        """
        if limit <= 0:
            return []
        if status == "complete":
            battle_ids = await self.kv.zrange(COMPLETED_INDEX, offset, offset + limit - 1, rev=True)
            return await self._load_summaries(battle_ids)

        battle_ids = await self.kv.zrange(ALL_INDEX, 0, -1, rev=True)
        summaries = await self._load_summaries(battle_ids)
        if status:
            summaries = [s for s in summaries if s["status"] == status]
        return summaries[offset:offset + limit]

    async def count_battles(self, status: Optional[str] = None) -> int:
        if status == "complete":
            return await self.kv.zcard(COMPLETED_INDEX)
        if not status:
            return await self.kv.zcard(ALL_INDEX)
        battle_ids = await self.kv.zrange(ALL_INDEX, 0, -1)
        summaries = await self._load_summaries(battle_ids)
        return sum(1 for s in summaries if s["status"] == status)
