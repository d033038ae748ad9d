"""Tests for the key/value backends and the battle history repository."""

import asyncio

import pytest

from games.minesweeper.config import GameConfig
from minesweeper_arena.orchestration.events import GameResult
from minesweeper_arena.storage import (
    BattleRepository,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    create_repository,
)


# ── helpers ───────────────────────────────────────────────────────────────────


CONFIG = GameConfig(rows=9, cols=9, mine_count=10)


def _run(coro):
    return asyncio.run(coro)


def _result(model_id, score=50):
    return GameResult(
        model_id=model_id, outcome="stuck", score=score, moves=60,
        duration_ms=1000, safe_revealed=36, total_safe=71, mines_hit=0,
    )


async def _seed_history(repository, count=3):
    """count battles created one second apart; even-numbered ones completed."""
    for i in range(count):
        battle_id = f"battle_{i}"
        await repository.insert_battle(battle_id, CONFIG, ["a", "b"], board_seed=i, created_at=1000 * (i + 1))
        if i % 2 == 0:
            await repository.update_battle_completion(battle_id, "complete", [_result("a")])


# ── TestKeyValueStore ─────────────────────────────────────────────────────────


@pytest.fixture(params=["memory", "file"])
def kv(request, tmp_path):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return JsonFileKeyValueStore(tmp_path)


class TestKeyValueStore:
    def test_get_set(self, kv):
        async def scenario():
            assert await kv.get("missing") is None
            await kv.set("k", {"a": [1, 2]})
            return await kv.get("k")

        assert _run(scenario()) == {"a": [1, 2]}

    def test_sorted_set_ranges(self, kv):
        async def scenario():
            for member, score in [("c", 3), ("a", 1), ("b", 2), ("d", 4)]:
                await kv.zadd("z", score, member)
            return (
                await kv.zrange("z", 0, -1),
                await kv.zrange("z", 0, 1, rev=True),
                await kv.zrange("z", 1, 2),
                await kv.zrange("z", -2, -1),
                await kv.zrange("z", 5, 9),
                await kv.zrange("nothing", 0, -1),
                await kv.zcard("z"),
            )

        everything, newest, middle, last_two, past_end, empty, size = _run(scenario())
        assert everything == ["a", "b", "c", "d"]
        assert newest == ["d", "c"]
        assert middle == ["b", "c"]
        assert last_two == ["c", "d"]
        assert past_end == []
        assert empty == []
        assert size == 4

    def test_zadd_updates_score(self, kv):
        async def scenario():
            await kv.zadd("z", 1, "a")
            await kv.zadd("z", 2, "b")
            await kv.zadd("z", 3, "a")
            return await kv.zrange("z", 0, -1), await kv.zcard("z")

        assert _run(scenario()) == (["b", "a"], 2)


class TestJsonFileKeyValueStore:
    def test_survives_restart(self, tmp_path):
        async def write():
            kv = JsonFileKeyValueStore(tmp_path / "data")
            await kv.set("battle:1", {"id": "1"})
            await kv.zadd("battles:all", 5, "1")

        async def read():
            kv = JsonFileKeyValueStore(tmp_path / "data")
            return await kv.get("battle:1"), await kv.zrange("battles:all", 0, -1)

        _run(write())
        assert _run(read()) == ({"id": "1"}, ["1"])
        assert (tmp_path / "data" / "battles.json").exists()
        assert not (tmp_path / "data" / "battles.json.tmp").exists()


# ── TestBattleRepository ──────────────────────────────────────────────────────


class TestBattleRepository:
    def setup_method(self):
        self.repository = BattleRepository(InMemoryKeyValueStore())

    def test_insert_and_read_back(self):
        async def scenario():
            await self.repository.insert_battle("battle_1", CONFIG, ["a", "b"], board_seed=7, created_at=1234)
            await self.repository.insert_frame("battle_1", "a", 0, "reveal", 4, 4, "H0")
            await self.repository.insert_frame("battle_1", "a", 1, "flag", 0, 0, "F0")
            await self.repository.insert_result("battle_1", "a", _result("a", 80))
            return await self.repository.get_completed_battle("battle_1")

        battle = _run(scenario())
        assert battle["id"] == "battle_1"
        assert battle["config"] == {"rows": 9, "cols": 9, "mineCount": 10}
        assert battle["agentIds"] == ["a", "b"]
        assert battle["status"] == "pending"
        assert battle["boardSeed"] == 7
        assert battle["createdAt"] == 1234
        assert battle["completedAt"] is None
        assert [f["frameIndex"] for f in battle["frames"]["a"]] == [0, 1]
        assert battle["frames"]["a"][1] == {
            "frameIndex": 1, "action": "flag", "row": 0, "col": 0, "boardEncoding": "F0",
        }
        assert battle["frames"]["b"] == []
        assert battle["results"]["a"]["score"] == 80
        assert battle["results"]["a"]["modelId"] == "a"

    def test_missing_battle(self):
        assert _run(self.repository.get_completed_battle("nope")) is None

    def test_completion(self):
        async def scenario():
            await self.repository.insert_battle("battle_1", CONFIG, ["a"], board_seed=7)
            await self.repository.update_battle_completion("battle_1", "complete", [_result("a", 70)])
            return await self.repository.get_completed_battle("battle_1")

        battle = _run(scenario())
        assert battle["status"] == "complete"
        assert battle["rankings"][0]["score"] == 70
        assert battle["completedAt"] >= battle["createdAt"]

    def test_completion_without_metadata_is_ignored(self, caplog):
        async def scenario():
            await self.repository.update_battle_completion("ghost", "complete", [])
            return await self.repository.count_battles("complete")

        assert _run(scenario()) == 0
        assert "No metadata for battle ghost" in caplog.text

    def test_list_all_newest_first(self):
        async def scenario():
            await _seed_history(self.repository, 3)
            return await self.repository.list_battles(), await self.repository.count_battles()

        battles, total = _run(scenario())
        assert [b["id"] for b in battles] == ["battle_2", "battle_1", "battle_0"]
        assert total == 3
        assert set(battles[0]) == {"id", "config", "agentIds", "status", "rankings", "createdAt", "completedAt"}

    def test_list_by_status(self):
        async def scenario():
            await _seed_history(self.repository, 5)
            return (
                await self.repository.list_battles("complete"),
                await self.repository.count_battles("complete"),
                await self.repository.list_battles("pending"),
                await self.repository.count_battles("pending"),
            )

        complete, complete_total, pending, pending_total = _run(scenario())
        assert sorted(b["id"] for b in complete) == ["battle_0", "battle_2", "battle_4"]
        assert complete_total == 3
        assert [b["id"] for b in pending] == ["battle_3", "battle_1"]
        assert pending_total == 2

    def test_pagination(self):
        async def scenario():
            await _seed_history(self.repository, 5)
            return (
                await self.repository.list_battles(limit=2),
                await self.repository.list_battles(limit=2, offset=2),
                await self.repository.list_battles(limit=2, offset=4),
                await self.repository.list_battles(limit=0),
                await self.repository.list_battles("complete", limit=1, offset=10),
            )

        first, second, third, none, past_end = _run(scenario())
        assert [b["id"] for b in first] == ["battle_4", "battle_3"]
        assert [b["id"] for b in second] == ["battle_2", "battle_1"]
        assert [b["id"] for b in third] == ["battle_0"]
        assert none == []
        assert past_end == []


class TestCreateRepository:
    def test_memory(self):
        assert isinstance(create_repository("memory").kv, InMemoryKeyValueStore)

    def test_file(self, tmp_path):
        repository = create_repository("file", str(tmp_path))
        assert isinstance(repository.kv, JsonFileKeyValueStore)
        assert repository.kv.path == tmp_path / "battles.json"

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_repository("redis")
