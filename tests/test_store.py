"""Tests for battle events, the state reducer and the BattleStore.

Coverage:
- Battle registration, ids, lookups
- apply_event: purity, per-event effects, unknown agents
- Pub/sub: fan-out order, unsubscribe (also mid fan-out), failing listeners,
  reentrant emits
- Catch-up for late subscribers
- Fire-and-forget persistence, failing repositories, no event loop
- Eviction of expired battles
"""

import asyncio
import logging
import re

import pytest

from games.minesweeper.board import get_encoded_delta
from games.minesweeper.config import GameConfig
from minesweeper_arena.orchestration.events import (
    CompleteEvent,
    DoneEvent,
    ErrorEvent,
    GameResult,
    InitEvent,
    MoveEvent,
    parse_event,
)
from minesweeper_arena.orchestration.state import (
    ModelState,
    apply_event,
    create_initial_state,
    to_dict,
)
from minesweeper_arena.orchestration.store import BattleNotFoundError, BattleStore
from minesweeper_arena.storage import create_repository


# ── helpers ───────────────────────────────────────────────────────────────────


CONFIG = GameConfig(rows=2, cols=2, mine_count=1)
AGENTS = ["alpha", "beta"]


def _init():
    return InitEvent(config=CONFIG, agent_ids=AGENTS)


def _move(agent_id="alpha", encoding="1H\nHH", row=0, col=0, action="reveal"):
    return MoveEvent(
        agent_id=agent_id,
        action=action,
        row=row,
        col=col,
        board_encoding=encoding,
        delta=get_encoded_delta(None, encoding, CONFIG.rows, CONFIG.cols),
    )


def _complete(agent_id="alpha", outcome="stuck", moves=1, safe_revealed=1, mines_hit=0):
    return CompleteEvent(
        agent_id=agent_id,
        outcome=outcome,
        moves=moves,
        safe_revealed=safe_revealed,
        mines_hit=mines_hit,
        duration_ms=5,
    )


def _result(model_id="alpha", score=33):
    return GameResult(
        model_id=model_id, outcome="stuck", score=score, moves=1,
        duration_ms=5, safe_revealed=1, total_safe=3, mines_hit=0,
    )


def _finish(store, battle_id):
    """Drive a battle to complete: both agents play one move and finish."""
    store.emit(battle_id, _init())
    for agent_id in AGENTS:
        store.emit(battle_id, _move(agent_id))
        store.emit(battle_id, _complete(agent_id))
    store.emit(battle_id, DoneEvent(rankings=[_result("alpha"), _result("beta")]))


class _FailingRepository:
    async def insert_battle(self, *args, **kwargs):
        raise IOError("disk full")

    insert_frame = insert_result = update_battle_completion = insert_battle


# ── TestEvents ────────────────────────────────────────────────────────────────


class TestEvents:
    def test_wire_form_is_camel_case(self):
        wire = _move().to_wire()
        assert wire["type"] == "move"
        assert wire["agentId"] == "alpha"
        assert wire["boardEncoding"] == "1H\nHH"
        assert wire["delta"] == [[0, 0, 1]]

    def test_init_carries_wire_config(self):
        assert _init().to_wire()["config"] == {"rows": 2, "cols": 2, "mineCount": 1}

    def test_parse_event_from_wire(self):
        event = _complete(outcome="loss", mines_hit=1)
        assert parse_event(event.to_wire()) == event

    def test_parse_event_dispatches_on_type(self):
        event = parse_event({"type": "error", "message": "boom", "code": "AGENT_ERROR", "agentId": "beta"})
        assert isinstance(event, ErrorEvent)
        assert event.agent_id == "beta"

    def test_unknown_event_type_rejected(self):
        with pytest.raises(ValueError):
            parse_event({"type": "tick"})

    def test_events_are_frozen(self):
        with pytest.raises(ValueError):
            _move().row = 1


# ── TestReducer ───────────────────────────────────────────────────────────────


class TestReducer:
    def setup_method(self):
        self.state = create_initial_state("battle_1", CONFIG, AGENTS, board_seed=7, created_at=1000)

    def test_initial_state(self):
        assert self.state.status == "pending"
        assert self.state.agent_states == {"alpha": ModelState(), "beta": ModelState()}
        assert self.state.rankings is None

    def test_init_starts_battle(self):
        assert apply_event(self.state, _init()).status == "running"

    def test_move_updates_agent(self):
        state = apply_event(apply_event(self.state, _init()), _move(encoding="1H\nHH"))
        state = apply_event(state, _move(encoding="1F\nHH", row=0, col=1, action="flag"))
        alpha = state.agent_states["alpha"]
        assert alpha.status == "playing"
        assert alpha.moves == 2
        assert alpha.board_state == "1F\nHH"
        assert alpha.previous_board_state == "1H\nHH"
        assert alpha.last_move == {"action": "flag", "row": 0, "col": 1}
        assert state.agent_states["beta"] == ModelState()

    def test_complete_sets_final_stats(self):
        state = apply_event(self.state, _complete(outcome="loss", moves=4, safe_revealed=2, mines_hit=1))
        alpha = state.agent_states["alpha"]
        assert (alpha.status, alpha.outcome, alpha.moves, alpha.safe_revealed, alpha.mines_hit) == (
            "complete", "loss", 4, 2, 1,
        )

    def test_done_stores_rankings(self):
        state = apply_event(self.state, DoneEvent(rankings=[_result()]))
        assert state.status == "complete"
        assert state.rankings == [_result()]

    def test_error_changes_nothing(self):
        event = ErrorEvent(message="boom", code="AGENT_ERROR", agent_id="alpha")
        assert apply_event(self.state, event) == self.state

    def test_input_state_untouched(self):
        apply_event(self.state, _init())
        apply_event(self.state, _move())
        assert self.state.status == "pending"
        assert self.state.agent_states["alpha"].moves == 0

    def test_unknown_agent(self):
        with pytest.raises(KeyError):
            apply_event(self.state, _move(agent_id="gamma"))

    def test_to_dict(self):
        data = to_dict(apply_event(self.state, _move()))
        assert data["battleId"] == "battle_1"
        assert data["config"] == {"rows": 2, "cols": 2, "mineCount": 1}
        assert data["agentStates"]["alpha"]["boardState"] == "1H\nHH"
        assert data["agentStates"]["alpha"]["lastMove"] == {"action": "reveal", "row": 0, "col": 0}
        assert data["subscriberCount"] == 0
        assert data["boardSeed"] == 7


# ── TestRegistry ──────────────────────────────────────────────────────────────


class TestRegistry:
    def test_create_battle(self):
        store = BattleStore()
        battle_id = store.create_battle(CONFIG, AGENTS, seed=42)
        assert re.fullmatch(r"battle_\d+_[0-9a-f]{8}", battle_id)
        state = store.get_battle(battle_id)
        assert state.status == "pending"
        assert state.board_seed == 42
        assert state.agent_ids == AGENTS
        assert store.list_battle_ids() == [battle_id]

    def test_random_seed(self):
        store = BattleStore()
        seed = store.get_battle(store.create_battle(CONFIG, AGENTS)).board_seed
        assert 0 <= seed < 2147483647

    def test_ids_are_unique(self):
        store = BattleStore()
        ids = {store.create_battle(CONFIG, AGENTS) for _ in range(50)}
        assert len(ids) == 50

    @pytest.mark.parametrize("agent_ids", [[], ["alpha", "alpha"]])
    def test_bad_agent_lists(self, agent_ids):
        with pytest.raises(ValueError):
            BattleStore().create_battle(CONFIG, agent_ids)

    def test_unknown_battle(self):
        store = BattleStore()
        assert store.find_battle("battle_nope") is None
        with pytest.raises(BattleNotFoundError):
            store.get_battle("battle_nope")
        with pytest.raises(BattleNotFoundError):
            store.subscribe("battle_nope", print)
        with pytest.raises(KeyError):
            store.emit("battle_nope", _init())


# ── TestPubSub ────────────────────────────────────────────────────────────────


class TestPubSub:
    def setup_method(self):
        self.store = BattleStore()
        self.battle_id = self.store.create_battle(CONFIG, AGENTS, seed=1)

    def test_fan_out_in_subscription_order(self):
        seen = []
        self.store.subscribe(self.battle_id, lambda e: seen.append(("first", e.type)))
        self.store.subscribe(self.battle_id, lambda e: seen.append(("second", e.type)))
        self.store.emit(self.battle_id, _init())
        assert seen == [("first", "init"), ("second", "init")]

    def test_listeners_see_state_after_event(self):
        statuses = []
        self.store.subscribe(
            self.battle_id,
            lambda e: statuses.append(self.store.get_battle(self.battle_id).status),
        )
        self.store.emit(self.battle_id, _init())
        assert statuses == ["running"]

    def test_unsubscribe_is_idempotent(self):
        seen = []
        unsubscribe = self.store.subscribe(self.battle_id, seen.append)
        unsubscribe()
        unsubscribe()
        self.store.emit(self.battle_id, _init())
        assert seen == []

    def test_subscribers_survive_state_changes(self):
        seen = []
        self.store.subscribe(self.battle_id, seen.append)
        _finish(self.store, self.battle_id)
        assert [e.type for e in seen] == ["init", "move", "complete", "move", "complete", "done"]
        assert to_dict(self.store.get_battle(self.battle_id))["subscriberCount"] == 1

    def test_unsubscribe_during_fan_out(self):
        seen = []
        handles = {}

        def first(event):
            seen.append(("first", event.type))
            handles["first"]()
            handles["second"]()

        handles["first"] = self.store.subscribe(self.battle_id, first)
        handles["second"] = self.store.subscribe(self.battle_id, lambda e: seen.append(("second", e.type)))

        self.store.emit(self.battle_id, _init())
        self.store.emit(self.battle_id, _move())
        # The snapshot taken before fan-out still reaches "second" once
        assert seen == [("first", "init"), ("second", "init")]

    def test_failing_listener_is_isolated(self, caplog):
        seen = []

        def broken(event):
            raise ValueError("listener bug")

        self.store.subscribe(self.battle_id, broken)
        self.store.subscribe(self.battle_id, seen.append)
        with caplog.at_level(logging.ERROR):
            self.store.emit(self.battle_id, _init())
        assert [e.type for e in seen] == ["init"]
        assert self.store.get_battle(self.battle_id).status == "running"
        assert "Listener failed" in caplog.text

    def test_reentrant_emit_is_rejected(self):
        errors = []

        def echo(event):
            try:
                self.store.emit(self.battle_id, _move())
            except RuntimeError as e:
                errors.append(e)

        self.store.subscribe(self.battle_id, echo)
        self.store.emit(self.battle_id, _init())
        assert len(errors) == 1
        assert self.store.get_battle(self.battle_id).agent_states["alpha"].moves == 0

    def test_emit_to_other_battle_from_listener(self):
        other = self.store.create_battle(CONFIG, AGENTS, seed=2)
        self.store.subscribe(self.battle_id, lambda e: self.store.emit(other, _init()))
        self.store.emit(self.battle_id, _init())
        assert self.store.get_battle(other).status == "running"


# ── TestCatchUp ───────────────────────────────────────────────────────────────


class TestCatchUp:
    def setup_method(self):
        self.store = BattleStore()
        self.battle_id = self.store.create_battle(CONFIG, AGENTS, seed=1)

    def test_pending_battle_has_no_backlog(self):
        assert self.store.catch_up(self.battle_id) == []

    def test_running_battle(self):
        self.store.emit(self.battle_id, _init())
        self.store.emit(self.battle_id, _move(encoding="1H\nHH"))
        self.store.emit(self.battle_id, _move(encoding="1F\nHH", row=0, col=1, action="flag"))

        events = self.store.catch_up(self.battle_id)
        assert [e.type for e in events] == ["init", "move"]
        move = events[1]
        assert move.agent_id == "alpha"
        assert (move.action, move.row, move.col) == ("flag", 0, 1)
        assert move.board_encoding == "1F\nHH"
        # Delta against an empty board, not against the previous move
        assert move.delta == [(0, 0, 1), (0, 1, "F")]

    def test_finished_battle(self):
        _finish(self.store, self.battle_id)
        events = self.store.catch_up(self.battle_id)
        assert [e.type for e in events] == ["init", "move", "complete", "move", "complete", "done"]
        assert events[-1].rankings == [_result("alpha"), _result("beta")]

    def test_completed_agent_without_moves(self):
        self.store.emit(self.battle_id, _init())
        self.store.emit(self.battle_id, _complete("beta", outcome="error", moves=0, safe_revealed=0))
        events = self.store.catch_up(self.battle_id)
        assert [(e.type, getattr(e, "agent_id", None)) for e in events] == [
            ("init", None), ("complete", "beta"),
        ]

    def test_catch_up_does_not_notify(self):
        seen = []
        self.store.emit(self.battle_id, _init())
        self.store.subscribe(self.battle_id, seen.append)
        self.store.catch_up(self.battle_id)
        assert seen == []


# ── TestPersistence ───────────────────────────────────────────────────────────


class TestPersistence:
    def test_events_are_persisted(self):
        async def scenario():
            repository = create_repository("memory")
            store = BattleStore(repository)
            battle_id = store.create_battle(CONFIG, AGENTS, seed=9)
            _finish(store, battle_id)
            await store.drain()
            assert store.pending_writes == 0
            return battle_id, await repository.get_completed_battle(battle_id)

        battle_id, stored = asyncio.run(scenario())
        assert stored["id"] == battle_id
        assert stored["status"] == "complete"
        assert stored["boardSeed"] == 9
        assert stored["completedAt"] is not None
        assert [r["modelId"] for r in stored["rankings"]] == ["alpha", "beta"]
        assert stored["frames"]["alpha"] == [
            {"frameIndex": 0, "action": "reveal", "row": 0, "col": 0, "boardEncoding": "1H\nHH"},
        ]
        assert stored["results"]["beta"]["score"] == 33
        assert stored["results"]["beta"]["totalSafe"] == 3

    def test_frame_indexes_follow_moves(self):
        async def scenario():
            repository = create_repository("memory")
            store = BattleStore(repository)
            battle_id = store.create_battle(CONFIG, AGENTS, seed=9)
            store.emit(battle_id, _init())
            for col in range(2):
                store.emit(battle_id, _move(row=1, col=col, action="flag"))
            await store.drain()
            return (await repository.get_completed_battle(battle_id))["frames"]["alpha"]

        frames = asyncio.run(scenario())
        assert [f["frameIndex"] for f in frames] == [0, 1]
        assert [f["col"] for f in frames] == [0, 1]

    def test_failing_repository_never_breaks_the_battle(self, caplog):
        async def scenario():
            store = BattleStore(_FailingRepository())
            battle_id = store.create_battle(CONFIG, AGENTS, seed=9)
            _finish(store, battle_id)
            await store.drain()
            return store.get_battle(battle_id)

        with caplog.at_level(logging.ERROR):
            state = asyncio.run(scenario())
        assert state.status == "complete"
        assert "Persistence insert_battle failed" in caplog.text
        assert "Persistence update_battle_completion failed" in caplog.text

    def test_no_event_loop_skips_writes(self):
        repository = create_repository("memory")
        store = BattleStore(repository)
        battle_id = store.create_battle(CONFIG, AGENTS, seed=9)
        _finish(store, battle_id)
        assert store.pending_writes == 0
        assert store.get_battle(battle_id).status == "complete"
        assert asyncio.run(repository.get_completed_battle(battle_id)) is None


# ── TestEviction ──────────────────────────────────────────────────────────────


class TestEviction:
    def test_only_finished_unwatched_old_battles_are_evicted(self):
        store = BattleStore(expiry_seconds=60)
        finished = store.create_battle(CONFIG, AGENTS)
        watched = store.create_battle(CONFIG, AGENTS)
        running = store.create_battle(CONFIG, AGENTS)
        for battle_id in (finished, watched):
            _finish(store, battle_id)
        store.emit(running, _init())
        store.subscribe(watched, lambda e: None)

        later = store.get_battle(finished).created_at + 61_000
        assert store.evict_expired(now=later) == [finished]
        assert store.find_battle(finished) is None
        assert store.find_battle(watched) is not None
        assert store.find_battle(running) is not None

    def test_recent_battles_are_kept(self):
        store = BattleStore(expiry_seconds=60)
        battle_id = store.create_battle(CONFIG, AGENTS)
        _finish(store, battle_id)
        assert store.evict_expired(now=store.get_battle(battle_id).created_at + 1000) == []

    def test_watched_battle_evicted_after_unsubscribe(self):
        store = BattleStore(expiry_seconds=60)
        battle_id = store.create_battle(CONFIG, AGENTS)
        _finish(store, battle_id)
        unsubscribe = store.subscribe(battle_id, lambda e: None)
        later = store.get_battle(battle_id).created_at + 61_000
        assert store.evict_expired(now=later) == []
        unsubscribe()
        assert store.evict_expired(now=later) == [battle_id]
