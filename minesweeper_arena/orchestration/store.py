"""
In-process registry of live battles.

BattleStore owns every BattleState. emit() is the only way to change one:
it folds the event into the state, schedules a best-effort durable write,
then calls every subscriber synchronously with the raw event.

Listeners must not call emit() on the store that is invoking them; a
reentrant emit for the same battle raises RuntimeError.
"""

import asyncio
import logging
import random
import secrets
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Optional, Set

from games.minesweeper.board import get_encoded_delta
from games.minesweeper.config import GameConfig
from minesweeper_arena.orchestration.events import (
    BattleEvent,
    CompleteEvent,
    DoneEvent,
    InitEvent,
    MoveEvent,
)
from minesweeper_arena.orchestration.ranking import build_game_result
from minesweeper_arena.orchestration.state import (
    COMPLETE,
    PENDING,
    BattleState,
    apply_event,
    create_initial_state,
)

if TYPE_CHECKING:
    from minesweeper_arena.storage.battle_log import BattleRepository


logger = logging.getLogger(__name__)

Listener = Callable[[BattleEvent], None]

DEFAULT_EXPIRY_SECONDS = 600.0
MAX_SEED = 2147483647


class BattleNotFoundError(KeyError):
    """No battle is registered under the given id."""

    def __init__(self, battle_id: str):
        super().__init__(battle_id)
        self.battle_id = battle_id

    def __str__(self) -> str:
        return f"Battle {self.battle_id} not found"


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_battle_id() -> str:
    return f"battle_{_now_ms()}_{secrets.token_hex(4)}"


class BattleStore:
    """
    Authoritative in-memory battle registry with pub/sub fan-out.

    Example:
        store = BattleStore(repository)
        battle_id = store.create_battle(config, ["gpt-5-mini", "random"])
        unsubscribe = store.subscribe(battle_id, print)
        store.emit(battle_id, InitEvent(config=config, agent_ids=[...]))
        unsubscribe()
    """

    def __init__(
        self,
        repository: Optional["BattleRepository"] = None,
        expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
    ):
        """
        Args:
            repository: Durable history; None keeps everything in memory only
            expiry_seconds: Age after which a finished, unobserved battle
                is evicted
        """
        self.repository = repository
        self.expiry_seconds = expiry_seconds
        self._battles: Dict[str, BattleState] = {}
        self._emitting: Set[str] = set()
        self._pending_writes: Set[asyncio.Task] = set()
        self._write_locks: Dict[str, asyncio.Lock] = {}

    # ── Registry ──

    def create_battle(
        self,
        config: GameConfig,
        agent_ids: List[str],
        seed: Optional[int] = None,
    ) -> str:
        """Register a pending battle and return its id."""
        if not agent_ids:
            raise ValueError("A battle needs at least one agent")
        if len(set(agent_ids)) != len(agent_ids):
            raise ValueError(f"Duplicate agent ids: {agent_ids}")

        self.evict_expired()

        battle_id = generate_battle_id()
        while battle_id in self._battles:
            battle_id = generate_battle_id()
        board_seed = seed if seed is not None else random.randrange(MAX_SEED)

        state = create_initial_state(battle_id, config, agent_ids, board_seed, _now_ms())
        self._battles[battle_id] = state
        logger.info(
            "Created battle %s (%dx%d, %d mines) for %s",
            battle_id, config.rows, config.cols, config.mine_count, ", ".join(agent_ids),
        )

        self._schedule_write(
            battle_id,
            "insert_battle",
            lambda repo: repo.insert_battle(
                battle_id, config, state.agent_ids, board_seed, state.created_at
            ),
        )
        return battle_id

    def get_battle(self, battle_id: str) -> BattleState:
        """
        Raises:
            BattleNotFoundError: If no battle has this id
        """
        try:
            return self._battles[battle_id]
        except KeyError:
            raise BattleNotFoundError(battle_id) from None

    def find_battle(self, battle_id: str) -> Optional[BattleState]:
        return self._battles.get(battle_id)

    def list_battle_ids(self) -> List[str]:
        return list(self._battles)

    def evict_expired(self, now: Optional[int] = None) -> List[str]:
        """Drop complete battles past their expiry that nobody is watching."""
        now = now if now is not None else _now_ms()
        cutoff = now - int(self.expiry_seconds * 1000)
        expired = [
            battle_id
            for battle_id, state in self._battles.items()
            if state.status == COMPLETE and not state.subscribers and state.created_at <= cutoff
        ]
        for battle_id in expired:
            del self._battles[battle_id]
            self._write_locks.pop(battle_id, None)
        if expired:
            logger.debug("Evicted %d expired battles", len(expired))
        return expired

    # ── Pub/sub ──

    def subscribe(self, battle_id: str, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for every later event of a battle.

        Returns:
            A function that removes the listener. Calling it twice is safe.

        Raises:
            BattleNotFoundError: If no battle has this id
        """
        subscribers = self.get_battle(battle_id).subscribers
        subscribers.append(listener)

        def unsubscribe() -> None:
            if listener in subscribers:
                subscribers.remove(listener)

        return unsubscribe

    def emit(self, battle_id: str, event: BattleEvent) -> None:
        """
        Apply an event, schedule its persistence and notify subscribers.

        Raises:
            BattleNotFoundError: If no battle has this id
            RuntimeError: If called from a listener of the same battle
        """
        if battle_id in self._emitting:
            raise RuntimeError(
                f"Reentrant emit on battle {battle_id}: listeners must not emit events"
            )
        state = apply_event(self.get_battle(battle_id), event)
        self._battles[battle_id] = state
        self._persist_event(state, event)

        self._emitting.add(battle_id)
        try:
            # Snapshot: listeners may unsubscribe during fan-out
            for listener in list(state.subscribers):
                try:
                    listener(event)
                except Exception:
                    logger.exception("Listener failed on %s event for battle %s", event.type, battle_id)
        finally:
            self._emitting.discard(battle_id)

    def catch_up(self, battle_id: str) -> List[BattleEvent]:
        """
        Synthetic events that bring a late subscriber up to date.

        One init, then per agent its latest board (delta against an empty
        board) and its complete event, then done if the battle is over.
        Nothing is persisted.
        """
        state = self.get_battle(battle_id)
        if state.status == PENDING:
            return []

        config = state.config
        events: List[BattleEvent] = [InitEvent(config=config, agent_ids=list(state.agent_ids))]
        for agent_id in state.agent_ids:
            model_state = state.agent_states[agent_id]
            if model_state.board_state is not None:
                last_move = model_state.last_move or {"action": "reveal", "row": 0, "col": 0}
                events.append(MoveEvent(
                    agent_id=agent_id,
                    action=last_move["action"],
                    row=last_move["row"],
                    col=last_move["col"],
                    board_encoding=model_state.board_state,
                    delta=get_encoded_delta(None, model_state.board_state, config.rows, config.cols),
                ))
            if model_state.status == COMPLETE and model_state.outcome:
                events.append(CompleteEvent(
                    agent_id=agent_id,
                    outcome=model_state.outcome,
                    moves=model_state.moves,
                    safe_revealed=model_state.safe_revealed,
                    mines_hit=model_state.mines_hit,
                    duration_ms=model_state.duration_ms,
                ))
        if state.status == COMPLETE and state.rankings is not None:
            events.append(DoneEvent(rankings=list(state.rankings)))
        return events

    # ── Persistence ──

    def _persist_event(self, state: BattleState, event: BattleEvent) -> None:
        battle_id = state.battle_id
        if isinstance(event, MoveEvent):
            frame_index = state.agent_states[event.agent_id].moves - 1
            self._schedule_write(
                battle_id,
                "insert_frame",
                lambda repo: repo.insert_frame(
                    battle_id, event.agent_id, frame_index,
                    event.action, event.row, event.col, event.board_encoding,
                ),
            )
        elif isinstance(event, CompleteEvent):
            result = build_game_result(event.agent_id, event, state.config)
            self._schedule_write(
                battle_id,
                "insert_result",
                lambda repo: repo.insert_result(battle_id, event.agent_id, result),
            )
        elif isinstance(event, DoneEvent):
            self._schedule_write(
                battle_id,
                "update_battle_completion",
                lambda repo: repo.update_battle_completion(battle_id, COMPLETE, list(event.rankings)),
            )

    def _schedule_write(
        self,
        battle_id: str,
        description: str,
        write: Callable[["BattleRepository"], Awaitable[None]],
    ) -> None:
        if self.repository is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; skipping %s for battle %s", description, battle_id)
            return

        lock = self._write_locks.setdefault(battle_id, asyncio.Lock())
        repository = self.repository

        async def run() -> None:
            # Writes for one battle land in the order they were scheduled
            async with lock:
                await write(repository)

        task = loop.create_task(run())
        self._pending_writes.add(task)
        task.add_done_callback(
            lambda t: self._on_write_done(t, battle_id, description)
        )

    def _on_write_done(self, task: asyncio.Task, battle_id: str, description: str) -> None:
        self._pending_writes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Persistence %s failed for battle %s", description, battle_id, exc_info=exc
            )

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    async def drain(self) -> None:
        """Wait until every scheduled persistence write has finished."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)
