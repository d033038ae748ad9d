"""
Battle runner.

Runs every agent of a battle concurrently on the same seeded board,
streams their moves into the BattleStore, then scores and ranks them.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Set, Tuple

from core.agent import Agent
from games.minesweeper.board import encode_board, get_delta
from minesweeper_arena.config import BattleSettings
from minesweeper_arena.orchestration.events import (
    CompleteEvent,
    DoneEvent,
    ErrorEvent,
    GameResult,
    InitEvent,
    MoveEvent,
)
from minesweeper_arena.orchestration.ranking import build_game_result, rank_results
from minesweeper_arena.orchestration.store import BattleStore
from minesweeper_arena.orchestration.turn_loop import MoveRecord, RunResult, play_game


logger = logging.getLogger(__name__)

AgentFactory = Callable[[str], Agent]

# Strong references to background battles so they are not garbage collected
_background_tasks: Set[asyncio.Task] = set()


async def run_battle(
    store: BattleStore,
    battle_id: str,
    agent_factory: AgentFactory,
    settings: Optional[BattleSettings] = None,
) -> List[GameResult]:
    """
    Run a registered battle to completion.

    Emits init, then move/complete events per agent as they happen, then
    one done event with the ranking. One agent failing never stops the
    others; it finishes as "error" with zero stats.

    Args:
        store: Store holding the battle
        battle_id: Battle created with store.create_battle()
        agent_factory: Builds the agent for an agent id
        settings: Move, retry and batch limits

    Returns:
        Ranked GameResults, best first
    """
    settings = settings or BattleSettings()
    battle = store.get_battle(battle_id)
    config = battle.config
    agent_ids = list(battle.agent_ids)
    seed = battle.board_seed

    store.emit(battle_id, InitEvent(config=config, agent_ids=agent_ids))
    logger.info("Battle %s started with %d agents (seed %d)", battle_id, len(agent_ids), seed)

    async def run_agent(agent_id: str) -> Tuple[str, RunResult]:
        def on_move(record: MoveRecord) -> None:
            store.emit(battle_id, MoveEvent(
                agent_id=agent_id,
                action=record.action,
                row=record.row,
                col=record.col,
                board_encoding=encode_board(record.board),
                delta=get_delta(record.previous_board, record.board),
            ))

        try:
            agent = agent_factory(agent_id)
            result = await play_game(
                agent,
                config,
                seed=seed,
                on_move=on_move,
                max_moves=settings.max_moves,
                max_retries=settings.max_retries,
                max_batch_moves=settings.max_batch_moves,
            )
        except Exception as e:
            logger.exception("Agent %s crashed in battle %s", agent_id, battle_id)
            store.emit(battle_id, ErrorEvent(message=str(e) or type(e).__name__, code="AGENT_ERROR", agent_id=agent_id))
            result = RunResult.failed()

        store.emit(battle_id, CompleteEvent(
            agent_id=agent_id,
            outcome=result.outcome,
            moves=result.moves,
            safe_revealed=result.safe_revealed,
            mines_hit=result.mines_hit,
            duration_ms=result.duration_ms,
        ))
        return agent_id, result

    settled = await asyncio.gather(
        *(run_agent(agent_id) for agent_id in agent_ids),
        return_exceptions=True,
    )

    results = []
    for agent_id, outcome in zip(agent_ids, settled):
        if isinstance(outcome, BaseException):
            logger.error("Agent %s did not settle cleanly", agent_id, exc_info=outcome)
            run = RunResult.failed()
        else:
            run = outcome[1]
        results.append(build_game_result(agent_id, run, config))

    rankings = rank_results(results)
    store.emit(battle_id, DoneEvent(rankings=rankings))
    logger.info(
        "Battle %s complete: %s",
        battle_id,
        ", ".join(f"{r.model_id}={r.score}" for r in rankings),
    )
    return rankings


def _log_battle_failure(battle_id: str, task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning("Battle %s was cancelled", battle_id)
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Battle %s failed", battle_id, exc_info=exc)


def start_battle(
    store: BattleStore,
    battle_id: str,
    agent_factory: AgentFactory,
    settings: Optional[BattleSettings] = None,
) -> asyncio.Task:
    """Schedule run_battle() in the background. Failures are logged only."""
    task = asyncio.get_running_loop().create_task(
        run_battle(store, battle_id, agent_factory, settings)
    )
    _background_tasks.add(task)
    task.add_done_callback(lambda t: _log_battle_failure(battle_id, t))
    return task
