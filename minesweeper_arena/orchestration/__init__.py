"""
Battle orchestration for Minesweeper Arena.

- events.py: BattleEvent union (init, move, complete, done, error)
- state.py: BattleState and the apply_event reducer
- store.py: BattleStore registry with pub/sub and catch-up
- turn_loop.py: one agent playing one board
- ranking.py: scoring and ranking of finished runs
- runner.py: run_battle / start_battle
"""

from minesweeper_arena.orchestration.events import (
    BattleEvent,
    CompleteEvent,
    DoneEvent,
    ErrorEvent,
    GameResult,
    InitEvent,
    MoveEvent,
    parse_event,
)
from minesweeper_arena.orchestration.state import BattleState, ModelState, apply_event, create_initial_state
from minesweeper_arena.orchestration.store import BattleNotFoundError, BattleStore
from minesweeper_arena.orchestration.turn_loop import BatchReport, MoveRecord, RunResult, play_game
from minesweeper_arena.orchestration.ranking import OUTCOME_PRIORITY, build_game_result, rank_results
from minesweeper_arena.orchestration.runner import run_battle, start_battle

__all__ = [
    "BattleEvent",
    "InitEvent",
    "MoveEvent",
    "CompleteEvent",
    "DoneEvent",
    "ErrorEvent",
    "GameResult",
    "parse_event",
    "BattleState",
    "ModelState",
    "apply_event",
    "create_initial_state",
    "BattleStore",
    "BattleNotFoundError",
    "BatchReport",
    "MoveRecord",
    "RunResult",
    "play_game",
    "OUTCOME_PRIORITY",
    "build_game_result",
    "rank_results",
    "run_battle",
    "start_battle",
]
