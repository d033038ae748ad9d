"""
Single-agent turn loop.

Plays one agent through one board:

    awaiting first move -> playing -> win | loss | stuck | error

Each turn renders the board, asks the agent for a makeMove/makeMoves tool
call and applies the moves in order. A turn that applies nothing (no tool
call, a malformed response or bad arguments, an illegal first move, an agent
exception) counts as a failure; max_retries consecutive failures end the run with "error".
Running out of moves ends it with "stuck".

Every applied move is reported through on_move with board snapshots; the
live board never leaves this module.
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

from core.action_parser import ActionParseError
from core.agent import Agent
from games.minesweeper import (
    GameConfig,
    InvalidMoveError,
    MinesweeperActionParser,
    MinesweeperGame,
    MinesweeperStateAdapter,
)
from games.minesweeper.board import Board
from games.minesweeper.game import ERROR


logger = logging.getLogger(__name__)

DEFAULT_MAX_MOVES = 60
DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_BATCH_MOVES = 20


@dataclass
class MoveRecord:
    """One applied move, with snapshots taken around it."""

    action: str
    row: int
    col: int
    board: Board
    previous_board: Optional[Board]
    move_number: int
    hit_mine: bool = False


@dataclass
class BatchReport:
    """What happened to the moves an agent asked for in one turn."""

    requested: int
    executed: int
    stopped_early: bool
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RunResult:
    outcome: str
    moves: int
    safe_revealed: int
    mines_hit: int
    duration_ms: int

    @classmethod
    def failed(cls, duration_ms: int = 0) -> "RunResult":
        """Result for a run that crashed: error with zero stats."""
        return cls(outcome=ERROR, moves=0, safe_revealed=0, mines_hit=0, duration_ms=duration_ms)


OnMove = Callable[[MoveRecord], None]


def _apply_batch(
    game: MinesweeperGame,
    moves: List[Dict[str, Any]],
    max_moves: int,
    on_move: Optional[OnMove],
) -> BatchReport:
    """
    Apply moves in order until one is illegal, the game ends or the move
    budget runs out.

    Raises:
        InvalidMoveError: If the very first move is illegal
    """
    executed = 0
    reason = None

    for move in moves:
        if game.is_over():
            reason = f"game over ({game.get_outcome()})"
            break
        if game.moves >= max_moves:
            reason = "move limit reached"
            break

        previous = game.snapshot()
        try:
            result, _ = game.step(move)
        except InvalidMoveError as e:
            if executed == 0:
                raise
            reason = str(e)
            break

        executed += 1
        if on_move is not None:
            on_move(MoveRecord(
                action=result["action"],
                row=result["row"],
                col=result["col"],
                board=game.snapshot(),
                previous_board=previous,
                move_number=game.moves,
                hit_mine=result["hit_mine"],
            ))

    if reason is None and executed < len(moves):
        reason = f"game over ({game.get_outcome()})"

    return BatchReport(
        requested=len(moves),
        executed=executed,
        stopped_early=executed < len(moves),
        reason=reason,
    )


async def play_game(
    agent: Agent,
    config: GameConfig,
    seed: Optional[int] = None,
    on_move: Optional[OnMove] = None,
    max_moves: int = DEFAULT_MAX_MOVES,
    max_retries: int = DEFAULT_MAX_RETRIES,
    max_batch_moves: int = DEFAULT_MAX_BATCH_MOVES,
) -> RunResult:
    """
    Play one agent to a terminal outcome.

    Args:
        agent: Agent answering with makeMove/makeMoves tool calls
        config: Board configuration
        seed: Board seed shared by every agent in the battle; None for a
            random board
        on_move: Called after every applied move
        max_moves: Move budget; exhausting it ends the run as "stuck"
        max_retries: Consecutive failed turns before the run errors out
        max_batch_moves: Largest accepted makeMoves batch

    Returns:
        RunResult with outcome, stats and wall-clock duration
    """
    game = MinesweeperGame(config, seed=seed)
    adapter = MinesweeperStateAdapter(config, max_batch_moves=max_batch_moves)
    parser = MinesweeperActionParser(max_batch_moves=max_batch_moves)
    tools = adapter.get_tools()
    system_prompt = adapter.format_system_prompt()

    start = time.monotonic()
    failures = 0
    last_turn: Optional[BatchReport] = None

    while not game.is_over():
        if game.moves >= max_moves:
            game.mark_stuck()
            break

        prompt = adapter.state_to_prompt(
            game.get_public_state(),
            last_turn.to_dict() if last_turn else None,
        )

        try:
            response = await agent.decide(
                prompt,
                tools,
                system_prompt=system_prompt,
                available_actions=game.get_available_actions(),
                config=config,
            )
        except Exception as e:
            failures += 1
            logger.warning(
                "Agent %s call failed (%d/%d): %s",
                agent.agent_id, failures, max_retries, e, exc_info=True,
            )
            last_turn = BatchReport(0, 0, True, f"Agent error: {e}")
        else:
            try:
                if not isinstance(response, dict):
                    raise ActionParseError("Agent response must be a dict", raw_output=response)
                moves = parser.parse(response.get("tool_calls") or [], context=config)
                report = _apply_batch(game, moves, max_moves, on_move)
            except (ActionParseError, InvalidMoveError) as e:
                failures += 1
                logger.warning(
                    "Agent %s turn failed (%d/%d): %s", agent.agent_id, failures, max_retries, e
                )
                last_turn = BatchReport(0, 0, True, str(e))
            else:
                failures = 0
                last_turn = report
                continue

        if failures >= max_retries:
            logger.warning("Agent %s exhausted %d retries", agent.agent_id, max_retries)
            game.mark_error()

    stats = game.get_stats()
    result = RunResult(
        outcome=game.get_outcome(),
        moves=stats["moves"],
        safe_revealed=stats["safe_revealed"],
        mines_hit=stats["mines_hit"],
        duration_ms=int((time.monotonic() - start) * 1000),
    )
    logger.info(
        "Agent %s finished: %s after %d moves (%d/%d safe)",
        agent.agent_id, result.outcome, result.moves, result.safe_revealed, stats["total_safe"],
    )
    return result
