"""Scored results and the final battle ranking."""

from typing import Iterable, List

from games.minesweeper.config import GameConfig
from games.minesweeper.scoring import calculate_score
from minesweeper_arena.orchestration.events import GameResult


# Lower ranks first when scores tie
OUTCOME_PRIORITY = {
    "win": 1,
    "stuck": 2,
    "loss": 3,
    "error": 4,
    "playing": 5,
}


def build_game_result(agent_id: str, run, config: GameConfig) -> GameResult:
    """
    Score a finished run.

    Args:
        agent_id: Agent the run belongs to
        run: Anything with outcome, moves, safe_revealed, mines_hit and
            duration_ms (RunResult, ModelState)
        config: Board configuration of the battle
    """
    outcome = run.outcome or "playing"
    return GameResult(
        model_id=agent_id,
        outcome=outcome,
        score=calculate_score(outcome, run.safe_revealed, run.moves, run.mines_hit, config),
        moves=run.moves,
        duration_ms=run.duration_ms,
        safe_revealed=run.safe_revealed,
        total_safe=config.total_safe,
        mines_hit=run.mines_hit,
    )


def rank_results(results: Iterable[GameResult]) -> List[GameResult]:
    """Sort by score desc, outcome priority, moves, then duration. Stable."""
    return sorted(
        results,
        key=lambda r: (
            -r.score,
            OUTCOME_PRIORITY.get(r.outcome, len(OUTCOME_PRIORITY) + 1),
            r.moves,
            r.duration_ms,
        ),
    )
