"""
Scoring for a single Minesweeper run.

The constants below feed every stored score; tests pin exact values.
"""

import math

from games.minesweeper.config import GameConfig


WIN_MOVE_PENALTY = 0.5
MINE_PENALTY = 50


def _round_half_away_from_zero(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def calculate_score(
    outcome: str,
    safe_revealed: int,
    moves: int,
    mines_hit: int,
    config: GameConfig,
) -> int:
    """
    Score a finished or in-progress run.

    A win earns 100 minus half a point per move after the first. Any other
    outcome earns the revealed share of safe cells, minus MINE_PENALTY per
    mine hit. Never negative.

    Args:
        outcome: "win", "loss", "stuck", "error" or "playing"
        safe_revealed: Number of safe cells revealed
        moves: Number of moves applied
        mines_hit: 0 or 1
        config: Board configuration

    Returns:
        Integer score >= 0
    """
    total_safe = config.rows * config.cols - config.mine_count
    safe_ratio = safe_revealed / total_safe if total_safe > 0 else 0

    if outcome == "win":
        score = 100 * safe_ratio - WIN_MOVE_PENALTY * (moves - 1)
    else:
        score = 100 * safe_ratio - MINE_PENALTY * mines_hit

    return max(0, _round_half_away_from_zero(score))
