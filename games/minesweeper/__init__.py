"""
Minesweeper game implementation.

Every agent in a battle plays its own copy of the same seeded board:

  1. The first move creates the board; that cell's 3x3 block is mine-free
  2. Reveals flood-fill through zero cells; flags toggle
  3. Revealing a mine loses; revealing every safe cell wins

Components:
- board.py: Pure board engine (mine placement, reveal, encodings)
- scoring.py: Score for a finished run
- game.py: MinesweeperGame implementing core.Game
- state_adapter.py: Prompt and tool schemas (core.StateAdapter)
- action_parser.py: makeMove/makeMoves parsing (core.ActionParser)
- config.py: GameConfig (Pydantic model)
"""

from games.minesweeper.config import GameConfig
from games.minesweeper.game import MinesweeperGame, InvalidMoveError
from games.minesweeper.scoring import calculate_score
from games.minesweeper.state_adapter import MinesweeperStateAdapter
from games.minesweeper.action_parser import MinesweeperActionParser, MAKE_MOVE, MAKE_MOVES

__all__ = [
    "GameConfig",
    "MinesweeperGame",
    "InvalidMoveError",
    "calculate_score",
    "MinesweeperStateAdapter",
    "MinesweeperActionParser",
    "MAKE_MOVE",
    "MAKE_MOVES",
    "create_game",
]

GAME_TYPE = "minesweeper"


def create_game(config: GameConfig, seed=None) -> MinesweeperGame:
    """Factory: create a MinesweeperGame for one agent's run."""
    return MinesweeperGame(config, seed=seed)
