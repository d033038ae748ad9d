"""
Single-player Minesweeper game.

Wraps the board engine with move validation, lazy mine placement and
outcome tracking. One instance is owned by one agent's turn loop; nobody
else ever sees the live board, only snapshots from snapshot().

Outcome transitions are forward-only:

    playing -> win | loss | stuck | error
"""

from typing import Any, Dict, List, Optional, Tuple

from core.game import Game
from games.minesweeper.board import (
    Board,
    clone_board,
    create_board,
    encode_board_for_llm,
    flag_cell,
    generate_mine_positions,
    get_visible_board,
    reveal_cell,
)
from games.minesweeper.config import GameConfig


ACTIONS = ("reveal", "flag")

PLAYING = "playing"
WIN = "win"
LOSS = "loss"
STUCK = "stuck"
ERROR = "error"


class InvalidMoveError(ValueError):
    """A move that breaks the rules (unavailable cell, game already over)."""


class MinesweeperGame(Game):
    """Minesweeper with the board created on the first move."""

    def __init__(self, config: GameConfig, seed: Optional[int] = None):
        self.config = config
        self._seed = seed
        self.reset(seed)

    @property
    def game_type(self) -> str:
        return "minesweeper"

    def reset(self, seed: Optional[int] = None) -> None:
        if seed is not None:
            self._seed = seed
        self._board: Optional[Board] = None
        self.moves = 0
        self.safe_revealed = 0
        self.mines_hit = 0
        self._outcome = PLAYING

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    @property
    def started(self) -> bool:
        return self._board is not None

    def snapshot(self) -> Optional[Board]:
        """Deep copy of the current board, or None before the first move."""
        return clone_board(self._board) if self._board is not None else None

    def _ensure_board(self, row: int, col: int) -> Board:
        if self._board is None:
            if self._seed is not None:
                positions = generate_mine_positions(self.config, self._seed, (row, col))
                self._board = create_board(self.config, (row, col), positions)
            else:
                self._board = create_board(self.config, (row, col))
        return self._board

    def get_public_state(self) -> Dict[str, Any]:
        return {
            "rows": self.config.rows,
            "cols": self.config.cols,
            "mine_count": self.config.mine_count,
            "moves": self.moves,
            "safe_revealed": self.safe_revealed,
            "total_safe": self.config.total_safe,
            "started": self.started,
            "outcome": self._outcome,
            "visible_board": get_visible_board(self._board) if self._board else None,
            "board_text": encode_board_for_llm(self._board) if self._board else None,
        }

    def get_available_actions(self) -> List[Dict[str, Any]]:
        if self.is_over():
            return []
        actions = []
        for row in range(self.config.rows):
            for col in range(self.config.cols):
                cell = self._board[row][col] if self._board else None
                if cell is not None and cell.is_revealed:
                    continue
                if cell is None or not cell.is_flagged:
                    actions.append({"action": "reveal", "row": row, "col": col})
                actions.append({"action": "flag", "row": row, "col": col})
        return actions

    def validate(self, action: Dict[str, Any]) -> Tuple[str, int, int]:
        """
        Check a move against the rules without applying it.

        Raises:
            InvalidMoveError: If the move cannot be applied
        """
        if self.is_over():
            raise InvalidMoveError(f"Game is over ({self._outcome})")

        kind = action.get("action")
        row, col = action.get("row"), action.get("col")
        if kind not in ACTIONS:
            raise InvalidMoveError(f"Unknown action: {kind!r}")
        if not isinstance(row, int) or not isinstance(col, int):
            raise InvalidMoveError(f"Row and col must be integers, got {row!r}, {col!r}")
        if not (0 <= row < self.config.rows and 0 <= col < self.config.cols):
            raise InvalidMoveError(f"Cell ({row}, {col}) is off the board")

        if self._board is not None:
            cell = self._board[row][col]
            if cell.is_revealed:
                raise InvalidMoveError(f"Invalid move: cell ({row}, {col}) is already revealed")
            if kind == "reveal" and cell.is_flagged:
                raise InvalidMoveError(f"Invalid move: cell ({row}, {col}) is flagged")

        return kind, row, col

    def step(self, action: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """
        Apply one reveal or flag.

        Returns:
            ({"action", "row", "col", "revealed_count", "hit_mine", "outcome"}, game_over)

        Raises:
            InvalidMoveError: If the move is not available
        """
        kind, row, col = self.validate(action)
        board = self._ensure_board(row, col)

        revealed_count, hit_mine = 0, False
        if kind == "reveal":
            revealed_count, hit_mine = reveal_cell(board, row, col)
            if hit_mine:
                self.mines_hit = 1
                self.safe_revealed += revealed_count - 1
                self._finish(LOSS)
            else:
                self.safe_revealed += revealed_count
                if self.safe_revealed == self.config.total_safe:
                    self._finish(WIN)
        else:
            flag_cell(board, row, col)

        self.moves += 1

        result = {
            "action": kind,
            "row": row,
            "col": col,
            "revealed_count": revealed_count,
            "hit_mine": hit_mine,
            "outcome": self._outcome,
        }
        return result, self.is_over()

    def _finish(self, outcome: str) -> None:
        if self._outcome == PLAYING:
            self._outcome = outcome

    def mark_stuck(self) -> None:
        """Move budget ran out without a terminal outcome."""
        self._finish(STUCK)

    def mark_error(self) -> None:
        """Retry budget ran out."""
        self._finish(ERROR)

    def is_over(self) -> bool:
        return self._outcome != PLAYING

    def get_outcome(self) -> str:
        return self._outcome

    def get_stats(self) -> Dict[str, Any]:
        return {
            "moves": self.moves,
            "safe_revealed": self.safe_revealed,
            "mines_hit": self.mines_hit,
            "total_safe": self.config.total_safe,
        }
