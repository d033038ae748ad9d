"""
State adapter for Minesweeper.

Builds the per-turn prompt from the visible board and describes the
makeMove/makeMoves tools, with coordinate bounds taken from the config.
"""

from typing import Any, Dict, List, Optional

from core.state_adapter import StateAdapter
from games.minesweeper.action_parser import MAKE_MOVE, MAKE_MOVES, MAX_BATCH_MOVES
from games.minesweeper.config import GameConfig


EMPTY_BOARD_MESSAGE = "The board is empty. Make your first move."


class MinesweeperStateAdapter(StateAdapter):
    """Converts Minesweeper state into LLM-readable prompts."""

    def __init__(self, config: GameConfig, max_batch_moves: int = MAX_BATCH_MOVES):
        self.config = config
        self.max_batch_moves = max_batch_moves

    def state_to_prompt(
        self,
        public_state: Dict[str, Any],
        last_turn: Optional[Dict[str, Any]] = None,
    ) -> str:
        lines = []
        board_text = public_state.get("board_text")
        if board_text:
            lines.append("Current board:")
            lines.append(board_text)
        else:
            lines.append(EMPTY_BOARD_MESSAGE)
        lines.append("")
        lines.append(
            f"Moves made: {public_state.get('moves', 0)}. "
            f"Safe cells revealed: {public_state.get('safe_revealed', 0)} "
            f"of {public_state.get('total_safe', self.config.total_safe)}."
        )

        if last_turn:
            executed = last_turn.get("executed", 0)
            requested = last_turn.get("requested", 0)
            note = f"Last turn: {executed} of {requested} requested move(s) executed."
            if last_turn.get("stopped_early"):
                note += f" Stopped early: {last_turn.get('reason') or 'unknown reason'}."
            lines.append(note)

        lines.append("")
        lines.append("What is your next move?")
        return "\n".join(lines)

    def format_system_prompt(self, **kwargs) -> str:
        rows, cols, mines = self.config.rows, self.config.cols, self.config.mine_count
        return (
            "You are a Minesweeper player. Your goal is to win by revealing all safe cells.\n"
            f"The board is a {rows}x{cols} grid with {mines} hidden mines.\n"
            "'H' means a hidden cell. 'F' means a flagged cell. "
            "A number (0-8) means a revealed cell showing adjacent mines.\n"
            "The first row of the board lists column indices; each following row "
            "starts with its row index.\n"
            "Rows and columns are 0-indexed. Reveal only hidden, unflagged cells. "
            "Flagging an already flagged cell removes the flag.\n"
            f"Call {MAKE_MOVE} for a single move, or {MAKE_MOVES} to make up to "
            f"{self.max_batch_moves} moves in order. A batch stops at the first "
            "invalid move or mine."
        )

    def _move_properties(self) -> Dict[str, Any]:
        return {
            "action": {"type": "string", "enum": ["reveal", "flag"]},
            "row": {"type": "integer", "minimum": 0, "maximum": self.config.rows - 1},
            "col": {"type": "integer", "minimum": 0, "maximum": self.config.cols - 1},
        }

    def get_tools(self) -> List[Dict[str, Any]]:
        reasoning = {"type": "string", "description": "A short explanation for your move."}
        return [
            {
                "type": "function",
                "function": {
                    "name": MAKE_MOVE,
                    "description": "Make a move by revealing or flagging a cell.",
                    "parameters": {
                        "type": "object",
                        "properties": {**self._move_properties(), "reasoning": reasoning},
                        "required": ["action", "row", "col"],
                    },
                },
            },
            {
                "type": "function",
                "function": {
                    "name": MAKE_MOVES,
                    "description": (
                        "Make several moves in order. Execution stops at the first "
                        "invalid move or mine hit."
                    ),
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "moves": {
                                "type": "array",
                                "minItems": 1,
                                "maxItems": self.max_batch_moves,
                                "items": {
                                    "type": "object",
                                    "properties": self._move_properties(),
                                    "required": ["action", "row", "col"],
                                },
                            },
                            "reasoning": reasoning,
                        },
                        "required": ["moves"],
                    },
                },
            },
        ]
