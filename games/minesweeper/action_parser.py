"""
Action parser for Minesweeper.

Agents answer with exactly one of two tool calls:

    makeMove  {action: "reveal"|"flag", row, col, reasoning?}
    makeMoves {moves: [{action, row, col}, ...] (1-20), reasoning?}

Anything else is a protocol error and raises ActionParseError.
"""

import json
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from core.action_parser import ActionParser, ActionParseError
from games.minesweeper.config import GameConfig


MAKE_MOVE = "makeMove"
MAKE_MOVES = "makeMoves"
MAX_BATCH_MOVES = 20


class MoveSpec(BaseModel):
    """One move inside a makeMoves batch."""

    action: Literal["reveal", "flag"]
    row: int = Field(..., ge=0)
    col: int = Field(..., ge=0)

    class Config:
        extra = "ignore"


class MakeMoveArgs(MoveSpec):
    """Arguments of the makeMove tool."""

    reasoning: Optional[str] = Field(default=None, description="A short explanation for your move.")


class MakeMovesArgs(BaseModel):
    """Arguments of the makeMoves tool."""

    moves: List[MoveSpec] = Field(..., min_length=1)
    reasoning: Optional[str] = Field(default=None, description="A short explanation for your moves.")

    class Config:
        extra = "ignore"


class MinesweeperActionParser(ActionParser):
    """Parses makeMove/makeMoves tool calls into ordered move dicts."""

    def __init__(self, max_batch_moves: int = MAX_BATCH_MOVES):
        self.max_batch_moves = max_batch_moves

    def parse(
        self,
        tool_calls: List[Dict[str, Any]],
        context: Optional[GameConfig] = None,
    ) -> List[Dict[str, Any]]:
        calls = self.require_tool_calls(tool_calls)
        if len(calls) > 1:
            raise ActionParseError(
                f"Expected exactly one tool call, got {len(calls)}",
                raw_output=calls,
            )

        call = calls[0]
        if not isinstance(call, dict):
            raise ActionParseError("Tool call must be an object", raw_output=call)
        name = call.get("name")
        args = self._load_args(call.get("args"))

        try:
            if name == MAKE_MOVE:
                moves = [MakeMoveArgs.model_validate(args)]
            elif name == MAKE_MOVES:
                moves = MakeMovesArgs.model_validate(args).moves
            else:
                raise ActionParseError(f"Unknown tool: {name!r}", raw_output=call)
        except ValidationError as e:
            raise ActionParseError(f"Invalid {name} arguments: {e}", raw_output=call) from e

        if len(moves) > self.max_batch_moves:
            raise ActionParseError(
                f"Too many moves in one batch: {len(moves)} > {self.max_batch_moves}",
                raw_output=call,
            )

        parsed = []
        for move in moves:
            if context is not None and (move.row >= context.rows or move.col >= context.cols):
                raise ActionParseError(
                    f"Cell ({move.row}, {move.col}) is outside the "
                    f"{context.rows}x{context.cols} board",
                    raw_output=call,
                )
            parsed.append({"action": move.action, "row": move.row, "col": move.col})
        return parsed

    @staticmethod
    def _load_args(args: Any) -> Dict[str, Any]:
        # Some providers hand back arguments as a JSON string
        if isinstance(args, str):
            try:
                args = json.loads(args)
            except json.JSONDecodeError as e:
                raise ActionParseError(f"Tool arguments are not valid JSON: {e}", raw_output=args) from e
        if not isinstance(args, dict):
            raise ActionParseError("Tool arguments must be an object", raw_output=args)
        return args

