"""
ManualAgent for human play via the console.

Shows the same prompt an LLM would get and reads moves typed by a person:

    r 3 4          reveal row 3, col 4
    f 1 2          toggle flag on row 1, col 2
    r 0 0; r 0 1   several moves in one batch
    {"name": "makeMove", "args": {...}}   raw tool call JSON
"""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

from core.agent import Agent, AgentType, tool_call
from games.minesweeper.action_parser import MAKE_MOVE, MAKE_MOVES


ACTION_SHORTCUTS = {"r": "reveal", "reveal": "reveal", "f": "flag", "flag": "flag"}


def parse_command(text: str) -> Optional[Dict[str, Any]]:
    """
    Turn one line of user input into a tool call.

    Returns None when the line cannot be understood.
    """
    text = text.strip()
    if not text:
        return None

    if text.startswith("{") or text.startswith("["):
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return None
        if isinstance(data, list):
            return tool_call(MAKE_MOVES, moves=data)
        if "name" in data:
            return {"name": data["name"], "args": data.get("args", {})}
        return tool_call(MAKE_MOVE, **data)

    moves = []
    for chunk in text.split(";"):
        parts = chunk.split()
        if len(parts) != 3 or parts[0].lower() not in ACTION_SHORTCUTS:
            return None
        try:
            row, col = int(parts[1]), int(parts[2])
        except ValueError:
            return None
        moves.append({"action": ACTION_SHORTCUTS[parts[0].lower()], "row": row, "col": col})

    if len(moves) == 1:
        return tool_call(MAKE_MOVE, **moves[0])
    return tool_call(MAKE_MOVES, moves=moves)


class ManualAgent(Agent):
    """
    Agent that pauses for human input via console.

    Useful for:
    - Playing a battle against the models yourself
    - Checking what the prompt looks like turn by turn
    """

    def __init__(
        self,
        agent_id: str,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
        show_system_prompt: bool = True,
    ):
        """
        Args:
            agent_id: Unique identifier for this agent
            input_fn: Reads one line; blocking calls run in a worker thread
            output_fn: Writes one block of text
            show_system_prompt: Print the rules before the first turn
        """
        super().__init__(agent_id, AgentType.MANUAL)
        self.input_fn = input_fn
        self.output_fn = output_fn
        self.show_system_prompt = show_system_prompt
        self._turn = 0

    async def decide(
        self,
        prompt: str,
        tools: List[Dict[str, Any]],
        system_prompt: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        self._turn += 1
        separator = "=" * 70
        self.output_fn(f"\n{separator}\nMANUAL AGENT: {self.agent_id} | Turn: {self._turn}\n{separator}")
        if system_prompt and self.show_system_prompt and self._turn == 1:
            self.output_fn(f"[RULES]\n{system_prompt}\n")
        self.output_fn(prompt)
        self.output_fn("Enter moves as 'r ROW COL' or 'f ROW COL' (separate several with ';'), "
                       "or 'q' to give up.")

        while True:
            line = await asyncio.to_thread(self.input_fn, "> ")
            if line.strip().lower() in ("q", "quit", "exit"):
                return {
                    "tool_calls": [],
                    "reasoning": "Player gave up",
                    "raw_output": line,
                    "metadata": {"method": "quit"},
                }

            call = parse_command(line)
            if call is not None:
                return {
                    "tool_calls": [call],
                    "reasoning": "Manual input",
                    "raw_output": line,
                    "metadata": {"method": "console"},
                }
            self.output_fn("Could not parse input. Try 'r 3 4' or 'f 1 2'.")
