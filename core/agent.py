"""
Agent interface shared by every Minesweeper Arena player.

LLMs, console players and baselines all answer the same way: with tool
calls against the schemas the game hands them, exactly as a model does
with function calling.
"""

import random
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Any, List, Optional, Sequence


class AgentType(Enum):
    """Kinds of player behind an agent id."""
    LLM = "llm"
    MANUAL = "manual"
    RANDOM = "random"
    SCRIPTED = "scripted"


def tool_call(name: str, **args: Any) -> Dict[str, Any]:
    """Build a tool call dict in the shape LangChain returns them."""
    return {"name": name, "args": args}


class Agent(ABC):
    """
    Base class for arena players.

    decide() gets the turn prompt plus the tool schemas and answers with
    the tool calls it chose. Implementations:
    - LLMAgent: LangChain chat model with bound tools
    - ManualAgent: Moves typed at the console
    - RandomAgent: Random legal moves
    - ScriptedAgent: Canned responses, for tests

    Agents keep no game state; each turn's prompt carries everything.

    Example:
        class AlwaysTopLeft(Agent):
            async def decide(self, prompt, tools, **kwargs):
                return {"tool_calls": [tool_call("makeMove", action="reveal", row=0, col=0)]}
    """

    def __init__(
        self,
        agent_id: str,
        agent_type: AgentType,
        config: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            agent_id: Arena agent id, unique within a battle
            agent_type: Kind of player
            config: Agent-specific settings (LLM parameters for LLMAgent)
        """
        self.agent_id = agent_id
        self.agent_type = agent_type
        self.config = config or {}

    @abstractmethod
    async def decide(
        self,
        prompt: str,
        tools: List[Dict[str, Any]],
        system_prompt: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        Choose this turn's tool calls.

        Args:
            prompt: Turn prompt with the visible board and last-turn feedback
            tools: Tool schemas (OpenAI function format) the agent may call
            system_prompt: Game rules
            **kwargs: Extra context from the turn loop (available_actions, config)

        Returns:
            Dict with:
                - tool_calls: List of {"name": str, "args": dict}
                - reasoning: Optional explanation
                - raw_output: Optional raw model text
                - metadata: Optional extras (latency, token usage)

        Exceptions propagate; the turn loop counts them as failed turns.
        """
        pass

    def get_metadata(self) -> Dict[str, Any]:
        """Identity of the agent for logs."""
        return {
            "agent_id": self.agent_id,
            "agent_type": self.agent_type.value,
        }


class RandomAgent(Agent):
    """
    Agent that picks a random legal action each turn.

    Useful for testing and as a baseline opponent. Needs the
    available_actions keyword from the caller. action_types narrows the choice,
    e.g. to reveals only.
    """

    def __init__(
        self,
        agent_id: str,
        seed: Optional[int] = None,
        tool_name: str = "makeMove",
        action_types: Optional[Sequence[str]] = None,
    ):
        super().__init__(agent_id, AgentType.RANDOM)
        self._seed = seed
        self._rng = random.Random(seed)
        self._tool_name = tool_name
        self._action_types = set(action_types) if action_types else None

    async def decide(
        self,
        prompt: str,
        tools: List[Dict[str, Any]],
        system_prompt: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """Select a random available action."""
        available = kwargs.get("available_actions") or []
        if self._action_types is not None:
            available = [a for a in available if a.get("action") in self._action_types]
        if not available:
            return {"tool_calls": [], "reasoning": "No actions available", "raw_output": ""}

        action = self._rng.choice(available)
        return {
            "tool_calls": [tool_call(self._tool_name, **action)],
            "reasoning": "Random selection",
            "raw_output": "",
            "metadata": {"method": "random"},
        }


class ScriptedAgent(Agent):
    """
    Agent that replays a fixed list of responses.

    Each entry is a list of tool calls, a full response dict, or an
    exception to raise. Once the script runs out the last entry repeats.
    An empty script never calls tools.
    """

    def __init__(self, agent_id: str, script: Sequence[Any]):
        super().__init__(agent_id, AgentType.SCRIPTED)
        self._script = list(script)
        self._index = 0
        self.prompts: List[str] = []

    async def decide(
        self,
        prompt: str,
        tools: List[Dict[str, Any]],
        system_prompt: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        self.prompts.append(prompt)
        if not self._script:
            return {"tool_calls": [], "raw_output": ""}

        entry = self._script[min(self._index, len(self._script) - 1)]
        self._index += 1

        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, dict):
            return entry
        return {"tool_calls": list(entry), "reasoning": "Scripted", "raw_output": ""}
