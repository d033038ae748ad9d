"""
Abstract StateAdapter interface for converting game state to LLM prompts.

State adapters turn game state into the text an agent reads, and declare
the tools the agent may call to answer.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional


class StateAdapter(ABC):
    """
    Abstract base class for converting game state to agent prompts.

    Each game implementation subclasses this to provide:

    1. The per-turn user prompt (state_to_prompt)
    2. The system prompt with the rules (format_system_prompt)
    3. The tool schemas the agent answers with (get_tools)

    The output must avoid information leakage: hidden state never appears
    in a prompt.
    """

    @abstractmethod
    def state_to_prompt(
        self,
        public_state: Dict[str, Any],
        last_turn: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Convert game state to the user prompt for one turn.

        Args:
            public_state: Agent-visible game state
            last_turn: Feedback from the previous turn (optional)

        Returns:
            Complete prompt string for the LLM user message
        """
        pass

    @abstractmethod
    def get_tools(self) -> List[Dict[str, Any]]:
        """
        Return the tool schemas the agent may call.

        Returns:
            List of tool definitions in OpenAI function format:
            {"type": "function", "function": {"name", "description", "parameters"}}
        """
        pass

    def format_system_prompt(self, **kwargs) -> str:
        """
        Return the system prompt for the LLM.

        Returns:
            System prompt string
        """
        return "You are an expert puzzle-solving AI. Analyze the state carefully and make careful moves."
