"""
Abstract ActionParser interface for turning agent tool calls into game actions.

Parsers are the boundary between an agent's free-form output and the
structured actions a game engine executes.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional


class ActionParseError(Exception):
    """
    Raised when agent output cannot be turned into a valid action.

    Attributes:
        message: Human-readable error description
        raw_output: The original agent output that failed to parse
    """

    def __init__(self, message: str, raw_output: Optional[Any] = None):
        super().__init__(message)
        self.raw_output = raw_output


class ActionParser(ABC):
    """
    Abstract base class for parsing agent tool calls into game actions.

    Each game implementation subclasses this to handle its own tool
    contract. The parser is responsible for:

    1. Rejecting responses with no tool calls at all
    2. Validating tool names and argument shapes
    3. Returning actions in the order the agent requested them

    Anything the parser cannot accept raises ActionParseError; callers
    decide whether to retry.

    Example:
        class MyGameParser(ActionParser):
            def parse(self, tool_calls, context=None):
                call = self.require_tool_calls(tool_calls)[0]
                return [{"action_type": call["name"], **call["args"]}]
    """

    @abstractmethod
    def parse(
        self,
        tool_calls: List[Dict[str, Any]],
        context: Optional[Any] = None,
    ) -> List[Dict[str, Any]]:
        """
        Parse tool calls into an ordered list of game actions.

        Args:
            tool_calls: List of {"name": str, "args": dict}
            context: Game-specific context for validation (e.g., board size)

        Returns:
            Ordered list of action dicts

        Raises:
            ActionParseError: If the tool calls cannot be accepted
        """
        pass

    def require_tool_calls(self, tool_calls: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        """
        Return tool_calls, or raise if the agent made none.

        Args:
            tool_calls: Raw tool calls from the agent response

        Raises:
            ActionParseError: If there are no tool calls or they are not a list
        """
        if not tool_calls:
            raise ActionParseError("No move was made: the response had no tool calls")
        if not isinstance(tool_calls, (list, tuple)):
            raise ActionParseError("Tool calls must be a list", raw_output=tool_calls)
        return list(tool_calls)
