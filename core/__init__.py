"""
Core abstract interfaces for the Minesweeper Arena.

This module provides the base classes that games and agents implement
to integrate with the battle orchestration.
"""

from core.game import Game
from core.state_adapter import StateAdapter
from core.action_parser import ActionParser, ActionParseError
from core.agent import Agent, AgentType, RandomAgent, ScriptedAgent, tool_call

__all__ = [
    "Game",
    "StateAdapter",
    "ActionParser",
    "ActionParseError",
    "Agent",
    "AgentType",
    "RandomAgent",
    "ScriptedAgent",
    "tool_call",
]
