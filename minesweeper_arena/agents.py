"""Agent construction from arena agent ids."""

from typing import Callable, Optional

from core.agent import Agent, RandomAgent
from minesweeper_arena.config import AUTHORIZED_MODELS, BattleSettings
from minesweeper_arena.llm.agent import LLMAgent
from minesweeper_arena.llm.manual_agent import ManualAgent


def create_agent(agent_id: str, settings: Optional[BattleSettings] = None) -> Agent:
    """
    Build the agent behind an arena agent id.

    Accepted ids:
        random, random:<seed>   baseline revealing random hidden cells
        manual                  human at the console
        <authorised model>      LLMAgent for that model

    Raises:
        ValueError: For any other id
    """
    settings = settings or BattleSettings()
    name, _, suffix = agent_id.partition(":")

    if name == "random":
        seed = int(suffix) if suffix else None
        return RandomAgent(agent_id, seed=seed, action_types=("reveal",))

    if agent_id == "manual":
        return ManualAgent(agent_id)

    if agent_id in AUTHORIZED_MODELS:
        return LLMAgent(agent_id, llm_config=settings.llm_config.model_dump())

    raise ValueError(f"Unknown agent: {agent_id}")


def make_agent_factory(settings: Optional[BattleSettings] = None) -> Callable[[str], Agent]:
    """AgentFactory for run_battle() bound to settings."""
    def factory(agent_id: str) -> Agent:
        return create_agent(agent_id, settings)
    return factory
