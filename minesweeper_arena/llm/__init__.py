"""LLM and human agents for Minesweeper Arena."""

from minesweeper_arena.llm.agent import LLMAgent
from minesweeper_arena.llm.manual_agent import ManualAgent
from minesweeper_arena.llm.providers import get_llm_for_model, resolve_model_alias

__all__ = [
    "LLMAgent",
    "ManualAgent",
    "get_llm_for_model",
    "resolve_model_alias",
]
