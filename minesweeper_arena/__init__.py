"""
Minesweeper Arena - agents battle on the same hidden Minesweeper board.

Every agent in a battle plays its own copy of one seeded board. Moves
stream live through the BattleStore; finished runs are scored and ranked.

Components:
- orchestration: turn loop, battle runner, event-sourced battle store
- llm: LLM (LangChain) and console agents
- storage: battle history on a key/value store
- web: FastAPI server with SSE and WebSocket feeds
- config: settings, request validation and model allow-list
"""

from minesweeper_arena.config import (
    AUTHORIZED_MODELS,
    BattleRequest,
    BattleSettings,
    LLMConfig,
    load_config,
)

__all__ = [
    "AUTHORIZED_MODELS",
    "BattleRequest",
    "BattleSettings",
    "LLMConfig",
    "load_config",
]
