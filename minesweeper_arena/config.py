"""Configuration models for Minesweeper Arena."""

import json
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from games.minesweeper.config import GameConfig


MAX_ROWS = 30
MAX_COLS = 30
MAX_MINES = 200
MAX_AGENTS = 10

AUTHORIZED_MODELS = (
    # OpenAI
    "gpt-5-mini",
    "gpt-4.1-mini",
    # Google
    "gemini-2.5-flash",
    "gemini-3-pro-preview",
    # Anthropic
    "claude-3.7-sonnet",
    "claude-sonnet-4.5",
    "claude-haiku-4.5",
    # xAI
    "grok-code-fast-1",
    "grok-4-fast-reasoning",
    # DeepSeek
    "deepseek-v3.2",
)

# Non-LLM players. "random" also accepts a seed suffix, e.g. "random:7".
BASELINE_AGENTS = ("random",)

# Players that need a local console
LOCAL_AGENTS = ("manual",)


def is_known_agent(agent_id: str, local: bool = False) -> bool:
    """True for an authorised model alias or a baseline agent id (plus LOCAL_AGENTS when local)."""
    if agent_id in AUTHORIZED_MODELS:
        return True
    if local and agent_id in LOCAL_AGENTS:
        return True
    name, _, seed = agent_id.partition(":")
    if name not in BASELINE_AGENTS:
        return False
    return seed == "" or seed.lstrip("-").isdigit()


class LLMConfig(BaseModel):
    """Configuration for LLM parameters."""

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=1)
    timeout: float = Field(default=60.0, ge=1.0, description="API timeout in seconds")

    class Config:
        extra = "forbid"


class BattleSettings(BaseModel):
    """
    Runtime settings shared by every battle a process runs.

    The defaults are the competition rules; tests shrink them.
    """

    max_moves: int = Field(default=60, ge=1, description="Move budget per agent")
    max_retries: int = Field(
        default=3, ge=1, description="Consecutive failed turns before an agent errors out"
    )
    max_batch_moves: int = Field(
        default=20, ge=1, le=20, description="Largest accepted makeMoves batch"
    )
    battle_expiry_seconds: float = Field(
        default=600.0, gt=0, description="Completed battles are evicted after this long"
    )

    # Storage
    storage: Literal["memory", "file"] = Field(
        default="memory", description="Key/value backend for battle history"
    )
    data_dir: str = Field(
        default="./battle_data", description="Directory for the file backend"
    )

    llm_config: LLMConfig = Field(
        default_factory=LLMConfig, description="Parameters for every LLM agent"
    )

    class Config:
        extra = "forbid"


class BattleRequest(BaseModel):
    """
    Body of POST /api/battle, also used to check local CLI runs.

    Validating with context={"local": True} additionally accepts LOCAL_AGENTS.
    """

    rows: int = Field(..., ge=1, le=MAX_ROWS)
    cols: int = Field(..., ge=1, le=MAX_COLS)
    mine_count: int = Field(..., ge=1, le=MAX_MINES, alias="mineCount")
    models: List[str] = Field(..., min_length=1, max_length=MAX_AGENTS)
    seed: Optional[int] = Field(default=None, description="Board seed; random when omitted")

    @field_validator("models")
    @classmethod
    def validate_models(cls, models: List[str], info: ValidationInfo) -> List[str]:
        if len(set(models)) != len(models):
            raise ValueError("models must be unique")
        local = bool(info.context and info.context.get("local"))
        unknown = [m for m in models if not is_known_agent(m, local=local)]
        if unknown:
            raise ValueError(f"Unauthorized models: {', '.join(unknown)}")
        return models

    @model_validator(mode="after")
    def validate_mine_count(self) -> "BattleRequest":
        if self.mine_count >= self.rows * self.cols:
            raise ValueError("mineCount must be less than total cells (rows * cols)")
        return self

    def to_game_config(self) -> GameConfig:
        return GameConfig(rows=self.rows, cols=self.cols, mine_count=self.mine_count)

    class Config:
        extra = "forbid"
        populate_by_name = True


def load_config(filepath: str) -> BattleSettings:
    """Load BattleSettings from a YAML or JSON file."""
    path = Path(filepath)
    content = path.read_text()

    if path.suffix in [".yaml", ".yml"]:
        data = yaml.safe_load(content) or {}
    else:
        data = json.loads(content)

    return BattleSettings(**data)
