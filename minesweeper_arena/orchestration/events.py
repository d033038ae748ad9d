"""
Battle events.

Events are the only way a battle's state changes and the only thing live
viewers ever see. Python code uses snake_case fields; to_wire() produces
the camelCase JSON payload sent to clients and stored in history.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from games.minesweeper.config import GameConfig


Outcome = Literal["playing", "win", "loss", "stuck", "error"]


class _WireModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "forbid"
        frozen = True
        protected_namespaces = ()

    def to_wire(self) -> Dict[str, Any]:
        """JSON-safe dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class GameResult(_WireModel):
    """One agent's final, scored result."""

    model_id: str
    outcome: Outcome
    score: int = Field(..., ge=0)
    moves: int = Field(..., ge=0)
    duration_ms: int = Field(..., ge=0)
    safe_revealed: int = Field(..., ge=0)
    total_safe: int = Field(..., ge=0)
    mines_hit: int = Field(..., ge=0, le=1)


class InitEvent(_WireModel):
    type: Literal["init"] = "init"
    config: GameConfig
    agent_ids: List[str]


class MoveEvent(_WireModel):
    type: Literal["move"] = "move"
    agent_id: str
    action: Literal["reveal", "flag"]
    row: int
    col: int
    board_encoding: str
    delta: List[Tuple[int, int, Union[int, str]]] = Field(default_factory=list)


class CompleteEvent(_WireModel):
    type: Literal["complete"] = "complete"
    agent_id: str
    outcome: Outcome
    moves: int
    safe_revealed: int
    mines_hit: int = Field(..., ge=0, le=1)
    duration_ms: int


class DoneEvent(_WireModel):
    type: Literal["done"] = "done"
    rankings: List[GameResult]


class ErrorEvent(_WireModel):
    type: Literal["error"] = "error"
    message: str
    code: str
    agent_id: Optional[str] = None


BattleEvent = Annotated[
    Union[InitEvent, MoveEvent, CompleteEvent, DoneEvent, ErrorEvent],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(BattleEvent)


def parse_event(data: Dict[str, Any]) -> BattleEvent:
    """Rebuild an event from its wire (or snake_case) form."""
    return _event_adapter.validate_python(data)
