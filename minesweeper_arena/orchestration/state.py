"""
Battle state and the event reducer.

BattleState is never edited in place by callers: BattleStore.emit() runs
apply_event() and swaps in the returned state. Replaying a battle's events
onto create_initial_state() therefore rebuilds the same state.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from games.minesweeper.config import GameConfig
from minesweeper_arena.orchestration.events import (
    BattleEvent,
    CompleteEvent,
    DoneEvent,
    GameResult,
    InitEvent,
    MoveEvent,
)


PENDING = "pending"
RUNNING = "running"
PLAYING = "playing"
COMPLETE = "complete"


@dataclass
class ModelState:
    """Live mirror of one agent's progress. Boards are compact encodings."""

    board_state: Optional[str] = None
    previous_board_state: Optional[str] = None
    status: str = PENDING
    outcome: Optional[str] = None
    moves: int = 0
    safe_revealed: int = 0
    mines_hit: int = 0
    duration_ms: int = 0
    last_move: Optional[Dict[str, Any]] = None


@dataclass
class BattleState:
    battle_id: str
    config: GameConfig
    agent_ids: List[str]
    agent_states: Dict[str, ModelState]
    board_seed: int
    created_at: int
    status: str = PENDING
    rankings: Optional[List[GameResult]] = None
    # Store plumbing, shared across reducer steps and ignored by ==
    subscribers: List[Callable[[BattleEvent], None]] = field(
        default_factory=list, compare=False, repr=False
    )


def create_initial_state(
    battle_id: str,
    config: GameConfig,
    agent_ids: List[str],
    board_seed: int,
    created_at: int,
) -> BattleState:
    return BattleState(
        battle_id=battle_id,
        config=config,
        agent_ids=list(agent_ids),
        agent_states={agent_id: ModelState() for agent_id in agent_ids},
        board_seed=board_seed,
        created_at=created_at,
    )


def _with_agent(state: BattleState, agent_id: str, **changes) -> BattleState:
    if agent_id not in state.agent_states:
        raise KeyError(f"Agent {agent_id!r} is not part of battle {state.battle_id}")
    agent_states = dict(state.agent_states)
    agent_states[agent_id] = replace(agent_states[agent_id], **changes)
    return replace(state, agent_states=agent_states)


def apply_event(state: BattleState, event: BattleEvent) -> BattleState:
    """
    Return the state after event. The input state is left untouched.

    error events carry no state change; the affected agent still finishes
    through its own complete event.
    """
    if isinstance(event, InitEvent):
        return replace(state, status=RUNNING)

    if isinstance(event, MoveEvent):
        current = state.agent_states.get(event.agent_id)
        return _with_agent(
            state,
            event.agent_id,
            previous_board_state=current.board_state if current else None,
            board_state=event.board_encoding,
            status=PLAYING,
            moves=(current.moves if current else 0) + 1,
            last_move={"action": event.action, "row": event.row, "col": event.col},
        )

    if isinstance(event, CompleteEvent):
        return _with_agent(
            state,
            event.agent_id,
            status=COMPLETE,
            outcome=event.outcome,
            moves=event.moves,
            safe_revealed=event.safe_revealed,
            mines_hit=event.mines_hit,
            duration_ms=event.duration_ms,
        )

    if isinstance(event, DoneEvent):
        return replace(state, status=COMPLETE, rankings=list(event.rankings))

    return state


def model_state_to_dict(model_state: ModelState) -> Dict[str, Any]:
    return {
        "boardState": model_state.board_state,
        "previousBoardState": model_state.previous_board_state,
        "status": model_state.status,
        "outcome": model_state.outcome,
        "moves": model_state.moves,
        "safeRevealed": model_state.safe_revealed,
        "minesHit": model_state.mines_hit,
        "durationMs": model_state.duration_ms,
        "lastMove": model_state.last_move,
    }


def to_dict(state: BattleState) -> Dict[str, Any]:
    """JSON-safe camelCase snapshot, without subscribers."""
    return {
        "battleId": state.battle_id,
        "status": state.status,
        "config": state.config.model_dump(by_alias=True),
        "agentIds": list(state.agent_ids),
        "agentStates": {
            agent_id: model_state_to_dict(model_state)
            for agent_id, model_state in state.agent_states.items()
        },
        "rankings": [r.to_wire() for r in state.rankings] if state.rankings is not None else None,
        "createdAt": state.created_at,
        "boardSeed": state.board_seed,
        "subscriberCount": len(state.subscribers),
    }
