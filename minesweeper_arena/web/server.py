"""
Arena Server - FastAPI backend for Minesweeper battles.

Provides:
- POST /api/battle to start a battle
- Live events over Server-Sent Events and WebSocket, with catch-up
- Battle history from the persistence layer
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from core.agent import Agent
from minesweeper_arena.agents import make_agent_factory
from minesweeper_arena.config import BattleRequest, BattleSettings
from minesweeper_arena.orchestration.events import BattleEvent
from minesweeper_arena.orchestration.runner import start_battle
from minesweeper_arena.orchestration.state import to_dict
from minesweeper_arena.orchestration.store import BattleNotFoundError, BattleStore
from minesweeper_arena.storage import BattleRepository, create_repository


logger = logging.getLogger(__name__)

router = APIRouter()


def _arena(request_or_socket) -> Dict[str, Any]:
    return request_or_socket.app.state.arena


def format_sse(event: BattleEvent) -> str:
    """One Server-Sent Events message: event name plus JSON payload."""
    return f"event: {event.type}\ndata: {json.dumps(event.to_wire())}\n\n"


class _BattleFeed:
    """
    Subscription plus catch-up backlog, taken in one synchronous step so a
    late viewer neither misses nor repeats events.
    """

    def __init__(self, store: BattleStore, battle_id: str):
        self._queue: "asyncio.Queue[BattleEvent]" = asyncio.Queue()
        self._unsubscribe = store.subscribe(battle_id, self._queue.put_nowait)
        self._backlog: List[BattleEvent] = store.catch_up(battle_id)

    async def events(self) -> AsyncIterator[BattleEvent]:
        """Backlog, then live events, ending after done."""
        try:
            for event in self._backlog:
                yield event
                if event.type == "done":
                    return
            while True:
                event = await self._queue.get()
                yield event
                if event.type == "done":
                    return
        finally:
            self.close()

    def close(self) -> None:
        self._unsubscribe()


# ============================================
# Battles
# ============================================

@router.post("/api/battle")
async def create_battle(request: Request) -> Dict[str, str]:
    """Validate a battle request, register it and start it in the background."""
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Request body must be JSON")

    try:
        battle_request = BattleRequest.model_validate(body)
    except ValidationError as e:
        details = [
            {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
            for err in e.errors()
        ]
        raise HTTPException(status_code=400, detail=details)

    arena = _arena(request)
    store: BattleStore = arena["store"]
    battle_id = store.create_battle(
        battle_request.to_game_config(),
        battle_request.models,
        seed=battle_request.seed,
    )
    start_battle(store, battle_id, arena["agent_factory"], arena["settings"])
    return {"battleId": battle_id}


@router.get("/api/battle/{battle_id}")
async def get_battle(battle_id: str, request: Request) -> Dict[str, Any]:
    """Live snapshot of a battle held in memory."""
    state = _arena(request)["store"].find_battle(battle_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Battle not found")
    return to_dict(state)


@router.get("/api/battle/{battle_id}/stream")
async def stream_battle(battle_id: str, request: Request) -> StreamingResponse:
    """Server-Sent Events feed of a battle; closes after done."""
    try:
        feed = _BattleFeed(_arena(request)["store"], battle_id)
    except BattleNotFoundError:
        raise HTTPException(status_code=404, detail="Battle not found")

    async def body() -> AsyncIterator[str]:
        async for event in feed.events():
            yield format_sse(event)

    return StreamingResponse(
        body(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.websocket("/ws/battle/{battle_id}")
async def battle_socket(websocket: WebSocket, battle_id: str):
    """
    WebSocket feed of a battle.

    Messages are {"event": <type>, "data": <payload>}; the socket closes
    after done.
    """
    await websocket.accept()
    try:
        feed = _BattleFeed(_arena(websocket)["store"], battle_id)
    except BattleNotFoundError:
        await websocket.send_json({
            "event": "error",
            "data": {"type": "error", "message": "Battle not found", "code": "NOT_FOUND"},
        })
        await websocket.close(code=4404)
        return

    try:
        async for event in feed.events():
            await websocket.send_json({"event": event.type, "data": event.to_wire()})
        await websocket.close()
    except WebSocketDisconnect:
        logger.debug("Viewer left battle %s", battle_id)
    finally:
        feed.close()


# ============================================
# History
# ============================================

@router.get("/api/battles")
async def list_battles(
    request: Request,
    status: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> Dict[str, Any]:
    repository: BattleRepository = _arena(request)["repository"]
    battles = await repository.list_battles(status, limit, offset)
    total = await repository.count_battles(status)
    return {"battles": battles, "total": total, "limit": limit, "offset": offset}


@router.get("/api/battles/{battle_id}")
async def get_battle_history(battle_id: str, request: Request) -> Dict[str, Any]:
    """Replay data: metadata, per-agent frames and results."""
    battle = await _arena(request)["repository"].get_completed_battle(battle_id)
    if battle is None:
        raise HTTPException(status_code=404, detail="Battle not found")
    return battle


@router.get("/api/health")
async def health(request: Request) -> Dict[str, Any]:
    return {"status": "healthy", "liveBattles": len(_arena(request)["store"].list_battle_ids())}


def create_app(
    store: Optional[BattleStore] = None,
    repository: Optional[BattleRepository] = None,
    agent_factory: Optional[Callable[[str], Agent]] = None,
    settings: Optional[BattleSettings] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Shared objects live on ``app.state.arena`` so handlers need no globals.

    Args:
        store: Battle registry; built from settings when omitted
        repository: History repository; defaults to the store's, or one
            built from settings.storage
        agent_factory: Agent id -> Agent; defaults to create_agent
        settings: Battle limits and storage settings
    """
    settings = settings or BattleSettings()
    if repository is None:
        if store is not None and store.repository is not None:
            repository = store.repository
        else:
            repository = create_repository(settings.storage, settings.data_dir)
    if store is None:
        store = BattleStore(repository, expiry_seconds=settings.battle_expiry_seconds)

    app = FastAPI(title="Minesweeper Arena API", version="1.0.0")
    app.state.arena = {
        "store": store,
        "repository": repository,
        "agent_factory": agent_factory or make_agent_factory(settings),
        "settings": settings,
    }

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    app.include_router(router)
    return app
