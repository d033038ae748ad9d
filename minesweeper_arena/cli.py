#!/usr/bin/env python3
"""
Command-line interface for Minesweeper Arena.

Usage:
    minesweeper-arena run --agents "gpt-5-mini,claude-sonnet-4.5,random:7"
    minesweeper-arena run --rows 16 --cols 16 --mines 40 --agents manual,random --seed 42
    minesweeper-arena serve --port 8000
    minesweeper-arena history --data-dir ./battle_data
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from pydantic import ValidationError

from games.minesweeper.config import GameConfig
from minesweeper_arena.agents import make_agent_factory
from minesweeper_arena.config import BattleRequest, BattleSettings, load_config
from minesweeper_arena.display import render_boards, render_history, render_rankings
from minesweeper_arena.orchestration.events import BattleEvent, CompleteEvent
from minesweeper_arena.orchestration.runner import run_battle
from minesweeper_arena.orchestration.store import BattleStore
from minesweeper_arena.storage import create_repository


logger = logging.getLogger("minesweeper_arena")
console = Console()
log_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=log_console, rich_tracebacks=True, show_path=verbose)],
    )


def parse_agents(agents_str: str) -> List[str]:
    """Split "a,b,c" into agent ids, dropping blanks."""
    return [agent.strip() for agent in agents_str.split(",") if agent.strip()]


def _load_settings(args) -> BattleSettings:
    settings = load_config(args.config) if args.config else BattleSettings()
    overrides = {}
    if getattr(args, "storage", None):
        overrides["storage"] = args.storage
    if getattr(args, "data_dir", None):
        overrides["data_dir"] = args.data_dir
    if getattr(args, "max_moves", None):
        overrides["max_moves"] = args.max_moves
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


async def _run_local(config: GameConfig, agent_ids: List[str], seed: Optional[int], settings: BattleSettings):
    repository = create_repository(settings.storage, settings.data_dir)
    store = BattleStore(repository, expiry_seconds=settings.battle_expiry_seconds)
    battle_id = store.create_battle(config, agent_ids, seed=seed)

    def on_event(event: BattleEvent) -> None:
        if isinstance(event, CompleteEvent):
            logger.info(
                "%s finished: %s (%d moves, %d safe)",
                event.agent_id, event.outcome, event.moves, event.safe_revealed,
            )

    store.subscribe(battle_id, on_event)
    rankings = await run_battle(store, battle_id, make_agent_factory(settings), settings)
    await store.drain()
    return store.get_battle(battle_id), rankings


def cmd_run(args):
    """Run a battle locally."""
    settings = _load_settings(args)
    try:
        request = BattleRequest.model_validate(
            {
                "rows": args.rows,
                "cols": args.cols,
                "mineCount": args.mines,
                "models": parse_agents(args.agents),
                "seed": args.seed,
            },
            context={"local": True},
        )
    except ValidationError as e:
        console.print(f"[red]Invalid battle: {e}[/]")
        sys.exit(1)

    state, rankings = asyncio.run(
        _run_local(request.to_game_config(), request.models, request.seed, settings)
    )

    if args.json:
        print(json.dumps({
            "battleId": state.battle_id,
            "boardSeed": state.board_seed,
            "rankings": [r.to_wire() for r in rankings],
        }, indent=2))
        return

    console.print(f"\nBattle [bold]{state.battle_id}[/] (seed {state.board_seed})")
    render_boards(
        {agent_id: s.board_state for agent_id, s in state.agent_states.items()},
        console=console,
    )
    render_rankings(rankings, console=console)


def cmd_serve(args):
    """Start the HTTP server."""
    import uvicorn
    from minesweeper_arena.web.server import create_app

    settings = _load_settings(args)
    app = create_app(settings=settings)
    logger.info("Serving on http://%s:%d (storage: %s)", args.host, args.port, settings.storage)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


def cmd_history(args):
    """List stored battles."""
    settings = _load_settings(args)
    repository = create_repository("file", settings.data_dir)

    async def load():
        if args.battle_id:
            return await repository.get_completed_battle(args.battle_id), None
        battles = await repository.list_battles(args.status, args.limit, args.offset)
        return battles, await repository.count_battles(args.status)

    data, total = asyncio.run(load())
    if args.battle_id:
        if data is None:
            console.print(f"[red]Battle {args.battle_id} not found[/]")
            sys.exit(1)
        print(json.dumps(data, indent=2))
        return
    render_history(data, total, console=console)


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="Minesweeper Arena: agents battle on the same hidden board"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--config", "-c", help="Settings file (YAML or JSON)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run a battle locally")
    run_parser.add_argument("--rows", type=int, default=9)
    run_parser.add_argument("--cols", type=int, default=9)
    run_parser.add_argument("--mines", type=int, default=10)
    run_parser.add_argument(
        "--agents", "-a", required=True,
        help="Agents: 'gpt-5-mini,claude-sonnet-4.5,random:7,manual'",
    )
    run_parser.add_argument("--seed", type=int, help="Board seed")
    run_parser.add_argument("--max-moves", type=int, help="Move budget per agent")
    run_parser.add_argument("--storage", choices=["memory", "file"])
    run_parser.add_argument("--data-dir")
    run_parser.add_argument("--json", action="store_true", help="Output JSON")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Host to bind")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind")
    serve_parser.add_argument("--storage", choices=["memory", "file"])
    serve_parser.add_argument("--data-dir")

    # History command
    history_parser = subparsers.add_parser("history", help="List stored battles")
    history_parser.add_argument("battle_id", nargs="?", help="Show one battle's replay data")
    history_parser.add_argument("--data-dir")
    history_parser.add_argument("--status", choices=["pending", "running", "complete"])
    history_parser.add_argument("--limit", type=int, default=20)
    history_parser.add_argument("--offset", type=int, default=0)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "run":
        cmd_run(args)
    elif args.command == "serve":
        cmd_serve(args)
    elif args.command == "history":
        cmd_history(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
