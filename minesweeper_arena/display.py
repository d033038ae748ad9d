"""
Rich terminal display for Minesweeper battles.

Renders:
  1. Final rankings table (score, outcome, moves, safe cells, time)
  2. Per-agent boards from compact encodings
  3. Battle history listings
"""

from typing import Any, Dict, Iterable, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from games.minesweeper.board import FLAGGED, HIDDEN, MINE
from minesweeper_arena.orchestration.events import GameResult


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_OUTCOME_STYLES = {
    "win": "bold bright_green",
    "stuck": "yellow",
    "loss": "red",
    "error": "bold red",
    "playing": "dim",
}

_DIGIT_STYLES = {
    "0": "dim",
    "1": "blue",
    "2": "green",
    "3": "red",
    "4": "magenta",
    "5": "dark_red",
    "6": "cyan",
    "7": "white",
    "8": "bright_black",
}


def _rank_badge(rank: int) -> str:
    if rank == 1:
        return "[bold gold1]#1[/]"
    if rank == 2:
        return "[bold bright_white]#2[/]"
    if rank == 3:
        return "[bold orange1]#3[/]"
    return f"[dim]#{rank}[/]"


def _outcome_markup(outcome: str) -> str:
    return f"[{_OUTCOME_STYLES.get(outcome, 'white')}]{outcome}[/]"


def _seconds(duration_ms: int) -> str:
    return f"{duration_ms / 1000:.1f}s"


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def render_board(encoding: Optional[str]) -> Text:
    """Coloured board from an encode_board() string."""
    text = Text()
    if not encoding:
        text.append("(no moves)", style="dim")
        return text
    for line_no, line in enumerate(encoding.split("\n")):
        if line_no:
            text.append("\n")
        for char in line:
            if char == HIDDEN:
                text.append("■ ", style="bright_black")
            elif char == FLAGGED:
                text.append("⚑ ", style="bold yellow")
            elif char == MINE:
                text.append("✸ ", style="bold red")
            elif char == "0":
                text.append("· ", style="dim")
            else:
                text.append(f"{char} ", style=_DIGIT_STYLES.get(char, "white"))
    return text


def render_rankings(
    rankings: List[GameResult],
    console: Optional[Console] = None,
    title: str = "Battle Results",
) -> None:
    """Print the ranked results of one battle."""
    if console is None:
        console = Console()

    table = Table(
        box=box.ROUNDED,
        show_header=True,
        header_style="bold dim",
        title=f"[bold]{title}[/]",
    )
    table.add_column("#", width=4, justify="right")
    table.add_column("Agent", min_width=20)
    table.add_column("Score", justify="right")
    table.add_column("Outcome")
    table.add_column("Moves", justify="right")
    table.add_column("Safe", justify="right")
    table.add_column("Time", justify="right", style="dim")

    for rank, result in enumerate(rankings, start=1):
        table.add_row(
            _rank_badge(rank),
            result.model_id,
            f"[bold]{result.score}[/]",
            _outcome_markup(result.outcome),
            str(result.moves),
            f"{result.safe_revealed}/{result.total_safe}",
            _seconds(result.duration_ms),
        )

    console.print(table)


def render_boards(
    boards: Dict[str, Optional[str]],
    console: Optional[Console] = None,
) -> None:
    """Print each agent's final board side by side."""
    if console is None:
        console = Console()

    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    for agent_id in boards:
        table.add_column(agent_id)
    table.add_row(*(render_board(encoding) for encoding in boards.values()))
    console.print(table)


def render_history(
    battles: Iterable[Dict[str, Any]],
    total: int,
    console: Optional[Console] = None,
) -> None:
    """Print battle summaries as returned by BattleRepository.list_battles()."""
    if console is None:
        console = Console()

    table = Table(
        box=box.ROUNDED,
        header_style="bold dim",
        title=f"[bold]Battles[/] [dim]({total} total)[/]",
    )
    table.add_column("Battle")
    table.add_column("Board", justify="right")
    table.add_column("Status")
    table.add_column("Winner")
    table.add_column("Agents", style="dim")

    for battle in battles:
        config = battle["config"]
        rankings = battle.get("rankings") or []
        winner = rankings[0] if rankings else None
        table.add_row(
            battle["id"],
            f"{config['rows']}x{config['cols']} / {config['mineCount']}",
            battle["status"],
            f"{winner['modelId']} ({winner['score']})" if winner else "-",
            ", ".join(battle["agentIds"]),
        )

    console.print(table)
