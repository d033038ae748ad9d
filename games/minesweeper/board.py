"""
Board engine for Minesweeper.

Pure functions over a row-major grid of Cell objects:

- generate_mine_positions(): seeded, reproducible mine layout
- create_board(): place mines and compute adjacency counts
- reveal_cell() / flag_cell(): in-place moves
- get_visible_board(), encode_board(), decode_board(), get_delta(),
  encode_board_for_llm(): the projections sent to agents and viewers

All functions assume coordinates are within bounds. Callers validate moves
before touching the board.
"""

import random
from collections import deque
from dataclasses import dataclass, replace
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

from games.minesweeper.config import GameConfig


Position = Tuple[int, int]
VisibleValue = Union[int, str]
VisibleBoard = List[List[VisibleValue]]
CellDelta = Tuple[int, int, VisibleValue]

HIDDEN = "H"
FLAGGED = "F"
MINE = "M"

_MASK32 = 0xFFFFFFFF


@dataclass
class Cell:
    """A single board cell."""

    row: int
    col: int
    is_mine: bool = False
    is_revealed: bool = False
    is_flagged: bool = False
    adjacent_mines: int = 0


Board = List[List[Cell]]


class RevealResult(NamedTuple):
    revealed_count: int
    hit_mine: bool


class Mulberry32:
    """
    Small 32-bit bit-mixing PRNG.

    Same seed, same stream, on every platform. Used instead of
    random.Random so board layouts stay stable across Python versions.
    """

    def __init__(self, seed: int):
        self._state = seed & _MASK32

    def random(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & _MASK32
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & _MASK32)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296


def _neighbours(row: int, col: int, rows: int, cols: int):
    for dr in (-1, 0, 1):
        for dc in (-1, 0, 1):
            if dr == 0 and dc == 0:
                continue
            r, c = row + dr, col + dc
            if 0 <= r < rows and 0 <= c < cols:
                yield r, c


def count_safe_cells(config: GameConfig) -> int:
    """Number of non-mine cells on a board with this config."""
    return config.rows * config.cols - config.mine_count


def generate_mine_positions(
    config: GameConfig,
    seed: int,
    excluded_cell: Optional[Position] = None,
) -> List[Position]:
    """
    Generate mine positions deterministically from a seed.

    Cells in the 3x3 block centred on excluded_cell are never mined. When
    that block leaves too few cells for config.mine_count, only the
    excluded cell itself is kept clear.

    Args:
        config: Board dimensions and mine count
        seed: Integer seed; identical inputs always give identical output
        excluded_cell: Optional (row, col) of the first click

    Returns:
        List of (row, col) mine positions, exactly config.mine_count long

    Raises:
        ValueError: If there is no room for config.mine_count mines
    """
    rows, cols, mine_count = config.rows, config.cols, config.mine_count

    def legal_cells(radius: int) -> List[Position]:
        cells = []
        for row in range(rows):
            for col in range(cols):
                if excluded_cell is not None:
                    ex_row, ex_col = excluded_cell
                    if abs(row - ex_row) <= radius and abs(col - ex_col) <= radius:
                        continue
                cells.append((row, col))
        return cells

    positions = legal_cells(1)
    if len(positions) < mine_count:
        positions = legal_cells(0)
    if len(positions) < mine_count:
        raise ValueError(
            f"Cannot place {mine_count} mines on a {rows}x{cols} board"
        )

    # Fisher-Yates driven by the seeded generator
    rng = Mulberry32(seed)
    for i in range(len(positions) - 1, 0, -1):
        j = int(rng.random() * (i + 1))
        positions[i], positions[j] = positions[j], positions[i]

    return positions[:mine_count]


def create_board(
    config: GameConfig,
    first_click: Optional[Position] = None,
    mine_positions: Optional[Sequence[Position]] = None,
) -> Board:
    """
    Create a new board.

    With mine_positions, mines go exactly there (out-of-range entries are
    ignored). Without, mines are placed uniformly at random avoiding only
    the first_click cell; that path is for unseeded single games.
    """
    rows, cols = config.rows, config.cols
    board: Board = [
        [Cell(row=row, col=col) for col in range(cols)]
        for row in range(rows)
    ]

    if mine_positions is not None:
        for row, col in mine_positions:
            if 0 <= row < rows and 0 <= col < cols:
                board[row][col].is_mine = True
    else:
        candidates = [
            (row, col)
            for row in range(rows)
            for col in range(cols)
            if (row, col) != first_click
        ]
        for row, col in random.sample(candidates, min(config.mine_count, len(candidates))):
            board[row][col].is_mine = True

    for row in range(rows):
        for col in range(cols):
            if board[row][col].is_mine:
                continue
            board[row][col].adjacent_mines = sum(
                1 for r, c in _neighbours(row, col, rows, cols) if board[r][c].is_mine
            )

    return board


def clone_board(board: Board) -> Board:
    """Structural deep copy. The copy shares no cells with the original."""
    return [[replace(cell) for cell in row] for row in board]


def reveal_cell(board: Board, row: int, col: int) -> RevealResult:
    """
    Reveal a cell, flood-filling through zero-adjacency cells.

    Breadth-first with an explicit queue, so large empty regions never hit
    the recursion limit.

    Returns:
        RevealResult(revealed_count, hit_mine). revealed_count is 0 when
        the cell is already revealed or flagged.
    """
    cell = board[row][col]
    if cell.is_revealed or cell.is_flagged:
        return RevealResult(0, False)

    if cell.is_mine:
        cell.is_revealed = True
        return RevealResult(1, True)

    rows, cols = len(board), len(board[0])
    revealed = 0
    queue = deque([(row, col)])
    visited = {(row, col)}

    while queue:
        r, c = queue.popleft()
        current = board[r][c]
        # Flagged cells stop the fill; the player has to unflag them first
        if current.is_revealed or current.is_flagged:
            continue

        current.is_revealed = True
        revealed += 1

        if current.adjacent_mines == 0:
            for nr, nc in _neighbours(r, c, rows, cols):
                if (nr, nc) not in visited and not board[nr][nc].is_revealed:
                    visited.add((nr, nc))
                    queue.append((nr, nc))

    return RevealResult(revealed, False)


def flag_cell(board: Board, row: int, col: int) -> None:
    """Toggle the flag on a cell. Revealed cells are never flaggable."""
    cell = board[row][col]
    if not cell.is_revealed:
        cell.is_flagged = not cell.is_flagged


def _visible_value(cell: Cell) -> VisibleValue:
    if cell.is_revealed:
        return cell.adjacent_mines
    if cell.is_flagged:
        return FLAGGED
    return HIDDEN


def get_visible_board(board: Board) -> VisibleBoard:
    """Agent-facing view: 'H' hidden, 'F' flagged, digit when revealed."""
    return [[_visible_value(cell) for cell in row] for row in board]


def encode_board(board: Board) -> str:
    """
    Compact wire form: one line per row, one character per cell.

    'M' revealed mine, '0'-'8' revealed safe cell, 'F' flagged, 'H' hidden.
    """
    lines = []
    for row in board:
        chars = []
        for cell in row:
            if cell.is_revealed:
                chars.append(MINE if cell.is_mine else str(cell.adjacent_mines))
            elif cell.is_flagged:
                chars.append(FLAGGED)
            else:
                chars.append(HIDDEN)
        lines.append("".join(chars))
    return "\n".join(lines)


def decode_board(encoded: str, rows: int, cols: int) -> VisibleBoard:
    """Inverse of encode_board. Missing or unknown characters decode to 'H'."""
    lines = encoded.split("\n") if encoded else []
    result: VisibleBoard = []
    for row in range(rows):
        line = lines[row] if row < len(lines) else ""
        values: List[VisibleValue] = []
        for col in range(cols):
            char = line[col] if col < len(line) else HIDDEN
            if char in (MINE, FLAGGED):
                values.append(char)
            elif "0" <= char <= "8":
                values.append(int(char))
            else:
                values.append(HIDDEN)
        result.append(values)
    return result


def get_delta(previous: Optional[Board], current: Board) -> List[CellDelta]:
    """
    Cells whose visible value changed between two boards.

    A missing previous board counts as all hidden.
    """
    delta: List[CellDelta] = []
    for row_idx, row in enumerate(current):
        for col_idx, cell in enumerate(row):
            value = _visible_value(cell)
            if previous is not None:
                before = _visible_value(previous[row_idx][col_idx])
            else:
                before = HIDDEN
            if value != before:
                delta.append((row_idx, col_idx, value))
    return delta


def get_encoded_delta(
    previous: Optional[str],
    current: str,
    rows: int,
    cols: int,
) -> List[CellDelta]:
    """get_delta() over compact encodings."""
    after = decode_board(current, rows, cols)
    before = decode_board(previous, rows, cols) if previous else None
    delta: List[CellDelta] = []
    for row in range(rows):
        for col in range(cols):
            prev_value = before[row][col] if before is not None else HIDDEN
            if after[row][col] != prev_value:
                delta.append((row, col, after[row][col]))
    return delta


def encode_board_for_llm(board: Board) -> str:
    """
    Visible board with a column header and row-index prefixes.

    Example (3x3, one cell revealed):

          0 1 2
        0 H H H
        1 H 2 H
        2 H H H
    """
    visible = get_visible_board(board)
    rows = len(visible)
    cols = len(visible[0]) if visible else 0
    width = len(str(max(rows, cols, 1) - 1))

    header = " " * width + " " + " ".join(str(c).rjust(width) for c in range(cols))
    lines = [header]
    for idx, row in enumerate(visible):
        cells = " ".join(str(v).rjust(width) for v in row)
        lines.append(f"{str(idx).rjust(width)} {cells}")
    return "\n".join(lines)
