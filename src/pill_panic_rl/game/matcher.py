from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Set, Tuple

from .grid import CellKind, Color, Coordinate, GameGrid
from .pieces import CellColor


MIN_MATCH_LENGTH = 4


class RunDirection(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class Run:
    color: Color
    direction: RunDirection
    cells: Tuple[Coordinate, ...]

    def __len__(self) -> int:
        return len(self.cells)


@dataclass
class ClearResult:
    cleared_count: int
    freed: List[CellColor] = field(default_factory=list)
    infections_cleared: int = 0


@dataclass
class MatchResult:
    cleared_count: int
    runs: List[Run] = field(default_factory=list)
    freed: List[CellColor] = field(default_factory=list)
    infections_cleared: int = 0


def _scan_line(grid: GameGrid, line: List[Coordinate], direction: RunDirection) -> List[Run]:
    runs: List[Run] = []
    current: List[Coordinate] = []
    current_color = Color.NONE

    def flush() -> None:
        if len(current) >= MIN_MATCH_LENGTH:
            runs.append(Run(current_color, direction, tuple(current)))

    for x, y in line:
        color = Color(int(grid.colors[y, x])) if grid.kinds[y, x] != CellKind.EMPTY else Color.NONE
        if color != Color.NONE and color == current_color:
            current.append((x, y))
            continue
        flush()
        current = [(x, y)] if color != Color.NONE else []
        current_color = color
    flush()
    return runs


def find_matches(grid: GameGrid) -> List[Run]:
    """Maximal same-color runs of at least MIN_MATCH_LENGTH, rows first then columns.

    A cell can appear in both a horizontal and a vertical run.
    """
    runs: List[Run] = []
    for y in range(grid.height):
        runs.extend(_scan_line(grid, [(x, y) for x in range(grid.width)], RunDirection.HORIZONTAL))
    for x in range(grid.width):
        runs.extend(_scan_line(grid, [(x, y) for y in range(grid.height)], RunDirection.VERTICAL))
    return runs


def clear_matches(grid: GameGrid, runs: Iterable[Run]) -> ClearResult:
    to_clear: Set[Coordinate] = set()
    for run in runs:
        for x, y in run.cells:
            if not grid.is_empty(x, y):
                to_clear.add((x, y))

    # Identity groups that lose some but not all of their cells release the rest
    # as fragments; those cells leave the grid too.
    touched: Dict[int, int] = {}
    for x, y in to_clear:
        if grid.kinds[y, x] == CellKind.PIECE:
            gid = int(grid.ids[y, x])
            touched[gid] = touched.get(gid, 0) + 1

    freed: List[CellColor] = []
    for gid in sorted(touched):
        group_cells = grid.cells_with_id(gid)
        if touched[gid] == len(group_cells):
            continue
        for x, y in group_cells:
            if (x, y) in to_clear:
                continue
            freed.append(CellColor(x, y, Color(int(grid.colors[y, x]))))
            to_clear.add((x, y))

    infections = 0
    for x, y in to_clear:
        if grid.kinds[y, x] == CellKind.INFECTION:
            infections += 1
        grid.set_empty(x, y)

    return ClearResult(cleared_count=len(to_clear), freed=freed, infections_cleared=infections)


def _can_group_fall(grid: GameGrid, cells: List[Coordinate], blocked: Set[Coordinate]) -> bool:
    own = set(cells)
    for x, y in cells:
        below = (x, y + 1)
        if below in own:
            continue
        if below in blocked or not grid.is_empty(*below):
            return False
    return True


def _shift_down(grid: GameGrid, cells: List[Coordinate]) -> None:
    # bottom first so no cell overwrites another of the same group
    for x, y in sorted(cells, key=lambda c: -c[1]):
        cell = grid.get(x, y)
        grid.set_empty(x, y)
        grid.set(x, y + 1, cell)


def apply_gravity(grid: GameGrid, blocked: Iterable[Coordinate] = ()) -> bool:
    """Drop every unsupported identity group by one row.

    Infection cells never move. Cells listed in `blocked` are treated as
    occupied (e.g. entities that are still falling). Returns whether
    anything moved; call until it returns False to reach a fixed point.
    """
    blocked_set = set(blocked)
    moved = False
    processed: Set[int] = set()
    for y in range(grid.height - 2, -1, -1):
        for x in range(grid.width):
            if grid.kinds[y, x] != CellKind.PIECE:
                continue
            gid = int(grid.ids[y, x])
            if gid:
                if gid in processed:
                    continue
                processed.add(gid)
            cells = grid.cells_with_id(gid) if gid else [(x, y)]
            if _can_group_fall(grid, cells, blocked_set):
                _shift_down(grid, cells)
                moved = True
    return moved


def settle(grid: GameGrid, blocked: Iterable[Coordinate] = ()) -> int:
    """Apply gravity until nothing moves; returns the number of passes that moved something."""
    blocked_set = set(blocked)
    passes = 0
    while apply_gravity(grid, blocked_set):
        passes += 1
    return passes


def process_matches(grid: GameGrid, blocked: Iterable[Coordinate] = ()) -> MatchResult:
    """One cascade step: find, clear, then settle the board."""
    runs = find_matches(grid)
    if not runs:
        return MatchResult(cleared_count=0)
    cleared = clear_matches(grid, runs)
    # freed cells become falling entities in place; nothing may fall into them
    settle(grid, set(blocked) | {(f.x, f.y) for f in cleared.freed})
    return MatchResult(
        cleared_count=cleared.cleared_count,
        runs=runs,
        freed=cleared.freed,
        infections_cleared=cleared.infections_cleared,
    )
