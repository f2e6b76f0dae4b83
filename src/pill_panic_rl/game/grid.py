from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, Tuple, Union

import numpy as np


Coordinate = Tuple[int, int]

BOARD_WIDTH = 8
BOARD_HEIGHT = 16


class Color(IntEnum):
    NONE = 0
    RED = 1
    BLUE = 2
    YELLOW = 3


PLAYABLE_COLORS = (Color.RED, Color.BLUE, Color.YELLOW)


class CellKind(IntEnum):
    EMPTY = 0
    INFECTION = 1
    PIECE = 2


@dataclass(frozen=True)
class Cell:
    kind: CellKind = CellKind.EMPTY
    color: Color = Color.NONE
    group_id: int = 0  # 0 for cells not owned by a piece

    @property
    def is_empty(self) -> bool:
        return self.kind == CellKind.EMPTY


class _OutOfBounds:
    """Sentinel returned by `GameGrid.get` for coordinates outside the board."""

    def __repr__(self) -> str:
        return "OUT_OF_BOUNDS"

    def __bool__(self) -> bool:
        return False


OUT_OF_BOUNDS = _OutOfBounds()
EMPTY_CELL = Cell()


def infection_cell(color: Color) -> Cell:
    return Cell(CellKind.INFECTION, Color(color), 0)


def piece_cell(color: Color, group_id: int) -> Cell:
    return Cell(CellKind.PIECE, Color(color), int(group_id))


@dataclass(frozen=True)
class Infection:
    x: int
    y: int
    color: Color


class GameGrid:
    """Fixed-size board of cells.

    Cell state lives in three parallel arrays indexed ``[y, x]``: the cell
    kind, its color, and the identity of the piece that committed it. Origin
    is the top-left corner and y grows downward.
    """

    def __init__(self, width: int = BOARD_WIDTH, height: int = BOARD_HEIGHT) -> None:
        self.width = int(width)
        self.height = int(height)
        self.kinds = np.zeros((self.height, self.width), dtype=np.int8)
        self.colors = np.zeros((self.height, self.width), dtype=np.int8)
        self.ids = np.zeros((self.height, self.width), dtype=np.int32)

    def clear(self) -> None:
        self.kinds.fill(0)
        self.colors.fill(0)
        self.ids.fill(0)

    def is_in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def is_empty(self, x: int, y: int) -> bool:
        if not self.is_in_bounds(x, y):
            return False
        return self.kinds[y, x] == CellKind.EMPTY

    def get(self, x: int, y: int) -> Union[Cell, _OutOfBounds]:
        if not self.is_in_bounds(x, y):
            return OUT_OF_BOUNDS
        kind = int(self.kinds[y, x])
        if kind == CellKind.EMPTY:
            return EMPTY_CELL
        return Cell(CellKind(kind), Color(int(self.colors[y, x])), int(self.ids[y, x]))

    def set(self, x: int, y: int, cell: Cell) -> None:
        if not self.is_in_bounds(x, y):
            return
        self.kinds[y, x] = int(cell.kind)
        self.colors[y, x] = int(cell.color)
        self.ids[y, x] = int(cell.group_id)

    def set_empty(self, x: int, y: int) -> None:
        self.set(x, y, EMPTY_CELL)

    def can_place(self, cells: Iterable[Coordinate]) -> bool:
        for x, y in cells:
            if not self.is_empty(x, y):
                return False
        return True

    def add_infections(self, infections: Iterable[Infection]) -> None:
        for infection in infections:
            self.set(infection.x, infection.y, infection_cell(infection.color))

    def count_infection(self) -> int:
        return int(np.count_nonzero(self.kinds == CellKind.INFECTION))

    def cells_with_id(self, group_id: int) -> List[Coordinate]:
        if group_id == 0:
            return []
        ys, xs = np.nonzero(self.ids == group_id)
        return [(int(x), int(y)) for y, x in zip(ys, xs)]

    def filled_height(self) -> int:
        # y=0 is top; height measured from the floor
        non_empty_rows = np.where(np.any(self.kinds != CellKind.EMPTY, axis=1))[0]
        if non_empty_rows.size == 0:
            return 0
        return self.height - int(non_empty_rows[0])

    def clone_state(self) -> np.ndarray:
        """Encode the board as one int8 array.

        0 is empty, 1..3 an infection of that color, 4..6 a committed piece
        cell of color (value - 3).
        """
        state = self.colors.copy()
        state[self.kinds == CellKind.PIECE] += len(PLAYABLE_COLORS)
        state[self.kinds == CellKind.EMPTY] = 0
        return state

    def copy(self) -> "GameGrid":
        new_grid = GameGrid(self.width, self.height)
        new_grid.kinds = self.kinds.copy()
        new_grid.colors = self.colors.copy()
        new_grid.ids = self.ids.copy()
        return new_grid

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GameGrid):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and np.array_equal(self.kinds, other.kinds)
            and np.array_equal(self.colors, other.colors)
            and np.array_equal(self.ids, other.ids)
        )

    __hash__ = None  # type: ignore[assignment]
