from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from .grid import Color, Coordinate, GameGrid, piece_cell


class Orientation(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


# Offsets tried in order when the in-place rotation is blocked.
KICK_OFFSETS: Tuple[Coordinate, ...] = (
    (0, 0),   # in place
    (-1, 0),  # one column left, off the right wall
    (0, -1),  # one row up, off the floor
)


@dataclass(frozen=True)
class CellColor:
    x: int
    y: int
    color: Color


def _cells_for(x: int, y: int, orientation: Orientation) -> List[Coordinate]:
    if orientation == Orientation.HORIZONTAL:
        return [(x, y), (x + 1, y)]
    return [(x, y), (x, y + 1)]


def _toggled(orientation: Orientation) -> Orientation:
    if orientation == Orientation.HORIZONTAL:
        return Orientation.VERTICAL
    return Orientation.HORIZONTAL


class Piece:
    """Two-cell capsule. colors[0] sits at the anchor, colors[1] at the partner cell."""

    def __init__(
        self,
        entity_id: int,
        colors: Tuple[Color, Color],
        x: int = 3,
        y: int = 0,
        orientation: Orientation = Orientation.HORIZONTAL,
    ) -> None:
        self.entity_id = int(entity_id)
        self.colors = (Color(colors[0]), Color(colors[1]))
        self.x = int(x)
        self.y = int(y)
        self.orientation = orientation
        self.is_active = True
        self.is_user_controllable = True
        self._pending_kick: Optional[Coordinate] = None

    def __repr__(self) -> str:
        return (
            f"Piece(id={self.entity_id}, colors=({self.colors[0].name}, {self.colors[1].name}), "
            f"x={self.x}, y={self.y}, {self.orientation.value})"
        )

    def positions(self) -> List[Coordinate]:
        return _cells_for(self.x, self.y, self.orientation)

    def cells(self) -> List[CellColor]:
        return [CellColor(x, y, c) for (x, y), c in zip(self.positions(), self.colors)]

    def lowest_y(self) -> int:
        return max(y for _, y in self.positions())

    def can_move(self, grid: GameGrid, dx: int, dy: int) -> bool:
        return grid.can_place((x + dx, y + dy) for x, y in self.positions())

    def move(self, dx: int, dy: int) -> None:
        self.x += dx
        self.y += dy
        # a kick found for the old pose does not apply to the new one
        self._pending_kick = None

    def rotation_kick(self, grid: GameGrid) -> Optional[Coordinate]:
        """First kick offset that makes the rotated capsule legal, or None."""
        target = _toggled(self.orientation)
        for dx, dy in KICK_OFFSETS:
            if grid.can_place(_cells_for(self.x + dx, self.y + dy, target)):
                return dx, dy
        return None

    def can_rotate(self, grid: GameGrid) -> bool:
        self._pending_kick = self.rotation_kick(grid)
        return self._pending_kick is not None

    def rotate(self, kick: Optional[Coordinate] = None) -> None:
        # Applies the kick found by the last successful can_rotate unless one is given.
        if kick is None:
            kick = self._pending_kick or (0, 0)
        self._pending_kick = None
        dx, dy = kick
        self.x += dx
        self.y += dy
        if self.orientation == Orientation.VERTICAL:
            self.colors = (self.colors[1], self.colors[0])
        self.orientation = _toggled(self.orientation)

    def try_rotate(self, grid: GameGrid) -> bool:
        kick = self.rotation_kick(grid)
        if kick is None:
            return False
        self.rotate(kick)
        return True

    def place(self, grid: GameGrid) -> None:
        for (x, y), color in zip(self.positions(), self.colors):
            grid.set(x, y, piece_cell(color, self.entity_id))
        self.is_active = False


class Fragment:
    """Single cell left over when only one half of a capsule was cleared."""

    def __init__(self, entity_id: int, color: Color, x: int, y: int, controllable: bool = True) -> None:
        self.entity_id = int(entity_id)
        self.color = Color(color)
        self.x = int(x)
        self.y = int(y)
        self.is_active = True
        self.is_user_controllable = controllable

    def __repr__(self) -> str:
        return f"Fragment(id={self.entity_id}, color={self.color.name}, x={self.x}, y={self.y})"

    def positions(self) -> List[Coordinate]:
        return [(self.x, self.y)]

    def cells(self) -> List[CellColor]:
        return [CellColor(self.x, self.y, self.color)]

    def lowest_y(self) -> int:
        return self.y

    def can_move(self, grid: GameGrid, dx: int, dy: int) -> bool:
        return grid.is_empty(self.x + dx, self.y + dy)

    def move(self, dx: int, dy: int) -> None:
        self.x += dx
        self.y += dy

    def can_rotate(self, grid: GameGrid) -> bool:
        return False

    def rotate(self) -> None:
        pass

    def try_rotate(self, grid: GameGrid) -> bool:
        return False

    def place(self, grid: GameGrid, group_id: Optional[int] = None) -> None:
        grid.set(self.x, self.y, piece_cell(self.color, self.entity_id if group_id is None else group_id))
        self.is_active = False


class FragmentGroup:
    """Fragments freed by the same clear, moving and landing as one unit."""

    def __init__(self, entity_id: int, fragments: Sequence[Fragment], controllable: bool = True) -> None:
        if not fragments:
            raise ValueError("FragmentGroup needs at least one fragment")
        self.entity_id = int(entity_id)
        self.fragments = list(fragments)
        self.is_active = True
        self.is_user_controllable = controllable

    def __repr__(self) -> str:
        return f"FragmentGroup(id={self.entity_id}, fragments={self.fragments!r})"

    @property
    def x(self) -> int:
        return self.fragments[0].x

    @property
    def y(self) -> int:
        return self.fragments[0].y

    def positions(self) -> List[Coordinate]:
        return [(f.x, f.y) for f in self.fragments]

    def cells(self) -> List[CellColor]:
        return [CellColor(f.x, f.y, f.color) for f in self.fragments]

    def colors(self) -> List[Color]:
        return sorted({f.color for f in self.fragments})

    def lowest_y(self) -> int:
        return max(f.y for f in self.fragments)

    def can_move(self, grid: GameGrid, dx: int, dy: int) -> bool:
        return all(f.can_move(grid, dx, dy) for f in self.fragments)

    def move(self, dx: int, dy: int) -> None:
        for f in self.fragments:
            f.move(dx, dy)

    def has_landed(self, grid: GameGrid) -> bool:
        return any(not f.can_move(grid, 0, 1) for f in self.fragments)

    def can_rotate(self, grid: GameGrid) -> bool:
        return False

    def rotate(self) -> None:
        pass

    def try_rotate(self, grid: GameGrid) -> bool:
        return False

    def place(self, grid: GameGrid) -> None:
        for f in self.fragments:
            f.place(grid, group_id=self.entity_id)
        self.is_active = False


Controllable = Union[Piece, Fragment, FragmentGroup]
