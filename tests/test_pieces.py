import pytest

from pill_panic_rl.game.grid import CellKind, Color, GameGrid, infection_cell, piece_cell
from pill_panic_rl.game.pieces import Fragment, FragmentGroup, Orientation, Piece


def test_capsule_positions_follow_orientation():
    piece = Piece(1, (Color.RED, Color.BLUE), x=3, y=0)
    assert piece.positions() == [(3, 0), (4, 0)]
    piece.orientation = Orientation.VERTICAL
    assert piece.positions() == [(3, 0), (3, 1)]
    assert piece.lowest_y() == 1


def test_can_move_rejects_walls_floor_and_occupied_cells():
    grid = GameGrid()
    piece = Piece(1, (Color.RED, Color.BLUE), x=6, y=0)
    assert piece.can_move(grid, -1, 0)
    assert not piece.can_move(grid, 1, 0)
    grid.set(5, 1, infection_cell(Color.RED))
    assert piece.can_move(grid, 0, 1)
    assert not piece.can_move(grid, -1, 1)
    floor = Piece(2, (Color.RED, Color.BLUE), x=0, y=15)
    assert not floor.can_move(grid, 0, 1)


def test_rotation_to_vertical_keeps_colors_and_back_swaps_them():
    grid = GameGrid()
    piece = Piece(1, (Color.RED, Color.BLUE), x=3, y=0)
    assert piece.can_rotate(grid)
    piece.rotate()
    assert piece.orientation == Orientation.VERTICAL
    assert piece.positions() == [(3, 0), (3, 1)]
    assert piece.colors == (Color.RED, Color.BLUE)

    assert piece.can_rotate(grid)
    piece.rotate()
    assert piece.orientation == Orientation.HORIZONTAL
    assert piece.positions() == [(3, 0), (4, 0)]
    assert piece.colors == (Color.BLUE, Color.RED)


def test_vertical_capsule_at_right_wall_kicks_left_when_room():
    grid = GameGrid()
    piece = Piece(1, (Color.RED, Color.BLUE), x=7, y=5, orientation=Orientation.VERTICAL)
    assert piece.can_rotate(grid)
    piece.rotate()
    assert piece.orientation == Orientation.HORIZONTAL
    assert piece.positions() == [(6, 5), (7, 5)]
    assert all(grid.is_in_bounds(x, y) for x, y in piece.positions())


def test_vertical_capsule_at_right_wall_cannot_rotate_when_kick_blocked():
    grid = GameGrid()
    grid.set(6, 5, infection_cell(Color.YELLOW))
    piece = Piece(1, (Color.RED, Color.BLUE), x=7, y=5, orientation=Orientation.VERTICAL)
    assert not piece.can_rotate(grid)
    assert not piece.try_rotate(grid)
    assert piece.orientation == Orientation.VERTICAL
    assert (piece.x, piece.y) == (7, 5)


def test_horizontal_capsule_on_floor_kicks_up():
    grid = GameGrid()
    piece = Piece(1, (Color.RED, Color.BLUE), x=3, y=15)
    assert piece.try_rotate(grid)
    assert piece.orientation == Orientation.VERTICAL
    assert piece.positions() == [(3, 14), (3, 15)]


def test_place_commits_cells_with_identity_and_deactivates():
    grid = GameGrid()
    piece = Piece(42, (Color.YELLOW, Color.RED), x=0, y=15)
    piece.place(grid)
    assert not piece.is_active
    left, right = grid.get(0, 15), grid.get(1, 15)
    assert (left.kind, left.color, left.group_id) == (CellKind.PIECE, Color.YELLOW, 42)
    assert (right.kind, right.color, right.group_id) == (CellKind.PIECE, Color.RED, 42)


def test_fragment_moves_but_never_rotates():
    grid = GameGrid()
    fragment = Fragment(5, Color.BLUE, 2, 3)
    assert fragment.positions() == [(2, 3)]
    assert not fragment.can_rotate(grid)
    assert not fragment.try_rotate(grid)
    fragment.rotate()
    assert fragment.positions() == [(2, 3)]
    assert fragment.can_move(grid, 0, 1)
    grid.set(2, 4, piece_cell(Color.RED, 9))
    assert not fragment.can_move(grid, 0, 1)


def test_fragment_group_moves_atomically_and_shares_identity_on_place():
    grid = GameGrid()
    group = FragmentGroup(20, [Fragment(21, Color.RED, 1, 10), Fragment(22, Color.BLUE, 5, 14)])
    assert group.can_move(grid, 0, 1)
    group.move(0, 1)
    assert group.positions() == [(1, 11), (5, 15)]
    # one member on the floor stops the whole group
    assert not group.can_move(grid, 0, 1)
    assert group.has_landed(grid)
    assert not group.can_rotate(grid)
    group.place(grid)
    assert not group.is_active
    assert grid.get(1, 11).group_id == grid.get(5, 15).group_id == 20
    assert group.colors() == [Color.RED, Color.BLUE]


def test_fragment_group_requires_fragments():
    with pytest.raises(ValueError):
        FragmentGroup(1, [])


def test_rotation_after_moving_uses_kick_for_current_pose():
    grid = GameGrid()
    piece = Piece(1, (Color.RED, Color.BLUE), x=7, y=5, orientation=Orientation.VERTICAL)
    assert piece.rotation_kick(grid) == (-1, 0)
    assert piece.can_rotate(grid)
    piece.move(-1, 0)
    piece.rotate()
    assert piece.orientation == Orientation.HORIZONTAL
    assert piece.positions() == [(6, 5), (7, 5)]
