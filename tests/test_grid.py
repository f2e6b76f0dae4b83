import numpy as np

from pill_panic_rl.game.grid import (
    BOARD_HEIGHT,
    BOARD_WIDTH,
    EMPTY_CELL,
    OUT_OF_BOUNDS,
    Cell,
    CellKind,
    Color,
    GameGrid,
    Infection,
    infection_cell,
    piece_cell,
)


def test_new_grid_is_empty_with_fixed_dimensions():
    grid = GameGrid()
    assert (grid.width, grid.height) == (BOARD_WIDTH, BOARD_HEIGHT) == (8, 16)
    assert all(grid.is_empty(x, y) for y in range(grid.height) for x in range(grid.width))
    assert grid.get(0, 0) == EMPTY_CELL
    assert grid.count_infection() == 0
    assert grid.filled_height() == 0


def test_out_of_bounds_reads_return_sentinel_distinct_from_empty():
    grid = GameGrid()
    for x, y in [(-1, 0), (0, -1), (8, 0), (0, 16)]:
        assert grid.get(x, y) is OUT_OF_BOUNDS
        assert not grid.is_in_bounds(x, y)
        assert not grid.is_empty(x, y)
    assert OUT_OF_BOUNDS != EMPTY_CELL
    assert not OUT_OF_BOUNDS


def test_set_and_get_roundtrip_cell_fields():
    grid = GameGrid()
    grid.set(2, 5, piece_cell(Color.BLUE, 7))
    cell = grid.get(2, 5)
    assert isinstance(cell, Cell)
    assert cell.kind == CellKind.PIECE
    assert cell.color == Color.BLUE
    assert cell.group_id == 7
    assert not grid.is_empty(2, 5)


def test_out_of_bounds_writes_are_ignored():
    grid = GameGrid()
    before = grid.copy()
    grid.set(-1, 3, infection_cell(Color.RED))
    grid.set(3, 99, infection_cell(Color.RED))
    assert grid == before


def test_infections_are_counted_and_cleared():
    grid = GameGrid()
    grid.add_infections([Infection(0, 15, Color.RED), Infection(5, 10, Color.YELLOW)])
    grid.set(1, 15, piece_cell(Color.RED, 3))
    assert grid.count_infection() == 2
    assert grid.filled_height() == 6
    grid.clear()
    assert grid.count_infection() == 0
    assert grid.get(0, 15) == EMPTY_CELL


def test_cells_with_id_lists_all_cells_of_a_group():
    grid = GameGrid()
    grid.set(3, 4, piece_cell(Color.RED, 11))
    grid.set(4, 4, piece_cell(Color.BLUE, 11))
    grid.set(5, 4, piece_cell(Color.BLUE, 12))
    assert sorted(grid.cells_with_id(11)) == [(3, 4), (4, 4)]
    assert grid.cells_with_id(0) == []


def test_clone_state_encodes_infections_and_pieces_separately():
    grid = GameGrid()
    grid.set(0, 15, infection_cell(Color.YELLOW))
    grid.set(1, 15, piece_cell(Color.YELLOW, 1))
    state = grid.clone_state()
    assert state.dtype == np.int8
    assert state[15, 0] == 3
    assert state[15, 1] == 6
    assert state[0, 0] == 0
    # copy, not a view
    state[0, 0] = 5
    assert grid.is_empty(0, 0)


def test_can_place_checks_bounds_and_occupancy():
    grid = GameGrid()
    grid.set(2, 2, infection_cell(Color.RED))
    assert grid.can_place([(0, 0), (1, 0)])
    assert not grid.can_place([(1, 2), (2, 2)])
    assert not grid.can_place([(7, 0), (8, 0)])
