"""Tests for the board arena and grid helpers."""

import numpy as np
import pytest

from board import BOARD_SIZE, get_neighbors, is_perimeter, is_valid_position
from models import Position
from tests.conftest import dome, place, raise_to

ALL_POSITIONS = [Position(r, c) for r in range(BOARD_SIZE) for c in range(BOARD_SIZE)]


def test_board_has_25_cells(board):
    cells = list(board.cells())
    assert len(cells) == 25
    assert [c.position for c in cells] == ALL_POSITIONS


def test_get_cell_off_board_is_none(board):
    assert board.get_cell(Position(5, 0)) is None
    assert board.get_cell(Position(-1, 2)) is None
    assert board.get_cell(Position(4, 4)) is not None


def test_cells_are_stable(board):
    assert board.get_cell(Position(1, 1)) is board.get_cell(Position(1, 1))


@pytest.mark.parametrize("position", ALL_POSITIONS)
def test_place_worker_links_both_sides(board, players, position):
    p1, _ = players
    worker = p1.workers[0]
    assert board.place_worker(worker, position)
    cell = board.get_cell(position)
    assert cell.is_occupied
    assert cell.worker is worker
    assert worker.position == position


def test_place_worker_on_occupied_cell_fails(board, players):
    p1, p2 = players
    place(board, p1, Position(2, 2))
    assert not board.place_worker(p2.workers[0], Position(2, 2))
    assert p2.workers[0].current_cell is None
    assert board.get_cell(Position(2, 2)).worker is p1.workers[0]


def test_place_worker_off_board_or_on_dome_fails(board, players):
    p1, _ = players
    dome(board, Position(0, 0))
    assert not board.place_worker(p1.workers[0], Position(0, 0))
    assert not board.place_worker(p1.workers[0], Position(7, 7))


def test_perimeter():
    assert is_perimeter(Position(0, 2))
    assert is_perimeter(Position(3, 4))
    assert is_perimeter(Position(4, 0))
    assert not is_perimeter(Position(2, 2))
    assert not is_perimeter(Position(1, 3))
    assert not is_perimeter(Position(5, 5))


def test_valid_position():
    assert is_valid_position(Position(0, 0))
    assert is_valid_position(Position(4, 4))
    assert not is_valid_position(Position(5, 4))


def test_neighbors_clipped_in_scan_order():
    assert get_neighbors(Position(0, 0)) == [Position(0, 1), Position(1, 0), Position(1, 1)]
    assert len(get_neighbors(Position(2, 2))) == 8
    assert len(get_neighbors(Position(0, 2))) == 5


def test_height_map_and_open_mask(board, players):
    p1, _ = players
    raise_to(board, Position(1, 1), 2)
    dome(board, Position(3, 3))
    place(board, p1, Position(0, 0))

    heights = board.height_map()
    assert heights.shape == (5, 5)
    assert heights[1, 1] == 2
    assert heights[3, 3] == 4
    assert heights.sum() == 6

    mask = board.open_mask()
    assert mask.dtype == np.bool_
    assert not mask[0, 0]
    assert not mask[3, 3]
    assert mask.sum() == 23
