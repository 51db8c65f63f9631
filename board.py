"""
Board module for the Santorini rules engine.
Implements the fixed 5x5 grid of cells and grid geometry helpers.
"""

from typing import Dict, Iterator, List, Optional

import numpy as np

from models import DOME_HEIGHT, Cell, Position, Worker

BOARD_SIZE = 5


def is_valid_position(position: Position, size: int = BOARD_SIZE) -> bool:
    """
    Check if a position is within the board bounds.

    Args:
        position: Position to check
        size: Board edge length (exclusive upper bound)

    Returns:
        True if the position lies on the board
    """
    return 0 <= position.row < size and 0 <= position.col < size


def is_perimeter(position: Position, size: int = BOARD_SIZE) -> bool:
    """True when the position lies on the outermost ring of the board."""
    return (position.row in (0, size - 1) or position.col in (0, size - 1)) and \
        is_valid_position(position, size)


def get_neighbors(position: Position, size: int = BOARD_SIZE) -> List[Position]:
    """
    Get the on-board 8-neighbourhood of a position.

    Args:
        position: Centre position

    Returns:
        Neighbouring positions in ascending row, then column order
    """
    return [p for p in position.adjacent_positions() if is_valid_position(p, size)]


class Board:
    """
    The fixed 5x5 arena of cells.

    Cells are created once, indexed by position, and never replaced.
    """

    def __init__(self):
        self.size = BOARD_SIZE
        self._cells: Dict[Position, Cell] = {
            Position(row, col): Cell(Position(row, col))
            for row in range(self.size)
            for col in range(self.size)
        }

    def is_valid_position(self, position: Position) -> bool:
        return is_valid_position(position, self.size)

    def get_cell(self, position: Position) -> Optional[Cell]:
        """Return the cell at `position`, or None when it is off the board."""
        if not self.is_valid_position(position):
            return None
        return self._cells[position]

    def cells(self) -> Iterator[Cell]:
        """Iterate every cell in scan order (ascending row, then column)."""
        for row in range(self.size):
            for col in range(self.size):
                yield self._cells[Position(row, col)]

    def neighbors(self, position: Position) -> List[Cell]:
        """On-board cells adjacent to `position`, in scan order."""
        return [self._cells[p] for p in get_neighbors(position, self.size)]

    def is_perimeter(self, position: Position) -> bool:
        return is_perimeter(position, self.size)

    def place_worker(self, worker: Worker, position: Position) -> bool:
        """
        Put a worker on an empty, uncapped cell.

        Returns:
            True if the worker was placed; False for off-board, occupied or domed cells
        """
        cell = self.get_cell(position)
        if cell is None or cell.is_occupied or cell.has_dome:
            return False
        worker.relocate(cell)
        return True

    def height_map(self) -> np.ndarray:
        """Tower heights as a (size, size) int array; domed cells read 4."""
        heights = np.zeros((self.size, self.size), dtype=int)
        for cell in self.cells():
            heights[cell.position.row, cell.position.col] = DOME_HEIGHT if cell.has_dome else cell.height
        return heights

    def open_mask(self) -> np.ndarray:
        """Boolean (size, size) array of cells a worker could stand on (no worker, no dome)."""
        mask = np.zeros((self.size, self.size), dtype=bool)
        for cell in self.cells():
            mask[cell.position.row, cell.position.col] = cell.is_buildable
        return mask
