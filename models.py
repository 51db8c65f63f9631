# Models for the Santorini board elements

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from cards import GodCard

MAX_LEVEL = 3  # Tallest tower a worker can stand on
DOME_HEIGHT = 4  # Height of a capped tower
WORKERS_PER_PLAYER = 2


@dataclass(frozen=True)
class Position:
    """A (row, col) coordinate on the board. Equality and hashing are by value."""
    row: int
    col: int

    def adjacent_positions(self) -> List[Position]:
        """
        Return the 8 surrounding positions, ascending row then column.

        Not bounds-checked; clip against the board before use.
        """
        return [
            Position(self.row + dr, self.col + dc)
            for dr in (-1, 0, 1)
            for dc in (-1, 0, 1)
            if dr or dc
        ]

    def chebyshev_distance(self, other: Position) -> int:
        return max(abs(self.row - other.row), abs(self.col - other.col))

    def manhattan_distance(self, other: Position) -> int:
        return abs(self.row - other.row) + abs(self.col - other.col)

    def as_tuple(self) -> Tuple[int, int]:
        return (self.row, self.col)

    def __str__(self) -> str:
        return f"({self.row},{self.col})"


@dataclass(frozen=True)
class Block:
    """One piece of a tower: a numbered level (1-3) or the capping dome."""
    level: int
    is_dome: bool = False


class Cell:
    """
    A square of the board: a stack of blocks and at most one worker.

    The worker link is non-owning and is only ever written through
    Worker.relocate(), which keeps both sides consistent.
    """

    def __init__(self, position: Position):
        self.position = position
        self._blocks: List[Block] = []
        self._has_dome = False
        self._worker: Optional[Worker] = None

    @property
    def height(self) -> int:
        return len(self._blocks)

    @property
    def has_dome(self) -> bool:
        return self._has_dome

    @property
    def worker(self) -> Optional[Worker]:
        return self._worker

    @property
    def is_occupied(self) -> bool:
        return self._worker is not None

    @property
    def is_buildable(self) -> bool:
        """True when nothing stands here and the tower is not capped."""
        return not self.is_occupied and not self._has_dome

    def is_adjacent_to(self, other: Cell) -> bool:
        """Chebyshev distance of exactly 1, regardless of board edges."""
        return self.position.chebyshev_distance(other.position) == 1

    def add_block(self, block: Block) -> None:
        """
        Stack a block on this cell. Height only ever grows.

        Raises:
            ValueError: if the tower is already capped by a dome
        """
        if self._has_dome or self.height >= DOME_HEIGHT:
            raise ValueError(f"Cell {self.position} is capped; cannot add {block}")
        self._blocks.append(block)
        if block.is_dome:
            self._has_dome = True

    def set_dome(self) -> None:
        """
        Cap the tower with a dome block. Irreversible.

        Raises:
            ValueError: if the tower is already capped
        """
        self.add_block(Block(DOME_HEIGHT, is_dome=True))

    def __repr__(self) -> str:
        return (f"Cell(position={self.position}, height={self.height}, "
                f"has_dome={self.has_dome}, occupied={self.is_occupied})")


class Worker:
    """
    A movable token owned by a player.

    Tracks the cell it stands on and, for god-card rules, the position it
    started the current turn's first move from.
    """

    def __init__(self, owner: Player, worker_id: str):
        self.owner = owner  # Fixed at creation
        self.id = worker_id
        self._cell: Optional[Cell] = None
        self.initial_position: Optional[Position] = None  # Stamped on the first move of a turn

    @property
    def current_cell(self) -> Optional[Cell]:
        return self._cell

    @property
    def position(self) -> Optional[Position]:
        return self._cell.position if self._cell else None

    @property
    def height(self) -> int:
        return self._cell.height if self._cell else 0

    @property
    def label(self) -> str:
        """Short board label, e.g. 'A1' for the first worker of p1."""
        return f"{self.owner.marker}{self.id}"

    def relocate(self, cell: Optional[Cell]) -> None:
        """
        Move this worker onto `cell`, vacating its previous cell.

        This is the only writer of both Cell._worker and Worker._cell.

        Raises:
            ValueError: if `cell` already holds a different worker or is domed
        """
        if cell is not None:
            if cell.worker is not None and cell.worker is not self:
                raise ValueError(f"Cell {cell.position} is occupied by {cell.worker.label}")
            if cell.has_dome:
                raise ValueError(f"Cell {cell.position} is capped by a dome")
        if self._cell is not None:
            self._cell._worker = None
        self._cell = cell
        if cell is not None:
            cell._worker = self

    def can_move_to(self, destination: Optional[Cell]) -> bool:
        """
        Check adjacency, occupancy, dome and the +1 climbing limit.

        Moving down any number of levels is allowed.
        """
        if self._cell is None or destination is None:
            return False
        if destination.is_occupied or destination.has_dome:
            return False
        if not self._cell.is_adjacent_to(destination):
            return False
        return destination.height - self._cell.height <= 1

    def reset_initial_position(self) -> None:
        self.initial_position = None

    def __repr__(self) -> str:
        return f"Worker({self.label} at {self.position})"


@dataclass(eq=False)
class Player:
    """
    A participant with exactly two workers and an optional god card.

    Workers are created with the player and never replaced.
    """
    id: str  # Player identifier ('p1' or 'p2')
    name: str
    god_card: GodCard = GodCard.NONE
    eliminated: bool = False
    workers: Tuple[Worker, ...] = field(init=False)

    def __post_init__(self):
        self.workers = tuple(Worker(self, str(i)) for i in range(1, WORKERS_PER_PLAYER + 1))

    @property
    def marker(self) -> str:
        """Single-letter marker used on rendered boards ('A' for p1, 'B' for p2)."""
        return "A" if self.id == "p1" else "B"

    @property
    def is_computer(self) -> bool:
        return False

    def get_worker(self, index: int) -> Optional[Worker]:
        """Get a worker by zero-based index, or None when out of range."""
        if 0 <= index < len(self.workers):
            return self.workers[index]
        return None
