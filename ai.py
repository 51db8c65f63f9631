"""
Computer opponents for the Santorini rules engine.

Strategies drive a live Turn through its public operations (select, move,
build, skip) exactly as a human client would, so every rule the Turn
enforces also binds the computer. The RandomStrategy is the lower bound;
the HeuristicStrategy climbs toward the tallest open towers, wins when it
can, and domes towers the opponent is about to climb.

A ComputerPlayer starts on random play and escalates to the heuristic after
a configurable number of its own turns.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Type

import numpy as np

from board import Board
from models import MAX_LEVEL, Player, Position, Worker
from turns import Turn, TurnState


# ---------------------------------------------------------------------------
# Strategy interface
# ---------------------------------------------------------------------------

class Strategy:
    """Base class for AI strategies."""
    name: str = "base"

    def play_turn(self, player: Player, turn: Turn, board: Board,
                  opponent: Optional[Player], rng: random.Random) -> None:
        """Play `turn` for `player` through to COMPLETED."""
        raise NotImplementedError


def _worker_moves(worker: Worker, board: Board) -> List[Position]:
    """Neighbouring positions the worker could step to, in scan order."""
    if worker.position is None:
        return []
    return [cell.position for cell in board.neighbors(worker.position) if worker.can_move_to(cell)]


def _movable_workers(player: Player, board: Board) -> List[Worker]:
    return [w for w in player.workers if _worker_moves(w, board)]


def _winning_move(worker: Worker, board: Board) -> Optional[Position]:
    """First neighbour (scan order) on level 3 the worker can step onto."""
    for position in _worker_moves(worker, board):
        if board.get_cell(position).height == MAX_LEVEL:
            return position
    return None


def _highest_open_tier(board: Board) -> List[Position]:
    """
    Open cells (no worker, no dome) on the tallest standable level.

    Returns:
        Positions in scan order; empty when no cell is open
    """
    heights = board.height_map()
    mask = board.open_mask() & (heights <= MAX_LEVEL)
    if not mask.any():
        return []
    level = heights[mask].max()
    return [Position(int(r), int(c)) for r, c in np.argwhere(mask & (heights == level))]


def _closest_worker(workers: Sequence[Worker], targets: Sequence[Position]) -> Worker:
    """
    Worker with the smallest Manhattan distance to any target.

    Targets are scanned in order and workers within each target, so the
    first pair found at the minimum distance wins ties.
    """
    if not targets:
        return workers[0]
    target_xy = np.array([t.as_tuple() for t in targets])
    worker_xy = np.array([w.position.as_tuple() for w in workers])
    distances = np.abs(target_xy[:, None, :] - worker_xy[None, :, :]).sum(axis=2)
    _, worker_index = np.unravel_index(int(np.argmin(distances)), distances.shape)
    return workers[int(worker_index)]


def _tallest(positions: Sequence[Position], board: Board) -> Optional[Position]:
    """Tallest position; the first in sequence order wins ties."""
    if not positions:
        return None
    return max(positions, key=lambda p: board.get_cell(p).height)


def _threatened_by(position: Position, board: Board, opponent: Optional[Player]) -> bool:
    """True when an opponent worker stands next to `position` and could climb onto it."""
    if opponent is None:
        return False
    cell = board.get_cell(position)
    for worker in opponent.workers:
        if worker.current_cell is None:
            continue
        if worker.current_cell.is_adjacent_to(cell) and cell.height <= worker.height + 1:
            return True
    return False


def _next_to_opponent(position: Position, board: Board, opponent: Optional[Player]) -> bool:
    if opponent is None:
        return False
    cell = board.get_cell(position)
    return any(w.current_cell is not None and w.current_cell.is_adjacent_to(cell)
               for w in opponent.workers)


def _select(turn: Turn, worker: Worker) -> None:
    """Make `worker` the selected worker, replacing an uncommitted selection."""
    if turn.selected_worker is worker:
        return
    if turn.selected_worker is not None:
        turn.unselect_worker()
    turn.select_worker(worker)


def _try_builds(turn: Turn, options: Sequence[Position]) -> bool:
    for position in options:
        if turn.execute_build(position):
            return True
    return False


# ---------------------------------------------------------------------------
# Concrete strategies
# ---------------------------------------------------------------------------

class RandomStrategy(Strategy):
    """Uniformly random legal play. Bonus actions are taken on a coin flip."""
    name = "random"

    def play_turn(self, player: Player, turn: Turn, board: Board,
                  opponent: Optional[Player], rng: random.Random) -> None:
        if turn.is_complete:
            return

        if turn.state == TurnState.WORKER_SELECTION or (turn.state == TurnState.MOVING
                                                         and not turn.legal_moves()):
            movable = _movable_workers(player, board)
            if not movable:
                turn.force_complete("no worker can move")
                return
            _select(turn, rng.choice(movable))

        if turn.state == TurnState.MOVING:
            turn.execute_move(rng.choice(turn.legal_moves()))

        while turn.state == TurnState.SECOND_MOVE:
            options = turn.legal_moves()
            if options and rng.random() < 0.5:
                turn.execute_move(rng.choice(options))
            else:
                turn.skip_bonus_action()

        if turn.state == TurnState.BUILDING:
            options = turn.legal_builds()
            rng.shuffle(options)
            if not _try_builds(turn, options):
                turn.force_complete("no legal build")
                return

        if turn.state == TurnState.SECOND_BUILD:
            options = turn.legal_builds()
            if options and rng.random() < 0.5:
                turn.execute_build(rng.choice(options))
            else:
                turn.skip_bonus_action()


class HeuristicStrategy(Strategy):
    """
    Greedy climber.

    Move: win immediately if a level-3 neighbour is reachable; otherwise send
    the worker closest to the tallest open tier to its tallest reachable
    neighbour. Build: dome a level-3 tower an opponent could climb next,
    else raise the tallest neighbour, avoiding handing the opponent a
    level-2 step unless nothing else is available.

    `depth` is reserved for a lookahead search and is currently unused.
    """
    name = "heuristic"

    def __init__(self, depth: int = 2):
        self.depth = depth

    def play_turn(self, player: Player, turn: Turn, board: Board,
                  opponent: Optional[Player], rng: random.Random) -> None:
        if turn.is_complete:
            return

        if turn.state in (TurnState.WORKER_SELECTION, TurnState.MOVING):
            if not self._move(player, turn, board):
                turn.force_complete("no worker can move")
                return

        while turn.state == TurnState.SECOND_MOVE:
            choice = self._bonus_move(turn, board)
            if choice is None:
                turn.skip_bonus_action()
            else:
                turn.execute_move(choice)

        if turn.is_complete:
            return

        if turn.state == TurnState.BUILDING:
            if not self._build(turn, board, opponent, rng):
                turn.force_complete("no legal build")
                return

        if turn.state == TurnState.SECOND_BUILD:
            choice = self._bonus_build(turn, board, opponent)
            if choice is None or not turn.execute_build(choice):
                turn.skip_bonus_action()

    def _move(self, player: Player, turn: Turn, board: Board) -> bool:
        movable = _movable_workers(player, board)
        if not movable:
            return False

        for worker in player.workers:
            win = _winning_move(worker, board)
            if win is not None:
                _select(turn, worker)
                turn.log_event(f"Heuristic AI takes the winning step to {win}")
                return turn.execute_move(win)

        worker = _closest_worker(movable, _highest_open_tier(board))
        _select(turn, worker)
        return turn.execute_move(_tallest(turn.legal_moves(), board))

    def _bonus_move(self, turn: Turn, board: Board) -> Optional[Position]:
        """Take a bonus move only when it wins or climbs."""
        options = turn.legal_moves()
        for position in options:
            if board.get_cell(position).height == MAX_LEVEL:
                return position
        current = turn.selected_worker.height
        climbs = [p for p in options if board.get_cell(p).height > current]
        return _tallest(climbs, board)

    def _safe_builds(self, options: Sequence[Position], board: Board,
                     opponent: Optional[Player]) -> List[Position]:
        return [p for p in options
                if not (board.get_cell(p).height == MAX_LEVEL - 1
                        and _next_to_opponent(p, board, opponent))]

    def _blocking_build(self, options: Sequence[Position], board: Board,
                        opponent: Optional[Player]) -> Optional[Position]:
        for position in options:
            if board.get_cell(position).height == MAX_LEVEL and _threatened_by(position, board, opponent):
                return position
        return None

    def _preferred_builds(self, options: Sequence[Position], board: Board,
                          opponent: Optional[Player]) -> List[Position]:
        pool = self._safe_builds(options, board, opponent) or list(options)
        if not pool:
            return []
        top = max(board.get_cell(p).height for p in pool)
        return [p for p in pool if board.get_cell(p).height == top]

    def _build(self, turn: Turn, board: Board, opponent: Optional[Player],
               rng: random.Random) -> bool:
        options = turn.legal_builds()
        if not options:
            return False

        block = self._blocking_build(options, board, opponent)
        if block is not None:
            turn.log_event(f"Heuristic AI domes {block} ahead of the opponent")
            if turn.execute_build(block):
                return True

        if _try_builds(turn, self._preferred_builds(options, board, opponent)):
            return True

        fallback = list(options)
        rng.shuffle(fallback)
        return _try_builds(turn, fallback)

    def _bonus_build(self, turn: Turn, board: Board,
                     opponent: Optional[Player]) -> Optional[Position]:
        """Take a bonus build only to block, or when a safe option exists."""
        options = turn.legal_builds()
        block = self._blocking_build(options, board, opponent)
        if block is not None:
            return block
        safe = self._safe_builds(options, board, opponent)
        if not safe:
            return None
        return self._preferred_builds(safe, board, opponent)[0]


STRATEGIES: Dict[str, Type[Strategy]] = {
    RandomStrategy.name: RandomStrategy,
    HeuristicStrategy.name: HeuristicStrategy,
}


# ---------------------------------------------------------------------------
# Computer player
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ComputerPlayer(Player):
    """
    A Player whose turns are played by a strategy.

    Plays randomly for its first `escalation_turns` turns, then switches to
    the heuristic. `move_count` counts completed computer turns.
    """
    move_count: int = 0
    escalation_turns: int = 3
    search_depth: int = 2
    rng: random.Random = field(default_factory=random.Random, repr=False)
    strategy: Optional[Strategy] = field(default=None, repr=False)

    @property
    def is_computer(self) -> bool:
        return True

    def select_strategy(self) -> Strategy:
        if self.move_count < self.escalation_turns:
            if not isinstance(self.strategy, RandomStrategy):
                self.strategy = RandomStrategy()
        elif not isinstance(self.strategy, HeuristicStrategy):
            self.strategy = HeuristicStrategy(depth=self.search_depth)
        return self.strategy

    def make_move(self, turn: Turn, board: Board, opponent: Optional[Player]) -> Tuple[str, Turn]:
        """
        Play the current turn with the strategy for this stage of the game.

        Returns:
            (strategy name, the played turn)
        """
        strategy = self.select_strategy()
        strategy.play_turn(self, turn, board, opponent, self.rng)
        return strategy.name, turn

    def increment_move_count(self) -> None:
        self.move_count += 1
