"""
Turn state machine and turn orchestration for the Santorini rules engine.

A Turn walks WORKER_SELECTION -> MOVING -> (SECOND_MOVE) -> BUILDING ->
(SECOND_BUILD) -> COMPLETED. The optional states are only entered when the
acting player's god card offers a bonus action.

Rule violations (illegal destinations, actions in the wrong state) are raised
internally by check_move/check_build, logged, and reported to callers as
False. Selecting a worker in the wrong state and touching a discarded turn
are contract violations and propagate.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from actions import Action, ActionType, get_action_summary
from board import Board
from cards import (
    GodCard,
    forbids_repeat_build,
    forbids_return_to_start,
    grants_bonus_build,
    grants_bonus_move,
    stamps_initial_position,
)
from models import MAX_LEVEL, Block, Cell, Player, Position, Worker

Target = Union[Cell, Position, None]


class TurnState(Enum):
    WORKER_SELECTION = "worker_selection"
    MOVING = "moving"
    SECOND_MOVE = "second_move"
    BUILDING = "building"
    SECOND_BUILD = "second_build"
    COMPLETED = "completed"


MOVE_STATES = (TurnState.MOVING, TurnState.SECOND_MOVE)
BUILD_STATES = (TurnState.BUILDING, TurnState.SECOND_BUILD)


class TurnError(Exception):
    """Base class for turn rule and contract violations."""
    pass


class InvalidStateTransition(TurnError):
    """Raised when an operation is requested in a state that does not permit it."""
    pass


class IllegalMoveError(TurnError):
    """Raised when a move destination fails adjacency, occupancy, dome, height or card rules."""
    pass


class IllegalBuildError(TurnError):
    """Raised when a build destination fails adjacency, occupancy, dome or card rules."""
    pass


class StaleTurnError(TurnError):
    """Raised when an operation targets a turn that has already been superseded."""
    pass


class Turn:
    def __init__(self, player: Player, board: Board, number: int = 1,
                 log: Optional[List[Dict[str, Any]]] = None):
        """Initialize a fresh turn for `player` in WORKER_SELECTION."""
        self.player = player
        self.board = board
        self.number = number
        self.log = log if log is not None else []
        self.selected_worker: Optional[Worker] = None
        self.moves: List[Action] = []
        self.builds: List[Action] = []
        self.state = TurnState.WORKER_SELECTION
        self.first_move_origin: Optional[Position] = None  # For the no-return rule
        self.first_build_position: Optional[Position] = None  # For the no-repeat rule
        self.discarded = False

    @property
    def card(self) -> GodCard:
        return self.player.god_card

    @property
    def is_complete(self) -> bool:
        return self.state == TurnState.COMPLETED

    @property
    def last_move(self) -> Optional[Action]:
        return self.moves[-1] if self.moves else None

    @property
    def reached_top(self) -> bool:
        """True when the selected worker stands on a level-3 tower."""
        return self.selected_worker is not None and self.selected_worker.height == MAX_LEVEL

    def log_event(self, event: str, **kwargs) -> None:
        """Append an entry for this turn to the shared game log."""
        self.log.append({
            'turn': self.number,
            'phase': self.state.value,
            'player': self.player.id,
            'event': event,
            **kwargs
        })

    def _ensure_live(self) -> None:
        if self.discarded:
            raise StaleTurnError(f"Turn {self.number} for {self.player.id} has been discarded")

    def _resolve(self, target: Target) -> Optional[Cell]:
        if isinstance(target, Position):
            return self.board.get_cell(target)
        return target

    # ------------------------------------------------------------------
    # Worker selection
    # ------------------------------------------------------------------

    def select_worker(self, worker: Worker) -> None:
        """
        Choose the worker that acts this turn.

        Raises:
            InvalidStateTransition: outside WORKER_SELECTION, or for a worker
                the acting player does not own or that is not on the board
        """
        self._ensure_live()
        if self.state != TurnState.WORKER_SELECTION:
            raise InvalidStateTransition(f"Cannot select worker in current state: {self.state.value}")
        if worker.owner is not self.player:
            raise InvalidStateTransition(f"Worker {worker.label} is not owned by {self.player.id}")
        if worker.current_cell is None:
            raise InvalidStateTransition(f"Worker {worker.label} is not on the board")

        self.selected_worker = worker
        self.first_move_origin = worker.position
        self.state = TurnState.MOVING
        self.log_event(f"Player {self.player.id} selected worker {worker.label} at {worker.position}")

    def unselect_worker(self) -> bool:
        """
        Undo the worker selection before anything has been committed.

        Returns:
            True if the selection was cleared
        """
        self._ensure_live()
        if self.selected_worker is None or self.moves or self.builds:
            return False
        worker = self.selected_worker
        worker.reset_initial_position()
        self.selected_worker = None
        self.first_move_origin = None
        self.first_build_position = None
        self.moves.clear()
        self.builds.clear()
        self.state = TurnState.WORKER_SELECTION
        self.log_event(f"Player {self.player.id} unselected worker {worker.label}")
        return True

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def check_move(self, target: Target) -> Cell:
        """
        Validate a move for the selected worker.

        Returns:
            The destination cell

        Raises:
            InvalidStateTransition: no worker selected or not in a move state
            IllegalMoveError: the destination breaks a movement rule
        """
        self._ensure_live()
        if self.selected_worker is None:
            raise InvalidStateTransition("No worker selected")
        if self.state not in MOVE_STATES:
            raise InvalidStateTransition(f"Cannot move in current state: {self.state.value}")

        destination = self._resolve(target)
        if destination is None:
            raise IllegalMoveError(f"Destination {target} is outside the board")

        if (self.state == TurnState.SECOND_MOVE
                and forbids_return_to_start(self.card)
                and destination.position == self.first_move_origin):
            raise IllegalMoveError(f"{self.card.value} cannot move back to its initial space {destination.position}")

        worker = self.selected_worker
        if not worker.can_move_to(destination):
            raise IllegalMoveError(_move_rejection_reason(worker, destination))
        return destination

    def validate_move(self, target: Target) -> bool:
        try:
            self.check_move(target)
        except (InvalidStateTransition, IllegalMoveError):
            return False
        return True

    def execute_move(self, target: Target) -> bool:
        """
        Move the selected worker, then advance the state machine.

        Landing on level 3 completes the turn immediately with no build.

        Returns:
            True if the move was applied; False (and no mutation) otherwise
        """
        try:
            destination = self.check_move(target)
        except (InvalidStateTransition, IllegalMoveError) as e:
            self.log_event(f"Move rejected for player {self.player.id}: {e}", error_type="validation_error")
            return False

        worker = self.selected_worker
        origin = worker.position
        if not self.moves and stamps_initial_position(self.card):
            worker.initial_position = origin

        worker.relocate(destination)
        action = Action(ActionType.MOVE, worker, destination.position, origin=origin)
        self.moves.append(action)
        self.log_event(f"Worker {worker.label} moved from {origin} to {destination.position}",
                       action=get_action_summary(action))

        if destination.height == MAX_LEVEL:
            self.state = TurnState.COMPLETED
            self.log_event(f"Worker {worker.label} reached level {MAX_LEVEL}")
        elif grants_bonus_move(self.card, len(self.moves), self.board.is_perimeter(destination.position)):
            self.state = TurnState.SECOND_MOVE
            self.log_event(f"{self.card.value} offers an additional move")
        else:
            self.state = TurnState.BUILDING
        return True

    # ------------------------------------------------------------------
    # Builds
    # ------------------------------------------------------------------

    def check_build(self, target: Target) -> Cell:
        """
        Validate a build by the selected worker.

        Returns:
            The destination cell

        Raises:
            InvalidStateTransition: no worker selected or not in a build state
            IllegalBuildError: the destination breaks a building rule
        """
        self._ensure_live()
        if self.selected_worker is None:
            raise InvalidStateTransition("No worker selected")
        if self.state not in BUILD_STATES:
            raise InvalidStateTransition(f"Cannot build in current state: {self.state.value}")

        destination = self._resolve(target)
        if destination is None:
            raise IllegalBuildError(f"Build target {target} is outside the board")

        if (self.state == TurnState.SECOND_BUILD
                and forbids_repeat_build(self.card)
                and destination.position == self.first_build_position):
            raise IllegalBuildError(f"{self.card.value} cannot build twice on {destination.position}")

        worker_cell = self.selected_worker.current_cell
        if worker_cell is None or not worker_cell.is_adjacent_to(destination):
            raise IllegalBuildError(f"Build target {destination.position} is not adjacent to worker {self.selected_worker.label}")
        if destination.is_occupied:
            raise IllegalBuildError(f"Build target {destination.position} is occupied")
        if destination.has_dome:
            raise IllegalBuildError(f"Build target {destination.position} is capped by a dome")
        return destination

    def validate_build(self, target: Target) -> bool:
        try:
            self.check_build(target)
        except (InvalidStateTransition, IllegalBuildError):
            return False
        return True

    def execute_build(self, target: Target) -> bool:
        """
        Build one block next to the selected worker.

        A level-3 tower receives a dome; anything lower receives the next level.

        Returns:
            True if the build was applied; False (and no mutation) otherwise
        """
        try:
            destination = self.check_build(target)
        except (InvalidStateTransition, IllegalBuildError) as e:
            self.log_event(f"Build rejected for player {self.player.id}: {e}", error_type="validation_error")
            return False

        worker = self.selected_worker
        if destination.height == MAX_LEVEL:
            destination.set_dome()
            dome = True
        else:
            destination.add_block(Block(destination.height + 1))
            dome = False

        action = Action(ActionType.BUILD, worker, destination.position, origin=worker.position, dome=dome)
        self.builds.append(action)
        if len(self.builds) == 1:
            self.first_build_position = destination.position
        self.log_event(f"Worker {worker.label} built {'a dome' if dome else f'level {destination.height}'} at {destination.position}",
                       action=get_action_summary(action))

        if grants_bonus_build(self.card, len(self.builds)):
            self.state = TurnState.SECOND_BUILD
            self.log_event(f"{self.card.value} offers an additional build")
        else:
            self.state = TurnState.COMPLETED
        return True

    # ------------------------------------------------------------------
    # Bonus actions and queries
    # ------------------------------------------------------------------

    def can_take_additional_action(self) -> bool:
        """True while a god-card bonus move or build is on offer."""
        if self.state == TurnState.SECOND_MOVE:
            last = self.last_move
            on_edge = last is not None and self.board.is_perimeter(last.destination)
            return grants_bonus_move(self.card, len(self.moves), on_edge)
        if self.state == TurnState.SECOND_BUILD:
            return grants_bonus_build(self.card, len(self.builds))
        return False

    def skip_bonus_action(self) -> bool:
        """
        Decline a pending bonus move or build.

        Returns:
            True if a bonus action was pending and has been skipped
        """
        self._ensure_live()
        if self.state == TurnState.SECOND_MOVE:
            self.state = TurnState.BUILDING
            self.log_event(f"Player {self.player.id} skipped the additional move")
            return True
        if self.state == TurnState.SECOND_BUILD:
            self.state = TurnState.COMPLETED
            self.log_event(f"Player {self.player.id} skipped the additional build")
            return True
        return False

    def legal_moves(self) -> List[Position]:
        """Positions the selected worker may move to now, in scan order."""
        if self.selected_worker is None or self.state not in MOVE_STATES:
            return []
        return [cell.position for cell in self.board.neighbors(self.selected_worker.position)
                if self.validate_move(cell)]

    def legal_builds(self) -> List[Position]:
        """Positions the selected worker may build on now, in scan order."""
        if self.selected_worker is None or self.state not in BUILD_STATES:
            return []
        return [cell.position for cell in self.board.neighbors(self.selected_worker.position)
                if self.validate_build(cell)]

    def force_complete(self, reason: str) -> None:
        """End the turn regardless of its state (automated fallback, timeout)."""
        self._ensure_live()
        if self.state != TurnState.COMPLETED:
            self.state = TurnState.COMPLETED
            self.log_event(f"Turn for player {self.player.id} force-completed: {reason}")


def _move_rejection_reason(worker: Worker, destination: Cell) -> str:
    if destination.is_occupied:
        return f"Destination {destination.position} is occupied"
    if destination.has_dome:
        return f"Destination {destination.position} is capped by a dome"
    if worker.current_cell is None or not worker.current_cell.is_adjacent_to(destination):
        return f"Destination {destination.position} is not adjacent to worker {worker.label} at {worker.position}"
    return (f"Destination {destination.position} is too high "
            f"(level {destination.height} from level {worker.height})")


def has_valid_moves(player: Player, board: Board) -> bool:
    """
    Check whether any of the player's workers has an unoccupied, uncapped
    neighbour at most one level higher.
    """
    for worker in player.workers:
        cell = worker.current_cell
        if cell is None:
            continue
        for neighbor in board.neighbors(cell.position):
            if (not neighbor.is_occupied
                    and not neighbor.has_dome
                    and neighbor.height <= cell.height + 1):
                return True
    return False


class TurnManager:
    """
    Creates turns, routes worker selection, and evaluates victory after a
    completed turn.
    """

    def __init__(self, board: Board, players: Sequence[Player],
                 log: Optional[List[Dict[str, Any]]] = None):
        self.board = board
        self.players = list(players)
        self.log = log if log is not None else []
        self.current_turn: Optional[Turn] = None
        self.winner: Optional[Player] = None
        self.victory_type: Optional[str] = None  # 'height', 'stalemate' or 'timeout'

    def get_opponent(self, player: Player) -> Optional[Player]:
        for p in self.players:
            if p is not player:
                return p
        return None

    def create_turn(self, player: Player, number: int = 1) -> Turn:
        """Replace the current turn with a fresh one for `player`."""
        if self.current_turn is not None:
            self.current_turn.discarded = True
        for worker in player.workers:
            worker.reset_initial_position()
        self.current_turn = Turn(player, self.board, number=number, log=self.log)
        return self.current_turn

    def select_worker(self, player: Player, worker_index: Union[int, str]) -> bool:
        """
        Select one of `player`'s workers (zero-based index) for the current turn.

        Returns:
            False when there is no turn awaiting selection, the player is not
            the acting player, or the index does not name a placed worker
        """
        turn = self.current_turn
        if turn is None or turn.state != TurnState.WORKER_SELECTION:
            return False
        if player is not turn.player:
            return False
        try:
            index = int(worker_index)
        except (TypeError, ValueError):
            return False
        worker = player.get_worker(index)
        if worker is None or worker.current_cell is None:
            return False
        turn.select_worker(worker)
        return True

    def unselect_worker(self) -> bool:
        if self.current_turn is not None and self.current_turn.selected_worker is not None:
            return self.current_turn.unselect_worker()
        return False

    def declare_winner(self, player: Player, victory_type: str) -> None:
        self.winner = player
        self.victory_type = victory_type
        self.log.append({
            'turn': self.current_turn.number if self.current_turn else 0,
            'phase': 'victory',
            'player': player.id,
            'event': f"Player {player.id} wins by {victory_type}",
        })

    def check_winner(self) -> bool:
        """
        Evaluate victory after the current turn has completed.

        The acting worker standing on level 3 wins for its owner. Otherwise
        the opponent's mobility is scanned fresh; an opponent with no legal
        move loses by stalemate. A turn that ended without any move because
        the acting player could not move loses by stalemate too.

        Returns:
            True if a winner has been recorded
        """
        turn = self.current_turn
        if turn is None or not turn.is_complete:
            return False

        player = turn.player
        opponent = self.get_opponent(player)

        if turn.reached_top:
            self.declare_winner(player, 'height')
            return True

        if not turn.moves and opponent is not None and not has_valid_moves(player, self.board):
            self.declare_winner(opponent, 'stalemate')
            return True

        if opponent is not None and not has_valid_moves(opponent, self.board):
            self.declare_winner(player, 'stalemate')
            return True

        return False
