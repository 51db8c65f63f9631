"""
Game session management for the Santorini rules engine.

A GameState owns everything one game needs: the board, both players, the
turn manager, the per-player timers and the shared event log. It walks the
phases 'setup' -> 'playing' -> 'ended'; cards and workers are set up first,
then turns alternate until someone reaches level 3, a player is stuck, or a
clock runs out.

Presentation layers (the Flask API and the terminal client) only talk to
this module.
"""

from __future__ import annotations

import json
import os
import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Union

from ai import ComputerPlayer
from actions import get_action_summary
from board import Board
from cards import GodCard, parse_god_card
from models import Cell, Player, Position
from timer import PlayerTimer
from turns import Turn, TurnManager

DEFAULT_CONFIG: Dict[str, Any] = {
    'initial_time_seconds': 600,  # Ten minutes per player
    'ai_escalation_turns': 3,
    'ai_search_depth': 2,
}


class GameMode(Enum):
    SINGLE_PLAYER = "single_player"  # p2 is a ComputerPlayer
    TWO_PLAYER = "two_player"  # Hot-seat


class GameError(Exception):
    """Raised when the session is used out of order (setup misuse, no active turn)."""
    pass


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load game settings from config.json, falling back to defaults.

    Unknown keys are ignored; a missing or invalid file yields the defaults.
    """
    config_path = path or os.path.join(os.path.dirname(__file__), 'config.json')
    config = dict(DEFAULT_CONFIG)
    try:
        with open(config_path, 'r') as f:
            loaded = json.load(f)
        config.update({key: loaded[key] for key in DEFAULT_CONFIG if key in loaded})
    except (FileNotFoundError, json.JSONDecodeError):
        # Use defaults if config file is missing or invalid
        pass
    return config


def log_event(game_state: GameState, event: str, **kwargs) -> None:
    """
    Add an event to the game state log.

    Args:
        game_state: Current game state
        event: Description of the event
        **kwargs: Additional event data to include
    """
    log_entry = {
        'turn': game_state.turn,
        'phase': game_state.phase,
        'event': event,
        **kwargs
    }
    game_state.log.append(log_entry)


@dataclass
class GameState:
    """
    Complete state of one game session.

    `turn` counts turns from 1 once the game has started. The turn manager,
    every Turn it creates and the session itself append to the same `log`.
    """
    game_id: str  # Unique game identifier
    mode: GameMode = GameMode.TWO_PLAYER
    players: List[Player] = field(default_factory=list)
    board: Board = field(default_factory=Board)
    phase: str = 'setup'  # 'setup', 'playing' or 'ended'
    turn: int = 0
    log: List[Dict[str, Any]] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_CONFIG))
    timers: Dict[str, PlayerTimer] = field(default_factory=dict)
    assigned_cards: Set[str] = field(default_factory=set, repr=False)  # Player ids whose card is fixed
    clock: Optional[Callable[[], float]] = field(default=None, repr=False)
    turn_manager: TurnManager = field(init=False, repr=False)

    def __post_init__(self):
        self.turn_manager = TurnManager(self.board, self.players, log=self.log)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_player_by_id(self, player_id: str) -> Optional[Player]:
        """Get a player by their ID."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def get_opponent(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id != player_id:
                return player
        return None

    @property
    def current_turn(self) -> Optional[Turn]:
        return self.turn_manager.current_turn

    @property
    def current_player(self) -> Optional[Player]:
        turn = self.current_turn
        return turn.player if turn is not None else None

    @property
    def winner(self) -> Optional[Player]:
        return self.turn_manager.winner

    @property
    def victory_type(self) -> Optional[str]:
        return self.turn_manager.victory_type

    @property
    def is_over(self) -> bool:
        return self.phase == 'ended'

    def get_cell(self, position: Position) -> Optional[Cell]:
        return self.board.get_cell(position)

    def height_at(self, position: Position) -> Optional[int]:
        cell = self.board.get_cell(position)
        return cell.height if cell is not None else None

    def remaining_time(self, player_id: str) -> Optional[float]:
        timer = self.timers.get(player_id)
        return timer.remaining_time() if timer is not None else None

    def _require_player(self, player_id: str) -> Player:
        player = self.get_player_by_id(player_id)
        if player is None:
            raise GameError(f"Unknown player: {player_id}")
        return player

    def _require_setup(self, action: str) -> None:
        if self.phase != 'setup':
            raise GameError(f"Cannot {action} once the game has started")

    def _active_turn(self) -> Turn:
        if self.phase != 'playing' or self.current_turn is None:
            raise GameError(f"No active turn (game phase: {self.phase})")
        return self.current_turn

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def assign_god_card(self, player_id: str, card: Union[GodCard, str, None]) -> GodCard:
        """
        Give a player their god card. Allowed once per player, during setup.

        Raises:
            GameError: after the game started, or if the player already has a card
            ValueError: for an unknown card name
        """
        self._require_setup("assign god cards")
        player = self._require_player(player_id)
        if player_id in self.assigned_cards:
            raise GameError(f"Player {player_id} already holds {player.god_card.value}")
        card = card if isinstance(card, GodCard) else parse_god_card(card)
        player.god_card = card
        self.assigned_cards.add(player_id)
        log_event(self, f"Player {player_id} takes {card.value}", player=player_id)
        return card

    def place_worker(self, player_id: str, worker_index: int, position: Position) -> bool:
        """Put one of a player's workers on the board during setup."""
        self._require_setup("place workers")
        player = self._require_player(player_id)
        worker = player.get_worker(worker_index)
        if worker is None:
            raise GameError(f"Player {player_id} has no worker {worker_index}")
        if not self.board.place_worker(worker, position):
            log_event(self, f"Cannot place {worker.label} at {position}",
                      player=player_id, error_type="validation_error")
            return False
        log_event(self, f"Placed {worker.label} at {position}", player=player_id)
        return True

    def place_workers_randomly(self, rng: Optional[random.Random] = None) -> None:
        """Place every unplaced worker on distinct random empty cells."""
        self._require_setup("place workers")
        rng = rng or random.Random()
        pending = [w for p in self.players for w in p.workers if w.current_cell is None]
        free = [cell.position for cell in self.board.cells() if cell.is_buildable]
        for worker, position in zip(pending, rng.sample(free, len(pending))):
            self.board.place_worker(worker, position)
            log_event(self, f"Placed {worker.label} at {position}", player=worker.owner.id)

    def start(self) -> Turn:
        """
        Leave setup and open the first turn for p1.

        Raises:
            GameError: outside setup or with workers still off the board
        """
        self._require_setup("start")
        unplaced = [w.label for p in self.players for w in p.workers if w.current_cell is None]
        if unplaced:
            raise GameError(f"Workers not placed: {', '.join(unplaced)}")

        for player in self.players:
            self.timers[player.id] = PlayerTimer(self.config['initial_time_seconds'], clock=self.clock)

        self.phase = 'playing'
        self.turn = 1
        first = self.players[0]
        turn = self.turn_manager.create_turn(first, self.turn)
        self.timers[first.id].start()
        log_event(self, f"Game started; {first.name} ({first.id}) moves first", player=first.id)
        return turn

    # ------------------------------------------------------------------
    # Turn actions
    # ------------------------------------------------------------------

    def select_worker(self, worker_index: Union[int, str]) -> bool:
        turn = self._active_turn()
        return self.turn_manager.select_worker(turn.player, worker_index)

    def unselect_worker(self) -> bool:
        self._active_turn()
        return self.turn_manager.unselect_worker()

    def move(self, position: Position) -> bool:
        return self._active_turn().execute_move(position)

    def build(self, position: Position) -> bool:
        return self._active_turn().execute_build(position)

    def skip_bonus_action(self) -> bool:
        return self._active_turn().skip_bonus_action()

    def can_take_additional_action(self) -> bool:
        turn = self.current_turn
        return self.phase == 'playing' and turn is not None and turn.can_take_additional_action()

    def switch_turn(self) -> bool:
        """
        Close a completed turn: check for a winner, then hand over to the
        opponent with a fresh turn and swap the running clock.

        Returns:
            False if the current turn has not completed yet
        """
        turn = self._active_turn()
        if not turn.is_complete:
            return False

        if self.turn_manager.check_winner():
            self._end_game()
            return True

        player = turn.player
        opponent = self.get_opponent(player.id)
        self.timers[player.id].pause()
        self.turn += 1
        self.turn_manager.create_turn(opponent, self.turn)
        self.timers[opponent.id].start()
        log_event(self, f"Turn passes to {opponent.name} ({opponent.id})", player=opponent.id)
        return True

    def take_ai_turn(self) -> bool:
        """
        Let the computer play the whole current turn, then switch turns.

        Raises:
            GameError: if the acting player is not a computer
        """
        turn = self._active_turn()
        player = turn.player
        if not player.is_computer:
            raise GameError(f"Player {player.id} is not a computer player")
        strategy_name, _ = player.make_move(turn, self.board, self.get_opponent(player.id))
        player.increment_move_count()
        log_event(self, f"Computer played turn {turn.number} with the {strategy_name} strategy",
                  player=player.id, strategy=strategy_name)
        return self.switch_turn()

    # ------------------------------------------------------------------
    # Time and elimination
    # ------------------------------------------------------------------

    def eliminate_player(self, player_id: str, reason: str = 'timeout') -> bool:
        """
        Remove a player from the game and award it to the opponent.

        Accepted in any turn state; the current turn is force-completed.

        Returns:
            False if the game is not in progress
        """
        if self.phase != 'playing':
            return False
        player = self._require_player(player_id)
        player.eliminated = True
        turn = self.current_turn
        if turn is not None:
            turn.force_complete(f"{player_id} eliminated ({reason})")
        log_event(self, f"Player {player_id} eliminated: {reason}", player=player_id)
        self.turn_manager.declare_winner(self.get_opponent(player_id), 'timeout')
        self._end_game()
        return True

    def check_time_and_eliminate(self) -> Optional[str]:
        """
        Eliminate the acting player if their clock has run out.

        Returns:
            The eliminated player's id, or None
        """
        player = self.current_player
        if self.phase != 'playing' or player is None:
            return None
        timer = self.timers.get(player.id)
        if timer is not None and timer.is_expired():
            self.eliminate_player(player.id, reason='timeout')
            return player.id
        return None

    def _end_game(self) -> None:
        self.phase = 'ended'
        for timer in self.timers.values():
            timer.pause()
        winner = self.winner
        log_event(self, f"Game over: {winner.name} ({winner.id}) wins by {self.victory_type}",
                  winner=winner.id, victory_type=self.victory_type)


def initialize_game(p1_name: str = "Player 1", p2_name: str = "Player 2",
                    mode: Union[GameMode, str] = GameMode.TWO_PLAYER,
                    seed: Optional[int] = None,
                    config: Optional[Dict[str, Any]] = None,
                    clock: Optional[Callable[[], float]] = None) -> GameState:
    """
    Initialize a new game session in the setup phase.

    In single-player mode p2 is a ComputerPlayer whose random source is
    seeded from `seed` so that computer games can be replayed.

    Args:
        p1_name: Display name for p1
        p2_name: Display name for p2
        mode: GameMode or its string value
        seed: Seed for the computer player's choices
        config: Overrides applied on top of config.json
        clock: Time source for the player timers (defaults to time.monotonic)

    Returns:
        New GameState with no workers placed and no cards assigned
    """
    mode = mode if isinstance(mode, GameMode) else GameMode(mode)
    settings = load_config()
    if config:
        settings.update(config)

    player1 = Player(id='p1', name=p1_name)
    if mode == GameMode.SINGLE_PLAYER:
        player2 = ComputerPlayer(
            id='p2',
            name=p2_name,
            escalation_turns=settings['ai_escalation_turns'],
            search_depth=settings['ai_search_depth'],
            rng=random.Random(seed),
        )
    else:
        player2 = Player(id='p2', name=p2_name)

    game_state = GameState(
        game_id=str(uuid.uuid4()),
        mode=mode,
        players=[player1, player2],
        config=settings,
        clock=clock,
    )
    log_event(game_state, f"New {mode.value} game: {p1_name} vs {p2_name}")
    return game_state


def _position_json(position: Optional[Position]) -> Optional[Dict[str, int]]:
    if position is None:
        return None
    return {'row': position.row, 'col': position.col}


def get_game_summary(game_state: GameState) -> Dict[str, Any]:
    """
    Get a summary of the current game state for API responses.

    Args:
        game_state: Current game state

    Returns:
        Dictionary with game summary information
    """
    board = game_state.board
    turn = game_state.current_turn
    winner = game_state.winner

    turn_json = None
    if turn is not None:
        turn_json = {
            'number': turn.number,
            'player': turn.player.id,
            'state': turn.state.value,
            'selected_worker': turn.selected_worker.label if turn.selected_worker else None,
            'moves': [get_action_summary(a) for a in turn.moves],
            'builds': [get_action_summary(a) for a in turn.builds],
            'legal_moves': [_position_json(p) for p in turn.legal_moves()],
            'legal_builds': [_position_json(p) for p in turn.legal_builds()],
            'can_take_additional_action': turn.can_take_additional_action(),
        }

    return {
        'game_id': game_state.game_id,
        'mode': game_state.mode.value,
        'turn': game_state.turn,
        'phase': game_state.phase,
        'current_player': game_state.current_player.id if game_state.current_player else None,
        'winner': winner.id if winner else None,
        'victory_type': game_state.victory_type,
        'board': {
            'size': board.size,
            'heights': board.height_map().tolist(),
            'domes': [[cell.has_dome for cell in row]
                      for row in _rows(board)],
        },
        'players': [
            {
                'id': player.id,
                'name': player.name,
                'is_computer': player.is_computer,
                'eliminated': player.eliminated,
                'god_card': {
                    'name': player.god_card.value,
                    'description': player.god_card.description,
                },
                'remaining_time': game_state.remaining_time(player.id),
                'workers': [
                    {
                        'id': worker.id,
                        'label': worker.label,
                        'position': _position_json(worker.position),
                        'height': worker.height,
                    }
                    for worker in player.workers
                ]
            }
            for player in game_state.players
        ],
        'current_turn': turn_json,
    }


def _rows(board: Board) -> List[List[Cell]]:
    cells = list(board.cells())
    return [cells[i:i + board.size] for i in range(0, len(cells), board.size)]
