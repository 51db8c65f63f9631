"""Tests for turn creation, worker routing and victory detection."""

import pytest

from models import Position
from tests.conftest import dome, place, raise_to
from turns import TurnManager, TurnState, has_valid_moves


@pytest.fixture
def manager(board, players):
    p1, p2 = players
    return TurnManager(board, [p1, p2])


def box_in_bottom_corner(board):
    """Cap every cell around (4,3)/(4,4) except (3,4), which is left at height 1."""
    for position in (Position(3, 2), Position(3, 3), Position(4, 2)):
        dome(board, position)
    raise_to(board, Position(3, 4), 1)


class TestSelection:
    def test_select_by_index(self, board, players, manager):
        p1, _ = players
        place(board, p1, Position(0, 0), Position(0, 1))
        manager.create_turn(p1)
        assert manager.select_worker(p1, 1)
        assert manager.current_turn.selected_worker is p1.workers[1]

    def test_select_accepts_string_index(self, board, players, manager):
        p1, _ = players
        place(board, p1, Position(0, 0), Position(0, 1))
        manager.create_turn(p1)
        assert manager.select_worker(p1, "0")

    @pytest.mark.parametrize("index", [2, -1, "x", None])
    def test_select_bad_index(self, board, players, manager, index):
        p1, _ = players
        place(board, p1, Position(0, 0), Position(0, 1))
        manager.create_turn(p1)
        assert not manager.select_worker(p1, index)
        assert manager.current_turn.state == TurnState.WORKER_SELECTION

    def test_select_for_wrong_player(self, board, players, manager):
        p1, p2 = players
        place(board, p1, Position(0, 0), Position(0, 1))
        place(board, p2, Position(4, 4), Position(4, 3))
        manager.create_turn(p1)
        assert not manager.select_worker(p2, 0)

    def test_select_without_turn(self, players, manager):
        p1, _ = players
        assert not manager.select_worker(p1, 0)

    def test_select_twice_refused(self, board, players, manager):
        p1, _ = players
        place(board, p1, Position(0, 0), Position(0, 1))
        manager.create_turn(p1)
        assert manager.select_worker(p1, 0)
        assert not manager.select_worker(p1, 1)

    def test_unselect(self, board, players, manager):
        p1, _ = players
        place(board, p1, Position(0, 0), Position(0, 1))
        manager.create_turn(p1)
        assert not manager.unselect_worker()
        manager.select_worker(p1, 0)
        assert manager.unselect_worker()

    def test_create_turn_resets_initial_positions(self, board, players, manager):
        p1, _ = players
        place(board, p1, Position(0, 0), Position(0, 1))
        p1.workers[0].initial_position = Position(3, 3)
        turn = manager.create_turn(p1)
        assert p1.workers[0].initial_position is None
        assert turn.state == TurnState.WORKER_SELECTION


class TestWinner:
    def test_height_win(self, board, players, manager):
        p1, p2 = players
        raise_to(board, Position(1, 1), 2)
        raise_to(board, Position(1, 2), 3)
        place(board, p1, Position(1, 1), Position(0, 0))
        place(board, p2, Position(4, 4), Position(4, 3))
        turn = manager.create_turn(p1)
        turn.select_worker(p1.workers[0])
        turn.execute_move(Position(1, 2))
        assert turn.is_complete
        assert manager.check_winner()
        assert manager.winner is p1
        assert manager.victory_type == 'height'

    def test_no_winner_in_open_play(self, board, players, manager):
        p1, p2 = players
        place(board, p1, Position(0, 0), Position(0, 1))
        place(board, p2, Position(4, 4), Position(4, 3))
        turn = manager.create_turn(p1)
        turn.select_worker(p1.workers[0])
        turn.execute_move(Position(1, 1))
        turn.execute_build(Position(0, 0))
        assert not manager.check_winner()
        assert manager.winner is None

    def test_incomplete_turn_is_not_evaluated(self, board, players, manager):
        p1, p2 = players
        place(board, p1, Position(0, 0), Position(0, 1))
        place(board, p2, Position(4, 4), Position(4, 3))
        manager.create_turn(p1)
        assert not manager.check_winner()

    def test_stalemate_win_when_opponent_boxed_in(self, board, players, manager):
        p1, p2 = players
        box_in_bottom_corner(board)
        place(board, p1, Position(2, 4), Position(0, 0))
        place(board, p2, Position(4, 4), Position(4, 3))
        assert has_valid_moves(p2, board)

        turn = manager.create_turn(p1)
        turn.select_worker(p1.workers[0])
        assert turn.execute_move(Position(2, 3))
        assert turn.execute_build(Position(3, 4))
        assert board.get_cell(Position(3, 4)).height == 2

        assert not has_valid_moves(p2, board)
        assert manager.check_winner()
        assert manager.winner is p1
        assert manager.victory_type == 'stalemate'

    def test_immobile_acting_player_loses(self, board, players, manager):
        p1, p2 = players
        for position in (Position(0, 2), Position(1, 0), Position(1, 1), Position(1, 2)):
            dome(board, position)
        place(board, p1, Position(0, 0), Position(0, 1))
        place(board, p2, Position(4, 4), Position(4, 3))
        assert not has_valid_moves(p1, board)

        turn = manager.create_turn(p1)
        turn.force_complete("no worker can move")
        assert manager.check_winner()
        assert manager.winner is p2
        assert manager.victory_type == 'stalemate'

    def test_win_is_logged(self, board, players):
        p1, p2 = players
        log = []
        manager = TurnManager(board, [p1, p2], log=log)
        place(board, p1, Position(0, 0), Position(0, 1))
        place(board, p2, Position(4, 4), Position(4, 3))
        manager.create_turn(p1)
        manager.declare_winner(p1, 'timeout')
        assert log[-1]['phase'] == 'victory'
        assert 'timeout' in log[-1]['event']
