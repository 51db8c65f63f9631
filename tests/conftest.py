"""Shared test fixtures and helpers."""

import random

import pytest

from board import Board
from cards import GodCard
from models import MAX_LEVEL, Block, Player, Position
from state import GameMode, initialize_game

# --- Standard placements ---

CORNER_PLACEMENT = {
    "p1": [Position(0, 0), Position(0, 1)],
    "p2": [Position(4, 4), Position(4, 3)],
}

CENTER_PLACEMENT = {
    "p1": [Position(2, 2), Position(0, 4)],
    "p2": [Position(4, 0), Position(4, 4)],
}


class FakeClock:
    """Manually advanced time source for timers."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# --- Fixtures ---


@pytest.fixture
def board():
    """Empty 5x5 board."""
    return Board()


@pytest.fixture
def players():
    """Two card-less players."""
    return Player(id="p1", name="Alice"), Player(id="p2", name="Bob")


@pytest.fixture
def game():
    """Started two-player game, no cards, workers in opposite corners."""
    return make_game()


@pytest.fixture
def rng():
    """Deterministic RNG seeded at 42."""
    return random.Random(42)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api_client():
    """Flask test client."""
    from app import app

    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


# --- Helper functions ---


def raise_to(board, position, height):
    """Stack plain blocks on a cell until it reaches `height` (at most 3)."""
    cell = board.get_cell(position)
    while cell.height < min(height, MAX_LEVEL):
        cell.add_block(Block(cell.height + 1))
    return cell


def dome(board, position):
    """Build a cell up to a capped tower."""
    cell = raise_to(board, position, MAX_LEVEL)
    cell.set_dome()
    return cell


def place(board, player, *positions):
    """Put a player's workers on the given positions, in worker order."""
    for worker, position in zip(player.workers, positions):
        assert board.place_worker(worker, position)


def make_game(p1_card=GodCard.NONE, p2_card=GodCard.NONE, placement=None,
              mode=GameMode.TWO_PLAYER, clock=None, seed=7, config=None):
    """Create and start a game with explicit cards and worker positions."""
    game = initialize_game("Alice", "Bob", mode=mode, seed=seed, config=config, clock=clock)
    game.assign_god_card("p1", p1_card)
    game.assign_god_card("p2", p2_card)
    for player_id, positions in (placement or CORNER_PLACEMENT).items():
        for index, position in enumerate(positions):
            assert game.place_worker(player_id, index, position)
    game.start()
    return game


def create_api_game(client, **body):
    """Create a new game via API, return its JSON payload."""
    body.setdefault("workers", {
        pid: [[p.row, p.col] for p in positions] for pid, positions in CORNER_PLACEMENT.items()
    })
    resp = client.post("/api/game/new", json=body)
    assert resp.status_code == 200, resp.json
    return resp.json
