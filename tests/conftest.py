"""
Pytest fixtures for noughts_crosses tests.
"""

import pytest
from fastapi.testclient import TestClient

from noughts_crosses.board import Board, Cell
from noughts_crosses.main import create_app
from noughts_crosses.players import Player, PlayerType
from noughts_crosses.session import SessionController, SessionListener
from noughts_crosses.store import InMemoryStore


class RecordingListener(SessionListener):
    """Collects callbacks as (hook, args) tuples."""

    def __init__(self):
        self.calls = []

    def on_round_started(self, outcome):
        self.calls.append(("round_started", outcome.round_number))

    def on_move_settled(self, row, col, marker):
        self.calls.append(("move_settled", row, col, marker))

    def on_round_won(self, line, player):
        self.calls.append(("round_won", line, player))

    def on_round_tied(self):
        self.calls.append(("round_tied",))

    def on_session_ended(self, final):
        self.calls.append(("session_ended", final))


# X wins on its third move along row 0.
ROW_WIN_MOVES = [(0, 0), (1, 1), (0, 1), (2, 2), (0, 2)]

# Fills the board without a line for either side:
#   X O X
#   X O O
#   O X X
TIE_MOVES = [(0, 0), (0, 1), (0, 2), (1, 1), (1, 0), (1, 2), (2, 1), (2, 0), (2, 2)]


@pytest.fixture
def board() -> Board:
    return Board()


@pytest.fixture
def player_x() -> Player:
    return Player(name="Alice", marker=Cell.CROSS)


@pytest.fixture
def player_o() -> Player:
    return Player(name="Bob", marker=Cell.NOUGHT)


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def controller(listener) -> SessionController:
    controller = SessionController()
    controller.subscribe(listener)
    return controller


@pytest.fixture
def started(controller, player_x, player_o) -> SessionController:
    """A controller with a session running and round 1 awaiting the first move."""
    controller.start_session(player_x, player_o)
    return controller


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore(max_sessions=5)


@pytest.fixture
def client(store) -> TestClient:
    return TestClient(create_app(store=store))


@pytest.fixture
def session_id(client) -> str:
    response = client.post("/sessions", json={
        "player_x": {"name": "Alice"},
        "player_o": {"name": "Bob"},
    })
    assert response.status_code == 201
    return response.json()["session_id"]


def play(controller: SessionController, moves):
    """Apply moves in order and return the last outcome."""
    outcome = None
    for row, col in moves:
        outcome = controller.apply_move(row, col)
    return outcome


@pytest.fixture
def ai_player_o() -> Player:
    return Player(name="Robo", marker=Cell.NOUGHT, type=PlayerType.AI_EASY)
