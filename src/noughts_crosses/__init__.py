"""
Noughts & Crosses session backend.

The game core (board, line detection, players, session state machine) has no
dependency on the web layer; main.create_app() exposes it over FastAPI.
"""

from .board import Board, Cell
from .errors import (
    ConfigurationError,
    GameError,
    IllegalStateError,
    OccupiedError,
    RangeError,
    ValidationError,
)
from .line_detector import WinningLine, detect
from .players import MoveProvider, Player, PlayerType
from .session import (
    FinalTallies,
    MoveSettled,
    Phase,
    RoundStarted,
    RoundTied,
    RoundWon,
    SessionController,
    SessionListener,
    Tallies,
)

__version__ = "1.0.0"

__all__ = [
    "Board",
    "Cell",
    "ConfigurationError",
    "GameError",
    "IllegalStateError",
    "OccupiedError",
    "RangeError",
    "ValidationError",
    "WinningLine",
    "detect",
    "MoveProvider",
    "Player",
    "PlayerType",
    "FinalTallies",
    "MoveSettled",
    "Phase",
    "RoundStarted",
    "RoundTied",
    "RoundWon",
    "SessionController",
    "SessionListener",
    "Tallies",
]
