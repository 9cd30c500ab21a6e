"""
Request and response models for the noughts & crosses HTTP backend (FastAPI).
"""

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .board import Cell
from .players import Player, PlayerType
from .session import (
    FinalTallies,
    MoveSettled,
    Phase,
    RoundStarted,
    RoundTied,
    RoundWon,
    SessionController,
)

Outcome = Union[RoundStarted, MoveSettled, RoundWon, RoundTied, FinalTallies]


# PUBLIC_INTERFACE
class PlayerCreate(BaseModel):
    """Incoming player identity; the marker is assigned by seat."""
    name: str = Field(..., min_length=1, max_length=32, description="Player's display name.")
    type: PlayerType = Field(PlayerType.HUMAN, description="human, ai_easy, ai_medium or ai_impossible.")


# PUBLIC_INTERFACE
class SessionCreateRequest(BaseModel):
    """To start a new session. player_x plays crosses and starts round 1."""
    player_x: PlayerCreate
    player_o: PlayerCreate


# PUBLIC_INTERFACE
class MoveRequest(BaseModel):
    """Place the active player's marker."""
    row: int = Field(..., description="Row index (0-2)")
    col: int = Field(..., description="Column index (0-2)")


# PUBLIC_INTERFACE
class TalliesView(BaseModel):
    x_wins: int
    o_wins: int
    ties: int
    rounds_played: int


# PUBLIC_INTERFACE
class SessionView(BaseModel):
    """Representation of the current board, turn and score."""
    session_id: str
    phase: Phase
    board: List[List[str]] = Field(..., description="3x3 board, values are 'X', 'O', or ''.")
    player_x: Optional[Player] = None
    player_o: Optional[Player] = None
    active_player: Optional[Player] = Field(None, description="Player whose move is next.")
    round_starting_player: Optional[Player] = None
    round_number: int
    tallies: TalliesView
    moves: List[Dict[str, Union[int, str]]] = Field(default_factory=list)

    @classmethod
    def from_controller(cls, session_id: str, controller: SessionController) -> "SessionView":
        tallies = controller.tallies
        return cls(
            session_id=session_id,
            phase=controller.phase,
            board=[[cell.value for cell in row] for row in controller.board.snapshot()],
            player_x=controller.player_x,
            player_o=controller.player_o,
            active_player=controller.active_player if controller.phase is Phase.AWAITING_MOVE else None,
            round_starting_player=controller.round_starting_player,
            round_number=controller.round_number,
            tallies=TalliesView(
                x_wins=tallies.x_wins,
                o_wins=tallies.o_wins,
                ties=tallies.ties,
                rounds_played=tallies.rounds_played,
            ),
            moves=[{"row": m.row, "col": m.col, "marker": m.marker.value} for m in controller.moves],
        )


# PUBLIC_INTERFACE
class MoveResponse(BaseModel):
    """Outcome of a move plus the state it left behind."""
    outcome: Union[RoundWon, RoundTied, MoveSettled]
    session: SessionView


# PUBLIC_INTERFACE
class SessionSummary(BaseModel):
    """High-level listing entry."""
    session_id: str
    players: List[str]
    phase: Phase
    round_number: int


# PUBLIC_INTERFACE
class LeaderboardEntry(BaseModel):
    """Per-player statistics across ended sessions."""
    name: str
    wins: int = 0
    losses: int = 0
    ties: int = 0
    rounds_played: int = 0


def build_player(seat: PlayerCreate, marker: Cell) -> Player:
    return Player(name=seat.name, marker=marker, type=seat.type)
