"""
Player identity and the move-provider capability for non-human players.
"""

from enum import Enum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .board import Cell, Coordinate, Snapshot


class PlayerType(str, Enum):
    HUMAN = "human"
    AI_EASY = "ai_easy"
    AI_MEDIUM = "ai_medium"
    AI_IMPOSSIBLE = "ai_impossible"


# PUBLIC_INTERFACE
class Player(BaseModel):
    """Immutable player value. Invalid fields raise pydantic.ValidationError."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=32, description="Display name.")
    marker: Cell = Field(..., description="Cross or nought.")
    type: PlayerType = Field(PlayerType.HUMAN, description="Who chooses this player's moves.")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name must not be blank.")
        return value

    @field_validator("marker")
    @classmethod
    def _not_empty(cls, value: Cell) -> Cell:
        if value is Cell.EMPTY:
            raise ValueError("Marker must be X or O.")
        return value

    @property
    def is_human(self) -> bool:
        return self.type is PlayerType.HUMAN


# PUBLIC_INTERFACE
@runtime_checkable
class MoveProvider(Protocol):
    """Chooses a move for a non-human player from a board snapshot."""

    def request_move(self, snapshot: Snapshot) -> Coordinate:
        ...
