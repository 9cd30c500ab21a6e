"""
Session state machine: turn order, rounds and cumulative scores.

A SessionController owns one Board and, while a session is running, two
Players. Every mutating call returns an outcome value and mirrors it to the
subscribed listeners before returning.
"""

from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .board import Board, Cell
from .errors import ConfigurationError, IllegalStateError, ValidationError
from .line_detector import WinningLine, detect
from .players import MoveProvider, Player


class Phase(str, Enum):
    IDLE = "idle"
    AWAITING_MOVE = "awaiting_move"
    ROUND_OVER = "round_over"


class Tallies(BaseModel):
    """Score counters for one session."""
    x_wins: int = 0
    o_wins: int = 0
    ties: int = 0

    @property
    def rounds_played(self) -> int:
        return self.x_wins + self.o_wins + self.ties


class Move(BaseModel):
    model_config = ConfigDict(frozen=True)

    row: int
    col: int
    marker: Cell


# Outcomes

class RoundStarted(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: Literal["round_started"] = "round_started"
    round_number: int
    starting_player: Player


class MoveSettled(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: Literal["move_settled"] = "move_settled"
    row: int
    col: int
    marker: Cell


class RoundWon(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: Literal["round_won"] = "round_won"
    line: Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]
    player: Player


class RoundTied(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: Literal["round_tied"] = "round_tied"


class FinalTallies(BaseModel):
    """Result handed back by end_session(). Players are None if no session was running."""
    model_config = ConfigDict(frozen=True)

    event: Literal["session_ended"] = "session_ended"
    player_x: Optional[Player] = None
    player_o: Optional[Player] = None
    x_wins: int = 0
    ties: int = 0
    o_wins: int = 0
    rounds_played: int = 0


# PUBLIC_INTERFACE
class SessionListener:
    """Receives outcome notifications. Override the hooks you need."""

    def on_round_started(self, outcome: RoundStarted):
        pass

    def on_move_settled(self, row: int, col: int, marker: Cell):
        pass

    def on_round_won(self, line: WinningLine, player: Player):
        pass

    def on_round_tied(self):
        pass

    def on_session_ended(self, final: FinalTallies):
        pass


# PUBLIC_INTERFACE
class SessionController:
    """
    Drives one session of rounds between two fixed players.

    Phases: IDLE -> AWAITING_MOVE <-> ROUND_OVER -> IDLE (via end_session).
    Not thread-safe; callers serialize access.
    """

    def __init__(self):
        self.board = Board()
        self.phase = Phase.IDLE
        self.player_x: Optional[Player] = None
        self.player_o: Optional[Player] = None
        self.round_starting_player: Optional[Player] = None
        self.active_player: Optional[Player] = None
        self.tallies = Tallies()
        self.round_number = 0
        self.moves: List[Move] = []
        self._listeners: List[SessionListener] = []

    # PUBLIC_INTERFACE
    def subscribe(self, listener: SessionListener):
        self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener):
        """Stop notifying listener. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _require(self, phase: Phase, operation: str):
        if self.phase is not phase:
            raise IllegalStateError(f"Cannot {operation} while {self.phase.value}.")

    def _other(self, player: Player) -> Player:
        return self.player_o if player == self.player_x else self.player_x

    # PUBLIC_INTERFACE
    def start_session(self, player_x: Player, player_o: Player) -> RoundStarted:
        """Begin a new session; player_x (the cross) starts round 1."""
        self._require(Phase.IDLE, "start a session")
        if not isinstance(player_x, Player) or not isinstance(player_o, Player):
            raise ConfigurationError("Both players must be Player instances.")
        if player_x.marker == player_o.marker:
            raise ConfigurationError("Players must hold different markers.")
        if player_x.marker is not Cell.CROSS:
            raise ConfigurationError("player_x must hold the cross marker.")
        if player_x.name.casefold() == player_o.name.casefold():
            raise ConfigurationError("Players must have different names.")

        self.player_x = player_x
        self.player_o = player_o
        self.tallies = Tallies()
        self.round_number = 0
        self.round_starting_player = player_x
        return self._start_round()

    def _start_round(self) -> RoundStarted:
        self.board.clear()
        self.moves = []
        self.round_number += 1
        self.active_player = self.round_starting_player
        self.phase = Phase.AWAITING_MOVE

        outcome = RoundStarted(round_number=self.round_number, starting_player=self.round_starting_player)
        for listener in list(self._listeners):
            listener.on_round_started(outcome)
        return outcome

    # PUBLIC_INTERFACE
    def apply_move(self, row: int, col: int):
        """
        Place the active player's marker at (row, col).

        Returns RoundWon, RoundTied or MoveSettled. Board errors propagate
        unchanged and leave the session untouched.
        """
        self._require(Phase.AWAITING_MOVE, "apply a move")
        player = self.active_player
        self.board.place(player.marker, row, col)
        self.moves.append(Move(row=row, col=col, marker=player.marker))

        line = detect(self.board, player.marker, row, col)
        if line is not None:
            if player.marker is Cell.CROSS:
                self.tallies.x_wins += 1
            else:
                self.tallies.o_wins += 1
            self.phase = Phase.ROUND_OVER
            outcome = RoundWon(line=line, player=player)
            for listener in list(self._listeners):
                listener.on_round_won(line, player)
            return outcome

        if self.board.is_full():
            self.tallies.ties += 1
            self.phase = Phase.ROUND_OVER
            for listener in list(self._listeners):
                listener.on_round_tied()
            return RoundTied()

        self.active_player = self._other(player)
        for listener in list(self._listeners):
            listener.on_move_settled(row, col, player.marker)
        return MoveSettled(row=row, col=col, marker=player.marker)

    # PUBLIC_INTERFACE
    def apply_provided_move(self, provider: MoveProvider):
        """Ask provider for the active (non-human) player's move and apply it."""
        self._require(Phase.AWAITING_MOVE, "request a move")
        if self.active_player.is_human:
            raise IllegalStateError(f"{self.active_player.name} is human and moves through apply_move.")
        move = provider.request_move(self.board.snapshot())
        if not isinstance(move, (tuple, list)) or len(move) != 2:
            raise ValidationError(f"Move provider must return a (row, col) pair, got {move!r}.")
        row, col = move
        return self.apply_move(row, col)

    # PUBLIC_INTERFACE
    def start_next_round(self) -> RoundStarted:
        """Start another round; the player who did not start the last one begins."""
        self._require(Phase.ROUND_OVER, "start the next round")
        self.round_starting_player = self._other(self.round_starting_player)
        return self._start_round()

    # PUBLIC_INTERFACE
    def end_session(self) -> FinalTallies:
        """Close the session from any phase and return the final scores."""
        final = FinalTallies(
            player_x=self.player_x,
            player_o=self.player_o,
            x_wins=self.tallies.x_wins,
            ties=self.tallies.ties,
            o_wins=self.tallies.o_wins,
            rounds_played=self.tallies.rounds_played,
        )
        self.board.clear()
        self.moves = []
        self.player_x = None
        self.player_o = None
        self.round_starting_player = None
        self.active_player = None
        self.tallies = Tallies()
        self.round_number = 0
        self.phase = Phase.IDLE

        for listener in list(self._listeners):
            listener.on_session_ended(final)
        return final
