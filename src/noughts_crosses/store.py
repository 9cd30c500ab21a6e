"""
In-memory storage for running sessions and the scoreboard of ended ones.
"""

import logging
import secrets
import threading
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .board import Cell
from .line_detector import WinningLine
from .models import LeaderboardEntry
from .players import MoveProvider, Player, PlayerType
from .session import FinalTallies, RoundStarted, SessionController, SessionListener

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionNotFound(KeyError):
    """No session with the given id."""


class StoreFull(RuntimeError):
    """The configured session limit has been reached."""


class EventLog(SessionListener):
    """Records every outcome of one session as JSON-ready dicts."""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    def on_round_started(self, outcome: RoundStarted):
        self.events.append(outcome.model_dump(mode="json"))

    def on_move_settled(self, row: int, col: int, marker: Cell):
        self.events.append({"event": "move_settled", "row": row, "col": col, "marker": marker.value})

    def on_round_won(self, line: WinningLine, player: Player):
        self.events.append({
            "event": "round_won",
            "line": [list(cell) for cell in line],
            "player": player.model_dump(mode="json"),
        })

    def on_round_tied(self):
        self.events.append({"event": "round_tied"})

    def on_session_ended(self, final: FinalTallies):
        self.events.append(final.model_dump(mode="json"))


class SessionRecord:
    def __init__(self, session_id: str):
        self.session_id = session_id
        self.controller = SessionController()
        self.log = EventLog()
        self.controller.subscribe(self.log)


class InMemoryStore:
    """
    Session and scoreboard storage.

    One lock guards the session map and every controller call, so requests
    reach a SessionController one at a time.
    """

    def __init__(self, max_sessions: int = 1000):
        self.sessions: Dict[str, SessionRecord] = {}  # session_id : SessionRecord
        self.scores: Dict[str, LeaderboardEntry] = {}  # player name : LeaderboardEntry
        self.providers: Dict[PlayerType, MoveProvider] = {}
        self.max_sessions = max_sessions
        self._lock = threading.Lock()

    # PUBLIC_INTERFACE
    def register_provider(self, player_type: PlayerType, provider: MoveProvider):
        """Plug in move generation for a non-human player type."""
        if player_type is PlayerType.HUMAN:
            raise ValueError("Human players do not use a move provider.")
        with self._lock:
            self.providers[player_type] = provider

    def get_provider(self, player_type: PlayerType) -> Optional[MoveProvider]:
        with self._lock:
            return self.providers.get(player_type)

    # PUBLIC_INTERFACE
    def create_session(self, player_x: Player, player_o: Player) -> SessionRecord:
        """Create a session and start its first round."""
        with self._lock:
            if len(self.sessions) >= self.max_sessions:
                raise StoreFull(f"Session limit of {self.max_sessions} reached.")
            record = SessionRecord(secrets.token_hex(4))
            while record.session_id in self.sessions:
                record = SessionRecord(secrets.token_hex(4))
            record.controller.start_session(player_x, player_o)
            self.sessions[record.session_id] = record
        logger.info("Session %s started: %s vs %s", record.session_id, player_x.name, player_o.name)
        return record

    # PUBLIC_INTERFACE
    def list_sessions(self) -> List[SessionRecord]:
        with self._lock:
            return list(self.sessions.values())

    def get_session(self, session_id: str) -> SessionRecord:
        with self._lock:
            return self._get(session_id)

    def _get(self, session_id: str) -> SessionRecord:
        record = self.sessions.get(session_id)
        if record is None:
            raise SessionNotFound(session_id)
        return record

    # PUBLIC_INTERFACE
    def run(self, session_id: str, operation: Callable[[SessionController], T]) -> T:
        """Call operation(controller) for the session while holding the store lock."""
        with self._lock:
            return operation(self._get(session_id).controller)

    # PUBLIC_INTERFACE
    def end_session(self, session_id: str) -> FinalTallies:
        """End the session, drop it and fold its result into the scoreboard."""
        with self._lock:
            record = self._get(session_id)
            final = record.controller.end_session()
            del self.sessions[session_id]
            self._update_scoreboard(final)
        logger.info(
            "Session %s ended after %d rounds (X %d, ties %d, O %d)",
            session_id, final.rounds_played, final.x_wins, final.ties, final.o_wins,
        )
        return final

    def _update_scoreboard(self, final: FinalTallies):
        seats = [
            (final.player_x, final.x_wins, final.o_wins),
            (final.player_o, final.o_wins, final.x_wins),
        ]
        for player, wins, losses in seats:
            if player is None:
                continue
            entry = self.scores.setdefault(player.name, LeaderboardEntry(name=player.name))
            entry.wins += wins
            entry.losses += losses
            entry.ties += final.ties
            entry.rounds_played += final.rounds_played

    # PUBLIC_INTERFACE
    def get_leaderboard(self) -> List[LeaderboardEntry]:
        with self._lock:
            return sorted(self.scores.values(), key=lambda e: (-e.wins, e.losses, -e.ties, e.name))
