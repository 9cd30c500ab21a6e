"""
Tests for the session state machine.

Tests:
- Session start and configuration errors
- Move outcomes (settled, won, tied)
- Round alternation and tallies
- Phase enforcement
- Listener notifications
- Move providers for non-human players
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from conftest import ROW_WIN_MOVES, TIE_MOVES, RecordingListener, play
from noughts_crosses.board import Cell
from noughts_crosses.errors import (
    ConfigurationError, IllegalStateError, OccupiedError, RangeError, ValidationError,
)
from noughts_crosses.players import MoveProvider, Player, PlayerType
from noughts_crosses.session import (
    FinalTallies, MoveSettled, Phase, RoundStarted, RoundTied, RoundWon, SessionController,
)


class TestPlayer:
    """Player values validate at construction."""

    def test_defaults_to_human(self):
        player = Player(name="Ann", marker=Cell.CROSS)
        assert player.type is PlayerType.HUMAN
        assert player.is_human

    def test_name_is_stripped(self):
        assert Player(name="  Ann ", marker="X").name == "Ann"

    @pytest.mark.parametrize("fields", [
        {"name": "", "marker": "X"},
        {"name": "   ", "marker": "X"},
        {"name": "Ann", "marker": ""},
        {"name": "Ann", "marker": "Z"},
        {"name": "Ann", "marker": "X", "type": "robot"},
    ])
    def test_invalid_fields(self, fields):
        with pytest.raises(PydanticValidationError):
            Player(**fields)

    def test_immutable(self, player_x):
        with pytest.raises(PydanticValidationError):
            player_x.name = "Mallory"


class TestStartSession:

    def test_start_opens_round_one(self, controller, player_x, player_o):
        """Round 1 starts with player_x and an empty board."""
        outcome = controller.start_session(player_x, player_o)

        assert isinstance(outcome, RoundStarted)
        assert outcome.round_number == 1
        assert outcome.starting_player == player_x
        assert controller.phase is Phase.AWAITING_MOVE
        assert controller.active_player == player_x
        assert controller.round_starting_player == player_x
        assert controller.board.occupied_count == 0
        assert controller.tallies.rounds_played == 0

    def test_colliding_markers(self, controller, player_x):
        other = Player(name="Eve", marker=Cell.CROSS)
        with pytest.raises(ConfigurationError):
            controller.start_session(player_x, other)
        assert controller.phase is Phase.IDLE
        assert controller.player_x is None

    def test_player_x_must_hold_cross(self, controller, player_x, player_o):
        with pytest.raises(ConfigurationError):
            controller.start_session(player_o, player_x)

    def test_players_need_distinct_names(self, controller, player_x):
        twin = Player(name="ALICE", marker=Cell.NOUGHT)
        with pytest.raises(ConfigurationError):
            controller.start_session(player_x, twin)
        assert controller.phase is Phase.IDLE
        assert controller.player_x is None

    def test_players_must_be_player_values(self, controller, player_x):
        with pytest.raises(ConfigurationError):
            controller.start_session(player_x, "Bob")

    def test_cannot_start_twice(self, started, player_x, player_o):
        with pytest.raises(IllegalStateError):
            started.start_session(player_x, player_o)


class TestApplyMove:

    def test_settled_move_toggles_player(self, started, player_o):
        outcome = started.apply_move(1, 1)

        assert outcome == MoveSettled(row=1, col=1, marker=Cell.CROSS)
        assert started.active_player == player_o
        assert started.phase is Phase.AWAITING_MOVE
        assert started.board.value_at(1, 1) is Cell.CROSS

    def test_row_win(self, started, player_x):
        """X:(0,0) O:(1,1) X:(0,1) O:(2,2) X:(0,2) wins along row 0."""
        outcome = play(started, ROW_WIN_MOVES)

        assert isinstance(outcome, RoundWon)
        assert outcome.line == ((0, 0), (0, 1), (0, 2))
        assert outcome.player == player_x
        assert started.phase is Phase.ROUND_OVER
        assert started.tallies.x_wins == 1
        assert started.tallies.o_wins == 0

    def test_column_win_for_noughts(self, started, player_o):
        """O completes column 0 on its third move."""
        outcome = play(started, [(1, 1), (0, 0), (0, 2), (2, 0), (2, 1), (1, 0)])

        assert isinstance(outcome, RoundWon)
        assert outcome.line == ((0, 0), (1, 0), (2, 0))
        assert outcome.player == player_o
        assert started.tallies.o_wins == 1

    def test_full_board_without_line_is_tie(self, started):
        outcome = play(started, TIE_MOVES)

        assert isinstance(outcome, RoundTied)
        assert started.phase is Phase.ROUND_OVER
        assert started.tallies.ties == 1
        assert started.tallies.x_wins == started.tallies.o_wins == 0

    def test_win_on_last_cell_is_win_not_tie(self, started, player_x):
        """X completes the main diagonal with the ninth move."""
        moves = [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2), (2, 1), (2, 0), (2, 2)]
        outcome = play(started, moves)

        assert isinstance(outcome, RoundWon)
        assert outcome.line == ((0, 0), (1, 1), (2, 2))
        assert outcome.player == player_x
        assert started.board.is_full()
        assert started.tallies.ties == 0

    def test_occupied_cell_leaves_state_unchanged(self, started, player_o):
        started.apply_move(0, 0)
        before = (started.board.snapshot(), started.active_player, list(started.moves))

        with pytest.raises(OccupiedError):
            started.apply_move(0, 0)

        assert (started.board.snapshot(), started.active_player, list(started.moves)) == before
        assert started.active_player == player_o

    @pytest.mark.parametrize("row,col", [(3, 0), (0, 3), (-1, 1)])
    def test_out_of_range_leaves_state_unchanged(self, started, player_x, row, col):
        with pytest.raises(ValidationError) as info:
            started.apply_move(row, col)

        assert isinstance(info.value, RangeError)
        assert started.board.occupied_count == 0
        assert started.active_player == player_x
        assert started.moves == []

    def test_move_after_round_over(self, started):
        play(started, ROW_WIN_MOVES)
        with pytest.raises(IllegalStateError):
            started.apply_move(2, 0)

    def test_move_when_idle(self, controller):
        with pytest.raises(IllegalStateError):
            controller.apply_move(0, 0)

    def test_moves_recorded_in_order(self, started):
        play(started, [(0, 0), (2, 2)])
        assert [(m.row, m.col, m.marker) for m in started.moves] == [
            (0, 0, Cell.CROSS),
            (2, 2, Cell.NOUGHT),
        ]


class TestRounds:

    def test_next_round_during_play_fails(self, started):
        with pytest.raises(IllegalStateError):
            started.start_next_round()

    def test_starting_player_alternates(self, started, player_x, player_o):
        """Round starters go X, O, X, O regardless of results."""
        starters = [started.active_player]
        for _ in range(3):
            play(started, ROW_WIN_MOVES if started.active_player == player_x else TIE_MOVES)
            outcome = started.start_next_round()
            starters.append(outcome.starting_player)
            assert started.active_player == outcome.starting_player

        assert starters == [player_x, player_o, player_x, player_o]

    def test_loser_does_not_start_by_default(self, started, player_o):
        """Round 2 starts with O even though X won round 1."""
        play(started, ROW_WIN_MOVES)
        started.start_next_round()
        assert started.active_player == player_o
        assert started.round_number == 2

    def test_next_round_clears_board(self, started):
        play(started, TIE_MOVES)
        started.start_next_round()
        assert started.board.occupied_count == 0
        assert started.moves == []
        assert started.phase is Phase.AWAITING_MOVE

    def test_o_starts_round_two_with_noughts(self, started, player_o):
        play(started, ROW_WIN_MOVES)
        started.start_next_round()
        outcome = started.apply_move(1, 1)
        assert outcome.marker is Cell.NOUGHT

    def test_tallies_sum_to_completed_rounds(self, started):
        """The round starter plays the winning row, so round 2 goes to O."""
        results = [ROW_WIN_MOVES, ROW_WIN_MOVES, TIE_MOVES, TIE_MOVES]
        for completed, moves in enumerate(results, start=1):
            play(started, moves)
            tallies = started.tallies
            assert tallies.x_wins + tallies.ties + tallies.o_wins == completed
            started.start_next_round()
        assert started.tallies.ties == 2
        assert started.tallies.x_wins == 1
        assert started.tallies.o_wins == 1


class TestEndSession:

    def test_returns_totals_and_resets(self, started, player_x, player_o):
        play(started, ROW_WIN_MOVES)
        started.start_next_round()
        play(started, TIE_MOVES)

        final = started.end_session()

        assert final == FinalTallies(
            player_x=player_x, player_o=player_o, x_wins=1, ties=1, o_wins=0, rounds_played=2,
        )
        assert started.phase is Phase.IDLE
        assert started.player_x is None and started.player_o is None
        assert started.active_player is None
        assert started.round_starting_player is None
        assert started.tallies.rounds_played == 0
        assert started.board.occupied_count == 0

    def test_end_mid_round(self, started):
        started.apply_move(0, 0)
        final = started.end_session()
        assert final.rounds_played == 0
        assert started.phase is Phase.IDLE

    def test_end_when_idle(self, controller):
        final = controller.end_session()
        assert final.player_x is None
        assert final.rounds_played == 0

    def test_new_session_starts_clean(self, started, player_x, player_o):
        play(started, ROW_WIN_MOVES)
        started.end_session()

        started.start_session(player_x, player_o)

        assert started.tallies.x_wins == 0
        assert started.round_number == 1
        assert started.active_player == player_x


class TestListeners:

    def test_callbacks_follow_outcomes(self, started, listener, player_x):
        play(started, ROW_WIN_MOVES)
        started.start_next_round()
        final = started.end_session()

        assert listener.calls[0] == ("round_started", 1)
        assert listener.calls[1] == ("move_settled", 0, 0, Cell.CROSS)
        assert listener.calls[4] == ("move_settled", 2, 2, Cell.NOUGHT)
        assert listener.calls[5] == ("round_won", ((0, 0), (0, 1), (0, 2)), player_x)
        assert listener.calls[6] == ("round_started", 2)
        assert listener.calls[7] == ("session_ended", final)
        assert len(listener.calls) == 8

    def test_tie_callback(self, started, listener):
        play(started, TIE_MOVES)
        assert listener.calls[-1] == ("round_tied",)

    def test_rejected_move_emits_nothing(self, started, listener):
        before = len(listener.calls)
        with pytest.raises(RangeError):
            started.apply_move(5, 5)
        assert len(listener.calls) == before

    def test_unsubscribe(self, started, listener):
        started.unsubscribe(listener)
        started.apply_move(0, 0)
        assert listener.calls == [("round_started", 1)]

    def test_unsubscribe_unknown_listener_is_ignored(self, started, listener):
        started.unsubscribe(RecordingListener())
        started.apply_move(0, 0)
        assert listener.calls[-1] == ("move_settled", 0, 0, Cell.CROSS)


class ScriptedProvider:
    """Returns queued coordinates and remembers what it was shown."""

    def __init__(self, *moves):
        self.moves = list(moves)
        self.seen = []

    def request_move(self, snapshot):
        self.seen.append(snapshot)
        return self.moves.pop(0)


class TestProvidedMoves:

    def test_provider_move_applied_for_ai(self, controller, player_x, ai_player_o):
        controller.start_session(player_x, ai_player_o)
        controller.apply_move(0, 0)
        provider = ScriptedProvider((1, 1))

        outcome = controller.apply_provided_move(provider)

        assert isinstance(provider, MoveProvider)
        assert outcome == MoveSettled(row=1, col=1, marker=Cell.NOUGHT)
        assert provider.seen[0][0][0] is Cell.CROSS
        assert controller.active_player == player_x

    def test_human_turn_rejects_provider(self, started):
        with pytest.raises(IllegalStateError):
            started.apply_provided_move(ScriptedProvider((0, 0)))
        assert started.board.occupied_count == 0

    @pytest.mark.parametrize("reply", [None, (1,), (1, 1, 1), "11", 7])
    def test_provider_reply_must_be_a_pair(self, controller, player_x, ai_player_o, reply):
        controller.start_session(player_x, ai_player_o)
        controller.apply_move(0, 0)

        with pytest.raises(ValidationError):
            controller.apply_provided_move(ScriptedProvider(reply))

        assert controller.board.occupied_count == 1
        assert controller.active_player == ai_player_o

    def test_provider_bad_coordinates_propagate(self, controller, player_x, ai_player_o):
        controller.start_session(player_x, ai_player_o)
        controller.apply_move(0, 0)
        with pytest.raises(OccupiedError):
            controller.apply_provided_move(ScriptedProvider((0, 0)))
        assert controller.active_player == ai_player_o


class TestIndependentControllers:

    def test_sessions_do_not_share_state(self, player_x, player_o):
        first, second = SessionController(), SessionController()
        first.start_session(player_x, player_o)
        second.start_session(player_x, player_o)

        first.apply_move(1, 1)

        assert second.board.occupied_count == 0
        assert second.active_player == player_x
