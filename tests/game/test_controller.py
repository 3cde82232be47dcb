"""Tests for GameController."""

from __future__ import annotations

import pytest

from game_fakes import (
    KINGS_ONLY,
    FakeEngine,
    ManualTicker,
    king_moves,
    manual_clocks,
    only,
    plus,
    side_of,
)

from royal100.core.enums import Color, PieceType
from royal100.core.move import Move, ValidMoves
from royal100.core.piece import Piece
from royal100.core.types import parse_square
from royal100.engine.protocol import BestMove, ClockTimes, Score, ScoreType
from royal100.game.config import GameConfig, OpponentKind, UndoPolicy
from royal100.game.controller import GameController, GameInvariantError
from royal100.game.state import (
    Draw,
    DrawReason,
    GameState,
    MoveRecord,
    Paused,
    Playing,
    Win,
    WinReason,
)

CASTLING_FEN = "r3k4r/pppppppppp/55/55/55/55/55/55/PPPPPPPPPP/R3K4R w KQkq Ss - 0 1"


def sq(name: str) -> int:
    return parse_square(name)


def human_config(fen: str = KINGS_ONLY, **overrides: object) -> GameConfig:
    overrides.setdefault("total_time_ms", 0)
    return GameConfig(opponent=OpponentKind.HUMAN, fen=fen, **overrides)


def engine_config(fen: str = KINGS_ONLY, **overrides: object) -> GameConfig:
    overrides.setdefault("total_time_ms", 0)
    return GameConfig(opponent=OpponentKind.ENGINE, fen=fen, **overrides)


def play(controller: GameController, *moves: str) -> None:
    """Play moves written as ``"e1-e2"`` (board keys), asserting each is accepted."""
    for text in moves:
        origin, destination = text.split("-")
        assert controller.apply_move(sq(origin), sq(destination)), text


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def tickers() -> dict[Color, ManualTicker]:
    return {}


@pytest.fixture
def controller(engine: FakeEngine, tickers: dict[Color, ManualTicker]) -> GameController:
    clocks, created = manual_clocks()
    tickers.update(created)
    return GameController(engine, clocks=clocks)


# ── Lifecycle ────────────────────────────────────────────────────────────────


class TestNewGame:
    def test_initial_state(self, controller: GameController) -> None:
        assert controller.state == Paused()
        assert not controller.is_playing

    def test_starts_playing(self, controller: GameController, engine: FakeEngine) -> None:
        states: list[GameState] = []
        controller.events.on_state_changed.append(states.append)
        controller.new_game(human_config())

        assert states == [Playing()]
        assert controller.side_to_move == Color.WHITE
        assert controller.fen == KINGS_ONLY
        assert len(engine.started) == 1
        assert sorted(controller.valid_moves.destinations[sq("e1")]) == sorted(
            sq(name) for name in ("d1", "f1", "d2", "e2", "f2")
        )

    def test_valid_moves_event(self, controller: GameController) -> None:
        seen = []
        controller.events.on_valid_moves.append(seen.append)
        controller.new_game(human_config())
        assert seen == [controller.valid_moves]

    def test_engine_options_from_config(
        self, controller: GameController, engine: FakeEngine
    ) -> None:
        controller.new_game(human_config(depth=40, threads=2, elo=1800, ply_time_ms=750))
        options = engine.started[0]
        assert options is not None
        assert options.depth is None
        assert options.threads == 2
        assert options.elo == 1800
        assert options.move_time_ms == 750

    def test_rejected_while_playing(self, controller: GameController) -> None:
        controller.new_game(human_config())
        with pytest.raises(GameInvariantError):
            controller.new_game(human_config())

    def test_bad_fen_leaves_state(self, controller: GameController, engine: FakeEngine) -> None:
        with pytest.raises(ValueError):
            controller.new_game(human_config(fen="not a fen"))
        with pytest.raises(ValueError):
            controller.new_game(human_config(fen="4k5/55/55/55/55/55/55/55/55/55 w - - - 0 1"))
        assert controller.state == Paused()
        assert engine.started == []

    def test_restart_after_game_over(self, controller: GameController) -> None:
        controller.new_game(human_config())
        controller.resign()
        controller.new_game(human_config())
        assert controller.is_playing
        assert len(controller.history) == 0

    def test_shutdown_keeps_state(self, controller: GameController, engine: FakeEngine) -> None:
        controller.new_game(human_config())
        controller.shutdown()
        assert engine.quit_count == 1
        assert controller.is_playing


# ── Moves ────────────────────────────────────────────────────────────────────


class TestApplyMove:
    def test_legal_move(self, controller: GameController) -> None:
        records: list[MoveRecord] = []
        controller.events.on_move.append(records.append)
        controller.new_game(human_config())

        assert controller.apply_move(sq("e1"), sq("e2"))
        assert controller.side_to_move == Color.BLACK
        assert len(controller.history) == 1
        record = records[0]
        assert record is controller.history.last
        assert record.color == Color.WHITE
        assert (record.from_sq, record.to_sq) == (sq("e1"), sq("e2"))
        assert record.piece == Piece(Color.WHITE, PieceType.KING)
        assert record.fen_before == KINGS_ONLY
        assert record.fen_after == controller.fen
        assert not record.check and not record.mate

    def test_illegal_move_changes_nothing(self, controller: GameController) -> None:
        controller.new_game(human_config())
        assert not controller.apply_move(sq("e1"), sq("e3"))
        assert len(controller.history) == 0
        assert controller.fen == KINGS_ONLY

    def test_requires_running_game(self, controller: GameController) -> None:
        with pytest.raises(GameInvariantError):
            controller.apply_move(sq("e1"), sq("e2"))

    def test_valid_sources(self, controller: GameController) -> None:
        controller.new_game(human_config())
        assert controller.valid_sources_to(sq("e2")) == [sq("e1")]
        assert controller.valid_sources_to(sq("e5")) == []

    def test_position_at(self, controller: GameController) -> None:
        controller.new_game(human_config())
        play(controller, "e1-e2", "e:-e9")
        assert controller.position_at(0).board[sq("e2")] == Piece(Color.WHITE, PieceType.KING)
        assert controller.position_at(1).side_to_move == Color.WHITE
        with pytest.raises(IndexError):
            controller.position_at(2)

    def test_check_flag(self, controller: GameController, engine: FakeEngine) -> None:
        engine.checkers = lambda fen: [sq("e2")] if " b " in fen else []
        controller.new_game(human_config())
        play(controller, "e1-e2")
        assert controller.in_check == Color.BLACK
        assert controller.history[0].check
        play(controller, "e:-e9")
        assert controller.in_check is None


class TestPromotion:
    FEN = "4k5/P9/55/55/55/55/55/55/55/4K5 w - - - 0 1"

    def test_explicit_choice(self, controller: GameController, engine: FakeEngine) -> None:
        engine.legal = plus(white="a9a10q a9a10s")
        controller.new_game(human_config(self.FEN))
        assert controller.apply_move(sq("a9"), sq("a:"), "s")
        assert controller.position.board[sq("a:")] == Piece(Color.WHITE, PieceType.PRINCESS)
        assert controller.history[0].piece == Piece(Color.WHITE, PieceType.PRINCESS)

    def test_choice_outside_offer(self, controller: GameController, engine: FakeEngine) -> None:
        engine.legal = plus(white="a9a10q a9a10s")
        controller.new_game(human_config(self.FEN))
        assert not controller.apply_move(sq("a9"), sq("a:"), "r")
        assert len(controller.history) == 0

    def test_default_choice_is_queen(self, controller: GameController, engine: FakeEngine) -> None:
        engine.legal = plus(white="a9a10s a9a10q")
        controller.new_game(human_config(self.FEN))
        assert controller.apply_move(sq("a9"), sq("a:"))
        assert controller.position.board[sq("a:")] == Piece(Color.WHITE, PieceType.QUEEN)

    def test_prompt_asked(self, engine: FakeEngine) -> None:
        offered: list[list[str]] = []

        def prompt(choices: list[str]) -> str:
            offered.append(choices)
            return "s"

        engine.legal = plus(white="a9a10q a9a10s")
        clocks, _ = manual_clocks()
        controller = GameController(engine, clocks=clocks, promotion_prompt=prompt)
        controller.new_game(human_config(self.FEN))
        assert controller.apply_move(sq("a9"), sq("a:"))
        assert offered == [["q", "s"]]
        assert controller.position.board[sq("a:")] == Piece(Color.WHITE, PieceType.PRINCESS)

    def test_letter_ignored_without_promotion(self, controller: GameController) -> None:
        controller.new_game(human_config())
        assert controller.apply_move(sq("e1"), sq("e2"), "q")
        assert controller.position.board[sq("e2")] == Piece(Color.WHITE, PieceType.KING)


class TestRoyalPromotion:
    def test_king_capture_crowns_prince(
        self, controller: GameController, engine: FakeEngine
    ) -> None:
        engine.legal = plus(white="e5e10")
        controller.new_game(human_config("4k1t3/55/55/55/55/4R5/55/55/55/K9 w - - - 0 1"))
        play(controller, "e5-e:")
        assert controller.history[0].captured == Piece(Color.BLACK, PieceType.KING)
        assert controller.position.board[sq("g:")] == Piece(Color.BLACK, PieceType.KING)
        assert controller.is_playing

    def test_princess_capture_ends_eligibility(
        self, controller: GameController, engine: FakeEngine
    ) -> None:
        engine.legal = plus(white="d5d10")
        controller.new_game(human_config("3sk5/55/55/55/55/3R6/55/55/55/K9 w - Ss - 0 1"))
        play(controller, "d5-d:")
        assert controller.position.princess == {Color.WHITE: True, Color.BLACK: False}
        assert " S " in controller.fen

    @pytest.mark.parametrize(("accept", "crowned"), [(True, True), (False, False)])
    def test_queen_capture_asks_human(
        self, engine: FakeEngine, accept: bool, crowned: bool
    ) -> None:
        asked: list[bool] = []

        def confirm() -> bool:
            asked.append(True)
            return accept

        engine.legal = plus(white="f5f10")
        clocks, _ = manual_clocks()
        controller = GameController(engine, clocks=clocks, coronation_prompt=confirm)
        controller.new_game(human_config("3skq4/55/55/55/55/5R4/55/55/55/K9 w - Ss - 0 1"))
        play(controller, "f5-f:")

        expected = PieceType.QUEEN if crowned else PieceType.PRINCESS
        assert asked == [True]
        assert controller.position.board[sq("d:")] == Piece(Color.BLACK, expected)
        assert not controller.position.princess[Color.BLACK]

    def test_engine_queen_capture_keeps_eligibility(
        self, controller: GameController, engine: FakeEngine
    ) -> None:
        engine.legal = plus(white="f5f10")
        controller.new_game(engine_config("3skq4/55/55/55/55/5R4/55/55/55/K9 w - Ss - 0 1"))
        play(controller, "f5-f:")
        # The engine answered with a king step; its princess is untouched
        assert controller.position.princess[Color.BLACK]
        assert controller.position.board[sq("d:")] == Piece(Color.BLACK, PieceType.PRINCESS)
        assert len(controller.history) == 2

    def test_engine_queen_marker(self, controller: GameController, engine: FakeEngine) -> None:
        engine.replies = [BestMove(Move(sq("e1"), sq("e2")), "Q")]
        controller.new_game(
            engine_config(
                "4k5/55/55/55/55/55/55/55/55/3SK5 w - S - 0 1", my_color=Color.BLACK
            )
        )
        assert controller.position.board[sq("d1")] == Piece(Color.WHITE, PieceType.QUEEN)
        assert not controller.position.princess[Color.WHITE]

    def test_engine_king_marker(self, controller: GameController, engine: FakeEngine) -> None:
        engine.legal = plus(white="g1g2")
        engine.replies = [BestMove(Move(sq("g1"), sq("g2")), "K")]
        controller.new_game(
            engine_config("4k5/55/55/55/55/55/55/55/55/6T3 w - - - 0 1", my_color=Color.BLACK)
        )
        assert controller.position.board[sq("g2")] == Piece(Color.WHITE, PieceType.KING)


class TestCastlingFilter:
    def test_attacked_path_removed(self, controller: GameController, engine: FakeEngine) -> None:
        engine.legal = only(white="e1c1 e1h1 e1f1", black="d10d1")
        controller.new_game(human_config(CASTLING_FEN))
        moves = controller.valid_moves
        assert not moves.is_legal(sq("e1"), sq("c1"))
        assert moves.is_legal(sq("e1"), sq("h1"))
        assert moves.is_legal(sq("e1"), sq("f1"))

    def test_king_in_check(self, controller: GameController, engine: FakeEngine) -> None:
        engine.legal = only(white="e1c1 e1h1 e1f1", black="e10e1")
        controller.new_game(human_config(CASTLING_FEN))
        assert controller.valid_moves.destinations[sq("e1")] == [sq("f1")]

    def test_revoked_right(self, controller: GameController, engine: FakeEngine) -> None:
        engine.legal = only(white="e1c1 e1h1", black="")
        controller.new_game(human_config(CASTLING_FEN.replace("KQkq", "Qkq")))
        assert not controller.valid_moves.is_legal(sq("e1"), sq("c1"))
        assert controller.valid_moves.is_legal(sq("e1"), sq("h1"))

    def test_castling_moves_rook(self, controller: GameController, engine: FakeEngine) -> None:
        engine.legal = only(white="e1h1", black="a9a8")
        controller.new_game(human_config(CASTLING_FEN))
        play(controller, "e1-h1")
        board = controller.position.board
        assert board[sq("h1")] == Piece(Color.WHITE, PieceType.KING)
        assert board[sq("g1")] == Piece(Color.WHITE, PieceType.ROOK)
        assert board[sq("j1")] is None


# ── End of game ──────────────────────────────────────────────────────────────


class TestEndOfGame:
    def test_mate_without_check(self, controller: GameController, engine: FakeEngine) -> None:
        engine.legal = lambda fen: only()(fen) if " b " in fen else plus()(fen)
        controller.new_game(human_config())
        play(controller, "e1-e2")
        assert controller.state == Win(Color.WHITE, WinReason.MATE)
        assert controller.history[0].mate
        assert controller.valid_moves.is_empty

    def test_result_follows_final_move(
        self, controller: GameController, engine: FakeEngine
    ) -> None:
        engine.legal = lambda fen: only()(fen) if " b " in fen else plus()(fen)
        controller.new_game(human_config())
        events: list[tuple[str, object]] = []
        controller.events.on_move.append(lambda record: events.append(("move", record.mate)))
        controller.events.on_state_changed.append(lambda state: events.append(("state", state)))

        play(controller, "e1-e2")

        assert events == [("move", True), ("state", Win(Color.WHITE, WinReason.MATE))]

    def test_stalemate(self, controller: GameController, engine: FakeEngine) -> None:
        engine.legal = lambda fen: plus()(fen) if fen == KINGS_ONLY else only()(fen)
        controller.new_game(human_config())
        play(controller, "e1-e2")
        assert controller.state == Draw(DrawReason.STALEMATE)
        assert not controller.history[0].mate

    def test_half_move_limit(self, controller: GameController) -> None:
        controller.new_game(human_config("4k5/55/55/55/55/55/55/55/55/4K5 w - - - 99 60"))
        play(controller, "e1-e2")
        assert controller.state == Draw(DrawReason.HALF_MOVE_LIMIT)
        assert len(controller.history) == 1
        assert controller.valid_moves.is_empty

    def test_no_moves_after_game_over(self, controller: GameController) -> None:
        controller.new_game(human_config())
        controller.resign()
        with pytest.raises(GameInvariantError):
            controller.apply_move(sq("e1"), sq("e2"))
        with pytest.raises(GameInvariantError):
            controller.get_hint()


class TestResign:
    def test_human_game_side_to_move_loses(self, controller: GameController) -> None:
        controller.new_game(human_config())
        play(controller, "e1-e2")
        controller.resign()
        assert controller.state == Win(Color.WHITE, WinReason.RESIGNATION)

    def test_engine_game_human_loses(self, controller: GameController) -> None:
        controller.new_game(engine_config(my_color=Color.BLACK))
        controller.resign()
        assert controller.state == Win(Color.WHITE, WinReason.RESIGNATION)

    def test_noop_when_not_playing(self, controller: GameController) -> None:
        states: list[GameState] = []
        controller.events.on_state_changed.append(states.append)
        controller.resign()
        assert controller.state == Paused()
        assert states == []

    def test_terminal_state_is_final(self, controller: GameController) -> None:
        controller.new_game(human_config())
        controller.resign()
        controller.resign()
        assert controller.state == Win(Color.BLACK, WinReason.RESIGNATION)


# ── Engine opponent ──────────────────────────────────────────────────────────


class TestEngineOpponent:
    def test_engine_moves_first(self, controller: GameController) -> None:
        controller.new_game(engine_config(my_color=Color.BLACK))
        assert len(controller.history) == 1
        assert controller.history[0].color == Color.WHITE
        assert controller.side_to_move == Color.BLACK
        assert controller.is_my_turn

    def test_engine_replies(self, controller: GameController, engine: FakeEngine) -> None:
        controller.new_game(engine_config())
        play(controller, "e1-e2")
        assert len(controller.history) == 2
        assert controller.history[1].color == Color.BLACK
        assert len(engine.searches) == 1
        assert engine.searches[0][1] is None  # clocks disabled

    def test_illegal_engine_move(self, controller: GameController, engine: FakeEngine) -> None:
        engine.replies = [BestMove(Move(sq("a1"), sq("a2")))]
        with pytest.raises(GameInvariantError):
            controller.new_game(engine_config(my_color=Color.BLACK))

    def test_hint_not_played(self, controller: GameController, engine: FakeEngine) -> None:
        controller.new_game(human_config())
        engine.replies = [BestMove(Move(sq("e1"), sq("f2")))]
        hint = controller.get_hint()
        assert (hint.from_sq, hint.to_sq) == (sq("e1"), sq("f2"))
        assert len(controller.history) == 0
        assert not controller.is_thinking

    def test_score_follows_analysis_switch(
        self, controller: GameController, engine: FakeEngine
    ) -> None:
        engine.score = Score(ScoreType.CP, 40)
        controller.new_game(engine_config())
        play(controller, "e1-e2")
        assert controller.score == Score(ScoreType.CP, 40)

        controller.resign()
        controller.new_game(engine_config(show_analysis=False))
        play(controller, "e1-e2")
        assert controller.score is None


class TestDrawOffer:
    def _after_three_rounds(
        self, controller: GameController, engine: FakeEngine, score: Score
    ) -> None:
        engine.score = score
        controller.new_game(engine_config())
        play(controller, "e1-e2", "e2-e3", "e3-e4")
        assert len(controller.history) == 6

    def test_accepted_when_engine_is_not_ahead(
        self, controller: GameController, engine: FakeEngine
    ) -> None:
        # +300 for white (to move) means the engine is behind
        self._after_three_rounds(controller, engine, Score(ScoreType.CP, 300))
        assert controller.can_offer_draw
        assert controller.offer_draw()
        assert controller.state == Draw(DrawReason.AGREEMENT)

    def test_declined_when_engine_is_ahead(
        self, controller: GameController, engine: FakeEngine
    ) -> None:
        self._after_three_rounds(controller, engine, Score(ScoreType.CP, -300))
        assert not controller.offer_draw()
        assert controller.is_playing

    def test_declined_on_mate_score(self, controller: GameController, engine: FakeEngine) -> None:
        self._after_three_rounds(controller, engine, Score(ScoreType.MATE, -4))
        assert not controller.offer_draw()
        assert controller.is_playing

    def test_too_early(self, controller: GameController, engine: FakeEngine) -> None:
        engine.score = Score(ScoreType.CP, 300)
        controller.new_game(engine_config())
        play(controller, "e1-e2")
        assert not controller.can_offer_draw
        assert not controller.offer_draw()

    def test_needs_engine_opponent(self, controller: GameController) -> None:
        controller.new_game(human_config())
        with pytest.raises(GameInvariantError):
            controller.offer_draw()


# ── Undo ─────────────────────────────────────────────────────────────────────

SIX_PLIES = ("e1-e2", "e:-e9", "e2-e3", "e9-e8", "e3-e4", "e8-e7")


class TestUndo:
    def test_single_last_own_move(self, controller: GameController) -> None:
        controller.new_game(human_config(undo=UndoPolicy.SINGLE))
        play(controller, *SIX_PLIES)
        expected_fen = controller.history[3].fen_after

        assert controller.can_undo(4)
        assert not controller.can_undo(2)  # not the latest own move
        assert not controller.can_undo(3)  # opponent's move
        assert controller.undo_move(4)

        assert len(controller.history) == 4
        assert controller.fen == expected_fen
        assert controller.undid_by == Color.WHITE
        assert controller.valid_moves.is_legal(sq("e3"), sq("e4"))

    def test_single_only_once(self, controller: GameController) -> None:
        controller.new_game(human_config(undo=UndoPolicy.SINGLE))
        play(controller, *SIX_PLIES)
        assert controller.undo_last_move()
        assert not controller.can_undo_last_move
        assert not controller.undo_move(2)

        play(controller, "e3-e4", "e8-e7")
        assert controller.undid_by is None
        assert controller.can_undo_last_move

    def test_full_any_own_move(self, controller: GameController) -> None:
        controller.new_game(human_config(undo=UndoPolicy.FULL))
        play(controller, *SIX_PLIES)
        expected_fen = controller.history[1].fen_after
        assert controller.undo_move(2)
        assert len(controller.history) == 2
        assert controller.fen == expected_fen
        # Nothing left before index 2
        assert not controller.can_undo(0)

    def test_full_repeated(self, controller: GameController) -> None:
        controller.new_game(human_config(undo=UndoPolicy.FULL))
        play(controller, *SIX_PLIES)
        assert controller.undo_move(4)
        assert controller.undo_move(2)
        assert len(controller.history) == 2

    def test_none_policy(self, controller: GameController) -> None:
        controller.new_game(human_config(undo=UndoPolicy.NONE))
        play(controller, *SIX_PLIES)
        assert not controller.can_undo(4)
        assert not controller.undo_move(4)
        assert len(controller.history) == 6

    def test_first_moves_cannot_be_undone(self, controller: GameController) -> None:
        controller.new_game(human_config(undo=UndoPolicy.FULL))
        play(controller, "e1-e2", "e:-e9")
        assert not controller.can_undo(0)
        assert not controller.undo_move(0)

    def test_not_after_game_over(self, controller: GameController) -> None:
        controller.new_game(human_config(undo=UndoPolicy.FULL))
        play(controller, *SIX_PLIES)
        controller.resign()
        assert not controller.can_undo(4)

    def test_against_engine(self, controller: GameController) -> None:
        controller.new_game(engine_config(undo=UndoPolicy.SINGLE))
        play(controller, "e1-e2", "e2-e3")
        expected_fen = controller.history[1].fen_after
        assert controller.undo_move(2)
        assert controller.fen == expected_fen
        assert controller.side_to_move == Color.WHITE
        assert len(controller.history) == 2

    def test_stops_clocks(
        self, controller: GameController, tickers: dict[Color, ManualTicker]
    ) -> None:
        controller.new_game(human_config(undo=UndoPolicy.SINGLE, total_time_ms=60_000))
        play(controller, *SIX_PLIES)
        assert tickers[Color.WHITE].running
        controller.undo_last_move()
        assert not tickers[Color.WHITE].running
        assert not tickers[Color.BLACK].running


# ── Clocks ───────────────────────────────────────────────────────────────────


class TestClocks:
    def test_set_at_start(
        self, controller: GameController, tickers: dict[Color, ManualTicker]
    ) -> None:
        controller.new_game(human_config(total_time_ms=1000, ply_increment_ms=500))
        clocks = controller.clocks
        assert clocks.used
        assert clocks[Color.WHITE].remaining_ms == 1000
        assert clocks[Color.BLACK].total_ms == 1000
        assert tickers[Color.WHITE].running
        assert not tickers[Color.BLACK].running

    def test_increment_and_switch(
        self, controller: GameController, tickers: dict[Color, ManualTicker]
    ) -> None:
        controller.new_game(human_config(total_time_ms=1000, ply_increment_ms=500))
        tickers[Color.WHITE].fire(250)
        play(controller, "e1-e2")
        white = controller.clocks[Color.WHITE]
        assert white.remaining_ms == 1250
        assert white.total_ms == 1500
        assert not white.is_active
        assert controller.clocks[Color.BLACK].is_active

    def test_disabled(self, controller: GameController) -> None:
        controller.new_game(human_config(total_time_ms=0))
        assert not controller.clocks.used
        assert controller.clocks[Color.WHITE].remaining_ms == 0
        play(controller, "e1-e2")
        assert not controller.clocks[Color.BLACK].is_active

    def test_timeout(
        self, controller: GameController, tickers: dict[Color, ManualTicker]
    ) -> None:
        controller.new_game(human_config(total_time_ms=1000, ply_increment_ms=0))
        play(controller, "e1-e2")
        tickers[Color.BLACK].fire(1000)
        assert controller.state == Win(Color.WHITE, WinReason.TIMEOUT)
        assert not controller.clocks[Color.WHITE].is_active
        assert controller.valid_moves.is_empty

    def test_engine_gets_clock_times(self, controller: GameController, engine: FakeEngine) -> None:
        controller.new_game(engine_config(total_time_ms=1000, ply_increment_ms=500))
        play(controller, "e1-e2")
        assert engine.searches[0][1] == ClockTimes(1500, 1000)

    def test_timeout_while_engine_thinks(
        self,
        controller: GameController,
        engine: FakeEngine,
        tickers: dict[Color, ManualTicker],
    ) -> None:
        engine.on_search = lambda: tickers[Color.BLACK].fire(5000)
        controller.new_game(engine_config(total_time_ms=1000, ply_increment_ms=0))
        assert controller.apply_move(sq("e1"), sq("e2"))
        assert controller.state == Win(Color.WHITE, WinReason.TIMEOUT)
        assert engine.stop_requests == 1
        assert len(controller.history) == 1

    def test_timeout_during_move_query(
        self,
        controller: GameController,
        engine: FakeEngine,
        tickers: dict[Color, ManualTicker],
    ) -> None:
        def legal(fen: str) -> ValidMoves:
            if side_of(fen) == Color.BLACK:
                tickers[Color.BLACK].fire(5000)
            return king_moves(fen)

        engine.legal = legal
        controller.new_game(human_config(total_time_ms=1000, ply_increment_ms=0))
        published: list[ValidMoves] = []
        controller.events.on_valid_moves.append(published.append)

        play(controller, "e1-e2")

        assert controller.state == Win(Color.WHITE, WinReason.TIMEOUT)
        assert controller.valid_moves.is_empty
        assert published == []
        assert len(controller.history) == 1
        assert not controller.history[0].mate
