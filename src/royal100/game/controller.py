"""GameController — the state machine of a Royal 100 game.

Coordinates: Position, MoveHistory, Clocks, players and the engine session.
Emits events via simple callbacks so the UI / tests can subscribe.

Operations are synchronous and must be serialized by the caller (the Qt
bridge runs them on one worker thread).  The only call that may arrive
from elsewhere is a clock expiry, which only changes the game state.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from royal100.core import rules
from royal100.core.enums import CastlingSide, Color, PieceType
from royal100.core.move import Move, ValidMoves
from royal100.core.notation import STARTING_FEN, position_from_fen, position_to_fen
from royal100.core.position import MoveOutcome, Position
from royal100.core.types import Square, square_name
from royal100.engine.protocol import BestMove, ClockTimes, Score, ScoreType
from royal100.engine.session import EngineSession, IEngineSession
from royal100.game.clock import Clocks
from royal100.game.config import GameConfig, UndoPolicy
from royal100.game.interfaces import IPlayer
from royal100.game.player import (
    CoronationPrompt,
    EnginePlayer,
    HumanPlayer,
    PromotionPrompt,
)
from royal100.game.saved import parse_saved_game, serialize_game
from royal100.game.state import (
    Draw,
    DrawReason,
    GameState,
    MoveHistory,
    MoveRecord,
    Paused,
    Playing,
    Win,
    WinReason,
    is_terminal,
)

_LOGGER = logging.getLogger(__name__)


class GameInvariantError(RuntimeError):
    """Raised when an operation is used in the wrong state or bookkeeping breaks."""


# ── Event definitions ────────────────────────────────────────────────────────

MoveCallback = Callable[[MoveRecord], None]
StateCallback = Callable[[GameState], None]
ValidMovesCallback = Callable[[ValidMoves], None]


@dataclass
class GameEvents:
    """Observable callbacks. Multiple handlers per event."""

    on_move: list[MoveCallback] = field(default_factory=list)
    on_state_changed: list[StateCallback] = field(default_factory=list)
    on_valid_moves: list[ValidMovesCallback] = field(default_factory=list)


# ── Controller ───────────────────────────────────────────────────────────────


class GameController:
    """Owns the position, history, clocks and game state of one game."""

    __slots__ = (
        "_engine",
        "_clocks",
        "_config",
        "_players",
        "_position",
        "_history",
        "_state",
        "_valid_moves",
        "_undid_by",
        "_score",
        "_check",
        "_thinking",
        "_lock",
        "_promotion_prompt",
        "_coronation_prompt",
        "events",
    )

    def __init__(
        self,
        engine: IEngineSession | None = None,
        *,
        clocks: Clocks | None = None,
        promotion_prompt: PromotionPrompt | None = None,
        coronation_prompt: CoronationPrompt | None = None,
    ) -> None:
        self._engine: IEngineSession = engine if engine is not None else EngineSession()
        self._clocks = clocks if clocks is not None else Clocks.create()
        self._config = GameConfig()
        self._players: dict[Color, IPlayer] = {}
        self._position = position_from_fen(STARTING_FEN)
        self._history = MoveHistory()
        self._state: GameState = Paused()
        self._valid_moves = ValidMoves()
        self._undid_by: Color | None = None
        self._score: Score | None = None
        self._check: Color | None = None
        self._thinking = False
        self._lock = threading.RLock()
        self._promotion_prompt = promotion_prompt
        self._coronation_prompt = coronation_prompt
        self.events = GameEvents()

        self._engine.events.on_score.append(self._on_score)
        for color in Color:
            self._clocks[color].on_expired.append(
                lambda color=color: self._on_clock_expired(color)
            )

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return isinstance(self._state, Playing)

    @property
    def position(self) -> Position:
        return self._position

    @property
    def fen(self) -> str:
        return position_to_fen(self._position)

    @property
    def side_to_move(self) -> Color:
        return self._position.side_to_move

    @property
    def history(self) -> MoveHistory:
        return self._history

    @property
    def valid_moves(self) -> ValidMoves:
        return self._valid_moves

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def clocks(self) -> Clocks:
        return self._clocks

    @property
    def engine(self) -> IEngineSession:
        return self._engine

    @property
    def score(self) -> Score | None:
        """Latest engine evaluation, hidden when analysis is switched off."""
        return self._score if self._config.show_analysis else None

    @property
    def in_check(self) -> Color | None:
        return self._check

    @property
    def is_thinking(self) -> bool:
        return self._thinking

    @property
    def undid_by(self) -> Color | None:
        return self._undid_by

    @property
    def is_my_turn(self) -> bool:
        return self.is_playing and not self._is_engine_turn()

    def player(self, color: Color) -> IPlayer | None:
        return self._players.get(color)

    def valid_sources_to(self, to_sq: Square) -> list[Square]:
        """Pieces of the side to move that may land on *to_sq*."""
        return self._valid_moves.sources_to(to_sq)

    # ── Game lifecycle ───────────────────────────────────────────────────

    def new_game(self, config: GameConfig | None = None) -> None:
        """Start a game; raises ``ValueError`` for an unusable starting FEN."""
        if self.is_playing:
            raise GameInvariantError("Cannot start a new game while one is running")
        config = config if config is not None else GameConfig()
        fen = config.fen or STARTING_FEN
        position = position_from_fen(fen)
        rules.validate_position(position)

        self._assign_config(config)
        self._history.clear()
        total = config.total_time_ms if self._clocks.used else 0
        for color in Color:
            self._clocks[color].set(total, total)
        self._position = position
        _LOGGER.info("New game (%s, %s)", config.opponent.value, fen)

        self._set_state(Playing(), reset=True)
        self._refresh_valid_moves()
        self._start_clock(self.side_to_move)
        self._play_engine_turns()

    def restore_game(self, saved: object) -> None:
        """Resume a game from :meth:`serialize` output (dict or JSON text).

        Raises :class:`~royal100.game.saved.SavedGameError` for malformed
        input, leaving the current game untouched.
        """
        if self.is_playing:
            raise GameInvariantError("Cannot restore a game while one is running")
        record = parse_saved_game(saved)

        config = record.config
        config.undo = record.undo
        self._assign_config(config)
        self._history = MoveHistory(record.moves)
        for color in Color:
            remaining, total = record.clocks[color]
            self._clocks[color].set(remaining, total)
        self._position = record.position
        _LOGGER.info("Restored game with %d moves", len(self._history))

        self._set_state(record.state, reset=True)
        if self.is_playing:
            self._refresh_valid_moves()
            self._start_clock(self.side_to_move)
            self._play_engine_turns()

    def serialize(self) -> dict[str, object]:
        return serialize_game(self)

    def shutdown(self) -> None:
        """Stop the clocks and the engine process."""
        self._clocks.stop_all()
        self._engine.quit()

    # ── Moves ────────────────────────────────────────────────────────────

    def apply_move(self, origin: Square, destination: Square, promotion: str | None = None) -> bool:
        """Play a move for the side to move.

        Returns False, changing nothing, when the move is not legal or the
        side to move belongs to the engine.
        """
        self._require_playing()
        if self._is_engine_turn():
            return False
        if not self._apply(origin, destination, promotion):
            return False
        self._play_engine_turns()
        return True

    def get_hint(self) -> BestMove:
        """Engine's suggestion for the side to move (not played)."""
        self._require_playing()
        return self._search(self.fen)

    def stop_thinking(self) -> None:
        if self._thinking:
            self._engine.stop_search()

    def position_at(self, index: int) -> Position:
        """Position after history entry *index* (history review, any state)."""
        if not 0 <= index < len(self._history):
            raise IndexError(f"No move at index {index}")
        return position_from_fen(self._history[index].fen_after)

    # ── Undo ─────────────────────────────────────────────────────────────

    def can_undo(self, index: int) -> bool:
        if not self.is_playing:
            return False
        if not 0 <= index < len(self._history):
            return False
        policy = self._config.undo
        if policy == UndoPolicy.NONE:
            return False
        side = self.side_to_move
        # Against the engine only on one's own turn
        if self._config.vs_engine and side != self._config.my_color:
            return False
        # Two earlier records are needed to rebuild the position
        if index < 2:
            return False
        if self._history[index].color != side:
            return False
        if policy == UndoPolicy.SINGLE:
            if self._undid_by == side:
                return False
            if index < len(self._history) - 2:
                return False
        return True

    @property
    def can_undo_last_move(self) -> bool:
        return self.can_undo(len(self._history) - 2)

    def undo_move(self, index: int) -> bool:
        """Take back own move *index* and everything after it."""
        if not self.can_undo(index):
            return False
        if index - 2 < 0 or index - 1 >= len(self._history):
            raise GameInvariantError(f"Missing history before move {index}")
        undone = self._history[index]
        previous = self._history[index - 1]

        self._history.truncate(index)
        self._clocks.stop_all()
        self._position = position_from_fen(previous.fen_after)
        self._undid_by = undone.color
        self._check = undone.color if previous.check else None
        _LOGGER.info("%s took back moves from #%d", undone.color, index)
        self._refresh_valid_moves()
        return True

    def undo_last_move(self) -> bool:
        return self.undo_move(len(self._history) - 2)

    # ── Resignation & draws ──────────────────────────────────────────────

    def resign(self) -> None:
        if not self.is_playing:
            return
        loser = self._config.my_color if self._config.vs_engine else self.side_to_move
        self._set_state(Win(loser.opposite, WinReason.RESIGNATION))

    @property
    def can_offer_draw(self) -> bool:
        return (
            self._config.vs_engine
            and self.is_playing
            and len(self._history) >= rules.DRAW_MIN_MOVES
            and self._score is not None
        )

    def offer_draw(self) -> bool:
        """Ask the engine for a draw; accepted only when it is not ahead."""
        if not self._config.vs_engine:
            raise GameInvariantError("Draw offers need an engine opponent")
        if not self.can_offer_draw:
            return False

        # Fresh evaluation of the current position
        self._search(self.fen)
        score = self._score
        if score is None or score.kind == ScoreType.MATE:
            return False

        engine_color = self._config.my_color.opposite
        engine_cp = score.value if self.side_to_move == engine_color else -score.value
        advantage = rules.winning_chances(engine_cp) * 100
        if advantage >= rules.DRAW_MAX_ENGINE_ADVANTAGE:
            _LOGGER.info("Draw offer declined (engine advantage %.1f%%)", advantage)
            return False
        self._set_state(Draw(DrawReason.AGREEMENT))
        return True

    # ── Internal: move application ───────────────────────────────────────

    def _apply(
        self,
        origin: Square,
        destination: Square,
        promotion: str | None = None,
        coronation: str | None = None,
    ) -> bool:
        if not self._valid_moves.is_legal(origin, destination):
            return False
        position = self._position
        mover = position.side_to_move
        choices = self._valid_moves.promotion_choices(origin, destination)
        if not choices:
            promotion = None
        elif promotion is None:
            promotion = self._players[mover].choose_promotion(choices)
        elif promotion not in choices:
            return False

        fen_before = position_to_fen(position)
        outcome = position.make_move(Move(origin, destination, promotion))
        if self._undid_by == mover:
            self._undid_by = None
        self._royal_promotions(mover, outcome, coronation)
        fen_after = position_to_fen(position)
        _LOGGER.debug("%s played %s%s", mover, square_name(origin), square_name(destination))

        if self._clocks.used:
            clock = self._clocks[mover]
            clock.stop()
            clock.add(self._config.ply_increment_ms)
            self._start_clock(mover.opposite)

        self._refresh_valid_moves()
        self._check = self._detect_check(fen_after)
        verdict = self._end_verdict()

        record = MoveRecord(
            color=mover,
            from_sq=origin,
            to_sq=destination,
            piece=outcome.piece,
            fen_before=fen_before,
            fen_after=fen_after,
            captured=outcome.captured,
            check=self._check is not None,
            mate=isinstance(verdict, Win) and verdict.reason == WinReason.MATE,
        )
        self._history.append(record)
        for cb in self.events.on_move:
            cb(record)
        # The final move is published before the result it produced.
        if verdict is not None:
            self._set_state(verdict)
        return True

    def _royal_promotions(self, mover: Color, outcome: MoveOutcome, coronation: str | None) -> None:
        position = self._position
        board = position.board
        captured = outcome.captured
        if captured is not None:
            victim = captured.color
            if captured.piece_type == PieceType.KING:
                prince = board.find(victim, PieceType.PRINCE)
                if prince is not None:
                    position.promote(prince, PieceType.KING)
                    _LOGGER.info("%s prince crowned king", victim)
            elif captured.piece_type == PieceType.PRINCESS:
                position.princess[victim] = False
            elif captured.piece_type == PieceType.QUEEN and position.princess.get(victim):
                player = self._players[victim]
                # The engine crowns its own princess through its move marker.
                if player.is_human:
                    position.princess[victim] = False
                    princess = board.find(victim, PieceType.PRINCESS)
                    if princess is not None and player.confirm_coronation():
                        position.promote(princess, PieceType.QUEEN)
                        _LOGGER.info("%s princess crowned queen", victim)

        if coronation == "Q":
            princess = board.find(mover, PieceType.PRINCESS)
            if princess is not None and position.princess.get(mover):
                position.promote(princess, PieceType.QUEEN)
                _LOGGER.info("%s princess crowned queen", mover)
            position.princess[mover] = False
        elif coronation == "K" and not board.has_piece(mover, PieceType.KING):
            prince = board.find(mover, PieceType.PRINCE)
            if prince is not None:
                position.promote(prince, PieceType.KING)

    # ── Internal: engine interaction ─────────────────────────────────────

    def _is_engine_turn(self) -> bool:
        return self._config.vs_engine and self.side_to_move != self._config.my_color

    def _play_engine_turns(self) -> None:
        while self.is_playing and self._is_engine_turn():
            best = self._search(self.fen)
            if not self.is_playing:
                return
            if not self._apply(best.from_sq, best.to_sq, best.promotion, best.coronation):
                raise GameInvariantError(f"Engine chose an illegal move: {best.move}")

    def _search(self, fen: str) -> BestMove:
        self._thinking = True
        try:
            return self._engine.query_best_move(fen, self._clock_times())
        finally:
            self._thinking = False

    def _clock_times(self) -> ClockTimes | None:
        return self._clocks.times() if self._clocks.used else None

    def _refresh_valid_moves(self) -> None:
        position = self._position
        moves = self._engine.query_legal_moves(position_to_fen(position))
        self._filter_castling(position, moves)
        with self._lock:
            # A clock may have ended the game while the engine was queried.
            if not self.is_playing:
                return
            self._valid_moves = moves
            for cb in self.events.on_valid_moves:
                cb(moves)

    def _filter_castling(self, position: Position, moves: ValidMoves) -> None:
        color = position.side_to_move
        opponent_moves: ValidMoves | None = None
        for side in CastlingSide:
            geo = rules.CASTLING[(color, side)]
            if not moves.is_legal(geo.king_from, geo.king_to):
                continue
            if not rules.is_castling_move(position.board[geo.king_from], geo.king_from, geo.king_to):
                continue
            if opponent_moves is None:
                flipped = position.with_side_to_move(color.opposite)
                opponent_moves = self._engine.query_legal_moves(position_to_fen(flipped))
            if not rules.can_castle(position, color, side, opponent_moves):
                moves.without(geo.king_from, geo.king_to)

    def _detect_check(self, fen: str) -> Color | None:
        board = self._position.board
        for sq in self._engine.query_checking_pieces(fen):
            piece = board[sq]
            if piece is not None:
                return piece.color.opposite
        return None

    def _end_verdict(self) -> GameState | None:
        """Terminal state reached by the current position, if any."""
        if not self.is_playing:
            return None
        position = self._position
        if position.halfmove_clock >= rules.DRAW_HALF_MOVES:
            return Draw(DrawReason.HALF_MOVE_LIMIT)
        if not self._valid_moves.is_empty:
            return None
        # The side to move is stuck: it lost if the opponent can still move.
        opponent = position.side_to_move.opposite
        flipped = position.with_side_to_move(opponent)
        opponent_moves = self._engine.query_legal_moves(position_to_fen(flipped))
        if opponent_moves.is_empty:
            return Draw(DrawReason.STALEMATE)
        return Win(opponent, WinReason.MATE)

    def _on_score(self, score: Score) -> None:
        self._score = score

    # ── Internal: state & clocks ─────────────────────────────────────────

    def _assign_config(self, config: GameConfig) -> None:
        self._engine.start(config.engine_options())
        self._config = config
        self._players = self._create_players(config)
        self._clocks.stop_all()
        self._clocks.used = config.total_time_ms > 0
        self._undid_by = None
        self._score = None
        self._check = None

    def _create_players(self, config: GameConfig) -> dict[Color, IPlayer]:
        players: dict[Color, IPlayer] = {}
        for color in Color:
            if config.vs_engine and color != config.my_color:
                players[color] = EnginePlayer(color)
            else:
                players[color] = HumanPlayer(
                    color,
                    on_choose_promotion=self._promotion_prompt,
                    on_confirm_coronation=self._coronation_prompt,
                )
        return players

    def _start_clock(self, color: Color) -> None:
        if self._clocks.used and self.is_playing:
            self._clocks[color].resume()

    def _require_playing(self) -> None:
        if not self.is_playing:
            raise GameInvariantError(f"Operation needs a running game, state is {self._state}")

    def _set_state(self, state: GameState, *, reset: bool = False) -> None:
        with self._lock:
            if not reset and is_terminal(self._state) and is_terminal(state):
                # Terminal states are final; a late second verdict is dropped.
                _LOGGER.debug("Ignoring %s after %s", state, self._state)
                return
            if isinstance(self._state, Playing) and isinstance(state, Paused):
                raise GameInvariantError("A running game cannot be paused")
            self._state = state
            if not isinstance(state, Playing):
                self._clocks.stop_all()
                self._valid_moves = ValidMoves()
        _LOGGER.info("Game state: %s", state)
        for cb in self.events.on_state_changed:
            cb(state)

    def _on_clock_expired(self, color: Color) -> None:
        if not self._clocks.used or not self.is_playing:
            return
        _LOGGER.info("%s ran out of time", color)
        self._set_state(Win(color.opposite, WinReason.TIMEOUT))
        self.stop_thinking()
