"""Position — complete game state (board + metadata) with move application."""

from __future__ import annotations

from dataclasses import dataclass

from royal100.core import rules
from royal100.core.board import Board
from royal100.core.enums import CastlingRights, CastlingSide, Color, PieceType
from royal100.core.move import Move
from royal100.core.piece import Piece, piece_type_from_char
from royal100.core.types import Square


@dataclass(frozen=True, slots=True)
class EnPassant:
    """Squares a pawn just skipped and the square it landed on."""

    squares: tuple[Square, ...]
    target: Square


@dataclass(frozen=True, slots=True)
class MoveOutcome:
    """What :meth:`Position.make_move` did to the board."""

    piece: Piece  # piece standing on the destination afterwards
    captured: Piece | None
    captured_sq: Square | None
    castling: CastlingSide | None


class Position:
    """Full position: board, side to move, castling, princess flags, en passant, clocks."""

    __slots__ = (
        "board",
        "side_to_move",
        "castling",
        "princess",
        "en_passant",
        "halfmove_clock",
        "fullmove_number",
    )

    def __init__(
        self,
        board: Board | None = None,
        side_to_move: Color = Color.WHITE,
        castling: CastlingRights = CastlingRights.ALL,
        princess: dict[Color, bool] | None = None,
        en_passant: EnPassant | None = None,
        halfmove_clock: int = 0,
        fullmove_number: int = 1,
    ) -> None:
        self.board = board if board is not None else Board.initial()
        self.side_to_move = side_to_move
        self.castling = castling
        self.princess: dict[Color, bool] = (
            dict(princess) if princess is not None else {Color.WHITE: True, Color.BLACK: True}
        )
        self.en_passant = en_passant
        self.halfmove_clock = halfmove_clock
        self.fullmove_number = fullmove_number

    # ── Core move operation ──────────────────────────────────────────────

    def make_move(self, move: Move) -> MoveOutcome:
        """Apply *move*: captures (incl. en passant), promotion, castling, counters."""
        piece = self.board[move.from_sq]
        if piece is None:
            raise ValueError(f"No piece on {move.from_sq}")

        captured = self.board[move.to_sq]
        captured_sq: Square | None = move.to_sq if captured is not None else None

        # En passant: the captured pawn sits on the remembered landing square
        ep = self.en_passant
        if (
            captured is None
            and ep is not None
            and piece.piece_type == PieceType.PAWN
            and move.to_sq in ep.squares
        ):
            captured = self.board[ep.target]
            if captured is not None:
                captured_sq = ep.target
                self.board[ep.target] = None

        self.board[move.from_sq] = None
        placed = piece
        if move.promotion and piece.piece_type == PieceType.PAWN:
            placed = Piece(piece.color, piece_type_from_char(move.promotion))
        self.board[move.to_sq] = placed

        # Rook travels with the king
        side = rules.castling_side_for(piece, move.from_sq, move.to_sq)
        if side is not None:
            geo = rules.CASTLING[(piece.color, side)]
            rook = self.board[geo.rook_from]
            if rook is not None and rook.piece_type == PieceType.ROOK:
                self.board[geo.rook_from] = None
                self.board[geo.rook_to] = rook

        self.castling &= ~rules.revoked_rights(piece, move.from_sq, move.to_sq)

        skipped = rules.en_passant_squares(piece, move.from_sq, move.to_sq)
        self.en_passant = EnPassant(tuple(skipped), move.to_sq) if skipped else None

        if piece.piece_type == PieceType.PAWN or captured is not None:
            self.halfmove_clock = 0
        else:
            self.halfmove_clock += 1

        if self.side_to_move == Color.BLACK:
            self.fullmove_number += 1
        self.side_to_move = self.side_to_move.opposite

        return MoveOutcome(
            piece=placed,
            captured=captured,
            captured_sq=captured_sq,
            castling=side,
        )

    def promote(self, sq: Square, piece_type: PieceType) -> None:
        """Replace the piece on *sq* with *piece_type* of the same color."""
        piece = self.board[sq]
        if piece is None:
            raise ValueError(f"No piece on {sq}")
        self.board[sq] = Piece(piece.color, piece_type)

    # ── Utilities ────────────────────────────────────────────────────────

    def copy(self) -> Position:
        return Position(
            board=self.board.copy(),
            side_to_move=self.side_to_move,
            castling=self.castling,
            princess=self.princess,
            en_passant=self.en_passant,
            halfmove_clock=self.halfmove_clock,
            fullmove_number=self.fullmove_number,
        )

    def with_side_to_move(self, color: Color) -> Position:
        """Copy with *color* to move (used to ask for the opponent's moves)."""
        pos = self.copy()
        pos.side_to_move = color
        return pos

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Position):
            return NotImplemented
        return (
            self.board == other.board
            and self.side_to_move == other.side_to_move
            and self.castling == other.castling
            and self.princess == other.princess
            and self.en_passant == other.en_passant
            and self.halfmove_clock == other.halfmove_clock
            and self.fullmove_number == other.fullmove_number
        )

    def __repr__(self) -> str:
        from royal100.core.notation import position_to_fen

        return f"Position({position_to_fen(self)!r})"
