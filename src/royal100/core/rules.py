"""Rule helpers: en passant, castling, position sanity, draw-offer odds.

Everything here is a pure function of its arguments; the game layer
decides when to call them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from royal100.core.enums import CastlingRights, CastlingSide, Color, PieceType
from royal100.core.types import Square, file_of, make_square, rank_of, squares_between

if TYPE_CHECKING:
    from royal100.core.board import Board
    from royal100.core.move import ValidMoves
    from royal100.core.piece import Piece
    from royal100.core.position import Position

# Product policy: 100 quiet half-moves draw the game; a draw offer needs
# five moves on the board and an engine edge below 20%.
DRAW_HALF_MOVES = 100
DRAW_MIN_MOVES = 5
DRAW_MAX_ENGINE_ADVANTAGE = 20.0

_HOME_RANK = {Color.WHITE: 0, Color.BLACK: 9}
_KING_FILE = 4


@dataclass(frozen=True, slots=True)
class CastlingGeometry:
    """Squares involved in one castling direction."""

    king_from: Square
    king_to: Square
    rook_from: Square
    rook_to: Square
    king_path: tuple[Square, ...]


def _geometry(color: Color, side: CastlingSide) -> CastlingGeometry:
    rank = _HOME_RANK[color]

    def sq(file: int) -> Square:
        return make_square(file, rank)

    if side == CastlingSide.KING:
        return CastlingGeometry(
            king_from=sq(_KING_FILE),
            king_to=sq(2),
            rook_from=sq(0),
            rook_to=sq(3),
            king_path=(sq(4), sq(3), sq(2)),
        )
    return CastlingGeometry(
        king_from=sq(_KING_FILE),
        king_to=sq(7),
        rook_from=sq(9),
        rook_to=sq(6),
        king_path=(sq(4), sq(5), sq(6), sq(7)),
    )


CASTLING: dict[tuple[Color, CastlingSide], CastlingGeometry] = {
    (color, side): _geometry(color, side) for color in Color for side in CastlingSide
}

_ROOK_HOMES: dict[Square, CastlingRights] = {
    geo.rook_from: CastlingRights.of(color, side)
    for (color, side), geo in CASTLING.items()
}


# ── En passant ───────────────────────────────────────────────────────────────


def en_passant_squares(piece: Piece | None, origin: Square, destination: Square) -> list[Square]:
    """Squares a pawn skipped when jumping two or more ranks forward.

    ``a2→a4`` gives ``[a3]``, ``a2→a5`` gives ``[a3, a4]``; non-pawns and
    single steps give an empty list.
    """
    if piece is None or piece.piece_type != PieceType.PAWN:
        return []
    if file_of(origin) != file_of(destination):
        return []
    advance = rank_of(destination) - rank_of(origin)
    if piece.color == Color.BLACK:
        advance = -advance
    if advance < 2:
        return []
    return squares_between(origin, destination)


# ── Castling ─────────────────────────────────────────────────────────────────


def castling_side_for(piece: Piece | None, origin: Square, destination: Square) -> CastlingSide | None:
    """Castling direction when *piece* is a king jumping from home to a castling square."""
    if piece is None or piece.piece_type != PieceType.KING:
        return None
    for side in CastlingSide:
        geo = CASTLING[(piece.color, side)]
        if origin == geo.king_from and destination == geo.king_to:
            return side
    return None


def is_castling_move(piece: Piece | None, origin: Square, destination: Square) -> bool:
    return castling_side_for(piece, origin, destination) is not None


def revoked_rights(piece: Piece, origin: Square, destination: Square) -> CastlingRights:
    """Rights that a move of *piece* from *origin* to *destination* removes forever."""
    revoked = CastlingRights.NONE
    if piece.piece_type == PieceType.KING and origin == CASTLING[(piece.color, CastlingSide.KING)].king_from:
        revoked |= CastlingRights.both(piece.color)
    for sq in (origin, destination):
        revoked |= _ROOK_HOMES.get(sq, CastlingRights.NONE)
    return revoked


def castling_path_is_safe(
    color: Color, side: CastlingSide, opponent_destinations: ValidMoves
) -> bool:
    """No square of the king's transit path is reachable by the opponent."""
    attacked = opponent_destinations.all_destinations()
    return not any(sq in attacked for sq in CASTLING[(color, side)].king_path)


def castling_pieces_at_home(color: Color, side: CastlingSide, board: Board) -> bool:
    geo = CASTLING[(color, side)]
    king = board[geo.king_from]
    rook = board[geo.rook_from]
    return (
        king is not None
        and king.color == color
        and king.piece_type == PieceType.KING
        and rook is not None
        and rook.color == color
        and rook.piece_type == PieceType.ROOK
    )


def can_castle(
    position: Position,
    color: Color,
    side: CastlingSide,
    opponent_destinations: ValidMoves,
) -> bool:
    """Unmoved king and rook, both at home, and a safe king path."""
    if not position.castling & CastlingRights.of(color, side):
        return False
    if not castling_pieces_at_home(color, side, position.board):
        return False
    return castling_path_is_safe(color, side, opponent_destinations)


# ── Position sanity ──────────────────────────────────────────────────────────


def validate_position(position: Position) -> None:
    """Reject placements that cannot start a game (raises ``ValueError``)."""
    colors = [piece.color for _, piece in position.board.occupied()]
    if len(colors) < 2:
        raise ValueError("Position needs at least two pieces")
    if Color.WHITE not in colors or Color.BLACK not in colors:
        raise ValueError("Position needs pieces of both colors")


# ── Draw offers ──────────────────────────────────────────────────────────────


def winning_chances(cp: int) -> float:
    """Map a centipawn score to a win-probability estimate in ``(-1, 1)``."""
    return 2 / (1 + math.exp(-0.004 * cp)) - 1
