"""Core enumerations and flags for the Royal 100 domain."""

from __future__ import annotations

from enum import Enum, IntEnum, IntFlag, auto


class Color(IntEnum):
    """Side color."""

    WHITE = 0
    BLACK = 1

    @property
    def opposite(self) -> Color:
        return Color(1 - self.value)

    @property
    def fen_char(self) -> str:
        return "w" if self == Color.WHITE else "b"

    def __str__(self) -> str:
        return self.name.lower()


class PieceType(IntEnum):
    """Piece kinds, including the variant's two royal extras."""

    PAWN = 1
    KNIGHT = 2
    BISHOP = 3
    ROOK = 4
    QUEEN = 5
    KING = 6
    PRINCE = 7  # secondary king-equivalent
    PRINCESS = 8  # reserve queen-equivalent


class CastlingSide(str, Enum):
    """Castling direction as written in the FEN castling field."""

    KING = "K"
    QUEEN = "Q"


class CastlingRights(IntFlag):
    """Bitmask for castling availability."""

    NONE = 0
    WHITE_KINGSIDE = auto()
    WHITE_QUEENSIDE = auto()
    BLACK_KINGSIDE = auto()
    BLACK_QUEENSIDE = auto()

    WHITE_BOTH = WHITE_KINGSIDE | WHITE_QUEENSIDE
    BLACK_BOTH = BLACK_KINGSIDE | BLACK_QUEENSIDE
    ALL = WHITE_BOTH | BLACK_BOTH

    @classmethod
    def of(cls, color: Color, side: CastlingSide) -> CastlingRights:
        if color == Color.WHITE:
            return cls.WHITE_KINGSIDE if side == CastlingSide.KING else cls.WHITE_QUEENSIDE
        return cls.BLACK_KINGSIDE if side == CastlingSide.KING else cls.BLACK_QUEENSIDE

    @classmethod
    def both(cls, color: Color) -> CastlingRights:
        return cls.WHITE_BOTH if color == Color.WHITE else cls.BLACK_BOTH
