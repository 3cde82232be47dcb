"""Piece value object."""

from __future__ import annotations

from dataclasses import dataclass

from royal100.core.enums import Color, PieceType

_TYPE_CHARS: dict[PieceType, str] = {
    PieceType.PAWN: "p",
    PieceType.KNIGHT: "n",
    PieceType.BISHOP: "b",
    PieceType.ROOK: "r",
    PieceType.QUEEN: "q",
    PieceType.KING: "k",
    PieceType.PRINCE: "t",
    PieceType.PRINCESS: "s",
}

_CHAR_TYPES: dict[str, PieceType] = {v: k for k, v in _TYPE_CHARS.items()}


def piece_type_from_char(char: str) -> PieceType:
    """Piece kind for a letter of either case, e.g. 's' → PRINCESS."""
    try:
        return _CHAR_TYPES[char.lower()]
    except KeyError:
        raise ValueError(f"Invalid piece character: {char!r}") from None


def piece_type_char(piece_type: PieceType) -> str:
    """Lowercase letter for a piece kind (also the promotion letter)."""
    return _TYPE_CHARS[piece_type]


@dataclass(frozen=True, slots=True)
class Piece:
    """Immutable value object representing a piece."""

    color: Color
    piece_type: PieceType

    def __str__(self) -> str:
        """FEN character (uppercase = white, lowercase = black)."""
        char = _TYPE_CHARS[self.piece_type]
        return char.upper() if self.color == Color.WHITE else char

    @classmethod
    def from_char(cls, char: str) -> Piece:
        """Create piece from FEN character, e.g. 'T' → white prince."""
        if len(char) != 1:
            raise ValueError(f"Invalid piece character: {char!r}")
        color = Color.WHITE if char.isupper() else Color.BLACK
        return cls(color, piece_type_from_char(char))

    @property
    def is_royal(self) -> bool:
        return self.piece_type in (PieceType.KING, PieceType.PRINCE)

    def to_dict(self) -> dict[str, str]:
        return {"color": str(self.color), "type": _TYPE_CHARS[self.piece_type]}

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> Piece:
        try:
            color = Color[data["color"].upper()]
        except KeyError:
            raise ValueError(f"Invalid piece payload: {data!r}") from None
        return cls(color, piece_type_from_char(data["type"]))
