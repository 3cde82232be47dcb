"""Board - piece placement on a 10x10 board."""

from __future__ import annotations

from collections.abc import Iterator

from royal100.core.enums import Color, PieceType
from royal100.core.piece import Piece
from royal100.core.types import BOARD_SIZE, FILES, Square, make_square

_SQUARE_COUNT = BOARD_SIZE * BOARD_SIZE

BACK_RANK = (
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.PRINCESS,
    PieceType.KING,
    PieceType.QUEEN,
    PieceType.PRINCE,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
)


class Board:
    """Mutable 100-square board."""

    __slots__ = ("_squares",)

    def __init__(self) -> None:
        self._squares: list[Piece | None] = [None] * _SQUARE_COUNT

    # -- Element access -----------------------------------------------------

    def __getitem__(self, sq: Square) -> Piece | None:
        return self._squares[sq]

    def __setitem__(self, sq: Square, piece: Piece | None) -> None:
        self._squares[sq] = piece

    def is_empty(self, sq: Square) -> bool:
        return self._squares[sq] is None

    def occupied(self) -> Iterator[tuple[Square, Piece]]:
        """Yield ``(square, piece)`` for every occupied square."""
        for sq, piece in enumerate(self._squares):
            if piece is not None:
                yield sq, piece

    # -- Query helpers ------------------------------------------------------

    def pieces(self, color: Color, piece_type: PieceType) -> list[Square]:
        """Squares occupied by *color*'s *piece_type*."""
        target = Piece(color, piece_type)
        return [sq for sq, piece in enumerate(self._squares) if piece == target]

    def find(self, color: Color, piece_type: PieceType) -> Square | None:
        """First square holding *color*'s *piece_type*, or None."""
        squares = self.pieces(color, piece_type)
        return squares[0] if squares else None

    def has_piece(self, color: Color, piece_type: PieceType) -> bool:
        return self.find(color, piece_type) is not None

    def all_pieces(self, color: Color) -> list[Square]:
        """All squares occupied by *color*."""
        return [sq for sq, piece in self.occupied() if piece.color == color]

    def king_square(self, color: Color) -> Square:
        """Return the king square for *color*."""
        sq = self.find(color, PieceType.KING)
        if sq is None:
            raise ValueError(f"No {color.name} king on board")
        return sq

    # -- Mutation / copying -------------------------------------------------

    def copy(self) -> Board:
        b = Board()
        b._squares = self._squares.copy()
        return b

    def clear(self) -> None:
        self._squares = [None] * _SQUARE_COUNT

    # -- Factory ------------------------------------------------------------

    @classmethod
    def initial(cls) -> Board:
        """Standard Royal 100 starting position."""
        b = cls()
        for f in range(BOARD_SIZE):
            b[make_square(f, 1)] = Piece(Color.WHITE, PieceType.PAWN)
            b[make_square(f, 8)] = Piece(Color.BLACK, PieceType.PAWN)
        for f, pt in enumerate(BACK_RANK):
            b[make_square(f, 0)] = Piece(Color.WHITE, pt)
            b[make_square(f, 9)] = Piece(Color.BLACK, pt)
        return b

    # -- Dunder helpers -----------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._squares == other._squares

    def __repr__(self) -> str:
        rows: list[str] = []
        for rank in range(BOARD_SIZE - 1, -1, -1):
            row = []
            for file in range(BOARD_SIZE):
                p = self[make_square(file, rank)]
                row.append(str(p) if p else ".")
            rows.append(f"{rank + 1:>2} {' '.join(row)}")
        rows.append("   " + " ".join(FILES))
        return "\n".join(rows)
