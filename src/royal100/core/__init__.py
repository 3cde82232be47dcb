"""Core domain layer — board, position and rule helpers for Royal 100.

Quick start::

    from royal100.core import Move, parse_square, position_from_fen, STARTING_FEN

    pos = position_from_fen(STARTING_FEN)
    pos.make_move(Move(parse_square("e2"), parse_square("e5")))
"""

from royal100.core.board import Board
from royal100.core.enums import CastlingRights, CastlingSide, Color, PieceType
from royal100.core.move import Move, ValidMoves
from royal100.core.notation import STARTING_FEN, position_from_fen, position_to_fen
from royal100.core.piece import Piece
from royal100.core.position import EnPassant, MoveOutcome, Position
from royal100.core.types import (
    Square,
    engine_square_name,
    file_of,
    make_square,
    parse_square,
    rank_of,
    square_name,
)

__all__ = [
    # Enums / flags
    "CastlingRights",
    "CastlingSide",
    "Color",
    "PieceType",
    # Types / helpers
    "Square",
    "engine_square_name",
    "file_of",
    "make_square",
    "parse_square",
    "rank_of",
    "square_name",
    # Domain objects
    "Board",
    "EnPassant",
    "Move",
    "MoveOutcome",
    "Piece",
    "Position",
    "ValidMoves",
    # Notation
    "STARTING_FEN",
    "position_from_fen",
    "position_to_fen",
]
