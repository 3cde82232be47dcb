"""Notation package: extended FEN parsing and serialization."""

from royal100.core.notation.fen import (
    STARTING_FEN,
    board_to_fen,
    position_from_fen,
    position_to_fen,
)

__all__ = [
    "STARTING_FEN",
    "board_to_fen",
    "position_from_fen",
    "position_to_fen",
]
