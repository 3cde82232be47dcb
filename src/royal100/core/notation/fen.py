"""Extended FEN parsing and serialization.

Seven space-separated fields::

    <placement> <side> <castling> <princess> <en passant> <halfmove> <fullmove>

The placement has ten ranks of ten files.  The engine reads ``10`` as the
two digits ``1`` and ``0``, so every digit is counted on its own and a
full empty rank is written ``55``.  ``10`` is still accepted on input.
The princess field lists which sides may still crown their princess
(``S``/``s``).  The en-passant field is the first skipped square followed
by the landing square of the pawn, e.g. ``a3a5``.
"""

from __future__ import annotations

import re

from royal100.core.board import Board
from royal100.core.enums import CastlingRights, Color
from royal100.core.piece import Piece
from royal100.core.position import EnPassant, Position
from royal100.core.types import (
    BOARD_SIZE,
    file_of,
    make_square,
    parse_square,
    square_name,
    squares_between,
)

STARTING_FEN = (
    "rnbskqtbnr/pppppppppp/55/55/55/55/55/55/PPPPPPPPPP/RNBSKQTBNR w KQkq Ss - 0 1"
)

_CASTLING_CHARS: dict[str, CastlingRights] = {
    "K": CastlingRights.WHITE_KINGSIDE,
    "Q": CastlingRights.WHITE_QUEENSIDE,
    "k": CastlingRights.BLACK_KINGSIDE,
    "q": CastlingRights.BLACK_QUEENSIDE,
}

_SQUARE = r"[a-j](?:10|[1-9:])"
_EN_PASSANT_RE = re.compile(rf"^({_SQUARE})({_SQUARE})$")


def _parse_placement(placement: str, fen: str) -> Board:
    ranks = placement.split("/")
    if len(ranks) != BOARD_SIZE:
        raise ValueError(f"Invalid FEN board (must contain 10 ranks): {fen!r}")
    board = Board()
    for rank_idx, rank_text in enumerate(ranks):
        rank = BOARD_SIZE - 1 - rank_idx
        file = 0
        i = 0
        while i < len(rank_text):
            ch = rank_text[i]
            if ch.isdigit():
                if rank_text.startswith("10", i):
                    step, i = 10, i + 2
                else:
                    step, i = int(ch), i + 1
                if step == 0:
                    raise ValueError(f"Invalid FEN digit {ch!r}: {fen!r}")
                file += step
            else:
                if file >= BOARD_SIZE:
                    raise ValueError(f"Invalid FEN rank width: {fen!r}")
                board[make_square(file, rank)] = Piece.from_char(ch)
                file += 1
                i += 1
            if file > BOARD_SIZE:
                raise ValueError(f"Invalid FEN rank width: {fen!r}")
        if file != BOARD_SIZE:
            raise ValueError(f"Invalid FEN rank width: {fen!r}")
    return board


def _parse_en_passant(field: str) -> EnPassant | None:
    if field == "-":
        return None
    match = _EN_PASSANT_RE.match(field)
    if match is None:
        raise ValueError(f"Invalid FEN en-passant field: {field!r}")
    first = parse_square(match.group(1))
    target = parse_square(match.group(2))
    if first == target or file_of(first) != file_of(target):
        raise ValueError(f"Invalid FEN en-passant field: {field!r}")
    return EnPassant((first, *squares_between(first, target)), target)


def position_from_fen(fen: str) -> Position:
    """Parse an extended FEN string into a :class:`Position`."""
    parts = fen.split()
    if len(parts) != 7:
        raise ValueError(f"Invalid FEN (need 7 fields): {fen!r}")

    placement, side_part, castling_part, princess_part, ep_part, half_part, full_part = parts

    # 1. Piece placement
    board = _parse_placement(placement, fen)

    # 2. Side to move
    if side_part == "w":
        side = Color.WHITE
    elif side_part == "b":
        side = Color.BLACK
    else:
        raise ValueError(f"Invalid FEN side-to-move field: {side_part!r}")

    # 3. Castling
    castling = CastlingRights.NONE
    if castling_part != "-":
        seen: set[str] = set()
        for ch in castling_part:
            right = _CASTLING_CHARS.get(ch)
            if right is None or ch in seen:
                raise ValueError(f"Invalid FEN castling field: {castling_part!r}")
            seen.add(ch)
            castling |= right

    # 4. Princess eligibility
    princess = {Color.WHITE: False, Color.BLACK: False}
    if princess_part != "-":
        for ch in princess_part:
            if ch == "S" and not princess[Color.WHITE]:
                princess[Color.WHITE] = True
            elif ch == "s" and not princess[Color.BLACK]:
                princess[Color.BLACK] = True
            else:
                raise ValueError(f"Invalid FEN princess field: {princess_part!r}")

    # 5. En passant
    ep = _parse_en_passant(ep_part)

    # 6–7. Clocks
    try:
        halfmove = int(half_part)
        fullmove = int(full_part)
    except ValueError:
        raise ValueError(f"Invalid FEN move counters: {fen!r}") from None
    if halfmove < 0:
        raise ValueError(f"Invalid FEN halfmove clock: {half_part!r}")
    if fullmove < 1:
        raise ValueError(f"Invalid FEN fullmove number: {full_part!r}")

    return Position(board, side, castling, princess, ep, halfmove, fullmove)


def _empty_run(count: int) -> str:
    # Single digits only; a run of ten becomes "55".
    if count == BOARD_SIZE:
        return "55"
    return str(count)


def board_to_fen(board: Board) -> str:
    """Placement field for *board*."""
    rows: list[str] = []
    for rank in range(BOARD_SIZE - 1, -1, -1):
        empty = 0
        row = ""
        for file in range(BOARD_SIZE):
            piece = board[make_square(file, rank)]
            if piece is None:
                empty += 1
            else:
                if empty:
                    row += _empty_run(empty)
                    empty = 0
                row += str(piece)
        if empty:
            row += _empty_run(empty)
        rows.append(row)
    return "/".join(rows)


def position_to_fen(pos: Position) -> str:
    """Serialise a :class:`Position` to extended FEN."""
    castling_str = "".join(
        ch for ch, right in _CASTLING_CHARS.items() if pos.castling & right
    ) or "-"

    princess_str = (
        ("S" if pos.princess.get(Color.WHITE) else "")
        + ("s" if pos.princess.get(Color.BLACK) else "")
    ) or "-"

    ep = pos.en_passant
    ep_str = square_name(ep.squares[0]) + square_name(ep.target) if ep is not None else "-"

    return " ".join(
        (
            board_to_fen(pos.board),
            pos.side_to_move.fen_char,
            castling_str,
            princess_str,
            ep_str,
            str(pos.halfmove_clock),
            str(pos.fullmove_number),
        )
    )
