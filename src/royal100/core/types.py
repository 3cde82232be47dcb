"""Square type alias and coordinate helpers for the 10×10 board.

Board layout (Little-Endian Rank-File mapping):
    a1=0,  b1=1,  ..., j1=9
    a2=10, b2=11, ..., j2=19
    ...
    a10=90, ...,      j10=99

Two spellings exist for a square name.  The board key writes the tenth
rank as the single glyph ``:`` (``e:``) so every key is two characters
long; the engine protocol writes it in decimal (``e10``).
"""

from __future__ import annotations

from typing import TypeAlias

Square: TypeAlias = int  # 0–99

BOARD_SIZE = 10
FILES = "abcdefghij"
_RANK_GLYPHS = "123456789:"


def file_of(sq: Square) -> int:
    """File index 0–9 (a–j)."""
    return sq % BOARD_SIZE


def rank_of(sq: Square) -> int:
    """Rank index 0–9 (1–10)."""
    return sq // BOARD_SIZE


def make_square(file: int, rank: int) -> Square:
    """Create square from file (0–9) and rank (0–9)."""
    return rank * BOARD_SIZE + file


def is_valid_square(sq: int) -> bool:
    """Check whether integer is a valid square index."""
    return 0 <= sq < BOARD_SIZE * BOARD_SIZE


def square_name(sq: Square) -> str:
    """Board key, e.g. 4 → 'e1', 94 → 'e:'."""
    return FILES[file_of(sq)] + _RANK_GLYPHS[rank_of(sq)]


def engine_square_name(sq: Square) -> str:
    """Engine wire name, e.g. 94 → 'e10'."""
    return FILES[file_of(sq)] + str(rank_of(sq) + 1)


def parse_square(name: str) -> Square:
    """Parse a board key or an engine square name, e.g. 'e:' or 'e10' → 94."""
    if len(name) not in (2, 3) or name[0] not in FILES:
        raise ValueError(f"Invalid square name: {name!r}")
    file = FILES.index(name[0])
    rank_text = name[1:]
    if rank_text == "10" or rank_text == ":":
        return make_square(file, 9)
    if len(rank_text) == 1 and rank_text in _RANK_GLYPHS[:9]:
        return make_square(file, int(rank_text) - 1)
    raise ValueError(f"Invalid square name: {name!r}")


def squares_between(a: Square, b: Square) -> list[Square]:
    """Squares strictly between *a* and *b* on a shared file, nearest to *a* first."""
    if file_of(a) != file_of(b):
        return []
    step = BOARD_SIZE if b > a else -BOARD_SIZE
    return list(range(a + step, b, step))
