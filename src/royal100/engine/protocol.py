"""Engine text protocol: command builders and output-line classification.

The engine speaks a UCI-like dialect extended for the 10×10 board.  It
writes squares with decimal ranks (``a10``), which are parsed here into
board :data:`~royal100.core.types.Square` indices.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, IntEnum, auto

from royal100.core.move import Move, ValidMoves
from royal100.core.types import Square, parse_square

_SQ = r"[a-j](?:10|[1-9])"
_MOVE_RE = re.compile(rf"({_SQ})({_SQ})([a-z]?)(?![0-9])")
_BEST_MOVE_RE = re.compile(rf"\bbestmove\s+([KQ])?({_SQ})({_SQ})([a-z]?)\b")
_SCORE_RE = re.compile(r"\bscore (cp|mate) (-?\d+)\b")
_SQUARE_RE = re.compile(_SQ)

VALID_MOVES_PREFIX = "valid_moves:"
CHECKERS_PREFIX = "checkers:"
FEN_PREFIX = "fen:"


class LineKind(IntEnum):
    """Classification of one line of engine output."""

    READY = auto()
    BEST_MOVE = auto()
    SCORE = auto()
    FEN = auto()
    VALID_MOVES = auto()
    CHECKERS = auto()
    DATA = auto()  # anything else, kept as diagnostics


class ScoreType(str, Enum):
    CP = "cp"
    MATE = "mate"


@dataclass(frozen=True, slots=True)
class Score:
    """Evaluation from the side to move's point of view."""

    kind: ScoreType
    value: int


@dataclass(frozen=True, slots=True)
class BestMove:
    """Engine's chosen move plus an optional royal-promotion marker."""

    move: Move
    coronation: str | None = None  # "K" or "Q"

    @property
    def from_sq(self) -> Square:
        return self.move.from_sq

    @property
    def to_sq(self) -> Square:
        return self.move.to_sq

    @property
    def promotion(self) -> str | None:
        return self.move.promotion


@dataclass(frozen=True, slots=True)
class ClockTimes:
    """Remaining time of both sides, forwarded with ``go``."""

    white_ms: int
    black_ms: int


@dataclass(frozen=True, slots=True)
class EngineLine:
    """One classified output line; *payload* depends on *kind*."""

    kind: LineKind
    raw: str
    payload: object = None


# ── Parsing ──────────────────────────────────────────────────────────────────


def parse_moves(data: str) -> list[Move]:
    """All moves in *data*, separated by whitespace or written back to back."""
    return [
        Move(parse_square(origin), parse_square(dest), promo or None)
        for origin, dest, promo in _MOVE_RE.findall(data)
    ]


def parse_valid_moves(line: str) -> ValidMoves | None:
    idx = line.find(VALID_MOVES_PREFIX)
    if idx < 0:
        return None
    return ValidMoves.from_moves(parse_moves(line[idx + len(VALID_MOVES_PREFIX) :]))


def parse_checkers(line: str) -> list[Square] | None:
    idx = line.find(CHECKERS_PREFIX)
    if idx < 0:
        return None
    rest = line[idx + len(CHECKERS_PREFIX) :]
    return [parse_square(name) for name in _SQUARE_RE.findall(rest)]


def parse_fen_response(line: str) -> str | None:
    stripped = line.strip()
    if not stripped.lower().startswith(FEN_PREFIX):
        return None
    fen = stripped[len(FEN_PREFIX) :].strip()
    return fen or None


def parse_score(line: str) -> Score | None:
    if "info" not in line:
        return None
    match = _SCORE_RE.search(line)
    if match is None:
        return None
    return Score(ScoreType(match.group(1)), int(match.group(2)))


def parse_best_move(line: str) -> BestMove | None:
    match = _BEST_MOVE_RE.search(line)
    if match is None:
        return None
    coronation, origin, dest, promo = match.groups()
    move = Move(parse_square(origin), parse_square(dest), promo or None)
    return BestMove(move, coronation)


def classify_line(line: str) -> EngineLine:
    """Sort one output line into a :class:`LineKind`."""
    if "readyok" in line:
        return EngineLine(LineKind.READY, line)

    checkers = parse_checkers(line)
    if checkers is not None:
        return EngineLine(LineKind.CHECKERS, line, checkers)

    fen = parse_fen_response(line)
    if fen is not None:
        return EngineLine(LineKind.FEN, line, fen)

    valid_moves = parse_valid_moves(line)
    if valid_moves is not None:
        return EngineLine(LineKind.VALID_MOVES, line, valid_moves)

    score = parse_score(line)
    if score is not None:
        return EngineLine(LineKind.SCORE, line, score)

    if re.search(r"\bbestmove\b", line):
        # "bestmove (none)" still ends the search, just without a move.
        return EngineLine(LineKind.BEST_MOVE, line, parse_best_move(line))

    return EngineLine(LineKind.DATA, line)


# ── Commands ─────────────────────────────────────────────────────────────────


def setoption_command(name: str, value: object) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return f"setoption name {name} value {value}"


def position_command(fen: str, moves: Iterable[Move | str] = ()) -> str:
    move_list = " ".join(m.uci if isinstance(m, Move) else m for m in moves)
    if move_list:
        return f"position fen {fen} moves {move_list}"
    return f"position fen {fen}"


def go_command(
    depth: int | None = None,
    move_time_ms: int | None = None,
    clocks: ClockTimes | None = None,
) -> str:
    parts = ["go"]
    if depth:
        parts.append(f"depth {depth}")
    if move_time_ms:
        parts.append(f"movetime {move_time_ms}")
    if clocks is not None:
        parts.append(f"wtime {clocks.white_ms} btime {clocks.black_ms}")
    return " ".join(parts)
