"""Game state union and move history."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAlias

from royal100.core.enums import Color
from royal100.core.piece import Piece
from royal100.core.types import Square, parse_square, square_name


class WinReason(str, Enum):
    MATE = "Mate"
    TIMEOUT = "Timeout"
    RESIGNATION = "Resign"


class DrawReason(str, Enum):
    AGREEMENT = "Agreement"
    STALEMATE = "Stalemate"
    HALF_MOVE_LIMIT = "HalfMoves"


# ── GameState ────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Paused:
    """No game in progress (initial state)."""


@dataclass(frozen=True, slots=True)
class Playing:
    """A game is running."""


@dataclass(frozen=True, slots=True)
class Draw:
    reason: DrawReason


@dataclass(frozen=True, slots=True)
class Win:
    side: Color
    reason: WinReason


GameState: TypeAlias = Paused | Playing | Draw | Win


def is_terminal(state: GameState) -> bool:
    return isinstance(state, (Draw, Win))


def state_to_dict(state: GameState) -> dict[str, Any]:
    if isinstance(state, Draw):
        return {"state": "Draw", "reason": state.reason.value}
    if isinstance(state, Win):
        return {"state": "Win", "side": str(state.side), "reason": state.reason.value}
    return {"state": type(state).__name__}


def state_from_dict(data: dict[str, Any]) -> GameState:
    """Inverse of :func:`state_to_dict` (raises ``ValueError``)."""
    kind = data.get("state")
    if kind == "Paused":
        return Paused()
    if kind == "Playing":
        return Playing()
    if kind == "Draw":
        return Draw(DrawReason(data.get("reason")))
    if kind == "Win":
        return Win(color_from_name(data.get("side")), WinReason(data.get("reason")))
    raise ValueError(f"Unknown game state: {kind!r}")


def color_from_name(name: object) -> Color:
    if name == "white":
        return Color.WHITE
    if name == "black":
        return Color.BLACK
    raise ValueError(f"Invalid color: {name!r}")


# ── Move history ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class MoveRecord:
    """A single entry in the move history."""

    color: Color
    from_sq: Square
    to_sq: Square
    piece: Piece  # piece on the destination after the move
    fen_before: str
    fen_after: str
    captured: Piece | None = None
    check: bool = False
    mate: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "color": str(self.color),
            "from": square_name(self.from_sq),
            "to": square_name(self.to_sq),
            "piece": self.piece.to_dict(),
            "fenBefore": self.fen_before,
            "fen": self.fen_after,
            "check": self.check,
            "mate": self.mate,
        }
        if self.captured is not None:
            data["captured"] = self.captured.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MoveRecord:
        captured = data.get("captured")
        return cls(
            color=color_from_name(data["color"]),
            from_sq=parse_square(data["from"]),
            to_sq=parse_square(data["to"]),
            piece=Piece.from_dict(data["piece"]),
            fen_before=str(data.get("fenBefore", "")),
            fen_after=str(data["fen"]),
            captured=Piece.from_dict(captured) if captured else None,
            check=bool(data.get("check", False)),
            mate=bool(data.get("mate", False)),
        )


class MoveHistory:
    """Append-only move list that can only be cut back, never reordered."""

    __slots__ = ("_records",)

    def __init__(self, records: list[MoveRecord] | None = None) -> None:
        self._records: list[MoveRecord] = list(records or ())

    def append(self, record: MoveRecord) -> None:
        self._records.append(record)

    def truncate(self, length: int) -> None:
        if length < 0:
            raise ValueError(f"Negative history length: {length}")
        del self._records[length:]

    def clear(self) -> None:
        self._records.clear()

    @property
    def last(self) -> MoveRecord | None:
        return self._records[-1] if self._records else None

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> MoveRecord:
        return self._records[index]

    def __iter__(self) -> Iterator[MoveRecord]:
        return iter(self._records)
