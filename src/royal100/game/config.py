"""New-game configuration."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from royal100.core.enums import Color
from royal100.engine.session import MAX_SEARCH_DEPTH, EngineOptions
from royal100.game.state import color_from_name

DEFAULT_DEPTH = 10


class OpponentKind(str, Enum):
    ENGINE = "Computer"
    HUMAN = "Human"


class UndoPolicy(str, Enum):
    NONE = "None"
    SINGLE = "Single"
    FULL = "Full"


@dataclass(slots=True)
class GameConfig:
    """Everything chosen before a game starts.  Durations are milliseconds.

    *depth* above :data:`~royal100.engine.session.MAX_SEARCH_DEPTH` means
    an unlimited search; *total_time_ms* of 0 disables the clocks.
    """

    opponent: OpponentKind = OpponentKind.ENGINE
    depth: int = DEFAULT_DEPTH
    my_color: Color = Color.WHITE
    fen: str | None = None
    total_time_ms: int = 600_000
    ply_increment_ms: int = 10_000
    ply_time_ms: int | None = None
    undo: UndoPolicy = UndoPolicy.SINGLE
    show_analysis: bool = True
    threads: int | None = None
    elo: int | None = None
    engine_command: Sequence[str] = field(default=("royal100-engine",))

    @property
    def vs_engine(self) -> bool:
        return self.opponent == OpponentKind.ENGINE

    def engine_options(self) -> EngineOptions:
        return EngineOptions(
            command=tuple(self.engine_command),
            threads=self.threads,
            elo=self.elo,
            depth=None if self.depth > MAX_SEARCH_DEPTH else self.depth,
            move_time_ms=self.ply_time_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "opponent": self.opponent.value,
            "depth": self.depth,
            "myColor": str(self.my_color),
            "fen": self.fen,
            "totalTime": self.total_time_ms,
            "plyIncrement": self.ply_increment_ms,
            "plyTime": self.ply_time_ms,
            "undo": self.undo.value,
            "showAnalysis": self.show_analysis,
            "threads": self.threads,
            "elo": self.elo,
            "engineCommand": list(self.engine_command),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameConfig:
        """Build a config from :meth:`to_dict` output (raises ``ValueError``)."""
        defaults = cls()
        return cls(
            opponent=OpponentKind(data.get("opponent", defaults.opponent.value)),
            depth=int(data.get("depth", defaults.depth)),
            my_color=color_from_name(data.get("myColor", "white")),
            fen=data.get("fen") or None,
            total_time_ms=int(data.get("totalTime", defaults.total_time_ms)),
            ply_increment_ms=int(data.get("plyIncrement", defaults.ply_increment_ms)),
            ply_time_ms=_optional_int(data.get("plyTime")),
            undo=UndoPolicy(data.get("undo", defaults.undo.value)),
            show_analysis=bool(data.get("showAnalysis", defaults.show_analysis)),
            threads=_optional_int(data.get("threads")),
            elo=_optional_int(data.get("elo")),
            engine_command=_command(data.get("engineCommand", defaults.engine_command)),
        )


def _optional_int(value: object) -> int | None:
    if value is None:
        return None
    return int(value)  # type: ignore[arg-type]


def _command(value: object) -> tuple[str, ...]:
    if (
        not isinstance(value, (list, tuple))
        or not value
        or not all(isinstance(part, str) for part in value)
    ):
        raise ValueError(f"Engine command must be a list of strings: {value!r}")
    return tuple(value)
