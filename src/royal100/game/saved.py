"""Saved-game records (versioned JSON).

Layout of version 1::

    {
      "version": 1,
      "state": {"state": "Win", "side": "white", "reason": "Mate"},
      "undo": "Single",
      "clocks": {"white": {"remaining": 1000, "total": 600000}, "black": {...}},
      "config": {...},
      "moves": [{"color": "white", "from": "e2", "to": "e4", ...}, ...]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from royal100.core import rules
from royal100.core.enums import Color
from royal100.core.notation import STARTING_FEN, position_from_fen
from royal100.core.position import Position
from royal100.game.config import GameConfig, UndoPolicy
from royal100.game.state import GameState, MoveRecord, state_from_dict, state_to_dict

if TYPE_CHECKING:
    from royal100.game.controller import GameController

SAVED_GAME_VERSION = 1


class SavedGameError(ValueError):
    """Raised for saved games that cannot be read."""


@dataclass(frozen=True, slots=True)
class SavedGame:
    """A fully validated saved game, ready to be restored."""

    state: GameState
    undo: UndoPolicy
    clocks: dict[Color, tuple[int, int]]  # remaining, total
    config: GameConfig
    moves: list[MoveRecord]
    position: Position


def serialize_game(controller: GameController) -> dict[str, Any]:
    clocks = controller.clocks
    return {
        "version": SAVED_GAME_VERSION,
        "state": state_to_dict(controller.state),
        "undo": controller.config.undo.value,
        "clocks": {
            str(color): {
                "remaining": clocks[color].remaining_ms,
                "total": clocks[color].total_ms,
            }
            for color in Color
        },
        "config": controller.config.to_dict(),
        "moves": [record.to_dict() for record in controller.history],
    }


def dumps_game(controller: GameController) -> str:
    return json.dumps(serialize_game(controller), indent=2)


def _clock_entry(data: dict[str, Any]) -> tuple[int, int]:
    remaining = int(data["remaining"])
    total = int(data["total"])
    if remaining < 0 or total < 0:
        raise ValueError(f"Negative clock value: {data!r}")
    return remaining, total


def parse_saved_game(data: object) -> SavedGame:
    """Validate *data* (JSON text or decoded dict) completely.

    Nothing is applied here, so a rejected record never leaves a game
    half-restored.
    """
    if isinstance(data, (str, bytes, bytearray)):
        try:
            payload = json.loads(data)
        except ValueError as exc:
            raise SavedGameError(f"Saved game is not valid JSON: {exc}") from exc
    else:
        payload = data
    if not isinstance(payload, dict):
        raise SavedGameError("Saved game must be a JSON object")

    version = payload.get("version")
    if version != SAVED_GAME_VERSION:
        raise SavedGameError(f"Unsupported saved game version: {version!r}")

    try:
        state = state_from_dict(payload["state"])
        undo = UndoPolicy(payload["undo"])
        config = GameConfig.from_dict(payload["config"])
        moves = [MoveRecord.from_dict(item) for item in payload["moves"]]
        clocks = {color: _clock_entry(payload["clocks"][str(color)]) for color in Color}
        for record in moves:
            position_from_fen(record.fen_after)
        fen = moves[-1].fen_after if moves else (config.fen or STARTING_FEN)
        position = position_from_fen(fen)
        rules.validate_position(position)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise SavedGameError(f"Malformed saved game: {exc}") from exc

    return SavedGame(state, undo, clocks, config, moves, position)
