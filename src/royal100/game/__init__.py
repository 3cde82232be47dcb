"""Game management layer — controller, players, clocks, state machine.

Quick start::

    from royal100.game import GameConfig, GameController, OpponentKind

    ctrl = GameController()
    ctrl.new_game(GameConfig(opponent=OpponentKind.HUMAN, total_time_ms=300_000))
"""

from royal100.game.clock import Clock, Clocks, ThreadTicker, Ticker
from royal100.game.config import GameConfig, OpponentKind, UndoPolicy
from royal100.game.controller import GameController, GameEvents, GameInvariantError
from royal100.game.interfaces import IClock, IPlayer
from royal100.game.player import EnginePlayer, HumanPlayer
from royal100.game.saved import SavedGame, SavedGameError, parse_saved_game
from royal100.game.state import (
    Draw,
    DrawReason,
    GameState,
    MoveHistory,
    MoveRecord,
    Paused,
    Playing,
    Win,
    WinReason,
)

__all__ = [
    # Interfaces
    "IClock",
    "IPlayer",
    "Ticker",
    # Configuration
    "GameConfig",
    "OpponentKind",
    "UndoPolicy",
    # State
    "Draw",
    "DrawReason",
    "GameState",
    "MoveHistory",
    "MoveRecord",
    "Paused",
    "Playing",
    "Win",
    "WinReason",
    # Concrete
    "Clock",
    "Clocks",
    "EnginePlayer",
    "GameController",
    "GameEvents",
    "GameInvariantError",
    "HumanPlayer",
    "SavedGame",
    "SavedGameError",
    "ThreadTicker",
    "parse_saved_game",
]
