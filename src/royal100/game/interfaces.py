"""Abstract interfaces for the game layer.

Follows Dependency Inversion: the GameController depends on these ABCs
(and on :class:`~royal100.engine.session.IEngineSession`), not on the
concrete clock, player or engine implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from royal100.core.enums import Color


class IPlayer(ABC):
    """A game participant (human or engine)."""

    @property
    @abstractmethod
    def color(self) -> Color: ...

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def is_human(self) -> bool: ...

    @abstractmethod
    def choose_promotion(self, choices: list[str]) -> str:
        """Pick one of the promotion letters in *choices*."""

    @abstractmethod
    def confirm_coronation(self) -> bool:
        """Should the princess be crowned queen now that the queen is lost?"""


class IClock(ABC):
    """A single side's countdown."""

    @abstractmethod
    def set(self, ms: int, total_ms: int | None = None) -> None:
        """Set the remaining (and optionally total) time."""

    @abstractmethod
    def add(self, ms: int) -> None:
        """Credit an increment."""

    @abstractmethod
    def resume(self) -> None:
        """Start counting down."""

    @abstractmethod
    def stop(self) -> None:
        """Pause the countdown."""

    @property
    @abstractmethod
    def remaining_ms(self) -> int: ...

    @property
    @abstractmethod
    def is_active(self) -> bool: ...
