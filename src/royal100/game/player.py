"""Concrete player implementations."""

from __future__ import annotations

from collections.abc import Callable

from royal100.core.enums import Color
from royal100.game.interfaces import IPlayer

PromotionPrompt = Callable[[list[str]], str]
CoronationPrompt = Callable[[], bool]


class HumanPlayer(IPlayer):
    """A human participant — moves come from the UI.

    Choices the rules hand to the player (which piece to promote to,
    whether to crown the princess) are delegated to optional prompt
    callbacks.  Without a prompt the player takes a queen and accepts
    the coronation.

    Args:
        color: Side the human plays.
        name: Display name.
        on_choose_promotion: ``(choices) -> letter``.
        on_confirm_coronation: ``() -> bool``.
    """

    __slots__ = ("_color", "_name", "_on_choose_promotion", "_on_confirm_coronation")

    def __init__(
        self,
        color: Color,
        name: str = "",
        on_choose_promotion: PromotionPrompt | None = None,
        on_confirm_coronation: CoronationPrompt | None = None,
    ) -> None:
        self._color = color
        self._name = name or f"Player ({color})"
        self._on_choose_promotion = on_choose_promotion
        self._on_confirm_coronation = on_confirm_coronation

    @property
    def color(self) -> Color:
        return self._color

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_human(self) -> bool:
        return True

    def choose_promotion(self, choices: list[str]) -> str:
        if self._on_choose_promotion is not None:
            choice = self._on_choose_promotion(list(choices))
            if choice in choices:
                return choice
            raise ValueError(f"Promotion choice {choice!r} not in {choices!r}")
        return "q" if "q" in choices else choices[0]

    def confirm_coronation(self) -> bool:
        if self._on_confirm_coronation is not None:
            return self._on_confirm_coronation()
        return True


class EnginePlayer(IPlayer):
    """The engine side. Its decisions arrive inside the best-move reply."""

    __slots__ = ("_color", "_name")

    def __init__(self, color: Color, name: str = "Royal 100 engine") -> None:
        self._color = color
        self._name = name

    @property
    def color(self) -> Color:
        return self._color

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_human(self) -> bool:
        return False

    def choose_promotion(self, choices: list[str]) -> str:
        return "q" if "q" in choices else choices[0]

    def confirm_coronation(self) -> bool:
        return False
