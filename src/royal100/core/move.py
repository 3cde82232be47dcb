"""Move value object and the legal-move table reported by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field

from royal100.core.types import Square, engine_square_name, square_name


@dataclass(frozen=True, slots=True)
class Move:
    """Immutable value object representing a single move."""

    from_sq: Square
    to_sq: Square
    promotion: str | None = None  # lowercase piece letter

    # ── Display ──────────────────────────────────────────────────────────

    def __str__(self) -> str:
        return f"{square_name(self.from_sq)}{square_name(self.to_sq)}{self.promotion or ''}"

    @property
    def uci(self) -> str:
        """Engine notation with decimal ranks, e.g. ``a9a10q``."""
        return (
            f"{engine_square_name(self.from_sq)}"
            f"{engine_square_name(self.to_sq)}"
            f"{self.promotion or ''}"
        )


@dataclass(slots=True)
class ValidMoves:
    """Legal destinations per origin plus promotion letters per transition."""

    destinations: dict[Square, list[Square]] = field(default_factory=dict)
    promotions: dict[tuple[Square, Square], list[str]] = field(default_factory=dict)

    @classmethod
    def from_moves(cls, moves: list[Move]) -> ValidMoves:
        result = cls()
        for move in moves:
            targets = result.destinations.setdefault(move.from_sq, [])
            if move.to_sq not in targets:
                targets.append(move.to_sq)
            if move.promotion:
                letters = result.promotions.setdefault((move.from_sq, move.to_sq), [])
                if move.promotion not in letters:
                    letters.append(move.promotion)
        return result

    @property
    def is_empty(self) -> bool:
        return not any(self.destinations.values())

    def is_legal(self, from_sq: Square, to_sq: Square) -> bool:
        return to_sq in self.destinations.get(from_sq, ())

    def promotion_choices(self, from_sq: Square, to_sq: Square) -> list[str]:
        return list(self.promotions.get((from_sq, to_sq), ()))

    def sources_to(self, to_sq: Square) -> list[Square]:
        """Origins that can reach *to_sq*."""
        return [src for src, targets in self.destinations.items() if to_sq in targets]

    def all_destinations(self) -> set[Square]:
        return {sq for targets in self.destinations.values() for sq in targets}

    def without(self, from_sq: Square, to_sq: Square) -> None:
        """Drop one transition (used to filter illegal castling)."""
        targets = self.destinations.get(from_sq)
        if targets and to_sq in targets:
            targets.remove(to_sq)
            if not targets:
                del self.destinations[from_sq]
        self.promotions.pop((from_sq, to_sq), None)
