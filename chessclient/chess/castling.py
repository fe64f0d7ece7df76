"""
Fixed castle geometries.

The client does not track castling rights. A king move counts as a castle purely by its
start and target square; the server decides whether the castle is actually allowed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Self

from chessclient.chess.square import algebraic_to_square
from chessclient.core.shared_types import Color


class CastlingDirection(Enum):
    """Values are the notation used for the castle."""

    KING_SIDE = "O-O"
    QUEEN_SIDE = "O-O-O"


@dataclass(frozen=True)
class CastlingSquares:
    """Square indices the king/rook start from and end up in by castling."""

    king_from: int
    king_to: int
    rook_from: int
    rook_to: int

    @classmethod
    def from_algebraic(cls, k_from: str, k_to: str, r_from: str, r_to: str) -> Self:
        """Convenience method: to make mapping shown below more readable"""
        return cls(
            algebraic_to_square(k_from),
            algebraic_to_square(k_to),
            algebraic_to_square(r_from),
            algebraic_to_square(r_to),
        )


CASTLING_RULES: dict[Color, dict[CastlingDirection, CastlingSquares]] = {
    Color.LIGHT: {
        CastlingDirection.KING_SIDE: CastlingSquares.from_algebraic("e1", "g1", "h1", "f1"),
        CastlingDirection.QUEEN_SIDE: CastlingSquares.from_algebraic("e1", "c1", "a1", "d1"),
    },
    Color.DARK: {
        CastlingDirection.KING_SIDE: CastlingSquares.from_algebraic("e8", "g8", "h8", "f8"),
        CastlingDirection.QUEEN_SIDE: CastlingSquares.from_algebraic("e8", "c8", "a8", "d8"),
    },
}


def castling_direction(start: int, target: int, color: Color) -> Optional[CastlingDirection]:
    """Which castle (if any) a king move from start to target corresponds to."""
    for direction, rule in CASTLING_RULES[color].items():
        if rule.king_from == start and rule.king_to == target:
            return direction
    return None
