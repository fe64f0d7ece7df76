"""
Board index geometry.

A square is addressed by a single index 0..63, counted row by row starting at a8 (index 0)
and ending at h1 (index 63). That is the board as seen by the light player, and all movement
math happens in this orientation. Perspective only matters when handing squares to the renderer.
"""

from __future__ import annotations

from dataclasses import dataclass
from string import ascii_lowercase

from chessclient.core.exceptions import FormatError, SquareRangeError
from chessclient.core.shared_types import Color

BOARD_WIDTH = 8
NUM_SQUARES = BOARD_WIDTH * BOARD_WIDTH
FILE_NAMES = ascii_lowercase[:BOARD_WIDTH]


def _check_index(index: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int):
        raise SquareRangeError(f"Square index must be an integer, got {index!r}")
    if not 0 <= index < NUM_SQUARES:
        raise SquareRangeError(f"Square index {index} outside of 0..{NUM_SQUARES - 1}")


def square_to_algebraic(index: int) -> str:
    """0 -> 'a8', 7 -> 'h8', 56 -> 'a1', 63 -> 'h1'"""
    _check_index(index)
    file = FILE_NAMES[index % BOARD_WIDTH]
    rank = (NUM_SQUARES - 1 - index) // BOARD_WIDTH + 1
    return f"{file}{rank}"


def algebraic_to_square(coord: str) -> int:
    """Inverse of `square_to_algebraic()`"""
    if not isinstance(coord, str) or len(coord) != 2:
        raise FormatError(f"Cannot interpret {coord!r} as a square name.")

    file_char, rank_char = coord[0], coord[1]
    if file_char not in FILE_NAMES:
        raise FormatError(f"File of {coord!r} not in {FILE_NAMES[0]}-{FILE_NAMES[-1]}.")
    if not (rank_char.isdigit() and 1 <= int(rank_char) <= BOARD_WIDTH):
        raise FormatError(f"Rank of {coord!r} not in 1-{BOARD_WIDTH}.")

    file = FILE_NAMES.index(file_char)
    rank = int(rank_char)
    return (BOARD_WIDTH - rank) * BOARD_WIDTH + file


def to_display_index(index: int, perspective: Color) -> int:
    """
    The one place perspective gets applied: the dark player sees the board rotated by 180 degrees,
    so the n-th square drawn is 63 - n.
    """
    _check_index(index)
    return index if perspective == Color.LIGHT else NUM_SQUARES - 1 - index


def mirror_square(index: int) -> int:
    """Reflect a square across the middle of the board (a2 <-> a7). Same file, mirrored rank."""
    _check_index(index)
    row, file = divmod(index, BOARD_WIDTH)
    return (BOARD_WIDTH - 1 - row) * BOARD_WIDTH + file


@dataclass(frozen=True)
class Square:
    """
    File and rank, both 1-based (a1 = (1, 1)). Easier to reason about than raw indices
    when computing how far a piece travelled.
    """

    file: int
    rank: int

    @classmethod
    def from_index(cls, index: int) -> Square:
        _check_index(index)
        return cls(index % BOARD_WIDTH + 1, BOARD_WIDTH - index // BOARD_WIDTH)

    def to_index(self) -> int:
        if not self.is_within_bounds():
            raise SquareRangeError(f"{self} is not on the board")
        return (BOARD_WIDTH - self.rank) * BOARD_WIDTH + (self.file - 1)

    @classmethod
    def from_algebraic(cls, sq: str) -> Square:
        """Algebraic notation: 'a1' - 'h8' get converted to (1,1) - (8,8)"""
        return cls.from_index(algebraic_to_square(sq))

    def to_algebraic(self) -> str:
        return f"{FILE_NAMES[self.file - 1]}{self.rank}"

    def is_within_bounds(self) -> bool:
        return (1 <= self.file <= BOARD_WIDTH) and (1 <= self.rank <= BOARD_WIDTH)
