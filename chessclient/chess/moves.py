"""
Geometry/Base movement rules

Key idea: Use strategy pattern to define one legality predicate per piece type.

A predicate only answers "can this kind of piece step from start to target?".
It never touches the board: whatever it needs to know about occupied squares it asks the
occupancy query supplied by the caller.

NOTE: Sliding pieces are not checked for blockers. Castling only looks at the king's start/target
squares and en passant does not know what the last move was. The server re-validates every move.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from chessclient.chess.castling import castling_direction
from chessclient.chess.pieces import Piece
from chessclient.chess.square import BOARD_WIDTH, Square
from chessclient.core.shared_types import Color, PieceType

OccupancyQuery = Callable[[int], Optional[Piece]]
Vector = tuple[int, int]

# light pawns move UP the board (towards rank 8), dark pawns move DOWN
PAWN_DIRECTION: dict[Color, int] = {Color.LIGHT: 1, Color.DARK: -1}
PAWN_START_SQUARES: dict[Color, range] = {
    Color.LIGHT: range(48, 56),
    Color.DARK: range(8, 16),
}
PROMOTION_RANK: dict[Color, int] = {Color.LIGHT: BOARD_WIDTH, Color.DARK: 1}

KNIGHT_DELTAS: set[Vector] = {
    (2, 1),
    (2, -1),
    (-2, 1),
    (-2, -1),
    (1, 2),
    (1, -2),
    (-1, 2),
    (-1, -2),
}


@dataclass(frozen=True)
class Move:
    """One drag-and-drop gesture. Built when the piece is dropped and discarded once sent."""

    start: int
    target: int
    piece: Piece
    is_capture: bool = False
    promotion: Optional[str] = None
    is_castle: bool = False
    is_en_passant: bool = False


def deltas(start: int, target: int) -> Vector:
    """(change in file, change in rank) when going from start to target"""
    from_square = Square.from_index(start)
    to_square = Square.from_index(target)
    return to_square.file - from_square.file, to_square.rank - from_square.rank


def holds_opponent(occupancy: OccupancyQuery, index: int, color: Color) -> bool:
    piece = occupancy(index)
    return piece is not None and piece.color != color


# --- MOVEMENT RULES ---
def is_en_passant(start: int, target: int, color: Color, occupancy: OccupancyQuery) -> bool:
    """
    A diagonal pawn step onto an empty square, next to an opposing pawn.

    The pawn being taken stands on the same rank as the capturing pawn, on the target's file.
    Whether that pawn just double-stepped is NOT known here.
    """
    d_file, d_rank = deltas(start, target)
    if abs(d_file) != 1 or d_rank != PAWN_DIRECTION[color]:
        return False
    if occupancy(target) is not None:
        return False

    beside = Square(Square.from_index(target).file, Square.from_index(start).rank)
    piece = occupancy(beside.to_index())
    return piece is not None and piece.type == PieceType.PAWN and piece.color != color


def valid_pawn_move(
    start: int, target: int, color: Color, occupancy: OccupancyQuery
) -> bool:
    """
    A pawn:
    - moves by a single square forward onto an empty square.
    - It can move by two in their first move (so when on their starting rank), if both squares are empty
    - takes diagonally (or en passant)
    """
    d_file, d_rank = deltas(start, target)
    forward = PAWN_DIRECTION[color]

    if d_file == 0:
        if d_rank == forward:
            return occupancy(target) is None
        if d_rank == 2 * forward and start in PAWN_START_SQUARES[color]:
            passed_square = (start + target) // 2
            return occupancy(passed_square) is None and occupancy(target) is None
        return False

    if abs(d_file) == 1 and d_rank == forward:
        return holds_opponent(occupancy, target, color) or is_en_passant(
            start, target, color, occupancy
        )
    return False


def valid_knight_move(
    start: int, target: int, color: Color, occupancy: OccupancyQuery
) -> bool:
    """Knights always move such that |delta_rank| + |delta_file| = 3"""
    return deltas(start, target) in KNIGHT_DELTAS


def valid_bishop_move(
    start: int, target: int, color: Color, occupancy: OccupancyQuery
) -> bool:
    """Bishops move diagonally: |delta_rank| = |delta_file|"""
    d_file, d_rank = deltas(start, target)
    return d_file != 0 and abs(d_file) == abs(d_rank)


def valid_rook_move(
    start: int, target: int, color: Color, occupancy: OccupancyQuery
) -> bool:
    """Rooks move either horizontally or vertically"""
    d_file, d_rank = deltas(start, target)
    return (d_file == 0) != (d_rank == 0)


def valid_queen_move(
    start: int, target: int, color: Color, occupancy: OccupancyQuery
) -> bool:
    """
    The Queen combines the rook moves (horizontal + vertical movements) and bishop moves (diagonal movement)
    """
    return valid_bishop_move(start, target, color, occupancy) or valid_rook_move(
        start, target, color, occupancy
    )


def valid_king_move(
    start: int, target: int, color: Color, occupancy: OccupancyQuery
) -> bool:
    """
    The king can move by a single square at the time.

    Castling is accepted on its start/target squares alone.
    """
    d_file, d_rank = deltas(start, target)
    if max(abs(d_file), abs(d_rank)) == 1:
        return True
    return castling_direction(start, target, color) is not None


# -- STRATEGY PATTERN: MOVEMENT RULES ---
RuleFn = Callable[[int, int, Color, OccupancyQuery], bool]
MOVEMENT_RULES: dict[PieceType, RuleFn] = {
    PieceType.PAWN: valid_pawn_move,
    PieceType.KNIGHT: valid_knight_move,
    PieceType.BISHOP: valid_bishop_move,
    PieceType.ROOK: valid_rook_move,
    PieceType.QUEEN: valid_queen_move,
    PieceType.KING: valid_king_move,
}


def is_valid_move(piece: Piece, start: int, target: int, occupancy: OccupancyQuery) -> bool:
    rule = MOVEMENT_RULES[piece.type]
    return rule(start, target, piece.color, occupancy)


# -- PAWN PROMOTION --
def is_promotion(target: int, color: Color) -> bool:
    """A pawn reaching the far rank (as seen from its own side) has to promote."""
    return Square.from_index(target).rank == PROMOTION_RANK[color]


def is_promotion_move(piece: Piece, target: int) -> bool:
    return piece.type == PieceType.PAWN and is_promotion(target, piece.color)
