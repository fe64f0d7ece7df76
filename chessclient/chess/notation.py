"""
Standard Algebraic(-like) Notation for the moves we send to the server.

[piece letter][x if capture][target square][=promotion piece]

ex)
* "Nf3": knight to f3
* "e4": pawn to e4 (pawns have no letter)
* "dxe5": pawn on the d-file takes on e5
* "e8=Q": pawn reaches e8 and becomes a queen
* "O-O" / "O-O-O": castling king side / queen side
"""

from typing import Optional

from chessclient.chess.castling import castling_direction
from chessclient.chess.moves import Move
from chessclient.chess.pieces import PROMOTION_LETTERS
from chessclient.chess.square import square_to_algebraic
from chessclient.core.exceptions import FormatError
from chessclient.core.shared_types import Color, PieceType


def encode_move(
    piece_letter: str,
    is_capture: bool,
    target_coord: str,
    promotion: Optional[str] = None,
) -> str:
    notation = f"{piece_letter}{'x' if is_capture else ''}{target_coord}"
    if promotion is None:
        return notation

    if promotion not in PROMOTION_LETTERS:
        raise FormatError(
            f"Cannot promote to {promotion!r}. Pick one of {','.join(PROMOTION_LETTERS)}."
        )
    return f"{notation}={promotion}"


def encode_castle(start: int, target: int, color: Color) -> Optional[str]:
    """Only returns something if the king move is exactly one of the two castles. Otherwise None"""
    direction = castling_direction(start, target, color)
    return direction.value if direction is not None else None


def notate(move: Move) -> str:
    """Full notation of a move as it gets sent to the server."""
    if move.piece.type == PieceType.KING:
        castle = encode_castle(move.start, move.target, move.piece.color)
        if castle is not None:
            return castle

    piece_letter = move.piece.letter
    is_capture = move.is_capture or move.is_en_passant
    if move.piece.type == PieceType.PAWN and is_capture:
        # a capturing pawn is named by the file it left from
        piece_letter = square_to_algebraic(move.start)[0]

    return encode_move(
        piece_letter, is_capture, square_to_algebraic(move.target), move.promotion
    )
