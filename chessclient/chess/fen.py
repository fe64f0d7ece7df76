"""
Reading the positions the server pushes.

FEN, or Forsyth-Edwards Notation, is a standard notation for describing a particular board position of a chess game.

<board position string><active color><castling rights><en passant square><# half move clock><number turns played>

The client only needs the first field (where the pieces are) and, when present, the second one (who moves next).
Everything else is the server's business.

ex) The standard starting position has a FEN
rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1
"""

from typing import Optional

from chessclient.chess.pieces import is_fen_piece
from chessclient.chess.square import BOARD_WIDTH, NUM_SQUARES
from chessclient.core.exceptions import InvalidFENError
from chessclient.core.shared_types import Color

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
FEN_TO_COLOR: dict[str, Color] = {"w": Color.LIGHT, "b": Color.DARK}
EMPTY_RUN_DIGITS = "".join(str(n) for n in range(1, BOARD_WIDTH + 1))


def placement_field(fen: str) -> str:
    """Everything before the first space (or the whole string if there is none)"""
    return fen.split(" ", 1)[0]


def active_color(fen: str) -> Optional[Color]:
    """Color to move according to the FEN, if that field was sent along."""
    parts = fen.split()
    if len(parts) < 2:
        return None
    return FEN_TO_COLOR.get(parts[1])


def decode_fen_placement(fen_field: str) -> dict[int, Optional[str]]:
    """
    Map every square index to the FEN letter of the piece on it (None for an empty square).

    The placement is read from the top rank (8th) to the bottom rank (1st), a-file first within a rank.
    That is exactly the order of the square indices, so we just keep a running counter:
    * '/' only separates ranks, the counter does not move
    * a digit n means n empty squares
    * a piece letter puts that piece on the current square
    """
    squares: dict[int, Optional[str]] = {}
    square_id = 0
    for character in fen_field:
        if character == "/":
            continue

        if character in EMPTY_RUN_DIGITS:
            empty_count = int(character)
            if square_id + empty_count > NUM_SQUARES:
                raise InvalidFENError(f"Placement {fen_field!r} runs past the last square.")
            for _ in range(empty_count):
                squares[square_id] = None
                square_id += 1
            continue

        if not is_fen_piece(character):
            raise InvalidFENError(f"Unexpected character {character!r} in placement {fen_field!r}.")
        if square_id >= NUM_SQUARES:
            raise InvalidFENError(f"Placement {fen_field!r} runs past the last square.")
        squares[square_id] = character
        square_id += 1

    if square_id != NUM_SQUARES:
        raise InvalidFENError(
            f"Placement {fen_field!r} describes {square_id} squares instead of {NUM_SQUARES}."
        )
    return squares
