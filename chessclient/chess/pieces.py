"""Defines the types of chess pieces"""

from dataclasses import dataclass
from typing import Self

from chessclient.core.exceptions import FormatError
from chessclient.core.shared_types import Color, PieceType

FEN_TO_PIECE: dict[str, PieceType] = {
    "p": PieceType.PAWN,
    "n": PieceType.KNIGHT,
    "b": PieceType.BISHOP,
    "r": PieceType.ROOK,
    "q": PieceType.QUEEN,
    "k": PieceType.KING,
}

PIECE_TO_FEN: dict[PieceType, str] = {value: key for key, value in FEN_TO_PIECE.items()}

# Letter used in algebraic notation. Pawns go without one.
PIECE_TO_LETTER: dict[PieceType, str] = {
    PieceType.PAWN: "",
    PieceType.KNIGHT: "N",
    PieceType.BISHOP: "B",
    PieceType.ROOK: "R",
    PieceType.QUEEN: "Q",
    PieceType.KING: "K",
}

PROMOTION_LETTERS: dict[str, PieceType] = {
    "Q": PieceType.QUEEN,
    "R": PieceType.ROOK,
    "B": PieceType.BISHOP,
    "N": PieceType.KNIGHT,
}


def is_fen_piece(character: str) -> bool:
    return len(character) == 1 and character.lower() in FEN_TO_PIECE


@dataclass
class Piece:
    type: PieceType
    color: Color

    @classmethod
    def from_fen(cls, character: str) -> Self:
        # upper case: light pieces, lower case: dark pieces
        if not is_fen_piece(character):
            raise FormatError(f"{character!r} is not a FEN piece letter.")
        color = Color.LIGHT if character.isupper() else Color.DARK
        return cls(FEN_TO_PIECE[character.lower()], color)

    def to_fen(self) -> str:
        letter = PIECE_TO_FEN[self.type]
        return letter.upper() if self.color == Color.LIGHT else letter

    @property
    def letter(self) -> str:
        return PIECE_TO_LETTER[self.type]

    @property
    def id(self) -> str:
        """Name the board widgets use for a piece, e.g. 'light_pawn'."""
        return f"{self.color}_{self.type}"

    def promote_to(self, new_type: PieceType) -> None:
        self.type = new_type
