"""The client's own picture of the board. Provisional: the server's position always wins."""

from dataclasses import dataclass, field
from typing import Optional, Self

from chessclient.chess.castling import CASTLING_RULES, castling_direction
from chessclient.chess.fen import STARTING_FEN, decode_fen_placement, placement_field
from chessclient.chess.moves import Move
from chessclient.chess.pieces import PROMOTION_LETTERS, Piece
from chessclient.chess.square import Square
from chessclient.core.shared_types import Color


@dataclass
class BoardPosition:
    # only occupied squares are stored
    squares: dict[int, Piece] = field(default_factory=dict)

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board from a FEN string. Only the placement field is looked at.

        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * dark pieces are on the 8th rank, starting with rook on a8, knight on b8, etc.
        * pawns cover 7th rank entirely
        * ranks 6 through 3 have 8 consecutive empty squares
        * rank 2 are the light pawns (capital letters)
        * 1st rank are the light pieces.
        """
        placement = decode_fen_placement(placement_field(fen_str))
        return cls(
            {
                index: Piece.from_fen(character)
                for index, character in placement.items()
                if character is not None
            }
        )

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_FEN)

    def piece_at(self, index: int) -> Optional[Piece]:
        """Doubles as the occupancy query handed to the movement rules."""
        return self.squares.get(index)

    def locate_color(self, color: Color) -> list[int]:
        return [index for index, piece in self.squares.items() if piece.color == color]

    def apply(self, move: Move) -> list[int]:
        """
        Play a (server confirmed) move on the local board.

        The piece object itself is relocated, never recreated. Returns every square whose content changed,
        so the renderer knows what to redraw.
        """
        piece = self.squares.pop(move.start)
        touched = [move.start, move.target]

        if move.is_en_passant:
            # the captured pawn is beside the start square, not on the target square
            victim = Square(
                Square.from_index(move.target).file, Square.from_index(move.start).rank
            ).to_index()
            self.squares.pop(victim, None)
            touched.append(victim)

        self.squares[move.target] = piece

        if move.is_castle:
            direction = castling_direction(move.start, move.target, piece.color)
            if direction is not None:
                rule = CASTLING_RULES[piece.color][direction]
                rook = self.squares.pop(rule.rook_from, None)
                if rook is not None:
                    self.squares[rule.rook_to] = rook
                touched.extend([rule.rook_from, rule.rook_to])

        if move.promotion is not None:
            piece.promote_to(PROMOTION_LETTERS[move.promotion])

        return touched
