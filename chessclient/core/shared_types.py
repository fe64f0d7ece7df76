"""
Type definitions used across layers
"""

from enum import StrEnum


class Color(StrEnum):
    """Piece colours exactly as the match server spells them on the wire."""

    LIGHT = "light"
    DARK = "dark"

    @property
    def opponent(self) -> "Color":
        return Color.DARK if self == Color.LIGHT else Color.LIGHT


class PieceType(StrEnum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


class EventType(StrEnum):
    # --- outgoing ---
    JOIN_MATCH = "join_match"
    NEW_ENGINE_MATCH = "new_engine_match"
    MAKE_MOVE = "make_move"

    # --- incoming ---
    ASSIGNED_MATCH = "assigned_match"
    PROPAGATE_POSITION = "propagate_position"
    PROPAGATE_MOVE = "propagate_move"
    CLOCK_UPDATE = "clock_update"
    MATCH_OVER = "match_over"
    MATCH_ERROR = "match_error"


class Endpoint(StrEnum):
    MATCHMAKING = "matchmaking"
    ENGINE = "engine"


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"


class CommitState(StrEnum):
    IDLE = "idle"
    AWAITING_COMMIT = "awaiting commit"


class ClockSide(StrEnum):
    PLAYER = "player"
    OPPONENT = "opponent"
