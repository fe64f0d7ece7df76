"""
Custom errors raised by the client.

Grouped the way they are recovered from:
* format errors: local, the user simply retries
* protocol errors: the server refused the action, the session stays open
* transport errors: the session is over
"""

from typing import Any


class ChessClientError(Exception):
    """Base class, so callers can catch everything coming out of this package."""


# --- FORMAT ERRORS ---
class FormatError(ChessClientError):
    """Malformed coordinate, FEN string or event message."""


class InvalidFENError(FormatError):
    pass


class InvalidEventError(FormatError):
    pass


class SquareRangeError(ChessClientError):
    """A square index outside of 0..63"""


class ConfigError(ChessClientError):
    """Settings (environment variables) that cannot be used."""


# --- LOCAL REQUEST CHECKS ---
class InvalidRequestError(ChessClientError):
    """Request the server is known not to support (time control, engine ELO)."""


# --- PROTOCOL ERRORS ---
class MatchRejectedError(ChessClientError):
    """The last optimistic action was refused. Carries the reason verbatim."""

    def __init__(self, payload: Any) -> None:
        super().__init__(payload)
        self.payload = payload


class CommitCancelledError(ChessClientError):
    """The transport went away before the commit window closed: nothing was committed."""


# --- TRANSPORT ERRORS ---
class TransportError(ChessClientError):
    pass


class NotConnectedError(TransportError):
    pass
