"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/fakes required for testing multiple layers:
an in-memory transport standing in for the match server, and a render surface that records what it was told to draw.
"""

import asyncio
import json
from typing import Any, Optional

import pytest
from websockets.exceptions import ConnectionClosedOK

from chessclient.chess.pieces import Piece
from chessclient.core.config import ClientConfig
from chessclient.core.shared_types import ClockSide, Color

_CLOSE = object()


class FakeTransport:
    """Plays the match server. Tests push inbound messages and inspect what was sent."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.inbound: asyncio.Queue[Any] = asyncio.Queue()
        self.closed_with: Optional[tuple[int, str]] = None
        self._replies: list[list[Any]] = []
        # raised by the next send, to simulate a broken connection
        self.send_error: Optional[Exception] = None

    # --- Transport protocol ---
    async def send(self, message: str) -> None:
        if self.closed_with is not None:
            raise ConnectionClosedOK(None, None)
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(message)
        if self._replies:
            for reply in self._replies.pop(0):
                self.push(reply)

    async def recv(self) -> str:
        item = await self.inbound.get()
        if item is _CLOSE:
            raise ConnectionClosedOK(None, None)
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = (code, reason)
        self.inbound.put_nowait(_CLOSE)

    # --- test helpers ---
    def push(self, message: Any) -> None:
        """Queue an inbound message (dicts get JSON encoded, strings are sent as is)"""
        self.inbound.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def reply_to_next_send(self, *messages: Any) -> None:
        """Server answers to the next message the client sends."""
        self._replies.append(list(messages))

    def hang_up(self) -> None:
        """The server drops the connection."""
        self.inbound.put_nowait(_CLOSE)

    def sent_events(self) -> list[dict]:
        return [json.loads(message) for message in self.sent]


class FakeConnector:
    def __init__(self) -> None:
        self.urls: list[str] = []
        self.transports: list[FakeTransport] = []
        self._pending: Optional[FakeTransport] = None

    def upcoming(self) -> FakeTransport:
        """The transport the next connect() will get. Lets tests script replies before connecting."""
        if self._pending is None:
            self._pending = FakeTransport()
        return self._pending

    async def __call__(self, url: str) -> FakeTransport:
        transport = self.upcoming()
        self._pending = None
        self.urls.append(url)
        self.transports.append(transport)
        return transport


class RecordingRenderSurface:
    def __init__(self) -> None:
        self.perspective: Optional[Color] = None
        self.squares: dict[int, Piece] = {}
        self.turns: list[Optional[Color]] = []
        self.messages: list[str] = []
        self.match_info: list[str] = []
        self.clocks: dict[ClockSide, str] = {}

    def create_board(self, perspective: Color) -> None:
        self.perspective = perspective
        self.squares = {}

    def place_piece(self, index: int, piece: Piece) -> None:
        self.squares[index] = piece

    def remove_piece(self, index: int) -> None:
        self.squares.pop(index, None)

    def show_message(self, message: str, seconds: float) -> None:
        self.messages.append(message)

    def show_turn(self, turn: Optional[Color]) -> None:
        self.turns.append(turn)

    def show_match_info(self, text: str) -> None:
        self.match_info.append(text)

    def show_clock(self, side: ClockSide, text: str) -> None:
        self.clocks[side] = text


@pytest.fixture
def config() -> ClientConfig:
    """No settle delay and a short commit window, to keep the tests fast."""
    return ClientConfig(host="chess.test", settle_delay=0.0, commit_window=0.05)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def render() -> RecordingRenderSurface:
    return RecordingRenderSurface()
