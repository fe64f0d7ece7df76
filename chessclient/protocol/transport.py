"""
The duplex connection to the match server.

ProtocolClient only depends on the `Transport` protocol below, so tests (or another socket library)
can supply their own connection. The default connector opens a real websocket.
"""

from typing import Awaitable, Callable, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

# Normal closure, see RFC 6455 section 7.4.1
NORMAL_CLOSURE = 1000
# Endpoint going away, used when the client gives up on a broken connection
GOING_AWAY = 1001

# Raised by a transport once the connection is gone for good.
TransportClosed = ConnectionClosed
# Anything that can go wrong while opening or talking over the socket
TRANSPORT_ERRORS = (OSError, TimeoutError, WebSocketException)


class Transport(Protocol):
    """Just the parts of a websocket connection the protocol client needs"""

    async def send(self, message: str) -> None: ...
    async def recv(self) -> str | bytes: ...
    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None: ...


Connector = Callable[[str], Awaitable[Transport]]


async def websocket_connector(url: str) -> Transport:
    return await websockets.connect(url)
