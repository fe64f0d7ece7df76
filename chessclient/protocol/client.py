"""
Protocol client: owns the connection to the match server.

Connection lifecycle:   DISCONNECTED -> CONNECTING -> OPEN -> DISCONNECTED (a new connect() starts over)
Per action, on OPEN:    IDLE -> AWAITING_COMMIT -> IDLE

The server never acknowledges an action. It only speaks up (with a match_error) when it refuses one.
So after sending, the caller waits a short commit window: no error in that window means the action stuck.
Errors that arrive while nobody is waiting are kept in a single "interrupt" slot and reported to
whoever awaits a commit next.
"""

import asyncio
import logging
from contextlib import suppress
from typing import Any, Callable, Optional

from chessclient.api.events import (
    INBOUND_EVENT_TYPES,
    InboundEvent,
    MatchErrorEvent,
    MatchOverEvent,
    OutgoingEvent,
    decode_event,
    encode_event,
    parse_envelope,
)
from chessclient.core.config import ClientConfig
from chessclient.core.exceptions import (
    ChessClientError,
    CommitCancelledError,
    InvalidEventError,
    MatchRejectedError,
    NotConnectedError,
    TransportError,
)
from chessclient.core.shared_types import CommitState, ConnectionState, Endpoint
from chessclient.protocol.transport import (
    GOING_AWAY,
    NORMAL_CLOSURE,
    TRANSPORT_ERRORS,
    Connector,
    Transport,
    TransportClosed,
    websocket_connector,
)

logger = logging.getLogger(__name__)

EventHandler = Callable[[InboundEvent], None]
DisconnectHandler = Callable[[], None]


class ProtocolClient:
    """One live transport at a time, one reader task, one interrupt slot."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        connector: Connector = websocket_connector,
        on_event: Optional[EventHandler] = None,
        on_disconnect: Optional[DisconnectHandler] = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.connector = connector
        self.on_event = on_event
        self.on_disconnect = on_disconnect
        self.state = ConnectionState.DISCONNECTED

        self._transport: Optional[Transport] = None
        self._reader: Optional[asyncio.Task[None]] = None
        self._interrupt: Any = None
        self._has_interrupt = False
        # each waiter resolves to True if woken because the transport closed
        self._waiters: set[asyncio.Future[bool]] = set()

    @property
    def commit_state(self) -> CommitState:
        return CommitState.AWAITING_COMMIT if self._waiters else CommitState.IDLE

    @property
    def has_pending_interrupt(self) -> bool:
        return self._has_interrupt

    def endpoint_url(self, endpoint: Endpoint) -> str:
        path = (
            self.config.matchmaking_path
            if endpoint == Endpoint.MATCHMAKING
            else self.config.engine_path
        )
        return f"{self.config.scheme}://{self.config.host}{path}"

    # --- LIFECYCLE ---
    async def connect(
        self, endpoint: Endpoint, initial_message: Optional[OutgoingEvent] = None
    ) -> None:
        """
        Open the transport (closing any previous one first). After a short settle delay the initial
        message is sent, and we wait for its commit like for any other action.
        """
        if self._transport is not None:
            logger.info("Closing previous connection before reconnecting")
            await self.close()

        url = self.endpoint_url(endpoint)
        self.state = ConnectionState.CONNECTING
        self._take_interrupt()
        logger.info("Connecting to %s", url)
        try:
            transport = await self.connector(url)
        except TRANSPORT_ERRORS as exc:
            self.state = ConnectionState.DISCONNECTED
            logger.error("Failed to connect to %s: %s", url, exc)
            raise TransportError(f"Failed to connect to {url}: {exc}") from exc

        self._transport = transport
        self.state = ConnectionState.OPEN
        self._reader = asyncio.create_task(self._read_loop(transport))
        logger.info("Connection to %s open", url)

        await asyncio.sleep(self.config.settle_delay)
        if initial_message is None:
            return
        if not await self.send(initial_message):
            raise NotConnectedError(
                f"Connection closed before {initial_message.type!r} could be sent."
            )
        await self.await_commit()

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        transport = self._transport
        reader = self._reader
        if transport is None:
            return

        self._terminate(transport)
        try:
            await transport.close(code, reason)
        except TRANSPORT_ERRORS as exc:
            logger.warning("Error while closing connection: %s", exc)

        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader
        logger.info("Connection closed (code=%s)", code)

    # --- OUTGOING ---
    async def send(self, message: OutgoingEvent) -> bool:
        """Only sends on an open connection. Returns False (and logs) when the message was NOT sent."""
        transport = self._transport
        if self.state != ConnectionState.OPEN or transport is None:
            logger.warning("Cannot send %r: websocket not open.", message.type)
            return False

        data = encode_event(message)
        try:
            await transport.send(data)
        except TRANSPORT_ERRORS as exc:
            logger.error("Failed to send %r: %s", message.type, exc)
            if self._transport is transport:
                await self.close(GOING_AWAY, "send failed")
            return False

        logger.debug("sent: %s", data)
        return True

    async def await_commit(self, timeout: Optional[float] = None) -> None:
        """
        Wait out the commit window of the last action.

        * returns None if nothing went wrong in the window
        * raises MatchRejectedError as soon as an interrupt is pending (server error, or an inbound event we could not handle)
        * raises CommitCancelledError if the transport closes (or is already closed): nothing was committed
        """
        window = self.config.commit_window if timeout is None else timeout
        if self.state != ConnectionState.OPEN and not self._has_interrupt:
            raise CommitCancelledError("No open connection to commit on.")

        closed = False
        if not self._has_interrupt:
            waiter: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
            self._waiters.add(waiter)
            try:
                closed = await asyncio.wait_for(waiter, window)
            except TimeoutError:
                pass
            finally:
                self._waiters.discard(waiter)

        if self._has_interrupt:
            reason = self._take_interrupt()
            logger.info("Action rejected: %r", reason)
            raise MatchRejectedError(reason)
        if closed:
            raise CommitCancelledError("Connection closed during the commit window.")

    # --- INCOMING ---
    async def route_event_message(self, raw: str | bytes) -> None:
        """Decode one inbound message and act on it. Never raises for bad input: the problem becomes the pending interrupt."""
        logger.debug("received: %s", raw)
        try:
            envelope = parse_envelope(raw)
        except InvalidEventError as exc:
            self._interrupt_with(exc)
            return

        if envelope.type not in INBOUND_EVENT_TYPES:
            logger.warning("Ignoring event of unrecognised type %r", envelope.type)
            return

        try:
            event = decode_event(envelope)
        except InvalidEventError as exc:
            self._interrupt_with(exc)
            return

        if isinstance(event, MatchErrorEvent):
            self._interrupt_with(event.payload)
            return

        self._dispatch(event)

        if isinstance(event, MatchOverEvent):
            logger.info("Match over, closing connection")
            await self.close(NORMAL_CLOSURE, "match over")

    async def _read_loop(self, transport: Transport) -> None:
        """Inbound events are handled one at a time, in the order they arrive."""
        try:
            while self._transport is transport:
                raw = await transport.recv()
                await self.route_event_message(raw)
        except TransportClosed as exc:
            logger.info("Connection closed by peer: %s", exc)
        except TRANSPORT_ERRORS as exc:
            logger.error("Transport error: %s", exc)
        finally:
            self._terminate(transport)

    def _dispatch(self, event: InboundEvent) -> None:
        if self.on_event is None:
            return
        try:
            self.on_event(event)
        except ChessClientError as exc:
            logger.warning("Failed to handle %r event: %s", event.type, exc)
            self._interrupt_with(exc)
        except Exception as exc:
            # render surface errors become the pending interrupt, the reader keeps going
            logger.exception("Unexpected error while handling %r event", event.type)
            self._interrupt_with(exc)

    # --- INTERNAL HELPERS ---
    def _interrupt_with(self, reason: Any) -> None:
        logger.warning("Interrupt pending: %r", reason)
        self._interrupt = reason
        self._has_interrupt = True
        self._wake_waiters(closed=False)

    def _take_interrupt(self) -> Any:
        reason = self._interrupt
        self._interrupt = None
        self._has_interrupt = False
        return reason

    def _wake_waiters(self, closed: bool) -> None:
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(closed)

    def _terminate(self, transport: Transport) -> None:
        """Drop to DISCONNECTED. Safe to call more than once; stale transports are ignored."""
        if transport is not self._transport:
            return
        self._transport = None
        self._reader = None
        self.state = ConnectionState.DISCONNECTED
        self._wake_waiters(closed=True)
        if self.on_disconnect is not None:
            self.on_disconnect()
