"""
Tests for the protocol client, against the in-memory transport from conftest.py.

Every test drives its own event loop with asyncio.run(); short sleeps give the reader task a chance to
process what the fake server pushed.
"""

import asyncio

import pytest

from chessclient.api.events import AssignedMatchEvent, make_move_event
from chessclient.core.config import ClientConfig
from chessclient.core.exceptions import (
    CommitCancelledError,
    InvalidEventError,
    MatchRejectedError,
    TransportError,
)
from chessclient.core.shared_types import CommitState, ConnectionState, Endpoint
from chessclient.protocol.client import ProtocolClient

ASSIGNED = {"type": "assigned_match", "payload": {"match_id": "m-1", "pieces": "light"}}


class Recorder:
    def __init__(self) -> None:
        self.events: list = []
        self.disconnects = 0

    def on_event(self, event) -> None:
        self.events.append(event)

    def on_disconnect(self) -> None:
        self.disconnects += 1


def make_client(config: ClientConfig, connector, recorder: Recorder) -> ProtocolClient:
    return ProtocolClient(
        config,
        connector,
        on_event=recorder.on_event,
        on_disconnect=recorder.on_disconnect,
    )


def test_endpoint_url() -> None:
    client = ProtocolClient(ClientConfig(host="chess.example:443"))
    assert client.endpoint_url(Endpoint.MATCHMAKING) == "wss://chess.example:443/matches/ws"
    assert client.endpoint_url(Endpoint.ENGINE) == "wss://chess.example:443/engines/ws"


def test_connect_without_initial_message(config: ClientConfig, connector) -> None:
    recorder = Recorder()
    client = make_client(config, connector, recorder)

    async def scenario() -> None:
        await client.connect(Endpoint.ENGINE)
        assert client.state == ConnectionState.OPEN
        assert connector.urls == ["wss://chess.test/engines/ws"]
        await client.close()

    asyncio.run(scenario())
    assert client.state == ConnectionState.DISCONNECTED
    assert recorder.disconnects == 1


def test_connect_sends_initial_message_and_waits_for_commit(
    config: ClientConfig, connector
) -> None:
    recorder = Recorder()
    client = make_client(config, connector, recorder)
    connector.upcoming().reply_to_next_send(ASSIGNED)

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING, make_move_event("e4"))
        # the commit window is over by now, so the reply has been handled
        assert len(recorder.events) == 1
        await client.close()

    asyncio.run(scenario())
    transport = connector.transports[0]
    assert transport.sent_events() == [{"type": "make_move", "payload": {"move": "e4"}}]
    assert isinstance(recorder.events[0], AssignedMatchEvent)


def test_connect_failure(config: ClientConfig) -> None:
    async def refusing_connector(url: str):
        raise OSError("connection refused")

    client = ProtocolClient(config, refusing_connector)

    with pytest.raises(TransportError):
        asyncio.run(client.connect(Endpoint.MATCHMAKING))
    assert client.state == ConnectionState.DISCONNECTED


def test_send_while_disconnected_does_not_raise(config: ClientConfig, connector) -> None:
    client = make_client(config, connector, Recorder())
    assert asyncio.run(client.send(make_move_event("e4"))) is False
    assert connector.transports == []


def test_await_commit_without_connection(config: ClientConfig) -> None:
    client = ProtocolClient(config)
    with pytest.raises(CommitCancelledError):
        asyncio.run(client.await_commit())


def test_commit_succeeds_when_server_stays_quiet(
    config: ClientConfig, connector
) -> None:
    client = make_client(config, connector, Recorder())

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        assert await client.send(make_move_event("e4"))
        await client.await_commit()
        assert client.commit_state == CommitState.IDLE
        await client.close()

    asyncio.run(scenario())


def test_commit_rejected_with_server_payload(config: ClientConfig, connector) -> None:
    """The reason is handed back exactly as the server sent it"""
    client = make_client(config, connector, Recorder())
    transport = connector.upcoming()

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        transport.reply_to_next_send({"type": "match_error", "payload": "not your turn"})
        await client.send(make_move_event("e4"))
        with pytest.raises(MatchRejectedError) as exc_info:
            await client.await_commit(timeout=5.0)
        assert exc_info.value.payload == "not your turn"
        assert not client.has_pending_interrupt
        await client.close()

    asyncio.run(scenario())


def test_rejection_does_not_wait_for_the_whole_window(
    config: ClientConfig, connector
) -> None:
    client = make_client(config, connector, Recorder())
    transport = connector.upcoming()

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        transport.reply_to_next_send({"type": "match_error", "payload": {"code": 3}})
        await client.send(make_move_event("e4"))
        with pytest.raises(MatchRejectedError):
            # far longer than the test timeout if the error did not wake us up
            await asyncio.wait_for(client.await_commit(timeout=60.0), 1.0)
        await client.close()

    asyncio.run(scenario())


def test_interrupt_kept_until_next_commit(config: ClientConfig, connector) -> None:
    """An error arriving while no action is pending is reported to the next one"""
    client = make_client(config, connector, Recorder())
    transport = connector.upcoming()

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        transport.push({"type": "match_error", "payload": "too late"})
        await asyncio.sleep(0.01)
        assert client.has_pending_interrupt

        with pytest.raises(MatchRejectedError) as exc_info:
            await client.await_commit()
        assert exc_info.value.payload == "too late"

        # consumed: the next commit goes through
        await client.await_commit()
        await client.close()

    asyncio.run(scenario())


def test_commit_cancelled_when_connection_drops(
    config: ClientConfig, connector
) -> None:
    recorder = Recorder()
    client = make_client(config, connector, recorder)
    transport = connector.upcoming()

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        await client.send(make_move_event("e4"))
        transport.hang_up()
        with pytest.raises(CommitCancelledError):
            await client.await_commit(timeout=5.0)

    asyncio.run(scenario())
    assert client.state == ConnectionState.DISCONNECTED
    assert recorder.disconnects == 1


def test_unknown_event_type_is_ignored(config: ClientConfig, connector) -> None:
    recorder = Recorder()
    client = make_client(config, connector, recorder)

    async def scenario() -> None:
        await client.route_event_message('{"type": "chat_message", "payload": "gg"}')

    asyncio.run(scenario())
    assert recorder.events == []
    assert not client.has_pending_interrupt


@pytest.mark.parametrize(
    "raw",
    [
        "definitely not json",
        '{"type": "assigned_match", "payload": {"match_id": "m-1"}}',
    ],
)
def test_malformed_message_becomes_interrupt(
    config: ClientConfig, connector, raw: str
) -> None:
    recorder = Recorder()
    client = make_client(config, connector, recorder)

    asyncio.run(client.route_event_message(raw))

    assert recorder.events == []
    assert client.has_pending_interrupt
    with pytest.raises(MatchRejectedError) as exc_info:
        asyncio.run(client.await_commit())
    assert isinstance(exc_info.value.payload, InvalidEventError)


def test_events_are_processed_in_order(config: ClientConfig, connector) -> None:
    recorder = Recorder()
    client = make_client(config, connector, recorder)
    transport = connector.upcoming()

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        for seconds in ("60", "59", "58"):
            transport.push(
                {"type": "clock_update", "payload": {"clock_owner": "light", "time_remaining": seconds}}
            )
        await asyncio.sleep(0.01)
        await client.close()

    asyncio.run(scenario())
    assert [event.payload.time_remaining for event in recorder.events] == ["60", "59", "58"]


def test_match_over_closes_normally(config: ClientConfig, connector) -> None:
    recorder = Recorder()
    client = make_client(config, connector, recorder)
    transport = connector.upcoming()

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        transport.push({"type": "match_over", "payload": {"winner": "dark"}})
        await asyncio.sleep(0.01)

    asyncio.run(scenario())
    assert transport.closed_with == (1000, "match over")
    assert client.state == ConnectionState.DISCONNECTED
    assert recorder.events[-1].type == "match_over"
    assert recorder.disconnects == 1


def test_reconnect_closes_previous_transport(config: ClientConfig, connector) -> None:
    recorder = Recorder()
    client = make_client(config, connector, recorder)

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        await client.connect(Endpoint.ENGINE)
        assert client.state == ConnectionState.OPEN
        await client.close()

    asyncio.run(scenario())
    first, second = connector.transports
    assert first.closed_with == (1000, "")
    assert second.closed_with == (1000, "")
    assert recorder.disconnects == 2


def test_stale_transport_messages_are_not_routed(
    config: ClientConfig, connector
) -> None:
    """Once replaced, the old connection cannot affect the new session anymore"""
    recorder = Recorder()
    client = make_client(config, connector, recorder)

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        old = connector.transports[0]
        await client.connect(Endpoint.MATCHMAKING)
        old.push({"type": "match_error", "payload": "from the old match"})
        await asyncio.sleep(0.01)
        assert not client.has_pending_interrupt
        await client.close()

    asyncio.run(scenario())
    assert recorder.events == []


def test_failed_send_tears_down_the_connection(config: ClientConfig, connector) -> None:
    """The transport gets closed and the reader task does not outlive it"""
    recorder = Recorder()
    client = make_client(config, connector, recorder)
    transport = connector.upcoming()

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        transport.send_error = OSError("broken pipe")
        assert await client.send(make_move_event("e4")) is False
        assert asyncio.all_tasks() == {asyncio.current_task()}

    asyncio.run(scenario())
    assert transport.closed_with == (1001, "send failed")
    assert client.state == ConnectionState.DISCONNECTED
    assert recorder.disconnects == 1


def test_unexpected_handler_error_becomes_interrupt(config: ClientConfig, connector) -> None:
    """A handler blowing up does not kill the reader: the next commit reports it instead"""
    failure = ValueError("render surface broke")

    def broken_handler(event) -> None:
        raise failure

    client = ProtocolClient(config, connector, on_event=broken_handler)
    transport = connector.upcoming()

    async def scenario() -> None:
        await client.connect(Endpoint.MATCHMAKING)
        transport.push(ASSIGNED)
        await asyncio.sleep(0.01)
        assert client.state == ConnectionState.OPEN

        with pytest.raises(MatchRejectedError) as exc_info:
            await client.await_commit()
        assert exc_info.value.payload is failure

        # the reader is still alive and keeps routing
        transport.push({"type": "match_error", "payload": "still listening"})
        await asyncio.sleep(0.01)
        assert client.has_pending_interrupt
        await client.close()

    asyncio.run(scenario())
