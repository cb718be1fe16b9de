import asyncio

import pytest

from helpers import FakeConnector, FakeRelaySocket, StalledConnector, wait_for
from transrelay.client.relay_client import ClientState, RelayClient


def _client(connector, received, **kwargs):
    kwargs.setdefault("keepalive_seconds", 30.0)
    kwargs.setdefault("reconnect_delay_seconds", 0.01)
    return RelayClient("ws://relay.test/ws", on_message=received.append, connect=connector, **kwargs)


@pytest.mark.asyncio
async def test_reconnects_after_failed_attempt_with_fixed_delay():
    sock = FakeRelaySocket()
    connector = FakeConnector([sock], failures=2)
    client = _client(connector, [])
    task = asyncio.create_task(client.run())

    await client.wait_open(timeout=1.0)
    assert connector.attempts == 3
    assert client.state is ClientState.OPEN
    assert client.connect_count == 1

    await client.stop()
    await asyncio.wait_for(task, timeout=1.0)
    assert client.state is ClientState.STOPPED


@pytest.mark.asyncio
async def test_server_close_triggers_new_connection_and_on_open_each_time():
    first, second = FakeRelaySocket(), FakeRelaySocket()
    opened = []

    async def on_open():
        opened.append(len(opened) + 1)

    client = _client(FakeConnector([first, second]), [], on_open=on_open)
    task = asyncio.create_task(client.run())
    await client.wait_open(timeout=1.0)

    first.close_from_server()
    await wait_for(lambda: client.connect_count == 2)
    assert opened == [1, 2]

    await client.stop()
    await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_keepalive_sends_ping_while_open():
    sock = FakeRelaySocket()
    client = _client(FakeConnector([sock]), [], keepalive_seconds=0.01)
    task = asyncio.create_task(client.run())

    await wait_for(lambda: len(sock.sent) >= 2)
    assert all(frame == {"type": "ping"} for frame in sock.sent)

    await client.stop()
    await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_inbound_frames_dispatched_and_bad_ones_dropped():
    sock = FakeRelaySocket()
    received = []
    client = _client(FakeConnector([sock]), received)
    task = asyncio.create_task(client.run())
    await client.wait_open(timeout=1.0)

    sock.push("garbage")
    sock.push({"type": "pong"})
    sock.push({"sessionId": "abc", "transcription": "hello"})
    await wait_for(lambda: len(received) == 1)

    assert received[0].session_id == "abc"
    assert received[0].transcription == "hello"
    await client.stop()
    await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_handler_error_does_not_stop_receive_loop():
    sock = FakeRelaySocket()
    received = []

    def handler(message):
        if message.transcription == "boom":
            raise ValueError("handler bug")
        received.append(message)

    client = RelayClient("ws://relay.test/ws", on_message=handler, connect=FakeConnector([sock]))
    task = asyncio.create_task(client.run())
    await client.wait_open(timeout=1.0)

    sock.push({"sessionId": "abc", "transcription": "boom"})
    sock.push({"sessionId": "abc", "transcription": "fine"})
    await wait_for(lambda: len(received) == 1)
    assert client.state is ClientState.OPEN

    await client.stop()
    await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_send_while_disconnected_drops_frame():
    client = _client(FakeConnector([]), [])
    assert await client.send({"sessionId": "abc", "transcription": "lost"}) is False


@pytest.mark.asyncio
async def test_stop_abandons_pending_handshake():
    connector = StalledConnector()
    client = _client(connector, [])
    task = asyncio.create_task(client.run())

    await wait_for(lambda: connector.attempts == 1)
    assert client.state is ClientState.CONNECTING

    await client.stop()
    await asyncio.wait_for(task, timeout=0.5)
    assert connector.cancelled
    assert client.state is ClientState.STOPPED
    assert client.connect_count == 0
