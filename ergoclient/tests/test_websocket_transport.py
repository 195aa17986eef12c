import asyncio
import json
import socket

import pytest
from websockets.asyncio.server import serve

from ergoclient.config import ClientSettings
from ergoclient.network.errors import SendError
from ergoclient.network.state import TransportState
from ergoclient.network.transport.websocket import WebSocketTransport


class _Recorder:
    def __init__(self) -> None:
        self.opened = asyncio.Event()
        self.closed = asyncio.Event()
        self.messages = []
        self.errors = []
        self.close_args = None

    def on_open(self) -> None:
        self.opened.set()

    def on_message(self, raw) -> None:
        self.messages.append(raw)

    def on_error(self, exc) -> None:
        self.errors.append(exc)

    def on_close(self, code, reason, was_clean) -> None:
        self.close_args = (code, reason, was_clean)
        self.closed.set()


def _settings() -> ClientSettings:
    return ClientSettings(open_timeout_seconds=2, ping_interval_seconds=None)


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_send_before_open_fails():
    transport = WebSocketTransport(_settings())

    assert transport.state is TransportState.CLOSED
    with pytest.raises(SendError):
        transport.send('{"type": "get_status"}')


@pytest.mark.asyncio
async def test_round_trip_and_clean_server_close():
    received = []

    async def handler(ws):
        await ws.send(json.dumps({"type": "status", "data": {"connected": True}, "timestamp": "t1"}))
        received.append(await ws.recv())
        await ws.close(1000, "bye")

    async with serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        events = _Recorder()
        transport = WebSocketTransport(_settings())
        transport.open(f"ws://127.0.0.1:{port}/ws", events)
        assert transport.state is TransportState.CONNECTING

        await asyncio.wait_for(events.opened.wait(), 5)
        assert transport.state is TransportState.OPEN
        transport.send('{"type": "get_status"}')

        await asyncio.wait_for(events.closed.wait(), 5)
        await transport.wait_closed()

    assert json.loads(events.messages[0])["type"] == "status"
    assert received == ['{"type": "get_status"}']
    assert events.close_args == (1000, "bye", True)
    assert events.errors == []
    assert transport.state is TransportState.CLOSED


@pytest.mark.asyncio
async def test_refused_connection_reports_error_then_unclean_close():
    events = _Recorder()
    transport = WebSocketTransport(_settings())
    transport.open(f"ws://127.0.0.1:{_free_port()}/ws", events)

    await asyncio.wait_for(events.closed.wait(), 5)

    assert not events.opened.is_set()
    assert len(events.errors) == 1
    assert events.close_args[0] == 1006
    assert events.close_args[2] is False
    assert transport.state is TransportState.CLOSED


@pytest.mark.asyncio
async def test_close_is_idempotent():
    async def handler(ws):
        await ws.wait_closed()

    async with serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        events = _Recorder()
        transport = WebSocketTransport(_settings())
        transport.open(f"ws://127.0.0.1:{port}/ws", events)
        await asyncio.wait_for(events.opened.wait(), 5)

        transport.close()
        transport.close()
        await asyncio.wait_for(events.closed.wait(), 5)
        await transport.wait_closed()

    assert events.close_args[0] == 1000
    assert events.close_args[2] is True
    with pytest.raises(SendError):
        transport.send("{}")


@pytest.mark.asyncio
async def test_close_while_handshaking_abandons_attempt():
    events = _Recorder()
    transport = WebSocketTransport(_settings())
    transport.open(f"ws://127.0.0.1:{_free_port()}/ws", events)

    transport.close()
    transport.close()
    await transport.wait_closed()

    assert transport.state is TransportState.CLOSED
    assert not events.opened.is_set()
