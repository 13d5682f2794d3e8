from __future__ import annotations

import asyncio
import json
import logging
from types import SimpleNamespace
from typing import Any

import pytest

from select_menu_bot import gateway as gateway_module
from select_menu_bot.errors import DiscordPermanentError, GatewayError
from select_menu_bot.gateway import DiscordGatewaySession, decode_frame, reconnect_delay


def _hello(interval_ms: int = 45000) -> str:
    return json.dumps({"op": 10, "d": {"heartbeat_interval": interval_ms}})


HELLO = _hello()


def _dispatch(event_type: str, data: dict[str, Any], seq: int) -> str:
    return json.dumps({"op": 0, "t": event_type, "s": seq, "d": data})


class _FakeConnectionClosed(Exception):
    def __init__(self, code: int) -> None:
        super().__init__(f"code={code}")
        self.rcvd = SimpleNamespace(code=code)


class _FakeWebSocket:
    def __init__(self, frames: list[Any]) -> None:
        self._frames = list(frames)
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self._closed_event = asyncio.Event()

    async def recv(self) -> Any:
        if not self._frames:
            await self._closed_event.wait()
            raise _FakeConnectionClosed(1000)
        frame = self._frames.pop(0)
        if isinstance(frame, BaseException):
            raise frame
        return frame

    async def send(self, message: str) -> None:
        self.sent.append(json.loads(message))

    async def close(self) -> None:
        self.closed = True
        self._closed_event.set()


class _FakeWebSocketModule:
    def __init__(self, connections: list[list[Any]]) -> None:
        self._connections = list(connections)
        self.urls: list[str] = []
        self.sockets: list[_FakeWebSocket] = []

    async def connect(self, url: str) -> _FakeWebSocket:
        self.urls.append(url)
        socket = _FakeWebSocket(self._connections.pop(0))
        self.sockets.append(socket)
        return socket


@pytest.fixture()
def session(monkeypatch: pytest.MonkeyPatch) -> DiscordGatewaySession:
    monkeypatch.setattr(gateway_module, "ConnectionClosed", _FakeConnectionClosed)
    monkeypatch.setattr(gateway_module, "reconnect_delay", lambda _a: 0.0)
    return DiscordGatewaySession(
        bot_token="token",
        intents=513,
        logger=logging.getLogger("test.gateway"),
        gateway_url="wss://gateway.test/?v=10&encoding=json",
    )


@pytest.mark.anyio
async def test_next_event_identifies_and_returns_dispatch(
    session: DiscordGatewaySession, monkeypatch: pytest.MonkeyPatch
) -> None:
    module = _FakeWebSocketModule(
        [[HELLO, _dispatch("READY", {"v": 10}, 1), _dispatch("INTERACTION_CREATE", {"id": "i"}, 2)]]
    )
    monkeypatch.setattr(gateway_module, "websockets", module)
    try:
        ready = await session.next_event()
        interaction = await session.next_event()
    finally:
        await session.close()

    assert module.urls == ["wss://gateway.test/?v=10&encoding=json"]
    identify = module.sockets[0].sent[0]
    assert identify["op"] == 2
    assert identify["d"]["token"] == "token"
    assert identify["d"]["intents"] == 513
    assert identify["d"]["properties"]["browser"] == "select-menu-bot"
    assert ready.kind == "READY"
    assert interaction.kind == "INTERACTION_CREATE"
    assert interaction.payload == {"id": "i"}
    assert interaction.sequence == 2
    assert module.sockets[0].closed is True


@pytest.mark.anyio
async def test_heartbeat_request_is_answered_with_last_sequence(
    session: DiscordGatewaySession, monkeypatch: pytest.MonkeyPatch
) -> None:
    module = _FakeWebSocketModule(
        [
            [
                HELLO,
                _dispatch("READY", {}, 5),
                json.dumps({"op": 1, "d": None}),
                json.dumps({"op": 11}),
                _dispatch("MESSAGE_CREATE", {"content": "hi"}, 6),
            ]
        ]
    )
    monkeypatch.setattr(gateway_module, "websockets", module)
    try:
        await session.next_event()
        event = await session.next_event()
    finally:
        await session.close()

    assert event.kind == "MESSAGE_CREATE"
    assert {"op": 1, "d": 5} in module.sockets[0].sent


@pytest.mark.anyio
async def test_non_fatal_close_is_recoverable_and_reconnects(
    session: DiscordGatewaySession, monkeypatch: pytest.MonkeyPatch
) -> None:
    module = _FakeWebSocketModule(
        [
            [HELLO, _FakeConnectionClosed(1006)],
            [HELLO, _dispatch("READY", {}, 1)],
        ]
    )
    monkeypatch.setattr(gateway_module, "websockets", module)
    try:
        with pytest.raises(GatewayError) as excinfo:
            await session.next_event()
        assert excinfo.value.fatal is False
        assert excinfo.value.close_code == 1006
        assert session.connected is False

        event = await session.next_event()
    finally:
        await session.close()

    assert event.kind == "READY"
    assert len(module.urls) == 2


@pytest.mark.anyio
async def test_fatal_close_code_is_sticky(
    session: DiscordGatewaySession, monkeypatch: pytest.MonkeyPatch
) -> None:
    module = _FakeWebSocketModule([[HELLO, _FakeConnectionClosed(4004)]])
    monkeypatch.setattr(gateway_module, "websockets", module)

    with pytest.raises(GatewayError) as first:
        await session.next_event()
    with pytest.raises(GatewayError) as second:
        await session.next_event()

    assert first.value.fatal is True
    assert first.value.close_code == 4004
    assert second.value is first.value
    assert len(module.urls) == 1


@pytest.mark.anyio
async def test_rejected_credentials_are_fatal(
    session: DiscordGatewaySession, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def _reject() -> str:
        raise DiscordPermanentError("invalid token", status_code=401)

    monkeypatch.setattr(session, "_gateway_endpoint", _reject)

    with pytest.raises(GatewayError) as excinfo:
        await session.next_event()

    assert excinfo.value.fatal is True


@pytest.mark.anyio
async def test_reconnect_request_and_bad_frames_are_recoverable(
    session: DiscordGatewaySession, monkeypatch: pytest.MonkeyPatch
) -> None:
    module = _FakeWebSocketModule(
        [
            [HELLO, json.dumps({"op": 7, "d": None})],
            [HELLO, "not json"],
            [json.dumps({"op": 11})],
        ]
    )
    monkeypatch.setattr(gateway_module, "websockets", module)

    for _ in range(3):
        with pytest.raises(GatewayError) as excinfo:
            await session.next_event()
        assert excinfo.value.fatal is False
    assert len(module.urls) == 3
    assert all(socket.closed for socket in module.sockets)

@pytest.mark.anyio
async def test_reconnect_starts_a_fresh_sequence(
    session: DiscordGatewaySession, monkeypatch: pytest.MonkeyPatch
) -> None:
    module = _FakeWebSocketModule(
        [
            [HELLO, _dispatch("READY", {}, 7), _FakeConnectionClosed(1006)],
            [HELLO, json.dumps({"op": 1, "d": None}), _dispatch("READY", {}, 1)],
        ]
    )
    monkeypatch.setattr(gateway_module, "websockets", module)
    try:
        await session.next_event()
        with pytest.raises(GatewayError):
            await session.next_event()
        await session.next_event()
    finally:
        await session.close()

    second_sent = module.sockets[1].sent
    assert second_sent[0]["op"] == 2
    assert {"op": 1, "d": None} in second_sent
    assert {"op": 1, "d": 7} not in second_sent


@pytest.mark.anyio
async def test_missing_heartbeat_ack_drops_the_connection(
    session: DiscordGatewaySession, monkeypatch: pytest.MonkeyPatch
) -> None:
    module = _FakeWebSocketModule([[_hello(interval_ms=20)]])
    monkeypatch.setattr(gateway_module, "websockets", module)

    with pytest.raises(GatewayError) as excinfo:
        await session.next_event()

    assert excinfo.value.fatal is False
    assert "heartbeat" in str(excinfo.value)
    socket = module.sockets[0]
    assert socket.closed is True
    assert {"op": 1, "d": None} in socket.sent
    assert session.connected is False


def test_decode_frame_requires_op_code() -> None:
    with pytest.raises(GatewayError):
        decode_frame('{"t": "READY"}')
    with pytest.raises(GatewayError):
        decode_frame("[1, 2]")
    frame = decode_frame(b'{"op": 0, "t": "READY", "s": 3, "d": {}}')
    assert (frame.op, frame.event_name, frame.sequence, frame.data) == (0, "READY", 3, {})


def test_reconnect_delay_doubles_with_jitter_and_caps() -> None:
    assert reconnect_delay(0, jitter=lambda low, _high: low) == pytest.approx(0.8)
    assert reconnect_delay(0, jitter=lambda _low, high: high) == pytest.approx(1.2)
    assert reconnect_delay(2, jitter=lambda _low, _high: 1.0) == pytest.approx(4.0)
    assert reconnect_delay(50) == 30.0
