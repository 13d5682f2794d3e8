from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import random
import sys
from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from .constants import DISCORD_GATEWAY_URL
from .errors import DiscordPermanentError, GatewayError
from .rest import DiscordRestClient

# Authentication failed, invalid shard, sharding required, invalid API
# version, invalid intents, disallowed intents.
FATAL_CLOSE_CODES = frozenset({4004, 4010, 4011, 4012, 4013, 4014})

OP_DISPATCH = 0
OP_HEARTBEAT = 1
OP_IDENTIFY = 2
OP_RECONNECT = 7
OP_INVALID_SESSION = 9
OP_HELLO = 10
OP_HEARTBEAT_ACK = 11

RECONNECT_BASE_SECONDS = 1.0
RECONNECT_MAX_SECONDS = 30.0
IDENTIFY_CLIENT_NAME = "select-menu-bot"


@dataclass(frozen=True)
class GatewayEvent:
    """A dispatch (op 0) frame: event name plus its payload."""

    kind: str
    payload: dict[str, Any]
    sequence: Optional[int] = None


class Frame(NamedTuple):
    op: int
    data: Any
    sequence: Optional[int]
    event_name: Optional[str]


def decode_frame(message: str | bytes) -> Frame:
    try:
        payload = json.loads(message)
    except ValueError as exc:
        raise GatewayError(f"Discord gateway sent an undecodable frame: {exc}") from exc
    op = payload.get("op") if isinstance(payload, dict) else None
    if not isinstance(op, int):
        raise GatewayError("Discord gateway frame has no op code")
    sequence = payload.get("s")
    event_name = payload.get("t")
    return Frame(
        op=op,
        data=payload.get("d"),
        sequence=sequence if isinstance(sequence, int) else None,
        event_name=event_name if isinstance(event_name, str) else None,
    )


def reconnect_delay(
    attempt: int,
    *,
    jitter: Callable[[float, float], float] = random.uniform,
) -> float:
    """Doubling delay from one second, capped at thirty, scaled by +/-20%."""
    delay = RECONNECT_BASE_SECONDS * 2 ** min(max(attempt, 0), 10)
    return min(RECONNECT_MAX_SECONDS, delay * jitter(0.8, 1.2))


def _close_code(exc: ConnectionClosed) -> Optional[int]:
    received = exc.rcvd
    return received.code if received is not None else None


class DiscordGatewaySession:
    """Single-shard gateway connection read one event at a time.

    ``next_event`` (re)connects lazily, answers HELLO/heartbeat frames itself
    and returns only dispatch events. Every read failure is raised as a
    ``GatewayError``; once one of them is fatal, all later reads fail the same
    way without touching the network.
    """

    def __init__(
        self,
        *,
        bot_token: str,
        intents: int,
        logger: logging.Logger,
        gateway_url: str | None = None,
        rest_client: Optional[DiscordRestClient] = None,
    ) -> None:
        self._bot_token = bot_token
        self._intents = intents
        self._logger = logger
        self._gateway_url = gateway_url
        self._rest = rest_client
        self._sequence: Optional[int] = None
        self._ack_pending = False
        self._missed_ack = False
        self._reconnect_attempt = 0
        self._fatal_error: Optional[GatewayError] = None
        self._heartbeat_task: Optional[asyncio.Task[None]] = None
        self._websocket: Any = None

    @property
    def connected(self) -> bool:
        return self._websocket is not None

    async def close(self) -> None:
        await self._drop_connection()

    async def next_event(self) -> GatewayEvent:
        if self._fatal_error is not None:
            raise self._fatal_error
        try:
            return await self._read_next_event()
        except GatewayError as exc:
            await self._drop_connection()
            if exc.fatal:
                self._fatal_error = exc
            raise
        except DiscordPermanentError as exc:
            await self._drop_connection()
            self._fatal_error = GatewayError(
                f"Discord gateway rejected credentials: {exc}", fatal=True
            )
            raise self._fatal_error from exc
        except ConnectionClosed as exc:
            missed_ack = self._missed_ack
            await self._drop_connection()
            close_code = _close_code(exc)
            if close_code in FATAL_CLOSE_CODES:
                self._fatal_error = GatewayError(
                    f"Discord gateway closed with fatal code={close_code}",
                    fatal=True,
                    close_code=close_code,
                )
                raise self._fatal_error from exc
            if missed_ack:
                raise GatewayError(
                    "Discord gateway stopped acknowledging heartbeats",
                    close_code=close_code,
                ) from exc
            raise GatewayError(
                f"Discord gateway socket closed (code={close_code})",
                close_code=close_code,
            ) from exc
        except Exception as exc:
            await self._drop_connection()
            raise GatewayError(f"Discord gateway error: {exc}") from exc

    async def _read_next_event(self) -> GatewayEvent:
        if self._websocket is None:
            await self._connect()
        while True:
            frame = decode_frame(await self._websocket.recv())
            if frame.sequence is not None:
                self._sequence = frame.sequence

            if frame.op == OP_DISPATCH:
                if frame.event_name is None or not isinstance(frame.data, dict):
                    continue
                if frame.event_name == "READY":
                    self._reconnect_attempt = 0
                return GatewayEvent(
                    kind=frame.event_name, payload=frame.data, sequence=frame.sequence
                )
            if frame.op == OP_HEARTBEAT:
                await self._send_heartbeat(self._websocket)
            elif frame.op == OP_HEARTBEAT_ACK:
                self._ack_pending = False
            elif frame.op in (OP_RECONNECT, OP_INVALID_SESSION):
                raise GatewayError(
                    f"Discord gateway asked for a new session (op={frame.op})"
                )

    async def _connect(self) -> None:
        if self._reconnect_attempt > 0:
            delay = reconnect_delay(self._reconnect_attempt - 1)
            self._logger.info(
                "Reconnecting to Discord gateway in %.1fs (attempt %d)",
                delay,
                self._reconnect_attempt,
            )
            await asyncio.sleep(delay)
        self._reconnect_attempt += 1

        websocket = await websockets.connect(await self._gateway_endpoint())
        self._websocket = websocket

        hello = decode_frame(await websocket.recv())
        hello_data = hello.data if isinstance(hello.data, dict) else {}
        interval_ms = hello_data.get("heartbeat_interval")
        if (
            hello.op != OP_HELLO
            or not isinstance(interval_ms, (int, float))
            or interval_ms <= 0
        ):
            raise GatewayError("Discord gateway did not open with a usable HELLO")

        # A new session starts counting from scratch.
        self._sequence = None
        self._ack_pending = False
        self._missed_ack = False
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(websocket, interval_ms / 1000.0)
        )
        await websocket.send(json.dumps({"op": OP_IDENTIFY, "d": self._identify_data()}))
        self._logger.info("Connected to Discord gateway")

    def _identify_data(self) -> dict[str, Any]:
        return {
            "token": self._bot_token,
            "intents": self._intents,
            "properties": {
                "os": sys.platform,
                "browser": IDENTIFY_CLIENT_NAME,
                "device": IDENTIFY_CLIENT_NAME,
            },
        }

    async def _gateway_endpoint(self) -> str:
        if self._gateway_url is not None:
            return self._gateway_url
        endpoint = DISCORD_GATEWAY_URL
        if self._rest is not None:
            url = (await self._rest.get_gateway_bot()).get("url")
            if isinstance(url, str) and url:
                endpoint = f"{url}?v=10&encoding=json"
        self._gateway_url = endpoint
        return endpoint

    async def _send_heartbeat(self, websocket: Any) -> None:
        await websocket.send(json.dumps({"op": OP_HEARTBEAT, "d": self._sequence}))

    async def _heartbeat_loop(self, websocket: Any, interval_seconds: float) -> None:
        # The first beat is jittered; every later one needs the previous ACK.
        await asyncio.sleep(interval_seconds * random.random())
        while True:
            if self._ack_pending:
                self._missed_ack = True
                self._logger.warning(
                    "Discord gateway missed a heartbeat ACK; closing connection"
                )
                await websocket.close()
                return
            self._ack_pending = True
            await self._send_heartbeat(websocket)
            await asyncio.sleep(interval_seconds)

    async def _drop_connection(self) -> None:
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, ConnectionClosed):
                await task
        websocket, self._websocket = self._websocket, None
        if websocket is not None:
            with contextlib.suppress(ConnectionClosed, OSError):
                await websocket.close()
