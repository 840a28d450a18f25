from __future__ import annotations

import asyncio
from enum import Enum
import logging
from typing import Callable, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from juju_client.errors import JujuClientError

logger = logging.getLogger(__name__)


class TransportError(JujuClientError):
    pass


class TransportState(Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class Transport(Protocol):
    """Bidirectional text channel the controller connection runs on.

    ``send`` is only meaningful while ``state`` is OPEN. Inbound frames are
    handed to ``on_message`` in arrival order on the event loop.
    """

    on_message: Callable[[str], None] | None

    @property
    def state(self) -> TransportState: ...

    def send(self, message: str) -> None: ...

    async def close(self) -> None: ...


class WebSocketTransport:
    def __init__(self, url: str, on_message: Callable[[str], None] | None = None):
        self._url = url
        self.on_message = on_message
        self._state = TransportState.CLOSED
        self._ws = None
        self._outgoing: asyncio.Queue[str] = asyncio.Queue()
        self._reader: asyncio.Task | None = None
        self._writer: asyncio.Task | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> TransportState:
        return self._state

    async def connect(self) -> None:
        if self._state is not TransportState.CLOSED:
            return

        self._state = TransportState.CONNECTING
        logger.info("Connecting to %s", self._url)
        try:
            self._ws = await websockets.connect(self._url)
        except (OSError, WebSocketException) as error:
            self._state = TransportState.CLOSED
            raise TransportError(f"Unable to connect to {self._url}: {error}") from error

        self._state = TransportState.OPEN
        self._reader = asyncio.create_task(self._read_loop())
        self._writer = asyncio.create_task(self._write_loop())
        logger.info("Connected to %s", self._url)

    def send(self, message: str) -> None:
        if self._state is not TransportState.OPEN:
            raise TransportError(f"Cannot send while transport is {self._state.value}")
        self._outgoing.put_nowait(message)

    async def close(self) -> None:
        if self._state in (TransportState.CLOSING, TransportState.CLOSED):
            return

        self._state = TransportState.CLOSING
        for task in (self._writer, self._reader):
            if task is not None and task is not asyncio.current_task():
                task.cancel()
        if self._ws is not None:
            await self._ws.close()
        self._ws = None
        self._reader = None
        self._writer = None
        self._state = TransportState.CLOSED
        logger.info("Disconnected from %s", self._url)

    async def _read_loop(self) -> None:
        try:
            async for frame in self._ws:
                if isinstance(frame, bytes):
                    frame = frame.decode("utf-8")
                if self.on_message is not None:
                    self.on_message(frame)
        except ConnectionClosed as error:
            logger.warning("Connection to %s closed: %s", self._url, error)
        finally:
            if self._state is TransportState.OPEN:
                self._state = TransportState.CLOSED
                if self._writer is not None:
                    self._writer.cancel()

    async def _write_loop(self) -> None:
        while True:
            message = await self._outgoing.get()
            try:
                await self._ws.send(message)
            except ConnectionClosed as error:
                logger.warning("Dropping outbound frame, connection closed: %s", error)
                self._state = TransportState.CLOSED
                return
