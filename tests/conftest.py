import asyncio
import json

import pytest

from juju_client.config import ClientSettings
from juju_client.models import Credentials
from juju_client.services import ControllerService
from juju_client.transport import TransportState

FACADES = {
    "AllModelWatcher": [2],
    "Bundle": [1],
    "Cloud": [1],
    "Controller": [3],
    "MigrationTarget": [1],
    "ModelManager": [2],
    "Pinger": [1],
    "UserManager": [1],
}


class SocketStub:
    """In-memory transport recording what the client sends."""

    def __init__(self):
        self.on_message = None
        self.state = TransportState.OPEN
        self.messages = []
        self.close_count = 0

    def send(self, message):
        self.messages.append(json.loads(message))

    async def close(self):
        self.close_count += 1
        self.state = TransportState.CLOSED

    def last_message(self, back=1):
        return self.messages[-back]

    def msg(self, payload):
        self.on_message(json.dumps(payload))


class FakeWebSocket:
    """Server side of a websocket connection, fed frame by frame."""

    def __init__(self):
        self.sent = []
        self.closed = False
        self._incoming = asyncio.Queue()

    def feed(self, frame):
        self._incoming.put_nowait(frame)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._incoming.get()
        if frame is None:
            raise StopAsyncIteration
        return frame

    async def send(self, message):
        self.sent.append(message)

    async def close(self):
        self.closed = True


async def settle(rounds=5):
    """Let scheduled tasks run until they block on a response."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def conn():
    return SocketStub()


@pytest.fixture
def settings():
    return ClientSettings(controller_url="wss://example.com/api", watch_all=False)


@pytest.fixture
def service(conn, settings):
    service = ControllerService(
        conn,
        settings=settings,
        credentials=Credentials(user="user", password="password"),
        facades=FACADES,
    )
    return service
