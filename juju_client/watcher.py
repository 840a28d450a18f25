from __future__ import annotations

import asyncio
import logging
from typing import Any

from juju_client.errors import RemoteError
from juju_client.events import DeltaEvent, Signal
from juju_client.facades import FacadeError, FacadeRegistry
from juju_client.models import Delta, WatcherHandle
from juju_client.rpc import RequestDispatcher

logger = logging.getLogger(__name__)

# Raw entity kinds sent by the controller and the names the model layer uses.
ENTITY_KIND_ALIASES: dict[str, str] = {
    "annotation": "annotationInfo",
    "application": "applicationInfo",
    "machine": "machineInfo",
    "relation": "relationInfo",
    "remoteapplication": "remoteApplicationInfo",
    "service": "serviceInfo",
    "unit": "unitInfo",
}


def translate_delta(raw: Any) -> Delta:
    if not isinstance(raw, (list, tuple)) or len(raw) != 3 or not isinstance(raw[0], str):
        raise ValueError(f"malformed delta: {raw!r}")
    entity_kind, change_kind, payload = raw
    return Delta(ENTITY_KIND_ALIASES.get(entity_kind, entity_kind), change_kind, payload)


class WatcherStream:
    """Registers an all-watcher and keeps fetching its delta batches.

    Exactly one ``Next`` call is outstanding at any time; the following one is
    only sent once the previous batch has been emitted on ``on_delta``.
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        facades: FacadeRegistry,
        watch_facade: str = "Client",
        watch_operation: str = "WatchAll",
        next_facade: str = "AllWatcher",
        next_operation: str = "Next",
    ):
        self._dispatcher = dispatcher
        self._facades = facades
        self._watch_facade = watch_facade
        self._watch_operation = watch_operation
        self._next_facade = next_facade
        self._next_operation = next_operation
        self._handle: WatcherHandle | None = None
        self._task: asyncio.Task | None = None
        self.on_delta: Signal[DeltaEvent] = Signal("delta")

    @property
    def handle(self) -> WatcherHandle | None:
        return self._handle

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task | None:
        if self.running:
            return self._task
        try:
            self._facades.resolve(self._watch_facade)
        except FacadeError as error:
            logger.warning("Not watching changes: %s", error)
            return None
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._handle = None

    async def watch_all(self) -> WatcherHandle:
        version = self._facades.resolve(self._watch_facade)
        response = await self._dispatcher.call(self._watch_facade, self._watch_operation, version)
        self._handle = WatcherHandle(id=response.get("watcher-id"))
        logger.info("Watching changes with watcher %s", self._handle.id)
        return self._handle

    async def next(self) -> list[Delta]:
        if self._handle is None:
            raise RuntimeError("watch_all must succeed before fetching changes")
        version = self._facades.resolve(self._next_facade)
        response = await self._dispatcher.call(
            self._next_facade,
            self._next_operation,
            version,
            entity_id=self._handle.id,
        )
        deltas: list[Delta] = []
        for raw in response.get("deltas") or []:
            try:
                deltas.append(translate_delta(raw))
            except ValueError as error:
                logger.warning("Skipping delta: %s", error)
        self.on_delta.emit(DeltaEvent(deltas=deltas))
        return deltas

    async def run(self) -> None:
        try:
            await self.watch_all()
            while True:
                await self.next()
        except (RemoteError, FacadeError) as error:
            logger.error("Change stream stopped: %s", error)
        except Exception:
            logger.exception("Change stream failed")
