from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from juju_client.errors import RemoteError
from juju_client.models import PendingCall
from juju_client.transport import Transport, TransportState

logger = logging.getLogger(__name__)


class RequestDispatcher:
    """Multiplexes request/response exchanges over one transport.

    Request ids start at 1 and only ever grow for the lifetime of the
    dispatcher. Responses are matched on ``request-id`` alone, so they may
    arrive in any order.

    A call made while the transport is not open is dropped: nothing is sent,
    nothing is tracked and the returned future never completes.
    """

    def __init__(self, transport: Transport):
        self._transport = transport
        self._counter = 0
        self._pending: dict[int, tuple[PendingCall, asyncio.Future]] = {}
        transport.on_message = self.dispatch_result

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def last_request_id(self) -> int:
        return self._counter

    @property
    def pending_calls(self) -> list[PendingCall]:
        return [call for call, _ in self._pending.values()]

    def next_request_id(self) -> int:
        self._counter += 1
        return self._counter

    def call(
        self,
        facade: str,
        operation: str,
        version: int,
        params: dict[str, Any] | None = None,
        entity_id: Any = None,
    ) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()

        if self._transport.state is not TransportState.OPEN:
            logger.warning(
                "Dropping %s.%s: transport is %s",
                facade,
                operation,
                self._transport.state.value,
            )
            return future

        request_id = self.next_request_id()
        message: dict[str, Any] = {
            "type": facade,
            "request": operation,
            "request-id": request_id,
            "version": version,
            "params": params if params is not None else {},
        }
        if entity_id is not None:
            message["id"] = entity_id

        pending = PendingCall(
            request_id=request_id,
            facade=facade,
            operation=operation,
            version=version,
            issued_at=time.monotonic(),
        )
        self._pending[request_id] = (pending, future)
        logger.debug("-> %s.%s v%s (request-id %s)", facade, operation, version, request_id)
        self._transport.send(json.dumps(message))
        return future

    def dispatch_result(self, raw: str | dict[str, Any]) -> None:
        if isinstance(raw, dict):
            message = raw
        else:
            try:
                message = json.loads(raw)
            except ValueError:
                logger.error("Discarding undecodable frame: %.200s", raw)
                return

        if not isinstance(message, dict):
            logger.error("Discarding unexpected frame: %.200s", raw)
            return

        request_id = message.get("request-id")
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            logger.error("Discarding frame with invalid request-id: %.200s", raw)
            return
        entry = self._pending.pop(request_id, None)
        if entry is None:
            logger.debug("Ignoring message with unknown request-id %r", request_id)
            return

        pending, future = entry
        if future.done():
            return

        error = message.get("error")
        if error:
            logger.debug("<- %s.%s failed: %s", pending.facade, pending.operation, error)
            future.set_exception(RemoteError(str(error)))
            return

        response = message.get("response")
        future.set_result(response if response is not None else {})

    def close(self) -> None:
        if self._pending:
            logger.debug("Orphaning %d pending call(s)", len(self._pending))
        self._pending.clear()
