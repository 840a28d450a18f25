from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, Generic, TypeVar

from juju_client.models import Delta

logger = logging.getLogger(__name__)

EventT = TypeVar("EventT")


@dataclass(frozen=True)
class LoginEvent:
    error: str | None = None


@dataclass(frozen=True)
class DeltaEvent:
    deltas: list[Delta] = field(default_factory=list)


class Signal(Generic[EventT]):
    """Observer list for a single event type.

    Handlers run synchronously, in subscription order, on the thread that
    emits. A handler that raises is logged and the remaining handlers still
    run.
    """

    def __init__(self, name: str):
        self._name = name
        self._handlers: list[Callable[[EventT], None]] = []

    @property
    def name(self) -> str:
        return self._name

    def connect(self, handler: Callable[[EventT], None]) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def disconnect(self, handler: Callable[[EventT], None]) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, event: EventT) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Error in %s handler %r", self._name, handler)

    def __len__(self) -> int:
        return len(self._handlers)
