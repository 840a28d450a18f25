from __future__ import annotations

import json
from typing import Any, Callable, Sequence, TypeVar

from juju_client.errors import InvalidResultsError, RemoteError
from juju_client.facades import FacadeRegistry
from juju_client.models import ItemError
from juju_client.rpc import RequestDispatcher

KeyT = TypeVar("KeyT")
ValueT = TypeVar("ValueT")


def dump_results(results: Any) -> str:
    return json.dumps(results, separators=(",", ":"), sort_keys=True)


def item_error(entry: dict[str, Any]) -> str | None:
    error = entry.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


def check_results(response: dict[str, Any], expected: int) -> list[dict[str, Any]]:
    results = response.get("results") or []
    if len(results) != expected:
        raise InvalidResultsError(f"invalid results from Juju: {dump_results(results)}")
    return results


def zip_results(
    keys: Sequence[KeyT],
    response: dict[str, Any],
    reshape: Callable[[dict[str, Any]], ValueT],
) -> dict[KeyT, ValueT | ItemError]:
    """Pair each requested key with its positional entry in ``results``."""
    results = check_results(response, len(keys))
    bulk: dict[KeyT, ValueT | ItemError] = {}
    for key, entry in zip(keys, results):
        message = item_error(entry)
        bulk[key] = ItemError(message) if message is not None else reshape(entry)
    return bulk


def single_result(response: dict[str, Any]) -> None:
    """Raise the per-item error of a one-entity bulk call, if any."""
    entry = check_results(response, 1)[0]
    message = item_error(entry)
    if message is not None:
        raise RemoteError(message)


class FacadeApi:
    facade: str = ""

    def __init__(self, dispatcher: RequestDispatcher, facades: FacadeRegistry):
        self._dispatcher = dispatcher
        self._facades = facades

    async def _call(
        self,
        operation: str,
        params: dict[str, Any] | None = None,
        version: int | None = None,
    ) -> dict[str, Any]:
        resolved = self._facades.resolve(self.facade, version)
        return await self._dispatcher.call(self.facade, operation, resolved, params)
