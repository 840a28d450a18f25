from __future__ import annotations

import logging
from typing import Any, Iterable

from juju_client.errors import JujuClientError

logger = logging.getLogger(__name__)


class FacadeError(JujuClientError):
    pass


class FacadeRegistry:
    def __init__(self, facades: dict[str, Iterable[int]] | None = None):
        self._facades: dict[str, tuple[int, ...]] = {}
        if facades:
            self.set(facades)

    def set(self, facades: dict[str, Iterable[int]]) -> None:
        self._facades = {name: tuple(sorted(set(versions))) for name, versions in facades.items()}

    def replace(self, facades: list[dict[str, Any]] | None) -> None:
        """Replace the whole table with the list sent in a login response."""
        table: dict[str, tuple[int, ...]] = {}
        for entry in facades or []:
            name = entry.get("name")
            if not name:
                continue
            table[name] = tuple(sorted(set(entry.get("versions") or [])))
        self._facades = table
        logger.debug("Negotiated %d facade(s)", len(table))

    def as_dict(self) -> dict[str, list[int]]:
        return {name: list(versions) for name, versions in self._facades.items()}

    def supports(self, name: str) -> bool:
        return bool(self._facades.get(name))

    def find_version(self, name: str, preferred_version: int | None = None) -> int | None:
        versions = self._facades.get(name)
        if not versions:
            return None
        if preferred_version is None:
            return versions[-1]
        if preferred_version in versions:
            return preferred_version
        return None

    def resolve(self, name: str, preferred_version: int | None = None) -> int:
        version = self.find_version(name, preferred_version)
        if version is None:
            if preferred_version is None:
                raise FacadeError(f"Facade {name} is not supported")
            raise FacadeError(f"Facade {name} version {preferred_version} is not supported")
        return version
