from __future__ import annotations

import logging
from typing import Any

from juju_client.apis.base import FacadeApi
from juju_client.errors import JujuClientError, RemoteError
from juju_client.http import ApiHttpError, HttpClient

logger = logging.getLogger(__name__)


class BundleChangesError(JujuClientError):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors) or "unable to compute bundle changes")
        self.errors = list(errors)


class BundleApi(FacadeApi):
    facade = "Bundle"

    async def get_changes(self, yaml: str | None) -> list[Any]:
        try:
            response = await self._call("GetChanges", {"yaml": yaml})
        except RemoteError as error:
            raise BundleChangesError([str(error)]) from error

        errors = response.get("errors") or []
        if errors:
            raise BundleChangesError([str(error) for error in errors])
        return list(response.get("changes") or [])


class BundleServiceClient:
    """Computes bundle changes over HTTP, for use before logging in."""

    changes_path = "/bundlechanges/fromYAML"

    def __init__(self, http_client: HttpClient):
        self._http_client = http_client

    def get_changes_from_yaml(self, yaml: str) -> list[Any]:
        try:
            response = self._http_client.post_json(self.changes_path, {"bundle": yaml})
        except ApiHttpError as error:
            logger.warning("Bundle service request failed: %s", error)
            raise BundleChangesError([str(error)]) from error

        error = response.get("error") or response.get("errors")
        if error:
            errors = error if isinstance(error, list) else [error]
            raise BundleChangesError([str(item) for item in errors])
        return list(response.get("changes") or [])

    def close(self) -> None:
        self._http_client.close()
