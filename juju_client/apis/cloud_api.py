from __future__ import annotations

from typing import Any

from juju_client import tags
from juju_client.apis.base import FacadeApi, single_result, zip_results
from juju_client.errors import RemoteError
from juju_client.models import Cloud, CloudCredential, CloudRegion, ItemError


class CloudApi(FacadeApi):
    facade = "Cloud"

    async def list_clouds(self) -> dict[str, Cloud]:
        response = await self._call("Clouds")
        clouds = response.get("clouds") or {}
        return {
            tags.strip_prefix(tag, tags.CLOUD_PREFIX): _cloud(data or {})
            for tag, data in clouds.items()
        }

    async def get_clouds(self, names: list[str]) -> dict[str, Cloud | ItemError]:
        params = tags.entities([tags.cloud_tag(name) for name in names])
        response = await self._call("Cloud", params)
        return zip_results(names, response, lambda entry: _cloud(entry.get("cloud") or {}))

    async def get_default_cloud_name(self) -> str:
        response = await self._call("DefaultCloud")
        error = response.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise RemoteError(str(message))
        return tags.strip_prefix(response.get("result"), tags.CLOUD_PREFIX)

    async def get_cloud_credential_names(
        self,
        user_clouds: list[tuple[str, str]],
    ) -> dict[tuple[str, str], list[str] | ItemError]:
        """Names of the credentials each (user, cloud) pair owns.

        User names are sent as given, without adding a domain.
        """
        keys = [(user, cloud) for user, cloud in user_clouds]
        params = {
            "user-clouds": [
                {"user-tag": tags.user_tag(user), "cloud-tag": tags.cloud_tag(cloud)}
                for user, cloud in keys
            ]
        }
        response = await self._call("UserCredentials", params)
        return zip_results(
            keys,
            response,
            lambda entry: [
                tags.strip_prefix(tag, tags.CREDENTIAL_PREFIX) for tag in entry.get("result") or []
            ],
        )

    async def get_cloud_credentials(self, names: list[str]) -> dict[str, CloudCredential | ItemError]:
        params = tags.entities([tags.credential_tag(name) for name in names])
        response = await self._call("Credential", params)
        return zip_results(names, response, lambda entry: _credential(entry.get("result") or {}))

    async def update_cloud_credential(self, name: str, auth_type: str, attrs: dict[str, Any]) -> None:
        params = {
            "credentials": [
                {
                    "tag": tags.credential_tag(name),
                    "credential": {"auth-type": auth_type, "attrs": attrs},
                }
            ]
        }
        response = await self._call("UpdateCredentials", params)
        single_result(response)

    async def revoke_cloud_credential(self, name: str) -> None:
        response = await self._call("RevokeCredentials", tags.entities([tags.credential_tag(name)]))
        single_result(response)


def _cloud(data: dict[str, Any]) -> Cloud:
    regions = data.get("regions")
    return Cloud(
        cloud_type=str(data.get("type") or ""),
        auth_types=list(data.get("auth-types") or []),
        endpoint=str(data.get("endpoint") or ""),
        identity_endpoint=str(data.get("identity-endpoint") or ""),
        storage_endpoint=str(data.get("storage-endpoint") or ""),
        regions=[_region(region) for region in regions] if regions is not None else None,
    )


def _region(data: dict[str, Any]) -> CloudRegion:
    return CloudRegion(
        name=str(data.get("name") or ""),
        endpoint=str(data.get("endpoint") or ""),
        identity_endpoint=str(data.get("identity-endpoint") or ""),
        storage_endpoint=str(data.get("storage-endpoint") or ""),
    )


def _credential(data: dict[str, Any]) -> CloudCredential:
    return CloudCredential(
        auth_type=str(data.get("auth-type") or ""),
        attrs=dict(data.get("attrs") or {}),
        redacted=list(data.get("redacted") or []),
    )
