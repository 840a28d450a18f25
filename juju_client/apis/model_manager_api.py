from __future__ import annotations

from dataclasses import replace
from typing import Any

from juju_client import tags
from juju_client.apis.base import FacadeApi, check_results, item_error
from juju_client.models import CreatedModel, ModelInfo, ModelSummary


class ModelManagerApi(FacadeApi):
    facade = "ModelManager"

    async def destroy_models(self, model_ids: list[str]) -> dict[str, str | None]:
        """Destroy the given models, mapping each id to None or its error."""
        params = tags.entities([tags.model_tag(model_id) for model_id in model_ids])
        response = await self._call("DestroyModels", params)
        results = check_results(response, len(model_ids))
        return {model_id: item_error(entry) for model_id, entry in zip(model_ids, results)}

    async def model_info(self, model_ids: list[str]) -> list[ModelInfo]:
        params = tags.entities([tags.model_tag(model_id) for model_id in model_ids])
        response = await self._call("ModelInfo", params)
        results = check_results(response, len(model_ids))

        models: list[ModelInfo] = []
        for model_id, entry in zip(model_ids, results):
            message = item_error(entry)
            if message is not None:
                models.append(ModelInfo(id=model_id, err=message))
                continue
            models.append(_model_info(model_id, entry.get("result") or {}))
        return models

    async def list_models(self, owner: str) -> list[ModelSummary]:
        """List models accessible by ``owner``, whose tag is sent unqualified."""
        return await self._list_models(tags.user_tag(owner))

    async def list_models_with_info(self, user: str, domain: str = tags.DEFAULT_DOMAIN) -> list[ModelInfo]:
        """List the models of ``user`` (domain-qualified) with full details.

        Details come from a second ModelInfo call; the last connection time
        from the listing is merged into each result.
        """
        summaries = await self._list_models(tags.qualified_user_tag(user, domain))
        infos = await self.model_info([summary.uuid for summary in summaries])
        return [
            replace(info, last_connection=summary.last_connection)
            for summary, info in zip(summaries, infos)
        ]

    async def create_model(
        self,
        name: str,
        user: str,
        config: dict[str, Any] | None = None,
        cloud: str | None = None,
        region: str | None = None,
        credential: str | None = None,
        domain: str = tags.DEFAULT_DOMAIN,
    ) -> CreatedModel:
        """Create a model owned by ``user`` (domain-qualified).

        Empty arguments are left out of the request.
        """
        params: dict[str, Any] = {
            "name": name,
            "owner-tag": tags.qualified_user_tag(user, domain),
        }
        if config:
            params["config"] = config
        if cloud:
            params["cloud-tag"] = tags.cloud_tag(cloud)
        if region:
            params["region"] = region
        if credential:
            params["credential"] = tags.credential_tag(credential)

        response = await self._call("CreateModel", params)
        return CreatedModel(
            name=str(response.get("name") or ""),
            uuid=str(response.get("uuid") or ""),
            owner=tags.strip_prefix(response.get("owner-tag"), tags.USER_PREFIX),
            provider=str(response.get("provider-type") or ""),
            series=str(response.get("default-series") or ""),
            cloud=tags.strip_prefix(response.get("cloud-tag"), tags.CLOUD_PREFIX),
            region=str(response.get("cloud-region") or ""),
            credential=tags.strip_prefix(response.get("cloud-credential-tag"), tags.CREDENTIAL_PREFIX),
        )

    async def _list_models(self, owner_tag: str) -> list[ModelSummary]:
        response = await self._call("ListModels", {"tag": owner_tag})
        summaries: list[ModelSummary] = []
        for entry in response.get("user-models") or []:
            model = entry.get("model") or {}
            uuid = str(model.get("uuid") or "")
            summaries.append(
                ModelSummary(
                    id=uuid,
                    name=str(model.get("name") or ""),
                    owner=tags.strip_prefix(model.get("owner-tag"), tags.USER_PREFIX),
                    uuid=uuid,
                    last_connection=entry.get("last-connection"),
                )
            )
        return summaries


def _model_info(model_id: str, result: dict[str, Any]) -> ModelInfo:
    name = str(result.get("name") or "")
    life = str(result.get("life") or "")
    return ModelInfo(
        id=model_id,
        name=name,
        series=str(result.get("default-series") or ""),
        provider=str(result.get("provider-type") or ""),
        uuid=str(result.get("uuid") or ""),
        controller_uuid=str(result.get("controller-uuid") or ""),
        life=life,
        owner=tags.strip_prefix(result.get("owner-tag"), tags.USER_PREFIX),
        is_alive=life == "alive",
        is_controller=name == "controller",
    )