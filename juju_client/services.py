from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from juju_client.apis import BundleApi, BundleChangesError, BundleServiceClient, CloudApi, ModelManagerApi
from juju_client.auth import AuthenticationError, AuthSession, CredentialCache, Discharger
from juju_client.config import ClientSettings
from juju_client.events import DeltaEvent, LoginEvent, Signal
from juju_client.facades import FacadeRegistry
from juju_client.http import HttpClient
from juju_client.logging_utils import configure_logging
from juju_client.models import (
    AuthState,
    Cloud,
    CloudCredential,
    CreatedModel,
    Credentials,
    ItemError,
    ModelInfo,
    ModelSummary,
)
from juju_client.rpc import RequestDispatcher
from juju_client.transport import Transport, WebSocketTransport
from juju_client.watcher import WatcherStream

logger = logging.getLogger(__name__)


class ControllerService:
    """Client for one controller connection.

    Owns the request dispatcher, the negotiated facades, the authentication
    session, the change stream and the keep-alive pinger of a single
    transport. Once a login succeeds the pinger is started and, unless
    disabled in the settings, so is the change stream.
    """

    def __init__(
        self,
        transport: Transport,
        settings: ClientSettings | None = None,
        credentials: Credentials | None = None,
        facades: dict[str, list[int]] | None = None,
        cache: CredentialCache | None = None,
        bundle_service: BundleServiceClient | None = None,
    ):
        self._settings = settings or ClientSettings(controller_url="")
        self._transport = transport
        self._dispatcher = RequestDispatcher(transport)
        self._facades = FacadeRegistry(facades)
        self._auth = AuthSession(
            self._dispatcher,
            self._facades,
            credentials=credentials,
            default_domain=self._settings.default_domain,
            login_version=self._settings.login_version,
            cache=cache,
        )
        self._watcher = WatcherStream(self._dispatcher, self._facades)
        self._model_manager_api = ModelManagerApi(self._dispatcher, self._facades)
        self._cloud_api = CloudApi(self._dispatcher, self._facades)
        self._bundle_api = BundleApi(self._dispatcher, self._facades)
        self._bundle_service = bundle_service
        self._pinger: asyncio.TimerHandle | None = None

        self._auth.on_login.connect(self._handle_login)

    @classmethod
    async def open(cls, settings: ClientSettings) -> "ControllerService":
        configure_logging(settings.log_level)
        transport = WebSocketTransport(settings.controller_url)
        await transport.connect()

        cache = CredentialCache(settings.credentials_cache_path) if settings.credentials_cache_path else None
        credentials = Credentials(user=settings.user, password=settings.password) if settings.user else None

        bundle_service = None
        if settings.bundle_service_url:
            http_client = HttpClient(
                settings.bundle_service_url,
                timeout_seconds=settings.timeout_seconds,
                retry_attempts=settings.retry_attempts,
            )
            bundle_service = BundleServiceClient(http_client)

        return cls(
            transport,
            settings=settings,
            credentials=credentials,
            cache=cache,
            bundle_service=bundle_service,
        )

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def dispatcher(self) -> RequestDispatcher:
        return self._dispatcher

    @property
    def facades(self) -> FacadeRegistry:
        return self._facades

    @property
    def watcher(self) -> WatcherStream:
        return self._watcher

    @property
    def on_login(self) -> Signal[LoginEvent]:
        return self._auth.on_login

    @property
    def on_delta(self) -> Signal[DeltaEvent]:
        return self._watcher.on_delta

    @property
    def auth_state(self) -> AuthState:
        return self._auth.state

    @property
    def is_authenticated(self) -> bool:
        return self._auth.is_authenticated

    @property
    def failed_authentication(self) -> bool:
        return self._auth.failed_authentication

    @property
    def controller_access(self) -> str:
        return self._auth.controller_access

    @property
    def model_access(self) -> str:
        return self._auth.model_access

    @property
    def controller_tag(self) -> str:
        return self._auth.controller_tag

    def get_credentials(self) -> Credentials:
        return self._auth.get_credentials()

    def set_credentials(self, credentials: Credentials | None) -> None:
        self._auth.set_credentials(credentials)

    async def login(self) -> None:
        await self._auth.login()

    async def login_with_macaroon(self, discharger: Discharger) -> None:
        await self._auth.login_with_macaroon(discharger)

    def ping(self) -> asyncio.Future:
        version = self._facades.resolve("Pinger")
        future = self._dispatcher.call("Pinger", "Ping", version)
        future.add_done_callback(_log_ping_failure)
        return future

    async def close(self, callback: Callable[[], None] | None = None) -> None:
        if self._pinger is not None:
            self._pinger.cancel()
            self._pinger = None
        self._watcher.stop()
        self._auth.logged_out()
        self._dispatcher.close()
        await self._transport.close()
        if self._bundle_service is not None:
            self._bundle_service.close()
        if callback is not None:
            callback()

    async def destroy_models(self, model_ids: list[str]) -> dict[str, str | None]:
        return await self._model_manager_api.destroy_models(model_ids)

    async def model_info(self, model_ids: list[str]) -> list[ModelInfo]:
        return await self._model_manager_api.model_info(model_ids)

    async def list_models(self, owner: str) -> list[ModelSummary]:
        return await self._model_manager_api.list_models(owner)

    async def list_models_with_info(self) -> list[ModelInfo]:
        user = self._auth.get_credentials().user
        if not user:
            raise AuthenticationError("called without credentials")
        return await self._model_manager_api.list_models_with_info(user, self._settings.default_domain)

    async def create_model(
        self,
        name: str,
        user: str,
        config: dict[str, Any] | None = None,
        cloud: str | None = None,
        region: str | None = None,
        credential: str | None = None,
    ) -> CreatedModel:
        return await self._model_manager_api.create_model(
            name,
            user,
            config=config,
            cloud=cloud,
            region=region,
            credential=credential,
            domain=self._settings.default_domain,
        )

    async def list_clouds(self) -> dict[str, Cloud]:
        return await self._cloud_api.list_clouds()

    async def get_clouds(self, names: list[str]) -> dict[str, Cloud | ItemError]:
        return await self._cloud_api.get_clouds(names)

    async def get_default_cloud_name(self) -> str:
        return await self._cloud_api.get_default_cloud_name()

    async def get_cloud_credential_names(
        self,
        user_clouds: list[tuple[str, str]],
    ) -> dict[tuple[str, str], list[str] | ItemError]:
        return await self._cloud_api.get_cloud_credential_names(user_clouds)

    async def get_cloud_credentials(self, names: list[str]) -> dict[str, CloudCredential | ItemError]:
        return await self._cloud_api.get_cloud_credentials(names)

    async def update_cloud_credential(self, name: str, auth_type: str, attrs: dict[str, Any]) -> None:
        await self._cloud_api.update_cloud_credential(name, auth_type, attrs)

    async def revoke_cloud_credential(self, name: str) -> None:
        await self._cloud_api.revoke_cloud_credential(name)

    async def get_bundle_changes(self, yaml: str | None) -> list[Any]:
        """Compute the changes needed to deploy a bundle.

        Before authentication the HTTP bundle service is used instead of the
        controller.
        """
        if self.is_authenticated:
            return await self._bundle_api.get_changes(yaml)
        if self._bundle_service is None:
            raise BundleChangesError(["not authenticated and no bundle service configured"])
        return await asyncio.to_thread(self._bundle_service.get_changes_from_yaml, yaml or "")

    def _handle_login(self, event: LoginEvent) -> None:
        if event.error is not None:
            return
        self._start_pinger()
        if self._settings.watch_all:
            self._watcher.start()

    def _start_pinger(self) -> None:
        if self._pinger is not None:
            self._pinger.cancel()
        loop = asyncio.get_running_loop()
        self._pinger = loop.call_later(self._settings.ping_interval_seconds, self._ping_tick)

    def _ping_tick(self) -> None:
        self._pinger = None
        if not self.is_authenticated:
            return
        if self._facades.supports("Pinger"):
            self.ping()
        self._start_pinger()


def _log_ping_failure(future: asyncio.Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.warning("Ping failed: %s", error)
