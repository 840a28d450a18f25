from __future__ import annotations

from dataclasses import replace
import json
import logging
import os
from typing import Any, Protocol, Sequence

from msal_extensions import FilePersistence, FilePersistenceWithDataProtection
from msal_extensions.persistence import PersistenceNotFound

from juju_client import tags
from juju_client.errors import JujuClientError, RemoteError
from juju_client.events import LoginEvent, Signal
from juju_client.facades import FacadeRegistry
from juju_client.models import AuthState, Credentials
from juju_client.rpc import RequestDispatcher

logger = logging.getLogger(__name__)

LOGIN_FACADE = "Admin"
LOGIN_OPERATION = "Login"
UNSUPPORTED_RELEASE = "authentication failed: use a proper Juju 2 release"


class AuthenticationError(JujuClientError):
    pass


class DischargeError(JujuClientError):
    pass


class Discharger(Protocol):
    """Third party that turns a discharge-required macaroon into usable ones."""

    async def discharge(self, macaroon: Any) -> Sequence[Any]: ...


class CredentialCache:
    """On-disk credentials, encrypted where the platform supports it.

    Without an encrypting backend only the user name and macaroons are
    written; the password is never stored in plain text.
    """

    def __init__(self, path: str):
        self._path = path
        self._persistence = self._build_persistence(path)
        if not self.encrypted:
            logger.info("Credentials cache at %s is not encrypted; passwords will not be stored", path)

    @property
    def encrypted(self) -> bool:
        return bool(self._persistence.is_encrypted)

    @staticmethod
    def _build_persistence(path: str):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            return FilePersistenceWithDataProtection(path)
        except Exception:
            return FilePersistence(path)

    def load(self) -> Credentials | None:
        try:
            raw = self._persistence.load()
        except PersistenceNotFound:
            return None
        if not raw:
            return None

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable credentials cache at %s", self._path)
            return None

        macaroons = data.get("macaroons")
        return Credentials(
            user=str(data.get("user") or ""),
            password=str(data.get("password") or ""),
            macaroons=tuple(macaroons) if macaroons is not None else None,
        )

    def save(self, credentials: Credentials) -> None:
        if credentials.is_empty:
            self.clear()
            return
        payload = {
            "user": credentials.user,
            "password": credentials.password if self.encrypted else "",
            "macaroons": list(credentials.macaroons) if credentials.macaroons is not None else None,
        }
        self._persistence.save(json.dumps(payload))

    def clear(self) -> None:
        self._persistence.save("")


class AuthSession:
    """Credentials and authentication state for one controller connection.

    Only one login may be in flight at a time; a login started while another
    is pending is ignored. Every login outcome is announced on ``on_login``.
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        facades: FacadeRegistry,
        credentials: Credentials | None = None,
        default_domain: str = tags.DEFAULT_DOMAIN,
        login_version: int = 3,
        cache: CredentialCache | None = None,
    ):
        self._dispatcher = dispatcher
        self._facades = facades
        self._default_domain = default_domain
        self._login_version = login_version
        self._cache = cache
        self._state = AuthState.LOGGED_OUT

        if credentials is None and cache is not None:
            credentials = cache.load()
        self._credentials = credentials or Credentials()

        self.on_login: Signal[LoginEvent] = Signal("login")
        self.failed_authentication = False
        self.controller_access = ""
        self.model_access = ""
        self.controller_tag = ""

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state is AuthState.AUTHENTICATED

    @property
    def login_pending(self) -> bool:
        return self._state is AuthState.LOGIN_PENDING

    def get_credentials(self) -> Credentials:
        return self._credentials

    def set_credentials(self, credentials: Credentials | None) -> None:
        self._credentials = credentials or Credentials()
        if self._cache is not None:
            self._cache.save(self._credentials)

    def reset_connection_attributes(self) -> None:
        self.controller_access = ""
        self.model_access = ""
        self.controller_tag = ""

    def logged_out(self) -> None:
        self._state = AuthState.LOGGED_OUT
        self.reset_connection_attributes()

    async def login(self) -> None:
        credentials = self._credentials
        if not credentials.user:
            logger.debug("Skipping login: no user stored")
            return
        if self.login_pending:
            logger.debug("Skipping login: another login is pending")
            return

        params: dict[str, Any] = {
            "auth-tag": tags.qualified_user_tag(credentials.user, self._default_domain),
        }
        if credentials.macaroons:
            params["macaroons"] = list(credentials.macaroons)
        else:
            params["credentials"] = credentials.password

        self._state = AuthState.LOGIN_PENDING
        try:
            try:
                response = await self._send_login(params)
            except RemoteError as error:
                self._fail_login(str(error))
                return

            if not isinstance(response.get("user-info"), dict):
                self._fail_login(UNSUPPORTED_RELEASE)
                return

            self._complete_login(response)
        finally:
            if self.login_pending:
                self._state = AuthState.FAILED

    async def login_with_macaroon(self, discharger: Discharger) -> None:
        """Log in with stored macaroons, discharging them once if required.

        Raises AuthenticationError when the controller refuses the login, the
        discharge fails or the response does not identify a user.
        """
        if self.login_pending:
            logger.debug("Skipping macaroon login: another login is pending")
            return

        self._state = AuthState.LOGIN_PENDING
        try:
            macaroons = self._credentials.macaroons
            response = await self._send_macaroons(macaroons)

            token = response.get("discharge-required")
            if token:
                try:
                    discharged = await discharger.discharge(token)
                except Exception as error:
                    raise self._fail_macaroon_login(f"macaroon discharge failed: {error}") from error
                macaroons = tuple(discharged)
                self.set_credentials(replace(self._credentials, macaroons=macaroons))
                response = await self._send_macaroons(macaroons)

            user_info = response.get("user-info")
            if not isinstance(user_info, dict):
                raise self._fail_macaroon_login(UNSUPPORTED_RELEASE)

            identity = tags.strip_prefix(user_info.get("identity"), tags.USER_PREFIX)
            user = tags.qualify_user(identity, self._default_domain) if identity else ""
            self.set_credentials(Credentials(user=user, password="", macaroons=macaroons))
            self._complete_login(response)
        finally:
            if self.login_pending:
                self._state = AuthState.FAILED

    async def _send_login(self, params: dict[str, Any]) -> dict[str, Any]:
        return await self._dispatcher.call(
            LOGIN_FACADE,
            LOGIN_OPERATION,
            self._login_version,
            params,
        )

    async def _send_macaroons(self, macaroons: Sequence[Any] | None) -> dict[str, Any]:
        params: dict[str, Any] = {"macaroons": list(macaroons)} if macaroons else {}
        try:
            return await self._send_login(params)
        except RemoteError as error:
            raise self._fail_macaroon_login(f"authentication failed: {error}") from error

    def _complete_login(self, response: dict[str, Any]) -> None:
        user_info = response.get("user-info") or {}
        self._facades.replace(response.get("facades"))
        self.controller_access = str(user_info.get("controller-access") or "")
        self.model_access = str(user_info.get("model-access") or "")
        self.controller_tag = str(response.get("controller-tag") or "")
        self.failed_authentication = False
        self._state = AuthState.AUTHENTICATED
        logger.info("Logged in as %s", self._credentials.user or "<anonymous>")
        self.on_login.emit(LoginEvent(error=None))

    def _fail_login(self, message: str) -> None:
        self.set_credentials(Credentials())
        self._state = AuthState.FAILED
        self.failed_authentication = True
        logger.warning("Login failed: %s", message)
        self.on_login.emit(LoginEvent(error=message))

    def _fail_macaroon_login(self, message: str) -> AuthenticationError:
        self._state = AuthState.FAILED
        self.failed_authentication = True
        logger.warning("Macaroon login failed: %s", message)
        self.on_login.emit(LoginEvent(error=message))
        return AuthenticationError(message)
