from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple


class AuthState(Enum):
    LOGGED_OUT = "logged_out"
    LOGIN_PENDING = "login_pending"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass(frozen=True)
class Credentials:
    user: str = ""
    password: str = ""
    macaroons: tuple[Any, ...] | None = None

    @property
    def is_empty(self) -> bool:
        return not self.user and not self.password and not self.macaroons


@dataclass(frozen=True)
class PendingCall:
    request_id: int
    facade: str
    operation: str
    version: int
    issued_at: float


@dataclass(frozen=True)
class WatcherHandle:
    id: str


class Delta(NamedTuple):
    entity_kind: str
    change_kind: str
    payload: Any


@dataclass(frozen=True)
class ItemError:
    """Failure reported by the controller for one entity of a bulk call."""

    message: str


@dataclass(frozen=True)
class ModelSummary:
    id: str
    name: str
    owner: str
    uuid: str
    last_connection: str | None = None


@dataclass(frozen=True)
class ModelInfo:
    id: str
    err: str | None = None
    name: str = ""
    series: str = ""
    provider: str = ""
    uuid: str = ""
    controller_uuid: str = ""
    life: str = ""
    owner: str = ""
    is_alive: bool = False
    is_controller: bool = False
    last_connection: str | None = None


@dataclass(frozen=True)
class CreatedModel:
    name: str
    uuid: str
    owner: str
    provider: str
    series: str
    cloud: str
    region: str
    credential: str


@dataclass(frozen=True)
class CloudRegion:
    name: str
    endpoint: str = ""
    identity_endpoint: str = ""
    storage_endpoint: str = ""


@dataclass(frozen=True)
class Cloud:
    cloud_type: str
    auth_types: list[str] = field(default_factory=list)
    endpoint: str = ""
    identity_endpoint: str = ""
    storage_endpoint: str = ""
    regions: list[CloudRegion] | None = None


@dataclass(frozen=True)
class CloudCredential:
    auth_type: str
    attrs: dict[str, Any] = field(default_factory=dict)
    redacted: list[str] = field(default_factory=list)
