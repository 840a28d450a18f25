from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path


class ConfigurationError(ValueError):
    pass


@dataclass(frozen=True)
class ClientSettings:
    controller_url: str
    user: str = ""
    password: str = ""
    default_domain: str = "local"
    login_version: int = 3
    ping_interval_seconds: float = 30.0
    watch_all: bool = True
    bundle_service_url: str = ""
    timeout_seconds: int = 45
    retry_attempts: int = 3
    credentials_cache_path: str = ""
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "ClientSettings":
        _load_dotenv_if_present()

        controller_url = os.getenv("JUJU_CONTROLLER_URL", "").strip()
        user = os.getenv("JUJU_USER", "").strip()
        password = os.getenv("JUJU_PASSWORD", "")
        default_domain = os.getenv("JUJU_DEFAULT_DOMAIN", "local").strip()

        login_version = int(os.getenv("JUJU_LOGIN_VERSION", "3"))
        ping_interval_seconds = float(os.getenv("JUJU_PING_INTERVAL_SECONDS", "30"))
        watch_all = _parse_bool(os.getenv("JUJU_WATCH_ALL", "true"))

        bundle_service_url = os.getenv("JUJU_BUNDLE_SERVICE_URL", "").strip().rstrip("/")
        timeout_seconds = int(os.getenv("JUJU_TIMEOUT_SECONDS", "45"))
        retry_attempts = int(os.getenv("JUJU_RETRY_ATTEMPTS", "3"))

        credentials_cache_path = os.getenv("JUJU_CREDENTIALS_CACHE_PATH", "").strip()
        log_level = os.getenv("JUJU_LOG_LEVEL", "INFO").strip().upper()

        settings = ClientSettings(
            controller_url=controller_url,
            user=user,
            password=password,
            default_domain=default_domain,
            login_version=login_version,
            ping_interval_seconds=ping_interval_seconds,
            watch_all=watch_all,
            bundle_service_url=bundle_service_url,
            timeout_seconds=timeout_seconds,
            retry_attempts=retry_attempts,
            credentials_cache_path=credentials_cache_path,
            log_level=log_level,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.controller_url:
            raise ConfigurationError("Missing required settings: JUJU_CONTROLLER_URL")

        if not self.controller_url.startswith(("ws://", "wss://")):
            raise ConfigurationError("JUJU_CONTROLLER_URL must start with 'ws://' or 'wss://'")

        if not self.default_domain or "@" in self.default_domain:
            raise ConfigurationError("JUJU_DEFAULT_DOMAIN must be a bare domain name")

        if self.login_version <= 0:
            raise ConfigurationError("JUJU_LOGIN_VERSION must be greater than 0")

        if self.ping_interval_seconds <= 0:
            raise ConfigurationError("JUJU_PING_INTERVAL_SECONDS must be greater than 0")

        if self.bundle_service_url and not self.bundle_service_url.startswith(("http://", "https://")):
            raise ConfigurationError("JUJU_BUNDLE_SERVICE_URL must start with 'http://' or 'https://'")

        if self.timeout_seconds <= 0:
            raise ConfigurationError("JUJU_TIMEOUT_SECONDS must be greater than 0")

        if self.retry_attempts < 0:
            raise ConfigurationError("JUJU_RETRY_ATTEMPTS must be 0 or greater")

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level not in valid_levels:
            raise ConfigurationError(
                "JUJU_LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
            )


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _load_dotenv_if_present(file_name: str = ".env") -> None:
    for candidate in _candidate_env_files(file_name):
        _load_env_file(candidate)


def _candidate_env_files(file_name: str) -> list[Path]:
    candidates: list[Path] = []

    explicit = os.getenv("JUJU_ENV_FILE", "").strip()
    if explicit:
        candidates.append(Path(explicit).expanduser())

    candidates.append(Path.cwd() / file_name)

    unique_candidates: list[Path] = []
    seen: set[str] = set()
    for path in candidates:
        normalized = str(path.resolve()) if path.exists() else str(path)
        if normalized in seen:
            continue
        seen.add(normalized)
        unique_candidates.append(path)
    return unique_candidates


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return

    try:
        with path.open("r", encoding="utf-8") as env_file:
            for raw_line in env_file:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue

                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")

                if key and key not in os.environ:
                    os.environ[key] = value
    except OSError:
        return
