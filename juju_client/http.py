from __future__ import annotations

import time
from typing import Any

import requests

from juju_client.errors import JujuClientError


class ApiHttpError(JujuClientError):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class HttpClient:
    def __init__(self, base_url: str, timeout_seconds: int = 45, retry_attempts: int = 3):
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._retry_attempts = retry_attempts
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}{path}"

        last_error: ApiHttpError | None = None
        attempts = self._retry_attempts + 1
        for attempt in range(1, attempts + 1):
            try:
                response = self._session.post(url, json=payload, timeout=self._timeout_seconds)
            except requests.RequestException as error:
                raise ApiHttpError(status_code=0, message=f"Request to {url} failed: {error}") from error

            if response.ok:
                if not response.content:
                    return {}
                return response.json()

            message = response.text[:500]
            last_error = ApiHttpError(
                status_code=response.status_code,
                message=f"HTTP {response.status_code}: {message}",
            )
            if response.status_code in (429, 500, 502, 503, 504) and attempt < attempts:
                time.sleep(1.5 * attempt)
                continue
            raise last_error

        if last_error is None:
            raise ApiHttpError(status_code=0, message="Request failed")
        raise last_error

    def close(self) -> None:
        self._session.close()
