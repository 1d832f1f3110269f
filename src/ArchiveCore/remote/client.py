"""Archive backend REST API client."""

from __future__ import annotations

import random
import time
from typing import Any, Mapping

import requests

from ArchiveCore.core import entities
from ArchiveCore.utils.log import log

DEFAULT_TIMEOUT = 30.0
MAX_ATTEMPTS = 4
BASE_PAUSE = 0.8
MAX_SLEEP = 8.0
RETRYABLE_STATUS = {429, 500, 502, 503, 504}

HEADERS = {
    "User-Agent": "archive-core/0.1",
    "Accept": "application/json",
}

SEARCH_PATHS = {
    entities.DOCUMENTS: "archive/documents/search",
    entities.SIGNATURE_ELEMENTS: "signature/elements/search",
    entities.TAGS: "tags/search",
    entities.USERS: "users/search",
}


class ArchiveApiClient:
    """Low-level HTTP client for the archive backend.

    Only transient failures (connection errors, timeouts, 429 and 5xx) are
    retried; any other error status is raised to the caller unchanged.
    """

    def __init__(self, base_url: str, *, token: str | None = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize the client with a reusable HTTP session.

        Args:
            base_url: API root, e.g. ``http://localhost:3000/api``.
            token: Optional bearer token sent with every request.
            timeout: Request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(HEADERS)
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def close(self) -> None:
        self._session.close()

    def list_components(self) -> list[dict[str, Any]]:
        payload = self._json(self._request("GET", "signature/components"))
        if not isinstance(payload, list):
            raise ValueError("signature components response must be a list")
        return [item for item in payload if isinstance(item, dict)]

    def get_element(self, element_id: int) -> dict[str, Any] | None:
        """Fetch one signature element; ``None`` when the backend answers 404."""
        response = self._request("GET", f"signature/elements/{element_id}", allow_not_found=True)
        if response.status_code == 404:
            return None
        payload = self._json(response)
        if not isinstance(payload, dict):
            raise ValueError(f"signature element {element_id} response must be an object")
        return payload

    def create_element(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        created = self._json(self._request("POST", "signature/elements", json=dict(payload)))
        if not isinstance(created, dict):
            raise ValueError("created signature element response must be an object")
        return created

    def search(self, entity: str, request: Mapping[str, Any]) -> dict[str, Any]:
        """POST a search request for ``entity`` and return the raw response envelope.

        Raises:
            ValueError: If the entity has no search endpoint.
            requests.HTTPError: If the backend rejects the request.
        """
        try:
            path = SEARCH_PATHS[entity]
        except KeyError:
            raise ValueError(f"Unknown entity: {entity} (expected one of {sorted(SEARCH_PATHS)})") from None
        payload = self._json(self._request("POST", path, json=dict(request)))
        if not isinstance(payload, dict):
            raise ValueError(f"{entity} search response must be an object")
        return payload

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        allow_not_found: bool = False,
    ) -> requests.Response:
        response = self._request_with_retry(method, f"{self.base_url}/{path}", json=json)
        if allow_not_found and response.status_code == 404:
            return response
        response.raise_for_status()
        return response

    def _request_with_retry(self, method: str, url: str, *, json: Any = None) -> requests.Response:
        """Issue a request with retries for transient failures."""
        last_error: Exception | None = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                response = self._session.request(method, url, json=json, timeout=self.timeout)
                if response.status_code in RETRYABLE_STATUS:
                    raise requests.HTTPError(f"HTTP {response.status_code}", response=response)
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as error:
                last_error = error
                if isinstance(error, requests.HTTPError):
                    status_code = getattr(error.response, "status_code", None)
                    if status_code not in RETRYABLE_STATUS:
                        raise
                if attempt < MAX_ATTEMPTS:
                    delay = min(BASE_PAUSE * (2 ** (attempt - 1)) + random.uniform(0, 0.3), MAX_SLEEP)
                    log.debug(
                        "Archive API retry %s %s attempt=%d/%d delay=%.2fs error=%s",
                        method,
                        url,
                        attempt,
                        MAX_ATTEMPTS,
                        delay,
                        error,
                    )
                    time.sleep(delay)

        assert last_error is not None
        raise last_error

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ValueError(f"Archive API returned invalid JSON for {response.url}") from e
