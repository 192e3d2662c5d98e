"""OpenSearch HTTP client.

Posts `_search` request bodies over HTTP with basic auth and returns the
decoded JSON response. Requests are not retried; retry policy belongs to the
caller.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import requests

from CorpusSearch.services.search import SearchExecutionError
from CorpusSearch.utils.log import log

DEFAULT_TIMEOUT = 30.0
_ERROR_BODY_LIMIT = 500

HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "User-Agent": "corpus-search/0.1",
}


class SearchBackendError(SearchExecutionError):
    """Raised when the search backend cannot be reached or answers with an error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OpenSearchApiClient:
    """Low-level HTTP client for one OpenSearch index.

    Responsible only for the request/response exchange. Query building and
    hit parsing are handled elsewhere.
    """

    def __init__(
        self,
        *,
        base_url: str,
        index: str,
        user: str = "",
        password: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        verify_tls: bool = True,
    ) -> None:
        """Initialize the client with a reusable HTTP session.

        Args:
            base_url: Cluster URL, e.g. `https://search.example.org:9200`.
            index: Index (or alias) to search.
            user: Basic auth user; auth is disabled when empty.
            password: Basic auth password.
            timeout: Request timeout in seconds.
            verify_tls: Whether to verify the server certificate.
        """
        self.base_url = base_url.rstrip("/")
        self.index = index
        self.timeout = timeout
        self._session = requests.Session()
        self._session.verify = verify_tls
        if user:
            self._session.auth = (user, password)

    @property
    def search_url(self) -> str:
        return f"{self.base_url}/{self.index}/_search"

    def close(self) -> None:
        """Close the underlying HTTP session and release pooled connections."""
        self._session.close()

    def __enter__(self) -> OpenSearchApiClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def search(self, body: Mapping[str, Any], *, timeout: Optional[float] = None) -> dict[str, Any]:
        """Run one `_search` request.

        Args:
            body: Request body (see `StructuredQuery.to_body`).
            timeout: Optional per-request timeout overriding the default.

        Returns:
            Decoded JSON response.

        Raises:
            SearchBackendError: On transport failure, a non-2xx status or a
                response that is not a JSON object.
        """
        url = self.search_url
        log.debug("OpenSearch request: url=%s from=%s size=%s", url, body.get("from"), body.get("size"))
        try:
            resp = self._session.post(url, json=dict(body), headers=HEADERS, timeout=timeout or self.timeout)
        except requests.exceptions.RequestException as e:
            raise SearchBackendError(f"OpenSearch request failed: {e}") from e

        if not resp.ok:
            log.error("OpenSearch error response: %s", resp.text[:_ERROR_BODY_LIMIT])
            raise SearchBackendError(
                f"OpenSearch error: {resp.status_code} {resp.reason}",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise SearchBackendError("OpenSearch returned a non-JSON response", status_code=resp.status_code) from e
        if not isinstance(payload, dict):
            raise SearchBackendError("OpenSearch response must be a JSON object", status_code=resp.status_code)
        log.debug("OpenSearch response ok: status=%s took=%s", resp.status_code, payload.get("took"))
        return payload
