"""Read-only Elasticsearch REST client.

Only GET requests to an allow-list of statistics endpoints are ever sent, so
the monitor cannot change cluster state even if misused. Requests carry a
timeout and a concurrency cap to keep load on production clusters low.
"""

from __future__ import annotations

import base64
import http.client
import json
import logging
import socket
import ssl
import threading
from typing import Any, TypeVar
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from pydantic import BaseModel, TypeAdapter, ValidationError

from es_monitor import __version__
from es_monitor.core.schemas import (
    ClusterHealth,
    ConnectionConfig,
    IndexInfo,
    IndexStats,
    NodeStats,
    SafetyConfig,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_INDEX_INFO_LIST = TypeAdapter(list[IndexInfo])


class ElasticsearchError(Exception):
    """Base class for all client errors."""


class EndpointNotAllowedError(ElasticsearchError):
    """Raised when a request targets an endpoint outside the read-only allow-list."""


class ElasticsearchConnectionError(ElasticsearchError):
    """Raised on network failures and timeouts."""


class ElasticsearchHTTPError(ElasticsearchError):
    """Raised on non-200 responses."""

    def __init__(self, status: int, endpoint: str) -> None:
        super().__init__(f"HTTP {status} from {endpoint}")
        self.status = status
        self.endpoint = endpoint


class ElasticsearchResponseError(ElasticsearchError):
    """Raised when a response body is not valid JSON or does not match the schema."""


class ElasticsearchClient:
    """Minimal read-only client for cluster health and statistics.

    Example:
        ```python
        client = ElasticsearchClient(ConnectionConfig(host="es01"), SafetyConfig())
        client.ping()
        health = client.get_cluster_health(timeout=5)
        ```
    """

    def __init__(
        self,
        connection: ConnectionConfig,
        safety: SafetyConfig | None = None,
    ) -> None:
        self.connection = connection
        self.safety = safety or SafetyConfig()
        self._semaphore = threading.BoundedSemaphore(self.safety.max_concurrency)
        self._ssl_context = self._build_ssl_context()

    @property
    def base_url(self) -> str:
        return self.connection.base_url

    def _build_ssl_context(self) -> ssl.SSLContext | None:
        if self.connection.scheme != "https":
            return None
        context = ssl.create_default_context()
        if not self.connection.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def is_endpoint_allowed(self, endpoint: str) -> bool:
        """Check an endpoint (path, optionally with query string) against the allow-list.

        The root endpoint "/" matches only exactly. Every other entry also
        matches the paths below it, on a "/" segment boundary. Paths with
        "." or ".." segments are refused.
        """
        if not self.connection.read_only:
            return False

        path = endpoint.split("?", 1)[0]
        if any(segment in (".", "..") for segment in path.split("/")):
            return False
        for allowed in self.safety.allowed_endpoints:
            if path == allowed:
                return True
            if allowed != "/" and path.startswith(allowed.rstrip("/") + "/"):
                return True
        return False

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"es-monitor/{__version__} (read-only)",
        }
        if self.connection.username and self.connection.password:
            token = f"{self.connection.username}:{self.connection.password}".encode()
            headers["Authorization"] = "Basic " + base64.b64encode(token).decode("ascii")
        return headers

    def request(self, endpoint: str, timeout: float | None = None) -> Any:
        """Send a GET request and return the decoded JSON body.

        Args:
            endpoint: Path (with optional query string) on the cluster
            timeout: Seconds before giving up; defaults to the safety timeout

        Returns:
            Decoded JSON document

        Raises:
            EndpointNotAllowedError: If the endpoint is not allow-listed
            ElasticsearchConnectionError: On network failure or timeout
            ElasticsearchHTTPError: On a non-200 status
            ElasticsearchResponseError: If the body is truncated or not JSON
        """
        if not self.is_endpoint_allowed(endpoint):
            raise EndpointNotAllowedError(
                f"Read-only safety restriction: endpoint {endpoint} is not allowed"
            )

        if timeout is None:
            timeout = self.safety.request_timeout_seconds
        timeout = min(timeout, self.safety.request_timeout_seconds)

        url = self.base_url + endpoint
        req = Request(url, headers=self._headers(), method="GET")
        logger.debug(f"GET {url} (timeout={timeout:.1f}s)")

        with self._semaphore:
            try:
                with urlopen(req, timeout=timeout, context=self._ssl_context) as response:
                    status = response.status
                    body = response.read()
            except HTTPError as e:
                raise ElasticsearchHTTPError(e.code, endpoint) from e
            except (URLError, socket.timeout, TimeoutError, ConnectionError) as e:
                reason = getattr(e, "reason", e)
                raise ElasticsearchConnectionError(f"Request to {url} failed: {reason}") from e
            except http.client.HTTPException as e:
                raise ElasticsearchResponseError(
                    f"Truncated or malformed response from {endpoint}: {e!r}"
                ) from e
            except OSError as e:
                raise ElasticsearchConnectionError(f"Request to {url} failed: {e}") from e

        if status != 200:
            raise ElasticsearchHTTPError(status, endpoint)

        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ElasticsearchResponseError(f"Invalid JSON from {endpoint}: {e}") from e

    def _get_model(self, endpoint: str, model: type[ModelT], timeout: float | None) -> ModelT:
        data = self.request(endpoint, timeout=timeout)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ElasticsearchResponseError(
                f"Unexpected payload from {endpoint}: {e.error_count()} validation errors"
            ) from e

    def ping(self, timeout: float | None = None) -> dict[str, Any]:
        """Fetch the root endpoint to verify connectivity and credentials."""
        data = self.request("/", timeout=timeout)
        if not isinstance(data, dict):
            raise ElasticsearchResponseError("Unexpected payload from /")
        return data

    def get_cluster_health(self, timeout: float | None = None) -> ClusterHealth:
        return self._get_model("/_cluster/health", ClusterHealth, timeout)

    def get_node_stats(self, timeout: float | None = None) -> NodeStats:
        return self._get_model("/_nodes/stats", NodeStats, timeout)

    def get_index_stats(self, timeout: float | None = None) -> IndexStats:
        return self._get_model("/_stats", IndexStats, timeout)

    def get_cat_indices(self, timeout: float | None = None) -> list[IndexInfo]:
        data = self.request("/_cat/indices?format=json&bytes=b", timeout=timeout)
        try:
            return _INDEX_INFO_LIST.validate_python(data)
        except ValidationError as e:
            raise ElasticsearchResponseError(
                f"Unexpected payload from /_cat/indices: {e.error_count()} validation errors"
            ) from e
