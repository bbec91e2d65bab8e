"""Prism Central and Prism Element API clients.

Both clients authenticate with HTTP basic auth using the credentials
fetched from the credential provider, and differ only in how request
URLs are built:

- Prism Central: ``{base}/{path}``
- Prism Element: ``{base}/PrismGateway/services/rest/{path}/``
"""

from __future__ import annotations

import base64
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from shared.models import ClusterRole, Credentials
from shared.observability import get_logger, log_external_call_end, log_external_call_start

from ..credentials import CredentialProvider

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class NutanixError(Exception):
    """Base class for Prism API failures."""

    pass


class NutanixConnectionError(NutanixError):
    """Raised when a request cannot be sent or times out."""

    pass


class NutanixAPIError(NutanixError):
    """Raised for non-2xx responses and undecodable bodies."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NutanixAuthError(NutanixAPIError):
    """Raised when Prism rejects the credentials (401/403)."""

    pass


class StaleCredentialsError(NutanixError):
    """Raised instead of sending a request with credentials known to be rejected."""

    pass


class NutanixClient(ABC):
    """Authenticated Prism API client."""

    role: ClusterRole

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        verify_ssl: bool = False,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.strip("/")
        self.credentials = credentials
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @abstractmethod
    def build_url(self, path: str) -> str:
        """Build the full request URL for an API path."""

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with the TLS and timeout policy."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self.verify_ssl,
                timeout=self.timeout,
            )
        return self._client

    def _build_auth_headers(self) -> dict[str, str]:
        """Build HTTP basic authentication headers from the current credentials."""
        auth_string = f"{self.credentials.username}:{self.credentials.secret.get_secret_value()}"
        encoded = base64.b64encode(auth_string.encode()).decode()
        return {"Authorization": f"Basic {encoded}"}

    def create_request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Request:
        """Build an authenticated request.

        Args:
            method: HTTP method
            path: API path relative to the client's base
            payload: Optional JSON body
            params: Optional query parameters
        """
        url = self.build_url(path)
        headers = {"Content-Type": "application/json", **self._build_auth_headers()}

        return self._get_client().build_request(
            method,
            url,
            json=payload,
            params=params,
            headers=headers,
        )

    async def execute(self, request: httpx.Request) -> httpx.Response:
        """Send a request.

        Raises:
            NutanixConnectionError: On transport failures and timeouts.
        """
        operation = f"{request.method} {request.url.path}"
        log_external_call_start(logger, "prism", operation)
        start = time.perf_counter()

        try:
            response = await self._get_client().send(request)
        except httpx.TimeoutException as e:
            log_external_call_end(
                logger, "prism", operation, False, (time.perf_counter() - start) * 1000, "timeout"
            )
            raise NutanixConnectionError(f"request to {request.url} timed out") from e
        except httpx.HTTPError as e:
            log_external_call_end(
                logger, "prism", operation, False, (time.perf_counter() - start) * 1000, str(e)
            )
            raise NutanixConnectionError(f"request to {request.url} failed: {e}") from e

        log_external_call_end(
            logger, "prism", operation, True, (time.perf_counter() - start) * 1000
        )
        return response

    async def request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Build and send a request in one step."""
        return await self.execute(self.create_request(method, path, payload, params))

    async def refresh_credentials(self, provider: CredentialProvider, cluster_name: str) -> None:
        """Replace the credentials in place with a fresh pair from the provider.

        Raises:
            CredentialError: If the provider cannot return credentials.
        """
        self.credentials = await provider.get_credentials(cluster_name, self.role)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class CentralClient(NutanixClient):
    """Prism Central API client."""

    role = ClusterRole.CENTRAL

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.strip('/')}"


class ElementClient(NutanixClient):
    """Prism Element API client."""

    role = ClusterRole.ELEMENT

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/PrismGateway/services/rest/{path.strip('/')}/"


def create_client(
    role: ClusterRole,
    base_url: str,
    credentials: Credentials,
    verify_ssl: bool = False,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> NutanixClient:
    """Create the client matching a cluster role."""
    client_cls = CentralClient if role == ClusterRole.CENTRAL else ElementClient
    return client_cls(base_url, credentials, verify_ssl=verify_ssl, timeout=timeout)
