"""HashiCorp Vault credential provider.

Authenticates with AppRole and reads task-account secrets from a KV v2
engine. Secrets live at ``{engine}/{cluster}/{task_account}`` and hold
``username`` and ``secret`` keys.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from pydantic import ValidationError

from shared.config import VaultSettings
from shared.models import ClusterRole, Credentials
from shared.observability import get_logger

from .base import CredentialError

logger = get_logger(__name__)


class VaultCredentialProvider:
    """Reads Prism credentials from Vault using the HTTP API."""

    def __init__(self, settings: VaultSettings):
        self.settings = settings
        self.base_url = settings.addr.rstrip("/")
        self._client: httpx.AsyncClient | None = None
        self._token: str | None = None
        self._login_lock = asyncio.Lock()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {}
            if self.settings.namespace:
                headers["X-Vault-Namespace"] = self.settings.namespace
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.settings.timeout_seconds,
            )
        return self._client

    def task_account(self, role: ClusterRole) -> str:
        if role == ClusterRole.CENTRAL:
            return self.settings.pc_task_account
        return self.settings.pe_task_account

    async def _login(self) -> str:
        """Exchange the AppRole role/secret IDs for a client token."""
        async with self._login_lock:
            if self._token is not None:
                return self._token

            logger.info("Authenticating with Vault using AppRole", vault_addr=self.base_url)
            client = self._get_client()
            try:
                response = await client.post(
                    "/v1/auth/approle/login",
                    json={
                        "role_id": self.settings.role_id,
                        "secret_id": self.settings.secret_id,
                    },
                )
                response.raise_for_status()
                self._token = response.json()["auth"]["client_token"]
            except httpx.HTTPError as e:
                raise CredentialError(f"Vault AppRole login failed: {e}") from e
            except (KeyError, TypeError, ValueError) as e:
                raise CredentialError("Vault AppRole login returned no client token") from e

            return self._token

    async def read_secret(self, path: str) -> dict[str, Any]:
        """Read the data of a KV v2 secret."""
        token = await self._login()
        client = self._get_client()
        url = f"/v1/{self.settings.engine_name.strip('/')}/data/{path.strip('/')}"

        try:
            response = await client.get(url, headers={"X-Vault-Token": token})
        except httpx.HTTPError as e:
            raise CredentialError(f"Vault request for {path} failed: {e}") from e

        if response.status_code in (401, 403):
            # Token expired or revoked, log in again on the next read
            self._token = None
            raise CredentialError(f"Vault denied access to {path}")
        if response.status_code == 404:
            raise CredentialError(f"No secret found at {path}")
        if not response.is_success:
            raise CredentialError(f"Vault returned {response.status_code} for {path}")

        try:
            data = response.json()["data"]["data"]
        except (KeyError, TypeError, ValueError) as e:
            raise CredentialError(f"Malformed secret at {path}") from e

        if not isinstance(data, dict):
            raise CredentialError(f"Malformed secret at {path}")
        return data

    async def get_credentials(self, cluster_name: str, role: ClusterRole) -> Credentials:
        """Return the task-account credentials of a cluster."""
        path = f"{cluster_name}/{self.task_account(role)}"
        data = await self.read_secret(path)

        try:
            credentials = Credentials(
                username=data.get("username", ""),
                secret=data.get("secret", ""),
            )
        except ValidationError as e:
            raise CredentialError(f"Incomplete credentials for {cluster_name}") from e

        if not credentials.secret.get_secret_value():
            raise CredentialError(f"Empty secret for {cluster_name}")

        logger.debug("Fetched credentials", cluster=cluster_name, role=role.value)
        return credentials

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
