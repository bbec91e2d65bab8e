"""Monitored cluster and its credential staleness state.

A cluster's credentials are either fresh or marked stale. Any request that
gets a 401/403 marks them stale; while stale, requests fail fast without
reaching Prism. The next scrape (or discovery cycle, for Prism Central)
refreshes them under the cluster lock and clears the flag on success.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from prometheus_client import CollectorRegistry, generate_latest

from shared.models import ClusterRole
from shared.observability import get_logger

from ..clients import (
    NutanixAPIError,
    NutanixAuthError,
    NutanixClient,
    StaleCredentialsError,
    create_client,
)
from ..credentials import CredentialError, CredentialProvider

if TYPE_CHECKING:
    from ..collectors import EntityCollector
    from ..metrics import Sample

logger = get_logger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)


class Cluster:
    """A Prism Central or Prism Element cluster.

    Identity, URL and API client never change after construction; a
    re-discovered cluster is a new object. Only ``refresh_needed`` and the
    client's credentials mutate, always under ``_lock``.
    """

    def __init__(
        self,
        name: str,
        url: str,
        api: NutanixClient,
        registry: CollectorRegistry | None = None,
    ):
        self.name = name
        self.url = url
        self.api = api
        self.registry = registry if registry is not None else CollectorRegistry()
        self.collectors: list[EntityCollector] = []
        self.refresh_needed = False
        self._lock = asyncio.Lock()

    @classmethod
    async def create(
        cls,
        name: str,
        url: str,
        provider: CredentialProvider,
        role: ClusterRole,
        verify_ssl: bool = False,
        timeout: float = 10.0,
    ) -> Cluster:
        """Fetch credentials and build a cluster with the matching API client.

        Raises:
            CredentialError: If the provider has no credentials for the cluster.
        """
        credentials = await provider.get_credentials(name, role)
        api = create_client(role, url, credentials, verify_ssl=verify_ssl, timeout=timeout)
        return cls(name, url, api)

    @property
    def role(self) -> ClusterRole:
        return self.api.role

    async def mark_stale(self) -> bool:
        """Flag the credentials for refresh.

        Returns:
            True only for the call that flipped the flag.
        """
        async with self._lock:
            if self.refresh_needed:
                return False
            logger.warning("Marking stale credentials for refresh", cluster=self.name)
            self.refresh_needed = True
            return True

    async def refresh_credentials_if_needed(self, provider: CredentialProvider) -> bool:
        """Refresh stale credentials, holding the lock for the whole refresh.

        Returns:
            True if the credentials are fresh afterwards.
        """
        async with self._lock:
            if not self.refresh_needed:
                return True

            try:
                await self.api.refresh_credentials(provider, self.name)
            except CredentialError as e:
                logger.error(
                    "Failed to refresh credentials",
                    cluster=self.name,
                    error=str(e),
                )
                return False

            self.refresh_needed = False
            logger.info("Credentials refreshed", cluster=self.name)
            return True

    async def request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request and decode the JSON object it returns.

        Raises:
            StaleCredentialsError: Credentials are known to be rejected.
            NutanixAuthError: Prism answered 401/403; the cluster is now stale.
            NutanixAPIError: Any other non-2xx status or undecodable body.
            NutanixConnectionError: Transport failure or timeout.
        """
        if self.refresh_needed:
            raise StaleCredentialsError(f"skipping {self.name} due to known stale credentials")

        response = await self.api.request(method, path, payload=payload)

        if response.status_code in AUTH_FAILURE_STATUSES:
            await self.mark_stale()
            raise NutanixAuthError(
                f"authentication failed for cluster {self.name}",
                status_code=response.status_code,
            )
        if not response.is_success:
            raise NutanixAPIError(
                f"request failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise NutanixAPIError(f"undecodable response from {self.name}: {e}") from e

        if not isinstance(data, dict):
            raise NutanixAPIError(f"unexpected response shape from {self.name}")
        return data

    async def fetch(self, path: str) -> dict[str, Any]:
        """GET an API path."""
        return await self.request("GET", path)

    async def collect(self, timeout: float | None = None) -> None:
        """Run every collector once and publish the results to the registry.

        Collectors still running when ``timeout`` expires are cancelled and
        expose nothing for this scrape.
        """
        if not self.collectors:
            return

        tasks = {
            collector: asyncio.create_task(collector.produce())
            for collector in self.collectors
        }
        try:
            done, pending = await asyncio.wait(tasks.values(), timeout=timeout)
        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()

        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "Scrape deadline exceeded",
                cluster=self.name,
                unfinished=len(pending),
                timeout=timeout,
            )

        # Nothing below may await: a scrape applies all collectors as one step
        for collector, task in tasks.items():
            samples: list[Sample] = []
            if task in done:
                error = task.exception()
                if error is not None:
                    logger.error(
                        "Collector failed",
                        cluster=self.name,
                        entity_type=collector.entity_type.value,
                        error=str(error),
                    )
                else:
                    samples = task.result()
            collector.apply(samples)

    def render(self) -> bytes:
        """Exposition-format text of the cluster's registry."""
        return generate_latest(self.registry)

    async def scrape(self, provider: CredentialProvider, timeout: float | None = None) -> bytes:
        """Serve one scrape: refresh stale credentials, collect, render."""
        await self.refresh_credentials_if_needed(provider)
        await self.collect(timeout)
        return self.render()

    async def close(self) -> None:
        await self.api.close()

    def __repr__(self) -> str:
        return f"Cluster(name={self.name!r}, url={self.url!r}, role={self.role.value})"
