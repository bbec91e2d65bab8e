"""Periodic cluster discovery and metrics route registration.

Every cycle re-runs discovery, builds a fresh Cluster with its collectors for
each element cluster, and registers ``/metrics/{name}`` for clusters that do
not have a route yet. Registered routes are never replaced or removed.
"""

from __future__ import annotations

import asyncio
import threading

from shared.config import Settings
from shared.models import ClusterRole
from shared.observability import get_logger

from ..clients import NutanixError
from ..collectors import build_collectors
from ..credentials import CredentialError, CredentialProvider
from ..metrics import MetricDefinitionSource
from .cluster import Cluster
from .discovery import DiscoveryService

logger = get_logger(__name__)


def metrics_route(cluster_name: str) -> str:
    return f"/metrics/{cluster_name}"


class RouteTable:
    """Registered metrics routes, shared by the scheduler and the HTTP handlers."""

    def __init__(self) -> None:
        self._routes: dict[str, Cluster] = {}
        self._lock = threading.Lock()

    def try_register(self, route: str, cluster: Cluster) -> bool:
        """Register a route unless it already exists.

        Returns:
            True if the route was added by this call.
        """
        with self._lock:
            if route in self._routes:
                return False
            self._routes[route] = cluster
            return True

    def get(self, route: str) -> Cluster | None:
        with self._lock:
            return self._routes.get(route)

    def routes(self) -> list[str]:
        with self._lock:
            return sorted(self._routes)

    def clusters(self) -> list[Cluster]:
        with self._lock:
            return list(self._routes.values())

    def __contains__(self, route: object) -> bool:
        with self._lock:
            return route in self._routes

    def __len__(self) -> int:
        with self._lock:
            return len(self._routes)


class DiscoveryScheduler:
    """Runs discovery cycles and keeps the route table up to date."""

    def __init__(
        self,
        central: Cluster,
        provider: CredentialProvider,
        definitions: MetricDefinitionSource,
        routes: RouteTable,
        settings: Settings,
    ):
        self.central = central
        self.provider = provider
        self.definitions = definitions
        self.routes = routes
        self.settings = settings
        self.discovery = DiscoveryService(
            central,
            api_version=settings.pc_api_version,
            cluster_prefix=settings.cluster_prefix,
        )
        self.cycles_completed = 0
        self._running = False

    @property
    def interval_seconds(self) -> float:
        return self.settings.refresh_period_seconds

    async def setup_clusters(self) -> dict[str, Cluster]:
        """Discover element clusters and build their collectors.

        Clusters whose credentials cannot be fetched are skipped.

        Raises:
            DiscoveryError: If the cluster list cannot be fetched.
        """
        discovered = await self.discovery.fetch_clusters()

        clusters: dict[str, Cluster] = {}
        for name, url in discovered.items():
            try:
                cluster = await Cluster.create(
                    name,
                    url,
                    self.provider,
                    ClusterRole.ELEMENT,
                    verify_ssl=not self.settings.skip_tls_verify,
                    timeout=self.settings.request_timeout_seconds,
                )
            except CredentialError as e:
                logger.error("Failed to initialize cluster", cluster=name, error=str(e))
                continue

            logger.info("Registering collectors", cluster=name)
            build_collectors(cluster, self.definitions)
            clusters[name] = cluster

        return clusters

    async def update_routes(self, clusters: dict[str, Cluster]) -> list[str]:
        """Register routes for new clusters.

        Clusters whose route already exists are discarded; the route keeps
        serving the cluster it was first registered with.

        Returns:
            Routes added by this call.
        """
        added = []
        for name, cluster in clusters.items():
            route = metrics_route(name)
            if self.routes.try_register(route, cluster):
                added.append(route)
                logger.info("Registered metrics endpoint", cluster=name, route=route)
            else:
                await cluster.close()

        discovered = {metrics_route(name) for name in clusters}
        for route in self.routes.routes():
            if route not in discovered:
                logger.warning("Cluster no longer discovered, keeping route", route=route)

        return added

    async def run_cycle(self) -> bool:
        """Run one discovery cycle.

        Returns:
            True if discovery succeeded; failures leave existing routes untouched.
        """
        logger.info("Refreshing clusters")
        await self.central.refresh_credentials_if_needed(self.provider)

        try:
            clusters = await self.setup_clusters()
        except NutanixError as e:
            logger.error("Failed to refresh clusters", error=str(e))
            return False

        await self.update_routes(clusters)
        self.cycles_completed += 1
        logger.info("Clusters refreshed successfully", routes=len(self.routes))
        return True

    async def run_periodic(self) -> None:
        """Run discovery cycles in background."""
        self._running = True
        logger.info("Starting cluster refresh", interval_seconds=self.interval_seconds)

        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)
                await self.run_cycle()
            except asyncio.CancelledError:
                logger.info("Cluster refresh cancelled")
                break
            except Exception as e:
                logger.error("Error in cluster refresh loop", error=str(e))

        self._running = False

    def stop(self) -> None:
        self._running = False
