"""Prism Element cluster discovery through Prism Central.

Two incompatible cluster-list APIs are supported:
- v4: ``GET api/clustermgmt/v4.0.b1/config/clusters``
- v3: ``POST api/nutanix/v3/clusters/list`` with a list query

Both are normalized to ``DiscoveredCluster`` records before the shared
name filtering.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from shared.models import UNNAMED_CLUSTER, ApiVersion, DiscoveredCluster
from shared.observability import get_logger

from ..clients import NutanixError
from .cluster import Cluster

logger = get_logger(__name__)

V4_CLUSTERS_PATH = "api/clustermgmt/v4.0.b1/config/clusters"
V3_CLUSTERS_PATH = "api/nutanix/v3/clusters/list"
V3_PAGE_LENGTH = 100


class DiscoveryError(NutanixError):
    """Raised when the cluster list cannot be fetched or decoded."""

    pass


def parse_v4_clusters(result: dict[str, Any]) -> list[DiscoveredCluster]:
    """Parse a v4 ``{data: [...]}`` cluster list, skipping malformed records."""
    match result:
        case {"data": list(records)}:
            pass
        case _:
            raise DiscoveryError("unexpected response format for v4")

    clusters = []
    for record in records:
        match record:
            case {
                "name": str(name),
                "network": {"externalAddress": {"ipv4": {"value": str(ip)}}},
            }:
                clusters.append(DiscoveredCluster(name=name, ip=ip))
            case _:
                logger.debug("Skipping malformed v4 cluster record", record=_record_name(record))
    return clusters


def parse_v3_clusters(result: dict[str, Any]) -> list[DiscoveredCluster]:
    """Parse a v3 ``{entities: [...]}`` cluster list, skipping malformed records."""
    match result:
        case {"entities": list(records)}:
            pass
        case _:
            raise DiscoveryError("unexpected response format for v3")

    clusters = []
    for record in records:
        match record:
            case {
                "spec": {"name": str(name)},
                "status": {"resources": {"network": {"external_ip": str(ip)}}},
            }:
                clusters.append(DiscoveredCluster(name=name, ip=ip))
            case _:
                logger.debug("Skipping malformed v3 cluster record", record=_record_name(record))
    return clusters


def _record_name(record: Any) -> str | None:
    match record:
        case {"name": str(name)} | {"spec": {"name": str(name)}}:
            return name
        case _:
            return None


def select_clusters(
    clusters: Iterable[DiscoveredCluster],
    cluster_prefix: str | None = None,
) -> dict[str, str]:
    """Drop unnamed and non-matching clusters and map names to element URLs."""
    selected: dict[str, str] = {}
    for cluster in clusters:
        if cluster.name == UNNAMED_CLUSTER:
            continue

        if cluster_prefix and not cluster.name.startswith(cluster_prefix):
            logger.info("Skipping cluster", cluster=cluster.name, prefix=cluster_prefix)
            continue

        selected[cluster.name] = cluster.url
        logger.info("Found cluster", cluster=cluster.name, url=cluster.url)

    return selected


class DiscoveryService:
    """Lists the element clusters registered in Prism Central."""

    def __init__(
        self,
        central: Cluster,
        api_version: ApiVersion | str = ApiVersion.V4,
        cluster_prefix: str | None = None,
    ):
        self.central = central
        if api_version not in (ApiVersion.V3, ApiVersion.V4):
            logger.warning("Unknown API version, using v4", api_version=str(api_version))
        self.api_version = ApiVersion.V3 if api_version == ApiVersion.V3 else ApiVersion.V4
        self.cluster_prefix = cluster_prefix

    async def _request_v4(self) -> dict[str, Any]:
        return await self.central.request("GET", V4_CLUSTERS_PATH)

    async def _request_v3(self) -> dict[str, Any]:
        payload = {
            "kind": "cluster",
            "length": V3_PAGE_LENGTH,
            "offset": 0,
        }
        return await self.central.request("POST", V3_CLUSTERS_PATH, payload=payload)

    async def fetch_clusters(self) -> dict[str, str]:
        """Return ``{cluster name: element URL}`` for every selected cluster.

        Raises:
            DiscoveryError: If the request fails or the response has no cluster list.
        """
        request: Callable[[], Any]
        parse: Callable[[dict[str, Any]], list[DiscoveredCluster]]
        if self.api_version == ApiVersion.V3:
            request, parse = self._request_v3, parse_v3_clusters
        else:
            request, parse = self._request_v4, parse_v4_clusters

        try:
            result = await request()
        except NutanixError as e:
            raise DiscoveryError(f"cluster list request failed: {e}") from e

        clusters = parse(result)
        logger.debug(
            "Parsed cluster list",
            api_version=self.api_version.value,
            clusters=len(clusters),
        )
        return select_clusters(clusters, self.cluster_prefix)
