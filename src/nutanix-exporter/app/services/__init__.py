"""Exporter services."""

from .cluster import Cluster
from .discovery import (
    DiscoveryError,
    DiscoveryService,
    parse_v3_clusters,
    parse_v4_clusters,
    select_clusters,
)
from .scheduler import DiscoveryScheduler, RouteTable, metrics_route

__all__ = [
    "Cluster",
    "DiscoveryError",
    "DiscoveryScheduler",
    "DiscoveryService",
    "RouteTable",
    "metrics_route",
    "parse_v3_clusters",
    "parse_v4_clusters",
    "select_clusters",
]
