"""Shared data models for the Nutanix exporter.

All models follow these conventions:
- Immutable once constructed
- Field names: lowercase snake_case
- Enums: uppercase SNAKE_CASE members
"""

# Base
from .base import ExporterBaseModel

# Cluster domain
from .cluster import (
    ELEMENT_PORT,
    UNNAMED_CLUSTER,
    ApiVersion,
    ClusterRole,
    Credentials,
    DiscoveredCluster,
)

# Metric allow-lists
from .metrics import (
    METADATA_INSTANCE,
    NAMESPACE,
    UNKNOWN_INSTANCE,
    EntityType,
    MetricDefinition,
)

__all__ = [
    "ExporterBaseModel",
    # Cluster
    "ApiVersion",
    "ClusterRole",
    "Credentials",
    "DiscoveredCluster",
    "ELEMENT_PORT",
    "UNNAMED_CLUSTER",
    # Metrics
    "EntityType",
    "MetricDefinition",
    "NAMESPACE",
    "UNKNOWN_INSTANCE",
    "METADATA_INSTANCE",
]
