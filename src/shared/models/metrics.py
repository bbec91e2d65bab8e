"""Metric allow-list models."""

from enum import Enum

from pydantic import Field

from .base import ExporterBaseModel

NAMESPACE = "nutanix"
UNKNOWN_INSTANCE = "unknown"
METADATA_INSTANCE = "N/A"


class EntityType(str, Enum):
    """Monitored entity types, one allow-list file each."""

    CLUSTER = "cluster"
    HOST = "host"
    VM = "vm"
    STORAGE_CONTAINER = "storage_container"


class MetricDefinition(ExporterBaseModel):
    """One allow-listed metric: flattened key plus help text."""

    name: str = Field(
        ...,
        pattern=r"^[a-z_][a-z0-9_]*$",
        description="Normalized flattened key",
    )
    help: str = Field(default="", description="Prometheus HELP text")
