"""Cluster domain models."""

from enum import Enum

from pydantic import Field, SecretStr

from .base import ExporterBaseModel

ELEMENT_PORT = 9440
UNNAMED_CLUSTER = "Unnamed"


class ClusterRole(str, Enum):
    """Which Prism API a cluster is reached through."""

    CENTRAL = "CENTRAL"  # Prism Central, knows about every element cluster
    ELEMENT = "ELEMENT"  # Prism Element, one monitored cluster


class ApiVersion(str, Enum):
    """Prism Central cluster-list API flavour."""

    V3 = "v3"
    V4 = "v4"


class Credentials(ExporterBaseModel):
    """Username/secret pair for HTTP basic authentication."""

    username: str = Field(..., min_length=1)
    secret: SecretStr


class DiscoveredCluster(ExporterBaseModel):
    """Element cluster as reported by Prism Central."""

    name: str
    ip: str

    @property
    def url(self) -> str:
        return f"https://{self.ip}:{ELEMENT_PORT}"
