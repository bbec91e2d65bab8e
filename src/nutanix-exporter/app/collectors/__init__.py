"""Prism Element entity collectors.

Collectors exported per cluster:
- cluster: aggregate cluster stats (``v2.0/cluster/``)
- host: per-host stats (``v2.0/hosts/``)
- vm: per-VM stats (``v2.0/vms/``)
- storage_container: per-container usage (``v2.0/storage_containers/``)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from shared.models import EntityType

from ..metrics import MetricDefinitionSource, MetricExtractor
from .base import EntityCollector, Traversal
from .entities import traverse_cluster, traverse_entities, traverse_storage_containers

if TYPE_CHECKING:
    from ..services.cluster import Cluster

CLUSTER_LABEL = "cluster_name"


class CollectorSpec(NamedTuple):
    endpoint: str
    instance_label: str | None
    traverse: Traversal


COLLECTOR_SPECS: dict[EntityType, CollectorSpec] = {
    EntityType.STORAGE_CONTAINER: CollectorSpec(
        "v2.0/storage_containers/", "container_name", traverse_storage_containers
    ),
    EntityType.CLUSTER: CollectorSpec("v2.0/cluster/", None, traverse_cluster),
    EntityType.HOST: CollectorSpec("v2.0/hosts/", "host_name", traverse_entities),
    EntityType.VM: CollectorSpec("v2.0/vms/", "vm_name", traverse_entities),
}


def label_names(entity_type: EntityType) -> tuple[str, ...]:
    instance_label = COLLECTOR_SPECS[entity_type].instance_label
    if instance_label is None:
        return (CLUSTER_LABEL,)
    return (CLUSTER_LABEL, instance_label)


def create_collector(
    cluster: Cluster,
    entity_type: EntityType,
    definitions: MetricDefinitionSource,
) -> EntityCollector:
    """Build one collector, registering its gauges in the cluster registry."""
    spec = COLLECTOR_SPECS[entity_type]
    extractor = MetricExtractor(
        entity_type,
        definitions.get(entity_type),
        label_names(entity_type),
        cluster.registry,
    )
    return EntityCollector(cluster, entity_type, spec.endpoint, extractor, spec.traverse)


def build_collectors(
    cluster: Cluster,
    definitions: MetricDefinitionSource,
) -> list[EntityCollector]:
    """Build and attach every entity collector for an element cluster."""
    cluster.collectors = [
        create_collector(cluster, entity_type, definitions) for entity_type in COLLECTOR_SPECS
    ]
    return cluster.collectors


__all__ = [
    "COLLECTOR_SPECS",
    "CollectorSpec",
    "EntityCollector",
    "build_collectors",
    "create_collector",
    "label_names",
]
