"""Entity collector built by composition.

A collector pairs the shared extraction engine (``MetricExtractor``) with a
traversal function that knows the shape of one Prism entity endpoint.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, TypeAlias

from shared.models import EntityType
from shared.observability import get_logger

from ..clients import NutanixError
from ..metrics import JSONValue, MetricExtractor, Sample

if TYPE_CHECKING:
    from ..services.cluster import Cluster

logger = get_logger(__name__)

FieldGroup: TypeAlias = tuple[Mapping[str, JSONValue], tuple[str, ...]]
Traversal: TypeAlias = Callable[[Mapping[str, Any], str], Iterator[FieldGroup]]


class EntityCollector:
    """Collects one entity type of one cluster on every scrape."""

    def __init__(
        self,
        cluster: Cluster,
        entity_type: EntityType,
        endpoint: str,
        extractor: MetricExtractor,
        traverse: Traversal,
    ):
        self.cluster = cluster
        self.entity_type = entity_type
        self.endpoint = endpoint
        self.extractor = extractor
        self.traverse = traverse

    async def produce(self) -> list[Sample]:
        """Fetch the entity endpoint and extract allow-listed samples.

        Any API failure, stale credentials included, is logged and yields no
        samples; the next scrape tries again.
        """
        try:
            document = await self.cluster.fetch(self.endpoint)
        except NutanixError as e:
            logger.warning(
                "Error fetching entity data",
                cluster=self.cluster.name,
                entity_type=self.entity_type.value,
                error=str(e),
            )
            return []

        samples: list[Sample] = []
        for fields, labels in self.traverse(document, self.cluster.name):
            samples.extend(self.extractor.extract(fields, labels))

        logger.debug(
            "Collected entity metrics",
            cluster=self.cluster.name,
            entity_type=self.entity_type.value,
            samples=len(samples),
        )
        return samples

    def apply(self, samples: list[Sample]) -> None:
        """Publish samples to the cluster registry, replacing the previous scrape."""
        self.extractor.apply(samples)

    def __repr__(self) -> str:
        return f"EntityCollector(cluster={self.cluster.name!r}, entity_type={self.entity_type.value})"
