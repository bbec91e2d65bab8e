"""Traversal rules for each Prism Element entity endpoint.

Each traversal turns one API response into groups of flat fields paired with
the label values they are exported under.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from shared.models import METADATA_INSTANCE, UNKNOWN_INSTANCE

from ..metrics import flatten
from .base import FieldGroup


def instance_name(entity: Mapping[str, Any]) -> str:
    match entity:
        case {"name": str(name)}:
            return name
        case _:
            return UNKNOWN_INSTANCE


def _metadata(document: Mapping[str, Any], cluster_name: str) -> Iterator[FieldGroup]:
    """List responses carry totals in a top-level metadata block."""
    match document:
        case {"metadata": Mapping() as metadata}:
            yield flatten("", metadata), (cluster_name, METADATA_INSTANCE)


def _entities(document: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    match document:
        case {"entities": list(entities)}:
            for entity in entities:
                if isinstance(entity, Mapping):
                    yield entity


def traverse_cluster(document: Mapping[str, Any], cluster_name: str) -> Iterator[FieldGroup]:
    """The cluster endpoint returns one object, not a list.

    Top-level scalars are kept as is; nested blocks such as ``stats`` and
    ``usage_stats`` contribute their immediate scalars as ``{block}_{key}``.
    """
    fields: dict[str, Any] = {}
    for field, value in document.items():
        match value:
            case Mapping():
                for key, nested in value.items():
                    if not isinstance(nested, Mapping):
                        fields[f"{field}_{key}"] = nested
            case _:
                fields[field] = value

    yield fields, (cluster_name,)


def traverse_entities(document: Mapping[str, Any], cluster_name: str) -> Iterator[FieldGroup]:
    """Hosts and VMs: every entity fully flattened, labeled by its name."""
    yield from _metadata(document, cluster_name)
    for entity in _entities(document):
        yield flatten("", entity), (cluster_name, instance_name(entity))


def traverse_storage_containers(
    document: Mapping[str, Any], cluster_name: str
) -> Iterator[FieldGroup]:
    """Storage containers: only the immediate fields of ``usage_stats``."""
    yield from _metadata(document, cluster_name)
    for entity in _entities(document):
        match entity:
            case {"usage_stats": Mapping() as usage}:
                fields = {k: v for k, v in usage.items() if not isinstance(v, Mapping)}
                yield fields, (cluster_name, instance_name(entity))
