"""Nested JSON to flat gauge extraction.

Prism responses are arbitrary JSON documents. Values are turned into gauge
samples in three steps:

1. ``flatten`` collapses nested mappings into ``parent_child`` keys
2. ``normalize_key`` canonicalizes each key into a metric-name fragment
3. ``coerce_numeric`` turns the JSON scalar into a float

Only keys present in the entity type's allow-list produce samples.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import NamedTuple, TypeAlias

from prometheus_client import CollectorRegistry, Gauge

from shared.models import NAMESPACE, EntityType, MetricDefinition

JSONValue: TypeAlias = (
    None | bool | int | float | str | Sequence["JSONValue"] | Mapping[str, "JSONValue"]
)

_KEY_SEPARATORS = str.maketrans({".": "_", "-": "_", ":": "_"})


class Sample(NamedTuple):
    """One gauge value: allow-listed key, label values, numeric value."""

    name: str
    labels: tuple[str, ...]
    value: float


def coerce_numeric(value: JSONValue) -> float:
    """Convert a JSON scalar into a float sample value.

    ``"on"`` maps to 1 and ``"off"`` (any case) to 0, other strings are parsed
    as decimals. Anything that cannot be interpreted yields 0.
    """
    match value:
        case bool():
            return 1.0 if value else 0.0
        case int() | float():
            try:
                return float(value)
            except OverflowError:
                return 0.0
        case "on":
            return 1.0
        case str() if value.lower() == "off":
            return 0.0
        case str():
            try:
                return float(value)
            except (ValueError, OverflowError):
                return 0.0
        case _:
            return 0.0


def normalize_key(key: str) -> str:
    """Lower-case a key and replace ``.``, ``-`` and ``:`` with ``_``."""
    return key.lower().translate(_KEY_SEPARATORS)


def flatten(prefix: str, document: Mapping[str, JSONValue]) -> dict[str, JSONValue]:
    """Collapse nested mappings into a single level joined by underscores.

    Depth is unbounded. Keys produced by different branches that end up equal
    overwrite each other in document order.
    """
    flat: dict[str, JSONValue] = {}
    # Explicit stack instead of recursion
    stack = [(prefix, iter(document.items()))]

    while stack:
        parent, items = stack[-1]
        for field, value in items:
            key = f"{parent}_{field}" if parent else str(field)
            match value:
                case Mapping():
                    stack.append((key, iter(value.items())))
                    break
                case _:
                    flat[key] = value
        else:
            stack.pop()

    return flat


class MetricExtractor:
    """Allow-list driven gauge set for one entity type of one cluster.

    Every allow-listed metric gets its gauge registered in the cluster's
    registry up front; ``extract`` never creates gauges on the fly.
    """

    def __init__(
        self,
        entity_type: EntityType,
        definitions: Iterable[MetricDefinition],
        label_names: Sequence[str],
        registry: CollectorRegistry,
    ):
        self.entity_type = entity_type
        self.label_names = tuple(label_names)
        self.gauges: dict[str, Gauge] = {}

        for definition in definitions:
            self.gauges[definition.name] = Gauge(
                definition.name,
                definition.help or definition.name,
                labelnames=self.label_names,
                namespace=NAMESPACE,
                subsystem=entity_type.value,
                registry=registry,
            )

    def allows(self, key: str) -> bool:
        return key in self.gauges

    def extract(
        self,
        fields: Mapping[str, JSONValue],
        labels: tuple[str, ...],
    ) -> list[Sample]:
        """Turn flat fields into samples, dropping keys not in the allow-list."""
        samples = []
        for key, value in fields.items():
            name = normalize_key(key)
            if self.allows(name):
                samples.append(Sample(name, labels, coerce_numeric(value)))
        return samples

    def apply(self, samples: Iterable[Sample]) -> None:
        """Replace every gauge's label sets with the given samples."""
        for gauge in self.gauges.values():
            gauge.clear()
        for sample in samples:
            self.gauges[sample.name].labels(*sample.labels).set(sample.value)

