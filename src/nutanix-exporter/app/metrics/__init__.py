"""Metric extraction engine and allow-list loading."""

from .definitions import MetricConfigError, MetricDefinitionSource, load_definitions
from .extraction import (
    JSONValue,
    MetricExtractor,
    Sample,
    coerce_numeric,
    flatten,
    normalize_key,
)

__all__ = [
    "JSONValue",
    "MetricConfigError",
    "MetricDefinitionSource",
    "MetricExtractor",
    "Sample",
    "coerce_numeric",
    "flatten",
    "load_definitions",
    "normalize_key",
]
