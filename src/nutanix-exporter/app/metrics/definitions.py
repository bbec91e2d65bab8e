"""Metric allow-list loading.

Each entity type has one YAML file named after it in the config directory
(``cluster.yaml``, ``host.yaml``, ``vm.yaml``, ``storage_container.yaml``),
holding an ordered list of ``{name, help}`` records.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from shared.models import EntityType, MetricDefinition
from shared.observability import get_logger

logger = get_logger(__name__)


class MetricConfigError(Exception):
    """Raised when an allow-list file is missing or malformed."""

    pass


def load_definitions(path: Path) -> tuple[MetricDefinition, ...]:
    """Read one allow-list file.

    Duplicate names keep their first definition.

    Raises:
        MetricConfigError: If the file cannot be read or parsed.
    """
    try:
        with path.open(encoding="utf-8") as f:
            records = yaml.safe_load(f)
    except OSError as e:
        raise MetricConfigError(f"cannot read metric config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise MetricConfigError(f"invalid YAML in {path}: {e}") from e

    if records is None:
        return ()
    if not isinstance(records, list):
        raise MetricConfigError(f"{path} must contain a list of metric definitions")

    definitions: dict[str, MetricDefinition] = {}
    for index, record in enumerate(records):
        try:
            definition = MetricDefinition.model_validate(record)
        except ValidationError as e:
            raise MetricConfigError(f"{path} entry {index} is invalid: {e}") from e

        if definition.name in definitions:
            logger.warning(
                "Duplicate metric definition ignored",
                path=str(path),
                metric=definition.name,
            )
            continue
        definitions[definition.name] = definition

    return tuple(definitions.values())


class MetricDefinitionSource:
    """Read-only allow-lists shared by every cluster's collectors."""

    def __init__(self, config_dir: Path | str):
        self.config_dir = Path(config_dir)
        self._cache: dict[EntityType, tuple[MetricDefinition, ...]] = {}

    def path_for(self, entity_type: EntityType) -> Path:
        return self.config_dir / f"{entity_type.value}.yaml"

    def get(self, entity_type: EntityType) -> tuple[MetricDefinition, ...]:
        """Return the allow-list for an entity type, loading it on first use."""
        if entity_type not in self._cache:
            self._cache[entity_type] = load_definitions(self.path_for(entity_type))
            logger.info(
                "Loaded metric definitions",
                entity_type=entity_type.value,
                count=len(self._cache[entity_type]),
            )
        return self._cache[entity_type]

    def load_all(self) -> None:
        """Load every entity type so configuration errors surface at startup."""
        for entity_type in EntityType:
            self.get(entity_type)
