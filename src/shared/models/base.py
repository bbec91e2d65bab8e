"""Base model configuration for all Pydantic models."""

from pydantic import BaseModel, ConfigDict


class ExporterBaseModel(BaseModel):
    """Base model with common configuration.

    Conventions:
    - Models are immutable once built
    - Field names are lowercase snake_case
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        use_enum_values=True,
    )
