"""Strict schema baselines with camelCase aliases for stored records."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StrictModel(BaseModel):
    """Immutable value object that accepts camelCase or snake_case keys and forbids extras."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class RecordModel(StrictModel):
    """Persisted record shape; unknown keys written by other services are ignored."""

    # Inherits aliasing/frozen from StrictModel
    model_config = ConfigDict(extra="ignore")
