"""Base model for stored documents.

Every document model inherits from :class:`FleetBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase document keys map
  automatically to snake_case fields, and ``model_dump(by_alias=True)``
  produces the stored shape.
* A ``model_validator(mode="before")`` that drops ``None`` values so the
  field default is used instead.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class FleetBaseModel(BaseModel):
    """Base for stored document models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}

    def to_document(self) -> dict[str, Any]:
        """Return the stored (camelCase) representation."""
        return self.model_dump(by_alias=True, mode="json")
