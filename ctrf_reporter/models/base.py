"""Base model configuration for all report structures."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Model(BaseModel):
    """Base model with standard configuration.

    Fields use their camelCase CTRF names on the wire. Absent values are
    omitted from the JSON output rather than written as null.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json(self) -> str:
        """Serialize using CTRF field names, dropping absent values."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)
