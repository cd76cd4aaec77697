"""Base Pydantic schemas shared by entities and inputs."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema with common configuration.

    Attribute names are snake_case in Python; the camelCase aliases are the
    shape handed to the UI layer (``model_dump(by_alias=True)``).
    """

    model_config = ConfigDict(
        from_attributes=True,
        validate_assignment=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class InputSchema(BaseSchema):
    """Base schema for caller-supplied fields.

    Unknown keys are rejected so that callers cannot smuggle in
    store-owned fields such as ``id`` or ``createdAt``.
    """

    model_config = ConfigDict(extra="forbid")
