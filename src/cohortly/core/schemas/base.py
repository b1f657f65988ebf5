"""
Shared schema configuration.

Action parameters arrive from the browser client in camelCase; responses are
serialized in snake_case straight from ORM attributes.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class ActionParams(BaseModel):
    """Base for action-dispatch parameters.

    Empty strings are treated as absent, matching how the client sends
    cleared form fields.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_blank_strings(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value != ""}
        return data


class ORMSchema(BaseModel):
    """Base for response schemas built from ORM objects."""

    model_config = ConfigDict(from_attributes=True)
