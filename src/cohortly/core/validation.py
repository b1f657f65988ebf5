"""
Input validation for action parameters.

Raw request parameters are validated against a Pydantic params model. The
first failure is reported as a ValidationError whose message names the
parameter the way the client sent it (e.g. "Missing programId").
"""

from __future__ import annotations

from typing import Any, TypeVar

import pydantic

from cohortly.core.errors import ValidationError

ParamsT = TypeVar("ParamsT", bound=pydantic.BaseModel)


def _field_label(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) or "request"


def describe_validation_error(error: pydantic.ValidationError) -> str:
    """Human-readable message for the first validation failure."""
    first = error.errors()[0]
    label = _field_label(first["loc"])

    if first["type"] == "missing":
        return f"Missing {label}"
    if first["type"] == "value_error" and not first["loc"]:
        # model-level validator; pydantic prefixes "Value error, "
        return str(first["msg"]).removeprefix("Value error, ")
    return f"Invalid {label}: {first['msg']}"


def parse_params(model: type[ParamsT], params: dict[str, Any]) -> ParamsT:
    """Validate raw parameters into `model`.

    Raises:
        ValidationError: If a field is missing or malformed
    """
    try:
        return model.model_validate(params)
    except pydantic.ValidationError as e:
        raise ValidationError(describe_validation_error(e)) from e
