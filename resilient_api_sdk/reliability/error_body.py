"""
Server error body parsing.

Servers report failures in a handful of shapes. Each known shape is a small
pydantic model; ``parse_error_body`` tries them in order and falls back to the
UNPARSED variant, so classification never probes an untyped payload directly.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..models.errors import ErrorBodyVariant, StructuredErrorData


class _Shape(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class MessageShape(_Shape):
    """``{"message": "...", "code"?: ..., "details"?: {...}}``"""
    message: str
    code: Any = None
    details: Any = None


class ErrorShape(_Shape):
    """``{"error": "..."}``"""
    error: str
    code: Any = None


class ErrorListShape(_Shape):
    """``{"errors": ["...", {"message": "..."}, {"error": "..."}]}``"""
    errors: List[Any]


class ValidationShape(_Shape):
    """``{"validationErrors": {"field": ["..."]}}``"""
    validation_errors: Dict[str, List[str]] = Field(alias="validationErrors")


_SHAPES = (
    (ErrorBodyVariant.MESSAGE, MessageShape),
    (ErrorBodyVariant.ERROR, ErrorShape),
    (ErrorBodyVariant.ERROR_LIST, ErrorListShape),
    (ErrorBodyVariant.VALIDATION, ValidationShape),
)


def _try(shape, payload):
    try:
        return shape.model_validate(payload)
    except ValidationError:
        return None


def _error_item_text(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in ("message", "error"):
            value = item.get(key)
            if isinstance(value, str) and value:
                return value
    try:
        return json.dumps(item, default=str)
    except (TypeError, ValueError):
        return str(item)


def parse_error_body(payload: Any) -> StructuredErrorData:
    """
    Parse a server error payload into ``StructuredErrorData``.

    The variant is the first shape that matches; fields of the other shapes
    are still collected when present. Any payload that is not a JSON object
    is kept as ``raw`` under the UNPARSED variant.
    """
    if not isinstance(payload, dict):
        return StructuredErrorData(variant=ErrorBodyVariant.UNPARSED, raw=payload)

    matched = {variant: _try(shape, payload) for variant, shape in _SHAPES}
    variant = next(
        (v for v, _ in _SHAPES if matched[v] is not None),
        ErrorBodyVariant.UNPARSED,
    )

    message_shape = matched[ErrorBodyVariant.MESSAGE]
    error_shape = matched[ErrorBodyVariant.ERROR]
    list_shape = matched[ErrorBodyVariant.ERROR_LIST]
    validation_shape = matched[ErrorBodyVariant.VALIDATION]

    code = None
    for shape in (message_shape, error_shape):
        if shape is not None and shape.code is not None:
            code = str(shape.code)
            break

    details = None
    if message_shape is not None and isinstance(message_shape.details, dict):
        details = message_shape.details

    errors: List[str] = []
    if list_shape is not None:
        errors = [text for text in map(_error_item_text, list_shape.errors) if text]

    return StructuredErrorData(
        variant=variant,
        message=message_shape.message if message_shape else None,
        error=error_shape.error if error_shape else None,
        code=code,
        details=details,
        errors=errors,
        validation_errors=validation_shape.validation_errors if validation_shape else {},
        raw=payload,
    )
