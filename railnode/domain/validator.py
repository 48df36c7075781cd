"""Request body validation against a model schema."""
from __future__ import annotations

from typing import Any, Mapping

from .fields import FieldDefinition, FieldType


def _matches(field_type: FieldType, value: Any) -> bool:
    if field_type is FieldType.STRING:
        return isinstance(value, str)
    if field_type is FieldType.NUMBER:
        # bool is an int subclass; JSON true/false are not numbers
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return isinstance(value, bool)


def validate_input(schema: Mapping[str, FieldDefinition], body: Any) -> list[str]:
    """Return a list of human readable errors (empty when the body is valid)."""
    if not isinstance(body, dict):
        return ["body must be an object"]

    errors: list[str] = []
    for key, field in schema.items():
        value = body.get(key)
        if value is None:
            if not field.is_optional:
                errors.append(f"{key} is required")
            continue
        if not _matches(field.type, value):
            errors.append(f"{key} must be a {field.type.value}")
    return errors
