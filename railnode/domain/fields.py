"""Field builders used in model definitions: ``{"title": string(), "due": number().optional()}``."""
from __future__ import annotations

import enum
from dataclasses import dataclass, replace


class FieldType(str, enum.Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class FieldDefinition:
    type: FieldType
    is_optional: bool = False

    def optional(self) -> "FieldDefinition":
        return replace(self, is_optional=True)


def string() -> FieldDefinition:
    return FieldDefinition(FieldType.STRING)


def number() -> FieldDefinition:
    return FieldDefinition(FieldType.NUMBER)


def boolean() -> FieldDefinition:
    return FieldDefinition(FieldType.BOOLEAN)
