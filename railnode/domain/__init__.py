"""Entity definitions: field builders, model registry and input validation."""

from .fields import FieldDefinition, FieldType, boolean, number, string
from .models import ModelDefinition, ModelRegistry, ModelSchema, define_model
from .validator import validate_input

__all__ = [
    "FieldDefinition",
    "FieldType",
    "ModelDefinition",
    "ModelRegistry",
    "ModelSchema",
    "boolean",
    "define_model",
    "number",
    "string",
    "validate_input",
]
