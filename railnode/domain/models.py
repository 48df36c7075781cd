"""Model definitions and the registry handed to the adapter factory and routers."""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping

from railnode.core.errors import ConfigurationError

from .fields import FieldDefinition

ModelSchema = Mapping[str, FieldDefinition]


@dataclass(frozen=True)
class ModelDefinition:
    """A named entity and its field schema (read-only once built)."""

    name: str
    schema: ModelSchema


def define_model(name: str, schema: Mapping[str, FieldDefinition]) -> ModelDefinition:
    """Build a ModelDefinition; the schema is copied so later edits to ``schema`` have no effect."""
    model_name = (name or "").strip()
    if not model_name:
        raise ConfigurationError("Model name must be a non-empty string", setting="model.name")
    for key, field in schema.items():
        if not isinstance(field, FieldDefinition):
            raise ConfigurationError(
                f"Field {model_name}.{key} must be built with string(), number() or boolean()",
                setting=f"{model_name}.{key}",
            )
    return ModelDefinition(name=model_name, schema=MappingProxyType(dict(schema)))


class ModelRegistry:
    """
    Registry of entity models, built once at startup.

    Stores and routers only read from it.
    """

    def __init__(self, models: list[ModelDefinition] | None = None) -> None:
        self._models: dict[str, ModelDefinition] = {}
        for model in models or []:
            self.register(model)

    def register(self, model: ModelDefinition) -> ModelDefinition:
        # Re-registering a name replaces the previous definition.
        self._models[model.name] = model
        return model

    def define(self, name: str, schema: Mapping[str, FieldDefinition]) -> ModelDefinition:
        return self.register(define_model(name, schema))

    def get(self, name: str) -> ModelDefinition | None:
        return self._models.get(name)

    def models(self) -> list[ModelDefinition]:
        return list(self._models.values())

    def __iter__(self) -> Iterator[ModelDefinition]:
        return iter(self.models())

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, name: object) -> bool:
        return name in self._models
