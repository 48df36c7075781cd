"""Declarative models in, REST CRUD endpoints out, with pluggable storage."""

from railnode.app import create_app
from railnode.core.config import AdapterKind, DbConfig, load_backend_config
from railnode.core.errors import ConfigurationError, RailnodeError, StoreOperationError
from railnode.domain import ModelRegistry, boolean, define_model, number, string, validate_input
from railnode.repositories import CrudItem, CrudStore, DbAdapter, create_db_adapter

__all__ = [
    "AdapterKind",
    "ConfigurationError",
    "CrudItem",
    "CrudStore",
    "DbAdapter",
    "DbConfig",
    "ModelRegistry",
    "RailnodeError",
    "StoreOperationError",
    "boolean",
    "create_app",
    "create_db_adapter",
    "define_model",
    "load_backend_config",
    "number",
    "string",
    "validate_input",
]
