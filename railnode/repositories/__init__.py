"""
Persistence adapters.

Every backend exposes the same CrudStore contract so the CRUD routes never
know where records live:

- memory_store: process-local dicts
- json_storage: one JSON file per entity
- sql_repository: one table per entity (SQLAlchemy)
- mongo_repository: one collection per entity (pymongo)
"""

from .base import CrudItem, CrudStore, DbAdapter
from .factory import create_db_adapter

__all__ = ["CrudItem", "CrudStore", "DbAdapter", "create_db_adapter"]
