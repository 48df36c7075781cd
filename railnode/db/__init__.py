"""Database helpers (engine construction, entity table layout)."""

from .models import entity_table
from .session import async_url, backend_name, get_engine

__all__ = ["async_url", "backend_name", "entity_table", "get_engine"]
