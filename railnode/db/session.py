"""Engine helpers for the SQL backend (SQLAlchemy asyncio)."""
from __future__ import annotations

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

# sync driver names -> async driver used by the relational adapter
_ASYNC_DRIVERS = {
    "postgres": "postgresql+psycopg",
    "postgresql": "postgresql+psycopg",
    "postgresql+psycopg2": "postgresql+psycopg",
    "sqlite": "sqlite+aiosqlite",
}


def async_url(connection_string: str) -> URL:
    """Parse a connection string and switch plain driver names to their async variant."""
    url = make_url(connection_string.strip())
    driver = _ASYNC_DRIVERS.get(url.drivername)
    if driver:
        url = url.set(drivername=driver)
    return url


def backend_name(connection_string: str) -> str:
    """``postgresql``, ``sqlite``... without opening a connection."""
    return async_url(connection_string).get_backend_name()


def get_engine(connection_string: str) -> AsyncEngine:
    return create_async_engine(async_url(connection_string), pool_pre_ping=True)
