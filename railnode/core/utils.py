"""
Utility helpers shared across stores/adapters.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from .errors import ConfigurationError

RESERVED_FIELDS = ("id", "createdAt", "updatedAt")

_SAFE_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds (the precision every backend keeps)."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def to_iso(value: datetime | str | None) -> str:
    """
    Serialize a timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Naive datetimes are treated as UTC (SQLite and some drivers drop tzinfo).
    """
    if value is None:
        value = utc_now()
    elif isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return to_iso(utc_now())


def new_id() -> str:
    """Random 128-bit identifier (uuid4, canonical 36 char form)."""
    return str(uuid.uuid4())


def strip_reserved_fields(payload: Any) -> dict[str, Any]:
    """
    Drop client-supplied identity/timestamp keys from a payload.

    Anything that is not a mapping yields an empty dict.
    """
    if not isinstance(payload, Mapping):
        return {}
    return {key: value for key, value in payload.items() if key not in RESERVED_FIELDS}


def plural_name(entity_name: str, pattern: str = r"[^A-Za-z0-9_]") -> str:
    """``Todo`` -> ``todos``; characters outside the allowed set become ``_``."""
    return re.sub(pattern, "_", f"{entity_name.lower()}s")


def safe_identifier(name: str, *, setting: str = "identifier") -> str:
    """Validate a SQL identifier against the allow-list and return it unchanged."""
    if not _SAFE_IDENTIFIER.match(name or ""):
        raise ConfigurationError(
            f"Invalid SQL identifier for {setting}: {name!r}. "
            "Use letters, numbers, and underscores only (must not start with a number).",
            setting=setting,
        )
    return name
