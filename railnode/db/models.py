"""Table layout shared by every entity stored in the SQL backend."""
from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, MetaData, Table, Text, func, text
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL (needed for the ``||`` merge), generic JSON elsewhere
DocumentType = JSON().with_variant(JSONB(), "postgresql")


def entity_table(metadata: MetaData, name: str) -> Table:
    """id + timestamps + one JSON document column holding the entity fields."""
    return Table(
        name,
        metadata,
        Column("id", Text, primary_key=True),
        Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
        Column("updated_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
        Column("data", DocumentType, server_default=text("'{}'"), nullable=False),
        extend_existing=True,
    )
