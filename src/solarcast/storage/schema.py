"""
Database schema for the SolarCast state store.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, MetaData, Table, Text
from sqlalchemy.sql import func

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

states_table = Table(
    "states",
    metadata,
    Column("state_id", Text, primary_key=True),
    # JSON-encoded so floats, strings and null survive a round trip
    Column("value", Text, nullable=True),
    Column("ack", Boolean, nullable=False, default=True),
    Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now(), index=True),
)
