"""
Key-value store for acknowledged forecast states, backed by SQLite.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import aiosqlite
import structlog
from sqlalchemy import create_engine

from solarcast.config.config import StorageConfig

from .schema import metadata as db_metadata

logger = structlog.get_logger(__name__)

# Increment whenever schema.py changes.
CURRENT_SCHEMA_VERSION = 1

_SELECT_SQL = "SELECT state_id, value, ack, updated_at FROM states"

_UPSERT_SQL = """
    INSERT INTO states (state_id, value, ack, updated_at)
    VALUES (?, ?, ?, CURRENT_TIMESTAMP)
    ON CONFLICT(state_id) DO UPDATE SET
        value = excluded.value,
        ack = excluded.ack,
        updated_at = excluded.updated_at
"""


@dataclass(frozen=True)
class StateEntry:
    state_id: str
    value: Any
    ack: bool
    updated_at: Optional[datetime]


class StateStore:
    """Writes and reads individually acknowledged state entries."""

    def __init__(self, config: StorageConfig):
        self.config = config
        self.db_path = Path(config.db_path)
        self._conn: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Opens the connection and runs migrations."""
        if self._conn is not None:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.db_path)
        await self._conn.execute("PRAGMA busy_timeout = 5000;")
        self._conn.row_factory = aiosqlite.Row
        await self._run_migrations(self._conn)

    async def _run_migrations(self, conn: aiosqlite.Connection) -> None:
        cursor = await conn.execute("PRAGMA user_version;")
        version_row = await cursor.fetchone()
        current_version = version_row[0] if version_row is not None else 0

        if current_version < CURRENT_SCHEMA_VERSION:
            logger.info("Migrating state store schema", from_version=current_version, to_version=CURRENT_SCHEMA_VERSION)
            engine = create_engine(f"sqlite:///{self.db_path}")
            try:
                db_metadata.create_all(engine)
            finally:
                engine.dispose()
            await conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION};")
            await conn.commit()

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("State store not initialized. Call initialize() first.")
        return self._conn

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> "StateStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def set_state(self, state_id: str, value: Any, ack: bool = True) -> None:
        """Writes a single state."""
        await self.set_states({state_id: value}, ack=ack)

    async def set_states(self, states: Mapping[str, Any], ack: bool = True) -> None:
        """Writes several states in a single transaction."""
        if not states:
            return
        rows = [(state_id, json.dumps(value), ack) for state_id, value in states.items()]
        conn = self._connection()
        await conn.executemany(_UPSERT_SQL, rows)
        await conn.commit()
        logger.debug("States written", count=len(rows), ack=ack)

    async def get_state(self, state_id: str) -> Optional[StateEntry]:
        conn = self._connection()
        cursor = await conn.execute(f"{_SELECT_SQL} WHERE state_id = ?", (state_id,))
        row = await cursor.fetchone()
        return _to_entry(row) if row is not None else None

    async def all_states(self, prefix: Optional[str] = None) -> List[StateEntry]:
        conn = self._connection()
        if prefix:
            cursor = await conn.execute(
                f"{_SELECT_SQL} WHERE substr(state_id, 1, ?) = ? ORDER BY state_id",
                (len(prefix), prefix),
            )
        else:
            cursor = await conn.execute(f"{_SELECT_SQL} ORDER BY state_id")
        rows = await cursor.fetchall()
        return [_to_entry(row) for row in rows]

    async def as_dict(self, prefix: Optional[str] = None) -> Dict[str, Any]:
        return {entry.state_id: entry.value for entry in await self.all_states(prefix)}


def _to_entry(row: aiosqlite.Row) -> StateEntry:
    try:
        value = json.loads(row["value"]) if row["value"] is not None else None
    except (json.JSONDecodeError, TypeError):
        logger.warning("Undecodable state value", state_id=row["state_id"])
        value = None
    updated_at = row["updated_at"]
    if isinstance(updated_at, str):
        updated_at = datetime.fromisoformat(updated_at)
    return StateEntry(state_id=row["state_id"], value=value, ack=bool(row["ack"]), updated_at=updated_at)
