"""SQLite-backed state persistence for SolarCast."""

from __future__ import annotations

from .schema import metadata as db_metadata
from .state_store import StateEntry, StateStore

__all__ = ["StateEntry", "StateStore", "db_metadata"]
