"""
Database module for the ManuPilot sourcing API.

Provides the row-based data store interface, its in-memory
implementation and the declarative base for the SQL implementation
(``manupilot.database.sql``).
"""

from manupilot.config.settings import DatabaseSettings
from manupilot.database.base import Base, create_engine, create_session_factory
from manupilot.database.store import (
    DataStore,
    DataStoreError,
    DuplicateRecordError,
    InvalidValueError,
    UnknownCollectionError,
    Row,
    Filters,
)
from manupilot.database.memory import InMemoryDataStore


def build_store(db_settings: DatabaseSettings, echo: bool = False) -> DataStore:
    """Construct the configured data store backend."""
    if db_settings.backend == "memory":
        return InMemoryDataStore()

    from manupilot.database.sql import SQLDataStore

    return SQLDataStore.from_settings(db_settings, echo=echo)


__all__ = [
    "Base",
    "create_engine",
    "create_session_factory",
    "DataStore",
    "DataStoreError",
    "DuplicateRecordError",
    "InvalidValueError",
    "UnknownCollectionError",
    "Row",
    "Filters",
    "InMemoryDataStore",
    "build_store",
]
