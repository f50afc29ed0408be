"""
Row-based data store interface.

Services talk to named collections (``partners``, ``rfq_submissions``,
``rfq_responses``, ...) through this interface and never see the backend.
Rows are plain dicts; every row carries ``id``, ``created_at`` and
``updated_at``.

Filters map a field to a value and default to equality. A ``__<op>``
suffix selects another predicate::

    {"rfq_id": rfq_id, "status__in": ["pending", "accepted"]}
    {"created_at__gte": since}
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping

Row = dict[str, Any]
Filters = Mapping[str, Any]

FILTER_OPERATORS = ("eq", "ne", "in", "gt", "gte", "lt", "lte")


class DataStoreError(Exception):
    """The backing store failed or is unreachable."""


class DuplicateRecordError(DataStoreError):
    """An insert collided with a unique constraint."""


class UnknownCollectionError(DataStoreError):
    """The collection name is not registered with the store."""


class InvalidValueError(DataStoreError):
    """A value cannot be stored in its column (malformed id, wrong type)."""


def parse_filter_key(key: str) -> tuple[str, str]:
    """
    Split ``field__op`` into its field and operator.

    Raises:
        ValueError: If the operator suffix is not supported
    """
    field, sep, op = key.rpartition("__")
    if not sep:
        return key, "eq"
    if op not in FILTER_OPERATORS:
        raise ValueError(f"Unsupported filter operator: {op}")
    return field, op


class DataStore(ABC):
    """
    Interface for collection CRUD against the relational backend.

    All methods raise ``DataStoreError`` (or a subclass) when the backend
    fails. Updates are last-write-wins; the store adds no locking beyond
    the backend's own per-row semantics.
    """

    async def initialize(self) -> None:
        """Prepare the backend (create tables, warm pools)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def select(
        self,
        collection: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        """Return rows matching all filters."""

    @abstractmethod
    async def get(self, collection: str, row_id: str) -> Row | None:
        """Return one row by id."""

    @abstractmethod
    async def insert(self, collection: str, values: Row) -> Row:
        """Insert a row and return it with generated columns filled in."""

    async def insert_many(self, collection: str, rows: Iterable[Row]) -> list[Row]:
        """Insert several rows, in order."""
        return [await self.insert(collection, row) for row in rows]

    @abstractmethod
    async def update(self, collection: str, filters: Filters, values: Row) -> list[Row]:
        """Set ``values`` on every matching row and return the updated rows."""

    async def replace(self, collection: str, row_id: str, values: Row) -> Row | None:
        """
        Overwrite the named fields of one row.

        Last write wins; fields are replaced whole, never merged. Returns
        None when no row has that id.
        """
        rows = await self.update(collection, {"id": row_id}, values)
        return rows[0] if rows else None

    @abstractmethod
    async def upsert(
        self,
        collection: str,
        values: Row,
        on_conflict: tuple[str, ...],
    ) -> Row:
        """Insert, or update the row whose ``on_conflict`` fields match."""

    @abstractmethod
    async def delete(self, collection: str, filters: Filters) -> int:
        """Delete matching rows and return how many were removed."""

    @abstractmethod
    async def count(self, collection: str, filters: Filters | None = None) -> int:
        """Count matching rows."""
