"""
In-process implementation of the data store.

Used by the test suite and for local development with
``DB_BACKEND=memory``. Rows are deep-copied on the way in and out so
callers never hold references to stored state.
"""

import copy
import operator
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Callable
from uuid import uuid4

from manupilot.database.base import utcnow
from manupilot.database.store import (
    DataStore,
    DuplicateRecordError,
    Filters,
    Row,
    UnknownCollectionError,
    parse_filter_key,
)

# Unique constraints mirrored from the SQL schema
DEFAULT_UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    "quotes": ("rfq_id", "partner_id"),
    "nda_acceptances": ("user_id", "nda_version"),
    "reviews": ("partner_id", "user_id"),
}

_MISSING = object()

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}


def _matches(row: Row, filters: Filters | None) -> bool:
    for key, expected in (filters or {}).items():
        field, op = parse_filter_key(key)
        actual = row.get(field, _MISSING)

        if op == "in":
            if actual is _MISSING or actual not in list(expected):
                return False
            continue

        if actual is _MISSING:
            actual = None

        if op in ("eq", "ne"):
            if not _COMPARATORS[op](actual, expected):
                return False
            continue

        # Range predicates never match NULLs, as in SQL
        if actual is None or expected is None:
            return False
        if not _COMPARATORS[op](actual, expected):
            return False

    return True


class InMemoryDataStore(DataStore):
    """
    Dict-backed data store.

    Args:
        collections: Names accepted by the store; ``None`` accepts any name
        unique_keys: Unique constraints per collection
    """

    def __init__(
        self,
        collections: set[str] | None = None,
        unique_keys: dict[str, tuple[str, ...]] | None = None,
    ):
        self.collections = collections
        self.unique_keys = DEFAULT_UNIQUE_KEYS if unique_keys is None else unique_keys
        self._rows: dict[str, dict[str, Row]] = defaultdict(dict)
        self._last_timestamp: datetime | None = None

    def _table(self, collection: str) -> dict[str, Row]:
        if self.collections is not None and collection not in self.collections:
            raise UnknownCollectionError(f"Unknown collection: {collection}")
        return self._rows[collection]

    def _now(self) -> datetime:
        # Strictly increasing so created_at ordering is total
        now = utcnow()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _find_conflict(self, collection: str, row: Row, keys: tuple[str, ...]) -> Row | None:
        for existing in self._table(collection).values():
            if existing["id"] != row.get("id") and all(
                existing.get(k) == row.get(k) for k in keys
            ):
                return existing
        return None

    async def select(
        self,
        collection: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        rows = [row for row in self._table(collection).values() if _matches(row, filters)]

        if order_by:
            # NULLs sort last in both directions
            present = [r for r in rows if r.get(order_by) is not None]
            absent = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            rows = present + absent

        if limit is not None:
            rows = rows[:limit]

        return copy.deepcopy(rows)

    async def get(self, collection: str, row_id: str) -> Row | None:
        row = self._table(collection).get(row_id)
        return copy.deepcopy(row) if row is not None else None

    async def insert(self, collection: str, values: Row) -> Row:
        table = self._table(collection)
        now = self._now()
        row = {
            "id": str(uuid4()),
            "created_at": now,
            "updated_at": now,
            **copy.deepcopy(values),
        }

        if row["id"] in table:
            raise DuplicateRecordError(f"Duplicate id in {collection}: {row['id']}")

        keys = self.unique_keys.get(collection)
        if keys and self._find_conflict(collection, row, keys):
            raise DuplicateRecordError(
                f"Duplicate {collection} row for ({', '.join(keys)})"
            )

        table[row["id"]] = row
        return copy.deepcopy(row)

    async def update(self, collection: str, filters: Filters, values: Row) -> list[Row]:
        table = self._table(collection)
        updated = []
        for row in table.values():
            if _matches(row, filters):
                row.update(copy.deepcopy(values))
                row["updated_at"] = self._now()
                updated.append(copy.deepcopy(row))
        return updated

    async def upsert(
        self,
        collection: str,
        values: Row,
        on_conflict: tuple[str, ...],
    ) -> Row:
        existing = self._find_conflict(collection, {"id": None, **values}, on_conflict)
        if existing is None:
            return await self.insert(collection, values)

        changes = {k: v for k, v in values.items() if k not in ("id", "created_at")}
        rows = await self.update(collection, {"id": existing["id"]}, changes)
        return rows[0]

    async def delete(self, collection: str, filters: Filters) -> int:
        table = self._table(collection)
        doomed = [row_id for row_id, row in table.items() if _matches(row, filters)]
        for row_id in doomed:
            del table[row_id]
        return len(doomed)

    async def count(self, collection: str, filters: Filters | None = None) -> int:
        return sum(1 for row in self._table(collection).values() if _matches(row, filters))

    def seed(self, collection: str, rows: list[Row]) -> list[Row]:
        """Synchronously load fixture rows; returns the stored copies."""
        stored = []
        table = self._table(collection)
        for values in rows:
            now = self._now()
            row = {"id": str(uuid4()), "created_at": now, "updated_at": now, **copy.deepcopy(values)}
            table[row["id"]] = row
            stored.append(copy.deepcopy(row))
        return stored
