"""
SQLAlchemy implementation of the data store.

Each call runs in its own session with automatic commit/rollback.
Backend failures surface as ``DataStoreError``.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import delete, false, func, inspect as sa_inspect, select, update
from sqlalchemy.dialects.postgresql import UUID, insert as pg_insert
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError, StatementError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from manupilot.config.settings import DatabaseSettings
from manupilot.database.base import Base, create_engine, create_session_factory, utcnow
from manupilot.database.store import (
    DataStore,
    DataStoreError,
    DuplicateRecordError,
    Filters,
    InvalidValueError,
    Row,
    UnknownCollectionError,
    parse_filter_key,
)
from manupilot.models import COLLECTIONS


def _to_row(obj: Base) -> Row:
    return {attr.key: getattr(obj, attr.key) for attr in sa_inspect(obj).mapper.column_attrs}


def _is_uuid(value: Any) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _uuid_columns(model: type[Base]) -> set[str]:
    return {c.name for c in model.__table__.columns if isinstance(c.type, UUID)}


def check_values(model: type[Base], values: Row) -> None:
    """
    Reject malformed UUIDs before they reach the driver.

    Raises:
        InvalidValueError: If a UUID column is given a non-UUID value
    """
    for name in _uuid_columns(model).intersection(values):
        value = values[name]
        if value is not None and not _is_uuid(value):
            raise InvalidValueError(f"Invalid {name}: {value!r}")


class SQLDataStore(DataStore):
    """
    Data store backed by PostgreSQL through SQLAlchemy's async engine.

    Args:
        engine: Async engine; sessions are created per call
        create_tables: Run ``create_all`` on initialize
    """

    def __init__(self, engine: AsyncEngine, create_tables: bool = True):
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        self.create_tables = create_tables

    @classmethod
    def from_settings(cls, db_settings: DatabaseSettings, echo: bool = False) -> "SQLDataStore":
        return cls(create_engine(db_settings, echo=echo), create_tables=db_settings.create_tables)

    async def initialize(self) -> None:
        if not self.create_tables:
            return
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise DataStoreError(f"Failed to initialize schema: {e}") from e

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            raise DuplicateRecordError(str(e.orig)) from e
        except DataError as e:
            await session.rollback()
            raise InvalidValueError(str(e.orig)) from e
        except StatementError as e:
            await session.rollback()
            # Bind-time conversion failures carry the Python error as orig
            if isinstance(e.orig, (ValueError, TypeError)):
                raise InvalidValueError(str(e.orig)) from e
            raise DataStoreError(str(e)) from e
        except SQLAlchemyError as e:
            await session.rollback()
            raise DataStoreError(str(e)) from e
        except OSError as e:
            # asyncpg connection failures
            await session.rollback()
            raise DataStoreError(str(e)) from e
        finally:
            await session.close()

    def _model(self, collection: str) -> type[Base]:
        model = COLLECTIONS.get(collection)
        if model is None:
            raise UnknownCollectionError(f"Unknown collection: {collection}")
        return model

    def _conditions(self, model: type[Base], filters: Filters | None) -> list[Any]:
        """
        Translate store filters into SQL conditions.

        A malformed value for a UUID column can never match, so it becomes
        a false condition instead of a driver error.
        """
        uuid_columns = _uuid_columns(model)
        conditions = []
        for key, value in (filters or {}).items():
            field, op = parse_filter_key(key)
            column = getattr(model, field, None)
            if column is None:
                raise DataStoreError(f"Unknown field {field} on {model.__tablename__}")

            if field in uuid_columns:
                if op == "in":
                    value = [v for v in value if _is_uuid(v)]
                elif value is not None and not _is_uuid(value):
                    conditions.append(column.is_not(None) if op == "ne" else false())
                    continue

            if op == "eq":
                conditions.append(column.is_(None) if value is None else column == value)
            elif op == "ne":
                conditions.append(column.is_not(None) if value is None else column != value)
            elif op == "in":
                conditions.append(column.in_(list(value)))
            elif op == "gt":
                conditions.append(column > value)
            elif op == "gte":
                conditions.append(column >= value)
            elif op == "lt":
                conditions.append(column < value)
            elif op == "lte":
                conditions.append(column <= value)
        return conditions

    async def select(
        self,
        collection: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        model = self._model(collection)
        query = select(model).where(*self._conditions(model, filters))

        if order_by:
            column = getattr(model, order_by)
            query = query.order_by(column.desc().nulls_last() if descending else column.asc().nulls_last())

        if limit is not None:
            query = query.limit(limit)

        async with self._session() as session:
            result = await session.execute(query)
            return [_to_row(obj) for obj in result.scalars().all()]

    async def get(self, collection: str, row_id: str) -> Row | None:
        model = self._model(collection)
        if not _is_uuid(row_id):
            return None
        async with self._session() as session:
            obj = await session.get(model, row_id)
            return _to_row(obj) if obj is not None else None

    async def insert(self, collection: str, values: Row) -> Row:
        model = self._model(collection)
        check_values(model, values)
        async with self._session() as session:
            obj = model(**values)
            session.add(obj)
            await session.flush()
            await session.refresh(obj)
            return _to_row(obj)

    async def insert_many(self, collection: str, rows: list[Row]) -> list[Row]:
        model = self._model(collection)
        for values in rows:
            check_values(model, values)
        async with self._session() as session:
            objs = [model(**values) for values in rows]
            session.add_all(objs)
            await session.flush()
            for obj in objs:
                await session.refresh(obj)
            return [_to_row(obj) for obj in objs]

    async def update(self, collection: str, filters: Filters, values: Row) -> list[Row]:
        model = self._model(collection)
        check_values(model, values)
        statement = (
            update(model)
            .where(*self._conditions(model, filters))
            .values({**values, "updated_at": utcnow()})
            .returning(model)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            result = await session.execute(statement)
            return [_to_row(obj) for obj in result.scalars().all()]

    async def upsert(
        self,
        collection: str,
        values: Row,
        on_conflict: tuple[str, ...],
    ) -> Row:
        model = self._model(collection)
        check_values(model, values)
        changes = {
            k: v for k, v in values.items()
            if k not in on_conflict and k not in ("id", "created_at")
        }
        changes["updated_at"] = utcnow()

        statement = (
            pg_insert(model)
            .values(**values)
            .on_conflict_do_update(index_elements=list(on_conflict), set_=changes)
            .returning(model)
            .execution_options(populate_existing=True)
        )
        async with self._session() as session:
            result = await session.execute(statement)
            return _to_row(result.scalars().one())

    async def delete(self, collection: str, filters: Filters) -> int:
        model = self._model(collection)
        statement = delete(model).where(*self._conditions(model, filters))
        async with self._session() as session:
            result = await session.execute(statement)
            return result.rowcount or 0

    async def count(self, collection: str, filters: Filters | None = None) -> int:
        model = self._model(collection)
        query = select(func.count()).select_from(model).where(
            *self._conditions(model, filters)
        )
        async with self._session() as session:
            result = await session.execute(query)
            return result.scalar_one()
