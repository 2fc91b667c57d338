"""
SQLAlchemy Core implementation of the migrator stores.

Works with any SQLAlchemy async dialect: SQL Server (aioodbc),
PostgreSQL (asyncpg) and SQLite (aiosqlite) are the ones exercised.
Queries are built with Core table clauses rather than text() so that
identifier quoting ("AspNetUsers") and paging syntax (LIMIT/OFFSET vs
OFFSET/FETCH) follow the dialect.

Example:
    >>> from sqlalchemy.ext.asyncio import create_async_engine
    >>> source = SQLAlchemyRowSource(create_async_engine(mssql_url))
    >>> destination = SQLAlchemyDestinationStore(create_async_engine(postgres_url))
    >>> page = await source.fetch_page(EntityType.ROLE, 0, 2000)
    >>> tx = await destination.begin()
    >>> await tx.insert_batch(EntityType.ROLE, page)
    >>> await tx.commit()
"""

from __future__ import annotations

import functools
import logging

from sqlalchemy import column, insert, select, table
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction
from sqlalchemy.sql.expression import TableClause

from identitymigrator.entities import EntityType, Row
from identitymigrator.observability import (
    ATTR_BATCH_SIZE,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_ENTITY_TYPE,
    ATTR_PAGE_OFFSET,
    ATTR_ROW_COUNT,
    ATTR_TABLE_NAME,
    Tracer,
    create_tracer,
)
from identitymigrator.stores._connection import connection_scope
from identitymigrator.stores.interface import (
    DestinationStore,
    DestinationTransaction,
    RowSource,
)

logger = logging.getLogger(__name__)


@functools.cache
def entity_table(entity: EntityType) -> TableClause:
    """
    Build the lightweight table clause of an entity type.

    Args:
        entity: Entity type

    Returns:
        A TableClause with one column per entity column.
    """
    return table(entity.table_name, *(column(name) for name in entity.columns))


class SQLAlchemyRowSource(RowSource):
    """
    RowSource over a SQLAlchemy async engine or connection.

    Each page is read with
    ``SELECT <columns> FROM <table> ORDER BY <sort key> OFFSET :o LIMIT :n``
    (or the dialect's equivalent) on a non-transactional connection.
    """

    def __init__(
        self,
        conn: AsyncConnection | AsyncEngine,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the source.

        Args:
            conn: Database connection or engine of the origin store
            tracer: Optional tracer (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._conn = conn
        self._db_system = conn.dialect.name

    async def fetch_page(self, entity: EntityType, offset: int, limit: int) -> list[Row]:
        tbl = entity_table(entity)
        query = (
            select(*tbl.c)
            .order_by(*(tbl.c[name] for name in entity.sort_key))
            .offset(offset)
            .limit(limit)
        )

        with self._tracer.span(
            "identitymigrator.source.fetch_page",
            {
                ATTR_ENTITY_TYPE: entity.value,
                ATTR_TABLE_NAME: entity.table_name,
                ATTR_PAGE_OFFSET: offset,
                ATTR_BATCH_SIZE: limit,
                ATTR_DB_SYSTEM: self._db_system,
                ATTR_DB_OPERATION: "SELECT",
            },
        ) as span:
            async with connection_scope(self._conn) as conn:
                result = await conn.execute(query)
                rows = [dict(mapping) for mapping in result.mappings().all()]

            if span:
                span.set_attribute(ATTR_ROW_COUNT, len(rows))
            return rows


class SQLAlchemyTransaction(DestinationTransaction):
    """
    Destination transaction bound to one AsyncConnection.

    Batches are sent as executemany INSERTs inside the transaction. No
    ORM session is involved, so nothing is tracked between batches.
    """

    def __init__(
        self,
        conn: AsyncConnection,
        transaction: AsyncTransaction,
        *,
        owns_connection: bool,
        tracer: Tracer,
    ) -> None:
        self._conn = conn
        self._transaction = transaction
        self._owns_connection = owns_connection
        self._tracer = tracer
        self._db_system = conn.dialect.name

    @property
    def is_active(self) -> bool:
        return self._transaction.is_active

    async def insert_batch(self, entity: EntityType, rows: list[Row]) -> None:
        if not rows:
            return

        with self._tracer.span(
            "identitymigrator.destination.insert_batch",
            {
                ATTR_ENTITY_TYPE: entity.value,
                ATTR_TABLE_NAME: entity.table_name,
                ATTR_ROW_COUNT: len(rows),
                ATTR_DB_SYSTEM: self._db_system,
                ATTR_DB_OPERATION: "INSERT",
            },
        ):
            await self._conn.execute(insert(entity_table(entity)), rows)

    async def commit(self) -> None:
        try:
            await self._transaction.commit()
        finally:
            await self._release()

    async def rollback(self) -> None:
        try:
            if self._transaction.is_active:
                await self._transaction.rollback()
        finally:
            await self._release()

    async def _release(self) -> None:
        if self._owns_connection and not self._conn.closed:
            await self._conn.close()


class SQLAlchemyDestinationStore(DestinationStore):
    """
    DestinationStore over a SQLAlchemy async engine or connection.

    With an engine, every transaction gets its own connection which is
    closed when the transaction ends. With a connection, the transaction
    is begun on it and the connection is left open for the caller.
    """

    def __init__(
        self,
        conn: AsyncConnection | AsyncEngine,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the destination.

        Args:
            conn: Database connection or engine of the destination store
            tracer: Optional tracer (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._conn = conn

    async def begin(self) -> SQLAlchemyTransaction:
        if isinstance(self._conn, AsyncEngine):
            conn = await self._conn.connect()
            owns_connection = True
        else:
            conn = self._conn
            owns_connection = False

        try:
            transaction = await conn.begin()
        except Exception:
            if owns_connection:
                await conn.close()
            raise

        logger.debug("Opened destination transaction on %s", conn.dialect.name)
        return SQLAlchemyTransaction(
            conn,
            transaction,
            owns_connection=owns_connection,
            tracer=self._tracer,
        )


__all__ = [
    "entity_table",
    "SQLAlchemyRowSource",
    "SQLAlchemyTransaction",
    "SQLAlchemyDestinationStore",
]
