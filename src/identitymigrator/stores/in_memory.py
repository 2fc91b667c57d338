"""
In-memory source and destination stores.

Useful for testing and development. The destination keeps staged rows
per transaction and only publishes them on commit, so atomicity of a
run can be observed without a database.
"""

import asyncio
from collections import defaultdict

from identitymigrator.entities import EntityType, Row
from identitymigrator.observability import (
    ATTR_BATCH_SIZE,
    ATTR_ENTITY_TYPE,
    ATTR_PAGE_OFFSET,
    ATTR_ROW_COUNT,
    Tracer,
    create_tracer,
)
from identitymigrator.stores.interface import (
    DestinationStore,
    DestinationTransaction,
    RowSource,
)


def _sort_key(entity: EntityType, row: Row) -> tuple:
    return tuple(row.get(column) for column in entity.sort_key)


def _primary_key(entity: EntityType, row: Row) -> tuple:
    return tuple(row.get(column) for column in entity.primary_key)


class InMemoryRowSource(RowSource):
    """
    In-memory implementation of RowSource.

    Rows are kept per entity type and sorted by the entity's sort key on
    every page request, which mirrors an ``ORDER BY ... OFFSET ... LIMIT``
    query.

    Example:
        >>> source = InMemoryRowSource()
        >>> source.add_rows(EntityType.ROLE, [{"Id": "r1", "Name": "Admin"}])
        >>> page = await source.fetch_page(EntityType.ROLE, 0, 10)

    Attributes:
        page_requests: Every (entity, offset, limit) requested, in order
    """

    def __init__(
        self,
        tables: dict[EntityType, list[Row]] | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._tables: dict[EntityType, list[Row]] = defaultdict(list)
        for entity, rows in (tables or {}).items():
            self.add_rows(entity, rows)
        self.page_requests: list[tuple[EntityType, int, int]] = []

    def add_rows(self, entity: EntityType, rows: list[Row]) -> None:
        """Add rows to an entity type's table."""
        self._tables[entity].extend(dict(row) for row in rows)

    def fetch_count(self, entity: EntityType) -> int:
        """Number of page requests made for an entity type."""
        return sum(1 for requested, _, _ in self.page_requests if requested is entity)

    async def fetch_page(self, entity: EntityType, offset: int, limit: int) -> list[Row]:
        with self._tracer.span(
            "identitymigrator.source.fetch_page",
            {
                ATTR_ENTITY_TYPE: entity.value,
                ATTR_PAGE_OFFSET: offset,
                ATTR_BATCH_SIZE: limit,
            },
        ) as span:
            self.page_requests.append((entity, offset, limit))
            ordered = sorted(self._tables[entity], key=lambda row: _sort_key(entity, row))
            page = [dict(row) for row in ordered[offset : offset + limit]]
            if span:
                span.set_attribute(ATTR_ROW_COUNT, len(page))
            return page


class InMemoryTransaction(DestinationTransaction):
    """
    Transaction of an InMemoryDestinationStore.

    Inserted rows are copied into a private staging area. Primary keys
    are checked against both committed and staged rows, so a duplicate
    key fails the insert the way a database constraint would.
    """

    def __init__(self, store: "InMemoryDestinationStore") -> None:
        self._store = store
        self._staged: dict[EntityType, list[Row]] = defaultdict(list)
        self._staged_keys: dict[EntityType, set[tuple]] = defaultdict(set)
        self._active = True

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def staged_row_count(self) -> int:
        """Rows inserted in this transaction and not yet committed."""
        return sum(len(rows) for rows in self._staged.values())

    async def insert_batch(self, entity: EntityType, rows: list[Row]) -> None:
        self._ensure_active()
        keys = [_primary_key(entity, row) for row in rows]
        existing = self._store.keys(entity) | self._staged_keys[entity]
        for key in keys:
            if key in existing:
                raise ValueError(f"Duplicate primary key {key!r} in {entity.table_name}")
            existing.add(key)

        self._staged[entity].extend(dict(row) for row in rows)
        self._staged_keys[entity].update(keys)
        self._store.batches.append((entity, len(rows)))

    async def commit(self) -> None:
        self._ensure_active()
        await self._store._publish(self._staged)
        self._active = False

    async def rollback(self) -> None:
        self._staged.clear()
        self._staged_keys.clear()
        self._active = False

    def _ensure_active(self) -> None:
        if not self._active:
            raise RuntimeError("Transaction is no longer active")


class InMemoryDestinationStore(DestinationStore):
    """
    In-memory implementation of DestinationStore.

    Example:
        >>> destination = InMemoryDestinationStore()
        >>> tx = await destination.begin()
        >>> await tx.insert_batch(EntityType.ROLE, [{"Id": "r1"}])
        >>> destination.rows(EntityType.ROLE)
        []
        >>> await tx.commit()
        >>> destination.rows(EntityType.ROLE)
        [{'Id': 'r1'}]

    Attributes:
        batches: Every (entity, row count) batch inserted, in order
        commit_count: Number of committed transactions
    """

    def __init__(self) -> None:
        self._tables: dict[EntityType, list[Row]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self.batches: list[tuple[EntityType, int]] = []
        self.commit_count = 0

    async def begin(self) -> InMemoryTransaction:
        return InMemoryTransaction(self)

    def rows(self, entity: EntityType) -> list[Row]:
        """Committed rows of an entity type."""
        return [dict(row) for row in self._tables[entity]]

    def keys(self, entity: EntityType) -> set[tuple]:
        """Primary keys of the committed rows of an entity type."""
        return {_primary_key(entity, row) for row in self._tables[entity]}

    def total_rows(self) -> int:
        """Committed rows across all entity types."""
        return sum(len(rows) for rows in self._tables.values())

    def clear(self) -> None:
        """Drop all committed rows."""
        self._tables.clear()
        self.batches.clear()
        self.commit_count = 0

    async def _publish(self, staged: dict[EntityType, list[Row]]) -> None:
        async with self._lock:
            for entity, rows in staged.items():
                self._tables[entity].extend(rows)
            self.commit_count += 1


__all__ = [
    "InMemoryRowSource",
    "InMemoryTransaction",
    "InMemoryDestinationStore",
]
