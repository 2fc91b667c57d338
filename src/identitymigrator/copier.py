"""
EntityCopier - Copies one entity type from source to destination.

One routine serves every table: pages are read from the RowSource in
sort-key order, optionally passed row by row through a transform, and
written to the open destination transaction as one batch per page.
Only one page is held in memory at a time and pages never overlap, so
memory use is bounded by the batch size rather than the table size.

Paging:
    - page n is requested at offset n * batch_size
    - copying stops at the first empty page, or right after a page
      shorter than batch_size (nothing can follow it)

Usage:
    >>> copier = EntityCopier(source)
    >>> tx = await destination.begin()
    >>> result = await copier.copy(EntityType.ROLE, tx, batch_size=2000)
    >>> print(f"Copied {result.rows_copied} roles")
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from identitymigrator.entities import EntityType, Row
from identitymigrator.exceptions import (
    DestinationWriteError,
    MigrationCancelledError,
    MigrationError,
    SourceReadError,
    TransformError,
)
from identitymigrator.models import EntityCopyResult
from identitymigrator.observability import (
    ATTR_BATCH_SIZE,
    ATTR_ENTITY_TYPE,
    ATTR_ROW_COUNT,
    ATTR_TABLE_NAME,
    Tracer,
    create_tracer,
)
from identitymigrator.stores.interface import DestinationTransaction, RowSource

logger = logging.getLogger(__name__)

RowTransform = Callable[[Row], Row]
"""Per-row transform applied between the source and the destination."""


def _row_key(entity: EntityType, row: Row) -> object:
    key = tuple(row.get(name) for name in entity.sort_key)
    return key[0] if len(key) == 1 else key


class EntityCopier:
    """
    Copies entity types from a RowSource into a destination transaction.

    The copier never commits: the transaction is owned by the caller.
    It supports cooperative cancellation, observed between pages.

    Example:
        >>> copier = EntityCopier(source, enable_tracing=False)
        >>> result = await copier.copy(
        ...     EntityType.USER,
        ...     tx,
        ...     batch_size=500,
        ...     transform=lambda row: deidentify_user(row, "example.com"),
        ... )

    Attributes:
        _source: Source store to read from.
        _is_cancelled: Flag indicating cancellation requested.
    """

    def __init__(
        self,
        source: RowSource,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the copier.

        Args:
            source: RowSource to read from.
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._source = source
        self._is_cancelled = False

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._is_cancelled

    def cancel(self) -> None:
        """
        Request cancellation.

        The copy in progress stops before requesting its next page and
        raises MigrationCancelledError.
        """
        self._is_cancelled = True
        logger.info("Copy cancellation requested")

    async def copy(
        self,
        entity: EntityType,
        transaction: DestinationTransaction,
        batch_size: int,
        transform: RowTransform | None = None,
    ) -> EntityCopyResult:
        """
        Copy every row of an entity type into the transaction.

        Args:
            entity: Entity type to copy.
            transaction: Open destination transaction.
            batch_size: Rows per page and per insert batch (must be > 0).
            transform: Optional per-row transform; rows are copied
                unchanged when omitted.

        Returns:
            EntityCopyResult with row and page counts.

        Raises:
            SourceReadError: If a page fetch fails.
            TransformError: If a row cannot be transformed.
            DestinationWriteError: If a batch insert fails.
            MigrationCancelledError: If cancel() was called.
            ValueError: If batch_size is not positive.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        with self._tracer.span(
            "identitymigrator.copy_entity",
            {
                ATTR_ENTITY_TYPE: entity.value,
                ATTR_TABLE_NAME: entity.table_name,
                ATTR_BATCH_SIZE: batch_size,
            },
        ) as span:
            start_time = time.monotonic()
            rows_copied = 0
            pages_fetched = 0
            offset = 0

            while True:
                self._raise_if_cancelled()

                page = await self._fetch_page(entity, offset, batch_size)
                pages_fetched += 1
                if not page:
                    break

                records = self._apply(entity, page, transform) if transform else page
                await self._write_batch(entity, transaction, records)
                rows_copied += len(records)

                logger.debug(
                    "Wrote batch of %d rows to %s (%d so far)",
                    len(records),
                    entity.table_name,
                    rows_copied,
                )

                if len(page) < batch_size:
                    break
                offset += batch_size

            if span:
                span.set_attribute(ATTR_ROW_COUNT, rows_copied)

            return EntityCopyResult(
                entity=entity,
                rows_copied=rows_copied,
                pages_fetched=pages_fetched,
                duration_seconds=time.monotonic() - start_time,
            )

    async def _fetch_page(self, entity: EntityType, offset: int, limit: int) -> list[Row]:
        try:
            return await self._source.fetch_page(entity, offset, limit)
        except MigrationError:
            raise
        except Exception as e:
            raise SourceReadError(entity, offset, str(e)) from e

    async def _write_batch(
        self,
        entity: EntityType,
        transaction: DestinationTransaction,
        records: list[Row],
    ) -> None:
        try:
            await transaction.insert_batch(entity, records)
        except MigrationError:
            raise
        except Exception as e:
            raise DestinationWriteError(entity, len(records), str(e)) from e

    def _apply(self, entity: EntityType, page: list[Row], transform: RowTransform) -> list[Row]:
        records: list[Row] = []
        for row in page:
            try:
                records.append(transform(row))
            except MigrationError:
                raise
            except Exception as e:
                raise TransformError(entity, _row_key(entity, row), str(e)) from e
        return records

    def _raise_if_cancelled(self) -> None:
        if self._is_cancelled:
            raise MigrationCancelledError()


__all__ = [
    "RowTransform",
    "EntityCopier",
]
