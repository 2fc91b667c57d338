"""
Unit tests for EntityCopier.

Tests cover:
- Paging: fetch counts, offsets and page boundaries
- Per-row transforms
- Wrapping of source, transform and destination failures
- Cooperative cancellation
- Tracing spans
"""

from unittest.mock import AsyncMock

import pytest

from identitymigrator.copier import EntityCopier
from identitymigrator.entities import EntityType, Row
from identitymigrator.exceptions import (
    DestinationWriteError,
    MigrationCancelledError,
    SourceReadError,
    TransformError,
)
from identitymigrator.stores.in_memory import InMemoryRowSource

BATCH = 3


def _roles(count: int) -> list[Row]:
    return [{"Id": f"r{i:04d}", "Name": f"Role {i}"} for i in range(count)]


@pytest.fixture
def copier_for():
    """Build a copier over an in-memory source holding `count` roles."""

    def _build(count: int) -> tuple[EntityCopier, InMemoryRowSource]:
        source = InMemoryRowSource({EntityType.ROLE: _roles(count)}, enable_tracing=False)
        return EntityCopier(source, enable_tracing=False), source

    return _build


class TestPaging:
    """Tests for page boundaries and fetch counts."""

    @pytest.mark.asyncio
    async def test_two_full_pages_and_one_row(self, copier_for, destination) -> None:
        copier, source = copier_for(2 * BATCH + 1)
        tx = await destination.begin()

        result = await copier.copy(EntityType.ROLE, tx, BATCH)

        assert result.rows_copied == 2 * BATCH + 1
        assert result.pages_fetched == 3
        assert source.page_requests == [
            (EntityType.ROLE, 0, BATCH),
            (EntityType.ROLE, BATCH, BATCH),
            (EntityType.ROLE, 2 * BATCH, BATCH),
        ]
        assert destination.batches == [
            (EntityType.ROLE, BATCH),
            (EntityType.ROLE, BATCH),
            (EntityType.ROLE, 1),
        ]

    @pytest.mark.asyncio
    async def test_exact_multiple_ends_on_empty_page(self, copier_for, destination) -> None:
        copier, source = copier_for(2 * BATCH)
        tx = await destination.begin()

        result = await copier.copy(EntityType.ROLE, tx, BATCH)

        assert result.rows_copied == 2 * BATCH
        assert result.pages_fetched == 3
        assert source.page_requests[-1] == (EntityType.ROLE, 2 * BATCH, BATCH)
        assert len(destination.batches) == 2

    @pytest.mark.asyncio
    async def test_empty_table_fetches_once(self, copier_for, destination) -> None:
        copier, source = copier_for(0)
        tx = await destination.begin()

        result = await copier.copy(EntityType.ROLE, tx, BATCH)

        assert result.rows_copied == 0
        assert result.pages_fetched == 1
        assert destination.batches == []

    @pytest.mark.asyncio
    async def test_single_short_page(self, copier_for, destination) -> None:
        copier, source = copier_for(BATCH - 1)
        tx = await destination.begin()

        result = await copier.copy(EntityType.ROLE, tx, BATCH)

        assert result.rows_copied == BATCH - 1
        assert result.pages_fetched == 1

    @pytest.mark.asyncio
    async def test_every_row_copied_once_in_order(self, copier_for, destination) -> None:
        copier, _ = copier_for(10)
        tx = await destination.begin()

        await copier.copy(EntityType.ROLE, tx, BATCH)
        await tx.commit()

        assert destination.rows(EntityType.ROLE) == _roles(10)

    @pytest.mark.asyncio
    async def test_copier_never_commits(self, copier_for, destination) -> None:
        copier, _ = copier_for(5)
        tx = await destination.begin()

        await copier.copy(EntityType.ROLE, tx, BATCH)

        assert tx.is_active
        assert destination.commit_count == 0
        assert destination.total_rows() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("batch_size", [0, -5])
    async def test_non_positive_batch_size_rejected(self, copier_for, destination, batch_size) -> None:
        copier, source = copier_for(5)
        tx = await destination.begin()

        with pytest.raises(ValueError):
            await copier.copy(EntityType.ROLE, tx, batch_size)

        assert source.page_requests == []


class TestTransform:
    """Tests for per-row transforms."""

    @pytest.mark.asyncio
    async def test_transform_applied_to_every_row(self, copier_for, destination) -> None:
        copier, _ = copier_for(4)
        tx = await destination.begin()

        def shout(row: Row) -> Row:
            return {**row, "Name": row["Name"].upper()}

        await copier.copy(EntityType.ROLE, tx, BATCH, transform=shout)
        await tx.commit()

        assert [row["Name"] for row in destination.rows(EntityType.ROLE)] == [
            "ROLE 0",
            "ROLE 1",
            "ROLE 2",
            "ROLE 3",
        ]

    @pytest.mark.asyncio
    async def test_transform_failure_wrapped(self, copier_for, destination) -> None:
        copier, _ = copier_for(4)
        tx = await destination.begin()

        def explode(row: Row) -> Row:
            if row["Id"] == "r0002":
                raise KeyError("Name")
            return row

        with pytest.raises(TransformError) as exc_info:
            await copier.copy(EntityType.ROLE, tx, BATCH, transform=explode)

        assert exc_info.value.entity is EntityType.ROLE
        assert exc_info.value.row_key == "r0002"
        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_transform_error_passes_through(self, destination) -> None:
        source = InMemoryRowSource(
            {EntityType.USER_ROLE: [{"UserId": "u1", "RoleId": "r1"}]},
            enable_tracing=False,
        )
        copier = EntityCopier(source, enable_tracing=False)
        tx = await destination.begin()
        original = TransformError(EntityType.USER_ROLE, ("u1", "r1"), "bad")

        def reject(row: Row) -> Row:
            raise original

        with pytest.raises(TransformError) as exc_info:
            await copier.copy(EntityType.USER_ROLE, tx, BATCH, transform=reject)

        assert exc_info.value is original


class TestFailures:
    """Tests for source and destination failures."""

    @pytest.mark.asyncio
    async def test_source_failure_wrapped(self, destination) -> None:
        source = AsyncMock()
        source.fetch_page.side_effect = ConnectionError("connection refused")
        copier = EntityCopier(source, enable_tracing=False)
        tx = await destination.begin()

        with pytest.raises(SourceReadError) as exc_info:
            await copier.copy(EntityType.USER_LOGIN, tx, BATCH)

        assert exc_info.value.entity is EntityType.USER_LOGIN
        assert exc_info.value.offset == 0
        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_source_failure_on_later_page(self, destination) -> None:
        source = AsyncMock()
        source.fetch_page.side_effect = [_roles(BATCH), TimeoutError("timed out")]
        copier = EntityCopier(source, enable_tracing=False)
        tx = await destination.begin()

        with pytest.raises(SourceReadError) as exc_info:
            await copier.copy(EntityType.ROLE, tx, BATCH)

        assert exc_info.value.offset == BATCH

    @pytest.mark.asyncio
    async def test_destination_failure_wrapped(self, copier_for, destination) -> None:
        copier, _ = copier_for(2)
        tx = await destination.begin()
        await tx.insert_batch(EntityType.ROLE, [{"Id": "r0001"}])

        with pytest.raises(DestinationWriteError) as exc_info:
            await copier.copy(EntityType.ROLE, tx, BATCH)

        assert exc_info.value.entity is EntityType.ROLE
        assert exc_info.value.batch_size == 2
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_destination_mock_failure(self, copier_for) -> None:
        copier, _ = copier_for(1)
        tx = AsyncMock()
        tx.insert_batch.side_effect = RuntimeError("deadlock")

        with pytest.raises(DestinationWriteError, match="deadlock"):
            await copier.copy(EntityType.ROLE, tx, BATCH)


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_not_cancelled_initially(self, copier_for) -> None:
        copier, _ = copier_for(0)
        assert copier.is_cancelled is False

    @pytest.mark.asyncio
    async def test_cancel_before_copy(self, copier_for, destination) -> None:
        copier, source = copier_for(5)
        tx = await destination.begin()

        copier.cancel()

        with pytest.raises(MigrationCancelledError):
            await copier.copy(EntityType.ROLE, tx, BATCH)
        assert source.page_requests == []

    @pytest.mark.asyncio
    async def test_cancel_between_pages(self, destination) -> None:
        source = InMemoryRowSource({EntityType.ROLE: _roles(10)}, enable_tracing=False)
        copier = EntityCopier(source, enable_tracing=False)
        tx = await destination.begin()

        def cancel_after_first(row: Row) -> Row:
            copier.cancel()
            return row

        with pytest.raises(MigrationCancelledError):
            await copier.copy(EntityType.ROLE, tx, BATCH, transform=cancel_after_first)

        assert source.fetch_count(EntityType.ROLE) == 1
        assert destination.batches == [(EntityType.ROLE, BATCH)]


class TestTracing:
    """Tests for tracing spans."""

    @pytest.mark.asyncio
    async def test_copy_entity_span(self, mock_tracer, destination) -> None:
        source = InMemoryRowSource({EntityType.ROLE: _roles(2)}, enable_tracing=False)
        copier = EntityCopier(source, tracer=mock_tracer)
        tx = await destination.begin()

        await copier.copy(EntityType.ROLE, tx, BATCH)

        assert mock_tracer.span_names == ["identitymigrator.copy_entity"]
        _, attributes = mock_tracer.spans[0]
        assert attributes["identitymigrator.entity.type"] == "Role"
        assert attributes["identitymigrator.entity.table"] == "AspNetRoles"
        assert attributes["identitymigrator.batch.size"] == BATCH

    def test_disabled_tracing(self, copier_for) -> None:
        copier, _ = copier_for(0)
        assert copier._enable_tracing is False
