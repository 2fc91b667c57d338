"""
Store interfaces used by the migrator.

The migrator only needs two capabilities from the relational stores it
moves data between:

- RowSource: read one entity type as ordered pages (source store)
- DestinationStore / DestinationTransaction: open one transaction,
  insert batches into it, then commit or roll back (destination store)

Implementations are provided for SQLAlchemy async engines and for
in-memory dictionaries (testing and development).
"""

from abc import ABC, abstractmethod

from identitymigrator.entities import EntityType, Row


class RowSource(ABC):
    """
    Read-only access to the origin store.

    A source never writes and holds no destination-side state.
    """

    @abstractmethod
    async def fetch_page(self, entity: EntityType, offset: int, limit: int) -> list[Row]:
        """
        Fetch one page of rows for an entity type.

        Pages are ordered by ``entity.sort_key`` so that consecutive
        offsets never skip or repeat rows.

        Args:
            entity: Entity type to read
            offset: Number of rows to skip
            limit: Maximum number of rows to return

        Returns:
            Up to ``limit`` rows keyed by column name. An empty list
            means the table has no rows past ``offset``.
        """
        pass


class DestinationTransaction(ABC):
    """
    A single open transaction against the destination store.

    The transaction is handed explicitly to every copy step. Rows
    inserted through it become visible only after commit(); a
    transaction that is rolled back or abandoned leaves the destination
    unchanged.
    """

    @abstractmethod
    async def insert_batch(self, entity: EntityType, rows: list[Row]) -> None:
        """
        Stage a batch of rows inside the transaction.

        The transaction keeps no reference to ``rows`` after the call
        returns.

        Args:
            entity: Entity type the rows belong to
            rows: Rows keyed by column name
        """
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Commit every staged batch."""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Discard every staged batch."""
        pass

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """True until the transaction is committed or rolled back."""
        pass


class DestinationStore(ABC):
    """Read-write access to the destination store."""

    @abstractmethod
    async def begin(self) -> DestinationTransaction:
        """
        Open a new transaction.

        Returns:
            The open transaction. The caller owns it and must commit
            or roll it back.
        """
        pass


__all__ = [
    "RowSource",
    "DestinationTransaction",
    "DestinationStore",
]
