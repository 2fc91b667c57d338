"""
Row sources and destination stores for the migrator.

- interface: RowSource, DestinationStore, DestinationTransaction
- in_memory: dictionary-backed stores for tests and development
- sql: SQLAlchemy async stores for real databases
"""

from identitymigrator.stores.in_memory import (
    InMemoryDestinationStore,
    InMemoryRowSource,
    InMemoryTransaction,
)
from identitymigrator.stores.interface import (
    DestinationStore,
    DestinationTransaction,
    RowSource,
)
from identitymigrator.stores.sql import (
    SQLAlchemyDestinationStore,
    SQLAlchemyRowSource,
    SQLAlchemyTransaction,
    entity_table,
)

__all__ = [
    # Interfaces
    "RowSource",
    "DestinationStore",
    "DestinationTransaction",
    # In-memory
    "InMemoryRowSource",
    "InMemoryDestinationStore",
    "InMemoryTransaction",
    # SQLAlchemy
    "SQLAlchemyRowSource",
    "SQLAlchemyDestinationStore",
    "SQLAlchemyTransaction",
    "entity_table",
]
