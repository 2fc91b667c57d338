"""
Connection handling helper for the SQLAlchemy stores.

Stores accept either an AsyncEngine (they open and close their own
connections) or an AsyncConnection (the caller owns its lifecycle).
`connection_scope` hides that difference for single operations.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine


@asynccontextmanager
async def connection_scope(
    conn: AsyncConnection | AsyncEngine,
) -> AsyncIterator[AsyncConnection]:
    """
    Yield a connection for one read operation.

    Args:
        conn: Database connection or engine

    Yields:
        AsyncConnection ready for execute() calls

    Example:
        >>> async with connection_scope(self._conn) as conn:
        ...     result = await conn.execute(query)
        ...     return result.mappings().all()

    Note:
        An AsyncEngine gets a fresh connection that is returned to the
        pool on exit. An AsyncConnection is yielded as is and is
        neither committed nor closed.
    """
    if isinstance(conn, AsyncEngine):
        async with conn.connect() as connection:
            yield connection
    else:
        yield conn
