"""Adapter protocol definitions.

Defines the narrow typed interfaces the backup and replication code talks
to.  All methods are ``async def``.

Usage:
    from db_mirror.adapters.base import CatalogReader, RemoteEndpoint

    async def copy(catalog: CatalogReader, remote: RemoteEndpoint) -> None:
        for table in await catalog.list_base_tables():
            columns = await catalog.list_columns(table)
            if not await remote.table_exists("dbo_Orders_bi"):
                await remote.execute("CREATE TABLE ...")
"""

from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from typing import Any, Protocol

from db_mirror.schema.models import ColumnDef, TableRef

Row = Sequence[Any]
RowChunks = AsyncIterator[Sequence[Row]]
RowStream = AsyncGenerator[Sequence[Row], None]


class BackupSink(Protocol):
    """Writes full database backups."""

    async def backup(self, database: str, path: str) -> None:
        """Write a full backup of ``database`` to ``path``.

        Any existing file at ``path`` is overwritten, not appended to.

        Raises:
            Exception: If the backup did not complete.
        """
        ...


class CatalogReader(Protocol):
    """Reads table and column metadata from the source database."""

    async def list_base_tables(self) -> list[TableRef]:
        """List every user base table (no views, no system objects)."""
        ...

    async def list_columns(self, table: TableRef) -> list[ColumnDef]:
        """List the columns of ``table`` in catalog ordinal order."""
        ...


class SourceReader(Protocol):
    """Streams rows out of source tables."""

    def fetch_rows(
        self,
        table: TableRef,
        columns: Sequence[str],
        chunk_size: int,
    ) -> RowStream:
        """Yield every row of ``table`` in chunks of at most ``chunk_size``.

        Each row is a sequence of values in ``columns`` order.  Callers
        ``aclose()`` the stream when they stop early.
        """
        ...


class RemoteEndpoint(Protocol):
    """The remote database that receives replicated tables.

    Implementations bind all values as parameters; statement text passed to
    ``execute`` must carry only quoted identifiers, never raw values.
    """

    async def table_exists(self, name: str) -> bool:
        """Return ``True`` if a base table called ``name`` exists."""
        ...

    async def execute(self, statement: str, params: dict | None = None) -> None:
        """Execute a DDL or DML statement in its own transaction."""
        ...

    async def bulk_insert(
        self,
        target: str,
        columns: Sequence[str],
        chunks: RowChunks,
    ) -> int:
        """Insert every row from ``chunks`` into ``target``.

        All chunks are inserted in a single transaction; if any chunk fails
        or the call is cancelled, nothing is committed.

        Returns:
            Number of rows inserted.
        """
        ...

    async def clear_table(self, name: str) -> None:
        """Delete every row from ``name``."""
        ...

    async def close(self) -> None:
        """Close connections and clean up resources."""
        ...


class SourceDatabase(BackupSink, CatalogReader, SourceReader, Protocol):
    """The local database: backed up, introspected and read from."""

    async def close(self) -> None:
        ...
