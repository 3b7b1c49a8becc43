"""Async SQL Server adapters.

Provides ``AsyncSqlServerSource`` (backup sink, catalog reader and row
source for the local database) and ``AsyncSqlServerRemote`` (the remote
endpoint receiving replicated tables).  Both use SQLAlchemy's async engine
with the ``aioodbc`` driver.

Usage:
    from db_mirror.adapters.mssql import AsyncSqlServerRemote, build_connection_url

    url = build_connection_url("warehouse.internal", "Warehouse")
    remote = AsyncSqlServerRemote(url, database="Warehouse")
    exists = await remote.table_exists("dbo_Orders_bi")
    await remote.close()
"""

from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import column, insert, select, text
from sqlalchemy.sql import table as table_clause
from sqlalchemy.engine import URL
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from db_mirror.adapters.base import Row, RowChunks
from db_mirror.config.models import Credentials
from db_mirror.errors import RemoteUnreachableError
from db_mirror.schema.introspector import SchemaIntrospector
from db_mirror.schema.models import ColumnDef, TableRef
from db_mirror.schema.translator import quote_identifier

DRIVERNAME = "mssql+aioodbc"

# qmark placeholders: runs on the raw aioodbc cursor, not through text()
BACKUP_STATEMENT = "BACKUP DATABASE ? TO DISK = ? WITH INIT"


def build_connection_url(
    server: str,
    database: str,
    credentials: Credentials | None = None,
    driver: str = "ODBC Driver 18 for SQL Server",
    trust_server_certificate: bool = True,
) -> URL:
    """Build a SQLAlchemy URL for a SQL Server database.

    Without credentials the connection uses the invoking identity
    (``Trusted_Connection=yes``).  Credentials are escaped by ``URL.create``.

    Example:
        >>> url = build_connection_url("db01", "Shop")
        >>> url.query["Trusted_Connection"]
        'yes'
    """
    query: dict[str, str] = {"driver": driver}
    if trust_server_certificate:
        query["TrustServerCertificate"] = "yes"
    if credentials is None:
        query["Trusted_Connection"] = "yes"
        return URL.create(DRIVERNAME, host=server, database=database, query=query)
    return URL.create(
        DRIVERNAME,
        username=credentials.user,
        password=credentials.password,
        host=server,
        database=database,
        query=query,
    )


def create_async_engine_pooled(database_url: URL | str, **kwargs: Any) -> AsyncEngine:
    """Create an async SQLAlchemy engine with connection pooling.

    Default pool settings:

    - ``pool_size=5``: Reasonable default for typical workloads.
    - ``max_overflow=10``: Allow burst connections.
    - ``pool_pre_ping=True``: Validate connections before checkout.
    - ``pool_recycle=300``: Recycle connections every 5 minutes.
    - ``connect_args={"timeout": 10}``: ODBC login timeout in seconds.

    Args:
        database_url: SQL Server URL with the ``mssql+aioodbc`` scheme.
        **kwargs: Additional keyword arguments forwarded to
            ``create_async_engine``.

    Returns:
        Configured ``AsyncEngine``.
    """
    defaults: dict[str, Any] = {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "connect_args": {"timeout": 10},
        "echo": False,
    }
    # Caller kwargs override defaults
    merged = {**defaults, **kwargs}

    return create_async_engine(database_url, **merged)


class AsyncSqlServerSource:
    """The local SQL Server database being backed up and replicated.

    Implements ``BackupSink``, ``CatalogReader`` and ``SourceReader``.

    Args:
        database_url: SQL Server URL (see ``build_connection_url``).
        excluded_tables: Qualified table names never replicated.
        **engine_kwargs: Forwarded to ``create_async_engine_pooled``.
    """

    def __init__(
        self,
        database_url: URL | str,
        excluded_tables: set[str] | None = None,
        **engine_kwargs: Any,
    ) -> None:
        self._engine: AsyncEngine = create_async_engine_pooled(
            database_url, **engine_kwargs
        )
        self._introspector = SchemaIntrospector(self._engine, excluded_tables)

    async def backup(self, database: str, path: str) -> None:
        """Run ``BACKUP DATABASE ... WITH INIT`` on an autocommit connection.

        BACKUP accepts variables for both the database name and the device,
        so neither value is spliced into the statement.

        The server streams progress messages as separate result sets and
        only finishes the backup once all of them have been read, so the
        statement runs on the driver cursor and every result set is
        drained before the cursor closes.  An error raised by a later
        result set surfaces here.
        """
        engine = self._engine.execution_options(isolation_level="AUTOCOMMIT")
        async with engine.connect() as conn:
            raw = await conn.get_raw_connection()
            cursor = await raw.driver_connection.cursor()
            try:
                await cursor.execute(BACKUP_STATEMENT, database, path)
                while await cursor.nextset():
                    pass
            finally:
                await cursor.close()

    async def list_base_tables(self) -> list[TableRef]:
        return await self._introspector.list_base_tables()

    async def list_columns(self, table: TableRef) -> list[ColumnDef]:
        return await self._introspector.list_columns(table)

    async def fetch_rows(
        self,
        table: TableRef,
        columns: Sequence[str],
        chunk_size: int,
    ) -> AsyncGenerator[list[Row], None]:
        """Yield rows of ``table`` in chunks of ``chunk_size``.

        Rows are streamed from the server; at most one chunk is held in
        memory.  Closing the generator early releases the connection.
        """
        source_table = table_clause(
            table.table_name,
            *(column(name) for name in columns),
            schema=table.schema_name,
        )
        async with self._engine.connect() as conn:
            result = await conn.stream(select(*source_table.columns))
            async for partition in result.partitions(chunk_size):
                yield [tuple(row) for row in partition]

    async def close(self) -> None:
        """Close the async engine and dispose of the connection pool."""
        if self._engine:
            await self._engine.dispose()


class AsyncSqlServerRemote:
    """Remote SQL Server database receiving replicated tables.

    Implements ``RemoteEndpoint``.  Every connection failure surfaces as
    ``RemoteUnreachableError``; statement failures propagate as SQLAlchemy
    ``DBAPIError`` for the caller to classify.

    Args:
        database_url: SQL Server URL (see ``build_connection_url``).
        database: Remote database name, used to scope the existence check.
        **engine_kwargs: Forwarded to ``create_async_engine_pooled``.
            ``fast_executemany`` defaults to ``True`` so each insert chunk
            is sent to the server as one bulk parameter array.
    """

    def __init__(
        self,
        database_url: URL | str,
        database: str,
        **engine_kwargs: Any,
    ) -> None:
        self._database = database
        engine_kwargs.setdefault("fast_executemany", True)
        self._engine: AsyncEngine = create_async_engine_pooled(
            database_url, **engine_kwargs
        )

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[AsyncConnection]:
        try:
            conn = await self._engine.connect()
        except (DBAPIError, OSError) as e:
            raise RemoteUnreachableError(
                f"Cannot connect to remote database '{self._database}': {e}"
            ) from e
        try:
            yield conn
        finally:
            await conn.close()

    async def table_exists(self, name: str) -> bool:
        """Check ``INFORMATION_SCHEMA.TABLES`` for a base table called ``name``."""
        async with self._connect() as conn:
            result = await conn.execute(
                text("""
                    SELECT COUNT(*)
                    FROM INFORMATION_SCHEMA.TABLES
                    WHERE TABLE_CATALOG = :database
                      AND TABLE_NAME = :name
                      AND TABLE_SCHEMA = SCHEMA_NAME()
                      AND TABLE_TYPE = 'BASE TABLE'
                """),
                {"database": self._database, "name": name},
            )
            return (result.scalar() or 0) > 0

    async def execute(self, statement: str, params: dict | None = None) -> None:
        """Execute a statement in its own transaction.

        Without parameters the text goes to the driver unparsed, since
        quoted identifiers may contain ``:``.
        """
        async with self._connect() as conn:
            async with conn.begin():
                if params:
                    await conn.execute(text(statement), params)
                else:
                    await conn.exec_driver_sql(statement)

    async def clear_table(self, name: str) -> None:
        await self.execute(f"DELETE FROM {quote_identifier(name)}")

    async def bulk_insert(
        self,
        target: str,
        columns: Sequence[str],
        chunks: RowChunks,
    ) -> int:
        """Insert all chunks into ``target`` inside one transaction.

        Each chunk is sent as a single executemany through a SQLAlchemy
        Core ``insert()``, which quotes identifiers and binds every value.
        """
        target_table = table_clause(target, *(column(name) for name in columns))
        statement = insert(target_table)
        total = 0
        async with self._connect() as conn:
            async with conn.begin():
                async for chunk in chunks:
                    if not chunk:
                        continue
                    await conn.execute(
                        statement,
                        [dict(zip(columns, row)) for row in chunk],
                    )
                    total += len(chunk)
        return total

    async def close(self) -> None:
        """Close the async engine and dispose of the connection pool."""
        if self._engine:
            await self._engine.dispose()
