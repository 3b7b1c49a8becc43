"""SQL Server catalog introspection.

Lists user base tables via ``sys.tables`` and reads column metadata from
``INFORMATION_SCHEMA.COLUMNS``:
- Table enumeration excludes views and ``is_ms_shipped`` system objects
- Columns come back in ``ORDINAL_POSITION`` order with length, precision
  and scale qualifiers

Uses SQLAlchemy's async engine; the caller owns the engine.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine

from db_mirror.errors import EnumerationFailedError, MirrorError
from db_mirror.schema.models import ColumnDef, TableRef

if TYPE_CHECKING:
    from db_mirror.adapters.base import CatalogReader

logger = logging.getLogger(__name__)

_BASE_TABLES_QUERY = """
    SELECT s.name AS schema_name, t.name AS table_name
    FROM sys.tables AS t
    JOIN sys.schemas AS s ON s.schema_id = t.schema_id
    WHERE t.is_ms_shipped = 0
"""

_COLUMNS_QUERY = """
    SELECT
        COLUMN_NAME,
        DATA_TYPE,
        CHARACTER_MAXIMUM_LENGTH,
        NUMERIC_PRECISION,
        NUMERIC_SCALE
    FROM INFORMATION_SCHEMA.COLUMNS
    WHERE TABLE_SCHEMA = :schema_name
      AND TABLE_NAME = :table_name
    ORDER BY ORDINAL_POSITION
"""


class SchemaIntrospector:
    """Reads table and column metadata from a SQL Server database.

    Implements the ``CatalogReader`` protocol.

    Usage:
        introspector = SchemaIntrospector(engine)
        for table in await introspector.list_base_tables():
            columns = await introspector.list_columns(table)
    """

    # Designer support table created by SSMS; flagged as a user table
    EXCLUDED_TABLES = frozenset({"dbo.sysdiagrams"})

    def __init__(
        self,
        engine: AsyncEngine,
        excluded_tables: set[str] | frozenset[str] | None = None,
    ) -> None:
        """Initialize with an engine bound to the source database.

        Args:
            engine: Async engine connected to the database to introspect.
            excluded_tables: Qualified names (``schema.table``) to skip.
                Defaults to ``EXCLUDED_TABLES``.
        """
        self._engine = engine
        self._excluded = frozenset(
            self.EXCLUDED_TABLES if excluded_tables is None else excluded_tables
        )

    async def list_base_tables(self) -> list[TableRef]:
        """List every user base table in the database.

        Raises:
            EnumerationFailedError: If the catalog query fails.
        """
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text(_BASE_TABLES_QUERY))
                rows = result.fetchall()
        except DBAPIError as e:
            raise EnumerationFailedError(f"Could not list base tables: {e}") from e

        tables = [
            TableRef(schema_name=schema_name, table_name=table_name)
            for schema_name, table_name in rows
        ]
        return [t for t in tables if t.qualified_name not in self._excluded]

    async def list_columns(self, table: TableRef) -> list[ColumnDef]:
        """List the columns of ``table`` in ordinal order."""
        async with self._engine.connect() as conn:
            result = await conn.execute(
                text(_COLUMNS_QUERY),
                {"schema_name": table.schema_name, "table_name": table.table_name},
            )
            return [
                ColumnDef(
                    name=name,
                    type_name=data_type,
                    max_length=max_length,
                    precision=precision,
                    scale=scale,
                )
                for name, data_type, max_length, precision, scale in result.fetchall()
            ]


async def enumerate_tables(catalog: CatalogReader) -> list[TableRef]:
    """List base tables once each, in catalog order.

    Args:
        catalog: Any ``CatalogReader``.

    Raises:
        EnumerationFailedError: If the catalog cannot be read.
    """
    try:
        tables = await catalog.list_base_tables()
    except MirrorError:
        raise
    except Exception as e:
        raise EnumerationFailedError(f"Could not list base tables: {e}") from e

    unique = list(dict.fromkeys(tables))
    logger.info("Found %d base tables", len(unique))
    return unique
