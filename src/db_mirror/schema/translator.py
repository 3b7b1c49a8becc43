"""Translate source table metadata into remote CREATE TABLE statements.

Column types are rendered from an explicit lookup table rather than
branching on type names, so supporting a new qualified type means adding
one entry to ``TYPE_RENDERING``:

- ``LENGTH`` types render ``type(N)``, or ``type(MAX)`` when the catalog
  reports length ``-1``.
- ``PRECISION_SCALE`` types render ``type(p,s)``.
- Types missing from the table render as the bare type name.

Usage:
    from db_mirror.schema.translator import build_create_table, target_table_name

    target = target_table_name(TableRef(schema_name="dbo", table_name="Orders"), "bi")
    ddl = build_create_table(target, columns)
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from db_mirror.errors import TranslationFailedError
from db_mirror.schema.models import ColumnDef, TableRef, TableTranslation

if TYPE_CHECKING:
    from db_mirror.adapters.base import CatalogReader

MAX_LENGTH_SENTINEL = -1


class TypeQualifier(str, Enum):
    """How a type's size qualifier is rendered."""

    LENGTH = "length"
    PRECISION_SCALE = "precision_scale"


TYPE_RENDERING: dict[str, TypeQualifier] = {
    "char": TypeQualifier.LENGTH,
    "varchar": TypeQualifier.LENGTH,
    "nchar": TypeQualifier.LENGTH,
    "nvarchar": TypeQualifier.LENGTH,
    "binary": TypeQualifier.LENGTH,
    "varbinary": TypeQualifier.LENGTH,
    "decimal": TypeQualifier.PRECISION_SCALE,
    "numeric": TypeQualifier.PRECISION_SCALE,
}


def quote_identifier(name: str) -> str:
    """Bracket-quote a SQL Server identifier.

    Example:
        >>> quote_identifier("Order Lines]")
        '[Order Lines]]]'
    """
    return "[" + name.replace("]", "]]") + "]"


def target_table_name(table: TableRef, suffix: str) -> str:
    """Derive the remote table name for ``table``.

    Example:
        >>> target_table_name(TableRef(schema_name="dbo", table_name="Orders"), "bi")
        'dbo_Orders_bi'
    """
    return table.qualified_name.replace(".", "_") + "_" + suffix


def render_column_type(column: ColumnDef) -> str:
    """Render the type expression for ``column``."""
    type_name = column.type_name.lower()
    qualifier = TYPE_RENDERING.get(type_name)

    if qualifier is TypeQualifier.LENGTH:
        if column.max_length is None:
            raise TranslationFailedError(
                f"Column '{column.name}' of type {type_name} has no length"
            )
        if column.max_length == MAX_LENGTH_SENTINEL:
            return f"{type_name}(MAX)"
        return f"{type_name}({column.max_length})"

    if qualifier is TypeQualifier.PRECISION_SCALE:
        if column.precision is None or column.scale is None:
            raise TranslationFailedError(
                f"Column '{column.name}' of type {type_name} has no precision/scale"
            )
        return f"{type_name}({column.precision},{column.scale})"

    return type_name


def render_column(column: ColumnDef) -> str:
    """Render one column definition, e.g. ``[Note] nvarchar(50)``."""
    return f"{quote_identifier(column.name)} {render_column_type(column)}"


def build_create_table(target: str, columns: list[ColumnDef]) -> str:
    """Build ``CREATE TABLE`` text for ``target`` with ``columns`` in order.

    Raises:
        TranslationFailedError: If ``columns`` is empty or a column's type
            qualifier is missing.
    """
    if not columns:
        raise TranslationFailedError(
            f"Cannot create '{target}': source table has no columns"
        )
    definitions = ", ".join(render_column(c) for c in columns)
    return f"CREATE TABLE {quote_identifier(target)} ({definitions})"


async def translate_table(
    catalog: CatalogReader,
    table: TableRef,
    suffix: str,
) -> TableTranslation:
    """Read ``table``'s columns and build its remote translation.

    Raises:
        TranslationFailedError: If the columns cannot be read or rendered.
    """
    target = target_table_name(table, suffix)
    try:
        columns = await catalog.list_columns(table)
    except TranslationFailedError:
        raise
    except Exception as e:
        raise TranslationFailedError(
            f"Could not read columns of '{table.qualified_name}': {e}"
        ) from e
    return TableTranslation(
        source=table,
        target=target,
        columns=columns,
        create_statement=build_create_table(target, columns),
    )
