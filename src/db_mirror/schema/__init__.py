"""Catalog introspection, schema translation, and table replication.

Provides table enumeration (``SchemaIntrospector``, ``enumerate_tables``),
``CREATE TABLE`` translation (``build_create_table``, ``translate_table``),
and the per-table replication loop (``sync_table``, ``replicate_tables``).

Usage:
    from db_mirror.schema import SchemaIntrospector, enumerate_tables
    from db_mirror.schema import build_create_table, target_table_name
    from db_mirror.schema import replicate_tables, ReplicationReport
"""

from db_mirror.schema.introspector import SchemaIntrospector, enumerate_tables
from db_mirror.schema.models import (
    ColumnDef,
    RemoteTableState,
    ReplicationReport,
    TableOutcome,
    TableRef,
    TableTranslation,
)
from db_mirror.schema.sync import (
    find_target_collisions,
    replicate_tables,
    sync_table,
)
from db_mirror.schema.translator import (
    TYPE_RENDERING,
    TypeQualifier,
    build_create_table,
    quote_identifier,
    render_column,
    render_column_type,
    target_table_name,
    translate_table,
)

__all__ = [
    "SchemaIntrospector",
    "enumerate_tables",
    "TableRef",
    "ColumnDef",
    "RemoteTableState",
    "TableTranslation",
    "TableOutcome",
    "ReplicationReport",
    "TYPE_RENDERING",
    "TypeQualifier",
    "build_create_table",
    "quote_identifier",
    "render_column",
    "render_column_type",
    "target_table_name",
    "translate_table",
    "find_target_collisions",
    "replicate_tables",
    "sync_table",
]
