"""Database adapters package.

Provides the adapter Protocols and the async SQL Server implementations.

Usage:
    from db_mirror.adapters import RemoteEndpoint, AsyncSqlServerRemote
"""

from db_mirror.adapters.base import (
    BackupSink,
    CatalogReader,
    RemoteEndpoint,
    SourceDatabase,
    SourceReader,
)
from db_mirror.adapters.mssql import (
    AsyncSqlServerRemote,
    AsyncSqlServerSource,
    build_connection_url,
)

__all__ = [
    "BackupSink",
    "CatalogReader",
    "SourceReader",
    "SourceDatabase",
    "RemoteEndpoint",
    "AsyncSqlServerSource",
    "AsyncSqlServerRemote",
    "build_connection_url",
]
