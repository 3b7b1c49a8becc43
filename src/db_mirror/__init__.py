"""db-mirror: Back up a SQL Server database and replicate its tables remotely.

Takes a full ``.bak`` backup of the source database, then copies every base
table to a suffixed table on a remote SQL Server database, creating it when
absent and replacing its rows otherwise.

Usage:
    from db_mirror import RunConfig, run_backup_and_sync

    config = RunConfig(
        source_database="Shop",
        suffix="bi",
        backup_directory="D:/Backups",
        remote_server="warehouse.internal",
        remote_database="Warehouse",
    )
    report = await run_backup_and_sync(config)
    print(report.replication.format_report())
"""

__version__ = "0.1.0"

# Config
from db_mirror.config.loader import load_run_config
from db_mirror.config.models import Credentials, ReplicationSettings, RunConfig

# Errors
from db_mirror.errors import (
    BackupFailedError,
    ConfigError,
    DeadlineExceededError,
    EnumerationFailedError,
    MirrorError,
    RemoteCopyFailedError,
    RemoteDDLFailedError,
    RemoteUnreachableError,
    TargetNameCollisionError,
    TranslationFailedError,
)

# Adapters
from db_mirror.adapters.base import RemoteEndpoint, SourceDatabase
from db_mirror.adapters.mssql import AsyncSqlServerRemote, AsyncSqlServerSource

# Backup
from db_mirror.backup.models import BackupDescriptor
from db_mirror.backup.naming import build_backup_descriptor

# Schema
from db_mirror.schema.models import ReplicationReport, TableOutcome, TableRef
from db_mirror.schema.sync import replicate_tables

# Run
from db_mirror.pipeline import RunReport, run_backup_and_sync

__all__ = [
    # Config
    "load_run_config",
    "RunConfig",
    "Credentials",
    "ReplicationSettings",
    # Errors
    "MirrorError",
    "ConfigError",
    "BackupFailedError",
    "EnumerationFailedError",
    "TranslationFailedError",
    "RemoteUnreachableError",
    "RemoteDDLFailedError",
    "RemoteCopyFailedError",
    "TargetNameCollisionError",
    "DeadlineExceededError",
    # Adapters
    "RemoteEndpoint",
    "SourceDatabase",
    "AsyncSqlServerSource",
    "AsyncSqlServerRemote",
    # Backup
    "BackupDescriptor",
    "build_backup_descriptor",
    # Schema
    "TableRef",
    "TableOutcome",
    "ReplicationReport",
    "replicate_tables",
    # Run
    "RunReport",
    "run_backup_and_sync",
]
