"""Pydantic models for run configuration."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Configuration Models
# ============================================================================


class Credentials(BaseModel):
    """SQL login for a server.  When absent, a trusted connection is used."""

    model_config = ConfigDict(frozen=True)

    user: str
    password: str = Field(default="", repr=False)


class ReplicationSettings(BaseModel):
    """Knobs for the per-table replication loop."""

    model_config = ConfigDict(frozen=True)

    on_table_error: Literal["continue", "abort"] = "continue"
    max_workers: int = Field(default=1, ge=1)
    chunk_size: int = Field(default=1000, ge=1)
    deadline_seconds: float | None = Field(default=None, gt=0)


class RunConfig(BaseModel):
    """Complete configuration for one backup-and-sync run.

    Immutable for the duration of the run.

    Example:
        >>> config = RunConfig(
        ...     source_database="Shop",
        ...     suffix="bi",
        ...     backup_directory="D:/Backups",
        ...     remote_server="warehouse.internal",
        ...     remote_database="Warehouse",
        ... )
        >>> config.remote_credentials is None
        True
    """

    model_config = ConfigDict(frozen=True)

    source_database: str = Field(min_length=1)
    suffix: str = Field(min_length=1)
    backup_directory: str
    remote_server: str = Field(min_length=1)
    remote_database: str = Field(min_length=1)
    remote_credentials: Credentials | None = None
    source_server: str = "localhost"
    source_credentials: Credentials | None = None
    odbc_driver: str = "ODBC Driver 18 for SQL Server"
    trust_server_certificate: bool = True
    replication: ReplicationSettings = Field(default_factory=ReplicationSettings)
