"""Adapter factory.

Builds the local source adapter and the remote endpoint adapter from a
``RunConfig``.  No caching -- each call creates a new adapter that the
caller must close.
"""

from db_mirror.adapters.mssql import (
    AsyncSqlServerRemote,
    AsyncSqlServerSource,
    build_connection_url,
)
from db_mirror.config.models import RunConfig


def _pool_size(config: RunConfig) -> int:
    # One connection per concurrent table plus one for the existence check
    return max(5, config.replication.max_workers + 1)


def create_source(config: RunConfig) -> AsyncSqlServerSource:
    """Create the adapter for the local source database.

    Connects with ``source_credentials`` when set, otherwise with the
    invoking identity.
    """
    url = build_connection_url(
        config.source_server,
        config.source_database,
        credentials=config.source_credentials,
        driver=config.odbc_driver,
        trust_server_certificate=config.trust_server_certificate,
    )
    return AsyncSqlServerSource(url, pool_size=_pool_size(config))


def create_remote(config: RunConfig) -> AsyncSqlServerRemote:
    """Create the adapter for the remote endpoint.

    Connects with ``remote_credentials`` when set, otherwise with the
    invoking identity.
    """
    url = build_connection_url(
        config.remote_server,
        config.remote_database,
        credentials=config.remote_credentials,
        driver=config.odbc_driver,
        trust_server_certificate=config.trust_server_certificate,
    )
    return AsyncSqlServerRemote(
        url,
        database=config.remote_database,
        pool_size=_pool_size(config),
    )
