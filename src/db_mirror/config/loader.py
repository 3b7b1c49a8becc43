"""Run configuration loading from TOML files and environment."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from db_mirror.config.models import Credentials, RunConfig
from db_mirror.errors import ConfigError

DEFAULT_ENV_PREFIX = "DB_MIRROR_"


def _credentials(
    section: dict[str, Any],
    password_override: str | None,
) -> Credentials | None:
    """Build credentials from a TOML section, preferring the override password."""
    user = section.get("user")
    if not user:
        return None
    password = (
        password_override
        if password_override is not None
        else section.get("password", "")
    )
    return Credentials(user=user, password=password)


def load_run_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
) -> RunConfig:
    """Load run configuration from a TOML file, merged with overrides.

    The file layout::

        source_database = "Shop"
        suffix = "bi"
        backup_directory = "D:/Backups"

        [source]
        server = "localhost"

        [remote]
        server = "warehouse.internal"
        database = "Warehouse"
        user = "replicator"

        [replication]
        on_table_error = "continue"
        max_workers = 1

    Passwords are read from ``{env_prefix}REMOTE_PASSWORD`` and
    ``{env_prefix}SOURCE_PASSWORD`` when set, so they can stay out of the
    file.

    Args:
        config_path: Path to the TOML file.  ``None`` builds the config from
            ``overrides`` alone.
        overrides: Flat values (as produced by the CLI) that win over the
            file.  ``None`` values are ignored.
        env_prefix: Prefix for password environment variables.

    Returns:
        Validated ``RunConfig``.

    Raises:
        ConfigError: If the file is missing, unparsable, or the merged
            values fail validation.
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    source = dict(data.get("source", {}))
    remote = dict(data.get("remote", {}))
    flat = {k: v for k, v in (overrides or {}).items() if v is not None}

    # Password precedence: explicit override, then environment, then file
    remote_password = flat.pop(
        "remote_password", os.environ.get(f"{env_prefix}REMOTE_PASSWORD")
    )
    source_password = flat.pop(
        "source_password", os.environ.get(f"{env_prefix}SOURCE_PASSWORD")
    )

    # Flat overrides map onto the nested sections
    for key, section, field in (
        ("source_server", source, "server"),
        ("source_user", source, "user"),
        ("remote_server", remote, "server"),
        ("remote_database", remote, "database"),
        ("remote_user", remote, "user"),
    ):
        if key in flat:
            section[field] = flat.pop(key)

    replication = dict(data.get("replication", {}))
    for key in ("on_table_error", "max_workers", "chunk_size", "deadline_seconds"):
        if key in flat:
            replication[key] = flat.pop(key)

    merged: dict[str, Any] = {
        k: v
        for k, v in data.items()
        if k not in ("source", "remote", "replication")
    }
    merged.update(flat)
    merged["replication"] = replication
    if "server" in source:
        merged["source_server"] = source["server"]
    if "server" in remote:
        merged["remote_server"] = remote["server"]
    if "database" in remote:
        merged["remote_database"] = remote["database"]

    merged["remote_credentials"] = _credentials(remote, remote_password)
    merged["source_credentials"] = _credentials(source, source_password)

    try:
        return RunConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid run configuration:\n{e}") from e
