"""Configuration management: run config models and TOML loading.

Usage:
    >>> from db_mirror.config import load_run_config, RunConfig, Credentials
"""

from db_mirror.config.loader import load_run_config
from db_mirror.config.models import Credentials, ReplicationSettings, RunConfig

__all__ = ["load_run_config", "RunConfig", "Credentials", "ReplicationSettings"]
