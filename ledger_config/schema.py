"""
LedgerSettings schema.

Typed, frozen view of the ledger's runtime configuration.  YAML documents
and environment overrides are parsed into these types by the loader.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    """Where and how to connect to the ledger database."""

    url: str = "sqlite:///./ledger.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30


@dataclass(frozen=True)
class OwnerDirectorySettings:
    """Remote owner directory used to resolve owner display names."""

    base_url: str = "http://localhost:8080"
    path_template: str = "/owners/{owner_id}"
    name_field: str = "name"
    timeout_seconds: float = 5.0


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerSettings:
    """Complete runtime configuration of the ledger."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    owner_directory: OwnerDirectorySettings = field(default_factory=OwnerDirectorySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
