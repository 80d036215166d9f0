"""
ledger_config -- single public entrypoint for ledger runtime settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  Kernel services never read configuration
    files or environment variables themselves; they receive a session and an
    owner directory built from the returned ``LedgerSettings``.

Architecture position:
    Configuration.  Sits beside ``ledger_kernel``; the kernel only refers to
    ``LedgerSettings`` for type checking.

Invariants enforced:
    - Single entrypoint: all runtime settings flow through ``get_active_settings()``.
    - Environment overrides (``LEDGER_*``) win over the YAML file.
    - Deterministic checksum: identical effective settings always produce
      the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the source path and checksum.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from ledger_config.loader import apply_env_overrides, load_yaml_file, parse_settings
from ledger_config.schema import (
    DatabaseSettings,
    LedgerSettings,
    LoggingSettings,
    OwnerDirectorySettings,
)

_logger = logging.getLogger("ledger_kernel.config")

# Default settings file
DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_settings(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """The ONLY public settings entrypoint.

    Args:
        config_path: YAML settings file.  Defaults to
            ledger_config/sets/default.yaml.
        environ: Environment used for ``LEDGER_*`` overrides.  Defaults to
            ``os.environ``.

    Returns:
        Frozen LedgerSettings carrying the checksum of the effective values.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        ValueError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    env = os.environ if environ is None else environ

    data = apply_env_overrides(load_yaml_file(path), env)
    settings = parse_settings(data)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": settings.checksum,
            "owner_directory_url": settings.owner_directory.base_url,
        },
    )
    return settings


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseSettings",
    "LedgerSettings",
    "LoggingSettings",
    "OwnerDirectorySettings",
    "get_active_settings",
]
