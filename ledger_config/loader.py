"""
Settings loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML settings document, applies environment overrides and parses
the result into the frozen ``ledger_config.schema`` dataclasses.  The single
public entry point for runtime settings is
``ledger_config.get_active_settings()``.

Invariants enforced
-------------------
* Unknown top-level sections and unknown keys are rejected with
  ``ValueError``; there are no silent typos.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  effective settings for the config trace log.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values (non-positive timeout, missing placeholder...) -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    DatabaseSettings,
    LedgerSettings,
    LoggingSettings,
    OwnerDirectorySettings,
)

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "LEDGER_DATABASE_URL": ("database", "url"),
    "LEDGER_OWNER_DIRECTORY_URL": ("owner_directory", "base_url"),
    "LEDGER_OWNER_DIRECTORY_TIMEOUT": ("owner_directory", "timeout_seconds"),
    "LEDGER_LOG_LEVEL": ("logging", "level"),
}

_SECTIONS = {
    "database": DatabaseSettings,
    "owner_directory": OwnerDirectorySettings,
    "logging": LoggingSettings,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with ENV_OVERRIDES applied from ``environ``."""
    merged = {section: dict(data.get(section) or {}) for section in _SECTIONS}
    for extra in set(data) - set(_SECTIONS):
        merged[extra] = data[extra]
    for var, (section, key) in ENV_OVERRIDES.items():
        if environ.get(var):
            merged[section][key] = environ[var]
    return merged


def _parse_section(name: str, cls: type, raw: Any) -> Any:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    known = {f.name: f for f in fields(cls)}
    unknown = set(raw) - set(known)
    if unknown:
        raise ValueError(f"Unknown keys in '{name}': {sorted(unknown)}")

    values: dict[str, Any] = {}
    defaults = cls()
    for key, value in raw.items():
        default = getattr(defaults, key)
        values[key] = _coerce(f"{name}.{key}", value, type(default))
    return replace(defaults, **values)


def _coerce(path: str, value: Any, target: type) -> Any:
    if target is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false", "1", "0", "yes", "no"):
            return value.lower() in ("true", "1", "yes")
        raise ValueError(f"{path}: expected a boolean, got {value!r}")
    try:
        return target(value)
    except (TypeError, ValueError):
        raise ValueError(f"{path}: expected {target.__name__}, got {value!r}") from None


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse a settings mapping into ``LedgerSettings``.

    Raises:
        ValueError: on unknown sections/keys or invalid values.
    """
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown settings sections: {sorted(unknown)}")

    sections = {
        name: _parse_section(name, cls, data.get(name))
        for name, cls in _SECTIONS.items()
    }
    settings = LedgerSettings(**sections)
    validate_settings(settings)
    return replace(settings, checksum=compute_checksum(_without_checksum(settings)))


def validate_settings(settings: LedgerSettings) -> None:
    """Raise ValueError if any setting is out of range."""
    directory = settings.owner_directory
    if "{owner_id}" not in directory.path_template:
        raise ValueError("owner_directory.path_template must contain '{owner_id}'")
    if directory.timeout_seconds <= 0:
        raise ValueError("owner_directory.timeout_seconds must be positive")
    if not directory.base_url.startswith(("http://", "https://")):
        raise ValueError("owner_directory.base_url must be an http(s) URL")
    if not settings.database.url:
        raise ValueError("database.url is required")
    if settings.database.pool_size <= 0:
        raise ValueError("database.pool_size must be positive")
    if not isinstance(logging.getLevelName(settings.logging.level.upper()), int):
        raise ValueError(f"logging.level is not a logging level: {settings.logging.level!r}")


def _without_checksum(settings: LedgerSettings) -> dict[str, Any]:
    data = asdict(settings)
    data.pop("checksum", None)
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
