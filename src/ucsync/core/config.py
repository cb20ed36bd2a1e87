"""Sync configuration loaded from YAML.

Example::

    host: adb-1234567890.12.azuredatabricks.net
    pat: dapi...
    num_requests: 10
    catalogs:
      - catalog: dev
        pinned_catalogs: [prod]
    generation_config:
      max_staleness_duration_hours: 1
      deep_clone_non_managed: false
      create_schema_if_missing: true

`host` and `pat` may be left out; they are then resolved from the Databricks
profile given on the command line.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping

import yaml

from ucsync.core.errors import UCSyncError
from ucsync.core.policy import GenerationConfig


class ConfigError(UCSyncError):
    """Raised when the sync configuration is missing or invalid."""


@dataclass(frozen=True)
class SyncEntry:
    """A target catalog and the pinned catalogs it is synchronized from."""

    catalog: str
    pinned_catalogs: tuple[str, ...]


@dataclass(frozen=True)
class SyncConfig:
    """Everything a sync run needs besides CLI overrides."""

    catalogs: tuple[SyncEntry, ...]
    generation_config: GenerationConfig
    host: str | None = None
    pat: str | None = None
    num_requests: int | None = None

    def catalog_names(self) -> list[str]:
        """Every target and pinned catalog, in first-seen order, without duplicates."""
        names: dict[str, None] = {}
        for entry in self.catalogs:
            names[entry.catalog] = None
            for pinned in entry.pinned_catalogs:
                names[pinned] = None
        return list(names)


def _str_field(data: Mapping[str, Any], key: str, where: str, *, required: bool) -> str | None:
    value = data.get(key)
    if value is None:
        if required:
            raise ConfigError(f"missing required field: {where}{key}")
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{where}{key} must be a non-empty string")
    return value.strip()


def _bool_field(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"generation_config.{key} must be true or false")
    return value


def parse_generation_config(data: Any) -> GenerationConfig:
    """Parse the `generation_config` mapping."""
    if not isinstance(data, Mapping):
        raise ConfigError("missing required section: generation_config")
    hours = data.get("max_staleness_duration_hours")
    if hours is None:
        raise ConfigError(
            "missing required field: generation_config.max_staleness_duration_hours"
        )
    if isinstance(hours, bool) or not isinstance(hours, (int, float)) or hours < 0:
        raise ConfigError(
            "generation_config.max_staleness_duration_hours must be a non-negative number"
        )
    return GenerationConfig(
        max_staleness=timedelta(hours=hours),
        deep_clone_non_managed=_bool_field(data, "deep_clone_non_managed", False),
        create_schema_if_missing=_bool_field(data, "create_schema_if_missing", False),
    )


def parse_sync_entries(data: Any) -> tuple[SyncEntry, ...]:
    """Parse the `catalogs` list."""
    if not isinstance(data, list) or not data:
        raise ConfigError("catalogs must be a non-empty list")
    entries: list[SyncEntry] = []
    for i, item in enumerate(data):
        where = f"catalogs[{i}]."
        if not isinstance(item, Mapping):
            raise ConfigError(f"catalogs[{i}] must be a mapping")
        catalog = _str_field(item, "catalog", where, required=True)
        pinned = item.get("pinned_catalogs")
        if not isinstance(pinned, list) or not pinned:
            raise ConfigError(f"{where}pinned_catalogs must be a non-empty list")
        if not all(isinstance(p, str) and p.strip() for p in pinned):
            raise ConfigError(f"{where}pinned_catalogs must only contain catalog names")
        pinned_names = tuple(p.strip() for p in pinned)
        if catalog in pinned_names:
            raise ConfigError(f"{where}catalog '{catalog}' cannot be pinned to itself")
        entries.append(SyncEntry(catalog=catalog, pinned_catalogs=pinned_names))
    return tuple(entries)


def parse_config(data: Any) -> SyncConfig:
    """Validate a decoded YAML document and build a SyncConfig."""
    if not isinstance(data, Mapping):
        raise ConfigError("config must be a mapping at the top level")
    num_requests = data.get("num_requests")
    if num_requests is not None and (
        isinstance(num_requests, bool) or not isinstance(num_requests, int) or num_requests < 1
    ):
        raise ConfigError("num_requests must be a positive integer")
    return SyncConfig(
        catalogs=parse_sync_entries(data.get("catalogs")),
        generation_config=parse_generation_config(data.get("generation_config")),
        host=_str_field(data, "host", "", required=False),
        pat=_str_field(data, "pat", "", required=False),
        num_requests=num_requests,
    )


def load_config(path: Path) -> SyncConfig:
    """Load and validate a YAML sync config file."""
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigError(f"config file is not valid UTF-8: {path}") from exc
    return parse_config(data)
