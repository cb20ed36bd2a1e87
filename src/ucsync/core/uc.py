"""Wire records for the Unity Catalog REST API.

These models mirror the JSON records returned by the catalogs, schemas and
tables list endpoints. They are intentionally free of HTTP and tree concerns;
the adapter parses raw payloads into them and the crawler hands them to the
catalog tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def from_epoch_millis(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime (exact, no float math)."""
    return _EPOCH + timedelta(milliseconds=int(value))


def _require(record: Mapping[str, Any], key: str) -> Any:
    value = record.get(key)
    if value is None or value == "":
        raise ValueError(f"record is missing required field '{key}'")
    return value


@dataclass(frozen=True)
class CatalogInfo:
    """Lightweight representation of a Unity Catalog catalog."""

    name: str

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> CatalogInfo:
        return cls(name=_require(record, "name"))


@dataclass(frozen=True)
class SchemaInfo:
    """Lightweight representation of a Unity Catalog schema."""

    name: str
    catalog_name: str

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> SchemaInfo:
        return cls(
            name=_require(record, "name"),
            catalog_name=_require(record, "catalog_name"),
        )


@dataclass(frozen=True)
class TableInfo:
    """A table record as listed by the tables endpoint."""

    name: str
    catalog_name: str
    schema_name: str
    table_type: str
    updated_at: datetime
    updated_by: str = ""
    data_source_format: str | None = None
    properties: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> TableInfo:
        """
        Parse a raw table record.

        `updated_at` arrives as epoch milliseconds and is normalized to UTC here,
        so nothing downstream ever compares naive timestamps.
        """
        updated_at = _require(record, "updated_at")
        if isinstance(updated_at, bool) or not isinstance(updated_at, (int, float)):
            raise ValueError(f"updated_at must be epoch millis, got {updated_at!r}")
        properties = record.get("properties") or {}
        return cls(
            name=_require(record, "name"),
            catalog_name=_require(record, "catalog_name"),
            schema_name=_require(record, "schema_name"),
            table_type=_require(record, "table_type"),
            updated_at=from_epoch_millis(updated_at),
            updated_by=record.get("updated_by") or "",
            data_source_format=record.get("data_source_format"),
            properties={str(k): str(v) for k, v in properties.items()},
        )

    @property
    def full_name(self) -> str:
        return f"{self.catalog_name}.{self.schema_name}.{self.name}"
