"""In-memory catalog -> schema -> table tree.

The crawler is the only writer. It inserts parents before children, so the
upserts here assume every ancestor already exists and fail loudly when it does
not instead of creating placeholders.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from ucsync.core.errors import UCSyncError
from ucsync.core.uc import SchemaInfo, TableInfo

logger = logging.getLogger(__name__)


class MissingAncestorError(UCSyncError):
    """Raised when a schema or table is inserted before its parent exists."""


@dataclass
class Schema:
    """A schema and the tables discovered under it."""

    name: str
    catalog_name: str
    tables: dict[str, TableInfo] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return f"{self.catalog_name}.{self.name}"


@dataclass
class Catalog:
    """A catalog and its schemas, keyed by name."""

    name: str
    schemas: dict[str, Schema] = field(default_factory=dict)

    def iter_tables(self) -> Iterator[TableInfo]:
        """Yield every table of the catalog, schema by schema."""
        for schema in self.schemas.values():
            yield from schema.tables.values()


@dataclass
class CatalogForest:
    """Top-level container: catalog name -> Catalog."""

    catalogs: dict[str, Catalog] = field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.catalogs

    def __len__(self) -> int:
        return len(self.catalogs)

    def get_catalog(self, name: str) -> Catalog | None:
        return self.catalogs.get(name)

    def upsert_catalog(self, name: str) -> Catalog:
        """Insert a catalog. An existing catalog keeps its schemas."""
        catalog = self.catalogs.get(name)
        if catalog is None:
            catalog = Catalog(name=name)
            self.catalogs[name] = catalog
        return catalog

    def upsert_schema(self, catalog_name: str, schema: SchemaInfo) -> Schema:
        """
        Insert a schema under an existing catalog.

        Re-inserting a known schema keeps the tables already attached to it.

        Raises:
            MissingAncestorError: If `catalog_name` is not in the forest.
        """
        catalog = self.catalogs.get(catalog_name)
        if catalog is None:
            raise MissingAncestorError(
                f"Cannot insert schema '{schema.name}': catalog '{catalog_name}' "
                "has not been inserted."
            )
        existing = catalog.schemas.get(schema.name)
        tables = existing.tables if existing is not None else {}
        node = Schema(name=schema.name, catalog_name=catalog_name, tables=tables)
        catalog.schemas[schema.name] = node
        return node

    def upsert_table(
        self, catalog_name: str, schema_name: str, table: TableInfo
    ) -> None:
        """
        Insert a table under an existing schema; the same name overwrites.

        Raises:
            MissingAncestorError: If the catalog or schema is not in the forest.
        """
        catalog = self.catalogs.get(catalog_name)
        schema = catalog.schemas.get(schema_name) if catalog is not None else None
        if schema is None:
            raise MissingAncestorError(
                f"Cannot insert table '{table.name}': schema "
                f"'{catalog_name}.{schema_name}' has not been inserted."
            )
        schema.tables[table.name] = table

    @classmethod
    def from_records(cls, records: Iterable[TableInfo]) -> CatalogForest:
        """Build a forest from flat table records, inserting ancestors first."""
        forest = cls()
        count = 0
        for record in records:
            catalog = forest.upsert_catalog(record.catalog_name)
            if record.schema_name not in catalog.schemas:
                forest.upsert_schema(
                    record.catalog_name,
                    SchemaInfo(name=record.schema_name, catalog_name=record.catalog_name),
                )
            forest.upsert_table(record.catalog_name, record.schema_name, record)
            count += 1
        logger.info("Built catalog forest from %d table records", count)
        return forest
