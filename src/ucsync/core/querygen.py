"""Policy-only query generation.

Instead of building a plan tree, this walks every table of a pinned catalog
and decides per table whether the target needs it created or refreshed. It
never drops anything, which makes it the safe default for scheduled syncs.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ucsync.core.config import SyncEntry
from ucsync.core.policy import GenerationConfig, clone_type, is_stale
from ucsync.core.sync import require_catalog
from ucsync.core.tree import Catalog, CatalogForest
from ucsync.core.uc import TableInfo

logger = logging.getLogger(__name__)


class QueryGenerator:
    """Generate CREATE / CREATE OR REPLACE ... CLONE statements per table."""

    def __init__(self, config: GenerationConfig) -> None:
        self.config = config

    def _compare_table(
        self,
        source: TableInfo,
        target: Catalog,
        created_schemas: set[str],
        skipped_schemas: set[str],
    ) -> list[str]:
        mode = clone_type(source, self.config)
        if mode is None:
            return []

        target_path = f"{target.name}.{source.schema_name}.{source.name}"
        schema = target.schemas.get(source.schema_name)
        if schema is None:
            queries: list[str] = []
            if source.schema_name not in created_schemas:
                if not self.config.create_schema_if_missing:
                    if source.schema_name not in skipped_schemas:
                        logger.warning(
                            "Schema %s.%s doesn't exist. Skipping...",
                            target.name,
                            source.schema_name,
                        )
                        skipped_schemas.add(source.schema_name)
                    return []
                logger.info("Schema %s.%s does not exist. Creating...", target.name, source.schema_name)
                created_schemas.add(source.schema_name)
                queries.append(f"CREATE SCHEMA {target.name}.{source.schema_name};")
            queries.append(f"CREATE TABLE {target_path} {mode.value} CLONE {source.full_name};")
            return queries

        table = schema.tables.get(source.name)
        if table is None:
            logger.info("Table %s does not exist. Creating...", target_path)
            return [f"CREATE TABLE {target_path} {mode.value} CLONE {source.full_name};"]
        if is_stale(source, table, self.config):
            logger.info("Table %s is stale. Recreating...", table.full_name)
            return [
                f"CREATE OR REPLACE TABLE {table.full_name} {mode.value} CLONE {source.full_name};"
            ]
        return []

    def generate_for_pair(self, source: Catalog, target: Catalog) -> list[str]:
        """Statements that refresh `target` from the pinned catalog `source`."""
        created_schemas: set[str] = set()
        skipped_schemas: set[str] = set()
        queries: list[str] = []
        for table in source.iter_tables():
            queries.extend(
                self._compare_table(table, target, created_schemas, skipped_schemas)
            )
        return queries

    def generate_queries(
        self, forest: CatalogForest, syncs: Iterable[SyncEntry]
    ) -> list[str]:
        """Statements for every configured sync entry, in config order."""
        syncs = list(syncs)
        pairs = [
            (require_catalog(forest, pinned), require_catalog(forest, entry.catalog))
            for entry in syncs
            for pinned in entry.pinned_catalogs
        ]
        queries: list[str] = []
        for source, target in pairs:
            queries.extend(self.generate_for_pair(source, target))
        return queries
