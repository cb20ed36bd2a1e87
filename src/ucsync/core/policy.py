"""Query-generation policy knobs and the decisions derived from them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from ucsync.core.uc import TableInfo

logger = logging.getLogger(__name__)

MANAGED = "MANAGED"
DELTA = "DELTA"


class CloneType(str, Enum):
    """Table clone modes understood by Databricks SQL."""

    SHALLOW = "SHALLOW"
    DEEP = "DEEP"


@dataclass(frozen=True)
class GenerationConfig:
    """
    Policy applied when turning differences into statements.

    Attributes:
        max_staleness: A target table older than its source by strictly more
            than this is recreated.
        deep_clone_non_managed: Deep-clone tables that cannot be shallow
            cloned (not MANAGED or not DELTA) instead of skipping them.
        create_schema_if_missing: Create schemas that exist only in the
            source; otherwise they are skipped with a warning.
    """

    max_staleness: timedelta = timedelta(hours=24)
    deep_clone_non_managed: bool = False
    create_schema_if_missing: bool = False


def clone_type(table: TableInfo, config: GenerationConfig) -> CloneType | None:
    """
    Pick the clone mode for a source table.

    Only MANAGED DELTA tables support SHALLOW CLONE. Anything else is
    deep-cloned when enabled, otherwise skipped (None) with a warning.
    """
    if table.table_type == MANAGED and table.data_source_format == DELTA:
        return CloneType.SHALLOW
    if config.deep_clone_non_managed:
        return CloneType.DEEP
    logger.warning(
        "Table %s cannot be shallow cloned (type=%s, format=%s). Skipping...",
        table.full_name,
        table.table_type,
        table.data_source_format or "N/A",
    )
    return None


def is_stale(source: TableInfo, target: TableInfo, config: GenerationConfig) -> bool:
    """True when the target lags the source by more than the threshold."""
    return source.updated_at - target.updated_at > config.max_staleness
