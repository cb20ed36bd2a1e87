"""
Diff engine: source catalog + target catalog -> operation tree.

Principles
----------
- The same set comparison runs at catalog, schema and table level: keys only in
  the source are created, keys only in the target are dropped, shared keys are
  compared one level down.
- Drops never carry children. Dropping a schema cascades in the target system.
- `None` means "nothing to do"; empty branches are pruned on the way up.
- Tables are the leaves. There the comparison is a policy decision (missing or
  stale -> clone) instead of a further structural split.
- Pure: the forest is only read.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, TypeVar

from ucsync.core.plan import (
    CloneTable,
    CreateCatalog,
    CreateSchema,
    DropSchema,
    DropTable,
    PlanNode,
)
from ucsync.core.policy import GenerationConfig, is_stale
from ucsync.core.tree import Catalog, Schema
from ucsync.core.uc import TableInfo

logger = logging.getLogger(__name__)

V = TypeVar("V")


def _diff_children(
    sources: Mapping[str, V],
    targets: Mapping[str, V] | None,
    diff_child: Callable[[V, V | None], PlanNode | None],
    drop: Callable[[V], PlanNode],
) -> tuple[PlanNode, ...]:
    """Partition keys and diff each one; children come out in key order."""
    targets = targets if targets is not None else {}
    nodes: list[PlanNode] = []
    for key in sorted(sources.keys() | targets.keys()):
        if key not in targets:
            node = diff_child(sources[key], None)
        elif key not in sources:
            node = drop(targets[key])
        else:
            node = diff_child(sources[key], targets[key])
        if node is not None:
            nodes.append(node)
    return tuple(nodes)


class Differ:
    """
    Compute the operations that align a target catalog with a source catalog.

    Workflow
    --------
    1. Missing target catalog -> CreateCatalog with everything below it.
    2. Otherwise compare schemas by name, then tables by name.
    3. Wrap non-empty results in grouping nodes, prune the rest.
    """

    def __init__(self, config: GenerationConfig) -> None:
        self.config = config

    def diff(self, source: Catalog, target: Catalog | None) -> PlanNode | None:
        """Diff two catalogs; None when the target is already in sync."""
        if target is None:
            # A new catalog gets all of its schemas, whatever the schema policy says.
            return PlanNode(
                action=CreateCatalog(source.name),
                children=tuple(
                    self._create_schema(source.schemas[key])
                    for key in sorted(source.schemas)
                ),
            )
        children = _diff_children(
            source.schemas, target.schemas, self.diff_schema, _drop_schema
        )
        return PlanNode(children=children) if children else None

    def diff_schema(self, source: Schema, target: Schema | None) -> PlanNode | None:
        if target is None:
            if not self.config.create_schema_if_missing:
                logger.warning(
                    "Schema %s has no counterpart in the target and "
                    "create_schema_if_missing is off. Skipping...",
                    source.full_name,
                )
                return None
            return self._create_schema(source)
        children = _diff_children(
            source.tables, target.tables, self.diff_table, _drop_table
        )
        return PlanNode(children=children) if children else None

    def _create_schema(self, source: Schema) -> PlanNode:
        return PlanNode(
            action=CreateSchema(source.name),
            children=_diff_children(source.tables, None, self.diff_table, _drop_table),
        )

    def diff_table(self, source: TableInfo, target: TableInfo | None) -> PlanNode | None:
        if target is None:
            logger.info("Table %s is missing in the target.", source.full_name)
            return PlanNode(action=CloneTable(source=source))
        if is_stale(source, target, self.config):
            logger.info("Table %s is stale.", target.full_name)
            return PlanNode(action=CloneTable(source=source, target=target))
        return None


def _drop_schema(schema: Schema) -> PlanNode:
    return PlanNode(action=DropSchema(schema.name))


def _drop_table(table: TableInfo) -> PlanNode:
    return PlanNode(action=DropTable(schema_name=table.schema_name, name=table.name))
