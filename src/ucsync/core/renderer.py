"""Render an operation tree into SQL statement lines."""

from __future__ import annotations

import logging

from ucsync.core.plan import (
    Action,
    CloneTable,
    CreateCatalog,
    CreateSchema,
    DropCatalog,
    DropSchema,
    DropTable,
    PlanNode,
    walk,
)
from ucsync.core.policy import GenerationConfig, clone_type

logger = logging.getLogger(__name__)


class PlanRenderer:
    """
    Turn plan nodes into SQL.

    Nodes are visited breadth-first, so a CREATE CATALOG / CREATE SCHEMA line
    always precedes the statements for objects inside it. Each returned line
    is one statement, or a batch of statements that must run together.
    """

    def __init__(self, config: GenerationConfig) -> None:
        self.config = config

    def statements(self, action: Action, target_catalog: str) -> list[str]:
        """SQL statements (without terminators) for a single action."""
        if isinstance(action, CreateCatalog):
            return [f"CREATE CATALOG {target_catalog}"]
        if isinstance(action, CreateSchema):
            return [f"CREATE SCHEMA {target_catalog}.{action.name}"]
        if isinstance(action, DropCatalog):
            return [f"DROP CATALOG {action.name} CASCADE"]
        if isinstance(action, DropSchema):
            return [f"DROP SCHEMA {target_catalog}.{action.name} CASCADE"]
        if isinstance(action, DropTable):
            return [f"DROP TABLE {target_catalog}.{action.schema_name}.{action.name}"]
        if isinstance(action, CloneTable):
            return self._clone_statements(action, target_catalog)
        raise TypeError(f"Unsupported plan action {action!r}")

    def _clone_statements(self, action: CloneTable, target_catalog: str) -> list[str]:
        source = action.source
        mode = clone_type(source, self.config)
        if mode is None:
            return []
        if action.target is not None:
            target_path = action.target.full_name
            return [
                f"DROP TABLE {target_path}",
                f"CREATE TABLE {target_path} {mode.value} CLONE {source.full_name}",
            ]
        target_path = f"{target_catalog}.{source.schema_name}.{source.name}"
        return [f"CREATE TABLE {target_path} {mode.value} CLONE {source.full_name}"]

    def render(self, root: PlanNode | None, target_catalog: str) -> list[str]:
        """Render a whole plan; an empty plan renders to no lines."""
        if root is None:
            return []
        lines: list[str] = []
        for node in walk(root):
            if node.action is None:
                continue
            batch = self.statements(node.action, target_catalog)
            if batch:
                lines.append(" ".join(f"{stmt};" for stmt in batch))
        logger.debug("Rendered %d statement line(s) for %s", len(lines), target_catalog)
        return lines
