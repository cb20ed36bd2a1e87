"""Plan actions and the operation tree the differ produces.

A plan is a tree of `PlanNode`s. Each node carries at most one action; a node
without an action only groups its children. Children of a create are the
creates (or clones) inside the created object, so visiting the tree breadth
first always yields a parent's statement before any of its children's.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterator, Union

from ucsync.core.uc import TableInfo


@dataclass(frozen=True)
class CreateCatalog:
    name: str


@dataclass(frozen=True)
class CreateSchema:
    name: str


@dataclass(frozen=True)
class DropCatalog:
    name: str


@dataclass(frozen=True)
class DropSchema:
    name: str


@dataclass(frozen=True)
class DropTable:
    schema_name: str
    name: str


@dataclass(frozen=True)
class CloneTable:
    """Clone `source` into the target; `target` is set when it replaces a stale table."""

    source: TableInfo
    target: TableInfo | None = None


Action = Union[CreateCatalog, CreateSchema, DropCatalog, DropSchema, DropTable, CloneTable]


@dataclass(frozen=True)
class PlanNode:
    """One node of the operation tree."""

    action: Action | None = None
    children: tuple[PlanNode, ...] = ()

    @property
    def is_group(self) -> bool:
        return self.action is None


def walk(root: PlanNode) -> Iterator[PlanNode]:
    """Yield every node breadth-first, parents before their children."""
    queue: deque[PlanNode] = deque([root])
    while queue:
        node = queue.popleft()
        yield node
        queue.extend(node.children)


def describe(action: Action | None) -> str:
    """Short human-readable label for an action."""
    if action is None:
        return "(group)"
    if isinstance(action, DropTable):
        return f"DropTable {action.schema_name}.{action.name}"
    if isinstance(action, CloneTable):
        mode = "replace" if action.target is not None else "create"
        return f"CloneTable {action.source.full_name} ({mode})"
    return f"{type(action).__name__} {action.name}"


def format_tree(root: PlanNode, indent: str = "  ") -> str:
    """Render the plan depth-first with indentation, for debugging."""
    lines: list[str] = []

    def _visit(node: PlanNode, depth: int) -> None:
        lines.append(f"{indent * depth}{describe(node.action)}")
        for child in node.children:
            _visit(child, depth + 1)

    _visit(root, 0)
    return "\n".join(lines)
