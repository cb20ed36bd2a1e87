"""Resolve configured sync pairs against a crawled forest and plan them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from ucsync.core.adapters.unitycatalog import UnityCatalogClient
from ucsync.core.auth import Credentials
from ucsync.core.config import SyncEntry
from ucsync.core.crawler import DEFAULT_MAX_IN_FLIGHT, CrawlResult, crawl_catalogs
from ucsync.core.differ import Differ
from ucsync.core.errors import UCSyncError
from ucsync.core.plan import PlanNode
from ucsync.core.policy import GenerationConfig
from ucsync.core.renderer import PlanRenderer
from ucsync.core.tree import Catalog, CatalogForest

logger = logging.getLogger(__name__)


class CatalogLookupError(UCSyncError):
    """Raised when a configured catalog is not in the crawled forest."""


def require_catalog(forest: CatalogForest, name: str) -> Catalog:
    """Return a catalog from the forest or fail the run."""
    catalog = forest.get_catalog(name)
    if catalog is None:
        raise CatalogLookupError(
            f"Catalog '{name}' was not found. It does not exist, is not visible "
            "to this principal, or could not be crawled."
        )
    return catalog


@dataclass(frozen=True)
class SyncPlan:
    """The plan for bringing `target` in line with one pinned catalog."""

    target: str
    pinned: str
    root: PlanNode | None


def build_plans(
    forest: CatalogForest,
    syncs: Iterable[SyncEntry],
    config: GenerationConfig,
) -> list[SyncPlan]:
    """Diff every (target, pinned) pair. All lookups happen before any diffing."""
    pairs = [
        (require_catalog(forest, entry.catalog), require_catalog(forest, pinned))
        for entry in syncs
        for pinned in entry.pinned_catalogs
    ]
    differ = Differ(config)
    plans: list[SyncPlan] = []
    for target, pinned in pairs:
        root = differ.diff(pinned, target)
        if root is None:
            logger.info("Catalog %s is in sync with %s.", target.name, pinned.name)
        plans.append(SyncPlan(target=target.name, pinned=pinned.name, root=root))
    return plans


def render_plans(plans: Iterable[SyncPlan], config: GenerationConfig) -> list[str]:
    """Render plans in order into statement lines."""
    renderer = PlanRenderer(config)
    lines: list[str] = []
    for plan in plans:
        lines.extend(renderer.render(plan.root, plan.target))
    return lines


async def crawl_workspace(
    credentials: Credentials,
    catalog_names: Iterable[str] | None,
    *,
    max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
) -> CrawlResult:
    """Open a client for the workspace and crawl the given catalogs."""
    async with UnityCatalogClient(credentials) as client:
        return await crawl_catalogs(client, catalog_names, max_in_flight=max_in_flight)
