"""Hierarchical crawl of the Unity Catalog tree.

The crawl is a self-feeding work queue. Each fetch job lists the children of
one node of the catalog -> schema -> table hierarchy and expands into the
entities it found plus the jobs that list *their* children. A single asyncio
loop keeps at most `max_in_flight` jobs running, and inserts the results of a
finished job into the tree before its child jobs are queued. That ordering is
what lets `CatalogForest` insist on parents existing before children.

Failed jobs are dropped: their subtree is simply missing from the forest. The
caller decides (see `CrawlResult.failed_jobs`) whether that is acceptable.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Protocol, Union

from ucsync.core.adapters.unitycatalog import UnityCatalogError
from ucsync.core.tree import CatalogForest
from ucsync.core.uc import CatalogInfo, SchemaInfo, TableInfo

logger = logging.getLogger(__name__)

DEFAULT_MAX_IN_FLIGHT = 10

Entity = Union[CatalogInfo, SchemaInfo, TableInfo]


class CatalogLister(Protocol):
    """Interface for the list operations a crawl needs."""

    async def list_catalogs(self) -> list[CatalogInfo]:
        ...

    async def list_schemas(self, catalog: str) -> list[SchemaInfo]:
        ...

    async def list_tables(self, catalog: str, schema: str) -> list[TableInfo]:
        ...


@dataclass(frozen=True)
class Expansion:
    """What a finished job produced: entities to insert, then jobs to queue."""

    entities: tuple[Entity, ...] = ()
    jobs: tuple["FetchJob", ...] = ()


@dataclass(frozen=True)
class FetchAllCatalogs:
    """Discover every catalog visible to the principal."""

    async def expand(self, client: CatalogLister) -> Expansion:
        catalogs = await client.list_catalogs()
        return Expansion(
            entities=tuple(catalogs),
            jobs=tuple(FetchCatalog(c.name) for c in catalogs),
        )

    def __str__(self) -> str:
        return "catalogs"


@dataclass(frozen=True)
class FetchCatalog:
    """List the schemas of one catalog."""

    catalog_name: str

    async def expand(self, client: CatalogLister) -> Expansion:
        schemas = await client.list_schemas(self.catalog_name)
        # The catalog itself goes first: listing its schemas proved it exists.
        entities: list[Entity] = [CatalogInfo(name=self.catalog_name)]
        entities.extend(schemas)
        return Expansion(
            entities=tuple(entities),
            jobs=tuple(FetchSchema(self.catalog_name, s.name) for s in schemas),
        )

    def __str__(self) -> str:
        return self.catalog_name


@dataclass(frozen=True)
class FetchSchema:
    """List the tables of one schema. Terminal: yields no further jobs."""

    catalog_name: str
    schema_name: str

    async def expand(self, client: CatalogLister) -> Expansion:
        tables = await client.list_tables(self.catalog_name, self.schema_name)
        return Expansion(entities=tuple(tables))

    def __str__(self) -> str:
        return f"{self.catalog_name}.{self.schema_name}"


FetchJob = Union[FetchAllCatalogs, FetchCatalog, FetchSchema]


@dataclass(frozen=True)
class FailedJob:
    """A job whose fetch failed after the client's retries."""

    job: FetchJob
    error: str


@dataclass
class CrawlResult:
    """The forest built by a crawl, plus the jobs that did not make it."""

    forest: CatalogForest
    failed_jobs: list[FailedJob] = field(default_factory=list)
    jobs_run: int = 0

    @property
    def complete(self) -> bool:
        return not self.failed_jobs


def seed_jobs(catalog_names: Iterable[str] | None) -> list[FetchJob]:
    """
    Build the initial queue.

    Known catalog names are crawled directly (deduplicated, first occurrence
    wins the order). Without names the full catalog inventory is listed first.
    """
    if catalog_names is None:
        return [FetchAllCatalogs()]
    seen: dict[str, None] = dict.fromkeys(catalog_names)
    return [FetchCatalog(name) for name in seen]


def _insert(forest: CatalogForest, entity: Entity) -> None:
    if isinstance(entity, CatalogInfo):
        forest.upsert_catalog(entity.name)
    elif isinstance(entity, SchemaInfo):
        forest.upsert_schema(entity.catalog_name, entity)
    elif isinstance(entity, TableInfo):
        forest.upsert_table(entity.catalog_name, entity.schema_name, entity)
    else:
        raise TypeError(f"Unsupported entity {entity!r}")


class Crawler:
    """Bounded-concurrency crawler that fills a `CatalogForest`."""

    def __init__(
        self,
        client: CatalogLister,
        *,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
    ) -> None:
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be >= 1")
        self.client = client
        self.max_in_flight = max_in_flight

    async def crawl(self, jobs: Iterable[FetchJob]) -> CrawlResult:
        """Run jobs until the queue is empty and nothing is in flight."""
        result = CrawlResult(forest=CatalogForest())
        queue: deque[FetchJob] = deque(jobs)
        in_flight: dict[asyncio.Task[Expansion], FetchJob] = {}

        try:
            while queue or in_flight:
                while queue and len(in_flight) < self.max_in_flight:
                    job = queue.popleft()
                    in_flight[asyncio.create_task(job.expand(self.client))] = job

                done, _ = await asyncio.wait(
                    in_flight.keys(), return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    job = in_flight.pop(task)
                    result.jobs_run += 1
                    try:
                        expansion = task.result()
                    except UnityCatalogError as exc:
                        logger.warning(
                            "Fetching %s failed, its subtree will be missing: %s", job, exc
                        )
                        result.failed_jobs.append(FailedJob(job=job, error=str(exc)))
                        continue

                    for entity in expansion.entities:
                        _insert(result.forest, entity)
                    queue.extend(expansion.jobs)
                    logger.debug(
                        "Fetched %s: %d entities, %d new jobs (queued=%d)",
                        job,
                        len(expansion.entities),
                        len(expansion.jobs),
                        len(queue),
                    )
        finally:
            # Only non-empty when the loop above raised.
            for task in in_flight:
                task.cancel()
            await asyncio.gather(*in_flight, return_exceptions=True)

        if result.failed_jobs:
            logger.warning(
                "Crawl finished with %d failed job(s) out of %d",
                len(result.failed_jobs),
                result.jobs_run,
            )
        else:
            logger.info(
                "Crawl finished: %d job(s), %d catalog(s)",
                result.jobs_run,
                len(result.forest),
            )
        return result


async def crawl_catalogs(
    client: CatalogLister,
    catalog_names: Iterable[str] | None = None,
    *,
    max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
) -> CrawlResult:
    """Crawl the given catalogs (or every catalog when None)."""
    crawler = Crawler(client, max_in_flight=max_in_flight)
    return await crawler.crawl(seed_jobs(catalog_names))
