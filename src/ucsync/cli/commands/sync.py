"""Commands that crawl the configured catalogs and print SQL."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from ucsync.cli.common.context import SyncAppContext, build_sync_context
from ucsync.cli.common.exits import die, exit_from_exc
from ucsync.cli.common.logs import configure_logging, resolve_level
from ucsync.cli.common.options import (
    ConfigOpt,
    LogLevelOpt,
    NumRequestsOpt,
    ProfileOpt,
    StrictOpt,
    TreeOpt,
    VerboseOpt,
)
from ucsync.cli.common.output import out
from ucsync.core.crawler import CrawlResult
from ucsync.core.errors import UCSyncError
from ucsync.core.plan import format_tree
from ucsync.core.querygen import QueryGenerator
from ucsync.core.sync import build_plans, crawl_workspace, render_plans
from ucsync.core.tree import CatalogForest


def _setup(
    config: Path,
    profile: str | None,
    num_requests: int | None,
    log_level: str,
    verbose: bool,
) -> SyncAppContext:
    """Validate options, configure logging and build the command context."""
    try:
        level = resolve_level(log_level, verbose)
    except ValueError as exc:
        exit_from_exc(exc, message=str(exc), code=2)
    if num_requests is not None and num_requests < 1:
        die("--num-requests must be >= 1", code=2)
    configure_logging(level)
    return build_sync_context(config, profile, num_requests)


def _crawl_or_exit(appctx: SyncAppContext, *, strict: bool) -> CatalogForest:
    """Crawl every configured catalog, honouring --strict for partial crawls."""
    names = appctx.config.catalog_names()
    out.kv(
        {
            "Host": appctx.credentials.host,
            "Catalogs": ", ".join(names),
            "Concurrency": appctx.max_in_flight,
        }
    )
    try:
        with out.status(f"Crawling {len(names)} catalog(s)..."):
            result: CrawlResult = asyncio.run(
                crawl_workspace(
                    appctx.credentials, names, max_in_flight=appctx.max_in_flight
                )
            )
    except UCSyncError as exc:
        exit_from_exc(exc, message=f"Crawl aborted: {exc}", code=1)

    if result.failed_jobs:
        out.failed_jobs_table(result.failed_jobs)
        if strict:
            die(
                f"{len(result.failed_jobs)} fetch(es) failed and --strict is set; "
                "no statements were generated.",
                code=1,
            )
        out.warn(
            f"{len(result.failed_jobs)} fetch(es) failed; their objects are missing "
            "from the comparison."
        )
    out.success(f"Crawled {len(result.forest)} catalog(s) in {result.jobs_run} fetch(es)")
    return result.forest


def sync(
    config: Path = ConfigOpt,
    profile: str | None = ProfileOpt,
    num_requests: int | None = NumRequestsOpt,
    strict: bool = StrictOpt,
    log_level: str = LogLevelOpt,
    verbose: bool = VerboseOpt,
):
    """
    Print CREATE / CREATE OR REPLACE ... CLONE statements for missing and stale tables.

    Never drops anything.
    """
    appctx = _setup(config, profile, num_requests, log_level, verbose)
    forest = _crawl_or_exit(appctx, strict=strict)

    generator = QueryGenerator(appctx.config.generation_config)
    try:
        queries = generator.generate_queries(forest, appctx.config.catalogs)
    except UCSyncError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    if not queries:
        out.success("Target catalogs are in sync. Nothing to do.")
        raise typer.Exit(0)
    out.statements(queries)


def plan(
    config: Path = ConfigOpt,
    profile: str | None = ProfileOpt,
    num_requests: int | None = NumRequestsOpt,
    strict: bool = StrictOpt,
    tree: bool = TreeOpt,
    log_level: str = LogLevelOpt,
    verbose: bool = VerboseOpt,
):
    """
    Diff each target catalog against its pinned catalogs and print the full plan.

    Unlike `sync`, the plan also drops schemas and tables that only exist in
    the target.
    """
    appctx = _setup(config, profile, num_requests, log_level, verbose)
    forest = _crawl_or_exit(appctx, strict=strict)

    generation = appctx.config.generation_config
    try:
        plans = build_plans(forest, appctx.config.catalogs, generation)
    except UCSyncError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    if tree:
        for p in plans:
            title = f"{p.target} <- {p.pinned}"
            if p.root is None:
                out.success(f"{title}: in sync")
            else:
                out.plan_tree(title, format_tree(p.root))
        raise typer.Exit(0)

    lines = render_plans(plans, generation)
    if not lines:
        out.success("Target catalogs are in sync. Nothing to do.")
        raise typer.Exit(0)
    out.statements(lines)
