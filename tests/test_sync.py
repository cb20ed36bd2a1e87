from datetime import datetime, timedelta, timezone

import pytest

from ucsync.core.config import SyncEntry
from ucsync.core.policy import GenerationConfig
from ucsync.core.sync import (
    CatalogLookupError,
    build_plans,
    render_plans,
    require_catalog,
)
from ucsync.core.tree import CatalogForest
from ucsync.core.uc import TableInfo

T = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
CONFIG = GenerationConfig(max_staleness=timedelta(hours=1), create_schema_if_missing=True)


def _table(catalog, schema, name, updated_at=T):
    return TableInfo(
        name=name,
        catalog_name=catalog,
        schema_name=schema,
        table_type="MANAGED",
        data_source_format="DELTA",
        updated_at=updated_at,
    )


def test_require_catalog():
    forest = CatalogForest()
    forest.upsert_catalog("prod")

    assert require_catalog(forest, "prod").name == "prod"
    with pytest.raises(CatalogLookupError, match="'dev' was not found"):
        require_catalog(forest, "dev")


def test_plan_end_to_end_creates_schema_then_clone():
    forest = CatalogForest.from_records(
        [_table("prod", "sales", "orders"), _table("dev", "ops", "jobs")]
    )
    syncs = [SyncEntry(catalog="dev", pinned_catalogs=("prod",))]

    plans = build_plans(forest, syncs, CONFIG)

    assert [(p.target, p.pinned) for p in plans] == [("dev", "prod")]
    assert render_plans(plans, CONFIG) == [
        "DROP SCHEMA dev.ops CASCADE;",
        "CREATE SCHEMA dev.sales;",
        "CREATE TABLE dev.sales.orders SHALLOW CLONE prod.sales.orders;",
    ]


def test_plan_end_to_end_replaces_stale_table():
    forest = CatalogForest.from_records(
        [
            _table("prod", "sales", "orders", T),
            _table("dev", "sales", "orders", T - timedelta(hours=2)),
        ]
    )
    syncs = [SyncEntry(catalog="dev", pinned_catalogs=("prod",))]

    assert render_plans(build_plans(forest, syncs, CONFIG), CONFIG) == [
        "DROP TABLE dev.sales.orders; "
        "CREATE TABLE dev.sales.orders SHALLOW CLONE prod.sales.orders;"
    ]


def test_in_sync_pair_has_an_empty_plan():
    forest = CatalogForest.from_records(
        [_table("prod", "sales", "orders"), _table("dev", "sales", "orders")]
    )
    plans = build_plans(forest, [SyncEntry("dev", ("prod",))], CONFIG)

    assert plans[0].root is None
    assert render_plans(plans, CONFIG) == []


def test_build_plans_looks_up_every_catalog_first():
    forest = CatalogForest.from_records([_table("prod", "sales", "orders")])
    syncs = [SyncEntry("prod", ("prod_v2",))]

    with pytest.raises(CatalogLookupError, match="prod_v2"):
        build_plans(forest, syncs, CONFIG)
