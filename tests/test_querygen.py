from datetime import datetime, timedelta, timezone

import pytest

from ucsync.core.config import SyncEntry
from ucsync.core.policy import GenerationConfig
from ucsync.core.querygen import QueryGenerator
from ucsync.core.sync import CatalogLookupError
from ucsync.core.tree import CatalogForest
from ucsync.core.uc import TableInfo

T = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
SYNCS = [SyncEntry(catalog="dev", pinned_catalogs=("prod",))]


def _table(catalog, schema, name, updated_at=T, table_type="MANAGED", fmt="DELTA"):
    return TableInfo(
        name=name,
        catalog_name=catalog,
        schema_name=schema,
        table_type=table_type,
        data_source_format=fmt,
        updated_at=updated_at,
    )


def _forest(*tables, empty=()):
    forest = CatalogForest.from_records(tables)
    for name in empty:
        forest.upsert_catalog(name)
    return forest


def _config(hours=1, **kw):
    return GenerationConfig(max_staleness=timedelta(hours=hours), **kw)


def test_missing_schema_is_created_before_the_clone():
    forest = _forest(
        _table("prod", "sales", "orders"),
        _table("prod", "sales", "customers"),
        empty=["dev"],
    )

    queries = QueryGenerator(_config(create_schema_if_missing=True)).generate_queries(
        forest, SYNCS
    )

    assert queries == [
        "CREATE SCHEMA dev.sales;",
        "CREATE TABLE dev.sales.orders SHALLOW CLONE prod.sales.orders;",
        "CREATE TABLE dev.sales.customers SHALLOW CLONE prod.sales.customers;",
    ]


def test_missing_schema_without_create_policy_emits_nothing(caplog):
    forest = _forest(_table("prod", "sales", "orders"), empty=["dev"])

    queries = QueryGenerator(_config()).generate_queries(forest, SYNCS)

    assert queries == []
    assert "dev.sales doesn't exist" in caplog.text


def test_missing_table_in_existing_schema_is_created():
    forest = _forest(
        _table("prod", "sales", "orders"),
        _table("prod", "sales", "returns"),
        _table("dev", "sales", "orders"),
    )

    assert QueryGenerator(_config()).generate_queries(forest, SYNCS) == [
        "CREATE TABLE dev.sales.returns SHALLOW CLONE prod.sales.returns;"
    ]


@pytest.mark.parametrize(
    ("hours", "expected"),
    [
        (1, ["CREATE OR REPLACE TABLE dev.sales.orders SHALLOW CLONE prod.sales.orders;"]),
        (3, []),
    ],
)
def test_stale_table_is_replaced_only_past_the_threshold(hours, expected):
    forest = _forest(
        _table("prod", "sales", "orders", T),
        _table("dev", "sales", "orders", T - timedelta(hours=2)),
    )

    assert QueryGenerator(_config(hours)).generate_queries(forest, SYNCS) == expected


def test_non_managed_tables_follow_the_deep_clone_option():
    forest = _forest(
        _table("prod", "raw", "events", table_type="EXTERNAL", fmt="PARQUET"),
        _table("dev", "raw", "other"),
    )

    deep = QueryGenerator(_config(deep_clone_non_managed=True))
    strict = QueryGenerator(_config())

    assert deep.generate_queries(forest, SYNCS) == [
        "CREATE TABLE dev.raw.events DEEP CLONE prod.raw.events;"
    ]
    assert strict.generate_queries(forest, SYNCS) == []


def test_every_pinned_catalog_is_compared():
    forest = _forest(
        _table("prod", "sales", "orders"),
        _table("ref", "sales", "fx_rates"),
        _table("dev", "sales", "orders"),
    )
    syncs = [SyncEntry(catalog="dev", pinned_catalogs=("prod", "ref"))]

    assert QueryGenerator(_config()).generate_queries(forest, syncs) == [
        "CREATE TABLE dev.sales.fx_rates SHALLOW CLONE ref.sales.fx_rates;"
    ]


def test_unknown_catalog_fails_before_any_statement():
    forest = _forest(_table("prod", "sales", "orders"))

    with pytest.raises(CatalogLookupError, match="'dev'"):
        QueryGenerator(_config()).generate_queries(forest, SYNCS)
