from datetime import datetime, timedelta, timezone

import pytest

from ucsync.core.tree import CatalogForest, MissingAncestorError
from ucsync.core.uc import SchemaInfo, TableInfo

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _table(name: str, schema: str = "sales", catalog: str = "prod", **kw) -> TableInfo:
    kw.setdefault("table_type", "MANAGED")
    kw.setdefault("updated_at", T0)
    return TableInfo(name=name, catalog_name=catalog, schema_name=schema, **kw)


def test_upsert_schema_requires_catalog():
    forest = CatalogForest()

    with pytest.raises(MissingAncestorError, match="catalog 'prod'"):
        forest.upsert_schema("prod", SchemaInfo(name="sales", catalog_name="prod"))

    forest.upsert_catalog("prod")
    schema = forest.upsert_schema("prod", SchemaInfo(name="sales", catalog_name="prod"))

    assert schema.full_name == "prod.sales"
    assert forest.get_catalog("prod").schemas["sales"] is schema


def test_upsert_table_requires_schema():
    forest = CatalogForest()
    forest.upsert_catalog("prod")

    with pytest.raises(MissingAncestorError, match="prod.sales"):
        forest.upsert_table("prod", "sales", _table("orders"))

    with pytest.raises(MissingAncestorError):
        forest.upsert_table("other", "sales", _table("orders", catalog="other"))


def test_upsert_table_twice_keeps_one_entry_with_latest_fields():
    forest = CatalogForest()
    forest.upsert_catalog("prod")
    forest.upsert_schema("prod", SchemaInfo(name="sales", catalog_name="prod"))

    forest.upsert_table("prod", "sales", _table("orders", updated_by="a"))
    later = _table("orders", updated_at=T0 + timedelta(hours=1), updated_by="b")
    forest.upsert_table("prod", "sales", later)

    tables = forest.get_catalog("prod").schemas["sales"].tables
    assert list(tables) == ["orders"]
    assert tables["orders"] is later


def test_reupserting_parents_keeps_children():
    forest = CatalogForest()
    forest.upsert_catalog("prod")
    forest.upsert_schema("prod", SchemaInfo(name="sales", catalog_name="prod"))
    forest.upsert_table("prod", "sales", _table("orders"))

    forest.upsert_catalog("prod")
    forest.upsert_schema("prod", SchemaInfo(name="sales", catalog_name="prod"))

    assert "orders" in forest.get_catalog("prod").schemas["sales"].tables


def test_get_catalog_returns_none_when_absent():
    assert CatalogForest().get_catalog("nope") is None


def test_iter_tables_is_lazy_and_covers_every_schema():
    forest = CatalogForest.from_records(
        [_table("orders"), _table("customers"), _table("clicks", schema="web")]
    )
    catalog = forest.get_catalog("prod")

    it = catalog.iter_tables()
    assert next(it).name == "orders"
    assert sorted(t.full_name for t in catalog.iter_tables()) == [
        "prod.sales.customers",
        "prod.sales.orders",
        "prod.web.clicks",
    ]


def test_from_records_builds_ancestors_in_order():
    forest = CatalogForest.from_records(
        [_table("orders"), _table("orders", catalog="dev"), _table("x", schema="s2")]
    )

    assert len(forest) == 2
    assert "dev" in forest
    assert set(forest.get_catalog("prod").schemas) == {"sales", "s2"}
    assert forest.get_catalog("dev").schemas["sales"].catalog_name == "dev"
