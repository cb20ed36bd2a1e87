from datetime import datetime, timedelta, timezone

import pytest

from ucsync.core.differ import Differ
from ucsync.core.plan import (
    CloneTable,
    CreateCatalog,
    CreateSchema,
    DropSchema,
    DropTable,
    PlanNode,
    walk,
)
from ucsync.core.policy import GenerationConfig
from ucsync.core.tree import Catalog, CatalogForest
from ucsync.core.uc import TableInfo

T = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
HOUR = timedelta(hours=1)


def _table(catalog: str, schema: str, name: str, updated_at: datetime = T) -> TableInfo:
    return TableInfo(
        name=name,
        catalog_name=catalog,
        schema_name=schema,
        table_type="MANAGED",
        data_source_format="DELTA",
        updated_at=updated_at,
    )


def _catalog(name: str, layout: dict, updated_at: datetime = T) -> Catalog:
    forest = CatalogForest.from_records(
        _table(name, schema, table, updated_at)
        for schema, tables in layout.items()
        for table in tables
    )
    return forest.get_catalog(name)


def _actions(root: PlanNode | None) -> list:
    return [n.action for n in walk(root) if n.action is not None] if root else []


@pytest.fixture
def differ() -> Differ:
    return Differ(GenerationConfig(max_staleness=HOUR, create_schema_if_missing=True))


def test_diff_of_a_tree_with_itself_is_empty(differ):
    prod = _catalog("prod", {"sales": ["orders", "customers"], "web": ["clicks"]})

    assert differ.diff(prod, prod) is None
    assert differ.diff_schema(prod.schemas["sales"], prod.schemas["sales"]) is None
    table = prod.schemas["web"].tables["clicks"]
    assert differ.diff_table(table, table) is None


def test_diff_against_nothing_creates_everything(differ):
    prod = _catalog("prod", {"sales": ["orders", "customers"], "web": ["clicks"]})

    root = differ.diff(prod, None)

    assert root.action == CreateCatalog("prod")
    assert [c.action for c in root.children] == [CreateSchema("sales"), CreateSchema("web")]
    clones = [a for a in _actions(root) if isinstance(a, CloneTable)]
    assert sorted(a.source.full_name for a in clones) == [
        "prod.sales.customers",
        "prod.sales.orders",
        "prod.web.clicks",
    ]
    assert all(a.target is None for a in clones)


def test_new_catalog_creates_schemas_even_without_schema_policy():
    differ = Differ(GenerationConfig(create_schema_if_missing=False))
    prod = _catalog("prod", {"sales": ["orders"]})

    root = differ.diff(prod, None)

    assert root.children[0].action == CreateSchema("sales")


def test_only_in_target_becomes_childless_drop(differ):
    prod = _catalog("prod", {"sales": ["orders"]})
    dev = _catalog(
        "dev", {"sales": ["orders", "old_orders"], "legacy": ["a", "b", "c"]}
    )

    root = differ.diff(prod, dev)

    assert root.is_group
    drops = [n for n in walk(root) if isinstance(n.action, (DropSchema, DropTable))]
    assert {n.action for n in drops} == {
        DropSchema("legacy"),
        DropTable(schema_name="sales", name="old_orders"),
    }
    assert all(n.children == () for n in drops)


def test_shared_branches_without_changes_are_pruned(differ):
    prod = _catalog("prod", {"sales": ["orders"], "web": ["clicks", "views"]})
    dev = _catalog("dev", {"sales": ["orders"], "web": ["clicks"]})

    root = differ.diff(prod, dev)

    assert len(root.children) == 1
    web = root.children[0]
    assert web.is_group
    assert [a.source.name for a in _actions(web)] == ["views"]


def test_staleness_threshold_is_strict():
    differ = Differ(GenerationConfig(max_staleness=HOUR))
    source = _table("prod", "sales", "orders", T)

    at_threshold = _table("dev", "sales", "orders", T - HOUR)
    above = _table("dev", "sales", "orders", T - HOUR - timedelta(seconds=1))

    assert differ.diff_table(source, at_threshold) is None
    node = differ.diff_table(source, above)
    assert node.action == CloneTable(source=source, target=above)


def test_newer_target_is_never_stale():
    differ = Differ(GenerationConfig(max_staleness=HOUR))
    source = _table("prod", "sales", "orders", T)

    assert differ.diff_table(source, _table("dev", "sales", "orders", T + 5 * HOUR)) is None


def test_missing_schema_is_skipped_without_create_policy(caplog):
    differ = Differ(GenerationConfig(create_schema_if_missing=False))
    prod = _catalog("prod", {"sales": ["orders"]})
    dev = _catalog("dev", {"web": ["clicks"]})

    root = differ.diff(prod, dev)

    # Only the orphaned target schema is left to drop.
    assert _actions(root) == [DropSchema("web")]
    assert "create_schema_if_missing is off" in caplog.text


def test_missing_schema_is_created_with_policy(differ):
    prod = _catalog("prod", {"sales": ["orders"]})
    dev = Catalog(name="dev")

    root = differ.diff(prod, dev)

    create = root.children[0]
    assert create.action == CreateSchema("sales")
    assert create.children[0].action.source.full_name == "prod.sales.orders"
