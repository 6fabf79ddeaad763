"""
Native Client Tests

Validates the in-memory catalog client and the native query model:
1. Condition trees (AND / OR, dotted paths, null checks, ranges)
2. Paging through search_all
3. Placeholder and link asset handling
4. Snapshot loading and the client factory
5. Injected failures
"""

import asyncio
import json
from dataclasses import replace

import pytest


def _query(native_type, *conditions, match_any=False, properties=()):
    from core.search.conditions import ConditionSet, NativeQuery

    return NativeQuery(
        native_types=(native_type,),
        conditions=ConditionSet(tuple(conditions), match_any=match_any),
        properties=properties,
    )


def _rids(client, query):
    return [asset.rid for asset in asyncio.run(client.search_all(query))]


class TestConditions:
    """Evaluation of native condition trees."""

    def test_equals(self, client):
        from core.search.conditions import Operator, SearchCondition

        query = _query("database_column", SearchCondition("data_type", Operator.EQUALS, "INTEGER"))
        assert _rids(client, query) == ["col2"]

    def test_dotted_path(self, client):
        from core.search.conditions import Operator, SearchCondition

        query = _query("category", SearchCondition("parent_category.parent_category.name", Operator.EQUALS, "Root"))
        assert _rids(client, query) == ["cat_leaf"]

    def test_reference_equals_rid(self, client):
        from core.search.conditions import Operator, SearchCondition

        query = _query("data_connection", SearchCondition("imports_database", Operator.EQUALS, "db1"))
        assert _rids(client, query) == ["conn1"]

    def test_null_checks(self, client):
        from core.search.conditions import Operator, SearchCondition

        roots = _query("category", SearchCondition("parent_category", Operator.IS_NULL))
        with_length = _query("database_column", SearchCondition("length", Operator.IS_NOT_NULL))
        assert _rids(client, roots) == ["cat_root"]
        assert _rids(client, with_length) == ["col1"]

    def test_any_of(self, client):
        from core.search.conditions import Operator, SearchCondition

        query = _query(
            "term",
            SearchCondition("name", Operator.STARTS_WITH, "Rev"),
            SearchCondition("abbreviation", Operator.EQUALS, "EM"),
            match_any=True,
        )
        assert sorted(_rids(client, query)) == ["term1", "term2"]

    def test_timestamp_range(self, client):
        from core.search.conditions import Operator, SearchCondition

        query = _query(
            "database",
            SearchCondition("modified_on", Operator.GREATER_OR_EQUAL, "2024-03-01T00:00:00Z"),
            SearchCondition("modified_on", Operator.LESS_THAN, "2024-03-02T00:00:00Z"),
        )
        assert _rids(client, query) == ["db1"]

    def test_numeric_comparison(self, client):
        from core.search.conditions import Operator, SearchCondition

        query = _query("classification", SearchCondition("confidencePercent", Operator.LESS_THAN, 100))
        assert sorted(_rids(client, query)) == ["cls1", "cls3"]

    def test_forced_empty_query_makes_no_call(self, client):
        query = _query("database").force_no_results()

        assert _rids(client, query) == []
        assert client.calls["search"] == 0


class TestCombine:
    """Tri-state combination of criteria."""

    def test_all(self):
        from core.search.conditions import ConditionSet, Operator, Outcome, SearchCondition, combine

        condition = SearchCondition("name", Operator.EQUALS, "x")
        assert combine([condition, Outcome.NEVER], match_any=False) is Outcome.NEVER
        assert combine([condition, Outcome.ALWAYS], match_any=False) == ConditionSet.all_of([condition])
        assert combine([Outcome.ALWAYS], match_any=False) is Outcome.ALWAYS

    def test_any(self):
        from core.search.conditions import ConditionSet, Operator, Outcome, SearchCondition, combine

        condition = SearchCondition("name", Operator.EQUALS, "x")
        assert combine([condition, Outcome.ALWAYS], match_any=True) is Outcome.ALWAYS
        assert combine([condition, Outcome.NEVER], match_any=True) == ConditionSet.any_of([condition])
        assert combine([Outcome.NEVER, Outcome.NEVER], match_any=True) is Outcome.NEVER

    def test_force_no_results_keeps_conditions(self):
        from core.search.conditions import NO_RESULTS, Operator, SearchCondition

        query = _query("database", SearchCondition("name", Operator.EQUALS, "x")).force_no_results()
        assert query.forces_no_results
        assert query.conditions.items[0] == NO_RESULTS
        assert len(query.conditions) == 2
        assert query.force_no_results() is query


class TestPaging:
    """search / search_all paging."""

    def test_pages(self, client):
        page = asyncio.run(client.search(_query("category"), offset=0, page_size=3))

        assert len(page.items) == 3
        assert page.total == 4
        assert page.next_offset == 3

        last = asyncio.run(client.search(_query("category"), offset=3, page_size=3))
        assert last.next_offset is None

    def test_search_all_follows_pages(self, client):
        rids = _rids(client, _query("category"))

        assert rids == ["cat_root", "cat_sa", "cat_leaf", "cat_other"]
        assert client.calls["search"] == 2

    def test_results_project_requested_properties(self, client):
        [column] = [a for a in asyncio.run(client.search_all(_query("database_column", properties=("data_type",))))
                    if a.rid == "col1"]

        assert set(column.properties) == {"data_type"}
        assert column.name == "EMAIL"


class TestAssets:
    """Reads by id and property."""

    def test_get_by_id(self, client):
        asset = asyncio.run(client.get_by_id("db1"))

        assert asset.properties["dbms"] == "DB2"
        assert asset.properties["host"].rid == "h1"
        assert asset.properties["database_schemas"].rids() == ["sch1"]

    def test_placeholders_are_not_returned(self, client):
        from core.models.native import AssetKind

        assert asyncio.run(client.get_by_id("mo1")) is None
        carrier = asyncio.run(client.get_by_id("cls3"))
        assert carrier.kind == AssetKind.LINK
        assert carrier.properties["classifies_asset"].kind == AssetKind.PLACEHOLDER

    def test_missing_asset(self, client):
        assert asyncio.run(client.get_by_id("nope")) is None

    def test_get_property(self, client):
        from core.models.native import NativeAsset

        reference = NativeAsset(rid="col1", native_type="database_column")
        assert asyncio.run(client.get_property(reference, "position")) == 1
        assert asyncio.run(client.get_property(reference, "name")) == "EMAIL"
        assert asyncio.run(client.get_property(reference, "unknown")) is None

    def test_update_properties(self, client):
        client.update_properties("db1", dbms_version="12.1", imported_from=None)

        asset = asyncio.run(client.get_by_id("db1"))
        assert asset.properties["dbms_version"] == "12.1"
        assert "imported_from" not in asset.properties

    def test_fail_on(self, client):
        from core.errors import ExternalCallFailure
        from core.models.native import NativeAsset

        client.fail_on("db1")
        with pytest.raises(ExternalCallFailure) as exc_info:
            asyncio.run(client.get_by_id("db1"))
        assert exc_info.value.status_code == 503
        with pytest.raises(ExternalCallFailure):
            asyncio.run(client.get_property(NativeAsset(rid="db1", native_type="database"), "dbms"))


class TestSnapshotAndFactory:
    """Snapshot files and the client registry."""

    def test_snapshot_file(self, tmp_path, config):
        from connectors.memory_client import InMemoryCatalogClient
        from core.models.native import AssetKind

        snapshot = tmp_path / "catalog.json"
        snapshot.write_text(json.dumps({
            "link_types": ["term_assignment"],
            "placeholder_types": ["stub_object"],
            "assets": [
                {"_id": "a1", "_type": "term_assignment", "properties": {"target": {"_id": "s1", "_type": "stub_object"}}},
                {"_id": "t1", "_type": "term", "_name": "Email"},
            ],
        }), encoding="utf-8")

        client = InMemoryCatalogClient(replace(config, snapshot_path=str(snapshot)))

        link = asyncio.run(client.get_by_id("a1"))
        assert link.kind == AssetKind.LINK
        assert link.properties["target"].kind == AssetKind.PLACEHOLDER
        assert asyncio.run(client.get_by_id("t1")).name == "Email"

    def test_create_client(self, config):
        from connectors import create_client, list_available_clients
        from connectors.memory_client import InMemoryCatalogClient

        assert "memory" in list_available_clients()
        assert isinstance(create_client(config), InMemoryCatalogClient)

    def test_unknown_client(self, config):
        from connectors import create_client

        with pytest.raises(ValueError):
            create_client(replace(config, client_name="nope"))


class TestConfig:
    """Environment configuration."""

    def test_load_config(self, tmp_path, monkeypatch):
        from core.config import load_config

        monkeypatch.setenv("CATALOG_COLLECTION_ID", "env-collection")
        monkeypatch.setenv("CATALOG_PAGE_SIZE", "25")
        monkeypatch.setenv("CATALOG_CLASSIFICATION_MAX_HOPS", "3")

        config = load_config(tmp_path / "missing.env")

        assert config.metadata_collection_id == "env-collection"
        assert config.page_size == 25
        assert config.classification_max_hops == 3

    def test_bad_numeric_setting(self, tmp_path, monkeypatch):
        from core.config import load_config

        monkeypatch.setenv("CATALOG_PAGE_SIZE", "many")
        with pytest.raises(ValueError):
            load_config(tmp_path / "missing.env")

    @pytest.mark.parametrize("version,minimum,expected", [
        ("11.7.0.2", "11.7.0.2", True),
        ("11.7.1", "11.7.0.2", True),
        ("11.5", "11.7.0.2", False),
    ])
    def test_supports_version(self, config, version, minimum, expected):
        assert replace(config, catalog_version=version).supports_version(minimum) is expected


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
