"""
Relationship Mapping Tests

Validates native relationship -> canonical relationship mapping:
1. Direct references, reverse searches and self edges of virtual entities
2. Link-object carriers with relationship-level properties
3. Status discriminator when several representations back one type
4. Placeholder endpoints and incomplete carriers are dropped
5. Relationship GUIDs are deterministic
"""

import asyncio
from dataclasses import replace

import pytest

from conftest import guid


def _by_type(batch):
    grouped = {}
    for relationship in batch.items:
        grouped.setdefault(relationship.type_name, []).append(relationship)
    return grouped


def _status(relationship):
    return relationship.properties["status"].symbolic_name


class TestDirectRelationships:
    """Endpoints referencing each other."""

    def test_database_relationships(self, repository):
        batch = asyncio.run(repository.get_relationships(guid("database", "db1")))

        grouped = _by_type(batch)
        assert sorted(grouped) == ["ConnectionToAsset", "DataContentForDataSet"]

        [content] = grouped["DataContentForDataSet"]
        assert content.proxy_one.unique_properties == {"qualifiedName": "(host)=INFOSVR::(database)=COMPDIR"}
        assert content.proxy_two.unique_properties == {
            "qualifiedName": "(host)=INFOSVR::(database)=COMPDIR::(database_schema)=DB2INST1",
        }

    def test_reverse_search(self, repository):
        """The connection is found by searching for assets referencing the database."""
        batch = asyncio.run(repository.get_relationships(guid("database", "db1")))

        [link] = _by_type(batch)["ConnectionToAsset"]
        assert link.proxy_one.type_name == "Connection"
        assert link.proxy_one.unique_properties["qualifiedName"] == "(host)=INFOSVR::(data_connection)=COMPDIR_CONN"
        assert link.proxy_two.guid == guid("database", "db1")
        assert "assetSummary" not in link.properties

    def test_proxies_carry_unique_properties_only(self, repository):
        batch = asyncio.run(repository.get_relationships(guid("host", "h1")))

        [relationship] = batch.items
        assert relationship.type_name == "ConnectionEndpoint"
        payload = relationship.to_payload()
        assert set(payload["proxy1"]) == {"guid", "type", "uniqueProperties"}
        assert set(payload["proxy2"]["uniqueProperties"]) == {"qualifiedName"}

    def test_other_end(self, repository):
        batch = asyncio.run(repository.get_relationships(guid("term", "term1")))

        [relationship] = batch.items
        assert relationship.type_name == "TermCategorization"
        assert relationship.other_end(guid("term", "term1")).guid == guid("category", "cat_leaf")
        assert relationship.other_end("unrelated") is None

    def test_category_hierarchy(self, repository):
        batch = asyncio.run(repository.get_relationships(guid("category", "cat_sa")))

        hierarchy = _by_type(batch)["CategoryHierarchyLink"]
        parents = [r.proxy_one.guid for r in hierarchy if r.proxy_two.guid == guid("category", "cat_sa")]
        children = [r.proxy_two.guid for r in hierarchy if r.proxy_one.guid == guid("category", "cat_sa")]
        assert parents == [guid("category", "cat_root")]
        assert children == [guid("category", "cat_leaf")]


class TestVirtualEndpoints:
    """Relationships between an asset and its generated view."""

    def test_self_edge_between_views(self, repository):
        deployed = asyncio.run(repository.get_relationships(guid("database_schema", "sch1")))
        virtual = asyncio.run(repository.get_relationships(guid("database_schema", "sch1", "gen!RDBST@")))

        [from_deployed] = _by_type(deployed)["AssetSchemaType"]
        [from_virtual] = _by_type(virtual)["AssetSchemaType"]

        assert from_deployed.guid == from_virtual.guid
        assert from_deployed.guid == (
            "test-collection@AssetSchemaType|database_schema:sch1|gen!RDBST@database_schema:sch1"
        )
        assert from_deployed.proxy_one.type_name == "DeployedDatabaseSchema"
        assert from_deployed.proxy_two.type_name == "RelationalDBSchemaType"

    def test_schema_type_owns_tables(self, repository):
        batch = asyncio.run(repository.get_relationships(guid("database_schema", "sch1", "gen!RDBST@")))

        [attribute] = _by_type(batch)["AttributeForSchema"]
        assert attribute.proxy_one.guid == guid("database_schema", "sch1", "gen!RDBST@")
        assert attribute.proxy_two.guid == guid("database_table", "tbl1")

    def test_deployed_schema_has_no_table_edges(self, repository):
        batch = asyncio.run(repository.get_relationships(guid("database_schema", "sch1")))
        assert "AttributeForSchema" not in _by_type(batch)


class TestDataClassAssignment:
    """One canonical type backed by a direct reference and a carrier asset."""

    def test_column_has_both_statuses(self, repository):
        batch = asyncio.run(repository.get_relationships(guid("database_column", "col1")))

        grouped = _by_type(batch)
        assert len(grouped["NestedSchemaAttribute"]) == 1
        assert sorted(_status(r) for r in grouped["DataClassAssignment"]) == ["Discovered", "Proposed"]
        assert len(batch.items) == 3

    def test_discovered_properties(self, repository):
        batch = asyncio.run(repository.get_relationships(guid("database_column", "col1")))

        [discovered] = [r for r in _by_type(batch)["DataClassAssignment"] if _status(r) == "Discovered"]
        props = discovered.properties
        assert props["confidence"] == 95
        assert props["partialMatch"] is True
        assert props["threshold"] == 0.8
        assert props["valueFrequency"] == 42
        assert "method" not in props
        assert discovered.guid.endswith("|cls1")

    def test_proposed_has_no_carrier_properties(self, repository):
        batch = asyncio.run(repository.get_relationships(guid("database_column", "col1")))

        [proposed] = [r for r in _by_type(batch)["DataClassAssignment"] if _status(r) == "Proposed"]
        assert set(proposed.properties) == {"status"}
        assert proposed.to_payload()["properties"]["status"]["ordinal"] == 1

    def test_value_frequency_requires_catalog_version(self, client, config):
        from connectors.governance_catalog import build_registry
        from core.mapping.repository import CatalogRepository

        repository = CatalogRepository(client, build_registry(replace(config, catalog_version="11.5")))
        batch = asyncio.run(repository.get_relationships(guid("database_column", "col1")))

        [discovered] = [r for r in batch.items if r.type_name == "DataClassAssignment" and _status(r) == "Discovered"]
        assert "valueFrequency" not in discovered.properties
        assert discovered.properties["confidence"] == 95

    def test_placeholder_endpoint_is_skipped(self, repository):
        """cls3 classifies a placeholder and never surfaces."""
        batch = asyncio.run(repository.get_relationships(guid("data_class", "dc1")))

        assert len(batch.items) == 2
        assert all("cls3" not in r.guid for r in batch.items)
        assert batch.warnings == []

    def test_carrier_missing_an_end_is_dropped(self, repository, client):
        from conftest import ID_COLUMN

        client.add_asset({"_id": "cls9", "_type": "classification",
                          "properties": {"classifies_asset": ID_COLUMN, "confidencePercent": 60}})

        batch = asyncio.run(repository.get_relationships(guid("database_column", "col2")))

        assert sorted(r.type_name for r in batch.items) == ["DataClassAssignment", "NestedSchemaAttribute"]
        assert any("Dropped DataClassAssignment" in w for w in batch.warnings)

    def test_failing_carrier_is_isolated(self, repository, client):
        client.fail_on("cls1")

        batch = asyncio.run(repository.get_relationships(guid("database_column", "col1")))

        assignments = _by_type(batch)["DataClassAssignment"]
        assert [_status(r) for r in assignments] == ["Proposed"]
        assert len(batch.items) == 2
        assert any("Dropped DataClassAssignment" in w for w in batch.warnings)

    def test_unparseable_confidence_leaves_properties_unset(self, repository, client):
        client.update_properties("cls1", confidencePercent="n/a")

        batch = asyncio.run(repository.get_relationships(guid("database_column", "col1")))

        assert len(batch.items) == 3
        [discovered] = [r for r in _by_type(batch)["DataClassAssignment"] if _status(r) == "Discovered"]
        assert "confidence" not in discovered.properties
        assert "partialMatch" not in discovered.properties
        assert discovered.properties["threshold"] == 0.8


class TestRelationshipSearch:
    """Searching relationships across representations."""

    def test_status_selects_representation(self, repository):
        batch = asyncio.run(repository.find_relationships("DataClassAssignment", {"status": "Discovered"}))

        assert len(batch.items) == 2
        assert {_status(r) for r in batch.items} == {"Discovered"}

    def test_carrier_property(self, repository):
        batch = asyncio.run(repository.find_relationships("DataClassAssignment", {"confidence": 95}))

        [relationship] = batch.items
        assert relationship.proxy_one.guid == guid("database_column", "col1")

    def test_proposed_found_from_data_class_side(self, repository):
        batch = asyncio.run(repository.find_relationships("DataClassAssignment", {"status": "Proposed"}))

        [relationship] = batch.items
        assert relationship.proxy_one.guid == guid("database_column", "col1")
        assert relationship.proxy_two.guid == guid("data_class", "dc1")

    def test_carrier_endpoints_fetched_when_search_omits_them(self, config):
        """Carriers returned without endpoint references are re-read by id."""
        from conftest import catalog_assets
        from connectors.catalog_base import SearchPage
        from connectors.governance_catalog import build_registry
        from connectors.memory_client import InMemoryCatalogClient
        from core.mapping.repository import CatalogRepository

        class BareSearchClient(InMemoryCatalogClient):
            async def search(self, query, offset=0, page_size=None):
                page = await super().search(query, offset, page_size)
                items = [item.model_copy(update={"properties": {}}) for item in page.items]
                return SearchPage(items=items, total=page.total, offset=page.offset)

        client = BareSearchClient(config, assets=catalog_assets())
        repository = CatalogRepository(client, build_registry(config))

        batch = asyncio.run(repository.find_relationships("DataClassAssignment", {"status": "Discovered"}))

        assert len(batch.items) == 2
        assert client.calls["get_by_id"] >= 2

    def test_guids_are_stable_across_reads(self, repository):
        first = asyncio.run(repository.get_relationships(guid("database_column", "col1")))
        second = asyncio.run(repository.find_relationships("DataClassAssignment", {}))

        assert {r.guid for r in first.items if r.type_name == "DataClassAssignment"} <= {r.guid for r in second.items}

    def test_version_does_not_depend_on_read_path(self, repository):
        """Newest of carrier and endpoints, whether reached from an entity or a search."""
        from core.models.native import to_epoch_millis

        by_entity = asyncio.run(repository.get_relationships(guid("database_column", "col1")))
        by_search = asyncio.run(repository.find_relationships("DataClassAssignment", {}))

        versions = {r.guid: r.version for r in by_entity.items if r.type_name == "DataClassAssignment"}
        assert len(versions) == 2
        for relationship in by_search.items:
            if relationship.guid in versions:
                assert relationship.version == versions[relationship.guid]
        assert set(versions.values()) == {to_epoch_millis("2024-03-01T11:30:00+00:00")}


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
