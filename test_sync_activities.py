"""
Sync Activity Tests

Runs the Temporal sync activities in an ActivityEnvironment (no server):
1. Listing activities return canonical payloads for the window
2. compute_change_sets decodes stub payloads and diffs against them
3. Activities of one worker share the window working set
4. The workflow definition is importable and wired to the activities
"""

import asyncio

import pytest

from conftest import guid


START = "2024-03-01T00:00:00Z"
END = "2024-03-02T00:00:00Z"


@pytest.fixture
def activities(repository):
    from activities.sync import CatalogSyncActivities
    return CatalogSyncActivities(repository)


def _run(fn, *args):
    from temporalio.testing import ActivityEnvironment
    return asyncio.run(ActivityEnvironment().run(fn, *args))


class TestListingActivities:
    """list_changed_entities / list_changed_relationships."""

    def test_list_changed_entities(self, activities):
        from activities.sync import SyncWindowInput

        output = _run(activities.list_changed_entities, SyncWindowInput(start=START, end=END))

        assert output.window == "2024-03-01T00:00:00+00:00/2024-03-02T00:00:00+00:00"
        assert [item["guid"] for item in output.items] == [guid("database", "db1"), guid("database_column", "col1")]
        assert output.items[0]["properties"]["name"] == "COMPDIR"
        assert output.skipped == []

    def test_summary_fidelity(self, activities):
        from activities.sync import SyncWindowInput

        output = _run(activities.list_changed_entities, SyncWindowInput(start=START, end=END, fidelity="summary"))
        assert all(item["properties"] == {} for item in output.items)

    def test_list_changed_relationships(self, activities):
        from activities.sync import SyncWindowInput

        output = _run(activities.list_changed_relationships, SyncWindowInput(start=START, end=END))

        assert len(output.items) == 5
        assert all({"proxy1", "proxy2"} <= set(item) for item in output.items)

    def test_bad_window_raises(self, activities):
        from activities.sync import SyncWindowInput

        with pytest.raises(ValueError):
            _run(activities.list_changed_entities, SyncWindowInput(start=END, end=START))

    def test_window_listing_shared_between_activities(self, activities, client):
        from activities.sync import SyncWindowInput

        _run(activities.list_changed_entities, SyncWindowInput(start=START, end=END))
        searches = client.calls["search"]
        _run(activities.list_changed_relationships, SyncWindowInput(start=START, end=END))

        # relationship resolution may search, but the window listing is not repeated
        assert client.calls["search"] - searches < len(activities.tracker.repository.registry.native_types)


class TestChangeSetActivity:
    """compute_change_sets."""

    def test_stub_payloads(self, activities, client):
        from activities.sync import ChangeSetsInput
        from core.models.native import StubSnapshot

        stored = asyncio.run(client.get_by_id("db1"))
        stub = StubSnapshot.from_asset(
            stored.model_copy(update={"properties": {**stored.properties, "dbms": "Oracle"}})
        )

        output = _run(activities.compute_change_sets, ChangeSetsInput(start=START, end=END, stubs=[stub.to_payload()]))

        by_rid = {item["rid"]: item for item in output.items}
        assert set(by_rid) == {"db1", "col1"}
        [record] = by_rid["db1"]["records"]
        assert record["property_name"] == "dbms"
        assert record["operation"] == "replace"
        assert record["old_value"] == "Oracle"

    def test_no_stubs(self, activities):
        from activities.sync import ChangeSetsInput

        output = _run(activities.compute_change_sets, ChangeSetsInput(start=START, end=END))
        assert len(output.items) == 2


class TestWorkflowDefinition:
    """The workflow is importable and registered against the activities."""

    def test_workflow_is_defined(self):
        from temporalio import workflow
        from workflows import CatalogSyncInput, CatalogSyncWorkflow

        definition = workflow._Definition.from_class(CatalogSyncWorkflow)
        assert definition is not None
        assert definition.name == "CatalogSyncWorkflow"
        assert CatalogSyncInput(start=START, end=END).fidelity == "detail"

    def test_activity_names(self, activities):
        from temporalio import activity

        names = [activity._Definition.from_callable(fn).name for fn in activities.all()]
        assert names == ["list_changed_entities", "list_changed_relationships", "compute_change_sets"]


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
