"""Catalog Sync Workflow.

Orchestrates one incremental synchronization pass over a window [start, end):
list changed entities, list changed relationships, then compute change sets
against the stubs supplied by the scheduler. Failures of individual assets
surface as warnings in the activity outputs and never fail the workflow.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import List

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from activities.sync import (
        CatalogSyncActivities,
        ChangeSetsInput,
        SyncWindowInput,
    )


@dataclass
class CatalogSyncInput:
    """Input for CatalogSyncWorkflow.

    Attributes:
        start: Inclusive window start (ISO 8601)
        end: Exclusive window end (ISO 8601)
        stubs: Persisted stub payloads to diff against
        fidelity: Fidelity of the listed entities ("summary" or "detail")
    """
    start: str
    end: str
    stubs: List[dict] = field(default_factory=list)
    fidelity: str = "detail"


@workflow.defn
class CatalogSyncWorkflow:
    """Workflow for one incremental sync window."""

    @workflow.run
    async def run(self, input: CatalogSyncInput) -> dict:
        """Execute the sync pass.

        Args:
            input: CatalogSyncInput with window bounds and stubs

        Returns:
            dict with the window label, entity/relationship/change-set payloads and warnings
        """
        workflow.logger.info(f"Starting catalog sync for window {input.start} -> {input.end}")

        activity_options = {
            "start_to_close_timeout": timedelta(minutes=10),
            "retry_policy": RetryPolicy(
                maximum_attempts=3,
                initial_interval=timedelta(seconds=2),
                maximum_interval=timedelta(minutes=1),
                backoff_coefficient=2.0,
                # A malformed window is a caller error
                non_retryable_error_types=["ValueError"],
            ),
        }

        window_input = SyncWindowInput(start=input.start, end=input.end, fidelity=input.fidelity)

        entities = await workflow.execute_activity_method(
            CatalogSyncActivities.list_changed_entities,
            window_input,
            **activity_options,
        )
        workflow.logger.info(f"{len(entities.items)} changed entities")

        relationships = await workflow.execute_activity_method(
            CatalogSyncActivities.list_changed_relationships,
            window_input,
            **activity_options,
        )
        workflow.logger.info(f"{len(relationships.items)} changed relationships")

        change_sets = await workflow.execute_activity_method(
            CatalogSyncActivities.compute_change_sets,
            ChangeSetsInput(start=input.start, end=input.end, stubs=input.stubs),
            **activity_options,
        )
        workflow.logger.info(f"{len(change_sets.items)} change sets")

        warnings = entities.warnings + relationships.warnings + change_sets.warnings
        return {
            "window": entities.window,
            "entities": entities.items,
            "relationships": relationships.items,
            "change_sets": change_sets.items,
            "skipped": entities.skipped + change_sets.skipped,
            "warnings": list(dict.fromkeys(warnings)),
        }
