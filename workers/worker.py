"""Worker for catalog synchronization.

Connects to Temporal, builds the catalog repository from configuration
(native client + mapper registry) and serves CatalogSyncWorkflow together
with the sync activities on the configured task queue.

Run with --queue <name> to override CATALOG_TASK_QUEUE.
Run with --snapshot <path> to serve an exported catalog snapshot through the
in-memory client.
"""

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from temporalio.worker import Worker

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from activities.sync import CatalogSyncActivities
from connectors import create_client
from connectors.governance_catalog import build_registry
from core.config import BridgeConfig, load_config
from core.mapping.repository import CatalogRepository
from core.observability.logging import configure_logging, get_logger
from temporal_client import get_temporal_client
from workflows.catalog_sync_workflow import CatalogSyncWorkflow


logger = get_logger(__name__)


def build_repository(config: BridgeConfig) -> CatalogRepository:
    """Wire the native client and the mapper registry for a configuration."""
    return CatalogRepository(create_client(config), build_registry(config))


async def run_worker(queue: Optional[str] = None, snapshot: Optional[str] = None):
    """Start a worker polling the sync task queue.

    Args:
        queue: Task queue to poll (default: config.task_queue)
        snapshot: Catalog snapshot file for the in-memory client

    Raises:
        Exception: If connection to Temporal fails
    """
    config = load_config()
    if snapshot:
        config = replace(config, client_name="memory", snapshot_path=snapshot)
    task_queue = queue or config.task_queue

    repository = build_repository(config)
    activities = CatalogSyncActivities(repository)
    try:
        client = await get_temporal_client()
        logger.info(f"Connected to Temporal namespace: {client.namespace}")

        worker = Worker(
            client,
            task_queue=task_queue,
            workflows=[CatalogSyncWorkflow],
            activities=activities.all(),
        )
        logger.info(
            f"Worker created for queue '{task_queue}'",
            extra_fields={
                "catalog_client": repository.client.client_name,
                "catalog_version": config.catalog_version,
                "collection": config.metadata_collection_id,
            },
        )

        logger.info("Worker running... (Ctrl+C to stop)")
        await worker.run()

    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")
    except Exception as e:
        logger.error(f"Worker error: {e}", exc_info=True)
        raise
    finally:
        await repository.client.close()
        logger.info("Worker stopped")


def main():
    """Entry point for worker with CLI args."""
    parser = argparse.ArgumentParser(description="Catalog Sync Temporal Worker")
    parser.add_argument(
        "--queue", "-q",
        default=None,
        help="Task queue to poll (default: CATALOG_TASK_QUEUE or catalog-sync)"
    )
    parser.add_argument(
        "--snapshot", "-s",
        default=None,
        help="Catalog snapshot JSON served by the in-memory client"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit structured JSON logs"
    )

    args = parser.parse_args()
    configure_logging(json_format=args.json_logs)
    asyncio.run(run_worker(queue=args.queue, snapshot=args.snapshot))


if __name__ == "__main__":
    main()
