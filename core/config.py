"""Bridge configuration.

Loaded once at process start from environment variables (optionally from a
.env file at the repo root) and threaded explicitly into the mapper registry,
the native client factory and the sync worker.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


ENV_PATH = Path(__file__).resolve().parents[1] / ".env"

DEFAULT_COLLECTION_ID = "catalog-bridge"
DEFAULT_CATALOG_VERSION = "11.7.0.2"
DEFAULT_SUBJECT_AREA_MARKER = "Subject Area"
DEFAULT_TASK_QUEUE = "catalog-sync"


def parse_version(version: str) -> Tuple[int, ...]:
    """Parse a dotted catalog version ("11.7.0.2") into a comparable tuple."""
    parts = []
    for piece in version.strip().split("."):
        digits = "".join(ch for ch in piece if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    return tuple(parts)


@dataclass(frozen=True)
class BridgeConfig:
    """Configuration for the catalog bridge."""
    metadata_collection_id: str = DEFAULT_COLLECTION_ID
    catalog_version: str = DEFAULT_CATALOG_VERSION
    page_size: int = 100

    # Classification derivation
    subject_area_marker: str = DEFAULT_SUBJECT_AREA_MARKER
    classification_max_hops: int = 2

    # Native client selection
    client_name: str = "memory"
    snapshot_path: Optional[str] = None

    # Sync worker
    task_queue: str = DEFAULT_TASK_QUEUE

    def supports_version(self, minimum: str) -> bool:
        """True when the configured catalog is at least the given version."""
        return parse_version(self.catalog_version) >= parse_version(minimum)


def load_config(env_file: Optional[Path] = None) -> BridgeConfig:
    """Build a BridgeConfig from the environment.

    Reads:
    - CATALOG_COLLECTION_ID: GUID namespace for this metadata collection
    - CATALOG_VERSION: version of the native catalog (e.g. "11.7.0.2")
    - CATALOG_PAGE_SIZE: page size used when paging native searches
    - CATALOG_SUBJECT_AREA_MARKER: category name marking subject areas
    - CATALOG_CLASSIFICATION_MAX_HOPS: ancestor hops checked for classifications
    - CATALOG_CLIENT: registered native client name
    - CATALOG_SNAPSHOT_PATH: snapshot file for the in-memory client
    - CATALOG_TASK_QUEUE: Temporal task queue for sync workers

    Raises:
        ValueError: If a numeric setting is not an integer
    """
    path = env_file or ENV_PATH
    if path.exists():
        load_dotenv(path)

    return BridgeConfig(
        metadata_collection_id=os.getenv("CATALOG_COLLECTION_ID", DEFAULT_COLLECTION_ID),
        catalog_version=os.getenv("CATALOG_VERSION", DEFAULT_CATALOG_VERSION),
        page_size=int(os.getenv("CATALOG_PAGE_SIZE", "100")),
        subject_area_marker=os.getenv("CATALOG_SUBJECT_AREA_MARKER", DEFAULT_SUBJECT_AREA_MARKER),
        classification_max_hops=int(os.getenv("CATALOG_CLASSIFICATION_MAX_HOPS", "2")),
        client_name=os.getenv("CATALOG_CLIENT", "memory"),
        snapshot_path=os.getenv("CATALOG_SNAPSHOT_PATH"),
        task_queue=os.getenv("CATALOG_TASK_QUEUE", DEFAULT_TASK_QUEUE),
    )
