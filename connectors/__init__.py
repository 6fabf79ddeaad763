"""Native Catalog Connectors.

This package contains the abstract catalog client interface, the client
factory, an in-memory client, and the mapping definitions for the governance
catalog's native types.

Key Design Principle:
- The mapping core depends ONLY on the CatalogClient interface
- Transport, sessions and authentication stay inside client implementations

To add a new client:
1. Implement CatalogClient
2. Register it using the @register_client decorator
3. Select it with CATALOG_CLIENT=<name>
"""

from connectors.catalog_base import (
    CatalogClient,
    SearchPage,
    create_client,
    list_available_clients,
    register_client,
)
from connectors.memory_client import InMemoryCatalogClient

__all__ = [
    "CatalogClient",
    "SearchPage",
    "create_client",
    "list_available_clients",
    "register_client",
    "InMemoryCatalogClient",
]
