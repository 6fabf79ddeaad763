"""Abstract Native Catalog Client Interface.

This module defines the collaborator contract the mapping core calls to read
the external catalog. It is intentionally transport-agnostic: session
handling, authentication, HTTP paging and timeouts belong to implementations.

Contract:
1. search(query) - one page of asset references matching a NativeQuery, plus total count
2. get_by_id(rid) - the full native asset
3. get_property(asset, name) - lazily fetch one property value

Implementations raise ExternalCallFailure for network, auth or server errors
and never retry internally on behalf of the mapping core.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.config import BridgeConfig
from core.models.native import NativeAsset
from core.search.conditions import NativeQuery


@dataclass
class SearchPage:
    """One page of search results."""
    items: List[NativeAsset] = field(default_factory=list)
    total: int = 0
    offset: int = 0

    @property
    def next_offset(self) -> Optional[int]:
        following = self.offset + len(self.items)
        if not self.items or following >= self.total:
            return None
        return following


class CatalogClient(ABC):
    """Abstract interface for native catalog clients."""

    def __init__(self, config: BridgeConfig):
        self.config = config

    @property
    @abstractmethod
    def client_name(self) -> str:
        """Registered name of this client (e.g. 'memory', 'rest')."""
        pass

    @abstractmethod
    async def search(self, query: NativeQuery, offset: int = 0, page_size: Optional[int] = None) -> SearchPage:
        """Run a native query and return one page of results.

        Args:
            query: Native types and conditions to match
            offset: Index of the first result to return
            page_size: Maximum results in the page (defaults to config.page_size)

        Returns:
            SearchPage with asset references and the total match count

        Raises:
            ExternalCallFailure: If the catalog call fails
        """
        pass

    @abstractmethod
    async def get_by_id(self, rid: str) -> Optional[NativeAsset]:
        """Fetch a full native asset by id.

        Returns:
            The asset with all its properties, or None if it does not exist

        Raises:
            ExternalCallFailure: If the catalog call fails
        """
        pass

    @abstractmethod
    async def get_property(self, asset: NativeAsset, name: str) -> Any:
        """Fetch a single property value of an asset.

        Returns:
            A scalar, a NativeAsset reference, a ReferenceList, or None

        Raises:
            ExternalCallFailure: If the catalog call fails
        """
        pass

    async def search_all(self, query: NativeQuery) -> List[NativeAsset]:
        """Run a query and follow every page.

        Queries forced to return no rows are answered without a catalog call.
        """
        if query.forces_no_results:
            return []

        results: List[NativeAsset] = []
        offset: Optional[int] = 0
        while offset is not None:
            page = await self.search(query, offset=offset, page_size=self.config.page_size)
            results.extend(page.items)
            offset = page.next_offset
        return results

    async def close(self) -> None:
        """Release client resources."""
        pass


# =============================================================================
# Client Factory
# =============================================================================

_client_registry: Dict[str, type] = {}


def register_client(client_name: str):
    """Decorator to register a client implementation."""
    def decorator(cls):
        _client_registry[client_name] = cls
        return cls
    return decorator


def create_client(config: BridgeConfig) -> CatalogClient:
    """Create a client instance from configuration.

    Raises:
        ValueError: If config.client_name is not registered
    """
    client_name = config.client_name.lower()

    if client_name not in _client_registry:
        available = list(_client_registry.keys())
        raise ValueError(
            f"Unknown catalog client: {client_name}. "
            f"Available: {available}"
        )

    client_class = _client_registry[client_name]
    return client_class(config)


def list_available_clients() -> List[str]:
    """List all registered client names."""
    return list(_client_registry.keys())
