"""Request-scoped mapping context.

One MappingContext lives for a single mapping or search call. It holds the
native client, the registry, and a resolution cache so an asset, a property
or an endpoint proxy is fetched at most once within the call. Concurrent
readers of the same key share one in-flight fetch. Nothing here survives
across calls.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, TYPE_CHECKING

from core.models.canonical import EntityProxy
from core.models.native import NativeAsset, reference_items, to_epoch_millis
from core.observability.logging import get_logger
from core.search.conditions import NativeQuery

if TYPE_CHECKING:
    from connectors.catalog_base import CatalogClient
    from core.mapping.registry import MapperRegistry


logger = get_logger(__name__)

MODIFIED_ON = "modified_on"


class MappingContext:
    """Per-call cache over the native catalog client."""

    def __init__(self, client: "CatalogClient", registry: "MapperRegistry"):
        self.client = client
        self.registry = registry
        self.warnings: List[str] = []
        self._assets: Dict[Hashable, asyncio.Future] = {}
        self._properties: Dict[Hashable, asyncio.Future] = {}
        self._proxies: Dict[Hashable, asyncio.Future] = {}

    @property
    def config(self):
        return self.registry.config

    @property
    def guids(self):
        return self.registry.guids

    @property
    def typedefs(self):
        return self.registry.typedefs

    def warn(self, message: str, **fields: Any) -> None:
        """Record a batch-level warning."""
        self.warnings.append(message)
        logger.warning(message, extra_fields=fields)

    @staticmethod
    def _once(cache: Dict[Hashable, asyncio.Future], key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> asyncio.Future:
        """The shared fetch for a key, started on first use."""
        pending = cache.get(key)
        if pending is None:
            pending = asyncio.ensure_future(fetch())
            cache[key] = pending
        return pending

    # =========================================================================
    # Native Reads
    # =========================================================================

    async def get_asset(self, rid: str) -> Optional[NativeAsset]:
        """Fetch a full asset by id (cached for the call)."""
        return await self._once(self._assets, rid, lambda: self.client.get_by_id(rid))

    def _loaded_asset(self, rid: str) -> Optional[NativeAsset]:
        pending = self._assets.get(rid)
        if pending is None or not pending.done() or pending.cancelled() or pending.exception() is not None:
            return None
        return pending.result()

    async def get_property(self, asset: NativeAsset, name: str) -> Any:
        """Read a property, fetching it from the catalog at most once per call."""
        if name in asset.properties:
            return asset.properties[name]
        if name == "name" and asset.name is not None:
            return asset.name

        full = self._loaded_asset(asset.rid)
        if full is not None and name in full.properties:
            return full.properties[name]
        return await self._once(self._properties, (asset.rid, name), lambda: self.client.get_property(asset, name))

    async def get_references(self, asset: NativeAsset, name: str) -> List[NativeAsset]:
        return reference_items(await self.get_property(asset, name))

    async def get_reference(self, asset: NativeAsset, name: str) -> Optional[NativeAsset]:
        references = await self.get_references(asset, name)
        return references[0] if references else None

    async def get_name(self, asset: NativeAsset) -> Optional[str]:
        if asset.name is not None:
            return asset.name
        return await self.get_property(asset, "name")

    async def version(self, asset: NativeAsset) -> int:
        """Version counter of an asset: its modification time in epoch millis."""
        millis = to_epoch_millis(await self.get_property(asset, MODIFIED_ON))
        return max(millis or 1, 1)

    async def search_all(self, query: NativeQuery) -> List[NativeAsset]:
        return await self.client.search_all(query)

    # =========================================================================
    # Proxies
    # =========================================================================

    async def proxy_for(self, asset: NativeAsset, prefix: Optional[str] = None) -> EntityProxy:
        """Build (or reuse) the proxy of an endpoint asset.

        Raises:
            UnsupportedType: If no mapper covers the endpoint
        """
        mapper = self.registry.get(asset.native_type, prefix)
        return await self._once(self._proxies, (asset.rid, prefix), lambda: mapper.to_proxy(self, asset))
