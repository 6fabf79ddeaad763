"""Catalog repository facade.

Entry point for reading the native catalog through canonical eyes: get an
entity by GUID, list its relationships, and run canonical searches. Every
call gets its own MappingContext. Batch operations isolate failures per asset
or relationship and report them as warnings instead of raising.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from connectors.catalog_base import CatalogClient
from core.errors import ExternalCallFailure, IncompleteReference, InvariantViolation, UnsupportedType
from core.identity import CatalogGuid
from core.mapping.context import MappingContext
from core.mapping.entities import EntityMapper
from core.mapping.registry import MapperRegistry
from core.mapping.relationships import RelationshipMapper, Representation
from core.mapping.translator import SearchCriteriaTranslator
from core.models.canonical import CanonicalEntity, CanonicalRelationship, Fidelity
from core.models.native import NativeAsset
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import get_metrics
from core.search.conditions import NativeQuery
from core.search.matching import Combinator


logger = get_logger(__name__)

T = TypeVar("T")

# A carrier asset with the relationship mapper and representation it belongs to.
Carrier = Tuple[RelationshipMapper, Representation, NativeAsset]


@dataclass
class SkippedAsset:
    """An asset left out of a batch, and why."""
    rid: str
    native_type: str
    reason: str
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"rid": self.rid, "native_type": self.native_type, "reason": self.reason, "message": self.message}


@dataclass
class MappingBatch(Generic[T]):
    """Result of a batch operation."""
    items: List[T] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    skipped: List[SkippedAsset] = field(default_factory=list)

    def skip(self, asset: NativeAsset, error: Exception) -> None:
        reason = type(error).__name__
        self.skipped.append(SkippedAsset(asset.rid, asset.native_type, reason, str(error)))
        self.warnings.append(f"Skipped {asset.native_type} {asset.rid}: {error}")
        get_metrics().record_asset_skipped(reason)
        logger.warning(
            f"Skipped asset {asset.rid}",
            extra_fields={"asset_rid": asset.rid, "native_type": asset.native_type, "reason": reason},
        )


def _dedupe(items: Iterable[Any]) -> List[Any]:
    seen: Dict[str, Any] = {}
    for item in items:
        seen.setdefault(item.guid, item)
    return list(seen.values())


class CatalogRepository:
    """Canonical read access to the native catalog."""

    def __init__(self, client: CatalogClient, registry: MapperRegistry):
        self.client = client
        self.registry = registry
        self.translator = SearchCriteriaTranslator(registry)

    def new_context(self) -> MappingContext:
        return MappingContext(self.client, self.registry)

    async def _resolve(self, ctx: MappingContext, guid: str) -> Tuple[EntityMapper, NativeAsset]:
        try:
            coordinates = CatalogGuid.parse(guid)
        except ValueError as e:
            raise IncompleteReference(str(e)) from None
        if coordinates.collection_id != self.registry.guids.collection_id:
            raise IncompleteReference(f"GUID belongs to another collection: {guid}")

        mapper = self.registry.get(coordinates.native_type, coordinates.prefix)
        asset = await ctx.get_asset(coordinates.rid)
        if asset is None or asset.native_type != coordinates.native_type:
            raise IncompleteReference(f"No {coordinates.native_type} asset with id {coordinates.rid}", rid=coordinates.rid)
        return mapper, asset

    # =========================================================================
    # Single-entity reads
    # =========================================================================

    async def get_entity(self, guid: str, fidelity: Fidelity = Fidelity.DETAIL) -> CanonicalEntity:
        """Map the entity identified by a GUID.

        Raises:
            UnsupportedType: If the GUID's type/prefix has no mapper
            IncompleteReference: If the GUID is malformed or the asset does not exist
            ExternalCallFailure: If a catalog call fails
        """
        ctx = self.new_context()
        mapper, asset = await self._resolve(ctx, guid)
        with with_correlation(asset_rid=asset.rid, native_type=asset.native_type, canonical_type=mapper.canonical_type):
            entity = await mapper.map(ctx, asset, fidelity)
        get_metrics().record_asset_mapped(mapper.canonical_type)
        return entity

    async def get_relationships(self, guid: str) -> MappingBatch[CanonicalRelationship]:
        """Relationships of the entity identified by a GUID."""
        ctx = self.new_context()
        mapper, asset = await self._resolve(ctx, guid)
        with with_correlation(asset_rid=asset.rid, native_type=asset.native_type):
            relationships = await mapper.relationships_for(ctx, asset)
        return MappingBatch(items=relationships, warnings=list(ctx.warnings))

    # =========================================================================
    # Batch mapping
    # =========================================================================

    async def _map_one(
        self,
        ctx: MappingContext,
        mapper: EntityMapper,
        asset: NativeAsset,
        fidelity: Fidelity,
        batch: MappingBatch,
    ) -> Optional[CanonicalEntity]:
        with with_correlation(asset_rid=asset.rid, native_type=asset.native_type, canonical_type=mapper.canonical_type):
            try:
                entity = await mapper.map(ctx, asset, fidelity)
            except (ExternalCallFailure, IncompleteReference, InvariantViolation) as e:
                batch.skip(asset, e)
                return None
        get_metrics().record_asset_mapped(mapper.canonical_type)
        return entity

    async def map_pairs(
        self,
        ctx: MappingContext,
        pairs: Sequence[Tuple[EntityMapper, NativeAsset]],
        fidelity: Fidelity = Fidelity.DETAIL,
        batch: Optional[MappingBatch] = None,
    ) -> MappingBatch[CanonicalEntity]:
        """Map (mapper, asset) pairs concurrently; results keep input order."""
        batch = batch if batch is not None else MappingBatch()
        results = await asyncio.gather(*(self._map_one(ctx, m, a, fidelity, batch) for m, a in pairs))
        batch.items.extend(_dedupe(entity for entity in results if entity is not None))
        batch.warnings.extend(ctx.warnings)
        return batch

    async def map_assets(
        self,
        assets: Iterable[NativeAsset],
        fidelity: Fidelity = Fidelity.DETAIL,
    ) -> MappingBatch[CanonicalEntity]:
        """Map assets with every mapper registered for their native type.

        Assets of unmapped types are skipped as UnsupportedType.
        """
        batch: MappingBatch[CanonicalEntity] = MappingBatch()
        pairs = []
        for asset in assets:
            mappers = self.registry.for_native_type(asset.native_type)
            if not mappers:
                batch.skip(asset, UnsupportedType(asset.native_type))
                continue
            pairs.extend((mapper, asset) for mapper in mappers)
        return await self.map_pairs(self.new_context(), pairs, fidelity, batch)

    async def relationships_for_assets(
        self,
        assets: Iterable[NativeAsset],
        carriers: Iterable[Carrier] = (),
    ) -> MappingBatch[CanonicalRelationship]:
        """Relationships of every asset, plus those held by the given carriers.

        Each asset and each carrier is resolved on its own; a relationship
        reached both ways is reported once.
        """
        ctx = self.new_context()
        batch: MappingBatch[CanonicalRelationship] = MappingBatch()
        found: List[CanonicalRelationship] = []
        for asset in assets:
            mappers = self.registry.for_native_type(asset.native_type)
            if not mappers:
                batch.skip(asset, UnsupportedType(asset.native_type))
                continue
            for mapper in mappers:
                with with_correlation(asset_rid=asset.rid, native_type=asset.native_type):
                    found.extend(await mapper.relationships_for(ctx, asset))
        for relationship_mapper, representation, carrier in carriers:
            with with_correlation(asset_rid=carrier.rid, native_type=carrier.native_type):
                try:
                    found.extend(await relationship_mapper.from_search_result(ctx, representation, carrier))
                except (ExternalCallFailure, IncompleteReference) as e:
                    batch.skip(carrier, e)
        batch.items = _dedupe(found)
        batch.warnings.extend(ctx.warnings)
        return batch

    # =========================================================================
    # Searches
    # =========================================================================

    async def _run_entity_queries(self, queries: List[NativeQuery], fidelity: Fidelity) -> MappingBatch[CanonicalEntity]:
        ctx = self.new_context()
        pairs = []
        for query in queries:
            for item in await ctx.search_all(query):
                pairs.append((self.registry.get(item.native_type, query.prefix), item))
        return await self.map_pairs(ctx, pairs, fidelity)

    async def find_entities(
        self,
        canonical_type: str,
        match: Optional[Mapping[str, Any]] = None,
        combinator: Combinator = Combinator.ALL,
        fidelity: Fidelity = Fidelity.DETAIL,
    ) -> MappingBatch[CanonicalEntity]:
        """Entities of a type whose properties match."""
        queries = self.translator.entity_queries(canonical_type, match, combinator)
        return await self._run_entity_queries(queries, fidelity)

    async def find_entities_by_text(
        self,
        text: str,
        canonical_type: Optional[str] = None,
        fidelity: Fidelity = Fidelity.DETAIL,
    ) -> MappingBatch[CanonicalEntity]:
        """Entities with any string property matching the text pattern."""
        queries = self.translator.entity_text_queries(text, canonical_type)
        return await self._run_entity_queries(queries, fidelity)

    async def find_entities_by_classification(
        self,
        classification_type: str,
        match: Optional[Mapping[str, Any]] = None,
        combinator: Combinator = Combinator.ALL,
        entity_type: Optional[str] = None,
        fidelity: Fidelity = Fidelity.DETAIL,
    ) -> MappingBatch[CanonicalEntity]:
        """Entities carrying a classification (optionally with matching properties)."""
        queries = self.translator.classification_queries(classification_type, match, combinator, entity_type)
        return await self._run_entity_queries(queries, fidelity)

    async def _run_relationship_queries(self, canonical_type: str, queries: List[NativeQuery]) -> MappingBatch[CanonicalRelationship]:
        mapper = self.registry.relationship_mapper(canonical_type)
        ctx = self.new_context()
        batch: MappingBatch[CanonicalRelationship] = MappingBatch()
        found: List[CanonicalRelationship] = []
        for representation, query in zip(mapper.representations, queries):
            for item in await ctx.search_all(query):
                try:
                    found.extend(await mapper.from_search_result(ctx, representation, item))
                except (ExternalCallFailure, IncompleteReference) as e:
                    batch.skip(item, e)
        batch.items = _dedupe(found)
        batch.warnings.extend(ctx.warnings)
        return batch

    async def find_relationships(
        self,
        canonical_type: str,
        match: Optional[Mapping[str, Any]] = None,
        combinator: Combinator = Combinator.ALL,
    ) -> MappingBatch[CanonicalRelationship]:
        """Relationships of a type whose properties match."""
        queries = self.translator.relationship_queries(canonical_type, match, combinator)
        return await self._run_relationship_queries(canonical_type, queries)

    async def find_relationships_by_text(self, canonical_type: str, text: str) -> MappingBatch[CanonicalRelationship]:
        """Relationships of a type with any string property or status matching the text pattern."""
        queries = self.translator.relationship_text_queries(canonical_type, text)
        return await self._run_relationship_queries(canonical_type, queries)
