"""Entity mappers.

One EntityMapper turns native assets of one type (optionally under a
generation prefix) into canonical entities. It is parameterized, not
subclassed: a property table, the classification mappers that may apply and
the relationship mappers the type takes part in.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple, TYPE_CHECKING

from core.errors import ExternalCallFailure, IncompleteReference
from core.identity import CatalogGuid
from core.mapping.classifications import ClassificationMapper
from core.mapping.context import MappingContext
from core.mapping.properties import PropertyMapping, map_properties, native_names
from core.models.canonical import (
    CanonicalClassification,
    CanonicalEntity,
    CanonicalRelationship,
    EntityProxy,
    Fidelity,
)
from core.models.native import NativeAsset
from core.observability.logging import get_logger
from core.search.conditions import NativeQuery

if TYPE_CHECKING:
    from core.mapping.relationships import RelationshipMapper


logger = get_logger(__name__)


@dataclass(frozen=True)
class EntityMapper:
    """Maps one native type (under an optional prefix) to one canonical type."""
    native_type: str
    canonical_type: str
    properties: Tuple[PropertyMapping, ...] = ()
    prefix: Optional[str] = None
    relationships: Tuple["RelationshipMapper", ...] = ()
    classifications: Tuple[ClassificationMapper, ...] = ()
    unique_properties: Tuple[str, ...] = ("qualifiedName",)

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return (self.native_type, self.prefix)

    def row(self, canonical_name: str) -> Optional[PropertyMapping]:
        for row in self.properties:
            if row.canonical_name == canonical_name:
                return row
        return None

    def mapped_properties(self) -> Set[str]:
        return {row.canonical_name for row in self.properties}

    def coordinates(self, ctx: MappingContext, asset: NativeAsset) -> CatalogGuid:
        return ctx.guids.coordinates(asset.rid, asset.native_type, self.prefix)

    def guid(self, ctx: MappingContext, asset: NativeAsset) -> str:
        return ctx.guids.entity_guid(asset.rid, asset.native_type, self.prefix)

    def base_query(self) -> NativeQuery:
        """Query selecting every asset this mapper can map."""
        return NativeQuery(
            native_types=(self.native_type,),
            properties=native_names(self.properties),
            prefix=self.prefix,
        )

    # =========================================================================
    # Mapping
    # =========================================================================

    async def map(self, ctx: MappingContext, asset: NativeAsset, fidelity: Fidelity = Fidelity.DETAIL) -> CanonicalEntity:
        if fidelity is Fidelity.SUMMARY:
            return await self.to_summary(ctx, asset)
        return await self.to_detail(ctx, asset)

    async def to_summary(self, ctx: MappingContext, asset: NativeAsset) -> CanonicalEntity:
        """Identity and classifications only; never resolves relationships."""
        return CanonicalEntity(
            guid=self.guid(ctx, asset),
            type_name=self.canonical_type,
            version=await ctx.version(asset),
            classifications=await self.classify(ctx, asset),
        )

    async def to_detail(self, ctx: MappingContext, asset: NativeAsset) -> CanonicalEntity:
        """Full property mapping plus classifications.

        Relationships are not embedded in the entity payload. The attached
        relationship mappers run through relationships_for(), which backs
        CatalogRepository.get_relationships().

        Raises:
            ExternalCallFailure: If a catalog read for a property fails
        """
        properties = await map_properties(ctx, asset, self.canonical_type, self.properties)
        return CanonicalEntity(
            guid=self.guid(ctx, asset),
            type_name=self.canonical_type,
            version=await ctx.version(asset),
            properties=properties,
            classifications=await self.classify(ctx, asset),
        )

    async def to_proxy(self, ctx: MappingContext, asset: NativeAsset) -> EntityProxy:
        """Minimal identifying view of the asset for use as a relationship end."""
        rows = [row for row in self.properties if row.canonical_name in self.unique_properties]
        unique = await map_properties(ctx, asset, self.canonical_type, rows)
        return EntityProxy(guid=self.guid(ctx, asset), type_name=self.canonical_type, unique_properties=unique)

    async def classify(self, ctx: MappingContext, asset: NativeAsset) -> List[CanonicalClassification]:
        """Evaluate every attached classification; a failing one is skipped with a warning."""
        results: List[CanonicalClassification] = []
        for mapper in self.classifications:
            try:
                classification = await mapper.classify(ctx, asset)
            except (ExternalCallFailure, IncompleteReference) as e:
                ctx.warn(
                    f"Skipped classification {mapper.canonical_type} on {asset.rid}: {e}",
                    asset_rid=asset.rid,
                )
                continue
            if classification is not None:
                results.append(classification)
        return results

    async def relationships_for(
        self,
        ctx: MappingContext,
        asset: NativeAsset,
        other: Optional[NativeAsset] = None,
    ) -> List[CanonicalRelationship]:
        """Every relationship this asset takes part in, in mapper order.

        Args:
            other: Restrict to relationships whose other end is this asset
        """
        seen: Dict[str, CanonicalRelationship] = {}
        for mapper in self.relationships:
            for relationship in await mapper.relationships_for(ctx, asset, self.prefix, other=other):
                seen.setdefault(relationship.guid, relationship)
        return list(seen.values())
