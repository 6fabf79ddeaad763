"""Relationship mappers.

A RelationshipMapper produces canonical relationships of one type between
two endpoint kinds. How the native catalog stores the relationship is
described by one or more representations:

- DirectRepresentation: endpoints reference each other through native
  properties (forward on one end, inverse on the other, or found by search)
- LinkObjectRepresentation: an edge-as-node carrier asset references both
  endpoints and holds relationship-level properties

When several representations back one canonical type (e.g. a "proposed"
direct reference and a "discovered" carrier), each declares the status it
produces so every emitted relationship carries an unambiguous discriminator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from core.errors import (
    ExternalCallFailure,
    IncompleteReference,
    InvariantViolation,
    UnsupportedType,
)
from core.mapping.context import MappingContext
from core.mapping.properties import PropertyMapping, map_properties
from core.models.canonical import CanonicalRelationship
from core.models.native import AssetKind, NativeAsset, reference_items
from core.observability.logging import get_logger
from core.observability.metrics import get_metrics
from core.search.conditions import ConditionSet, NativeQuery, Operator, SearchCondition


logger = get_logger(__name__)

SELF = "<self>"  # the endpoint is the asset itself (derived views)


class Side(str, Enum):
    ONE = "one"
    TWO = "two"


@dataclass(frozen=True)
class Endpoint:
    """Which native assets may appear at one end of a relationship."""
    native_types: Tuple[str, ...]
    prefix: Optional[str] = None

    def accepts(self, native_type: str, prefix: Optional[str] = None) -> bool:
        return native_type in self.native_types and (prefix or None) == self.prefix


@dataclass(frozen=True)
class Edge:
    """A resolved pair of native endpoints, with the carrier if any."""
    one: Optional[NativeAsset]
    two: Optional[NativeAsset]
    carrier: Optional[NativeAsset] = None


# =============================================================================
# Representations
# =============================================================================

class Representation(ABC):
    """One native encoding of a canonical relationship type."""
    name: str = "direct"
    status: Optional[str] = None
    properties: Tuple[PropertyMapping, ...] = ()

    @abstractmethod
    async def edges(self, ctx: MappingContext, mapper: "RelationshipMapper", asset: NativeAsset, side: Side) -> List[Edge]:
        """Resolve the edges touching an endpoint asset seen from the given side."""
        pass

    @abstractmethod
    def base_query(self, mapper: "RelationshipMapper") -> NativeQuery:
        """Query returning the native rows that carry this representation."""
        pass

    @abstractmethod
    async def edges_from_result(self, ctx: MappingContext, mapper: "RelationshipMapper", item: NativeAsset) -> List[Edge]:
        """Resolve the edges carried by one row returned by base_query()."""
        pass

    def row(self, canonical_name: str) -> Optional[PropertyMapping]:
        for row in self.properties:
            if row.canonical_name == canonical_name:
                return row
        return None


@dataclass(frozen=True)
class DirectRepresentation(Representation):
    """Endpoints reference each other directly.

    Args:
        one_to_two: Property on endpoint one referencing endpoint two (or SELF)
        two_to_one: Inverse property on endpoint two (or SELF)
        reverse_search_types: When two_to_one is None, native types searched
            for assets whose one_to_two references endpoint two
        search_from: Side whose assets base_query() returns
    """
    one_to_two: Optional[str] = None
    two_to_one: Optional[str] = None
    reverse_search_types: Tuple[str, ...] = ()
    search_from: Side = Side.ONE
    name: str = "direct"
    status: Optional[str] = None
    properties: Tuple[PropertyMapping, ...] = ()

    async def edges(self, ctx, mapper, asset, side):
        if side is Side.ONE:
            if self.one_to_two == SELF:
                return [Edge(asset, asset)]
            if not self.one_to_two:
                return []
            others = await ctx.get_references(asset, self.one_to_two)
            return [Edge(asset, other) for other in others]

        if self.two_to_one == SELF:
            return [Edge(asset, asset)]
        if self.two_to_one:
            others = await ctx.get_references(asset, self.two_to_one)
        elif self.reverse_search_types and self.one_to_two:
            others = await ctx.search_all(NativeQuery(
                native_types=self.reverse_search_types,
                conditions=ConditionSet((SearchCondition(self.one_to_two, Operator.EQUALS, asset.rid),)),
            ))
        else:
            others = []
        return [Edge(other, asset) for other in others]

    def base_query(self, mapper):
        endpoint = mapper.endpoint(self.search_from)
        existence = self.one_to_two if self.search_from is Side.ONE else self.two_to_one
        conditions = ConditionSet()
        if existence and existence != SELF:
            conditions = ConditionSet((SearchCondition(existence, Operator.IS_NOT_NULL),))
        return NativeQuery(
            native_types=endpoint.native_types,
            conditions=conditions,
            prefix=endpoint.prefix,
            representation=self.name,
        )

    async def edges_from_result(self, ctx, mapper, item):
        return await self.edges(ctx, mapper, item, self.search_from)


@dataclass(frozen=True)
class LinkObjectRepresentation(Representation):
    """A carrier asset of link_type references both endpoints.

    The carrier returned by a search may lack its endpoint references; they
    are then read from the carrier fetched by id.
    """
    link_type: str = ""
    one_property: str = ""
    two_property: str = ""
    name: str = "link"
    status: Optional[str] = None
    properties: Tuple[PropertyMapping, ...] = ()

    def base_query(self, mapper):
        return NativeQuery(
            native_types=(self.link_type,),
            properties=(self.one_property, self.two_property),
            representation=self.name,
        )

    async def edges(self, ctx, mapper, asset, side):
        endpoint_property = self.one_property if side is Side.ONE else self.two_property
        carriers = await ctx.search_all(NativeQuery(
            native_types=(self.link_type,),
            conditions=ConditionSet((SearchCondition(endpoint_property, Operator.EQUALS, asset.rid),)),
            properties=(self.one_property, self.two_property),
        ))
        return [await self._edge(ctx, carrier) for carrier in carriers]

    async def edges_from_result(self, ctx, mapper, item):
        return [await self._edge(ctx, item)]

    async def _edge(self, ctx: MappingContext, carrier: NativeAsset) -> Edge:
        one = await self._endpoint(ctx, carrier, self.one_property)
        two = await self._endpoint(ctx, carrier, self.two_property)
        return Edge(one, two, carrier)

    async def _endpoint(self, ctx: MappingContext, carrier: NativeAsset, name: str) -> Optional[NativeAsset]:
        references = reference_items(carrier.properties.get(name))
        if not references:
            full = await ctx.get_asset(carrier.rid)
            if full is not None:
                references = reference_items(full.properties.get(name))
        return references[0] if references else None


# =============================================================================
# Relationship Mapper
# =============================================================================

async def _version(ctx: MappingContext, *assets: Optional[NativeAsset]) -> int:
    """Newest version among the carrier and both endpoints."""
    versions = [await ctx.version(asset) for asset in assets if asset is not None]
    return max(versions or [1])


@dataclass(frozen=True)
class RelationshipMapper:
    """Maps native endpoint pairs to one canonical relationship type."""
    canonical_type: str
    one: Endpoint
    two: Endpoint
    representations: Tuple[Representation, ...]
    literals: Tuple[PropertyMapping, ...] = ()
    status_property: Optional[str] = None

    def endpoint(self, side: Side) -> Endpoint:
        return self.one if side is Side.ONE else self.two

    def sides_for(self, native_type: str, prefix: Optional[str] = None) -> List[Side]:
        return [side for side in Side if self.endpoint(side).accepts(native_type, prefix)]

    def mapped_properties(self) -> Set[str]:
        names = {row.canonical_name for row in self.literals}
        for representation in self.representations:
            names.update(row.canonical_name for row in representation.properties)
        if self.status_property:
            names.add(self.status_property)
        return names

    def literal_row(self, canonical_name: str) -> Optional[PropertyMapping]:
        for row in self.literals:
            if row.canonical_name == canonical_name:
                return row
        return None

    def statuses(self) -> List[str]:
        return [r.status for r in self.representations if r.status]

    # =========================================================================
    # Mapping
    # =========================================================================

    async def relationships_for(
        self,
        ctx: MappingContext,
        asset: NativeAsset,
        prefix: Optional[str] = None,
        other: Optional[NativeAsset] = None,
    ) -> List[CanonicalRelationship]:
        """Relationships of this type touching the asset.

        Failures are isolated: a representation that cannot be resolved, or a
        single edge that cannot be built, is skipped with a warning.
        """
        found: Dict[str, CanonicalRelationship] = {}
        for side in self.sides_for(asset.native_type, prefix):
            for representation in self.representations:
                try:
                    edges = await representation.edges(ctx, self, asset, side)
                except (ExternalCallFailure, IncompleteReference) as e:
                    ctx.warn(
                        f"Could not resolve {self.canonical_type} ({representation.name}) for {asset.rid}: {e}",
                        asset_rid=asset.rid,
                    )
                    continue
                for edge in edges:
                    if other is not None and other.rid not in _edge_rids(edge):
                        continue
                    relationship = await self.build_or_skip(ctx, representation, edge)
                    if relationship is not None:
                        found.setdefault(relationship.guid, relationship)
        return list(found.values())

    async def from_search_result(
        self,
        ctx: MappingContext,
        representation: Representation,
        item: NativeAsset,
    ) -> List[CanonicalRelationship]:
        """Relationships carried by one row returned by a representation's query."""
        results = []
        for edge in await representation.edges_from_result(ctx, self, item):
            relationship = await self.build_or_skip(ctx, representation, edge)
            if relationship is not None:
                results.append(relationship)
        return results

    async def build_or_skip(
        self,
        ctx: MappingContext,
        representation: Representation,
        edge: Edge,
    ) -> Optional[CanonicalRelationship]:
        """Build one relationship; problems with this instance never escape."""
        for end in (edge.one, edge.two):
            if end is not None and end.kind is AssetKind.PLACEHOLDER:
                logger.debug(f"Skipping {self.canonical_type} with placeholder endpoint {end.rid}")
                return None
        try:
            relationship = await self.build(ctx, representation, edge)
        except InvariantViolation as e:
            get_metrics().record_relationship_dropped(self.canonical_type, "invariant")
            ctx.warn(f"Dropped {self.canonical_type}: {e}")
            return None
        except (UnsupportedType, IncompleteReference, ExternalCallFailure) as e:
            get_metrics().record_relationship_dropped(self.canonical_type, type(e).__name__)
            ctx.warn(f"Dropped {self.canonical_type}: {e}")
            return None
        get_metrics().record_relationship_emitted(self.canonical_type)
        return relationship

    async def build(self, ctx: MappingContext, representation: Representation, edge: Edge) -> CanonicalRelationship:
        """Build the canonical relationship for a resolved edge.

        Raises:
            InvariantViolation: If either endpoint is missing
            UnsupportedType: If an endpoint type has no mapper
        """
        if edge.one is None or edge.two is None:
            carrier = edge.carrier.rid if edge.carrier else None
            raise InvariantViolation(
                f"{self.canonical_type} resolved with fewer than two endpoints (carrier={carrier})",
                {"carrier": carrier},
            )

        proxy_one = await ctx.proxy_for(edge.one, self.one.prefix)
        proxy_two = await ctx.proxy_for(edge.two, self.two.prefix)

        properties = await map_properties(ctx, edge.carrier or edge.one, self.canonical_type, self.literals)
        if edge.carrier is not None and representation.properties:
            properties.update(
                await map_properties(ctx, edge.carrier, self.canonical_type, representation.properties)
            )
        if self.status_property and representation.status:
            properties[self.status_property] = ctx.typedefs.coerce(
                self.canonical_type, self.status_property, representation.status
            )

        guid = ctx.guids.relationship_guid(
            self.canonical_type,
            ctx.guids.coordinates(edge.one.rid, edge.one.native_type, self.one.prefix),
            ctx.guids.coordinates(edge.two.rid, edge.two.native_type, self.two.prefix),
            edge.carrier.rid if edge.carrier else None,
        )
        return CanonicalRelationship(
            guid=guid,
            type_name=self.canonical_type,
            version=await _version(ctx, edge.carrier, edge.one, edge.two),
            properties=properties,
            proxy_one=proxy_one,
            proxy_two=proxy_two,
        )


def _edge_rids(edge: Edge) -> Tuple[Optional[str], Optional[str]]:
    return (edge.one.rid if edge.one else None, edge.two.rid if edge.two else None)
