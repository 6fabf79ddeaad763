"""Classification mappers.

A classification is not stored on the native asset: it is derived by
evaluating a predicate over the native graph. The same predicate is turned
around into native search conditions when looking for classified entities.
"""

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Tuple

from core.mapping.context import MappingContext
from core.mapping.properties import PropertyMapping, map_properties
from core.models.canonical import CanonicalClassification
from core.models.native import NativeAsset
from core.observability.logging import get_logger
from core.search.conditions import ConditionSet, Criterion, Operator, SearchCondition


logger = get_logger(__name__)


class ClassificationPredicate(Protocol):
    """Decides whether an asset carries a classification."""

    async def evaluate(self, ctx: MappingContext, asset: NativeAsset) -> bool:
        ...

    def existence(self) -> Criterion:
        """Native criterion selecting assets for which evaluate() is true."""
        ...


@dataclass(frozen=True)
class AncestorMarkerPredicate:
    """True when an ancestor within max_hops is named marker_name.

    Ancestors are followed through parent_property (e.g. parent_category),
    nearest first; the walk stops at the first match.
    """
    parent_property: str
    marker_name: str
    max_hops: int = 2

    async def evaluate(self, ctx: MappingContext, asset: NativeAsset) -> bool:
        seen = {asset.rid}
        current = asset
        for _ in range(self.max_hops):
            parent = await ctx.get_reference(current, self.parent_property)
            if parent is None or parent.rid in seen:
                return False
            if await ctx.get_name(parent) == self.marker_name:
                return True
            seen.add(parent.rid)
            current = parent
        return False

    def hop_paths(self) -> Tuple[str, ...]:
        return tuple(
            ".".join([self.parent_property] * hops + ["name"])
            for hops in range(1, self.max_hops + 1)
        )

    def existence(self) -> Criterion:
        return ConditionSet.any_of(
            SearchCondition(path, Operator.EQUALS, self.marker_name) for path in self.hop_paths()
        )


@dataclass(frozen=True)
class ClassificationMapper:
    """Derives one canonical classification type for entities of a mapper."""
    canonical_type: str
    predicate: ClassificationPredicate
    properties: Tuple[PropertyMapping, ...] = ()

    def row(self, canonical_name: str) -> Optional[PropertyMapping]:
        for row in self.properties:
            if row.canonical_name == canonical_name:
                return row
        return None

    async def classify(self, ctx: MappingContext, asset: NativeAsset) -> Optional[CanonicalClassification]:
        """Return the classification for the asset, or None if the predicate fails."""
        if not await self.predicate.evaluate(ctx, asset):
            return None
        properties = await map_properties(ctx, asset, self.canonical_type, self.properties)
        logger.debug(
            f"Classified {asset.native_type} {asset.rid} as {self.canonical_type}",
            extra_fields={"asset_rid": asset.rid},
        )
        return CanonicalClassification(type_name=self.canonical_type, properties=properties)
