"""Declarative property-mapping tables.

Each entity, relationship or classification mapper carries a tuple of
PropertyMapping rows:

- simple: copy one native property into one canonical property, coerced to
  the canonical kind
- literal: set a canonical property to a constant
- complex: compute the value with a coroutine (ancestor traversal, values
  sourced from another asset) and optionally translate searches on it

Shared properties are reused by concatenating tables with concat().
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple, TYPE_CHECKING

from core.errors import UnsupportedSearchPattern
from core.models.native import NativeAsset
from core.observability.logging import get_logger
from core.search.conditions import Criterion, Outcome
from core.search.matching import PropertyMatch

if TYPE_CHECKING:
    from core.mapping.context import MappingContext


logger = get_logger(__name__)

ComplexValueFn = Callable[["MappingContext", NativeAsset], Awaitable[Any]]
ComplexSearchFn = Callable[[PropertyMatch], Criterion]


class MappingKind(str, Enum):
    SIMPLE = "simple"
    LITERAL = "literal"
    COMPLEX = "complex"


@dataclass(frozen=True)
class PropertyMapping:
    """One row of a property-mapping table."""
    canonical_name: str
    kind: MappingKind
    native_name: Optional[str] = None
    literal: Any = None
    compute: Optional[ComplexValueFn] = None
    search: Optional[ComplexSearchFn] = None

    def criterion(self, match: PropertyMatch) -> Criterion:
        """Translate a requested match on this property into a native criterion."""
        if self.kind is MappingKind.SIMPLE:
            return match.condition(self.native_name)
        if self.kind is MappingKind.LITERAL:
            return Outcome.ALWAYS if match.matches(self.literal) else Outcome.NEVER
        if self.search is None:
            return Outcome.NEVER
        return self.search(match)


def simple(native_name: str, canonical_name: Optional[str] = None) -> PropertyMapping:
    return PropertyMapping(canonical_name or native_name, MappingKind.SIMPLE, native_name=native_name)


def literal(canonical_name: str, value: Any = None) -> PropertyMapping:
    return PropertyMapping(canonical_name, MappingKind.LITERAL, literal=value)


def complex_property(
    canonical_name: str,
    compute: ComplexValueFn,
    search: Optional[ComplexSearchFn] = None,
    native_name: Optional[str] = None,
) -> PropertyMapping:
    return PropertyMapping(
        canonical_name, MappingKind.COMPLEX, native_name=native_name, compute=compute, search=search,
    )


def concat(*tables: Iterable[PropertyMapping]) -> Tuple[PropertyMapping, ...]:
    """Concatenate tables; a later row replaces an earlier one of the same name."""
    rows: Dict[str, PropertyMapping] = {}
    for table in tables:
        for row in table:
            rows.pop(row.canonical_name, None)
            rows[row.canonical_name] = row
    return tuple(rows.values())


def native_names(table: Iterable[PropertyMapping]) -> Tuple[str, ...]:
    """Native properties read by the simple rows of a table."""
    return tuple(row.native_name for row in table if row.kind is MappingKind.SIMPLE)


async def map_properties(
    ctx: "MappingContext",
    asset: NativeAsset,
    canonical_type: str,
    table: Iterable[PropertyMapping],
) -> Dict[str, Any]:
    """Apply a property table to an asset.

    A missing or uncoercible native value, or a complex row that cannot
    compute from the native values it reads, leaves the canonical property
    unset; the rest of the table is still applied. Catalog failures propagate.
    """
    properties: Dict[str, Any] = {}
    for row in table:
        try:
            if row.kind is MappingKind.SIMPLE:
                raw = await ctx.get_property(asset, row.native_name)
            elif row.kind is MappingKind.LITERAL:
                raw = row.literal
            else:
                raw = await row.compute(ctx, asset)
            if raw is None:
                continue
            properties[row.canonical_name] = ctx.typedefs.coerce(canonical_type, row.canonical_name, raw)
        except (KeyError, ValueError, TypeError) as e:
            logger.debug(
                f"Leaving {canonical_type}.{row.canonical_name} unset: {e}",
                extra_fields={"asset_rid": asset.rid},
            )
    return properties


def criterion_or_never(row: PropertyMapping, match: PropertyMatch) -> Criterion:
    """Like PropertyMapping.criterion but non-string operators on non-string values become NEVER.

    Malformed operator names are rejected earlier, when the PropertyMatch is built.
    """
    try:
        return row.criterion(match)
    except UnsupportedSearchPattern:
        return Outcome.NEVER
