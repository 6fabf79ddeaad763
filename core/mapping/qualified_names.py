"""Qualified names built from ancestor traversal.

A qualified name lists the asset and its containers from the root down, each
as "(native_type)=name", joined by "::":

    (host)=INFOSVR::(database)=COMPDIR::(database_schema)=DB2INST1

Entities generated under a prefix prepend it:

    gen!RDBST@(host)=INFOSVR::(database)=COMPDIR::(database_schema)=DB2INST1
"""

import re
from typing import List, Mapping, Optional, Tuple

from core.models.native import NativeAsset
from core.mapping.context import MappingContext
from core.mapping.properties import PropertyMapping, complex_property
from core.search.conditions import ConditionSet, Criterion, Operator, Outcome, SearchCondition
from core.search.matching import MatchOperator, PropertyMatch


QUALIFIED_NAME = "qualifiedName"
SEGMENT_SEPARATOR = "::"

_SEGMENT = re.compile(r"^\((?P<type>[^)]+)\)=(?P<name>.*)$", re.DOTALL)


class QualifiedNameBuilder:
    """Builds and parses qualified names along per-type parent properties.

    Args:
        parents: native type -> property referencing its container
        max_depth: hard stop for cyclic or very deep hierarchies
    """

    def __init__(self, parents: Mapping[str, str], max_depth: int = 32):
        self.parents = dict(parents)
        self.max_depth = max_depth

    async def build(self, ctx: MappingContext, asset: NativeAsset) -> str:
        segments: List[str] = []
        seen = set()
        current: Optional[NativeAsset] = asset
        while current is not None and current.rid not in seen and len(segments) < self.max_depth:
            seen.add(current.rid)
            name = await ctx.get_name(current)
            segments.append(f"({current.native_type})={name}")
            parent_property = self.parents.get(current.native_type)
            if not parent_property:
                break
            current = await ctx.get_reference(current, parent_property)
        return SEGMENT_SEPARATOR.join(reversed(segments))

    def parse(self, qualified_name: str) -> Optional[List[Tuple[str, str]]]:
        """Split a qualified name into (native_type, name) pairs, root first."""
        pairs = []
        for segment in qualified_name.split(SEGMENT_SEPARATOR):
            matched = _SEGMENT.match(segment)
            if not matched:
                return None
            pairs.append((matched.group("type"), matched.group("name")))
        return pairs

    def criterion(self, native_type: str, match: PropertyMatch, prefix: Optional[str] = None) -> Criterion:
        """Translate an exact qualified-name match into per-ancestor name conditions.

        Other operators cannot be decomposed along the hierarchy and match nothing.
        """
        if match.operator is not MatchOperator.EXACT or not isinstance(match.value, str):
            return Outcome.NEVER

        value = match.value
        if prefix:
            if not value.startswith(prefix):
                return Outcome.NEVER
            value = value[len(prefix):]

        pairs = self.parse(value)
        if not pairs or pairs[-1][0] != native_type:
            return Outcome.NEVER

        conditions = []
        path: List[str] = []
        ordered = list(reversed(pairs))
        for index, (segment_type, name) in enumerate(ordered):
            conditions.append(SearchCondition(".".join(path + ["name"]), Operator.EQUALS, name))
            parent_property = self.parents.get(segment_type)
            is_root = index == len(ordered) - 1
            if parent_property is None:
                if not is_root:
                    return Outcome.NEVER
                break
            path = path + [parent_property]
            if is_root:
                # The topmost named asset must have no container of its own.
                conditions.append(SearchCondition(".".join(path), Operator.IS_NULL))
        return ConditionSet.all_of(conditions)

    def property(self, native_type: str, prefix: Optional[str] = None) -> PropertyMapping:
        """Complex qualifiedName row for mappers of the given native type."""
        async def compute(ctx: MappingContext, asset: NativeAsset) -> str:
            return (prefix or "") + await self.build(ctx, asset)

        def search(match: PropertyMatch) -> Criterion:
            return self.criterion(native_type, match, prefix)

        return complex_property(QUALIFIED_NAME, compute, search)
