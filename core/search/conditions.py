"""Native query model.

A NativeQuery targets one or more native types and carries a tree of
conditions. Dotted property paths ("parent_category.name") traverse
references on the native side.

Translating canonical predicates sometimes yields a filter that no native
row can satisfy (a status only another representation produces, an unknown
property). Such queries are not dropped: force_no_results() ANDs a condition
that is never true ("_id isNull") at the top level so the query returns zero
rows whatever else it contains.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple, Union


class Operator(str, Enum):
    """Native condition operators."""
    EQUALS = "="
    NOT_EQUALS = "<>"
    LESS_THAN = "<"
    LESS_OR_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_OR_EQUAL = ">="
    STARTS_WITH = "like {0}%"
    ENDS_WITH = "like %{0}"
    CONTAINS = "like %{0}%"
    IS_NULL = "isNull"
    IS_NOT_NULL = "isNotNull"


@dataclass(frozen=True)
class SearchCondition:
    """A single native condition: property, operator, value."""
    property: str
    operator: Operator
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"property": self.property, "operator": self.operator.value}
        if self.operator not in (Operator.IS_NULL, Operator.IS_NOT_NULL):
            data["value"] = self.value
        return data


@dataclass(frozen=True)
class ConditionSet:
    """Conditions combined with AND (match_any=False) or OR (match_any=True)."""
    items: Tuple[Union[SearchCondition, "ConditionSet"], ...] = ()
    match_any: bool = False

    @classmethod
    def all_of(cls, items: Iterable[Union[SearchCondition, "ConditionSet"]]) -> "ConditionSet":
        return cls(tuple(items), match_any=False)

    @classmethod
    def any_of(cls, items: Iterable[Union[SearchCondition, "ConditionSet"]]) -> "ConditionSet":
        return cls(tuple(items), match_any=True)

    def __len__(self) -> int:
        return len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operator": "or" if self.match_any else "and",
            "conditions": [item.to_dict() for item in self.items],
        }


NO_RESULTS = SearchCondition("_id", Operator.IS_NULL)


class Outcome(Enum):
    """Criteria that resolve without a native condition."""
    ALWAYS = "ALWAYS"  # every row satisfies the criterion
    NEVER = "NEVER"    # no row can satisfy the criterion


Criterion = Union[SearchCondition, ConditionSet, Outcome]


def combine(criteria: Iterable[Criterion], match_any: bool) -> Union[ConditionSet, Outcome]:
    """Combine per-property criteria under ALL (AND) or ANY (OR) semantics.

    ALL: a single NEVER makes the whole combination NEVER, ALWAYS terms drop out.
    ANY: a single ALWAYS makes the whole combination ALWAYS, NEVER terms drop
    out, and nothing left means NEVER.
    """
    criteria = list(criteria)
    if not criteria:
        return Outcome.ALWAYS

    if match_any:
        if any(c is Outcome.ALWAYS for c in criteria):
            return Outcome.ALWAYS
        conditions = [c for c in criteria if c is not Outcome.NEVER]
        if not conditions:
            return Outcome.NEVER
        return ConditionSet.any_of(conditions)

    if any(c is Outcome.NEVER for c in criteria):
        return Outcome.NEVER
    conditions = [c for c in criteria if c is not Outcome.ALWAYS]
    if not conditions:
        return Outcome.ALWAYS
    return ConditionSet.all_of(conditions)


@dataclass(frozen=True)
class NativeQuery:
    """A query against the native catalog.

    prefix and representation are routing metadata for the caller mapping the
    results back; they are not sent to the catalog.
    """
    native_types: Tuple[str, ...]
    conditions: ConditionSet = field(default_factory=ConditionSet)
    properties: Tuple[str, ...] = ()
    prefix: Optional[str] = None
    representation: Optional[str] = None

    @property
    def forces_no_results(self) -> bool:
        return not self.conditions.match_any and NO_RESULTS in self.conditions.items

    def force_no_results(self) -> "NativeQuery":
        if self.forces_no_results:
            return self
        items: Tuple[Union[SearchCondition, ConditionSet], ...] = (NO_RESULTS,)
        if len(self.conditions):
            items += (self.conditions,)
        return replace(self, conditions=ConditionSet(items, match_any=False))

    def narrowed(self, criterion: Criterion) -> "NativeQuery":
        """AND a criterion into this query."""
        if criterion is Outcome.ALWAYS:
            return self
        if criterion is Outcome.NEVER:
            return self.force_no_results()
        if not len(self.conditions):
            if isinstance(criterion, ConditionSet):
                return replace(self, conditions=criterion)
            return replace(self, conditions=ConditionSet((criterion,)))
        return replace(self, conditions=ConditionSet((self.conditions, criterion)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "types": list(self.native_types),
            "properties": list(self.properties),
            "conditions": self.conditions.to_dict(),
            "prefix": self.prefix,
            "representation": self.representation,
        }
