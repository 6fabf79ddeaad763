"""Native query model and canonical match predicates."""

from core.search.conditions import (
    NO_RESULTS,
    ConditionSet,
    Criterion,
    NativeQuery,
    Operator,
    Outcome,
    SearchCondition,
    combine,
)

from core.search.matching import (
    Combinator,
    MatchOperator,
    PropertyMatch,
    parse_operator,
)

__all__ = [
    "NO_RESULTS",
    "ConditionSet",
    "Criterion",
    "NativeQuery",
    "Operator",
    "Outcome",
    "SearchCondition",
    "combine",
    "Combinator",
    "MatchOperator",
    "PropertyMatch",
    "parse_operator",
]
