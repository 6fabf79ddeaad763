"""Canonical match predicates.

Canonical searches express string matches as quoted regular expressions.
Only four anchored forms are supported, each with a native equivalent:

    \\Qvalue\\E         exact        =
    \\Qvalue\\E.*       starts-with  like {0}%
    .*\\Qvalue\\E       ends-with    like %{0}
    .*\\Qvalue\\E.*     contains     like %{0}%

Unquoted literals without regex metacharacters are accepted with the same
anchoring. Any other pattern raises UnsupportedSearchPattern.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from core.errors import UnsupportedSearchPattern
from core.models.canonical import EnumValue
from core.models.native import NativeAsset
from core.search.conditions import Operator, SearchCondition


class MatchOperator(str, Enum):
    EXACT = "exact"
    STARTS_WITH = "starts-with"
    ENDS_WITH = "ends-with"
    CONTAINS = "contains"

    @property
    def native_operator(self) -> Operator:
        return _NATIVE_OPERATORS[self]


_NATIVE_OPERATORS = {
    MatchOperator.EXACT: Operator.EQUALS,
    MatchOperator.STARTS_WITH: Operator.STARTS_WITH,
    MatchOperator.ENDS_WITH: Operator.ENDS_WITH,
    MatchOperator.CONTAINS: Operator.CONTAINS,
}


class Combinator(str, Enum):
    """How multiple property matches combine."""
    ALL = "ALL"
    ANY = "ANY"

    @property
    def match_any(self) -> bool:
        return self is Combinator.ANY


_QUOTED_PATTERN = re.compile(r"^(\.\*)?\\Q(.*)\\E(\.\*)?$", re.DOTALL)
_WILDCARD = ".*"
_REGEX_METACHARACTERS = frozenset(".^$*+?{}[]\\|()")


def parse_operator(value: Union[str, MatchOperator]) -> MatchOperator:
    """Parse a match operator name, failing fast on anything unknown."""
    if isinstance(value, MatchOperator):
        return value
    try:
        return MatchOperator(str(value).strip().lower())
    except ValueError:
        raise UnsupportedSearchPattern(value) from None


def _operator_for(leading: bool, trailing: bool) -> MatchOperator:
    if leading and trailing:
        return MatchOperator.CONTAINS
    if leading:
        return MatchOperator.ENDS_WITH
    if trailing:
        return MatchOperator.STARTS_WITH
    return MatchOperator.EXACT


def _display(value: Any) -> Any:
    if isinstance(value, EnumValue):
        return value.symbolic_name
    if isinstance(value, NativeAsset):
        return value.name
    return value


@dataclass(frozen=True)
class PropertyMatch:
    """A requested value for one canonical property."""
    value: Any
    operator: MatchOperator = MatchOperator.EXACT

    @classmethod
    def from_pattern(cls, pattern: str) -> "PropertyMatch":
        """Classify a match regex into one of the four supported forms.

        Raises:
            UnsupportedSearchPattern: For any other regular expression
        """
        if not isinstance(pattern, str):
            raise UnsupportedSearchPattern(pattern)

        quoted = _QUOTED_PATTERN.match(pattern)
        if quoted:
            literal = quoted.group(2)
            if "\\E" in literal or "\\Q" in literal:
                raise UnsupportedSearchPattern(pattern)
            return cls(literal, _operator_for(bool(quoted.group(1)), bool(quoted.group(3))))

        core = pattern
        leading = core.startswith(_WILDCARD)
        if leading:
            core = core[len(_WILDCARD):]
        trailing = core.endswith(_WILDCARD) and len(core) >= len(_WILDCARD)
        if trailing:
            core = core[:-len(_WILDCARD)]
        if not core or any(ch in _REGEX_METACHARACTERS for ch in core):
            raise UnsupportedSearchPattern(pattern)
        return cls(core, _operator_for(leading, trailing))

    @classmethod
    def of(cls, value: Any, operator: Union[str, MatchOperator, None] = None) -> "PropertyMatch":
        """Build a match from a value and an optional operator name."""
        if operator is None:
            return cls(value)
        return cls(value, parse_operator(operator))

    def matches(self, candidate: Any) -> bool:
        """Evaluate the match in-process (used for literal values)."""
        candidate = _display(candidate)
        value = _display(self.value)
        if self.operator is MatchOperator.EXACT:
            return candidate == value
        if candidate is None or value is None:
            return False
        candidate, value = str(candidate), str(value)
        if self.operator is MatchOperator.STARTS_WITH:
            return candidate.startswith(value)
        if self.operator is MatchOperator.ENDS_WITH:
            return candidate.endswith(value)
        return value in candidate

    def condition(self, native_property: str) -> SearchCondition:
        """Build the native condition for this match on a native property.

        Raises:
            UnsupportedSearchPattern: For a non-exact match on a non-string value
        """
        value = _display(self.value)
        if self.operator is not MatchOperator.EXACT and not isinstance(value, str):
            raise UnsupportedSearchPattern(self.value)
        return SearchCondition(native_property, self.operator.native_operator, value)
