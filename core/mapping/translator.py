"""Search criteria translation.

Turns canonical search predicates (property matches under ALL/ANY, free
text, classification matches) into native queries, one per native type or
per native representation that can hold matching instances.

Rules:
- a property stored directly on one native type becomes one condition
- a relationship type backed by several representations yields one query
  per representation, each filtered on its own
- a property name the mapper does not know forces the query to zero rows
- a representation unable to satisfy the filter is forced to zero rows
- a malformed match pattern raises UnsupportedSearchPattern before any query
"""

from typing import Any, Dict, List, Mapping, Optional

from core.errors import UnsupportedType
from core.mapping.entities import EntityMapper
from core.mapping.properties import criterion_or_never
from core.mapping.registry import MapperRegistry
from core.mapping.relationships import Representation, RelationshipMapper
from core.models.canonical import EnumValue
from core.observability.logging import get_logger
from core.observability.metrics import get_metrics
from core.search.conditions import ConditionSet, Criterion, NativeQuery, Outcome, combine
from core.search.matching import Combinator, PropertyMatch


logger = get_logger(__name__)


def normalize_matches(match: Optional[Mapping[str, Any]]) -> Dict[str, PropertyMatch]:
    """Normalize requested values into PropertyMatch objects.

    Strings are treated as match patterns; other values match exactly.

    Raises:
        UnsupportedSearchPattern: If a string is not one of the four supported forms
    """
    normalized: Dict[str, PropertyMatch] = {}
    for name, value in (match or {}).items():
        if isinstance(value, PropertyMatch):
            normalized[name] = value
        elif isinstance(value, str):
            normalized[name] = PropertyMatch.from_pattern(value)
        else:
            normalized[name] = PropertyMatch(value)
    return normalized


class SearchCriteriaTranslator:
    """Translates canonical search predicates using a mapper registry."""

    def __init__(self, registry: MapperRegistry):
        self.registry = registry

    def _issued(self, query: NativeQuery) -> NativeQuery:
        get_metrics().record_query(forced_empty=query.forces_no_results)
        if query.forces_no_results:
            logger.debug(
                f"Query on {','.join(query.native_types)} forced to zero rows",
                extra_fields={"representation": query.representation},
            )
        return query

    # =========================================================================
    # Entities
    # =========================================================================

    def entity_queries(
        self,
        canonical_type: str,
        match: Optional[Mapping[str, Any]] = None,
        combinator: Combinator = Combinator.ALL,
    ) -> List[NativeQuery]:
        """Queries for entities of a canonical type matching property values.

        Raises:
            UnsupportedType: If no mapper produces the canonical type
            UnsupportedSearchPattern: If a match pattern is malformed
        """
        mappers = self.registry.for_canonical_type(canonical_type)
        if not mappers:
            raise UnsupportedType(canonical_type)
        matches = normalize_matches(match)
        return [self._issued(self.entity_query(mapper, matches, Combinator(combinator))) for mapper in mappers]

    def entity_query(
        self,
        mapper: EntityMapper,
        matches: Mapping[str, PropertyMatch],
        combinator: Combinator = Combinator.ALL,
    ) -> NativeQuery:
        query = mapper.base_query()
        if any(mapper.row(name) is None for name in matches):
            return query.force_no_results()
        criteria = [criterion_or_never(mapper.row(name), m) for name, m in matches.items()]
        return query.narrowed(combine(criteria, combinator.match_any))

    def entity_text_queries(self, text: str, canonical_type: Optional[str] = None) -> List[NativeQuery]:
        """Queries for entities having any string property matching the text pattern."""
        match = PropertyMatch.from_pattern(text)
        if canonical_type:
            mappers = self.registry.for_canonical_type(canonical_type)
            if not mappers:
                raise UnsupportedType(canonical_type)
        else:
            mappers = self.registry.entity_mappers

        queries = []
        for mapper in mappers:
            typedef = self.registry.typedefs.get(mapper.canonical_type)
            rows = [mapper.row(name) for name in typedef.string_properties() if mapper.row(name)]
            criterion = combine([criterion_or_never(row, match) for row in rows], True) if rows else Outcome.NEVER
            queries.append(self._issued(mapper.base_query().narrowed(criterion)))
        return queries

    # =========================================================================
    # Relationships
    # =========================================================================

    def relationship_queries(
        self,
        canonical_type: str,
        match: Optional[Mapping[str, Any]] = None,
        combinator: Combinator = Combinator.ALL,
    ) -> List[NativeQuery]:
        """One query per native representation of the relationship type.

        Raises:
            UnsupportedType: If the relationship type is not mapped
        """
        mapper = self.registry.relationship_mapper(canonical_type)
        matches = normalize_matches(match)
        combinator = Combinator(combinator)
        unknown = [name for name in matches if name not in mapper.mapped_properties()]

        queries = []
        for representation in mapper.representations:
            query = representation.base_query(mapper)
            if unknown:
                query = query.force_no_results()
            else:
                criteria = [
                    self._relationship_criterion(mapper, representation, name, m)
                    for name, m in matches.items()
                ]
                query = query.narrowed(combine(criteria, combinator.match_any))
            queries.append(self._issued(query))
        return queries

    def relationship_text_queries(self, canonical_type: str, text: str) -> List[NativeQuery]:
        """One query per representation, matching any string property or the status."""
        mapper = self.registry.relationship_mapper(canonical_type)
        match = PropertyMatch.from_pattern(text)
        typedef = self.registry.typedefs.get(canonical_type)
        names = list(typedef.string_properties())
        if mapper.status_property:
            names.append(mapper.status_property)

        queries = []
        for representation in mapper.representations:
            criteria = [
                self._relationship_criterion(mapper, representation, name, match)
                for name in names
                if name == mapper.status_property or mapper.literal_row(name) or representation.row(name)
            ]
            criterion = combine(criteria, True) if criteria else Outcome.NEVER
            queries.append(self._issued(representation.base_query(mapper).narrowed(criterion)))
        return queries

    def _relationship_criterion(
        self,
        mapper: RelationshipMapper,
        representation: Representation,
        name: str,
        match: PropertyMatch,
    ) -> Criterion:
        if name == mapper.status_property:
            if representation.status is None:
                return Outcome.NEVER
            status = self.registry.typedefs.get(mapper.canonical_type).enum_value(name, representation.status)
            candidate = status if isinstance(status, EnumValue) else representation.status
            return Outcome.ALWAYS if match.matches(candidate) else Outcome.NEVER

        row = mapper.literal_row(name) or representation.row(name)
        if row is None:
            return Outcome.NEVER
        return criterion_or_never(row, match)

    # =========================================================================
    # Classifications
    # =========================================================================

    def classification_queries(
        self,
        classification_type: str,
        match: Optional[Mapping[str, Any]] = None,
        combinator: Combinator = Combinator.ALL,
        entity_type: Optional[str] = None,
    ) -> List[NativeQuery]:
        """Queries for entities carrying a classification.

        Without match properties the classification's existence predicate
        alone is used; otherwise it is ANDed with the combined matches.
        """
        targets = self.registry.classification_targets(classification_type)
        if not targets:
            raise UnsupportedType(classification_type)
        matches = normalize_matches(match)
        combinator = Combinator(combinator)

        queries = []
        for entity_mapper, classification_mapper in targets:
            if entity_type and entity_mapper.canonical_type != entity_type:
                continue
            existence = classification_mapper.predicate.existence()
            if not matches:
                criterion = existence
            elif any(classification_mapper.row(name) is None for name in matches):
                criterion = Outcome.NEVER
            else:
                combined = combine(
                    [criterion_or_never(classification_mapper.row(name), m) for name, m in matches.items()],
                    combinator.match_any,
                )
                if combined is Outcome.NEVER:
                    criterion = Outcome.NEVER
                elif combined is Outcome.ALWAYS:
                    criterion = existence
                else:
                    criterion = ConditionSet.all_of([existence, combined])
            queries.append(self._issued(entity_mapper.base_query().narrowed(criterion)))
        return queries
