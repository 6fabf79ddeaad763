"""Mapping framework - native assets to canonical entities and back.

Mappers are declarative: property tables plus attached relationship and
classification mappers, collected in an immutable MapperRegistry. Searches
are translated into native queries by SearchCriteriaTranslator.
"""

from core.mapping.classifications import AncestorMarkerPredicate, ClassificationMapper, ClassificationPredicate
from core.mapping.context import MappingContext
from core.mapping.entities import EntityMapper
from core.mapping.properties import (
    MappingKind,
    PropertyMapping,
    complex_property,
    concat,
    literal,
    map_properties,
    simple,
)
from core.mapping.qualified_names import QualifiedNameBuilder
from core.mapping.registry import MapperRegistry
from core.mapping.relationships import (
    SELF,
    DirectRepresentation,
    Endpoint,
    LinkObjectRepresentation,
    RelationshipMapper,
    Representation,
    Side,
)
from core.mapping.repository import CatalogRepository, MappingBatch, SkippedAsset
from core.mapping.translator import SearchCriteriaTranslator, normalize_matches

__all__ = [
    "AncestorMarkerPredicate",
    "ClassificationMapper",
    "ClassificationPredicate",
    "MappingContext",
    "EntityMapper",
    "MappingKind",
    "PropertyMapping",
    "complex_property",
    "concat",
    "literal",
    "map_properties",
    "simple",
    "QualifiedNameBuilder",
    "MapperRegistry",
    "SELF",
    "DirectRepresentation",
    "Endpoint",
    "LinkObjectRepresentation",
    "RelationshipMapper",
    "Representation",
    "Side",
    "CatalogRepository",
    "MappingBatch",
    "SkippedAsset",
    "SearchCriteriaTranslator",
    "normalize_matches",
]
