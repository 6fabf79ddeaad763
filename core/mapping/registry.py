"""Mapper registry.

Built once at process start from a list of EntityMappers and the bridge
configuration, then read-only. Lookups are always by (native type, prefix):
several canonical entities may be generated from one native asset.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Tuple

from core.config import BridgeConfig
from core.errors import UnsupportedType
from core.identity import CollectionGuidGenerator, GuidGenerator, validate_prefix
from core.mapping.classifications import ClassificationMapper
from core.mapping.entities import EntityMapper
from core.mapping.relationships import LinkObjectRepresentation, RelationshipMapper
from core.typedefs import TypeCategory, TypeDefRegistry


class MapperRegistry:
    """Immutable lookup from native coordinates to mappers."""

    __slots__ = (
        "config",
        "typedefs",
        "guids",
        "_by_key",
        "_by_native",
        "_by_canonical",
        "_relationships",
        "_classifications",
    )

    def __init__(
        self,
        config: BridgeConfig,
        typedefs: TypeDefRegistry,
        entity_mappers: Iterable[EntityMapper],
        guids: Optional[GuidGenerator] = None,
    ):
        """Index the mappers.

        Raises:
            ValueError: On duplicate (native type, prefix) keys, malformed
                prefixes, canonical types missing from the typedefs, or two
                different relationship mappers declaring the same type
        """
        object.__setattr__(self, "config", config)
        object.__setattr__(self, "typedefs", typedefs)
        object.__setattr__(self, "guids", guids or CollectionGuidGenerator(config.metadata_collection_id))

        by_key: Dict[Tuple[str, Optional[str]], EntityMapper] = {}
        by_native: Dict[str, List[EntityMapper]] = {}
        by_canonical: Dict[str, List[EntityMapper]] = {}
        relationships: Dict[str, RelationshipMapper] = {}
        classifications: Dict[str, List[Tuple[EntityMapper, ClassificationMapper]]] = {}

        for mapper in entity_mappers:
            validate_prefix(mapper.prefix)
            if mapper.key in by_key:
                raise ValueError(f"Duplicate mapper for {mapper.key}")
            self._check_type(mapper.canonical_type, TypeCategory.ENTITY)
            by_key[mapper.key] = mapper
            by_native.setdefault(mapper.native_type, []).append(mapper)
            by_canonical.setdefault(mapper.canonical_type, []).append(mapper)

            for relationship in mapper.relationships:
                self._check_type(relationship.canonical_type, TypeCategory.RELATIONSHIP)
                existing = relationships.setdefault(relationship.canonical_type, relationship)
                if existing is not relationship:
                    raise ValueError(f"Conflicting relationship mappers for {relationship.canonical_type}")

            for classification in mapper.classifications:
                self._check_type(classification.canonical_type, TypeCategory.CLASSIFICATION)
                classifications.setdefault(classification.canonical_type, []).append((mapper, classification))

        object.__setattr__(self, "_by_key", MappingProxyType(by_key))
        object.__setattr__(self, "_by_native", MappingProxyType({k: tuple(v) for k, v in by_native.items()}))
        object.__setattr__(self, "_by_canonical", MappingProxyType({k: tuple(v) for k, v in by_canonical.items()}))
        object.__setattr__(self, "_relationships", MappingProxyType(relationships))
        object.__setattr__(
            self, "_classifications", MappingProxyType({k: tuple(v) for k, v in classifications.items()})
        )

    def __setattr__(self, name, value):
        raise AttributeError("MapperRegistry is immutable")

    def _check_type(self, type_name: str, category: TypeCategory) -> None:
        if type_name not in self.typedefs or self.typedefs.get(type_name).category != category:
            raise ValueError(f"{type_name} is not a known {category.value.lower()} type")

    # =========================================================================
    # Lookups
    # =========================================================================

    def get(self, native_type: str, prefix: Optional[str] = None) -> EntityMapper:
        """Mapper for a native type under a prefix.

        Raises:
            UnsupportedType: If nothing is registered for the pair
        """
        mapper = self._by_key.get((native_type, prefix or None))
        if mapper is None:
            raise UnsupportedType(native_type, prefix)
        return mapper

    def for_native_type(self, native_type: str) -> Tuple[EntityMapper, ...]:
        """Every mapper (any prefix) reading the native type."""
        return self._by_native.get(native_type, ())

    def for_canonical_type(self, canonical_type: str) -> Tuple[EntityMapper, ...]:
        return self._by_canonical.get(canonical_type, ())

    def relationship_mapper(self, canonical_type: str) -> RelationshipMapper:
        """Mapper for a relationship type.

        Raises:
            UnsupportedType: If no entity mapper declares the relationship
        """
        mapper = self._relationships.get(canonical_type)
        if mapper is None:
            raise UnsupportedType(canonical_type)
        return mapper

    def classification_targets(self, canonical_type: str) -> Tuple[Tuple[EntityMapper, ClassificationMapper], ...]:
        """(entity mapper, classification mapper) pairs for a classification type."""
        return self._classifications.get(canonical_type, ())

    @property
    def entity_mappers(self) -> Tuple[EntityMapper, ...]:
        return tuple(self._by_key.values())

    @property
    def native_types(self) -> Tuple[str, ...]:
        return tuple(self._by_native.keys())

    @property
    def relationship_types(self) -> Tuple[str, ...]:
        return tuple(self._relationships.keys())

    @property
    def link_representations(self) -> Tuple[Tuple[RelationshipMapper, LinkObjectRepresentation], ...]:
        """Every (relationship mapper, carrier representation) pair."""
        return tuple(
            (mapper, representation)
            for mapper in self._relationships.values()
            for representation in mapper.representations
            if isinstance(representation, LinkObjectRepresentation)
        )
