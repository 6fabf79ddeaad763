"""Governance Catalog Mappings.

Declarative mappers from the governance catalog's native asset types to the
canonical metadata types.
"""

from connectors.governance_catalog.mappings import (
    PARENTS,
    SCHEMA_TYPE_PREFIX,
    build_entity_mappers,
    build_registry,
    build_relationships,
    qualified_names,
)
from connectors.governance_catalog.typedefs import build_typedefs

__all__ = [
    "PARENTS",
    "SCHEMA_TYPE_PREFIX",
    "build_entity_mappers",
    "build_registry",
    "build_relationships",
    "qualified_names",
    "build_typedefs",
]
