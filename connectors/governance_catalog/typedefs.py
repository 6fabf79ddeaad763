"""Canonical type definitions served for the governance catalog.

Only the types (and properties) the mappings in mappings.py produce are
declared here. Shared property groups are merged the same way the mapping
tables are concatenated.
"""

from core.models.canonical import EnumValue
from core.typedefs import PropertyKind, TypeCategory, TypeDef, TypeDefRegistry, merge_properties


S = PropertyKind.STRING

REFERENCEABLE = {
    "qualifiedName": S,
    "additionalProperties": PropertyKind.MAP,
}

ASSET = merge_properties(REFERENCEABLE, {
    "name": S,
    "description": S,
    "createTime": PropertyKind.DATE,
    "updateTime": PropertyKind.DATE,
})

SCHEMA_ELEMENT = merge_properties(REFERENCEABLE, {
    "displayName": S,
    "description": S,
})

DISCOVERED = EnumValue(ordinal=0, symbolic_name="Discovered", description="Assigned by data profiling")
PROPOSED = EnumValue(ordinal=1, symbolic_name="Proposed", description="Selected by a data steward")

UNIQUE = ("qualifiedName",)


def _entity(name, properties):
    return TypeDef(name, TypeCategory.ENTITY, properties, unique_properties=UNIQUE)


def _relationship(name, properties=None, enum_values=None):
    return TypeDef(name, TypeCategory.RELATIONSHIP, properties or {"description": S}, enum_values=enum_values or {})


ENTITY_TYPES = [
    _entity("Endpoint", merge_properties(ASSET, {"networkAddress": S, "protocol": S})),
    _entity("Database", merge_properties(ASSET, {
        "type": S,
        "version": S,
        "instance": S,
        "importedFrom": S,
    })),
    _entity("DeployedDatabaseSchema", ASSET),
    _entity("RelationalDBSchemaType", SCHEMA_ELEMENT),
    _entity("RelationalTable", merge_properties(SCHEMA_ELEMENT, {"isView": PropertyKind.BOOLEAN})),
    _entity("RelationalColumn", merge_properties(SCHEMA_ELEMENT, {
        "dataType": S,
        "position": PropertyKind.INT,
        "isNullable": PropertyKind.BOOLEAN,
        "length": PropertyKind.INT,
    })),
    _entity("Connection", merge_properties(ASSET, {"connectionString": S, "userId": S})),
    _entity("DataClass", merge_properties(ASSET, {"classCode": S, "dataType": S})),
    _entity("GlossaryCategory", merge_properties(REFERENCEABLE, {"displayName": S, "description": S})),
    _entity("GlossaryTerm", merge_properties(REFERENCEABLE, {
        "displayName": S,
        "summary": S,
        "description": S,
        "abbreviation": S,
        "examples": S,
        "usage": S,
    })),
    _entity("GovernancePolicy", merge_properties(REFERENCEABLE, {
        "title": S,
        "summary": S,
        "description": S,
        "domain": S,
        "scope": S,
        "priority": S,
        "implications": PropertyKind.ARRAY,
        "outcomes": PropertyKind.ARRAY,
        "results": PropertyKind.ARRAY,
    })),
]

RELATIONSHIP_TYPES = [
    _relationship("ConnectionEndpoint"),
    _relationship("DataContentForDataSet"),
    _relationship("ConnectionToAsset", {"assetSummary": S}),
    _relationship("AssetSchemaType"),
    _relationship("AttributeForSchema", {"position": PropertyKind.INT}),
    _relationship("NestedSchemaAttribute", {"position": PropertyKind.INT}),
    _relationship("CategoryHierarchyLink"),
    _relationship("TermCategorization"),
    _relationship(
        "DataClassAssignment",
        {
            "method": S,
            "status": PropertyKind.ENUM,
            "confidence": PropertyKind.INT,
            "threshold": PropertyKind.FLOAT,
            "partialMatch": PropertyKind.BOOLEAN,
            "valueFrequency": PropertyKind.LONG,
            "steward": S,
            "source": S,
        },
        enum_values={"status": (DISCOVERED, PROPOSED)},
    ),
]

CLASSIFICATION_TYPES = [
    TypeDef("SubjectArea", TypeCategory.CLASSIFICATION, {"name": S}),
]


def build_typedefs() -> TypeDefRegistry:
    return TypeDefRegistry(ENTITY_TYPES + RELATIONSHIP_TYPES + CLASSIFICATION_TYPES)
