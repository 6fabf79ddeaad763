"""Mapping definitions for the governance catalog's native types.

build_registry() assembles every entity, relationship and classification
mapper into one immutable MapperRegistry. Relationship mappers are created
once and shared by the entity mappers of both of their ends.

Native type           Canonical type
-------------------   -------------------------------------------------
host                  Endpoint
database              Database
database_schema       DeployedDatabaseSchema
database_schema       RelationalDBSchemaType (virtual, prefix gen!RDBST@)
database_table        RelationalTable
database_column       RelationalColumn
data_connection       Connection
data_class            DataClass
category              GlossaryCategory (+ SubjectArea classification)
term                  GlossaryTerm
information_gov...    GovernancePolicy
"""

from typing import Optional

from connectors.governance_catalog.typedefs import build_typedefs
from core.config import BridgeConfig
from core.mapping.classifications import AncestorMarkerPredicate, ClassificationMapper
from core.mapping.context import MappingContext
from core.mapping.entities import EntityMapper
from core.mapping.properties import complex_property, concat, literal, simple
from core.mapping.qualified_names import QualifiedNameBuilder
from core.mapping.registry import MapperRegistry
from core.mapping.relationships import (
    SELF,
    DirectRepresentation,
    Endpoint,
    LinkObjectRepresentation,
    RelationshipMapper,
    Side,
)
from core.models.native import NativeAsset
from core.search.conditions import Criterion, Operator, Outcome, SearchCondition
from core.search.matching import MatchOperator, PropertyMatch


SCHEMA_TYPE_PREFIX = "gen!RDBST@"

# Minimum catalog version exposing value_frequency on classification links
VALUE_FREQUENCY_VERSION = "11.7.0.2"

PARENTS = {
    "database": "host",
    "database_schema": "database",
    "database_table": "database_schema",
    "database_column": "database_table",
    "data_connection": "host",
    "category": "parent_category",
    "term": "parent_category",
    "information_governance_policy": "parent_policy",
}

qualified_names = QualifiedNameBuilder(PARENTS)


# =============================================================================
# Shared Property Tables
# =============================================================================

def referenceable(native_type: str, prefix: Optional[str] = None):
    return (qualified_names.property(native_type, prefix),)


def asset_properties(native_type: str):
    return concat(referenceable(native_type), (
        simple("name"),
        simple("short_description", "description"),
        simple("created_on", "createTime"),
        simple("modified_on", "updateTime"),
    ))


def schema_element_properties(native_type: str, prefix: Optional[str] = None):
    return concat(referenceable(native_type, prefix), (
        simple("name", "displayName"),
        simple("short_description", "description"),
    ))


async def _parent_policy_name(ctx: MappingContext, asset: NativeAsset) -> Optional[str]:
    parent = await ctx.get_reference(asset, "parent_policy")
    if parent is None:
        return None
    return await ctx.get_name(parent)


def _parent_policy_search(match: PropertyMatch) -> Criterion:
    return match.condition("parent_policy.name")


async def _partial_match(ctx: MappingContext, carrier: NativeAsset) -> Optional[bool]:
    confidence = await ctx.get_property(carrier, "confidencePercent")
    if confidence is None:
        return None
    return int(confidence) < 100


def _partial_match_search(match: PropertyMatch) -> Criterion:
    if match.operator is not MatchOperator.EXACT:
        return Outcome.NEVER
    value = match.value
    if isinstance(value, str):
        value = value.strip().lower() == "true"
    if value:
        return SearchCondition("confidencePercent", Operator.LESS_THAN, 100)
    return SearchCondition("confidencePercent", Operator.GREATER_OR_EQUAL, 100)


# =============================================================================
# Relationship Mappers
# =============================================================================

def build_relationships(config: BridgeConfig):
    """Create the relationship mappers, keyed by canonical type."""
    discovered_properties = [
        simple("confidencePercent", "confidence"),
        complex_property("partialMatch", _partial_match, _partial_match_search, native_name="confidencePercent"),
        simple("threshold"),
    ]
    if config.supports_version(VALUE_FREQUENCY_VERSION):
        discovered_properties.append(simple("value_frequency", "valueFrequency"))

    relationships = [
        RelationshipMapper(
            "ConnectionEndpoint",
            one=Endpoint(("host",)),
            two=Endpoint(("data_connection",)),
            representations=(DirectRepresentation(one_to_two="data_connections", two_to_one="host"),),
        ),
        RelationshipMapper(
            "DataContentForDataSet",
            one=Endpoint(("database",)),
            two=Endpoint(("database_schema",)),
            representations=(DirectRepresentation(one_to_two="database_schemas", two_to_one="database"),),
        ),
        RelationshipMapper(
            "ConnectionToAsset",
            one=Endpoint(("data_connection",)),
            two=Endpoint(("database",)),
            representations=(DirectRepresentation(
                one_to_two="imports_database",
                reverse_search_types=("data_connection",),
            ),),
            literals=(literal("assetSummary"),),
        ),
        RelationshipMapper(
            "AssetSchemaType",
            one=Endpoint(("database_schema",)),
            two=Endpoint(("database_schema",), SCHEMA_TYPE_PREFIX),
            representations=(DirectRepresentation(one_to_two=SELF, two_to_one=SELF),),
        ),
        RelationshipMapper(
            "AttributeForSchema",
            one=Endpoint(("database_schema",), SCHEMA_TYPE_PREFIX),
            two=Endpoint(("database_table",)),
            representations=(DirectRepresentation(one_to_two="database_tables", two_to_one="database_schema"),),
        ),
        RelationshipMapper(
            "NestedSchemaAttribute",
            one=Endpoint(("database_table",)),
            two=Endpoint(("database_column",)),
            representations=(DirectRepresentation(one_to_two="database_columns", two_to_one="database_table"),),
        ),
        RelationshipMapper(
            "CategoryHierarchyLink",
            one=Endpoint(("category",)),
            two=Endpoint(("category",)),
            representations=(DirectRepresentation(one_to_two="subcategories", two_to_one="parent_category"),),
        ),
        RelationshipMapper(
            "TermCategorization",
            one=Endpoint(("category",)),
            two=Endpoint(("term",)),
            representations=(DirectRepresentation(one_to_two="terms", two_to_one="parent_category"),),
        ),
        RelationshipMapper(
            "DataClassAssignment",
            one=Endpoint(("database_column",)),
            two=Endpoint(("data_class",)),
            representations=(
                DirectRepresentation(
                    one_to_two="selected_classification",
                    two_to_one="classifications_selected",
                    search_from=Side.TWO,
                    name="selected",
                    status="Proposed",
                ),
                LinkObjectRepresentation(
                    link_type="classification",
                    one_property="classifies_asset",
                    two_property="data_class",
                    name="classification",
                    status="Discovered",
                    properties=tuple(discovered_properties),
                ),
            ),
            literals=(literal("method"), literal("steward"), literal("source")),
            status_property="status",
        ),
    ]
    return {mapper.canonical_type: mapper for mapper in relationships}


# =============================================================================
# Registry
# =============================================================================

def build_entity_mappers(config: BridgeConfig):
    rel = build_relationships(config)

    subject_area = ClassificationMapper(
        "SubjectArea",
        AncestorMarkerPredicate("parent_category", config.subject_area_marker, config.classification_max_hops),
        properties=(simple("name"),),
    )

    return [
        EntityMapper(
            "host", "Endpoint",
            properties=concat(asset_properties("host"), (
                simple("ip_address", "networkAddress"),
                literal("protocol"),
            )),
            relationships=(rel["ConnectionEndpoint"],),
        ),
        EntityMapper(
            "database", "Database",
            properties=concat(asset_properties("database"), (
                simple("dbms", "type"),
                simple("dbms_version", "version"),
                simple("dbms_server_instance", "instance"),
                simple("imported_from", "importedFrom"),
            )),
            relationships=(rel["DataContentForDataSet"], rel["ConnectionToAsset"]),
        ),
        EntityMapper(
            "database_schema", "DeployedDatabaseSchema",
            properties=asset_properties("database_schema"),
            relationships=(rel["DataContentForDataSet"], rel["AssetSchemaType"]),
        ),
        EntityMapper(
            "database_schema", "RelationalDBSchemaType",
            properties=schema_element_properties("database_schema", SCHEMA_TYPE_PREFIX),
            prefix=SCHEMA_TYPE_PREFIX,
            relationships=(rel["AssetSchemaType"], rel["AttributeForSchema"]),
        ),
        EntityMapper(
            "database_table", "RelationalTable",
            properties=concat(schema_element_properties("database_table"), (
                literal("isView", False),
            )),
            relationships=(rel["AttributeForSchema"], rel["NestedSchemaAttribute"]),
        ),
        EntityMapper(
            "database_column", "RelationalColumn",
            properties=concat(schema_element_properties("database_column"), (
                simple("data_type", "dataType"),
                simple("position"),
                simple("allows_null_values", "isNullable"),
                simple("length"),
            )),
            relationships=(rel["NestedSchemaAttribute"], rel["DataClassAssignment"]),
        ),
        EntityMapper(
            "data_connection", "Connection",
            properties=concat(asset_properties("data_connection"), (
                simple("connection_string", "connectionString"),
                simple("username", "userId"),
            )),
            relationships=(rel["ConnectionEndpoint"], rel["ConnectionToAsset"]),
        ),
        EntityMapper(
            "data_class", "DataClass",
            properties=concat(asset_properties("data_class"), (
                simple("class_code", "classCode"),
                simple("data_type_filter_elements_enum", "dataType"),
            )),
            relationships=(rel["DataClassAssignment"],),
        ),
        EntityMapper(
            "category", "GlossaryCategory",
            properties=concat(referenceable("category"), (
                simple("name", "displayName"),
                simple("short_description", "description"),
            )),
            relationships=(rel["CategoryHierarchyLink"], rel["TermCategorization"]),
            classifications=(subject_area,),
        ),
        EntityMapper(
            "term", "GlossaryTerm",
            properties=concat(referenceable("term"), (
                simple("name", "displayName"),
                simple("short_description", "summary"),
                simple("long_description", "description"),
                simple("abbreviation"),
                simple("example", "examples"),
                simple("usage"),
            )),
            relationships=(rel["TermCategorization"],),
        ),
        EntityMapper(
            "information_governance_policy", "GovernancePolicy",
            properties=concat(referenceable("information_governance_policy"), (
                simple("name", "title"),
                simple("short_description", "summary"),
                simple("long_description", "description"),
                complex_property("domain", _parent_policy_name, _parent_policy_search),
                literal("scope"),
                literal("priority"),
                literal("implications"),
                literal("outcomes"),
                literal("results"),
            )),
        ),
    ]


def build_registry(config: BridgeConfig) -> MapperRegistry:
    """Build the process-wide mapper registry for a catalog configuration."""
    return MapperRegistry(config, build_typedefs(), build_entity_mappers(config))
