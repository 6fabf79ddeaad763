"""
Search Translation Tests

Validates how canonical search predicates become native queries:
1. Match patterns map onto the four native operators; anything else fails fast
2. ALL / ANY combinators, literal rows evaluated in-process
3. Unknown properties force zero rows instead of being ignored
4. qualifiedName decomposes into per-ancestor name conditions
5. Dual-backed relationships yield one query per representation
6. Classification searches OR the hop paths and AND the match properties
"""

import asyncio

import pytest


def _flatten(conditions):
    """Every SearchCondition in a condition tree."""
    from core.search.conditions import ConditionSet
    found = []
    for item in conditions.items:
        if isinstance(item, ConditionSet):
            found.extend(_flatten(item))
        else:
            found.append(item)
    return found


@pytest.fixture
def translator(registry):
    from core.mapping.translator import SearchCriteriaTranslator
    return SearchCriteriaTranslator(registry)


class TestMatchPatterns:
    """Parsing of match regexes."""

    @pytest.mark.parametrize("pattern,operator,value", [
        ("\\QCOMPDIR\\E", "exact", "COMPDIR"),
        ("\\QCOMP\\E.*", "starts-with", "COMP"),
        (".*\\QDIR\\E", "ends-with", "DIR"),
        (".*\\QMPD\\E.*", "contains", "MPD"),
        ("Address Line 1", "exact", "Address Line 1"),
        ("COMP.*", "starts-with", "COMP"),
        ("\\Q(host)=H::(database)=D\\E", "exact", "(host)=H::(database)=D"),
    ])
    def test_supported_forms(self, pattern, operator, value):
        from core.search.matching import MatchOperator, PropertyMatch

        match = PropertyMatch.from_pattern(pattern)
        assert match.operator == MatchOperator(operator)
        assert match.value == value

    @pytest.mark.parametrize("pattern", [
        "COMP[A-Z]+",
        "^COMPDIR$",
        "a|b",
        ".*",
        "\\QCOMP\\E\\d+",
    ])
    def test_unsupported_forms_fail_fast(self, pattern):
        from core.errors import UnsupportedSearchPattern
        from core.search.matching import PropertyMatch

        with pytest.raises(UnsupportedSearchPattern):
            PropertyMatch.from_pattern(pattern)

    def test_unknown_operator_name_fails_fast(self):
        from core.errors import UnsupportedSearchPattern
        from core.search.matching import PropertyMatch

        with pytest.raises(UnsupportedSearchPattern):
            PropertyMatch.of("COMPDIR", "regex")

    def test_malformed_pattern_issues_no_query(self, repository, client):
        from core.errors import UnsupportedSearchPattern

        with pytest.raises(UnsupportedSearchPattern):
            asyncio.run(repository.find_entities("Database", {"name": "COMP(DIR"}))
        assert client.calls["search"] == 0


class TestEntityQueries:
    """Entity property searches."""

    def test_simple_property_becomes_one_condition(self, translator):
        from core.search.conditions import Operator, SearchCondition

        [query] = translator.entity_queries("Database", {"instance": "db2inst1"})

        assert query.native_types == ("database",)
        assert not query.forces_no_results
        assert _flatten(query.conditions) == [SearchCondition("dbms_server_instance", Operator.EQUALS, "db2inst1")]

    def test_operators_translate_to_native_like(self, translator):
        from core.search.conditions import Operator

        [query] = translator.entity_queries("Database", {"name": ".*\\QDIR\\E"})
        [condition] = _flatten(query.conditions)
        assert condition.operator == Operator.ENDS_WITH
        assert condition.value == "DIR"

    def test_any_combinator_becomes_or(self, translator):
        [query] = translator.entity_queries("Database", {"name": "COMPDIR", "type": "DB2"}, combinator="ANY")

        nested = query.conditions.items[0] if not query.conditions.match_any else query.conditions
        assert nested.match_any
        assert len(_flatten(query.conditions)) == 2

    def test_unknown_property_forces_zero_rows(self, translator):
        from core.search.matching import Combinator

        for combinator in Combinator:
            [query] = translator.entity_queries("Database", {"name": "COMPDIR", "colour": "blue"}, combinator)
            assert query.forces_no_results

    def test_literal_match_is_evaluated_in_process(self, translator):
        [matching] = translator.entity_queries("RelationalTable", {"isView": False})
        assert not matching.forces_no_results
        assert len(matching.conditions) == 0

        [other] = translator.entity_queries("RelationalTable", {"isView": True})
        assert other.forces_no_results

    def test_unset_literal_never_matches(self, translator):
        [query] = translator.entity_queries("GovernancePolicy", {"scope": "Enterprise"})
        assert query.forces_no_results

    def test_non_exact_operator_on_number_matches_nothing(self, translator):
        from core.search.matching import PropertyMatch

        [query] = translator.entity_queries("RelationalColumn", {"position": PropertyMatch.of(1, "contains")})
        assert query.forces_no_results

    def test_unknown_canonical_type_is_unsupported(self, translator):
        from core.errors import UnsupportedType

        with pytest.raises(UnsupportedType):
            translator.entity_queries("Spreadsheet", {"name": "x"})

    def test_virtual_entity_query_keeps_prefix(self, translator):
        [query] = translator.entity_queries("RelationalDBSchemaType")
        assert query.native_types == ("database_schema",)
        assert query.prefix == "gen!RDBST@"

    def test_complex_property_search(self, translator):
        from core.search.conditions import Operator, SearchCondition

        [query] = translator.entity_queries("GovernancePolicy", {"domain": "Data Protection"})
        assert _flatten(query.conditions) == [SearchCondition("parent_policy.name", Operator.EQUALS, "Data Protection")]


class TestQualifiedNameDecomposition:
    """qualifiedName searches become per-ancestor name conditions."""

    def test_exact_qualified_name(self, translator):
        from core.search.conditions import Operator, SearchCondition

        [query] = translator.entity_queries(
            "Database", {"qualifiedName": "\\Q(host)=INFOSVR::(database)=COMPDIR\\E"}
        )
        assert _flatten(query.conditions) == [
            SearchCondition("name", Operator.EQUALS, "COMPDIR"),
            SearchCondition("host.name", Operator.EQUALS, "INFOSVR"),
        ]

    def test_root_with_parent_property_requires_no_parent(self, translator):
        from core.search.conditions import Operator, SearchCondition

        [query] = translator.entity_queries("GlossaryCategory", {"qualifiedName": "\\Q(category)=Root\\E"})
        assert _flatten(query.conditions) == [
            SearchCondition("name", Operator.EQUALS, "Root"),
            SearchCondition("parent_category", Operator.IS_NULL),
        ]

    def test_prefixed_qualified_name(self, translator):
        [virtual] = translator.entity_queries(
            "RelationalDBSchemaType",
            {"qualifiedName": "\\Qgen!RDBST@(host)=INFOSVR::(database)=COMPDIR::(database_schema)=DB2INST1\\E"},
        )
        assert not virtual.forces_no_results
        assert len(_flatten(virtual.conditions)) == 3

        [deployed] = translator.entity_queries(
            "DeployedDatabaseSchema",
            {"qualifiedName": "\\Qgen!RDBST@(host)=INFOSVR::(database)=COMPDIR::(database_schema)=DB2INST1\\E"},
        )
        assert deployed.forces_no_results

    def test_wrong_type_or_operator_matches_nothing(self, translator):
        [wrong_type] = translator.entity_queries("Database", {"qualifiedName": "\\Q(host)=INFOSVR\\E"})
        assert wrong_type.forces_no_results

        [contains] = translator.entity_queries("Database", {"qualifiedName": ".*\\QCOMPDIR\\E.*"})
        assert contains.forces_no_results

    def test_qualified_name_search_finds_nested_category(self, repository):
        qualified_name = "(category)=Root::(category)=Subject Area::(category)=Customer Data"
        batch = asyncio.run(repository.find_entities("GlossaryCategory", {"qualifiedName": f"\\Q{qualified_name}\\E"}))

        [entity] = batch.items
        assert entity.properties["qualifiedName"] == qualified_name
        assert entity.properties["displayName"] == "Customer Data"


class TestRelationshipQueries:
    """Dual-backed relationship searches."""

    def test_one_query_per_representation(self, translator):
        queries = translator.relationship_queries("DataClassAssignment")
        assert [q.representation for q in queries] == ["selected", "classification"]
        assert queries[0].native_types == ("data_class",)
        assert queries[1].native_types == ("classification",)
        assert not any(q.forces_no_results for q in queries)

    def test_carrier_property_forces_direct_representation_empty(self, translator):
        from core.search.conditions import Operator, SearchCondition

        selected, classification = translator.relationship_queries("DataClassAssignment", {"confidence": 95})

        assert selected.forces_no_results
        assert not classification.forces_no_results
        assert SearchCondition("confidencePercent", Operator.EQUALS, 95) in _flatten(classification.conditions)

    def test_status_selects_its_representation(self, translator):
        selected, classification = translator.relationship_queries("DataClassAssignment", {"status": "Proposed"})
        assert not selected.forces_no_results
        assert classification.forces_no_results

        selected, classification = translator.relationship_queries("DataClassAssignment", {"status": "\\QDisc\\E.*"})
        assert selected.forces_no_results
        assert not classification.forces_no_results

    def test_unproduced_status_forces_every_query_empty(self, translator):
        queries = translator.relationship_queries("DataClassAssignment", {"status": "Rejected"})
        assert all(q.forces_no_results for q in queries)

    def test_unknown_property_forces_every_query_empty(self, translator):
        queries = translator.relationship_queries("DataClassAssignment", {"colour": "blue"})
        assert all(q.forces_no_results for q in queries)

    def test_any_combinator_keeps_satisfiable_representation(self, translator):
        selected, classification = translator.relationship_queries(
            "DataClassAssignment", {"status": "Proposed", "confidence": 95}, combinator="ANY",
        )
        # Proposed matches every selected row; confidence still filters carriers
        assert not selected.forces_no_results
        assert len(selected.conditions) == 1
        assert not classification.forces_no_results

    def test_complex_carrier_property(self, translator):
        from core.search.conditions import Operator, SearchCondition

        _, classification = translator.relationship_queries("DataClassAssignment", {"partialMatch": True})
        assert SearchCondition("confidencePercent", Operator.LESS_THAN, 100) in _flatten(classification.conditions)

    def test_text_search_on_status(self, translator):
        selected, classification = translator.relationship_text_queries("DataClassAssignment", "\\QProposed\\E")
        assert not selected.forces_no_results
        assert classification.forces_no_results

    def test_unmapped_relationship_type(self, translator):
        from core.errors import UnsupportedType

        with pytest.raises(UnsupportedType):
            translator.relationship_queries("SemanticAssignment", {})


class TestClassificationQueries:
    """Classification searches."""

    def test_existence_without_match_properties(self, translator):
        from core.search.conditions import Operator, SearchCondition

        [query] = translator.classification_queries("SubjectArea")

        assert query.native_types == ("category",)
        assert query.conditions.match_any
        assert _flatten(query.conditions) == [
            SearchCondition("parent_category.name", Operator.EQUALS, "Subject Area"),
            SearchCondition("parent_category.parent_category.name", Operator.EQUALS, "Subject Area"),
        ]

    def test_match_properties_are_anded_with_existence(self, translator):
        from core.search.conditions import Operator, SearchCondition

        [query] = translator.classification_queries("SubjectArea", {"name": "Customer Data"})
        conditions = _flatten(query.conditions)

        assert len(conditions) == 3
        assert SearchCondition("name", Operator.EQUALS, "Customer Data") in conditions
        assert not query.conditions.match_any

    def test_unknown_match_property(self, translator):
        [query] = translator.classification_queries("SubjectArea", {"owner": "x"})
        assert query.forces_no_results

    def test_classified_entities_are_found(self, repository):
        batch = asyncio.run(repository.find_entities_by_classification("SubjectArea"))

        assert [e.properties["displayName"] for e in batch.items] == ["Customer Data"]
        assert batch.items[0].classification("SubjectArea") is not None


class TestTextQueries:
    """Free-text entity searches."""

    def test_ors_every_string_property(self, translator):
        [query] = translator.entity_text_queries(".*\\Qmail\\E.*", "GlossaryTerm")

        assert query.conditions.match_any
        properties = {c.property for c in _flatten(query.conditions)}
        assert {"name", "short_description", "long_description", "abbreviation"} <= properties
        assert "qualifiedName" not in properties

    def test_text_search_runs_against_catalog(self, repository):
        batch = asyncio.run(repository.find_entities_by_text(".*\\Qmail\\E.*", "GlossaryTerm"))
        assert [e.properties["displayName"] for e in batch.items] == ["Email"]

    def test_text_search_across_types(self, repository):
        batch = asyncio.run(repository.find_entities_by_text("\\QCOMPDIR\\E.*"))
        types = sorted(e.type_name for e in batch.items)
        assert types == ["Connection", "Database"]


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
