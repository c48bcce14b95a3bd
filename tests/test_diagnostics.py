"""Tests for the diagnostic registry and the query catalog."""

from __future__ import annotations

import re

import pytest

from pg_index_health import catalog, combiners, models
from pg_index_health.context import SchemaContext
from pg_index_health.diagnostics import (
    STANDARD_DIAGNOSTICS,
    Diagnostic,
    DiagnosticId,
    DiagnosticRegistry,
    ExecutionPolicy,
    standard_registry,
)
from pg_index_health.errors import RegistryConfigurationError

CONTEXT_PARAMS = set(SchemaContext.of_default().query_params())


class TestDiagnostic:
    def test_across_cluster_requires_combiner(self):
        with pytest.raises(RegistryConfigurationError):
            Diagnostic(DiagnosticId.UNUSED_INDEXES, models.UnusedIndex, ExecutionPolicy.ACROSS_CLUSTER)

    def test_primary_only_rejects_combiner(self):
        with pytest.raises(RegistryConfigurationError):
            Diagnostic(DiagnosticId.INVALID_INDEXES, models.Index, combiner=combiners.intersection)

    def test_str(self):
        assert str(Diagnostic(DiagnosticId.INVALID_INDEXES, models.Index)) == "invalid_indexes"


class TestDiagnosticRegistry:
    def test_total_over_ids(self):
        registry = standard_registry()
        assert len(registry) == len(DiagnosticId)
        assert [d.id for d in registry] == list(DiagnosticId)

    def test_get_by_id_or_name(self):
        registry = standard_registry()
        assert registry.get("unused_indexes") is registry.get(DiagnosticId.UNUSED_INDEXES)

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            standard_registry().get("no_such_diagnostic")

    def test_missing_entry(self):
        with pytest.raises(RegistryConfigurationError):
            DiagnosticRegistry(STANDARD_DIAGNOSTICS[1:])

    def test_duplicate_entry(self):
        with pytest.raises(RegistryConfigurationError):
            DiagnosticRegistry(STANDARD_DIAGNOSTICS + STANDARD_DIAGNOSTICS[:1])

    def test_across_cluster_entries(self):
        across = {d.id: d.combiner for d in standard_registry().all_across_cluster()}
        assert across == {
            DiagnosticId.TABLES_WITH_MISSING_INDEXES: combiners.union_distinct_sorted,
            DiagnosticId.UNUSED_INDEXES: combiners.intersection,
        }

    def test_built_once(self):
        assert standard_registry() is standard_registry()

    def test_read_only(self):
        registry = standard_registry()
        with pytest.raises(TypeError):
            registry._table[DiagnosticId.UNUSED_INDEXES] = None


class TestCatalog:
    @pytest.mark.parametrize("diagnostic_id", list(DiagnosticId))
    def test_query_for_every_diagnostic(self, diagnostic_id):
        sql = catalog.load_query_text(diagnostic_id)
        assert "%(schema_name)s" in sql
        assert set(re.findall(r"%\((\w+)\)s", sql)) <= CONTEXT_PARAMS

    @pytest.mark.parametrize("diagnostic_id", list(DiagnosticId))
    def test_no_bare_percent_signs(self, diagnostic_id):
        sql = catalog.load_query_text(diagnostic_id)
        stripped = re.sub(r"%\(\w+\)s|%%", "", sql)
        assert "%" not in stripped

    def test_checks_in_registry_order(self):
        assert [c.diagnostic for c in catalog.all_checks()] == list(DiagnosticId)

    def test_standard_checks_cover_every_diagnostic(self):
        assert sorted(c.diagnostic.value for c in catalog.STANDARD_CHECKS) == sorted(d.value for d in DiagnosticId)

    def test_check_name(self):
        check = catalog.get_check("sequence_overflow")
        assert check.name == "sequence_overflow"
        assert check.description


class TestRowMappers:
    def test_result_type_matches_registry(self):
        rows = {
            DiagnosticId.BLOATED_INDEXES: {
                "table_name": "t", "index_name": "i", "index_size": 10, "bloat_size": 5, "bloat_percentage": 50.0,
            },
            DiagnosticId.BLOATED_TABLES: {
                "table_name": "t", "table_size": 10, "bloat_size": 5, "bloat_percentage": 50.0,
            },
            DiagnosticId.DUPLICATED_INDEXES: {
                "table_name": "t", "index_names": ["i1", "i2"], "index_sizes": [1, 2],
            },
            DiagnosticId.FOREIGN_KEYS_WITHOUT_INDEX: {
                "table_name": "t", "constraint_name": "fk", "column_names": ["a"], "columns_not_null": [True],
            },
            DiagnosticId.INDEXES_WITH_NULL_VALUES: {
                "table_name": "t", "index_name": "i", "index_size": 1, "column_name": "c", "column_not_null": False,
            },
            DiagnosticId.INTERSECTED_INDEXES: {
                "table_name": "t", "index_names": ["i1", "i2"], "index_sizes": [1, 2],
            },
            DiagnosticId.INVALID_INDEXES: {"table_name": "t", "index_name": "i"},
            DiagnosticId.TABLES_WITH_MISSING_INDEXES: {
                "table_name": "t", "table_size": 1, "seq_scan": 200, "idx_scan": 1,
            },
            DiagnosticId.TABLES_WITHOUT_PRIMARY_KEY: {"table_name": "t", "table_size": 1},
            DiagnosticId.UNUSED_INDEXES: {"table_name": "t", "index_name": "i", "index_size": 1, "index_scans": 0},
            DiagnosticId.TABLES_WITHOUT_DESCRIPTION: {"table_name": "t", "table_size": 1},
            DiagnosticId.COLUMNS_WITHOUT_DESCRIPTION: {"table_name": "t", "column_name": "c", "column_not_null": True},
            DiagnosticId.COLUMNS_WITH_JSON_TYPE: {"table_name": "t", "column_name": "c", "column_not_null": False},
            DiagnosticId.FUNCTIONS_WITHOUT_DESCRIPTION: {"function_name": "f", "function_signature": "a integer"},
            DiagnosticId.NOT_VALID_CONSTRAINTS: {"table_name": "t", "constraint_name": "c", "constraint_type": "c"},
            DiagnosticId.SEQUENCE_OVERFLOW: {"sequence_name": "s", "data_type": "integer", "remaining_percentage": 5.0},
        }
        context = SchemaContext.of_default()
        registry = standard_registry()
        for diagnostic_id in DiagnosticId:
            finding = catalog.map_row(diagnostic_id, rows[diagnostic_id], context)
            assert isinstance(finding, registry.get(diagnostic_id).result_type), diagnostic_id

    def test_names_enriched_with_schema(self):
        context = SchemaContext("sales")
        finding = catalog.map_row(
            DiagnosticId.UNUSED_INDEXES,
            {"table_name": "orders", "index_name": "idx_note", "index_size": 1, "index_scans": 0},
            context,
        )
        assert finding == models.UnusedIndex("sales.orders", "sales.idx_note")

    def test_duplicated_indexes_group(self):
        finding = catalog.map_row(
            DiagnosticId.DUPLICATED_INDEXES,
            {"table_name": "orders", "index_names": ["idx_b", "idx_a"], "index_sizes": [20, 10]},
            SchemaContext.of_default(),
        )
        assert finding.name == "idx_a,idx_b"
        assert finding.index_size_bytes == 30

    def test_foreign_key_columns(self):
        finding = catalog.map_row(
            DiagnosticId.FOREIGN_KEYS_WITHOUT_INDEX,
            {
                "table_name": "orders", "constraint_name": "fk_customer",
                "column_names": ["customer_id", "region"], "columns_not_null": [True, False],
            },
            SchemaContext.of_default(),
        )
        assert finding.column_names == ["customer_id", "region"]
        assert finding.columns[0].not_null
