"""Tests for the schema context."""

from __future__ import annotations

import pytest

from pg_index_health.context import SchemaContext


class TestSchemaContext:
    def test_defaults(self):
        ctx = SchemaContext.of_default()
        assert ctx.schema_name == "public"
        assert ctx.is_default_schema
        assert ctx.bloat_percentage_threshold == 10.0

    def test_schema_name_normalized(self):
        assert SchemaContext("  Sales ").schema_name == "sales"

    @pytest.mark.parametrize("kwargs", [
        {"schema_name": ""},
        {"schema_name": "  "},
        {"bloat_percentage_threshold": -1},
        {"remaining_percentage_threshold": 100.5},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            SchemaContext(**kwargs)

    def test_enrich_default_schema(self):
        assert SchemaContext.of_default().enrich_with_schema("orders") == "orders"

    def test_enrich_custom_schema(self):
        ctx = SchemaContext("sales")
        assert ctx.enrich_with_schema("orders") == "sales.orders"
        assert ctx.enrich_with_schema("Sales.orders") == "Sales.orders"

    def test_enrich_blank(self):
        with pytest.raises(ValueError):
            SchemaContext("sales").enrich_with_schema(" ")

    def test_query_params(self):
        assert SchemaContext("s", 1, 2).query_params() == {
            "schema_name": "s",
            "bloat_percentage_threshold": 1.0,
            "remaining_percentage_threshold": 2.0,
        }
