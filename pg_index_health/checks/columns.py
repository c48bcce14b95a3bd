"""Diagnostics about columns."""

from pg_index_health.checks.base import BaseCheck
from pg_index_health.diagnostics import DiagnosticId
from pg_index_health.models import Column


class _ColumnCheck(BaseCheck):
    def map_row(self, row, context):
        return Column(
            context.enrich_with_schema(row["table_name"]),
            row["column_name"],
            not_null=row["column_not_null"],
        )


class ColumnsWithoutDescriptionCheck(_ColumnCheck):
    diagnostic = DiagnosticId.COLUMNS_WITHOUT_DESCRIPTION
    description = "Columns without description"
    sql = """
        select
            c.relname as table_name,
            a.attname as column_name,
            a.attnotnull as column_not_null
        from pg_catalog.pg_class c
            join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
            join pg_catalog.pg_attribute a on a.attrelid = c.oid
        where
            c.relkind in ('r', 'p') and
            not c.relispartition and
            a.attnum > 0 and
            not a.attisdropped and
            nsp.nspname = %(schema_name)s and
            coalesce(trim(col_description(c.oid, a.attnum)), '') = ''
        order by c.relname, a.attname;
    """


class ColumnsWithJsonTypeCheck(_ColumnCheck):
    diagnostic = DiagnosticId.COLUMNS_WITH_JSON_TYPE
    description = "Columns of type json that should be jsonb"
    sql = """
        select
            c.relname as table_name,
            a.attname as column_name,
            a.attnotnull as column_not_null
        from pg_catalog.pg_class c
            join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
            join pg_catalog.pg_attribute a on a.attrelid = c.oid
        where
            c.relkind in ('r', 'p') and
            not c.relispartition and
            a.attnum > 0 and
            not a.attisdropped and
            nsp.nspname = %(schema_name)s and
            a.atttypid = 'json'::regtype
        order by c.relname, a.attname;
    """
