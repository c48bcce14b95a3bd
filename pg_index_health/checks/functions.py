"""Diagnostics about stored functions and procedures."""

from pg_index_health.checks.base import BaseCheck
from pg_index_health.diagnostics import DiagnosticId
from pg_index_health.models import StoredFunction


class FunctionsWithoutDescriptionCheck(BaseCheck):
    diagnostic = DiagnosticId.FUNCTIONS_WITHOUT_DESCRIPTION
    description = "Functions and procedures without description"
    sql = """
        select
            p.proname as function_name,
            pg_get_function_identity_arguments(p.oid) as function_signature
        from pg_catalog.pg_proc p
            join pg_catalog.pg_namespace nsp on nsp.oid = p.pronamespace
        where
            p.prokind in ('f', 'p') and
            nsp.nspname = %(schema_name)s and
            coalesce(trim(obj_description(p.oid, 'pg_proc')), '') = ''
        order by p.proname, function_signature;
    """

    def map_row(self, row, context):
        return StoredFunction(
            context.enrich_with_schema(row["function_name"]),
            row["function_signature"] or "",
        )
