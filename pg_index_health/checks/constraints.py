"""Diagnostics about constraints."""

from pg_index_health.checks.base import BaseCheck
from pg_index_health.diagnostics import DiagnosticId
from pg_index_health.models import Column, Constraint, ForeignKey


class ForeignKeysWithoutIndexCheck(BaseCheck):
    diagnostic = DiagnosticId.FOREIGN_KEYS_WITHOUT_INDEX
    description = "Foreign keys not covered by an index on the referencing columns"
    sql = """
        select
            c.relname as table_name,
            con.conname as constraint_name,
            array_agg(a.attname::text order by u.pos) as column_names,
            array_agg(a.attnotnull order by u.pos) as columns_not_null
        from pg_catalog.pg_constraint con
            join pg_catalog.pg_class c on c.oid = con.conrelid
            join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
            cross join lateral unnest(con.conkey) with ordinality as u(attnum, pos)
            join pg_catalog.pg_attribute a on a.attrelid = c.oid and a.attnum = u.attnum
        where
            con.contype = 'f' and
            nsp.nspname = %(schema_name)s and
            not exists (
                select 1
                from pg_catalog.pg_index i
                where
                    i.indrelid = con.conrelid and
                    i.indpred is null and
                    (i.indkey::int2[])[0:array_length(con.conkey, 1) - 1] @> con.conkey
            )
        group by c.relname, con.conname
        order by c.relname, con.conname;
    """

    def map_row(self, row, context):
        table_name = context.enrich_with_schema(row["table_name"])
        columns = tuple(
            Column(table_name, name, not_null)
            for name, not_null in zip(row["column_names"], row["columns_not_null"])
        )
        return ForeignKey(table_name, row["constraint_name"], columns)


class NotValidConstraintsCheck(BaseCheck):
    diagnostic = DiagnosticId.NOT_VALID_CONSTRAINTS
    description = "Constraints created with NOT VALID and never validated"
    sql = """
        select
            c.relname as table_name,
            con.conname as constraint_name,
            con.contype as constraint_type
        from pg_catalog.pg_constraint con
            join pg_catalog.pg_class c on c.oid = con.conrelid
            join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
        where
            not con.convalidated and
            con.contype in ('c', 'f') and
            nsp.nspname = %(schema_name)s
        order by c.relname, con.conname;
    """

    def map_row(self, row, context):
        return Constraint(
            context.enrich_with_schema(row["table_name"]),
            row["constraint_name"],
            row["constraint_type"],
        )
