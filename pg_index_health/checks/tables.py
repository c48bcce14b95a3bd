"""Diagnostics about tables."""

from pg_index_health.checks.base import BaseCheck
from pg_index_health.diagnostics import DiagnosticId
from pg_index_health.models import Table, TableWithBloat, TableWithMissingIndex


class TablesWithoutPrimaryKeyCheck(BaseCheck):
    diagnostic = DiagnosticId.TABLES_WITHOUT_PRIMARY_KEY
    description = "Tables without primary key"
    sql = """
        select
            c.relname as table_name,
            pg_table_size(c.oid) as table_size
        from pg_catalog.pg_class c
            join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
        where
            c.relkind in ('r', 'p') and
            not c.relispartition and
            nsp.nspname = %(schema_name)s and
            not exists (
                select 1
                from pg_catalog.pg_constraint con
                where con.conrelid = c.oid and con.contype = 'p'
            )
        order by c.relname;
    """

    def map_row(self, row, context):
        return Table(context.enrich_with_schema(row["table_name"]), row["table_size"])


class TablesWithMissingIndexesCheck(BaseCheck):
    diagnostic = DiagnosticId.TABLES_WITH_MISSING_INDEXES
    description = "Tables read mostly by sequential scans"
    # Statistics are per host: each replica sees only the reads routed to it.
    sql = """
        with tables_stats as (
            select
                psat.relname as table_name,
                pg_table_size(psat.relid) as table_size,
                coalesce(psat.seq_scan, 0) as seq_scan,
                coalesce(psat.idx_scan, 0) as idx_scan
            from pg_catalog.pg_stat_all_tables psat
            where
                psat.schemaname = %(schema_name)s and
                pg_table_size(psat.relid) > 5 * 8192
        )
        select table_name, table_size, seq_scan, idx_scan
        from tables_stats
        where
            (seq_scan + idx_scan) > 100 and
            seq_scan > idx_scan
        order by table_name;
    """

    def map_row(self, row, context):
        return TableWithMissingIndex(
            context.enrich_with_schema(row["table_name"]),
            table_size_bytes=row["table_size"],
            seq_scans=row["seq_scan"],
            index_scans=row["idx_scan"],
        )


class TablesWithoutDescriptionCheck(BaseCheck):
    diagnostic = DiagnosticId.TABLES_WITHOUT_DESCRIPTION
    description = "Tables without description"
    sql = """
        select
            c.relname as table_name,
            pg_table_size(c.oid) as table_size
        from pg_catalog.pg_class c
            join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
        where
            c.relkind in ('r', 'p') and
            not c.relispartition and
            nsp.nspname = %(schema_name)s and
            coalesce(trim(obj_description(c.oid, 'pg_class')), '') = ''
        order by c.relname;
    """

    def map_row(self, row, context):
        return Table(context.enrich_with_schema(row["table_name"]), row["table_size"])


class BloatedTablesCheck(BaseCheck):
    diagnostic = DiagnosticId.BLOATED_TABLES
    description = "Tables with estimated bloat above threshold"
    # Estimate from planner statistics; requires ANALYZE to have run.
    sql = """
        with tables_stats as (
            select
                c.oid as table_oid,
                c.relname as table_name,
                greatest(c.reltuples, 0) as reltuples,
                c.relpages,
                current_setting('block_size')::numeric as block_size,
                coalesce(
                    substring(array_to_string(c.reloptions, ' ') from 'fillfactor=([0-9]+)')::numeric,
                    100
                ) as fill_factor
            from pg_catalog.pg_class c
                join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
            where
                c.relkind = 'r' and
                c.relpages > 0 and
                nsp.nspname = %(schema_name)s
        ),
        rows_width as (
            select
                ts.table_oid,
                24 + sum((1 - coalesce(s.null_frac, 0)) * coalesce(s.avg_width, 0)) as row_width
            from tables_stats ts
                join pg_catalog.pg_attribute a
                    on a.attrelid = ts.table_oid and a.attnum > 0 and not a.attisdropped
                left join pg_catalog.pg_stats s
                    on s.schemaname = %(schema_name)s and
                       s.tablename = ts.table_name and
                       s.attname = a.attname
            group by ts.table_oid
        ),
        estimates as (
            select
                ts.table_name,
                ts.relpages * ts.block_size as table_size,
                ceil(
                    ts.reltuples / greatest(
                        floor((ts.block_size - 24) * ts.fill_factor / 100 / (rw.row_width + 4)), 1
                    )
                ) * ts.block_size as expected_size
            from tables_stats ts
                join rows_width rw on rw.table_oid = ts.table_oid
        )
        select
            table_name,
            table_size::bigint as table_size,
            greatest(table_size - expected_size, 0)::bigint as bloat_size,
            round(100 * greatest(table_size - expected_size, 0) / table_size, 2)::float8 as bloat_percentage
        from estimates
        where 100 * (table_size - expected_size) / table_size >= %(bloat_percentage_threshold)s
        order by table_name;
    """

    def map_row(self, row, context):
        return TableWithBloat(
            context.enrich_with_schema(row["table_name"]),
            table_size_bytes=row["table_size"],
            bloat_size_bytes=row["bloat_size"],
            bloat_percentage=row["bloat_percentage"],
        )
