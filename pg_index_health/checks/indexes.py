"""Diagnostics about indexes."""

from pg_index_health.checks.base import BaseCheck
from pg_index_health.diagnostics import DiagnosticId
from pg_index_health.models import (
    Column,
    DuplicatedIndexes,
    Index,
    IndexWithBloat,
    IndexWithColumns,
    IndexWithSize,
    UnusedIndex,
)


def _index_group(row, context) -> DuplicatedIndexes:
    table_name = context.enrich_with_schema(row["table_name"])
    return DuplicatedIndexes(
        tuple(
            IndexWithSize(table_name, context.enrich_with_schema(name), size)
            for name, size in zip(row["index_names"], row["index_sizes"])
        )
    )


class InvalidIndexesCheck(BaseCheck):
    diagnostic = DiagnosticId.INVALID_INDEXES
    description = "Invalid (broken) indexes"
    sql = """
        select
            c.relname as table_name,
            ic.relname as index_name
        from pg_catalog.pg_index i
            join pg_catalog.pg_class c on c.oid = i.indrelid
            join pg_catalog.pg_class ic on ic.oid = i.indexrelid
            join pg_catalog.pg_namespace nsp on nsp.oid = ic.relnamespace
        where
            not i.indisvalid and
            nsp.nspname = %(schema_name)s
        order by c.relname, ic.relname;
    """

    def map_row(self, row, context):
        return Index(
            context.enrich_with_schema(row["table_name"]),
            context.enrich_with_schema(row["index_name"]),
        )


class DuplicatedIndexesCheck(BaseCheck):
    diagnostic = DiagnosticId.DUPLICATED_INDEXES
    description = "Duplicated (completely identical) indexes"
    sql = """
        select
            c.relname as table_name,
            array_agg(ic.relname::text order by ic.relname) as index_names,
            array_agg(pg_relation_size(i.indexrelid) order by ic.relname) as index_sizes
        from pg_catalog.pg_index i
            join pg_catalog.pg_class c on c.oid = i.indrelid
            join pg_catalog.pg_class ic on ic.oid = i.indexrelid
            join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
        where nsp.nspname = %(schema_name)s
        group by
            c.relname,
            i.indrelid,
            i.indkey::text,
            i.indclass::text,
            i.indcollation::text,
            coalesce(pg_get_expr(i.indexprs, i.indrelid), ''),
            coalesce(pg_get_expr(i.indpred, i.indrelid), '')
        having count(*) > 1
        order by c.relname;
    """

    def map_row(self, row, context):
        return _index_group(row, context)


class IntersectedIndexesCheck(BaseCheck):
    diagnostic = DiagnosticId.INTERSECTED_INDEXES
    description = "Intersected (partially identical) indexes"
    sql = """
        with index_info as (
            select
                i.indrelid,
                i.indexrelid,
                c.relname as table_name,
                ic.relname::text as index_name,
                pg_relation_size(i.indexrelid) as index_size,
                i.indkey::text as columns,
                i.indexprs is null and i.indpred is null as is_plain
            from pg_catalog.pg_index i
                join pg_catalog.pg_class c on c.oid = i.indrelid
                join pg_catalog.pg_class ic on ic.oid = i.indexrelid
                join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
            where nsp.nspname = %(schema_name)s
        )
        select
            a.table_name,
            array[a.index_name, b.index_name] as index_names,
            array[a.index_size, b.index_size] as index_sizes
        from index_info a
            join index_info b on b.indrelid = a.indrelid and a.indexrelid < b.indexrelid
        where
            a.is_plain and
            b.is_plain and
            a.columns <> b.columns and
            (b.columns like a.columns || ' %%' or a.columns like b.columns || ' %%')
        order by a.table_name, a.index_name, b.index_name;
    """

    def map_row(self, row, context):
        return _index_group(row, context)


class UnusedIndexesCheck(BaseCheck):
    diagnostic = DiagnosticId.UNUSED_INDEXES
    description = "Unused indexes"
    # Scan counters are per host and reset with the statistics.
    sql = """
        select
            psai.relname as table_name,
            psai.indexrelname as index_name,
            pg_relation_size(i.indexrelid) as index_size,
            psai.idx_scan as index_scans
        from pg_catalog.pg_stat_all_indexes psai
            join pg_catalog.pg_index i on i.indexrelid = psai.indexrelid
        where
            psai.schemaname = %(schema_name)s and
            not i.indisunique and
            i.indisvalid and
            psai.idx_scan < 50 and
            not exists (
                select 1
                from pg_catalog.pg_constraint con
                where con.conindid = i.indexrelid
            )
        order by psai.relname, psai.indexrelname;
    """

    def map_row(self, row, context):
        return UnusedIndex(
            context.enrich_with_schema(row["table_name"]),
            context.enrich_with_schema(row["index_name"]),
            index_size_bytes=row["index_size"],
            index_scans=row["index_scans"],
        )


class IndexesWithNullValuesCheck(BaseCheck):
    diagnostic = DiagnosticId.INDEXES_WITH_NULL_VALUES
    description = "Indexes that contain null values"
    sql = """
        select
            c.relname as table_name,
            ic.relname as index_name,
            pg_relation_size(i.indexrelid) as index_size,
            a.attname as column_name,
            a.attnotnull as column_not_null
        from pg_catalog.pg_index i
            join pg_catalog.pg_class c on c.oid = i.indrelid
            join pg_catalog.pg_class ic on ic.oid = i.indexrelid
            join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
            join pg_catalog.pg_attribute a on a.attrelid = i.indrelid and a.attnum = i.indkey[0]
        where
            nsp.nspname = %(schema_name)s and
            i.indnatts = 1 and
            not i.indisunique and
            not a.attnotnull and
            (
                i.indpred is null or
                pg_get_expr(i.indpred, i.indrelid) not ilike '%%is not null%%'
            )
        order by c.relname, ic.relname;
    """

    def map_row(self, row, context):
        table_name = context.enrich_with_schema(row["table_name"])
        return IndexWithColumns(
            table_name,
            context.enrich_with_schema(row["index_name"]),
            index_size_bytes=row["index_size"],
            columns=(Column(table_name, row["column_name"], row["column_not_null"]),),
        )


class BloatedIndexesCheck(BaseCheck):
    diagnostic = DiagnosticId.BLOATED_INDEXES
    description = "B-tree indexes with estimated bloat above threshold"
    sql = """
        with indexes_stats as (
            select
                c.relname as table_name,
                ic.relname as index_name,
                greatest(ic.reltuples, 0) as reltuples,
                ic.relpages,
                current_setting('block_size')::numeric as block_size,
                coalesce(
                    substring(array_to_string(ic.reloptions, ' ') from 'fillfactor=([0-9]+)')::numeric,
                    90
                ) as fill_factor,
                coalesce((
                    select sum(coalesce(s.avg_width, 8))
                    from unnest(i.indkey::int2[]) as k(attnum)
                        join pg_catalog.pg_attribute a
                            on a.attrelid = i.indrelid and a.attnum = k.attnum
                        left join pg_catalog.pg_stats s
                            on s.schemaname = nsp.nspname and
                               s.tablename = c.relname and
                               s.attname = a.attname
                ), 8) as key_width
            from pg_catalog.pg_index i
                join pg_catalog.pg_class c on c.oid = i.indrelid
                join pg_catalog.pg_class ic on ic.oid = i.indexrelid
                join pg_catalog.pg_namespace nsp on nsp.oid = c.relnamespace
                join pg_catalog.pg_am am on am.oid = ic.relam
            where
                am.amname = 'btree' and
                ic.relpages > 0 and
                nsp.nspname = %(schema_name)s
        ),
        estimates as (
            select
                table_name,
                index_name,
                relpages * block_size as index_size,
                (1 + ceil(
                    reltuples * (12 + ceil(key_width / 8) * 8) /
                    ((block_size - 40) * fill_factor / 100)
                )) * block_size as expected_size
            from indexes_stats
        )
        select
            table_name,
            index_name,
            index_size::bigint as index_size,
            greatest(index_size - expected_size, 0)::bigint as bloat_size,
            round(100 * greatest(index_size - expected_size, 0) / index_size, 2)::float8 as bloat_percentage
        from estimates
        where 100 * (index_size - expected_size) / index_size >= %(bloat_percentage_threshold)s
        order by table_name, index_name;
    """

    def map_row(self, row, context):
        return IndexWithBloat(
            context.enrich_with_schema(row["table_name"]),
            context.enrich_with_schema(row["index_name"]),
            index_size_bytes=row["index_size"],
            bloat_size_bytes=row["bloat_size"],
            bloat_percentage=row["bloat_percentage"],
        )
