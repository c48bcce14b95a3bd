"""Diagnostics about sequences."""

from pg_index_health.checks.base import BaseCheck
from pg_index_health.diagnostics import DiagnosticId
from pg_index_health.models import SequenceState


class SequenceOverflowCheck(BaseCheck):
    diagnostic = DiagnosticId.SEQUENCE_OVERFLOW
    description = "Sequences close to running out of values"
    sql = """
        with sequence_state as (
            select
                s.sequencename as sequence_name,
                s.data_type::text as data_type,
                case
                    when s.increment_by > 0 then
                        100 * (s.max_value::numeric - coalesce(s.last_value, s.start_value)::numeric) /
                        (s.max_value::numeric - s.min_value::numeric)
                    else
                        100 * (coalesce(s.last_value, s.start_value)::numeric - s.min_value::numeric) /
                        (s.max_value::numeric - s.min_value::numeric)
                end as remaining_percentage
            from pg_catalog.pg_sequences s
            where
                s.schemaname = %(schema_name)s and
                not s.cycle
        )
        select
            sequence_name,
            data_type,
            round(remaining_percentage, 2)::float8 as remaining_percentage
        from sequence_state
        where remaining_percentage < %(remaining_percentage_threshold)s
        order by sequence_name;
    """

    def map_row(self, row, context):
        return SequenceState(
            context.enrich_with_schema(row["sequence_name"]),
            data_type=row["data_type"],
            remaining_percentage=row["remaining_percentage"],
        )
