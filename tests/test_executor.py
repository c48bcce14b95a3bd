"""Tests for running one diagnostic on one host."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import psycopg2
import pytest

from pg_index_health import catalog
from pg_index_health.context import SchemaContext
from pg_index_health.diagnostics import DiagnosticId, standard_registry
from pg_index_health.errors import DiagnosticQueryError, HostUnreachableError
from pg_index_health.executor import CheckOnHost
from pg_index_health.filters import skip_indexes_by_name
from pg_index_health.models import UnusedIndex
from pg_index_health.statistics import get_last_stats_reset_timestamp, last_stats_reset_message

from conftest import make_connection, unused_index_row

UNUSED = standard_registry().get(DiagnosticId.UNUSED_INDEXES)


class TestCheckOnHost:
    def test_maps_rows(self):
        conn = make_connection("p", rows={"unused_indexes": [
            unused_index_row("orders", "idx_b", scans=3),
            unused_index_row("orders", "idx_a"),
        ]})
        findings = CheckOnHost(UNUSED, conn).check()
        assert findings == [UnusedIndex("orders", "idx_b"), UnusedIndex("orders", "idx_a")]
        assert findings[0].index_scans == 3

    def test_query_and_params(self):
        conn = make_connection("p")
        context = SchemaContext("sales", bloat_percentage_threshold=25)
        CheckOnHost(UNUSED, conn).check(context)
        [(sql, params)] = conn.executed
        assert sql == catalog.load_query_text(DiagnosticId.UNUSED_INDEXES)
        assert params == {
            "schema_name": "sales",
            "bloat_percentage_threshold": 25.0,
            "remaining_percentage_threshold": 10.0,
        }

    def test_exclusion_filter(self):
        conn = make_connection("p", rows={"unused_indexes": [
            unused_index_row("orders", "idx_a"),
            unused_index_row("orders", "idx_b"),
        ]})
        context = SchemaContext.of_default()
        findings = CheckOnHost(UNUSED, conn).check(context, skip_indexes_by_name(context, ["idx_a"]))
        assert findings == [UnusedIndex("orders", "idx_b")]

    def test_one_session_per_call(self):
        conn = make_connection("p")
        executor = CheckOnHost(UNUSED, conn)
        executor.check()
        executor.check()
        assert conn.sessions == 2

    def test_query_error(self):
        conn = make_connection("r1", query_error=psycopg2.ProgrammingError("relation does not exist"))
        with pytest.raises(DiagnosticQueryError) as exc_info:
            CheckOnHost(UNUSED, conn).check()
        assert exc_info.value.host == conn.host
        assert exc_info.value.diagnostic is UNUSED
        assert isinstance(exc_info.value.cause, psycopg2.ProgrammingError)

    def test_unreachable(self):
        conn = make_connection("r1", unreachable=True)
        with pytest.raises(HostUnreachableError):
            CheckOnHost(UNUSED, conn).check()

    def test_connection_lost_mid_query(self):
        conn = make_connection("r1", connection_lost=True)
        with pytest.raises(HostUnreachableError) as exc_info:
            CheckOnHost(UNUSED, conn).check()
        assert not isinstance(exc_info.value, DiagnosticQueryError)
        assert exc_info.value.host == conn.host
        assert isinstance(exc_info.value.__cause__, psycopg2.OperationalError)

    def test_operational_error_on_open_session(self):
        error = psycopg2.OperationalError("canceling statement due to statement timeout")
        conn = make_connection("r1", query_error=error)
        with pytest.raises(DiagnosticQueryError):
            CheckOnHost(UNUSED, conn).check()


class TestStatistics:
    def test_timestamp(self):
        ts = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert get_last_stats_reset_timestamp(make_connection("p", stats_reset=ts)) == ts

    def test_never_reset(self):
        assert get_last_stats_reset_timestamp(make_connection("p")) is None

    def test_unreachable(self):
        with pytest.raises(HostUnreachableError):
            get_last_stats_reset_timestamp(make_connection("p", unreachable=True))

    def test_message(self):
        now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        message = last_stats_reset_message(now - timedelta(days=10, hours=3), now)
        assert message.startswith("Last statistics reset on this host was 10 days ago (")

    def test_message_never(self):
        assert last_stats_reset_message(None) == "Statistics have never been reset on this host"
