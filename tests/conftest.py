"""Shared fixtures for pg-index-health tests."""

from __future__ import annotations

import contextlib
import threading
from datetime import datetime, timezone

import psycopg2
import pytest

from pg_index_health import catalog
from pg_index_health.diagnostics import DiagnosticId
from pg_index_health.errors import HostUnreachableError
from pg_index_health.host import HostIdentity
from pg_index_health.models import DiagnosticResult, HealthReport, Index, Table
from pg_index_health.roles import IS_PRIMARY_QUERY
from pg_index_health.settings import SHOW_ALL_QUERY
from pg_index_health.statistics import STATS_RESET_QUERY


def make_host(name: str = "primary", port: int = 5432, db: str = "demo") -> HostIdentity:
    """Factory for creating HostIdentity instances with sensible defaults."""
    return HostIdentity(name, port, f"postgresql://{name}:{port}/{db}")


class FakeCursor:
    def __init__(self, connection: "FakeConnection", session: "FakeSession"):
        self._connection = connection
        self._session = session
        self._rows: list = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self._connection.executed.append((sql, params))
        if self._connection.connection_lost:
            self._session.closed = 2
            raise psycopg2.OperationalError("server closed the connection unexpectedly")
        self._rows = self._connection.respond(sql)

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)


class FakeSession:
    def __init__(self, connection: "FakeConnection"):
        self._connection = connection
        self.closed = False

    def cursor(self, cursor_factory=None):
        return FakeCursor(self._connection, self)

    def close(self):
        self.closed = True


class FakeConnection:
    """In-memory stand-in for ``PgConnection``.

    Args:
        host: Identity of the host.
        is_primary: Answer to the role check.
        rows: Result rows per diagnostic, as the database would return them.
        stats_reset: Value of ``pg_stat_database.stats_reset``.
        unreachable: Fail every session with ``HostUnreachableError``.
        query_error: Fail diagnostic queries with this driver error.
        connection_lost: Drop the session on the first query.
        settings: Server settings answered to ``show``.
    """

    def __init__(
        self,
        host: HostIdentity,
        is_primary: bool = False,
        rows: dict | None = None,
        stats_reset: datetime | None = None,
        unreachable: bool = False,
        query_error: Exception | None = None,
        connection_lost: bool = False,
        settings: dict | None = None,
    ):
        self.host = host
        self.is_primary = is_primary
        self.rows = {DiagnosticId(k): v for k, v in (rows or {}).items()}
        self.stats_reset = stats_reset
        self.unreachable = unreachable
        self.query_error = query_error
        self.connection_lost = connection_lost
        self.settings = dict(settings or {})
        self.executed: list = []
        self.sessions = 0
        self._lock = threading.Lock()

    @contextlib.contextmanager
    def session(self):
        if self.unreachable:
            raise HostUnreachableError(self.host, psycopg2.OperationalError("Connection refused"))
        with self._lock:
            self.sessions += 1
        session = FakeSession(self)
        try:
            yield session
        finally:
            session.close()

    def respond(self, sql):
        if sql == IS_PRIMARY_QUERY:
            return [(self.is_primary,)]
        if sql == STATS_RESET_QUERY:
            return [(self.stats_reset,)]
        if sql == SHOW_ALL_QUERY:
            return [(name, value, "") for name, value in sorted(self.settings.items())]
        if sql.startswith("show "):
            name = sql[len("show "):]
            if name not in self.settings:
                raise psycopg2.ProgrammingError(f'unrecognized configuration parameter "{name}"')
            return [(self.settings[name],)]
        if self.query_error is not None:
            raise self.query_error
        for diagnostic_id in DiagnosticId:
            if catalog.load_query_text(diagnostic_id) == sql:
                return self.rows.get(diagnostic_id, [])
        raise AssertionError(f"unexpected query: {sql}")

    def queries(self) -> list[str]:
        return [sql for sql, _params in self.executed]

    def __repr__(self):
        return f"<FakeConnection {self.host}>"


def make_connection(name: str = "primary", port: int = 5432, **kwargs) -> FakeConnection:
    return FakeConnection(make_host(name, port), **kwargs)


class RecordingDeterminer:
    """Role check answering from ``FakeConnection.is_primary``."""

    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def is_primary(self, connection) -> bool:
        with self._lock:
            self.calls.append(connection.host)
        if connection.unreachable:
            raise HostUnreachableError(connection.host)
        return connection.is_primary


def unused_index_row(table: str, index: str, scans: int = 0, size: int = 8192) -> dict:
    return {"table_name": table, "index_name": index, "index_size": size, "index_scans": scans}


def missing_index_row(table: str, seq_scan: int = 500, idx_scan: int = 10, size: int = 65536) -> dict:
    return {"table_name": table, "table_size": size, "seq_scan": seq_scan, "idx_scan": idx_scan}


@pytest.fixture
def cluster() -> list[FakeConnection]:
    """Primary P with replicas R1 and R2, nothing reported yet."""
    return [
        make_connection("p", is_primary=True),
        make_connection("r1"),
        make_connection("r2"),
    ]


@pytest.fixture
def determiner() -> RecordingDeterminer:
    return RecordingDeterminer()


@pytest.fixture
def empty_report() -> HealthReport:
    """HealthReport with no results."""
    return HealthReport(
        database="demo",
        primary="p:5432",
        hosts=["p:5432", "r1:5432"],
        timestamp=datetime(2026, 1, 27, 12, 0, 0, tzinfo=timezone.utc),
        schema_name="public",
    )


@pytest.fixture
def sample_report(empty_report) -> HealthReport:
    """HealthReport with a passed, a failing and an errored diagnostic."""
    report = empty_report
    report.results.append(DiagnosticResult(
        diagnostic="invalid_indexes",
        description="Invalid (broken) indexes",
    ))
    report.results.append(DiagnosticResult(
        diagnostic="tables_without_primary_key",
        description="Tables without primary key",
        findings=[Table("orders", 16384), Table("audit_log", 8192)],
    ))
    report.results.append(DiagnosticResult(
        diagnostic="duplicated_indexes",
        description="Duplicated (completely identical) indexes",
        error="DiagnosticQueryError: boom",
    ))
    report.results.append(DiagnosticResult(
        diagnostic="unused_indexes",
        description="Unused indexes",
        findings=[Index("orders", "idx_orders_note")],
    ))
    return report
