"""Per-host statistics metadata."""

from __future__ import annotations

from datetime import datetime, timezone

import psycopg2

from pg_index_health.errors import HostUnreachableError

STATS_RESET_QUERY = """
    select stats_reset
    from pg_catalog.pg_stat_database
    where datname = current_database()
"""


def get_last_stats_reset_timestamp(connection) -> datetime | None:
    """When statistics were last reset on the connection's host, or None if never."""
    try:
        with connection.session() as conn:
            with conn.cursor() as cur:
                cur.execute(STATS_RESET_QUERY)
                row = cur.fetchone()
    except psycopg2.Error as exc:
        raise HostUnreachableError(connection.host, exc) from exc
    return row[0] if row else None


def last_stats_reset_message(timestamp: datetime | None, now: datetime | None = None) -> str:
    if timestamp is None:
        return "Statistics have never been reset on this host"
    if now is None:
        now = datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    days = max((now - timestamp).days, 0)
    return f"Last statistics reset on this host was {days} days ago ({timestamp.isoformat()})"
