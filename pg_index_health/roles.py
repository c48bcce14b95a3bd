"""Detection of the current writable primary."""

from __future__ import annotations

import logging

import psycopg2

from pg_index_health.errors import HostUnreachableError

logger = logging.getLogger(__name__)

IS_PRIMARY_QUERY = "select not pg_is_in_recovery()"


class PrimaryHostDeterminer:
    """Asks a host whether it is currently the primary.

    Every call issues exactly one lightweight query: roles change
    asynchronously on failover, so nothing is cached.
    """

    def is_primary(self, connection) -> bool:
        try:
            with connection.session() as conn:
                with conn.cursor() as cur:
                    cur.execute(IS_PRIMARY_QUERY)
                    row = cur.fetchone()
        except psycopg2.Error as exc:
            raise HostUnreachableError(connection.host, exc) from exc
        if row is None:
            raise HostUnreachableError(
                connection.host, message=f"Host {connection.host} returned no recovery status"
            )
        primary = bool(row[0])
        logger.debug("Host %s is %s", connection.host, "primary" if primary else "replica")
        return primary
