"""Execution of one diagnostic on one host."""

from __future__ import annotations

import logging

import psycopg2
import psycopg2.extras

from pg_index_health import catalog
from pg_index_health.context import SchemaContext
from pg_index_health.diagnostics import Diagnostic
from pg_index_health.errors import DiagnosticQueryError, HostUnreachableError
from pg_index_health.filters import Predicate, keep_all

logger = logging.getLogger(__name__)


class CheckOnHost:
    """A diagnostic bound to one host.

    Holds no mutable state, so one instance can be reused for any number of
    calls and from any thread.
    """

    def __init__(self, diagnostic: Diagnostic, connection):
        self.diagnostic = diagnostic
        self.connection = connection
        self._check = catalog.get_check(diagnostic.id)

    @property
    def host(self):
        return self.connection.host

    def check(self, context: SchemaContext | None = None, exclusion_filter: Predicate = keep_all) -> list:
        """Run the query and return the findings that pass ``exclusion_filter``.

        Raises:
            HostUnreachableError: A session could not be opened or was lost.
            DiagnosticQueryError: The query failed on the server.
        """
        if context is None:
            context = SchemaContext.of_default()
        logger.debug("Running %s on %s for schema %s", self.diagnostic, self.host, context.schema_name)
        with self.connection.session() as conn:
            try:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    cur.execute(self._check.sql, context.query_params())
                    rows = cur.fetchall()
            except psycopg2.Error as exc:
                # Server gone mid-query: the host, not the query, is at fault.
                if isinstance(exc, psycopg2.OperationalError) and conn.closed:
                    raise HostUnreachableError(self.host, exc) from exc
                raise DiagnosticQueryError(self.diagnostic, self.host, exc) from exc

        findings = [self._check.map_row(row, context) for row in rows]
        result = [f for f in findings if exclusion_filter(f)]
        logger.debug(
            "%s on %s: %d row(s), %d after exclusions", self.diagnostic, self.host, len(findings), len(result)
        )
        return result

    def __repr__(self):
        return f"<CheckOnHost {self.diagnostic} on {self.host}>"
