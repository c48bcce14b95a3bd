"""Database connection management."""

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

import psycopg2
import psycopg2.extensions

from pg_index_health import urls
from pg_index_health.errors import HostUnreachableError
from pg_index_health.host import HostIdentity

logger = logging.getLogger(__name__)


def connect(
    dsn: str,
    user: str | None = None,
    password: str | None = None,
) -> psycopg2.extensions.connection:
    """Open a read-only, autocommit connection from a connection URI.

    Explicit credentials take precedence over anything in the DSN.
    Falls back to standard PG* environment variables.
    """
    params = {}
    if user:
        params["user"] = user
    if password:
        params["password"] = password
    elif os.environ.get("PGPASSWORD"):
        params["password"] = os.environ["PGPASSWORD"]
    conn = psycopg2.connect(dsn, **params)

    conn.set_session(readonly=True, autocommit=True)
    return conn


@dataclass(frozen=True)
class ConnectionCredentials:
    """Connection URIs of one cluster plus the credentials shared by its hosts."""

    connection_urls: tuple[str, ...]
    user: str | None = None
    password: str | None = None

    def __post_init__(self):
        if isinstance(self.connection_urls, str):
            raise TypeError("connection_urls must be a collection of strings")
        validated = tuple(sorted({urls.validate_url(u, "connection url") for u in self.connection_urls}))
        if not validated:
            raise ValueError("connection_urls cannot be empty")
        object.__setattr__(self, "connection_urls", validated)

    def __repr__(self):
        masked = "***" if self.password else None
        return (
            f"ConnectionCredentials(connection_urls={self.connection_urls!r}, "
            f"user={self.user!r}, password={masked!r})"
        )

    @classmethod
    def of_url(cls, url: str, user: str | None = None, password: str | None = None):
        return cls((url,), user, password)


class PgConnection:
    """A way to reach one host.

    No live session is held: ``session()`` opens a connection for the
    duration of a single role check or query and closes it afterwards.
    """

    def __init__(self, host: HostIdentity, user: str | None = None, password: str | None = None):
        self.host = host
        self._user = user
        self._password = password

    @contextlib.contextmanager
    def session(self) -> Iterator[psycopg2.extensions.connection]:
        try:
            conn = connect(self.host.connection_string, user=self._user, password=self._password)
        except psycopg2.Error as exc:
            raise HostUnreachableError(self.host, exc) from exc
        try:
            yield conn
        finally:
            conn.close()

    def __eq__(self, other):
        if not isinstance(other, PgConnection):
            return NotImplemented
        return self.host == other.host

    def __hash__(self):
        return hash(self.host)

    def __repr__(self):
        return f"<PgConnection {self.host}>"


def connections_for_cluster(credentials: ConnectionCredentials) -> list[PgConnection]:
    """Expand every configured URI into one connection per distinct host."""
    by_key: dict[str, PgConnection] = {}
    for url in credentials.connection_urls:
        for key, host_url in urls.per_host_connection_strings(url).items():
            if key in by_key:
                continue
            host = HostIdentity.of_url(host_url)
            by_key[key] = PgConnection(host, credentials.user, credentials.password)
    logger.debug("Cluster members: %s", ", ".join(by_key))
    return sorted(by_key.values(), key=lambda c: c.host)


def database_name(connections: Iterable[PgConnection]) -> str:
    names = {urls.extract_database_name(c.host.connection_string) for c in connections}
    return names.pop() if len(names) == 1 else ""
