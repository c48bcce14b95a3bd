"""Server configuration parameters worth tuning.

A handful of settings ship with defaults sized for a laptop. Finding one of
them still at its default on a production host is usually an oversight.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

import psycopg2

from pg_index_health.concurrency import run_on_hosts
from pg_index_health.errors import HostUnreachableError

logger = logging.getLogger(__name__)

SHOW_ALL_QUERY = "show all"

_PARAM_NAME = re.compile(r"^[a-z_][a-z0-9_.]*$")


class ImportantParam(enum.Enum):
    SHARED_BUFFERS = ("shared_buffers", "128MB")
    WORK_MEM = ("work_mem", "4MB")
    MAINTENANCE_WORK_MEM = ("maintenance_work_mem", "64MB")
    RANDOM_PAGE_COST = ("random_page_cost", "4")
    LOG_MIN_DURATION_STATEMENT = ("log_min_duration_statement", "-1")
    IDLE_IN_TRANSACTION_SESSION_TIMEOUT = ("idle_in_transaction_session_timeout", "0")
    STATEMENT_TIMEOUT = ("statement_timeout", "0")
    LOCK_TIMEOUT = ("lock_timeout", "0")
    EFFECTIVE_CACHE_SIZE = ("effective_cache_size", "4GB")
    TEMP_FILE_LIMIT = ("temp_file_limit", "-1")

    def __init__(self, param_name: str, default_value: str):
        self.param_name = param_name
        self.default_value = default_value


@dataclass(frozen=True, order=True)
class PgParam:
    name: str
    value: str

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("name cannot be blank")
        object.__setattr__(self, "value", "" if self.value is None else str(self.value))


def show_query(param_name: str) -> str:
    """``show`` takes no bind parameters, so the name is checked instead."""
    name = param_name.strip().lower() if isinstance(param_name, str) else ""
    if not _PARAM_NAME.match(name):
        raise ValueError(f"Invalid parameter name: {param_name!r}")
    return f"show {name}"


def _show(cur, param_name: str) -> PgParam:
    cur.execute(show_query(param_name))
    row = cur.fetchone()
    return PgParam(param_name, row[0] if row else "")


def get_param_current_value(connection, param_name: str) -> PgParam:
    query = show_query(param_name)
    try:
        with connection.session() as conn:
            with conn.cursor() as cur:
                cur.execute(query)
                row = cur.fetchone()
    except psycopg2.Error as exc:
        raise HostUnreachableError(connection.host, exc) from exc
    return PgParam(param_name, row[0] if row else "")


def get_params_current_values(connection) -> list[PgParam]:
    """Every setting on the connection's host, sorted by name."""
    try:
        with connection.session() as conn:
            with conn.cursor() as cur:
                cur.execute(SHOW_ALL_QUERY)
                rows = cur.fetchall()
    except psycopg2.Error as exc:
        raise HostUnreachableError(connection.host, exc) from exc
    return sorted(PgParam(row[0], row[1]) for row in rows)


def get_params_with_default_values(connection) -> list[PgParam]:
    """Important parameters still at their stock default on the connection's host."""
    try:
        with connection.session() as conn:
            with conn.cursor() as cur:
                current = [(p, _show(cur, p.param_name)) for p in ImportantParam]
    except psycopg2.Error as exc:
        raise HostUnreachableError(connection.host, exc) from exc

    at_default = [param for important, param in current if param.value == important.default_value]
    logger.debug("%s: %d parameter(s) at default value", connection.host, len(at_default))
    return at_default


def params_with_default_values_on_hosts(
    connections: Sequence, timeout: float | None = None
) -> list[tuple]:
    """``(host, params)`` pairs for every connection, in input order.

    Settings are per server, so every host is asked, replicas included.
    """
    connections = list(connections)
    results = run_on_hosts(get_params_with_default_values, connections, timeout=timeout)
    return [(c.host, params) for c, params in zip(connections, results)]
