"""Parsing and re-synthesis of multi-host PostgreSQL connection URIs.

A cluster is described by a libpq URI listing every member::

    postgresql://host-1:5432,host-2:5433/db_name?target_session_attrs=primary

The helpers here split such a URI into one canonical ``(host, port)`` per
member, build a role-agnostic single-host URI for each of them, and join
single-host URIs back into one multi-host URI. Output is deterministic
because callers cache on string equality.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from pg_index_health.errors import InvalidConnectionStringError

URL_HEADER = "postgresql://"
ACCEPTED_HEADERS = (URL_HEADER, "postgres://")

SESSION_ATTRS_PARAM = "target_session_attrs"
PRIMARY_SESSION_ATTRS = frozenset({"primary", "read-write"})
REPLICA_SESSION_ATTRS = frozenset({"standby", "read-only", "prefer-standby"})

DEFAULT_URL_PARAMETERS = {
    SESSION_ATTRS_PARAM: "primary",
    "connect_timeout": "2",
    "keepalives": "1",
}

MIN_PORT = 1024
MAX_PORT = 65535


def validate_url(url: str, argument_name: str = "url") -> str:
    """Return ``url`` unchanged if it is non-blank and carries a known scheme."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidConnectionStringError(f"{argument_name} cannot be blank")
    if not url.startswith(ACCEPTED_HEADERS):
        raise InvalidConnectionStringError(
            f"{argument_name} has invalid format: expected it to start with {URL_HEADER}"
        )
    return url


def _split(url: str) -> tuple[str, str]:
    """Split a URI into its host list and the ``/db?params`` tail."""
    validate_url(url)
    rest = url.split("://", 1)[1]
    slash = rest.find("/")
    if slash == -1:
        hosts, tail = rest, ""
    else:
        hosts, tail = rest[:slash], rest[slash:]
    if "@" in hosts:
        raise InvalidConnectionStringError(
            "user info is not supported in the connection string; pass credentials separately"
        )
    return hosts, tail


def _parse_host_segment(segment: str) -> tuple[str, int]:
    host, sep, port = segment.rpartition(":")
    if not sep or not host or not port:
        raise InvalidConnectionStringError(f"host '{segment}' has no port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port_number = int(port)
    except ValueError:
        raise InvalidConnectionStringError(f"host '{segment}' has a non-numeric port") from None
    if not MIN_PORT <= port_number <= MAX_PORT:
        raise InvalidConnectionStringError(
            f"host '{segment}': the port number must be in the range from {MIN_PORT} to {MAX_PORT}"
        )
    if not host.strip():
        raise InvalidConnectionStringError(f"host '{segment}' has a blank name")
    return host, port_number


def host_key(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def parse_hosts(url: str) -> list[tuple[str, int]]:
    """Return the distinct ``(host, port)`` pairs of ``url`` sorted by host name."""
    hosts, _tail = _split(url)
    pairs = {_parse_host_segment(s.strip()) for s in hosts.split(",") if s.strip()}
    if not pairs:
        raise InvalidConnectionStringError("connection string does not contain any host")
    return sorted(pairs)


def _split_params(tail: str) -> tuple[str, list[tuple[str, str]]]:
    path, _sep, query = tail.partition("?")
    params = []
    for pair in query.split("&"):
        if not pair:
            continue
        key, _eq, value = pair.partition("=")
        params.append((key, value))
    return path, params


def _join_params(params: Iterable[tuple[str, str]]) -> str:
    joined = "&".join(f"{k}={v}" for k, v in params)
    return f"?{joined}" if joined else ""


def _role_agnostic_tail(tail: str) -> str:
    path, params = _split_params(tail)
    normalized = [
        (k, "any") if k == SESSION_ATTRS_PARAM and v in PRIMARY_SESSION_ATTRS else (k, v)
        for k, v in params
    ]
    return path + _join_params(normalized)


def per_host_connection_strings(url: str) -> dict[str, str]:
    """Build a single-host URI for every member of ``url``.

    Database name and query parameters are preserved, except that a
    primary-only ``target_session_attrs`` is relaxed to ``any``: these URIs
    are used to reach each host directly whatever its current role.
    """
    _hosts, tail = _split(url)
    replica_tail = _role_agnostic_tail(tail)
    result = {}
    for host, port in parse_hosts(url):
        key = host_key(host, port)
        result[key] = f"{URL_HEADER}{key}{replica_tail}"
    return result


def session_attrs(url: str) -> str | None:
    _hosts, tail = _split(url)
    _path, params = _split_params(tail)
    for key, value in params:
        if key == SESSION_ATTRS_PARAM:
            return value
    return None


def is_replica_url(url: str) -> bool:
    """True if ``url`` explicitly asks to be routed to a standby."""
    return session_attrs(url) in REPLICA_SESSION_ATTRS


def extract_database_name(url: str) -> str:
    _hosts, tail = _split(url)
    path, _params = _split_params(tail)
    name = path.lstrip("/")
    if not name:
        raise InvalidConnectionStringError(f"connection string {url} has no database name")
    return name


def build_joint_connection_string(
    urls: Iterable[str],
    extra_params: Mapping[str, str] | None = None,
) -> str:
    """Join several URIs sharing one database into a single multi-host URI.

    Parameters are the defaults overridden by ``extra_params`` and emitted in
    sorted key order; parameters of the input URIs are not carried over.
    """
    urls = list(urls)
    if not urls:
        raise InvalidConnectionStringError("at least one connection string is required")

    db_names = {extract_database_name(u) for u in urls}
    if len(db_names) > 1:
        raise InvalidConnectionStringError(
            f"connection strings point to different databases: {sorted(db_names)}"
        )

    pairs = set()
    for url in urls:
        pairs.update(parse_hosts(url))
    hosts = ",".join(host_key(h, p) for h, p in sorted(pairs))

    params = dict(DEFAULT_URL_PARAMETERS)
    params.update({str(k): str(v) for k, v in (extra_params or {}).items()})
    query = _join_params(sorted(params.items()))

    return f"{URL_HEADER}{hosts}/{db_names.pop()}{query}"
