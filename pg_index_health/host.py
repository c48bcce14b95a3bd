"""Host identity value type."""

from __future__ import annotations

from dataclasses import dataclass, field

from pg_index_health import urls
from pg_index_health.errors import InvalidConnectionStringError


@dataclass(frozen=True, order=True)
class HostIdentity:
    """One member of a cluster.

    Equality, hashing and ordering use ``(name, port)`` only: the connection
    string and the role hint are not identity-bearing, so an identity can be
    used as a cache key whatever URI it was built from.
    """

    name: str
    port: int
    connection_string: str = field(default="", compare=False)
    can_be_primary: bool = field(default=True, compare=False)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("host name cannot be blank")
        if not isinstance(self.port, int) or not urls.MIN_PORT <= self.port <= urls.MAX_PORT:
            raise ValueError(
                f"the port number must be in the range from {urls.MIN_PORT} to {urls.MAX_PORT}"
            )

    @property
    def key(self) -> str:
        return urls.host_key(self.name, self.port)

    def __str__(self):
        return self.key

    @classmethod
    def of_url(cls, url: str) -> HostIdentity:
        """Build an identity from a single-host connection string."""
        hosts = urls.parse_hosts(url)
        if len(hosts) > 1:
            raise InvalidConnectionStringError("url couldn't contain multiple hosts")
        name, port = hosts[0]
        return cls(
            name=name,
            port=port,
            connection_string=url,
            can_be_primary=not urls.is_replica_url(url),
        )
