"""Resolution of the live cluster topology."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from pg_index_health.concurrency import run_on_hosts
from pg_index_health.errors import AmbiguousPrimaryError, NoPrimaryFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Topology:
    """One primary and its replicas, as observed at resolution time."""

    primary: object
    replicas: tuple = ()

    @property
    def all_hosts(self) -> tuple:
        """Primary first, then replicas ordered by host identity."""
        return (self.primary, *self.replicas)

    def __len__(self):
        return 1 + len(self.replicas)


def resolve_topology(connections: Iterable, determiner, timeout: float | None = None) -> Topology:
    """Ask every member for its role and require exactly one confirmed primary.

    Never cached: the primary can change between two calls, so callers
    resolve afresh each time. Role check errors propagate unchanged.
    """
    # Identity is the host, not the connection object.
    members = sorted({c.host: c for c in connections}.values(), key=lambda c: c.host)
    if not members:
        raise NoPrimaryFoundError("No hosts given to resolve the cluster topology")

    roles = run_on_hosts(determiner.is_primary, members, timeout=timeout)
    primaries = [c for c, is_primary in zip(members, roles) if is_primary]

    if not primaries:
        raise NoPrimaryFoundError(
            "Connection to primary host not found in " + ", ".join(str(c.host) for c in members)
        )
    if len(primaries) > 1:
        raise AmbiguousPrimaryError([c.host for c in primaries])

    primary = primaries[0]
    if not primary.host.can_be_primary:
        logger.warning("Host %s was configured as a standby but is the primary now", primary.host)
    replicas = tuple(c for c in members if c is not primary)
    logger.info("Current primary is %s (%d replica(s))", primary.host, len(replicas))
    return Topology(primary=primary, replicas=replicas)
