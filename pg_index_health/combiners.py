"""Strategies reducing per-host finding lists into one cluster-level result.

Both strategies are order independent, so per-host lists may arrive in any
order from concurrent dispatch.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

logger = logging.getLogger(__name__)


def union_distinct_sorted(per_host: Sequence[Sequence]) -> list:
    """Everything reported by any host, deduplicated and sorted.

    Used where hosts accumulate different read patterns, e.g. tables with
    missing indexes: a problem seen on any host is a problem.
    """
    logger.debug("Results from all hosts = %s", per_host)
    result = sorted(dict.fromkeys(f for findings in per_host for f in findings))
    logger.debug("Union result %s", result)
    return result


def intersection(per_host: Sequence[Sequence]) -> list:
    """Only what every host reports, deduplicated and sorted.

    Used for unused indexes: an index looks unused on a replica that no read
    traffic was routed to, so it is reported only if no host has used it.
    Findings are matched by natural equality, which ignores host-local
    counters; the representative kept is the one from the first list.
    """
    logger.debug("Results from all hosts = %s", per_host)
    if not per_host:
        return []
    common = dict.fromkeys(per_host[0])
    for findings in per_host[1:]:
        seen = set(findings)
        common = {f: None for f in common if f in seen}
    result = sorted(common)
    logger.debug("Intersection result %s", result)
    return result
