"""Fan-out/fan-in of independent per-host work."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import TypeVar

from pg_index_health.errors import ClusterTimeoutError

logger = logging.getLogger(__name__)

C = TypeVar("C")
R = TypeVar("R")


def run_on_hosts(
    fn: Callable[[C], R],
    connections: Sequence[C],
    timeout: float | None = None,
) -> list[R]:
    """Call ``fn`` once per connection concurrently and return results in input order.

    The pool is sized to the number of connections. The first failure is
    re-raised and every outstanding call is cancelled; so is the whole batch
    if ``timeout`` seconds pass before all calls complete. No partial result
    is ever returned.
    """
    if not connections:
        return []

    pool = ThreadPoolExecutor(max_workers=len(connections), thread_name_prefix="pg-host")
    try:
        futures = [pool.submit(fn, c) for c in connections]
        done, not_done = wait(futures, timeout=timeout, return_when=FIRST_EXCEPTION)

        for future in futures:
            if future in done and future.exception() is not None:
                raise future.exception()

        if not_done:
            pending = [c for c, f in zip(connections, futures) if f in not_done]
            host = getattr(pending[0], "host", pending[0])
            logger.debug("Timed out after %ss waiting for %d host(s)", timeout, len(pending))
            raise ClusterTimeoutError(
                host, message=f"Timed out after {timeout}s waiting for host {host}"
            )

        return [f.result() for f in futures]
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
