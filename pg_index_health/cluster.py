"""Running diagnostics against a whole cluster."""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Iterable

from pg_index_health import statistics
from pg_index_health.concurrency import run_on_hosts
from pg_index_health.context import SchemaContext
from pg_index_health.diagnostics import DiagnosticId, DiagnosticRegistry, standard_registry
from pg_index_health.executor import CheckOnHost
from pg_index_health.filters import Predicate, keep_all
from pg_index_health.roles import PrimaryHostDeterminer
from pg_index_health.topology import Topology, resolve_topology

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class RunState(enum.Enum):
    RESOLVING_TOPOLOGY = "resolving_topology"
    DISPATCHING = "dispatching"
    MERGING = "merging"
    DONE = "done"


class ClusterCheckOrchestrator:
    """Entry point for running one diagnostic on a cluster.

    Each call resolves the topology afresh, then runs the diagnostic either on
    the primary alone or on every host, merging per-host results with the
    diagnostic's combiner. Any failure aborts the call: partial results are
    never returned.

    Args:
        connections: One connection per cluster member.
        registry: Diagnostic table; defaults to the standard one.
        determiner: Role check; defaults to ``PrimaryHostDeterminer``.
        timeout: Seconds to wait for all hosts in one fan-out step.
        stats_reader: Callable returning a host's last statistics reset time.
    """

    def __init__(
        self,
        connections: Iterable,
        registry: DiagnosticRegistry | None = None,
        determiner=None,
        timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
        stats_reader=statistics.get_last_stats_reset_timestamp,
    ):
        self.connections = tuple(connections)
        if not self.connections:
            raise ValueError("connections cannot be empty")
        self.registry = registry if registry is not None else standard_registry()
        self.determiner = determiner if determiner is not None else PrimaryHostDeterminer()
        self.timeout = timeout
        self._stats_reader = stats_reader
        self._executors: dict[tuple, CheckOnHost] = {}
        self._lock = threading.Lock()

    def resolve_topology(self) -> Topology:
        return resolve_topology(self.connections, self.determiner, timeout=self.timeout)

    def run_diagnostic(
        self,
        diagnostic_id: DiagnosticId | str,
        context: SchemaContext | None = None,
        exclusion_filter: Predicate = keep_all,
    ) -> list:
        diagnostic = self.registry.get(diagnostic_id)
        if context is None:
            context = SchemaContext.of_default()

        self._transition(diagnostic, RunState.RESOLVING_TOPOLOGY)
        topology = self.resolve_topology()

        def run_on(connection):
            if diagnostic.id is DiagnosticId.UNUSED_INDEXES:
                self._log_stats_reset(connection)
            return self._executor(diagnostic, connection).check(context, exclusion_filter)

        self._transition(diagnostic, RunState.DISPATCHING)
        if not diagnostic.is_across_cluster:
            findings = run_on_hosts(run_on, [topology.primary], timeout=self.timeout)[0]
            self._transition(diagnostic, RunState.DONE)
            return findings

        per_host = run_on_hosts(run_on, topology.all_hosts, timeout=self.timeout)

        self._transition(diagnostic, RunState.MERGING)
        findings = diagnostic.combiner(per_host)
        self._transition(diagnostic, RunState.DONE)
        return findings

    def _executor(self, diagnostic, connection) -> CheckOnHost:
        key = (diagnostic.id, connection.host)
        with self._lock:
            executor = self._executors.get(key)
            if executor is None:
                executor = CheckOnHost(diagnostic, connection)
                self._executors[key] = executor
            return executor

    def _log_stats_reset(self, connection):
        timestamp = self._stats_reader(connection)
        logger.info("%s: %s", connection.host, statistics.last_stats_reset_message(timestamp))

    @staticmethod
    def _transition(diagnostic, state: RunState):
        logger.debug("%s: %s", diagnostic, state.value)
