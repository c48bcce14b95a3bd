"""Health runner: runs the selected diagnostics and collects a report."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pg_index_health import catalog
from pg_index_health.connection import database_name
from pg_index_health.context import SchemaContext
from pg_index_health.errors import PgIndexHealthError
from pg_index_health.filters import Exclusions
from pg_index_health.models import DiagnosticResult, HealthReport

logger = logging.getLogger(__name__)


def select_diagnostics(registry, exclude=None, include_only=None) -> list:
    """Registry entries to run, in registry order.

    ``include_only`` (when not None) whitelists ids; ``exclude`` removes ids
    afterwards. Unknown ids are ignored.
    """
    exclude = set(exclude or ())
    selected = []
    for diagnostic in registry:
        name = diagnostic.id.value
        if include_only is not None and name not in include_only:
            continue
        if name in exclude:
            continue
        selected.append(diagnostic)
    return selected


def run_health_check(
    orchestrator,
    context: SchemaContext | None = None,
    exclusions: Exclusions | None = None,
    include_only: set[str] | None = None,
    exclude: set[str] | None = None,
) -> HealthReport:
    """Run every selected diagnostic on the cluster.

    Args:
        orchestrator: ``ClusterCheckOrchestrator`` for the target cluster.
        context: Schema and thresholds; defaults to the public schema.
        exclusions: Objects and thresholds to filter out of every result.
        include_only: Optional set of diagnostic ids to run (whitelist mode).
        exclude: Optional set of diagnostic ids to skip.

    Returns:
        HealthReport with one result per diagnostic. A diagnostic that fails
        is recorded with its error and no findings; the run continues.
    """
    if context is None:
        context = SchemaContext.of_default()
    if exclusions is None:
        exclusions = Exclusions.empty()
    exclusion_filter = exclusions.to_filter(context)

    topology = orchestrator.resolve_topology()
    database = database_name(orchestrator.connections)
    report = HealthReport(
        database=database,
        primary=str(topology.primary.host),
        hosts=[str(c.host) for c in topology.all_hosts],
        timestamp=datetime.now(timezone.utc),
        schema_name=context.schema_name,
    )

    diagnostics = select_diagnostics(orchestrator.registry, exclude, include_only)
    total = len(diagnostics)
    logger.info("Running %d diagnostics against %s on %d host(s)", total, database, len(topology))

    for i, diagnostic in enumerate(diagnostics, 1):
        check = catalog.get_check(diagnostic.id)
        logger.debug("[%d/%d] %s: %s", i, total, diagnostic, check.description)
        result = DiagnosticResult(diagnostic=diagnostic.id.value, description=check.description)
        try:
            result.findings = orchestrator.run_diagnostic(diagnostic.id, context, exclusion_filter)
        except PgIndexHealthError as exc:
            result.error = f"{type(exc).__name__}: {exc}"
            logger.error("%s failed: %s", diagnostic, result.error)
        if result.findings:
            logger.warning(
                "There are %d %s in the database %s",
                len(result.findings), check.description.lower(), database,
            )
        report.results.append(result)

    logger.info(
        "Done. %d passed, %d with findings, %d failed.",
        report.diagnostics_passed,
        report.diagnostics_total - report.diagnostics_passed - report.diagnostics_failed,
        report.diagnostics_failed,
    )
    return report
