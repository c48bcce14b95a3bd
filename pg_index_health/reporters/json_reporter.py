"""JSON report renderer."""

from __future__ import annotations

import dataclasses
import json

from pg_index_health import __version__
from pg_index_health.models import HealthReport


def finding_to_dict(finding) -> dict:
    data = {"name": finding.name}
    data.update(dataclasses.asdict(finding))
    return data


def render(report: HealthReport) -> str:
    """Render a HealthReport as a JSON string."""
    data = {
        "meta": {
            "tool": "pg-index-health",
            "version": __version__,
            "timestamp": report.timestamp.isoformat(),
            "database": report.database,
            "primary": report.primary,
            "hosts": report.hosts,
            "schema": report.schema_name,
        },
        "summary": {
            "total_diagnostics": report.diagnostics_total,
            "diagnostics_passed": report.diagnostics_passed,
            "diagnostics_failed": report.diagnostics_failed,
            "findings": report.findings_total,
        },
        "results": [],
    }

    for result in report.results:
        data["results"].append({
            "diagnostic": result.diagnostic,
            "description": result.description,
            "passed": result.passed,
            "error": result.error,
            "findings": [finding_to_dict(f) for f in result.findings],
        })

    return json.dumps(data, indent=2, default=str)
