"""Key-value text renderer, one line per diagnostic.

Lines look like ``db_indexes_health<TAB>unused_indexes<TAB>3`` so they can
be grepped from logs or scraped into a metrics system. A failed diagnostic
reports ``error`` instead of a count.
"""

from __future__ import annotations

from pg_index_health.models import HealthReport

KEY = "db_indexes_health"


def render(report: HealthReport) -> str:
    lines = [f"{KEY}\t{r.diagnostic}\t{'error' if r.error else len(r.findings)}" for r in report.results]
    return "\n".join(lines) + "\n" if lines else ""
