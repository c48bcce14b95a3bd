"""Base class for all diagnostic queries."""

from __future__ import annotations

import abc

from pg_index_health.context import SchemaContext
from pg_index_health.diagnostics import DiagnosticId


class BaseCheck(abc.ABC):
    """Query text and row mapping for one diagnostic.

    To add a diagnostic, add a member to ``DiagnosticId``, a registry entry in
    ``diagnostics.STANDARD_DIAGNOSTICS`` and a subclass in one of the
    ``checks`` modules, listed in ``catalog.STANDARD_CHECKS``.

    Attributes:
        diagnostic: The diagnostic this query implements.
        description: Human-readable summary of what the diagnostic finds.
        sql: Query text. Parameters use the psycopg2 named style and may
            reference any key of ``SchemaContext.query_params()``; a literal
            percent sign must be written ``%%``.
    """

    diagnostic: DiagnosticId
    description: str = ""
    sql: str = ""

    @abc.abstractmethod
    def map_row(self, row: dict, context: SchemaContext):
        """Turn one result row into a finding.

        Args:
            row: Mapping of column name to value.
            context: Schema context the query ran with; used to qualify names.
        """
        ...

    @property
    def name(self) -> str:
        return self.diagnostic.value

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}>"
