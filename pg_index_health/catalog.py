"""Lookup of query text and row mappers by diagnostic."""

from __future__ import annotations

from types import MappingProxyType

from pg_index_health.checks.base import BaseCheck
from pg_index_health.checks.columns import ColumnsWithJsonTypeCheck, ColumnsWithoutDescriptionCheck
from pg_index_health.checks.constraints import ForeignKeysWithoutIndexCheck, NotValidConstraintsCheck
from pg_index_health.checks.functions import FunctionsWithoutDescriptionCheck
from pg_index_health.checks.indexes import (
    BloatedIndexesCheck,
    DuplicatedIndexesCheck,
    IndexesWithNullValuesCheck,
    IntersectedIndexesCheck,
    InvalidIndexesCheck,
    UnusedIndexesCheck,
)
from pg_index_health.checks.sequences import SequenceOverflowCheck
from pg_index_health.checks.tables import (
    BloatedTablesCheck,
    TablesWithMissingIndexesCheck,
    TablesWithoutDescriptionCheck,
    TablesWithoutPrimaryKeyCheck,
)
from pg_index_health.context import SchemaContext
from pg_index_health.diagnostics import DiagnosticId
from pg_index_health.errors import RegistryConfigurationError

STANDARD_CHECKS: tuple[type[BaseCheck], ...] = (
    BloatedIndexesCheck,
    BloatedTablesCheck,
    DuplicatedIndexesCheck,
    ForeignKeysWithoutIndexCheck,
    IndexesWithNullValuesCheck,
    IntersectedIndexesCheck,
    InvalidIndexesCheck,
    TablesWithMissingIndexesCheck,
    TablesWithoutPrimaryKeyCheck,
    UnusedIndexesCheck,
    TablesWithoutDescriptionCheck,
    ColumnsWithoutDescriptionCheck,
    ColumnsWithJsonTypeCheck,
    FunctionsWithoutDescriptionCheck,
    NotValidConstraintsCheck,
    SequenceOverflowCheck,
)


def _build(checks) -> MappingProxyType:
    table = {}
    for cls in checks:
        if cls.diagnostic in table:
            raise RegistryConfigurationError(f"query for diagnostic {cls.diagnostic} is declared twice")
        table[cls.diagnostic] = cls()
    missing = [d.value for d in DiagnosticId if d not in table]
    if missing:
        raise RegistryConfigurationError(f"no query for diagnostics: {', '.join(missing)}")
    return MappingProxyType({d: table[d] for d in DiagnosticId})


_CHECKS = _build(STANDARD_CHECKS)


def get_check(diagnostic_id: DiagnosticId | str) -> BaseCheck:
    return _CHECKS[DiagnosticId(diagnostic_id)]


def all_checks() -> list[BaseCheck]:
    """Every check, in ``DiagnosticId`` order."""
    return list(_CHECKS.values())


def load_query_text(diagnostic_id: DiagnosticId | str) -> str:
    return get_check(diagnostic_id).sql


def map_row(diagnostic_id: DiagnosticId | str, row: dict, context: SchemaContext):
    return get_check(diagnostic_id).map_row(row, context)
