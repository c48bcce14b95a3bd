"""The closed set of diagnostics and their execution policies."""

from __future__ import annotations

import enum
import functools
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from types import MappingProxyType

from pg_index_health import combiners, models
from pg_index_health.errors import RegistryConfigurationError


class DiagnosticId(enum.Enum):
    BLOATED_INDEXES = "bloated_indexes"
    BLOATED_TABLES = "bloated_tables"
    DUPLICATED_INDEXES = "duplicated_indexes"
    FOREIGN_KEYS_WITHOUT_INDEX = "foreign_keys_without_index"
    INDEXES_WITH_NULL_VALUES = "indexes_with_null_values"
    INTERSECTED_INDEXES = "intersected_indexes"
    INVALID_INDEXES = "invalid_indexes"
    TABLES_WITH_MISSING_INDEXES = "tables_with_missing_indexes"
    TABLES_WITHOUT_PRIMARY_KEY = "tables_without_primary_key"
    UNUSED_INDEXES = "unused_indexes"
    TABLES_WITHOUT_DESCRIPTION = "tables_without_description"
    COLUMNS_WITHOUT_DESCRIPTION = "columns_without_description"
    COLUMNS_WITH_JSON_TYPE = "columns_with_json_type"
    FUNCTIONS_WITHOUT_DESCRIPTION = "functions_without_description"
    NOT_VALID_CONSTRAINTS = "not_valid_constraints"
    SEQUENCE_OVERFLOW = "sequence_overflow"

    def __str__(self):
        return self.value


class ExecutionPolicy(enum.Enum):
    PRIMARY_ONLY = "primary_only"
    ACROSS_CLUSTER = "across_cluster"


@dataclass(frozen=True)
class Diagnostic:
    """One registry entry.

    ``combiner`` is required for ACROSS_CLUSTER and forbidden otherwise;
    the check happens here, at construction, never at call time.
    """

    id: DiagnosticId
    result_type: type
    execution_policy: ExecutionPolicy = ExecutionPolicy.PRIMARY_ONLY
    combiner: Callable | None = None

    def __post_init__(self):
        if self.execution_policy is ExecutionPolicy.ACROSS_CLUSTER and self.combiner is None:
            raise RegistryConfigurationError(
                f"combiner cannot be None for across cluster diagnostic {self.id}"
            )
        if self.execution_policy is ExecutionPolicy.PRIMARY_ONLY and self.combiner is not None:
            raise RegistryConfigurationError(
                f"combiner is meaningless for primary-only diagnostic {self.id}"
            )

    @property
    def is_across_cluster(self) -> bool:
        return self.execution_policy is ExecutionPolicy.ACROSS_CLUSTER

    def __str__(self):
        return str(self.id)


class DiagnosticRegistry:
    """Read-only table of diagnostics, total over :class:`DiagnosticId`."""

    def __init__(self, diagnostics: Iterable[Diagnostic]):
        table = {}
        for diagnostic in diagnostics:
            if diagnostic.id in table:
                raise RegistryConfigurationError(f"diagnostic {diagnostic.id} is declared twice")
            table[diagnostic.id] = diagnostic
        missing = [d.value for d in DiagnosticId if d not in table]
        if missing:
            raise RegistryConfigurationError(f"no registry entry for diagnostics: {', '.join(missing)}")
        self._table = MappingProxyType({d: table[d] for d in DiagnosticId})

    def get(self, diagnostic_id: DiagnosticId | str) -> Diagnostic:
        return self._table[DiagnosticId(diagnostic_id)]

    def all_across_cluster(self) -> frozenset[Diagnostic]:
        return frozenset(d for d in self._table.values() if d.is_across_cluster)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._table.values())

    def __len__(self):
        return len(self._table)

    def __contains__(self, diagnostic_id):
        return diagnostic_id in self._table


_ACROSS = ExecutionPolicy.ACROSS_CLUSTER

STANDARD_DIAGNOSTICS = (
    Diagnostic(DiagnosticId.BLOATED_INDEXES, models.IndexWithBloat),
    Diagnostic(DiagnosticId.BLOATED_TABLES, models.TableWithBloat),
    Diagnostic(DiagnosticId.DUPLICATED_INDEXES, models.DuplicatedIndexes),
    Diagnostic(DiagnosticId.FOREIGN_KEYS_WITHOUT_INDEX, models.ForeignKey),
    Diagnostic(DiagnosticId.INDEXES_WITH_NULL_VALUES, models.IndexWithColumns),
    Diagnostic(DiagnosticId.INTERSECTED_INDEXES, models.DuplicatedIndexes),
    Diagnostic(DiagnosticId.INVALID_INDEXES, models.Index),
    Diagnostic(
        DiagnosticId.TABLES_WITH_MISSING_INDEXES,
        models.TableWithMissingIndex,
        _ACROSS,
        combiners.union_distinct_sorted,
    ),
    Diagnostic(DiagnosticId.TABLES_WITHOUT_PRIMARY_KEY, models.Table),
    Diagnostic(DiagnosticId.UNUSED_INDEXES, models.UnusedIndex, _ACROSS, combiners.intersection),
    Diagnostic(DiagnosticId.TABLES_WITHOUT_DESCRIPTION, models.Table),
    Diagnostic(DiagnosticId.COLUMNS_WITHOUT_DESCRIPTION, models.Column),
    Diagnostic(DiagnosticId.COLUMNS_WITH_JSON_TYPE, models.Column),
    Diagnostic(DiagnosticId.FUNCTIONS_WITHOUT_DESCRIPTION, models.StoredFunction),
    Diagnostic(DiagnosticId.NOT_VALID_CONSTRAINTS, models.Constraint),
    Diagnostic(DiagnosticId.SEQUENCE_OVERFLOW, models.SequenceState),
)


@functools.lru_cache(maxsize=None)
def standard_registry() -> DiagnosticRegistry:
    """The process-wide registry, built once."""
    return DiagnosticRegistry(STANDARD_DIAGNOSTICS)
