"""Data models for findings and health reports.

Findings are immutable value objects. Equality, hashing and ordering use the
identity-bearing fields (qualified object names) only: host-local counters
such as scan counts, sizes and bloat figures are declared with
``compare=False`` so the same object reported by two hosts compares equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


def _not_blank(value: str, argument_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{argument_name} cannot be blank")


def _not_negative(value, argument_name: str) -> None:
    if value < 0:
        raise ValueError(f"{argument_name} cannot be less than zero")


# -- Tables -------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class Table:
    table_name: str
    table_size_bytes: int = field(default=0, compare=False)

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_negative(self.table_size_bytes, "table_size_bytes")

    @property
    def name(self) -> str:
        return self.table_name


@dataclass(frozen=True, order=True)
class TableWithMissingIndex:
    table_name: str
    table_size_bytes: int = field(default=0, compare=False)
    seq_scans: int = field(default=0, compare=False)
    index_scans: int = field(default=0, compare=False)

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_negative(self.table_size_bytes, "table_size_bytes")
        _not_negative(self.seq_scans, "seq_scans")
        _not_negative(self.index_scans, "index_scans")

    @property
    def name(self) -> str:
        return self.table_name


@dataclass(frozen=True, order=True)
class TableWithBloat:
    table_name: str
    table_size_bytes: int = field(default=0, compare=False)
    bloat_size_bytes: int = field(default=0, compare=False)
    bloat_percentage: float = field(default=0.0, compare=False)

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_negative(self.table_size_bytes, "table_size_bytes")
        _not_negative(self.bloat_size_bytes, "bloat_size_bytes")
        _not_negative(self.bloat_percentage, "bloat_percentage")

    @property
    def name(self) -> str:
        return self.table_name


# -- Columns ------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class Column:
    table_name: str
    column_name: str
    not_null: bool = field(default=False, compare=False)

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_blank(self.column_name, "column_name")

    @property
    def name(self) -> str:
        return f"{self.table_name}.{self.column_name}"


# -- Indexes ------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class Index:
    table_name: str
    index_name: str

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_blank(self.index_name, "index_name")

    @property
    def name(self) -> str:
        return self.index_name


@dataclass(frozen=True, order=True)
class IndexWithSize:
    table_name: str
    index_name: str
    index_size_bytes: int = field(default=0, compare=False)

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_blank(self.index_name, "index_name")
        _not_negative(self.index_size_bytes, "index_size_bytes")

    @property
    def name(self) -> str:
        return self.index_name


@dataclass(frozen=True, order=True)
class UnusedIndex:
    table_name: str
    index_name: str
    index_size_bytes: int = field(default=0, compare=False)
    index_scans: int = field(default=0, compare=False)

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_blank(self.index_name, "index_name")
        _not_negative(self.index_size_bytes, "index_size_bytes")
        _not_negative(self.index_scans, "index_scans")

    @property
    def name(self) -> str:
        return self.index_name


@dataclass(frozen=True, order=True)
class IndexWithBloat:
    table_name: str
    index_name: str
    index_size_bytes: int = field(default=0, compare=False)
    bloat_size_bytes: int = field(default=0, compare=False)
    bloat_percentage: float = field(default=0.0, compare=False)

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_blank(self.index_name, "index_name")
        _not_negative(self.index_size_bytes, "index_size_bytes")
        _not_negative(self.bloat_size_bytes, "bloat_size_bytes")
        _not_negative(self.bloat_percentage, "bloat_percentage")

    @property
    def name(self) -> str:
        return self.index_name


@dataclass(frozen=True, order=True)
class IndexWithColumns:
    table_name: str
    index_name: str
    index_size_bytes: int = field(default=0, compare=False)
    columns: tuple[Column, ...] = field(default=(), compare=False)

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_blank(self.index_name, "index_name")
        _not_negative(self.index_size_bytes, "index_size_bytes")
        object.__setattr__(self, "columns", tuple(self.columns))

    @property
    def name(self) -> str:
        return self.index_name


@dataclass(frozen=True, order=True)
class DuplicatedIndexes:
    """A group of two or more indexes on one table that cover each other."""

    indexes: tuple[IndexWithSize, ...]

    def __post_init__(self):
        indexes = tuple(sorted(self.indexes))
        if len(indexes) < 2:
            raise ValueError("duplicated indexes should contain at least two indexes")
        if len({i.table_name for i in indexes}) != 1:
            raise ValueError("all indexes should belong to the same table")
        object.__setattr__(self, "indexes", indexes)

    @property
    def name(self) -> str:
        return ",".join(self.index_names)

    @property
    def table_name(self) -> str:
        return self.indexes[0].table_name

    @property
    def index_names(self) -> list[str]:
        return [i.index_name for i in self.indexes]

    @property
    def index_size_bytes(self) -> int:
        return sum(i.index_size_bytes for i in self.indexes)


# -- Constraints --------------------------------------------------------------


@dataclass(frozen=True, order=True)
class Constraint:
    table_name: str
    constraint_name: str
    constraint_type: str = field(default="", compare=False)

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_blank(self.constraint_name, "constraint_name")

    @property
    def name(self) -> str:
        return self.constraint_name


@dataclass(frozen=True, order=True)
class ForeignKey:
    table_name: str
    constraint_name: str
    columns: tuple[Column, ...] = field(default=(), compare=False)

    def __post_init__(self):
        _not_blank(self.table_name, "table_name")
        _not_blank(self.constraint_name, "constraint_name")
        if not self.columns:
            raise ValueError("foreign key should have at least one column")
        object.__setattr__(self, "columns", tuple(self.columns))

    @property
    def name(self) -> str:
        return self.constraint_name

    @property
    def column_names(self) -> list[str]:
        return [c.column_name for c in self.columns]


# -- Other objects ------------------------------------------------------------


@dataclass(frozen=True, order=True)
class StoredFunction:
    function_name: str
    function_signature: str = ""

    def __post_init__(self):
        _not_blank(self.function_name, "function_name")

    @property
    def name(self) -> str:
        return self.function_name


@dataclass(frozen=True, order=True)
class SequenceState:
    sequence_name: str
    data_type: str = field(default="", compare=False)
    remaining_percentage: float = field(default=0.0, compare=False)

    def __post_init__(self):
        _not_blank(self.sequence_name, "sequence_name")

    @property
    def name(self) -> str:
        return self.sequence_name


# -- Reports ------------------------------------------------------------------


@dataclass
class DiagnosticResult:
    diagnostic: str
    description: str
    findings: list = field(default_factory=list)
    error: str | None = None

    @property
    def passed(self) -> bool:
        return not self.findings and not self.error


@dataclass
class HealthReport:
    database: str
    primary: str
    hosts: list[str]
    timestamp: datetime
    schema_name: str
    results: list[DiagnosticResult] = field(default_factory=list)

    @property
    def findings_total(self) -> int:
        return sum(len(r.findings) for r in self.results)

    @property
    def diagnostics_passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def diagnostics_failed(self) -> int:
        return sum(1 for r in self.results if r.error)

    @property
    def diagnostics_total(self) -> int:
        return len(self.results)
