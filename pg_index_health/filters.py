"""Exclusion predicates applied to findings.

Every predicate returns ``True`` to keep a finding and ``False`` to drop it.
Predicates only look at the attributes a finding actually has, so one
composed filter can be applied to the output of any diagnostic on any host.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from pg_index_health.context import SchemaContext, valid_percent

Predicate = Callable[[object], bool]

FLYWAY_TABLES = ("flyway_schema_history",)
LIQUIBASE_TABLES = ("databasechangelog", "databasechangeloglock")


def keep_all(finding) -> bool:
    return True


def _qualified(context: SchemaContext, names: Iterable[str]) -> frozenset[str]:
    return frozenset(
        context.enrich_with_schema(n.strip()).lower() for n in names if n and n.strip()
    )


def skip_tables_by_name(context: SchemaContext, names: Iterable[str]) -> Predicate:
    to_skip = _qualified(context, names)
    if not to_skip:
        return keep_all

    def predicate(finding) -> bool:
        table_name = getattr(finding, "table_name", None)
        return table_name is None or table_name.lower() not in to_skip

    return predicate


def skip_indexes_by_name(context: SchemaContext, names: Iterable[str]) -> Predicate:
    """Drop findings about a named index, including groups containing one."""
    to_skip = _qualified(context, names)
    if not to_skip:
        return keep_all

    def predicate(finding) -> bool:
        index_names = getattr(finding, "index_names", None)
        if index_names is None:
            index_name = getattr(finding, "index_name", None)
            index_names = [] if index_name is None else [index_name]
        return not any(n.lower() in to_skip for n in index_names)

    return predicate


def skip_sequences_by_name(context: SchemaContext, names: Iterable[str]) -> Predicate:
    to_skip = _qualified(context, names)
    if not to_skip:
        return keep_all

    def predicate(finding) -> bool:
        sequence_name = getattr(finding, "sequence_name", None)
        return sequence_name is None or sequence_name.lower() not in to_skip

    return predicate


def _lowered(names: Iterable[str]) -> frozenset[str]:
    return frozenset(n.strip().lower() for n in names if n and n.strip())


def skip_columns_by_name(names: Iterable[str]) -> Predicate:
    """Drop findings about a named column, or carrying one among their ``columns``.

    Column names are matched bare, whatever table they belong to.
    """
    to_skip = _lowered(names)
    if not to_skip:
        return keep_all

    def predicate(finding) -> bool:
        column_names = [c.column_name for c in getattr(finding, "columns", ())]
        column_name = getattr(finding, "column_name", None)
        if column_name is not None:
            column_names.append(column_name)
        return not any(n.lower() in to_skip for n in column_names)

    return predicate


def skip_constraints_by_name(names: Iterable[str]) -> Predicate:
    to_skip = _lowered(names)
    if not to_skip:
        return keep_all

    def predicate(finding) -> bool:
        constraint_name = getattr(finding, "constraint_name", None)
        return constraint_name is None or constraint_name.lower() not in to_skip

    return predicate


def skip_db_objects_by_name(names: Iterable[str]) -> Predicate:
    """Drop findings whose fully qualified ``name`` is listed."""
    to_skip = _lowered(names)
    if not to_skip:
        return keep_all

    def predicate(finding) -> bool:
        return finding.name.lower() not in to_skip

    return predicate


def _size_threshold(attribute: str, threshold_bytes: int) -> Predicate:
    if threshold_bytes < 0:
        raise ValueError(f"{attribute} threshold cannot be less than zero")
    if threshold_bytes == 0:
        return keep_all

    def predicate(finding) -> bool:
        size = getattr(finding, attribute, None)
        return size is None or size >= threshold_bytes

    return predicate


def skip_small_tables(threshold_bytes: int) -> Predicate:
    return _size_threshold("table_size_bytes", threshold_bytes)


def skip_small_indexes(threshold_bytes: int) -> Predicate:
    return _size_threshold("index_size_bytes", threshold_bytes)


def skip_bloat_under_threshold(size_threshold_bytes: int, percentage_threshold: float) -> Predicate:
    """Drop bloat-aware findings under either threshold; both zero keeps everything."""
    if size_threshold_bytes < 0:
        raise ValueError("size_threshold_bytes cannot be less than zero")
    percentage_threshold = valid_percent(percentage_threshold, "percentage_threshold")
    if size_threshold_bytes == 0 and percentage_threshold == 0.0:
        return keep_all

    def predicate(finding) -> bool:
        if not hasattr(finding, "bloat_size_bytes"):
            return True
        return (
            finding.bloat_size_bytes >= size_threshold_bytes
            and finding.bloat_percentage >= percentage_threshold
        )

    return predicate


def skip_flyway_tables(context: SchemaContext) -> Predicate:
    return skip_tables_by_name(context, FLYWAY_TABLES)


def skip_liquibase_tables(context: SchemaContext) -> Predicate:
    return skip_tables_by_name(context, LIQUIBASE_TABLES)


def all_of(*predicates: Predicate) -> Predicate:
    """Logical AND of ``predicates``."""
    active = tuple(p for p in predicates if p is not keep_all)
    if not active:
        return keep_all

    def predicate(finding) -> bool:
        return all(p(finding) for p in active)

    return predicate


def _names(raw) -> frozenset[str]:
    """Accept a list or a comma-separated string, as written in config files."""
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        raw = raw.split(",")
    return frozenset(n.strip().lower() for n in raw if n and n.strip())


@dataclass(frozen=True)
class Exclusions:
    """User-supplied exclusions, validated once and turned into one filter."""

    table_names: frozenset[str] = field(default_factory=frozenset)
    index_names: frozenset[str] = field(default_factory=frozenset)
    sequence_names: frozenset[str] = field(default_factory=frozenset)
    column_names: frozenset[str] = field(default_factory=frozenset)
    constraint_names: frozenset[str] = field(default_factory=frozenset)
    table_size_threshold_bytes: int = 0
    index_size_threshold_bytes: int = 0
    bloat_size_threshold_bytes: int = 0
    bloat_percentage_threshold: float = 0.0
    skip_migration_tables: bool = False

    def __post_init__(self):
        object.__setattr__(self, "table_names", _names(self.table_names))
        object.__setattr__(self, "index_names", _names(self.index_names))
        object.__setattr__(self, "sequence_names", _names(self.sequence_names))
        object.__setattr__(self, "column_names", _names(self.column_names))
        object.__setattr__(self, "constraint_names", _names(self.constraint_names))
        for attr in ("table_size_threshold_bytes", "index_size_threshold_bytes", "bloat_size_threshold_bytes"):
            if getattr(self, attr) < 0:
                raise ValueError(f"{attr} cannot be less than zero")
        object.__setattr__(
            self,
            "bloat_percentage_threshold",
            valid_percent(self.bloat_percentage_threshold, "bloat_percentage_threshold"),
        )

    @classmethod
    def empty(cls) -> Exclusions:
        return cls()

    def to_filter(self, context: SchemaContext) -> Predicate:
        predicates = [
            skip_tables_by_name(context, self.table_names),
            skip_indexes_by_name(context, self.index_names),
            skip_sequences_by_name(context, self.sequence_names),
            skip_columns_by_name(self.column_names),
            skip_constraints_by_name(self.constraint_names),
            skip_bloat_under_threshold(self.bloat_size_threshold_bytes, self.bloat_percentage_threshold),
            skip_small_tables(self.table_size_threshold_bytes),
            skip_small_indexes(self.index_size_threshold_bytes),
        ]
        if self.skip_migration_tables:
            predicates += [skip_flyway_tables(context), skip_liquibase_tables(context)]
        return all_of(*predicates)
