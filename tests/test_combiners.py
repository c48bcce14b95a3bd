"""Tests for the cluster-level merge strategies."""

from __future__ import annotations

from pg_index_health.combiners import intersection, union_distinct_sorted
from pg_index_health.models import Table, TableWithMissingIndex, UnusedIndex


def t(name, seq_scans=0):
    return TableWithMissingIndex(name, seq_scans=seq_scans)


class TestUnionDistinctSorted:
    def test_flatten_dedupe_sort(self):
        a = [t("t3"), t("t1")]
        b = [t("t2"), t("t1", seq_scans=999)]
        assert union_distinct_sorted([a, b]) == [t("t1"), t("t2"), t("t3")]

    def test_commutative(self):
        a = [t("t1"), t("t4")]
        b = [t("t2")]
        assert union_distinct_sorted([a, b]) == union_distinct_sorted([b, a])

    def test_idempotent(self):
        a = [t("t2"), t("t1"), t("t2")]
        assert union_distinct_sorted([a, a]) == [t("t1"), t("t2")]

    def test_empty(self):
        assert union_distinct_sorted([]) == []
        assert union_distinct_sorted([[], []]) == []

    def test_keeps_first_seen_representative(self):
        result = union_distinct_sorted([[t("t1", seq_scans=5)], [t("t1", seq_scans=7)]])
        assert result[0].seq_scans == 5


class TestIntersection:
    def test_only_common_findings(self):
        a = [UnusedIndex("t", "idx_a"), UnusedIndex("t", "idx_b")]
        b = [UnusedIndex("t", "idx_b"), UnusedIndex("t", "idx_c")]
        assert intersection([a, b]) == [UnusedIndex("t", "idx_b")]

    def test_empty_side_wins(self):
        b = [Table("t1")]
        assert intersection([[], b]) == []
        assert intersection([b, []]) == []

    def test_idempotent(self):
        a = [Table("t2"), Table("t1"), Table("t1")]
        assert intersection([a, a]) == [Table("t1"), Table("t2")]

    def test_no_lists(self):
        assert intersection([]) == []

    def test_counters_ignored_and_primary_representative_kept(self):
        on_primary = [UnusedIndex("t", "idx_x", index_scans=3)]
        on_replica = [UnusedIndex("t", "idx_x", index_scans=40)]
        result = intersection([on_primary, on_replica])
        assert result == [UnusedIndex("t", "idx_x")]
        assert result[0].index_scans == 3

    def test_three_hosts_one_missing(self):
        idx = UnusedIndex("t", "idx_x")
        assert intersection([[idx], [idx], []]) == []
