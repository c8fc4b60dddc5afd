"""Unit tests for prefix_balancer/planner.py"""

import pytest

from prefix_balancer.common import PlanError
from prefix_balancer.models import ObjectRecord
from prefix_balancer.planner import (
    build_plan,
    derive_relative_name,
    generate_target_prefixes,
    normalize_root_prefix,
    resolve_prefix_count,
)
from tests.assertions import assert_balanced, assert_equal


def _inventory(count, prefix="data/"):
    return [ObjectRecord(f"{prefix}obj{index}", index) for index in range(count)]


class TestResolvePrefixCount:
    """Tests for prefix count auto-sizing"""

    @pytest.mark.parametrize(
        ("object_count", "expected"),
        [(5_000, 4), (50_000, 8), (500_000, 16), (2_000_000, 32)],
    )
    def test_auto_sizing_table(self, object_count, expected):
        """Auto mode follows the fixed breakpoints"""
        assert_equal(resolve_prefix_count(object_count), expected)

    @pytest.mark.parametrize(
        ("object_count", "expected"),
        [(0, 4), (9_999, 4), (10_000, 8), (99_999, 8), (100_000, 16), (1_000_000, 32)],
    )
    def test_breakpoints_are_exclusive_upper_bounds(self, object_count, expected):
        """A count equal to a breakpoint moves to the next tier"""
        assert_equal(resolve_prefix_count(object_count), expected)

    def test_requested_count_is_used_as_is(self):
        """Non-zero requests bypass auto-sizing, including 1"""
        assert_equal(resolve_prefix_count(5_000, 7), 7)
        assert_equal(resolve_prefix_count(5_000, 1), 1)

    def test_negative_request_rejected(self):
        """Negative counts are a plan error"""
        with pytest.raises(PlanError):
            resolve_prefix_count(10, -1)


class TestTargetPrefixes:
    """Tests for generated prefix names"""

    def test_names_are_zero_padded(self):
        """Names use a three digit index"""
        assert_equal(generate_target_prefixes(3), ("prefix000", "prefix001", "prefix002"))

    def test_width_grows_past_one_thousand(self):
        """Lexicographic order keeps matching numeric order for large counts"""
        names = generate_target_prefixes(1_001)
        assert names[0] == "prefix0000"
        assert names[-1] == "prefix1000"
        assert list(names) == sorted(names)

    def test_zero_prefixes_rejected(self):
        """At least one prefix is required"""
        with pytest.raises(PlanError):
            generate_target_prefixes(0)


class TestKeyDerivation:
    """Tests for relative name and root prefix handling"""

    def test_strips_source_prefix(self):
        """Source prefix is removed from the key"""
        assert_equal(derive_relative_name("data/a/b.txt", "data/"), "a/b.txt")

    def test_strips_single_leading_separator(self):
        """A prefix without trailing slash still yields a clean name"""
        assert_equal(derive_relative_name("data/a.txt", "data"), "a.txt")
        assert_equal(derive_relative_name("data//a.txt", "data"), "/a.txt")

    def test_key_outside_prefix_kept_whole(self):
        """Keys from another prefix fall back to the full key"""
        assert_equal(derive_relative_name("other/a.txt", "data/"), "other/a.txt")

    def test_key_equal_to_source_prefix_keeps_basename(self):
        """A prefix naming a single object still yields a file name"""
        assert_equal(derive_relative_name("data/x.bin", "data/x.bin"), "x.bin")
        assert_equal(derive_relative_name("x.bin", "x.bin"), "x.bin")
        plan = build_plan([ObjectRecord("data/x.bin", 1)], 2, "root", "data/x.bin")
        assert_equal(plan.entries[0].target_key, "root/prefix000/x.bin")

    def test_root_prefix_normalized(self):
        """Surrounding separators are stripped"""
        assert_equal(normalize_root_prefix("/balance/root/"), "balance/root")

    @pytest.mark.parametrize("root", ["", "/", "a//b"])
    def test_malformed_root_rejected(self, root):
        """Empty roots and empty segments are plan errors"""
        with pytest.raises(PlanError):
            normalize_root_prefix(root)


class TestBuildPlan:
    """Tests for round-robin plan construction"""

    def test_round_robin_example(self):
        """Ten objects over three prefixes split 4/3/3 by index modulo 3"""
        plan = build_plan(_inventory(10), 3, "balance_prefix", "data/")

        assigned = {name: [] for name in plan.target_prefixes}
        for index, entry in enumerate(plan.entries):
            assigned[entry.target_key.split("/")[1]].append(index)

        assert_equal(assigned["prefix000"], [0, 3, 6, 9])
        assert_equal(assigned["prefix001"], [1, 4, 7])
        assert_equal(assigned["prefix002"], [2, 5, 8])
        assert_equal(plan.counts_by_prefix("balance_prefix"), {
            "prefix000": 4, "prefix001": 3, "prefix002": 3,
        })

    def test_target_key_layout(self):
        """Target key is root / sub-prefix / relative name"""
        plan = build_plan([ObjectRecord("data/x/y.bin", 1)], 2, "/balance/", "data/")
        assert_equal(plan.entries[0].target_key, "balance/prefix000/x/y.bin")
        assert_equal(plan.entries[0].source_key, "data/x/y.bin")

    @pytest.mark.parametrize(("count", "prefixes"), [(1, 4), (7, 3), (100, 8), (1_003, 16), (64, 1)])
    def test_balance_invariant(self, count, prefixes):
        """Counts differ by at most one and sum to the inventory size"""
        plan = build_plan(_inventory(count), prefixes, "root", "data/")
        assert_equal(len(plan.entries), count)
        assert_balanced(plan.counts_by_prefix("root"), count)

    def test_every_object_maps_to_exactly_one_entry(self):
        """Entries are one-to-one with the inventory, in listing order"""
        inventory = _inventory(25)
        plan = build_plan(inventory, 4, "root", "data/")
        assert_equal([e.source_key for e in plan.entries], [r.key for r in inventory])
        assert_equal(len({e.target_key for e in plan.entries}), 25)

    def test_plan_is_deterministic(self):
        """The same inputs produce an identical plan"""
        inventory = _inventory(50)
        first = build_plan(inventory, 0, "root", "data/")
        second = build_plan(inventory, 0, "root", "data/")
        assert first == second
        assert_equal(first.prefix_count, 4)

    def test_prefix_count_of_one_relabels(self):
        """A single prefix is legal and keeps every name"""
        plan = build_plan(_inventory(3), 1, "root", "data/")
        assert_equal(plan.target_prefixes, ("prefix000",))
        assert all(e.target_key.startswith("root/prefix000/") for e in plan.entries)

    def test_malformed_root_raises_before_planning(self):
        """No partial plan is produced"""
        with pytest.raises(PlanError):
            build_plan(_inventory(3), 2, "//", "data/")

    def test_logs_planning_progress(self, caplog):
        """A progress line is logged per reporting batch"""
        caplog.set_level("INFO")
        build_plan(_inventory(10), 2, "root", "data/", reporting_batch_size=5)
        assert "Planned 5/10 objects..." in caplog.text
        assert "Planned 10/10 objects..." in caplog.text
