"""Tests for profile merging."""

from itertools import permutations
from pathlib import Path

import pytest

from tarp.core.errors import BlockMismatchError, ModeConflictError
from tarp.coverage import MAX_COUNT, add_profile, merge_profiles, open_and_merge


class TestCountMode:
    """count/atomic profiles sum their execution counts."""

    def test_given_same_block_when_merged_then_counts_summed(
        self, make_profile, block
    ) -> None:
        # Given
        a = make_profile("pkg/a.go", "count", block((0, 0), (0, 10), 3, 2))
        b = make_profile("pkg/a.go", "count", block((0, 0), (0, 10), 3, 5))

        # When
        merged = merge_profiles([a, b])

        # Then
        assert len(merged) == 1
        assert merged[0].blocks[0].count == 7
        assert merged[0].blocks[0].num_stmt == 3

    def test_given_near_max_counts_when_merged_then_saturates(
        self, make_profile, block
    ) -> None:
        a = make_profile("a.go", "count", block((1, 1), (1, 2), 1, MAX_COUNT - 1))
        b = make_profile("a.go", "count", block((1, 1), (1, 2), 1, 10))

        merged = merge_profiles([a, b])

        assert merged[0].blocks[0].count == MAX_COUNT

    def test_atomic_mode_sums(self, make_profile, block) -> None:
        a = make_profile("a.go", "atomic", block((1, 1), (1, 2), 1, 1))
        b = make_profile("a.go", "atomic", block((1, 1), (1, 2), 1, 2))
        assert merge_profiles([a, b])[0].blocks[0].count == 3

    def test_merge_order_does_not_change_counts(self, make_profile, block) -> None:
        def profiles() -> list:
            return [
                make_profile(
                    "a.go", "count", block((1, 1), (1, 2), 1, n), block((2, 1), (2, 2), 2, n * 10)
                )
                for n in (1, 2, 4)
            ]

        results = set()
        for order in permutations(range(3)):
            items = profiles()
            merged = merge_profiles([items[i] for i in order])
            results.add(tuple(b.count for b in merged[0].blocks))

        assert results == {(7, 70)}


class TestSetMode:
    """set profiles OR their hits."""

    def test_given_zero_and_hit_when_merged_then_covered_not_summed(
        self, make_profile, block
    ) -> None:
        # Given
        a = make_profile("a.go", "set", block((1, 1), (1, 2), 1, 0))
        b = make_profile("a.go", "set", block((1, 1), (1, 2), 1, 3))

        # When
        merged = merge_profiles([a, b])

        # Then
        assert merged[0].blocks[0].count == 1

    def test_two_hits_stay_one(self, make_profile, block) -> None:
        a = make_profile("a.go", "set", block((1, 1), (1, 2), 1, 1))
        b = make_profile("a.go", "set", block((1, 1), (1, 2), 1, 1))
        assert merge_profiles([a, b])[0].blocks[0].count == 1

    def test_two_misses_stay_zero(self, make_profile, block) -> None:
        a = make_profile("a.go", "set", block((1, 1), (1, 2), 1, 0))
        b = make_profile("a.go", "set", block((1, 1), (1, 2), 1, 0))
        assert merge_profiles([a, b])[0].blocks[0].count == 0

    def test_merge_is_idempotent(self, make_profile, block) -> None:
        a = make_profile("a.go", "set", block((1, 1), (1, 2), 1, 1))
        merged = merge_profiles([a, a, a])
        assert merged[0].blocks[0].count == 1


class TestMergeList:
    """Tests for list-level merge behavior."""

    def test_distinct_units_kept_in_first_occurrence_order(self, make_profile, block) -> None:
        z = make_profile("z.go", "set", block((1, 1), (1, 2)))
        a = make_profile("a.go", "set", block((1, 1), (1, 2)))
        merged = merge_profiles([z, a, z])
        assert [p.file_name for p in merged] == ["z.go", "a.go"]

    def test_inputs_are_not_mutated(self, make_profile, block) -> None:
        a = make_profile("a.go", "count", block((1, 1), (1, 2), 1, 1))
        b = make_profile("a.go", "count", block((1, 1), (1, 2), 1, 1))

        merge_profiles([a, b])

        assert a.blocks[0].count == 1
        assert b.blocks[0].count == 1

    def test_add_profile_returns_same_list(self, make_profile, block) -> None:
        acc: list = []
        result = add_profile(acc, make_profile("a.go", "set", block((1, 1), (1, 2))))
        assert result is acc
        assert len(acc) == 1


class TestMergeErrors:
    """Incompatible profiles abort the merge."""

    def test_given_different_modes_when_merged_then_mode_conflict(
        self, make_profile, block
    ) -> None:
        # Given
        a = make_profile("pkg/a.go", "set", block((1, 1), (1, 2)))
        b = make_profile("pkg/a.go", "count", block((1, 1), (1, 2)))

        # When / Then
        with pytest.raises(ModeConflictError) as exc_info:
            merge_profiles([a, b])
        assert exc_info.value.details["unit"] == "pkg/a.go"

    def test_atomic_and_count_conflict(self, make_profile, block) -> None:
        a = make_profile("a.go", "atomic", block((1, 1), (1, 2)))
        b = make_profile("a.go", "count", block((1, 1), (1, 2)))
        with pytest.raises(ModeConflictError):
            merge_profiles([a, b])

    def test_given_unknown_block_when_merged_then_block_mismatch(
        self, make_profile, block
    ) -> None:
        a = make_profile("a.go", "count", block((1, 1), (1, 2)))
        b = make_profile("a.go", "count", block((3, 1), (3, 2)))
        with pytest.raises(BlockMismatchError) as exc_info:
            merge_profiles([a, b])
        assert exc_info.value.details["block"] == "3.1,3.2"

    def test_same_start_different_end_is_mismatch(self, make_profile, block) -> None:
        a = make_profile("a.go", "count", block((1, 1), (1, 2)))
        b = make_profile("a.go", "count", block((1, 1), (1, 9)))
        with pytest.raises(BlockMismatchError):
            merge_profiles([a, b])

    def test_different_statement_count_is_mismatch(self, make_profile, block) -> None:
        a = make_profile("a.go", "count", block((1, 1), (1, 2), 1, 1))
        b = make_profile("a.go", "count", block((1, 1), (1, 2), 2, 1))
        with pytest.raises(BlockMismatchError, match="statement count differs"):
            merge_profiles([a, b])


class TestOpenAndMerge:
    def test_merges_across_files(self, tmp_path: Path) -> None:
        first = tmp_path / "one.out"
        first.write_text("mode: count\npkg/a.go:1.1,1.1 1 1\n")
        second = tmp_path / "two.out"
        second.write_text("mode: count\npkg/a.go:1.1,1.1 1 1\npkg/b.go:2.1,3.1 2 0\n")

        merged = open_and_merge([first, second])

        assert [p.file_name for p in merged] == ["pkg/a.go", "pkg/b.go"]
        assert merged[0].blocks[0].count == 2
