"""
Test Suite for Folds Module
===========================

Tests for the stratified fold partitioner.
"""

import pytest
import numpy as np

from playstore.folds import make_folds, fold_sizes, check_partition
from playstore.exceptions import InvalidConfiguration


class TestMakeFolds:
    """Tests for make_folds."""

    @pytest.fixture
    def targets(self):
        """Distinct, unsorted stratification values."""
        rng = np.random.default_rng(42)
        return rng.permutation(100).astype(float)

    def test_ten_by_five(self):
        """n=10, k=5 gives five folds of exactly two."""
        folds = make_folds(10, 5, np.arange(10), seed=0)

        assert sorted(folds) == [0, 1, 2, 3, 4]
        assert all(size == 2 for size in fold_sizes(folds).values())

    def test_partition_property(self):
        """Folds partition range(n) with sizes within one of each other."""
        rng = np.random.default_rng(7)
        for n in range(2, 25):
            key = rng.normal(size=n)
            for k in range(2, n + 1):
                folds = make_folds(n, k, key, seed=n * k)
                indices = np.concatenate(list(folds.values()))

                assert len(folds) == k
                assert len(indices) == n
                assert set(indices.tolist()) == set(range(n))
                sizes = fold_sizes(folds).values()
                assert max(sizes) - min(sizes) <= 1

    def test_stratified(self, targets):
        """Each fold spans the whole target range, not a slice of it."""
        folds = make_folds(100, 5, targets, seed=3)
        overall = targets.mean()

        for indices in folds.values():
            fold_values = targets[indices]
            assert abs(fold_values.mean() - overall) <= 2.5
            assert fold_values.min() < 5
            assert fold_values.max() >= 95

    def test_reproducible(self, targets):
        """Same seed, same folds."""
        first = make_folds(100, 4, targets, seed=11)
        second = make_folds(100, 4, targets, seed=11)

        for fold_id in first:
            np.testing.assert_array_equal(first[fold_id], second[fold_id])

    def test_seed_changes_assignment(self, targets):
        first = make_folds(100, 4, targets, seed=1)
        second = make_folds(100, 4, targets, seed=2)

        assert any(
            not np.array_equal(first[fold_id], second[fold_id]) for fold_id in first
        )

    def test_does_not_touch_global_rng(self, targets):
        """Fold assignment leaves numpy's global RNG alone."""
        np.random.seed(123)
        expected = np.random.rand()
        np.random.seed(123)
        make_folds(100, 4, targets, seed=5)
        assert np.random.rand() == expected

    def test_indices_sorted(self, targets):
        folds = make_folds(100, 3, targets, seed=0)
        for indices in folds.values():
            assert np.all(np.diff(indices) > 0)

    @pytest.mark.parametrize("k", [1, 11, 0, -2])
    def test_k_out_of_range(self, k):
        """k must be within [2, n]."""
        with pytest.raises(InvalidConfiguration):
            make_folds(10, k, np.arange(10), seed=0)

    def test_key_length_mismatch(self):
        with pytest.raises(InvalidConfiguration, match="stratification values"):
            make_folds(10, 2, np.arange(9), seed=0)

    def test_too_few_distinct_values(self):
        """Fewer distinct key values than folds is rejected."""
        key = [1.0, 1.0, 2.0, 2.0, 1.0, 2.0]
        with pytest.raises(InvalidConfiguration, match="distinct"):
            make_folds(6, 3, key, seed=0)


class TestCheckPartition:
    """Tests for check_partition."""

    def test_valid(self):
        check_partition({0: np.array([0, 2]), 1: np.array([1, 3])}, 4)

    def test_overlap(self):
        with pytest.raises(InvalidConfiguration):
            check_partition({0: np.array([0, 1]), 1: np.array([1, 2])}, 3)

    def test_omission(self):
        with pytest.raises(InvalidConfiguration):
            check_partition({0: np.array([0]), 1: np.array([1])}, 3)

    def test_fold_ids(self):
        with pytest.raises(InvalidConfiguration, match="Fold ids"):
            check_partition({0: np.array([0]), 2: np.array([1])}, 2)

    def test_single_fold(self):
        with pytest.raises(InvalidConfiguration):
            check_partition({0: np.array([0, 1])}, 2)

    def test_empty_fold(self):
        """An empty fold would train on everything and score nothing."""
        with pytest.raises(InvalidConfiguration, match="empty"):
            check_partition({0: np.array([], dtype=int), 1: np.arange(4)}, 4)

    def test_accepts_sets_and_lists(self):
        """Folds given as sets or lists come back as sorted arrays."""
        folds = check_partition({0: {3, 0}, 1: [2, 1]}, 4)

        assert sorted(folds) == [0, 1]
        np.testing.assert_array_equal(folds[0], [0, 3])
        np.testing.assert_array_equal(folds[1], [1, 2])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
