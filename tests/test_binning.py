"""
Test Suite for Binning Module
=============================

Tests for the binned-equality classifier.
"""

import pytest
import numpy as np

from playstore.binning import same_bin, bin_index, validate_thresholds, bin_labels, UNDERFLOW_BIN
from playstore.exceptions import InvalidConfiguration


THRESHOLDS = [0.0, 1.0, 2.0, 5.0]


class TestSameBin:
    """Tests for same_bin."""

    def test_same_interval(self):
        """Values in one half-open interval match."""
        assert same_bin(0.5, 0.9, THRESHOLDS)
        assert same_bin(2.0, 4.99, THRESHOLDS)

    def test_different_intervals(self):
        """Values in neighbouring intervals do not match."""
        assert not same_bin(0.5, 1.5, THRESHOLDS)
        assert not same_bin(4.99, 5.0, THRESHOLDS)

    def test_terminal_bin(self):
        """Everything at or past the last edge shares the open terminal bin."""
        assert same_bin(6.0, 100.0, THRESHOLDS)
        assert same_bin(5.0, 1e9, THRESHOLDS)

    def test_left_edge_is_inclusive(self):
        """An edge value belongs to the interval it opens."""
        assert same_bin(1.0, 1.5, THRESHOLDS)
        assert not same_bin(1.0, 0.99, THRESHOLDS)

    def test_below_range_values_match_each_other(self):
        """Values under the first edge form their own bin."""
        assert same_bin(-3.0, -0.1, THRESHOLDS)
        assert not same_bin(-0.1, 0.0, THRESHOLDS)
        assert not same_bin(-0.1, 100.0, THRESHOLDS)

    def test_nan_never_matches(self):
        """NaN is never in the same bin as anything."""
        assert not same_bin(float('nan'), 0.5, THRESHOLDS)
        assert not same_bin(float('nan'), float('nan'), THRESHOLDS)

    def test_symmetric(self):
        """same_bin(a, b) == same_bin(b, a) over random inputs."""
        rng = np.random.default_rng(0)
        for _ in range(50):
            edges = np.sort(rng.choice(np.arange(-20, 20), size=rng.integers(2, 8), replace=False))
            a, b = rng.uniform(-25, 25, size=2)
            assert same_bin(a, b, edges) == same_bin(b, a, edges)

    def test_matches_interval_membership(self):
        """Result agrees with a direct interval scan."""
        rng = np.random.default_rng(1)
        edges = np.array([-2.0, 0.5, 3.0, 7.5, 10.0])
        for a, b in rng.uniform(-2.0, 12.0, size=(200, 2)):
            ia = next(i for i in range(len(edges) - 1, -1, -1) if a >= edges[i])
            ib = next(i for i in range(len(edges) - 1, -1, -1) if b >= edges[i])
            assert same_bin(a, b, edges) == (ia == ib)


class TestBinIndex:
    """Tests for bin_index."""

    def test_indices(self):
        assert bin_index(-1.0, THRESHOLDS) == UNDERFLOW_BIN
        assert bin_index(0.0, THRESHOLDS) == 0
        assert bin_index(1.5, THRESHOLDS) == 1
        assert bin_index(4.0, THRESHOLDS) == 2
        assert bin_index(5.0, THRESHOLDS) == 3
        assert bin_index(50.0, THRESHOLDS) == 3

    def test_nan_has_no_bin(self):
        with pytest.raises(ValueError, match="NaN"):
            bin_index(float('nan'), THRESHOLDS)


class TestValidateThresholds:
    """Tests for validate_thresholds."""

    def test_valid(self):
        edges = validate_thresholds(THRESHOLDS)
        np.testing.assert_array_equal(edges, np.array(THRESHOLDS))

    @pytest.mark.parametrize("thresholds", [
        [],
        [1.0],
        [0.0, 0.0, 1.0],
        [2.0, 1.0],
        [0.0, float('inf')],
        [[0.0, 1.0], [2.0, 3.0]],
    ])
    def test_invalid(self, thresholds):
        with pytest.raises(InvalidConfiguration):
            validate_thresholds(thresholds)

    def test_labels(self):
        labels = bin_labels(THRESHOLDS, precision=0)
        assert labels == ['(-inf, 0)', '[0, 1)', '[1, 2)', '[2, 5)', '[5, +inf)']


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
