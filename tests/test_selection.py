"""Tests for stabsel.selection — weighted Wright-Fisher parent draws."""

import numpy as np
import pytest

from stabsel.selection import draw_parents


class TestDrawParents:
    def test_shape_and_range(self):
        parents = draw_parents(np.ones(10), 20, np.random.default_rng(0))
        assert parents.shape == (20,)
        assert parents.dtype == np.int64
        assert parents.min() >= 0 and parents.max() < 10

    def test_zero_weight_never_drawn(self):
        w = np.array([1.0, 0.0, 2.0, 0.0])
        parents = draw_parents(w, 10_000, np.random.default_rng(1))
        assert not np.any(np.isin(parents, [1, 3]))

    def test_proportional_to_weight(self):
        w = np.array([1.0, 3.0])
        parents = draw_parents(w, 40_000, np.random.default_rng(2))
        assert np.mean(parents == 1) == pytest.approx(0.75, abs=0.01)

    def test_uniform_weights_all_reproduce(self):
        parents = draw_parents(np.ones(5), 5_000, np.random.default_rng(3))
        counts = np.bincount(parents, minlength=5)
        assert np.all(counts > 800)

    def test_deterministic_given_seed(self):
        w = np.random.default_rng(9).random(50)
        a = draw_parents(w, 100, np.random.default_rng(4))
        b = draw_parents(w, 100, np.random.default_rng(4))
        np.testing.assert_array_equal(a, b)

    def test_unnormalized_weights(self):
        """Only relative weights matter."""
        w = np.array([0.2, 0.6, 0.2])
        a = draw_parents(w, 100, np.random.default_rng(5))
        b = draw_parents(w * 10, 100, np.random.default_rng(5))
        np.testing.assert_array_equal(a, b)


class TestDrawParentsErrors:
    def test_empty_population(self):
        with pytest.raises(ValueError, match="empty population"):
            draw_parents(np.array([]), 2, np.random.default_rng(0))

    def test_negative_weight(self):
        with pytest.raises(ValueError, match="non-negative"):
            draw_parents(np.array([1.0, -0.1]), 2, np.random.default_rng(0))

    def test_nan_weight(self):
        with pytest.raises(ValueError, match="NaN or infinite"):
            draw_parents(np.array([1.0, np.nan]), 2, np.random.default_rng(0))

    def test_all_zero(self):
        with pytest.raises(ValueError, match="All fitness weights are zero"):
            draw_parents(np.zeros(3), 2, np.random.default_rng(0))
