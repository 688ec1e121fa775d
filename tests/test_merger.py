"""Unit tests for buddhabrot.merger."""

from __future__ import annotations

import numpy as np
import pytest

from buddhabrot.histogram import Histogram
from buddhabrot.merger import merge_histograms, tone_map


@pytest.fixture
def grids() -> list[np.ndarray]:
    rng = np.random.default_rng(3)
    return [rng.exponential(size=(6, 6)) for _ in range(3)]


class TestMergeHistograms:
    """Tests for the element-wise reduction."""

    def test_sum_without_mirror(self, grids: list[np.ndarray]) -> None:
        merged = merge_histograms(grids, mirror=False)
        np.testing.assert_allclose(merged, grids[0] + grids[1] + grids[2])

    def test_two_way_merge_is_order_independent(self, grids: list[np.ndarray]) -> None:
        """Swapping two workers gives bit-identical output."""
        a, b = grids[:2]
        np.testing.assert_array_equal(merge_histograms([a, b]), merge_histograms([b, a]))

    def test_permutations_agree(self, grids: list[np.ndarray]) -> None:
        """Any worker order yields the same merged grid."""
        reference = merge_histograms(grids)
        for order in ([2, 0, 1], [1, 2, 0], [2, 1, 0]):
            np.testing.assert_allclose(merge_histograms([grids[i] for i in order]), reference)

    def test_mirror_folds_columns(self) -> None:
        """A hit at column 0 also appears at the last column."""
        grid = np.zeros((4, 4))
        grid[1, 0] = 2.0
        merged = merge_histograms([grid], mirror=True)
        assert merged[1, 0] == 2.0
        assert merged[1, 3] == 2.0
        assert merged.sum() == 4.0

    def test_accepts_histogram_objects(self) -> None:
        histogram = Histogram(4)
        histogram.deposit(np.array([0j]), 1.0)
        merged = merge_histograms([histogram, histogram], mirror=False)
        assert merged[2, 2] == 2.0

    def test_non_negative(self, grids: list[np.ndarray]) -> None:
        assert np.all(merge_histograms(grids) >= 0.0)

    def test_rejects_empty_and_mismatched(self) -> None:
        with pytest.raises(ValueError):
            merge_histograms([])
        with pytest.raises(ValueError):
            merge_histograms([np.zeros((2, 2)), np.zeros((3, 3))])


class TestToneMap:
    """Tests for the square-root tone curve."""

    def test_square_root_curve(self) -> None:
        samples = tone_map(np.array([[0.0, 1.0], [9.0, 16.0]]))
        assert samples.dtype == np.uint16
        np.testing.assert_array_equal(samples, [[0, 16384], [49151, 65535]])

    def test_offset_by_minimum(self) -> None:
        """The curve is anchored at the grid minimum, not at zero."""
        samples = tone_map(np.array([[2.0, 18.0]]))
        np.testing.assert_array_equal(samples, [[0, 65535]])

    def test_eight_bit(self) -> None:
        samples = tone_map(np.array([[0.0, 4.0]]), bit_depth=8)
        assert samples.dtype == np.uint8
        np.testing.assert_array_equal(samples, [[0, 255]])

    @pytest.mark.parametrize("value", [0.0, 3.5])
    def test_flat_grid_falls_back_to_zero(self, value: float) -> None:
        """min == max yields an all-zero image rather than NaN."""
        samples = tone_map(np.full((5, 5), value))
        assert samples.dtype == np.uint16
        assert not samples.any()

    def test_rejects_non_finite(self) -> None:
        with pytest.raises(ValueError):
            tone_map(np.array([[0.0, np.inf]]))

    def test_rejects_unknown_bit_depth(self) -> None:
        with pytest.raises(ValueError):
            tone_map(np.zeros((2, 2)), bit_depth=12)
