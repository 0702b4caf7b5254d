import math

import numpy as np
import pytest

from quant_core.analytics.series_math import (
    correlation, covariance, ema, min_max_normalize, random_normal, random_normals, relative_change,
    sma, stddev, trend_slope, wma,
)
from quant_core.errors import InvalidParameterError


class TestMovingAverages:
    def test_sma_length_and_offset(self):
        result = sma([1, 2, 3, 4, 5], 3)
        assert len(result) == 3
        assert result.offset == 2
        assert list(result) == pytest.approx([2.0, 3.0, 4.0])

    def test_wma_weights_newest_most(self):
        result = wma([1, 2, 3], 3)
        # (1*1 + 2*2 + 3*3) / 6
        assert result.last == pytest.approx(14 / 6)
        assert len(wma(range(10), 4)) == 7

    def test_short_input_is_empty(self):
        assert sma([1, 2], 5).empty
        assert wma([1, 2], 5).empty
        assert sma([1, 2], 5).last is None

    def test_ema_is_full_length_and_seeded_with_sma(self):
        values = [2.0, 4.0, 6.0, 8.0, 10.0]
        result = ema(values, 3)
        assert len(result) == len(values)
        assert result[0] == pytest.approx(4.0)
        k = 2 / 4
        assert result[1] == pytest.approx(4.0 * k + 4.0 * (1 - k))

    def test_ema_of_constant_is_constant(self):
        assert list(ema([5.0] * 30, 10)) == pytest.approx([5.0] * 30)

    def test_ema_empty(self):
        assert ema([], 5).empty

    @pytest.mark.parametrize("period", [0, -3, 2.5, True])
    def test_invalid_period_rejected(self, period):
        with pytest.raises(InvalidParameterError, match="Invalid period"):
            sma([1, 2, 3], period)

    def test_aligned_series_maps_back_to_input_index(self):
        result = sma([1, 2, 3, 4, 5], 3)
        assert result.at(2) == pytest.approx(2.0)
        assert result.at(1) is None
        expanded = result.to_series(5)
        assert np.isnan(expanded.iloc[0]) and expanded.iloc[4] == pytest.approx(4.0)


class TestStatistics:
    def test_population_stddev(self):
        assert stddev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)
        assert stddev([]) == 0.0

    def test_covariance_mismatch_is_zero(self):
        assert covariance([1, 2, 3], [1, 2]) == 0.0

    def test_correlation_degenerate_inputs(self):
        assert correlation([1, 2, 3], [1, 2, 3]) == pytest.approx(1.0)
        assert correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)
        assert correlation([1, 1, 1], [1, 2, 3]) == 0.0
        assert correlation([], []) == 0.0

    def test_trend_slope_and_relative_change(self):
        assert trend_slope([1, 3, 5, 7]) == pytest.approx(2.0)
        assert trend_slope([4]) == 0.0
        assert relative_change([100, 110]) == pytest.approx(0.1)
        assert relative_change([0, 5]) == 0.0

    def test_min_max_normalize_zero_range(self):
        assert list(min_max_normalize([3, 3, 3])) == [0.0, 0.0, 0.0]
        assert list(min_max_normalize([1, 2, 3])) == pytest.approx([0.0, 0.5, 1.0])


class TestRandomNormals:
    def test_seeded_draws_are_reproducible(self):
        a = random_normal(np.random.default_rng(1))
        b = random_normal(np.random.default_rng(1))
        assert a == b
        assert math.isfinite(a)

    def test_vectorized_moments(self):
        draws = random_normals(np.random.default_rng(3), 200_000)
        assert draws.mean() == pytest.approx(0.0, abs=0.01)
        assert draws.std() == pytest.approx(1.0, abs=0.01)
