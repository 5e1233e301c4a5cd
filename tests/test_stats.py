"""Tests de estadísticos de ventana."""

import math

import pytest

from health_service.stats import compute_window_stats, mean, population_std_dev, trend
from ingest_api.errors import InsufficientDataError

from conftest import make_window


class TestSeriesHelpers:
    def test_mean(self):
        assert mean([1.0, 2.0, 3.0, 4.0]) == pytest.approx(2.5)

    def test_population_std_dev_not_sample(self):
        # Poblacional: sqrt(((1-2.5)^2 + ... ) / 4), no / 3
        assert population_std_dev([1.0, 2.0, 3.0, 4.0]) == pytest.approx(math.sqrt(1.25))

    def test_std_dev_single_value_is_zero(self):
        assert population_std_dev([42.0]) == 0.0

    def test_trend_last_three_minus_first_three(self):
        assert trend([1.0, 2.0, 3.0, 10.0, 11.0, 12.0]) == pytest.approx(9.0)

    def test_trend_zero_with_fewer_than_three(self):
        assert trend([1.0, 50.0]) == 0.0

    def test_trend_falling_is_negative(self):
        assert trend([12.0, 11.0, 10.0, 3.0, 2.0, 1.0]) == pytest.approx(-9.0)

    @pytest.mark.parametrize("fn", [mean, population_std_dev, trend])
    def test_empty_series_raises(self, fn):
        with pytest.raises(InsufficientDataError):
            fn([])


class TestComputeWindowStats:
    def test_empty_window_raises(self):
        with pytest.raises(InsufficientDataError):
            compute_window_stats([])

    def test_aggregates_per_sensor(self):
        window = make_window(
            temperatures=[60.0, 70.0, 80.0],
            vibrations=[0.1, 0.2, 0.6],
            pressures=[30.0, 35.0, 40.0],
        )
        stats = compute_window_stats(window)

        assert stats.count == 3
        assert stats.mean_t == pytest.approx(70.0)
        assert stats.min_t == 60.0
        assert stats.max_t == 80.0
        # Vibración normalizada ×100
        assert stats.mean_v == pytest.approx(30.0)
        assert stats.max_v == pytest.approx(60.0)
        assert stats.max_p == 40.0
        assert stats.trend_t == 0.0  # exactamente 3 lecturas: primeros 3 == últimos 3

    def test_uses_insertion_order_for_trend(self):
        rising = make_window([60, 62, 64, 66, 68, 70], [0.2] * 6, [35] * 6)
        falling = list(reversed(rising))

        assert compute_window_stats(rising).trend_t == pytest.approx(6.0)
        assert compute_window_stats(falling).trend_t == pytest.approx(-6.0)
