"""Trend, safety stock, burn rate and usage series tests."""

from datetime import date, timedelta

import pytest

from inventory_intel.core.config import EngineConfig
from inventory_intel.core.forecast import (
    SafetyStockCalculator,
    TrendEstimator,
    build_usage_series,
    calculate_burn_rate,
    calculate_safety_stock,
    calculate_trend,
    predict_stockout,
)
from inventory_intel.core.models import TrendDirection
from tests.factories import inbound, outbound


class TestCalculateTrend:

    def test_constant_series_is_stable(self):
        result = calculate_trend([5] * 10)
        assert result.slope == 0
        assert result.trend == TrendDirection.STABLE
        assert result.prediction == pytest.approx(5)
        assert result.r_squared == 0
        assert result.growth_rate == 0

    def test_arithmetic_series_fits_perfectly(self):
        result = calculate_trend(list(range(10)))
        assert result.slope == pytest.approx(1)
        assert result.intercept == pytest.approx(0)
        assert result.r_squared == pytest.approx(1)
        assert result.prediction == pytest.approx(10)
        assert result.trend == TrendDirection.UP
        assert result.growth_rate == pytest.approx(1 / 4.5 * 100)

    def test_rising_demand(self):
        usage = [2, 2, 3, 2, 4, 3, 5, 4, 6, 5, 7, 6, 8, 7, 9, 8, 10, 9, 12, 10,
                 14, 12, 15, 14, 18, 16, 20, 18, 22, 20]
        result = calculate_trend(usage)
        assert result.slope > 0
        assert result.trend == TrendDirection.UP
        assert result.growth_rate > 0
        assert 0 <= result.r_squared <= 1

    def test_falling_demand(self):
        result = calculate_trend([10, 8, 6, 4, 2])
        assert result.trend == TrendDirection.DOWN

    def test_prediction_never_negative(self):
        result = calculate_trend([10, 5, 0])
        assert result.prediction == 0

    def test_single_point(self):
        result = calculate_trend([4])
        assert result.slope == 0
        assert result.prediction == 4
        assert result.trend == TrendDirection.STABLE

    def test_empty_series(self):
        result = calculate_trend([])
        assert result.prediction == 0
        assert result.trend == TrendDirection.STABLE

    def test_threshold_is_configurable(self):
        usage = [0, 0.5, 1, 1.5, 2]  # slope 0.5
        assert TrendEstimator().estimate(usage).trend == TrendDirection.UP
        strict = TrendEstimator(EngineConfig(trend_slope_threshold=1))
        assert strict.estimate(usage).trend == TrendDirection.STABLE


class TestSafetyStock:

    def test_flat_series_needs_no_buffer(self):
        assert calculate_safety_stock([5] * 30) == 0

    def test_too_short_series(self):
        assert calculate_safety_stock([7]) == 0
        assert calculate_safety_stock([]) == 0

    def test_sample_std_dev(self):
        # std([2, 4], ddof=1) = 1.414; 1.65 * 1.414 * sqrt(7) = 6.17
        assert calculate_safety_stock([2, 4]) == 7

    def test_grows_with_lead_time(self):
        usage = [1, 5, 2, 8, 3, 9]
        shorter = calculate_safety_stock(usage, lead_time_days=7)
        longer = calculate_safety_stock(usage, lead_time_days=14)
        assert longer >= shorter > 0

    def test_calculator_uses_config(self):
        usage = [1, 5, 2, 8, 3, 9]
        calc = SafetyStockCalculator(EngineConfig(lead_time_days=14, service_level_z=2.33))
        assert calc.calculate(usage) == calculate_safety_stock(
            usage, lead_time_days=14, service_level_z=2.33
        )
        assert calc.calculate(usage, lead_time_days=7) == calculate_safety_stock(
            usage, lead_time_days=7, service_level_z=2.33
        )


class TestStockout:

    def test_burn_rate(self):
        assert calculate_burn_rate([2, 4]) == 3.0
        assert calculate_burn_rate([]) == 0.0

    def test_out_of_stock(self, today):
        forecast = predict_stockout(0, 5, today)
        assert forecast.days_left == 0
        assert forecast.risk == "CRITICAL"

    def test_no_consumption(self, today):
        forecast = predict_stockout(100, 0, today)
        assert forecast.days_left == 999
        assert forecast.date is None
        assert forecast.risk == "LOW"

    @pytest.mark.parametrize(
        "stock,days,risk",
        [(50, 5, "CRITICAL"), (100, 10, "HIGH"), (200, 20, "MEDIUM"), (300, 30, "LOW")],
    )
    def test_risk_bands(self, today, stock, days, risk):
        forecast = predict_stockout(stock, 10, today)
        assert forecast.days_left == days
        assert forecast.risk == risk
        assert forecast.date == today + timedelta(days=days)


class TestUsageSeries:

    def test_buckets_outbound_per_day(self, today):
        transactions = [
            outbound("widget", 3, date(2024, 2, 27)),
            outbound("widget", 2, date(2024, 2, 27)),
            outbound("widget", 4, date(2024, 3, 1)),
            inbound("widget", 50, date(2024, 2, 28)),
            outbound("widget", 9, date(2024, 2, 20)),  # before the window
        ]
        usage = build_usage_series(transactions, reference_date=today, window_days=5)
        assert usage == {"widget": [0, 5, 0, 0, 4]}

    def test_one_series_per_sku(self, today):
        transactions = [
            outbound("widget", 1, date(2024, 3, 1)),
            outbound("gadget", 2, date(2024, 2, 29)),
        ]
        usage = build_usage_series(transactions, reference_date=today, window_days=3)
        assert usage["widget"] == [0, 0, 1]
        assert usage["gadget"] == [0, 2, 0]

    def test_no_outbound(self, today):
        assert build_usage_series([inbound("widget", 5, today)], reference_date=today) == {}
