"""Reorder advisor tests."""

from datetime import date

import numpy as np
import pandas as pd

from inventory_intel.core.config import EngineConfig
from inventory_intel.core.models import TrendDirection
from inventory_intel.core.reorder import ReorderAdvisor
from tests.factories import outbound, product

RISING = [float(i) for i in range(30)]  # slope 1, reorder point 249


class TestEvaluate:

    def test_adequate_stock_gives_no_suggestion(self):
        advisor = ReorderAdvisor(EngineConfig(lead_time_days=7))
        widget = product("Widget", stock=50, min_stock=10)
        assert advisor.evaluate(widget, [5] * 30) is None

    def test_out_of_stock(self):
        suggestion = ReorderAdvisor().evaluate(product("Widget", stock=0), [5] * 30)
        assert suggestion is not None
        assert suggestion.confidence == 100
        assert suggestion.reason == "Critical: Out of Stock"
        assert suggestion.suggested_qty == 150

    def test_nothing_to_order_gives_no_suggestion(self):
        # Below the manual minimum, but no demand to cover
        advisor = ReorderAdvisor()
        assert advisor.evaluate(product("Widget", stock=50, min_stock=100), [0] * 30) is None
        assert advisor.evaluate(product("Widget", stock=0), []) is None

    def test_array_usage(self):
        usage = np.array([5.0] * 30)
        from_array = ReorderAdvisor().evaluate(product("Widget", stock=0), usage)
        from_series = ReorderAdvisor().evaluate(product("Widget", stock=0), pd.Series(usage))
        assert from_array.suggested_qty == from_series.suggested_qty == 150
        assert ReorderAdvisor().evaluate(product("Widget", stock=0), np.array([])) is None

    def test_below_reorder_point(self):
        suggestion = ReorderAdvisor().evaluate(
            product("Widget", stock=20, min_stock=10), [5] * 30
        )
        assert suggestion.confidence == 85
        assert suggestion.reason == "Restock Needed: Below reorder point"
        assert suggestion.reorder_point == 35
        assert suggestion.min_stock == 35
        assert suggestion.safety_stock == 0
        assert suggestion.suggested_qty == 130  # 5/day * 30 days - 20 on hand

    def test_manual_minimum_defaults(self):
        # reorder point 7 is under the default minimum of 10
        suggestion = ReorderAdvisor().evaluate(product("Widget", stock=8), [1] * 30)
        assert suggestion.min_stock == 10
        assert suggestion.reason == "Restock Needed: Below reorder point"

    def test_low_stock_trending_up(self):
        suggestion = ReorderAdvisor().evaluate(product("Widget", stock=100), RISING)
        assert suggestion.confidence == 95
        assert suggestion.reason == "Critical: Low stock & Trending UP (+6.9%)"
        assert suggestion.trend_info.direction == TrendDirection.UP
        assert suggestion.reorder_point == 249

    def test_high_velocity_early_restock(self):
        suggestion = ReorderAdvisor().evaluate(product("Widget", stock=300), RISING)
        assert suggestion.confidence == 80
        assert suggestion.reason.startswith("Suggestion: High Velocity (+6.9%)")

    def test_well_above_reorder_point(self):
        assert ReorderAdvisor().evaluate(product("Widget", stock=400), RISING) is None

    def test_confidence_threshold(self):
        advisor = ReorderAdvisor(EngineConfig(confidence_threshold=90))
        assert advisor.evaluate(product("Widget", stock=20), [5] * 30) is None


class TestAdvise:

    def test_sorted_by_confidence(self):
        products = [
            product("Fine", stock=500),
            product("Low", stock=20),
            product("Empty", stock=0),
        ]
        usage = {"fine": [5] * 30, "low": [5] * 30, "empty": [5] * 30}
        suggestions = ReorderAdvisor().advise(products, usage)
        assert [s.name for s in suggestions] == ["Empty", "Low"]

    def test_from_transactions(self, today):
        transactions = [outbound("widget", 40, date(2024, 2, 28))]
        suggestions = ReorderAdvisor().advise_from_transactions(
            [product("Widget", stock=0), product("Gadget", stock=100)],
            transactions,
            reference_date=today,
        )
        assert [s.id for s in suggestions] == ["P-Widget"]
        assert suggestions[0].suggested_qty > 0
