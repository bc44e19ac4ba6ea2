"""
Restock suggestions from demand trend, safety stock and current stock.

Advisory only: nothing here changes stock levels.
"""

from datetime import date
from typing import Iterable, Mapping, Sequence
import logging
import math

from .config import EngineConfig, resolve_config
from .forecast import (
    SafetyStockCalculator,
    TrendEstimator,
    build_usage_series,
)
from .models import (
    Product,
    ReorderSuggestion,
    Transaction,
    TrendDirection,
    TrendInfo,
    TrendResult,
)

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ReorderAdvisor:
    """
    Ranks products that need replenishment.

    Per product:
    1. Forecast daily demand (trend prediction vs. window average, whichever is higher)
    2. Size a dynamic reorder point: demand over lead time + safety stock
    3. Compare stock against max(manual minimum, reorder point)

    Usage:
        advisor = ReorderAdvisor(EngineConfig(lead_time_days=5))
        suggestions = advisor.advise_from_transactions(products, transactions)
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = resolve_config(config)
        self.trend_estimator = TrendEstimator(self.config)
        self.safety_stock_calculator = SafetyStockCalculator(self.config)

    def evaluate(
        self, product: Product, usage: Sequence[float]
    ) -> ReorderSuggestion | None:
        """Return a suggestion for one product, or None when stock is adequate."""
        cfg = self.config
        if len(usage) == 0:
            usage = [0.0] * cfg.usage_window_days

        trend = self.trend_estimator.estimate(usage)
        safety_stock = self.safety_stock_calculator.calculate(usage)

        avg_daily = sum(usage) / len(usage)
        predicted_daily = trend.prediction if trend.prediction > 0 else avg_daily
        effective_daily = max(avg_daily, predicted_daily)

        reorder_point = math.ceil(effective_daily * cfg.lead_time_days + safety_stock)
        manual_min = product.min_stock or cfg.default_min_stock
        effective_min = max(manual_min, reorder_point)

        stock = product.stock
        confidence, reason = self._decide(stock, effective_min, trend)

        if confidence <= cfg.confidence_threshold:
            return None

        target_qty = math.ceil(effective_daily * cfg.target_days) + safety_stock
        suggested_qty = max(0, target_qty - stock)
        if suggested_qty <= 0:
            return None

        return ReorderSuggestion(
            id=product.id,
            name=product.name,
            current_stock=stock,
            min_stock=int(effective_min),
            price=product.price,
            confidence=_round_half_up(confidence),
            reason=reason,
            suggested_qty=int(suggested_qty),
            safety_stock=safety_stock,
            reorder_point=int(reorder_point),
            trend_info=TrendInfo(
                slope=trend.slope,
                growth=trend.growth_rate,
                direction=trend.trend,
            ),
        )

    def _decide(
        self, stock: float, effective_min: float, trend: TrendResult
    ) -> tuple[float, str]:
        """First matching rule wins; (0, "") means no rule matched."""
        threshold = self.config.trend_slope_threshold

        if stock <= 0:
            return 100.0, "Critical: Out of Stock"

        if stock <= effective_min:
            confidence = _clamp(85 + trend.slope * 10)
            if trend.slope > threshold:
                reason = (
                    f"Critical: Low stock & Trending UP (+{trend.growth_rate:.1f}%)"
                )
            else:
                reason = "Restock Needed: Below reorder point"
            return confidence, reason

        if trend.trend == TrendDirection.UP and stock < effective_min * 1.5:
            confidence = _clamp(60 + trend.r_squared * 20)
            reason = (
                f"Suggestion: High Velocity (+{trend.growth_rate:.1f}%). Stock up early."
            )
            return confidence, reason

        return 0.0, ""

    def advise(
        self,
        products: Iterable[Product],
        usage_by_sku: Mapping[str, Sequence[float]],
    ) -> list[ReorderSuggestion]:
        """
        Evaluate every product against its usage series.

        Products missing from `usage_by_sku` are treated as having no demand.
        Returns suggestions sorted by confidence, highest first.
        """
        suggestions = []
        evaluated = 0
        for product in products:
            evaluated += 1
            suggestion = self.evaluate(product, usage_by_sku.get(product.sku, ()))
            if suggestion is not None:
                suggestions.append(suggestion)

        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        logger.debug(
            "Reorder advice: %d products evaluated, %d suggestions",
            evaluated,
            len(suggestions),
        )
        return suggestions

    def advise_from_transactions(
        self,
        products: Iterable[Product],
        transactions: Iterable[Transaction],
        reference_date: date | None = None,
    ) -> list[ReorderSuggestion]:
        """Build the usage window from the outbound log, then `advise`."""
        usage = build_usage_series(
            transactions,
            reference_date=reference_date,
            window_days=self.config.usage_window_days,
        )
        return self.advise(products, usage)
