"""
Demand forecasting functions.

Computes:
- Linear demand trend over a daily usage series
- Statistical safety stock
- Burn rate and estimated stockout date
- Zero-filled daily usage series from the outbound log
"""

from datetime import date, timedelta
from typing import Iterable, Sequence
import math

import numpy as np
import pandas as pd

from .config import EngineConfig, resolve_config
from .models import (
    StockoutForecast,
    Transaction,
    TransactionType,
    TrendDirection,
    TrendResult,
)


def calculate_trend(usage: Sequence[float], slope_threshold: float = 0.1) -> TrendResult:
    """
    Fit a least-squares line through the usage series.

    The day index 0..n-1 is the independent variable, so `prediction` is the
    forecast for the next day (x = n), floored at zero.

    Args:
        usage: Per-day quantities in chronological order, zero-filled.
        slope_threshold: Minimum |slope| for the trend to count as UP or DOWN.
    """
    n = len(usage)
    if n < 2:
        return TrendResult(
            slope=0.0,
            intercept=0.0,
            r_squared=0.0,
            prediction=float(usage[0]) if n else 0.0,
            trend=TrendDirection.STABLE,
            growth_rate=0.0,
        )

    y = np.asarray(usage, dtype=float)
    x = np.arange(n, dtype=float)

    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_xx = (x * x).sum()

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    # Goodness of fit
    y_mean = sum_y / n
    ss_res = ((y - (slope * x + intercept)) ** 2).sum()
    ss_tot = ((y - y_mean) ** 2).sum()
    r_squared = 0.0 if ss_tot == 0 else 1 - ss_res / ss_tot
    r_squared = min(1.0, max(0.0, r_squared))

    prediction = max(0.0, slope * n + intercept)

    if slope > slope_threshold:
        trend = TrendDirection.UP
    elif slope < -slope_threshold:
        trend = TrendDirection.DOWN
    else:
        trend = TrendDirection.STABLE

    growth_rate = 0.0 if y_mean == 0 else slope / y_mean * 100

    return TrendResult(
        slope=float(slope),
        intercept=float(intercept),
        r_squared=float(r_squared),
        prediction=float(prediction),
        trend=trend,
        growth_rate=float(growth_rate),
    )


def calculate_safety_stock(
    usage: Sequence[float],
    lead_time_days: float = 7,
    service_level_z: float = 1.65,
) -> int:
    """
    Safety stock = ceil(Z * sample std-dev * sqrt(lead time)).

    Assumes `usage` holds daily quantities. Fewer than two points or a flat
    series gives 0.
    """
    if len(usage) < 2:
        return 0

    values = np.asarray(usage, dtype=float)
    if np.ptp(values) == 0:
        return 0

    std_dev = values.std(ddof=1)
    return int(math.ceil(service_level_z * std_dev * math.sqrt(lead_time_days)))


def calculate_burn_rate(usage: Sequence[float]) -> float:
    """Average daily consumption over the series."""
    if len(usage) == 0:
        return 0.0
    return float(sum(usage)) / len(usage)


def predict_stockout(
    current_stock: float,
    burn_rate: float,
    reference_date: date | None = None,
) -> StockoutForecast:
    """
    Estimate when stock runs out at the given burn rate.

    Risk bands: CRITICAL < 7 days, HIGH < 14, MEDIUM < 30, else LOW.
    """
    today = reference_date or date.today()

    if current_stock <= 0:
        return StockoutForecast(days_left=0, date=today, risk="CRITICAL")
    if burn_rate <= 0:
        return StockoutForecast(days_left=999, date=None, risk="LOW")

    days_left = int(math.floor(current_stock / burn_rate))

    if days_left < 7:
        risk = "CRITICAL"
    elif days_left < 14:
        risk = "HIGH"
    elif days_left < 30:
        risk = "MEDIUM"
    else:
        risk = "LOW"

    return StockoutForecast(
        days_left=days_left, date=today + timedelta(days=days_left), risk=risk
    )


def build_usage_series(
    transactions: Iterable[Transaction],
    reference_date: date | None = None,
    window_days: int = 30,
) -> dict[str, list[float]]:
    """
    Bucket outbound quantities per SKU per calendar day.

    Returns a dict of SKU -> list of `window_days` daily totals, oldest first,
    ending on `reference_date`. Days without movement are 0. SKUs with no
    outbound movement inside the window are absent.
    """
    today = reference_date or date.today()
    start = today - timedelta(days=window_days - 1)

    rows = [
        {"sku": t.sku, "date": t.date, "qty": t.qty}
        for t in transactions
        if t.type == TransactionType.OUT and start <= t.date <= today
    ]
    if not rows:
        return {}

    df = pd.DataFrame(rows)
    df["date"] = pd.to_datetime(df["date"])

    daily = df.pivot_table(
        index="date", columns="sku", values="qty", aggfunc="sum", fill_value=0
    )
    days = pd.date_range(start=start, end=today, freq="D")
    daily = daily.reindex(days, fill_value=0)

    return {sku: daily[sku].astype(float).tolist() for sku in daily.columns}


class TrendEstimator:
    """Applies `calculate_trend` with the configured slope threshold."""

    def __init__(self, config: EngineConfig | None = None):
        self.config = resolve_config(config)

    def estimate(self, usage: Sequence[float]) -> TrendResult:
        return calculate_trend(usage, slope_threshold=self.config.trend_slope_threshold)


class SafetyStockCalculator:
    """Applies `calculate_safety_stock` with the configured lead time and Z."""

    def __init__(self, config: EngineConfig | None = None):
        self.config = resolve_config(config)

    def calculate(
        self,
        usage: Sequence[float],
        lead_time_days: float | None = None,
        service_level_z: float | None = None,
    ) -> int:
        return calculate_safety_stock(
            usage,
            lead_time_days=(
                self.config.lead_time_days if lead_time_days is None else lead_time_days
            ),
            service_level_z=(
                self.config.service_level_z
                if service_level_z is None
                else service_level_z
            ),
        )
