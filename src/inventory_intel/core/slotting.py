"""
ABC velocity classification and slotting advice.

Fast movers belong near the pick front, dead and slow stock at the back.
How a location string maps to a zone, and how zones are ordered, varies per
warehouse, so both are injectable.
"""

from datetime import date, timedelta
from typing import Callable, Iterable
import logging
import re

import pandas as pd

from .config import EngineConfig, resolve_config
from .models import (
    Product,
    SlottingAction,
    SlottingInsight,
    SlottingReport,
    Transaction,
    TransactionType,
    VelocityClass,
)

logger = logging.getLogger(__name__)

_LEADING_ZONE = re.compile(r"^([A-Z])")

IDEAL_ZONES = {
    VelocityClass.A: "Front / Zone A",
    VelocityClass.B: "Middle / Zone B",
    VelocityClass.C: "Back / Zone C",
    VelocityClass.D: "Back / Zone C",
}


def first_letter_zone(location: str | None) -> str | None:
    """Zone from location codes formatted like "A-01-03" (case-insensitive)."""
    match = _LEADING_ZONE.match((location or "").strip().upper())
    return match.group(1) if match else None


def alphabetical_rank(zone: str) -> int:
    """Zone A is the front; later letters are further back."""
    return ord(zone[0]) - ord("A")


def compute_velocity(
    transactions: Iterable[Transaction],
    reference_date: date | None = None,
    window_days: int | None = None,
) -> dict[str, float]:
    """Total outbound quantity per SKU, optionally limited to a lookback window."""
    cutoff = None
    if window_days is not None:
        cutoff = (reference_date or date.today()) - timedelta(days=window_days)

    rows = [
        {"sku": t.sku, "qty": t.qty}
        for t in transactions
        if t.type == TransactionType.OUT and (cutoff is None or t.date >= cutoff)
    ]
    if not rows:
        return {}

    df = pd.DataFrame(rows)
    return df.groupby("sku")["qty"].sum().astype(float).to_dict()


class VelocityClassifier:
    """
    Ranks products by outbound volume and recommends a storage zone.

    Classes: A = top percentile band, B = next band, C = the rest,
    D = no outbound movement at all (regardless of rank).
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        zone_of: Callable[[str | None], str | None] = first_letter_zone,
        zone_rank: Callable[[str], int] = alphabetical_rank,
        front_zone: str = "A",
        back_zone: str = "C",
    ):
        self.config = resolve_config(config)
        self.zone_of = zone_of
        self.zone_rank = zone_rank
        self.front_zone = front_zone
        self.back_zone = back_zone

    def classify_percentile(self, velocity: float, percentile: float) -> VelocityClass:
        if velocity == 0:
            return VelocityClass.D
        if percentile <= self.config.class_a_boundary_percent:
            return VelocityClass.A
        if percentile <= self.config.class_b_boundary_percent:
            return VelocityClass.B
        return VelocityClass.C

    def _placement(
        self, velocity_class: VelocityClass, zone: str | None
    ) -> tuple[SlottingAction, str]:
        if zone is not None:
            rank = self.zone_rank(zone)
            if velocity_class == VelocityClass.A and rank > self.zone_rank(self.front_zone):
                return (
                    SlottingAction.MOVE_FORWARD,
                    f"High velocity item (Class A) found in Zone {zone}. "
                    "Move to front for faster picking.",
                )
            if velocity_class in (VelocityClass.C, VelocityClass.D) and rank < self.zone_rank(
                self.back_zone
            ):
                return (
                    SlottingAction.MOVE_BACK,
                    f"Low velocity item (Class {velocity_class.value}) occupying "
                    f"premium space in Zone {zone}.",
                )
        return SlottingAction.KEEP, "Good placement."

    def classify(
        self,
        products: Iterable[Product],
        transactions: Iterable[Transaction],
        reference_date: date | None = None,
    ) -> SlottingReport:
        """Classify every product and return insights in velocity order."""
        velocity = compute_velocity(
            transactions,
            reference_date=reference_date,
            window_days=self.config.velocity_window_days,
        )

        # sorted() is stable: equal velocities keep their sheet order
        ranked = sorted(
            ((p, velocity.get(p.sku, 0.0)) for p in products),
            key=lambda pair: pair[1],
            reverse=True,
        )
        total = len(ranked)

        insights = []
        for index, (product, score) in enumerate(ranked):
            percentile = index / total * 100
            velocity_class = self.classify_percentile(score, percentile)
            action, reason = self._placement(velocity_class, self.zone_of(product.location))

            insights.append(
                SlottingInsight(
                    product_id=product.id,
                    product_name=product.name,
                    current_location=product.location or "Unassigned",
                    velocity_score=score,
                    velocity_class=velocity_class,
                    ideal_zone=IDEAL_ZONES[velocity_class],
                    action=action,
                    reason=reason,
                )
            )

        report = SlottingReport(insights=tuple(insights))
        logger.debug("Slotting: %s", report.distribution)
        return report
