"""
Rule-based anomaly detection over products and movement logs.

Each rule is independent and produces zero or more issues. Rules never
modify records; the output is advisory data for a review dashboard.
"""

from datetime import date, timedelta
from typing import Callable, Iterable, Sequence
import logging

from .config import EngineConfig, resolve_config
from .models import (
    AnomalyIssue,
    CycleCount,
    DamageRecord,
    IssueAction,
    Product,
    Severity,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_LOCATIONS = {"", "-"}


def _signed(value: float) -> str:
    return f"{value:+g}"


def check_negative_stock(products: Iterable[Product]) -> list[AnomalyIssue]:
    """Negative on-hand quantity is physically impossible."""
    return [
        AnomalyIssue(
            id=f"neg-{p.id}",
            type=Severity.CRITICAL,
            title="Negative Inventory Detected",
            description=(
                f"Stock level is {p.stock}. This is physically impossible "
                "and affects valuation."
            ),
            entity_id=p.id,
            entity_name=p.name,
            value=p.stock,
            action=IssueAction.FIX_STOCK,
        )
        for p in products
        if p.stock < 0
    ]


def check_ghost_inventory(products: Iterable[Product]) -> list[AnomalyIssue]:
    """Stock on hand with no shelf to find it on."""
    return [
        AnomalyIssue(
            id=f"ghost-{p.id}",
            type=Severity.WARNING,
            title="Ghost Inventory",
            description=(
                f"Item has {p.stock} units but no assigned location. "
                "It may be lost in the warehouse."
            ),
            entity_id=p.id,
            entity_name=p.name,
            value=p.stock,
            action=IssueAction.REVIEW,
        )
        for p in products
        if p.stock > 0 and (p.location or "").strip() in PLACEHOLDER_LOCATIONS
    ]


def check_cycle_count_variance(
    counts: Iterable[CycleCount],
    threshold_percent: float = 50,
    min_system_qty: float = 5,
) -> list[AnomalyIssue]:
    """Counts that moved stock by more than `threshold_percent` of the system quantity."""
    issues = []
    for count in counts:
        if not count.variance:
            continue

        system = abs(count.system_qty or 1)
        percent = abs(count.variance) / system * 100

        if percent > threshold_percent and system > min_system_qty:
            issues.append(
                AnomalyIssue(
                    id=f"var-{count.id}",
                    type=Severity.WARNING,
                    title="Suspicious Stock Adjustment",
                    description=(
                        f"Stock adjusted by {percent:.0f}% (Qty: {count.variance:g}). "
                        "Double check for counting errors."
                    ),
                    entity_id=count.id,
                    entity_name=count.product_name or count.sku,
                    value=f"{percent:.0f}%",
                    action=IssueAction.REVIEW,
                )
            )
    return issues


def check_future_dates(
    transactions: Iterable[Transaction],
    counts: Iterable[CycleCount] = (),
    reference_date: date | None = None,
    buffer_days: int = 2,
) -> list[AnomalyIssue]:
    """Records dated past today + `buffer_days` (the buffer absorbs timezone skew)."""
    limit = (reference_date or date.today()) + timedelta(days=buffer_days)
    issues = []

    for index, t in enumerate(transactions):
        if t.date > limit:
            ref = t.doc_ref or f"{t.type.value}-{index}"
            issues.append(
                AnomalyIssue(
                    id=f"future-{ref}",
                    type=Severity.INFO,
                    title="Future Date Detected",
                    description=(
                        f"Transaction recorded for {t.date.isoformat()}. "
                        "Ensure this is intended (e.g. pre-booking)."
                    ),
                    entity_id=ref,
                    entity_name=t.product_name or t.sku or "Unknown",
                    value=t.date.isoformat(),
                    action=IssueAction.REVIEW,
                )
            )

    for count in counts:
        if count.date is not None and count.date > limit:
            issues.append(
                AnomalyIssue(
                    id=f"future-{count.id}",
                    type=Severity.INFO,
                    title="Future Date Detected",
                    description=(
                        f"Cycle count recorded for {count.date.isoformat()}. "
                        "Ensure this is intended."
                    ),
                    entity_id=count.id,
                    entity_name=count.product_name or count.sku or "Unknown",
                    value=count.date.isoformat(),
                    action=IssueAction.REVIEW,
                )
            )

    return issues


def derive_net_flow(
    products: Iterable[Product],
    transactions: Iterable[Transaction],
    damage: Iterable[DamageRecord] = (),
) -> dict[str, float]:
    """
    Stock implied by the logs: inbound - outbound - damage, per known SKU.

    Records for SKUs not in the product master are skipped.
    """
    flow: dict[str, float] = {p.sku: 0.0 for p in products}

    for t in transactions:
        if t.sku in flow:
            flow[t.sku] += t.qty if t.type == TransactionType.IN else -t.qty

    for d in damage:
        if d.sku in flow:
            flow[d.sku] -= d.qty

    return flow


def check_stock_reconciliation(
    products: Sequence[Product],
    transactions: Iterable[Transaction],
    damage: Iterable[DamageRecord] = (),
    tolerance: float = 0,
) -> list[AnomalyIssue]:
    """Reported stock that disagrees with the movement logs."""
    flow = derive_net_flow(products, transactions, damage)
    issues = []

    for p in products:
        derived = flow.get(p.sku, 0.0)
        diff = p.stock - derived
        if abs(diff) > tolerance:
            issues.append(
                AnomalyIssue(
                    id=f"mismatch-{p.id}",
                    type=Severity.WARNING,
                    title="Stock Mismatch",
                    description=(
                        f"{p.name}: Sheet={p.stock:g} vs Log={derived:g} "
                        f"(Diff: {_signed(diff)})"
                    ),
                    entity_id=p.id,
                    entity_name=p.name,
                    value=_signed(diff),
                    action=IssueAction.REVIEW,
                )
            )
    return issues


def sort_by_severity(issues: Iterable[AnomalyIssue]) -> list[AnomalyIssue]:
    """CRITICAL first, then WARNING, then INFO; order within a level is kept."""
    return sorted(issues, key=lambda i: i.type.rank, reverse=True)


def summarize(issues: Sequence[AnomalyIssue]) -> dict:
    return {
        "total": len(issues),
        "critical": sum(1 for i in issues if i.type == Severity.CRITICAL),
        "warning": sum(1 for i in issues if i.type == Severity.WARNING),
        "info": sum(1 for i in issues if i.type == Severity.INFO),
    }


class AnomalyDetector:
    """
    Runs every rule and merges the findings.

    Extra rules can be registered with add_rule(); a rule receives the same
    keyword arguments as detect() and returns a list of AnomalyIssue.
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = resolve_config(config)
        self._extra_rules: list[Callable[..., list[AnomalyIssue]]] = []

    def add_rule(self, rule: Callable[..., list[AnomalyIssue]]) -> "AnomalyDetector":
        """Register a custom rule. Returns self for chaining."""
        self._extra_rules.append(rule)
        return self

    def detect(
        self,
        products: Sequence[Product],
        transactions: Sequence[Transaction] | None = None,
        cycle_counts: Sequence[CycleCount] = (),
        damage: Sequence[DamageRecord] = (),
        reference_date: date | None = None,
    ) -> list[AnomalyIssue]:
        """
        Return all findings, most severe first.

        Stock reconciliation only runs when a transaction log is given;
        without one every stocked product would look mismatched.
        """
        cfg = self.config
        log = transactions or ()

        issues = []
        issues.extend(check_negative_stock(products))
        issues.extend(
            check_cycle_count_variance(
                cycle_counts,
                threshold_percent=cfg.variance_threshold_percent,
                min_system_qty=cfg.variance_min_system_qty,
            )
        )
        issues.extend(check_ghost_inventory(products))
        issues.extend(
            check_future_dates(
                log,
                cycle_counts,
                reference_date=reference_date,
                buffer_days=cfg.future_date_buffer_days,
            )
        )
        if transactions is not None:
            issues.extend(
                check_stock_reconciliation(
                    products, log, damage, tolerance=cfg.reconciliation_tolerance
                )
            )

        for rule in self._extra_rules:
            issues.extend(
                rule(
                    products=products,
                    transactions=log,
                    cycle_counts=cycle_counts,
                    damage=damage,
                    reference_date=reference_date,
                )
            )

        result = sort_by_severity(issues)
        logger.debug("Anomaly detection: %s", summarize(result))
        return result
