"""
Batch layering for stock aging and outbound allocation.

Inbound receipts are the layers. Two questions are answered from them:
- Aging: which receipts does the stock on hand come from, and how old are they?
- Allocation: which receipts would a new outbound order be picked from?

Both follow the same consumption order (FIFO by receipt date or FEFO by
expiry date), so the remaining stock is always the tail of that order.
"""

from datetime import date
from typing import Iterable, Sequence
import logging

import pandas as pd

from .config import EngineConfig, resolve_config
from .models import (
    AgingEntry,
    Allocation,
    AllocationMethod,
    AllocationPreview,
    InboundBatch,
    MovementStatus,
    Product,
    StockAging,
    StockLayer,
    Transaction,
    TransactionType,
)
from .parsers import normalize_key

logger = logging.getLogger(__name__)

NEVER_SOLD_DAYS = 9999


def _days_between(earlier: date, today: date) -> int:
    return abs((today - earlier).days)


def _consumption_key(method: AllocationMethod):
    if method == AllocationMethod.FEFO:
        # Batches without expiry go last; ties fall back to receipt date
        return lambda b: (b.expiry_date is None, b.expiry_date or date.max, b.date)
    return lambda b: b.date


def sort_batches(
    batches: Iterable[InboundBatch],
    method: AllocationMethod = AllocationMethod.FIFO,
) -> list[InboundBatch]:
    """Return batches in the order they are consumed. Input is not modified."""
    return sorted(batches, key=_consumption_key(AllocationMethod(method)))


def inbound_batches(transactions: Iterable[Transaction], sku: str) -> list[InboundBatch]:
    """Inbound receipts for one SKU as batches."""
    key = normalize_key(sku)
    return [
        InboundBatch(date=t.date, qty=t.qty, expiry_date=t.expiry_date, batch=t.batch)
        for t in transactions
        if t.type == TransactionType.IN and t.sku == key
    ]


def remaining_layers(
    current_stock: float,
    batches: Sequence[InboundBatch],
    reference_date: date | None = None,
    method: AllocationMethod = AllocationMethod.FIFO,
    unknown_age_days: int = 999,
    sku: str = "",
) -> StockAging:
    """
    Reconstruct which batches the current stock is made of.

    Consumption takes batches from the front of the sort order, so what is
    left on the shelf is the back of it: under FIFO, the newest receipts.
    Stock not explained by any batch (opening balances that were never
    logged) becomes one layer with an unknown date.

    Args:
        current_stock: Reported quantity on hand.
        batches: All inbound batches for the SKU.
        reference_date: "Today" for the days_old calculation.
        method: Consumption order the warehouse follows.
        unknown_age_days: days_old reported for the unexplained remainder.
    """
    today = reference_date or date.today()
    ordered = sorted(
        batches, key=_consumption_key(AllocationMethod(method)), reverse=True
    )

    remaining = current_stock
    layers: list[StockLayer] = []
    oldest_date = None
    max_days_old = 0

    for batch in ordered:
        if remaining <= 0:
            break
        if batch.qty <= 0:
            continue

        taken = min(remaining, batch.qty)
        days_old = _days_between(batch.date, today)
        layers.append(StockLayer(date=batch.date, qty=taken, days_old=days_old))

        oldest_date = batch.date
        max_days_old = days_old
        remaining -= taken

    if remaining > 0:
        layers.append(StockLayer(date=None, qty=remaining, days_old=unknown_age_days))
        max_days_old = unknown_age_days

    return StockAging(
        sku=sku,
        total_stock=current_stock,
        oldest_date=oldest_date,
        max_days_old=max_days_old,
        layers=tuple(layers),
    )


def allocate(
    quantity: float,
    batches: Sequence[InboundBatch],
    already_sold: float = 0,
    method: AllocationMethod = AllocationMethod.FIFO,
    reference_date: date | None = None,
) -> tuple[Allocation, ...]:
    """
    Pick the batches an outbound order of `quantity` would come from.

    Quantity already sold is netted off the front of the consumption order
    first. If the batches run out, the allocations sum to less than
    `quantity`; callers detect a shortfall by comparing the sums.
    """
    today = reference_date or date.today()
    sold_remaining = already_sold
    need = quantity
    allocations: list[Allocation] = []

    for batch in sort_batches(batches, method):
        if batch.qty <= 0:
            continue

        available = batch.qty
        if sold_remaining > 0:
            used = min(sold_remaining, batch.qty)
            sold_remaining -= used
            available = batch.qty - used

        if available <= 0:
            continue
        if need <= 0:
            break

        taken = min(need, available)
        allocations.append(
            Allocation(
                date=batch.date,
                expiry_date=batch.expiry_date,
                qty_from_layer=taken,
                days_old=_days_between(batch.date, today),
            )
        )
        need -= taken

    return tuple(allocations)


def movement_status(
    days_since_last_sale: int, thresholds: Sequence[int] = (15, 60, 90, 180)
) -> MovementStatus:
    fast, normal, slow, very_slow = thresholds
    if days_since_last_sale <= fast:
        return MovementStatus.FAST
    if days_since_last_sale <= normal:
        return MovementStatus.NORMAL
    if days_since_last_sale <= slow:
        return MovementStatus.SLOW
    if days_since_last_sale <= very_slow:
        return MovementStatus.VERY_SLOW
    return MovementStatus.DEADSTOCK


def last_sold_dates(transactions: Iterable[Transaction]) -> dict[str, date]:
    """Latest outbound date per SKU."""
    rows = [
        {"sku": t.sku, "date": t.date}
        for t in transactions
        if t.type == TransactionType.OUT
    ]
    if not rows:
        return {}
    df = pd.DataFrame(rows)
    return df.groupby("sku")["date"].max().to_dict()


class BatchAllocator:
    """
    FIFO/FEFO layering over a SKU's inbound batches.

    The allocation method is the only axis of variation; it defaults to the
    configured `allocation_method` and can be overridden per call.
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = resolve_config(config)

    def _method(self, method: AllocationMethod | str | None) -> AllocationMethod:
        return AllocationMethod(method) if method else self.config.allocation_method

    def layers(
        self,
        sku: str,
        current_stock: float,
        transactions: Iterable[Transaction],
        reference_date: date | None = None,
        method: AllocationMethod | str | None = None,
    ) -> StockAging:
        """Aging layers of the current stock of one SKU."""
        return remaining_layers(
            current_stock,
            inbound_batches(transactions, sku),
            reference_date=reference_date,
            method=self._method(method),
            unknown_age_days=self.config.unknown_age_days,
            sku=sku,
        )

    def preview(
        self,
        sku: str,
        quantity: float,
        transactions: Sequence[Transaction],
        method: AllocationMethod | str | None = None,
        reference_date: date | None = None,
    ) -> AllocationPreview:
        """Show which batches an outbound order would be picked from."""
        key = normalize_key(sku)
        method = self._method(method)
        matching = [t for t in transactions if t.sku == key]

        total_inbound = sum(t.qty for t in matching if t.type == TransactionType.IN)
        total_outbound = sum(t.qty for t in matching if t.type == TransactionType.OUT)

        allocations = allocate(
            quantity,
            inbound_batches(matching, key),
            already_sold=total_outbound,
            method=method,
            reference_date=reference_date,
        )

        return AllocationPreview(
            sku=sku,
            requested_qty=quantity,
            method=method,
            allocations=allocations,
            total_inbound=total_inbound,
            total_outbound=total_outbound,
            current_stock=total_inbound - total_outbound,
        )

    def aging_report(
        self,
        products: Iterable[Product],
        transactions: Sequence[Transaction],
        reference_date: date | None = None,
        method: AllocationMethod | str | None = None,
    ) -> list[AgingEntry]:
        """
        Per-product aging: last sale, movement status and stock layers.

        Products that never sold report NEVER_SOLD_DAYS and are Deadstock.
        """
        today = reference_date or date.today()
        method = self._method(method)
        last_sold = last_sold_dates(transactions)

        batches_by_sku: dict[str, list[InboundBatch]] = {}
        for t in transactions:
            if t.type == TransactionType.IN:
                batches_by_sku.setdefault(t.sku, []).append(
                    InboundBatch(
                        date=t.date, qty=t.qty, expiry_date=t.expiry_date, batch=t.batch
                    )
                )

        report = []
        for product in products:
            sold_on = last_sold.get(product.sku)
            days_since = (
                _days_between(sold_on, today) if sold_on is not None else NEVER_SOLD_DAYS
            )

            aging = remaining_layers(
                product.stock,
                batches_by_sku.get(product.sku, []),
                reference_date=today,
                method=method,
                unknown_age_days=self.config.unknown_age_days,
                sku=product.sku,
            )

            report.append(
                AgingEntry(
                    id=product.id,
                    name=product.name,
                    category=product.category,
                    location=product.location,
                    stock=product.stock,
                    price=product.price,
                    value=product.stock * product.price,
                    last_sold_date=sold_on,
                    days_since_last_sale=days_since,
                    movement_status=movement_status(
                        days_since, self.config.movement_thresholds
                    ),
                    layers=aging.layers,
                    oldest_date=aging.oldest_date,
                    max_days_old=aging.max_days_old,
                )
            )

        logger.debug("Aging report built for %d products", len(report))
        return report
