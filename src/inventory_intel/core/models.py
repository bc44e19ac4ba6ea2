"""
Value objects shared by every component.

All records are frozen dataclasses. They are built once at the ingestion
boundary (see clients.sheet_records) and only ever read afterwards.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class TransactionType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class AllocationMethod(str, Enum):
    """Order in which inbound batches are consumed."""

    FIFO = "FIFO"  # oldest receipt first
    FEFO = "FEFO"  # earliest expiry first


class TrendDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    STABLE = "STABLE"


class VelocityClass(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"  # deadstock


class SlottingAction(str, Enum):
    MOVE_FORWARD = "MOVE_FORWARD"
    MOVE_BACK = "MOVE_BACK"
    KEEP = "KEEP"


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return {"CRITICAL": 3, "WARNING": 2, "INFO": 1}[self.value]


class IssueAction(str, Enum):
    FIX_STOCK = "FIX_STOCK"
    REVIEW = "REVIEW"


class MovementStatus(str, Enum):
    FAST = "Fast Moving"
    NORMAL = "Normal Moving"
    SLOW = "Slow Moving"
    VERY_SLOW = "Very Slow Moving"
    DEADSTOCK = "Deadstock"


# --- Inputs ---


@dataclass(frozen=True)
class Product:
    """A row of the product master sheet."""

    id: str
    name: str
    sku: str  # canonical join key shared with Transaction.sku
    stock: int = 0
    min_stock: int | None = None
    price: float = 0.0
    unit: str = "pcs"
    location: str = "-"
    category: str = "General"
    status: str = "Active"

    @property
    def is_active(self) -> bool:
        return self.status.strip().lower() == "active"


@dataclass(frozen=True)
class Transaction:
    """A single stock movement. Direction is carried by `type`, never by sign."""

    date: date
    sku: str
    qty: float
    type: TransactionType
    product_name: str = ""
    batch: str | None = None
    expiry_date: date | None = None
    doc_ref: str | None = None
    owner: str | None = None


@dataclass(frozen=True)
class CycleCount:
    """Result of a physical count against the system quantity."""

    id: str
    sku: str
    date: date | None
    system_qty: float
    counted_qty: float
    variance: float
    product_name: str = ""


@dataclass(frozen=True)
class DamageRecord:
    sku: str
    qty: float
    date: "date | None" = None
    product_name: str = ""


@dataclass(frozen=True)
class InboundBatch:
    """One inbound receipt: the unit tracked for aging and allocation."""

    date: date
    qty: float
    expiry_date: date | None = None
    batch: str | None = None


# --- Forecasting ---


@dataclass(frozen=True)
class TrendResult:
    slope: float
    intercept: float
    r_squared: float
    prediction: float
    trend: TrendDirection
    growth_rate: float


@dataclass(frozen=True)
class StockoutForecast:
    days_left: int
    date: date | None
    risk: str  # CRITICAL / HIGH / MEDIUM / LOW


@dataclass(frozen=True)
class TrendInfo:
    slope: float
    growth: float
    direction: TrendDirection


@dataclass(frozen=True)
class ReorderSuggestion:
    id: str
    name: str
    current_stock: int
    min_stock: int  # effective minimum: max(manual min, reorder point)
    price: float
    confidence: int
    reason: str
    suggested_qty: int
    safety_stock: int
    reorder_point: int
    trend_info: TrendInfo


# --- Batches ---


@dataclass(frozen=True)
class StockLayer:
    date: date | None  # None when no inbound batch explains the quantity
    qty: float
    days_old: int

    @property
    def label(self) -> str:
        return self.date.isoformat() if self.date else "Unknown"


@dataclass(frozen=True)
class StockAging:
    sku: str
    total_stock: float
    oldest_date: date | None
    max_days_old: int
    layers: tuple[StockLayer, ...] = ()


@dataclass(frozen=True)
class Allocation:
    date: date
    expiry_date: date | None
    qty_from_layer: float
    days_old: int


@dataclass(frozen=True)
class AllocationPreview:
    sku: str
    requested_qty: float
    method: AllocationMethod
    allocations: tuple[Allocation, ...]
    total_inbound: float
    total_outbound: float
    current_stock: float

    @property
    def allocated_qty(self) -> float:
        return sum(a.qty_from_layer for a in self.allocations)

    @property
    def shortfall(self) -> float:
        return max(0, self.requested_qty - self.allocated_qty)

    @property
    def is_fully_allocated(self) -> bool:
        return self.shortfall == 0

    @property
    def message(self) -> str:
        if not self.allocations:
            return "Insufficient stock"
        parts = []
        for a in self.allocations:
            origin = (
                f"expires {a.expiry_date.isoformat()}"
                if a.expiry_date
                else f"received {a.date.isoformat()}"
            )
            parts.append(f"{a.qty_from_layer:g} units ({origin}, {a.days_old} days)")
        return f"{self.method.value}: take " + ", ".join(parts)


@dataclass(frozen=True)
class AgingEntry:
    id: str
    name: str
    category: str
    location: str
    stock: int
    price: float
    value: float
    last_sold_date: date | None
    days_since_last_sale: int
    movement_status: MovementStatus
    layers: tuple[StockLayer, ...] = ()
    oldest_date: date | None = None
    max_days_old: int = 0


# --- Slotting ---


@dataclass(frozen=True)
class SlottingInsight:
    product_id: str
    product_name: str
    current_location: str
    velocity_score: float
    velocity_class: VelocityClass
    ideal_zone: str
    action: SlottingAction
    reason: str


@dataclass(frozen=True)
class SlottingReport:
    insights: tuple[SlottingInsight, ...] = ()

    @property
    def distribution(self) -> dict[str, int]:
        counts = {c.value: 0 for c in VelocityClass}
        for insight in self.insights:
            counts[insight.velocity_class.value] += 1
        return counts

    @property
    def recommendations(self) -> list[SlottingInsight]:
        return [i for i in self.insights if i.action != SlottingAction.KEEP]

    def summary(self) -> dict:
        return {
            "total_analyzed": len(self.insights),
            "class_distribution": self.distribution,
            "moves_recommended": len(self.recommendations),
        }


# --- Anomalies ---


@dataclass(frozen=True)
class AnomalyIssue:
    id: str
    type: Severity
    title: str
    description: str
    entity_id: str | None = None
    entity_name: str | None = None
    value: str | float | None = None
    action: IssueAction = IssueAction.REVIEW
