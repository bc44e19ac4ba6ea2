# Pure inventory analytics: no I/O, no persistence, no clocks unless defaulted.
# Every function takes already-fetched records and returns new values.

from .config import EngineConfig, DEFAULT_CONFIG, resolve_config
from .models import (
    AgingEntry,
    Allocation,
    AllocationMethod,
    AllocationPreview,
    AnomalyIssue,
    CycleCount,
    DamageRecord,
    InboundBatch,
    IssueAction,
    MovementStatus,
    Product,
    ReorderSuggestion,
    Severity,
    SlottingAction,
    SlottingInsight,
    SlottingReport,
    StockAging,
    StockLayer,
    StockoutForecast,
    Transaction,
    TransactionType,
    TrendDirection,
    TrendInfo,
    TrendResult,
    VelocityClass,
)
from .parsers import DateParser, SKUNormalizer, normalize_key, parse_quantity
from .quality import DataQualityChecker, DataQualityIssue, DataQualityReport
from .forecast import (
    SafetyStockCalculator,
    TrendEstimator,
    build_usage_series,
    calculate_burn_rate,
    calculate_safety_stock,
    calculate_trend,
    predict_stockout,
)
from .reorder import ReorderAdvisor
from .batches import (
    BatchAllocator,
    allocate,
    inbound_batches,
    remaining_layers,
    sort_batches,
)
from .slotting import VelocityClassifier, compute_velocity
from .anomaly import AnomalyDetector, derive_net_flow, summarize

__all__ = [
    "EngineConfig",
    "DEFAULT_CONFIG",
    "resolve_config",
    "AgingEntry",
    "Allocation",
    "AllocationMethod",
    "AllocationPreview",
    "AnomalyIssue",
    "CycleCount",
    "DamageRecord",
    "InboundBatch",
    "IssueAction",
    "MovementStatus",
    "Product",
    "ReorderSuggestion",
    "Severity",
    "SlottingAction",
    "SlottingInsight",
    "SlottingReport",
    "StockAging",
    "StockLayer",
    "StockoutForecast",
    "Transaction",
    "TransactionType",
    "TrendDirection",
    "TrendInfo",
    "TrendResult",
    "VelocityClass",
    "DateParser",
    "SKUNormalizer",
    "normalize_key",
    "parse_quantity",
    "DataQualityChecker",
    "DataQualityIssue",
    "DataQualityReport",
    "SafetyStockCalculator",
    "TrendEstimator",
    "build_usage_series",
    "calculate_burn_rate",
    "calculate_safety_stock",
    "calculate_trend",
    "predict_stockout",
    "ReorderAdvisor",
    "BatchAllocator",
    "allocate",
    "inbound_batches",
    "remaining_layers",
    "sort_batches",
    "VelocityClassifier",
    "compute_velocity",
    "AnomalyDetector",
    "derive_net_flow",
    "summarize",
]
