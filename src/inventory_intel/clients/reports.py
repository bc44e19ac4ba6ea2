"""
Report assembly for the dashboard pages.

This is the calling layer around the core: it feeds loaded sheet data into
each component and shapes the results. Sections are isolated: if one
computation fails, it is logged and reported in `errors` while every other
section is still returned.
"""

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Callable, TypeVar
import logging

from ..core.anomaly import AnomalyDetector, summarize
from ..core.batches import BatchAllocator
from ..core.config import EngineConfig, resolve_config
from ..core.models import (
    AgingEntry,
    AllocationMethod,
    AllocationPreview,
    AnomalyIssue,
    ReorderSuggestion,
    SlottingReport,
)
from ..core.reorder import ReorderAdvisor
from ..core.slotting import VelocityClassifier
from .sheet_records import LoadedData

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DashboardReport:
    """Every report section; a section that failed is None and listed in `errors`."""

    reference_date: date
    reorder_suggestions: list[ReorderSuggestion] | None = None
    aging: list[AgingEntry] | None = None
    slotting: SlottingReport | None = None
    anomalies: list[AnomalyIssue] | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return not self.errors

    def summary(self) -> dict:
        return {
            "reference_date": self.reference_date.isoformat(),
            "reorder_suggestions": (
                len(self.reorder_suggestions)
                if self.reorder_suggestions is not None
                else None
            ),
            "aging_products": len(self.aging) if self.aging is not None else None,
            "slotting": self.slotting.summary() if self.slotting is not None else None,
            "anomalies": summarize(self.anomalies) if self.anomalies is not None else None,
            "failed_sections": sorted(self.errors),
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class InventoryReportService:
    """
    Runs the engine components over one snapshot of sheet data.

    Usage:
        data = SheetRecordLoader().load_all(products=rows, inbound=ins, outbound=outs)
        service = InventoryReportService(EngineConfig(lead_time_days=5))
        report = service.dashboard(data)
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        reference_date: date | None = None,
        classifier: VelocityClassifier | None = None,
    ):
        self.config = resolve_config(config)
        self.reference_date = reference_date
        self.advisor = ReorderAdvisor(self.config)
        self.allocator = BatchAllocator(self.config)
        self.classifier = classifier or VelocityClassifier(self.config)
        self.detector = AnomalyDetector(self.config)

    def _today(self) -> date:
        return self.reference_date or date.today()

    # --- Individual reports ---

    def reorder_suggestions(
        self,
        data: LoadedData,
        lead_time_days: float | None = None,
        target_days: int | None = None,
        service_level_z: float | None = None,
    ) -> list[ReorderSuggestion]:
        """Restock suggestions; the keyword arguments override the config for this call."""
        config = resolve_config(
            self.config,
            lead_time_days=lead_time_days,
            target_days=target_days,
            service_level_z=service_level_z,
        )
        advisor = self.advisor if config is self.config else ReorderAdvisor(config)
        return advisor.advise_from_transactions(
            data.products, data.outbound, reference_date=self._today()
        )

    def allocation_preview(
        self,
        data: LoadedData,
        sku: str,
        quantity: float,
        method: AllocationMethod | str | None = None,
    ) -> AllocationPreview:
        preview = self.allocator.preview(
            sku, quantity, data.transactions, method=method, reference_date=self._today()
        )
        if not preview.is_fully_allocated:
            logger.info(
                "Allocation preview for %s short by %g units", sku, preview.shortfall
            )
        return preview

    def aging_report(self, data: LoadedData) -> list[AgingEntry]:
        return self.allocator.aging_report(
            data.products, data.transactions, reference_date=self._today()
        )

    def slotting_report(self, data: LoadedData) -> SlottingReport:
        return self.classifier.classify(
            data.products, data.outbound, reference_date=self._today()
        )

    def anomaly_report(self, data: LoadedData) -> list[AnomalyIssue]:
        return self.detector.detect(
            data.products,
            transactions=data.transactions,
            cycle_counts=data.cycle_counts,
            damage=data.damage,
            reference_date=self._today(),
        )

    # --- Everything, isolated ---

    def _run_section(
        self, name: str, fn: Callable[[LoadedData], T], data: LoadedData, errors: dict
    ) -> T | None:
        try:
            return fn(data)
        except Exception as e:
            logger.exception("Report section %s failed", name)
            errors[name] = str(e) or e.__class__.__name__
            return None

    def dashboard(self, data: LoadedData) -> DashboardReport:
        """Build every section; failures are contained to their own section."""
        errors: dict[str, str] = {}
        report = DashboardReport(
            reference_date=self._today(),
            reorder_suggestions=self._run_section(
                "reorder_suggestions", self.reorder_suggestions, data, errors
            ),
            aging=self._run_section("aging", self.aging_report, data, errors),
            slotting=self._run_section("slotting", self.slotting_report, data, errors),
            anomalies=self._run_section("anomalies", self.anomaly_report, data, errors),
            errors=errors,
        )
        logger.info("Dashboard built: %s", report.summary())
        return report
