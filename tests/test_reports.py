"""Report service tests."""

import logging
from datetime import date

import pytest

from inventory_intel.clients import InventoryReportService, SheetRecordLoader
from inventory_intel.core.config import EngineConfig
from inventory_intel.core.models import AllocationMethod


@pytest.fixture
def data():
    return SheetRecordLoader().load_all(
        products=[
            {"Name": "Widget", "Stock": 25, "Location": "A-01", "Price": 2},
            {"Name": "Gadget", "Stock": 0, "Location": "C-03"},
        ],
        inbound=[
            {"Date": "2024-01-01", "Product": "Widget", "Qty": 10},
            {"Date": "2024-01-15", "Product": "Widget", "Qty": 20},
            {"Date": "2024-02-01", "Product": "Gadget", "Qty": 3},
        ],
        outbound=[
            {"Date": "2024-02-20", "Product": "Widget", "Qty": 5},
            {"Date": "2024-02-25", "Product": "Gadget", "Qty": 3},
        ],
    )


@pytest.fixture
def service(today):
    return InventoryReportService(reference_date=today)


class TestDashboard:

    def test_all_sections(self, service, data, today):
        report = service.dashboard(data)
        assert report.is_complete
        assert report.reference_date == today
        assert [s.name for s in report.reorder_suggestions] == ["Gadget"]
        assert len(report.aging) == 2
        assert report.slotting.distribution == {"A": 1, "B": 1, "C": 0, "D": 0}
        assert report.anomalies == []
        assert report.to_dict()["errors"] == {}

    def test_failing_section_is_isolated(self, service, data, monkeypatch, caplog):
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(service.allocator, "aging_report", broken)
        with caplog.at_level(logging.ERROR):
            report = service.dashboard(data)

        assert report.aging is None
        assert report.errors == {"aging": "boom"}
        assert report.reorder_suggestions is not None
        assert report.slotting is not None
        assert report.anomalies is not None
        assert report.summary()["failed_sections"] == ["aging"]
        assert any("aging" in r.getMessage() for r in caplog.records)

    def test_mismatch_surfaces_in_anomalies(self, today):
        data = SheetRecordLoader().load_all(
            products=[{"Name": "Widget", "Stock": 120, "Location": "A-01"}],
            inbound=[{"Date": "2024-01-01", "Product": "Widget", "Qty": 150}],
            outbound=[{"Date": "2024-01-05", "Product": "Widget", "Qty": 30}],
            damage=[{"Product": "Widget", "Qty": 10}],
        )
        issues = InventoryReportService(reference_date=today).anomaly_report(data)
        assert [(i.title, i.value) for i in issues] == [("Stock Mismatch", "+10")]

    def test_reorder_overrides_apply_to_one_call(self, service, data):
        # A longer lead time and cover period pull Widget under its reorder point
        names = [s.name for s in service.reorder_suggestions(data, lead_time_days=60, target_days=90)]
        assert names == ["Gadget", "Widget"]
        assert [s.name for s in service.reorder_suggestions(data)] == ["Gadget"]
        assert service.config.lead_time_days == 7


class TestAllocationPreview:

    def test_preview_from_loaded_data(self, service, data):
        preview = service.allocation_preview(data, "widget", 10)
        assert preview.current_stock == 25
        assert preview.is_fully_allocated
        assert preview.allocations[0].date == date(2024, 1, 1)

    def test_method_from_config(self, data, today):
        service = InventoryReportService(
            EngineConfig(allocation_method="FEFO"), reference_date=today
        )
        assert service.allocation_preview(data, "widget", 1).method == AllocationMethod.FEFO
