# Adapters between the spreadsheet rows and the core engine.
# Sheet layout quirks live here; the core never sees raw rows.

from .sheet_records import LoadedData, SheetRecordLoader
from .reports import DashboardReport, InventoryReportService

__all__ = [
    "LoadedData",
    "SheetRecordLoader",
    "DashboardReport",
    "InventoryReportService",
]
