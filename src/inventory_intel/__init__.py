# Inventory intelligence for spreadsheet-backed stock consoles.

from .core import *  # noqa: F401,F403
from .core import __all__ as _core_all
from .clients import (
    DashboardReport,
    InventoryReportService,
    LoadedData,
    SheetRecordLoader,
)

__version__ = "0.1.0"

__all__ = _core_all + [
    "DashboardReport",
    "InventoryReportService",
    "LoadedData",
    "SheetRecordLoader",
]
