"""
Report services.

- periods: date ranges and comparison windows
- period_service: P&L builder over sales, expense and payroll snapshots
- breakdowns: cash flow, daily summary, vendor analysis, budget vs actual
- menu_engineering: popularity/profit matrix and food-cost alerts
- tax_service: Schedule C, 1099 report, expense report, quarterly estimates
- export_service: CSV and XLSX output
"""
from reports.services.breakdowns import BreakdownService
from reports.services.export_service import ExportService
from reports.services.menu_engineering import MenuEngineeringService
from reports.services.period_service import PeriodReport, PeriodReportService, build_period_report
from reports.services.periods import CompareMode, DateRange
from reports.services.tax_service import TaxReportService

__all__ = [
    'BreakdownService',
    'CompareMode',
    'DateRange',
    'ExportService',
    'MenuEngineeringService',
    'PeriodReport',
    'PeriodReportService',
    'TaxReportService',
    'build_period_report',
]
