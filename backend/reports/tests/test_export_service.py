"""
Tests for CSV and Excel report exports.
"""
import csv
import io

import pytest
from datetime import date
from decimal import Decimal

from openpyxl import load_workbook

from core_backend.exceptions import ValidationError
from reports.services.breakdowns import vendor_analysis
from reports.services.export_service import ExportService
from reports.services.period_service import PeriodData, build_period_report
from reports.services.periods import DateRange
from reports.services.tax_service import VendorPayments, build_schedule_c

JUNE = DateRange(date(2024, 6, 1), date(2024, 6, 30))


def read_csv(content):
    return list(csv.reader(io.StringIO(content.decode('utf-8'))))


class TestCsvExport:
    def test_pnl(self, june_data):
        rows = read_csv(ExportService.export_to_csv(build_period_report(june_data, JUNE).as_dict(), 'pnl'))

        assert rows[0] == ['Profit & Loss 2024-06-01 to 2024-06-30']
        assert rows[1] == ['Line', 'Amount']
        assert ['Revenue - food', '160.00'] in rows
        assert ['Operating - Rent', '1500.00'] in rows
        assert ['Net income', '-2574.17'] in rows
        assert ['food_cost_percent', '13.50'] in rows

    def test_sections_separated_by_blank_row(self, june_data):
        rows = read_csv(ExportService.export_to_csv(build_period_report(june_data, JUNE).as_dict(), 'pnl'))

        ratios_title = rows.index(['Ratios'])
        assert rows[ratios_title - 1] == []

    def test_missing_ratio_is_blank(self):
        rows = read_csv(ExportService.export_to_csv(build_period_report(PeriodData(), JUNE).as_dict(), 'pnl'))

        assert ['net_margin_percent', ''] in rows

    def test_schedule_c(self, june_data):
        rows = read_csv(ExportService.export_to_csv(build_schedule_c(june_data, JUNE).as_dict(), 'schedule_c'))

        assert ['20b', 'Rent - other business property (line 20b)', '1500.00'] in rows
        assert ['31', 'Net profit (loss)', '-2574.17'] in rows

    def test_form_1099_marks_missing_tin(self):
        vendors = [VendorPayments(
            vendor_id=4, vendor_name='Pest Control', tax_id='', total_paid=Decimal('700.00'),
            payment_count=3, requires_1099=True, near_threshold=False,
        )]

        rows = read_csv(ExportService.export_to_csv(vendors, 'form_1099'))

        assert rows[2] == ['Pest Control', 'MISSING', '700.00', '3', 'Yes', 'No']

    def test_unsupported_report_type(self):
        with pytest.raises(ValidationError):
            ExportService.export_to_csv({}, 'balance_sheet')


class TestXlsxExport:
    def test_workbook_loads(self, june_data):
        content = ExportService.export_to_xlsx(build_period_report(june_data, JUNE).as_dict(), 'pnl')

        ws = load_workbook(io.BytesIO(content)).active
        assert ws.title == 'Pnl'
        assert ws['A1'].value == 'Profit & Loss 2024-06-01 to 2024-06-30'
        assert ws['A2'].value == 'Line'
        assert ws['A2'].font.bold

    def test_amounts_stay_numeric(self, june_data):
        content = ExportService.export_to_xlsx(vendor_analysis(june_data.expenses, JUNE), 'vendor_analysis')

        ws = load_workbook(io.BytesIO(content)).active
        assert ws['A3'].value == 'Landlord LLC'
        assert float(ws['C3'].value) == 1500.0
        assert ws['C3'].number_format == '#,##0.00'

    def test_unsupported_report_type(self):
        with pytest.raises(ValidationError):
            ExportService.export_to_xlsx({}, 'balance_sheet')
