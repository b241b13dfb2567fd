"""
CSV and Excel exports for the financial reports.

Every report is first flattened into titled tables (title, headers, rows);
the CSV writer prints the tables one after another separated by a blank
line, the XLSX writer puts them on one styled sheet.
"""
import csv
import io
import logging
from dataclasses import asdict, is_dataclass
from decimal import Decimal
from typing import Any, Dict, List, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from core_backend.exceptions import ValidationError

logger = logging.getLogger(__name__)

Table = Tuple[str, Sequence[str], List[Sequence[Any]]]


def _cell(value):
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    return value


class ExportService:
    """Service for exporting reports to CSV and Excel."""

    REPORT_TYPES = ("pnl", "schedule_c", "form_1099", "expense_report", "vendor_analysis")

    @classmethod
    def export_to_csv(cls, report_data, report_type: str) -> bytes:
        """
        Export report data to CSV format.

        Args:
            report_data: The report's ``as_dict()`` output, or a list of rows
            report_type: One of REPORT_TYPES

        Returns:
            CSV file content as bytes
        """
        output = io.StringIO()
        writer = csv.writer(output)
        try:
            for index, (title, headers, rows) in enumerate(cls._tables(report_data, report_type)):
                if index:
                    writer.writerow([])
                writer.writerow([title])
                writer.writerow(headers)
                for row in rows:
                    writer.writerow([_cell(value) for value in row])
            return output.getvalue().encode('utf-8')
        except Exception as e:
            logger.error(f"CSV export failed for {report_type}: {e}")
            raise
        finally:
            output.close()

    @classmethod
    def export_to_xlsx(cls, report_data, report_type: str) -> bytes:
        """Export report data to an Excel workbook with a single sheet."""
        wb = Workbook()
        ws = wb.active
        ws.title = report_type.replace("_", " ").title()[:31]

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center")

        try:
            row_number = 1
            for title, headers, rows in cls._tables(report_data, report_type):
                ws.cell(row=row_number, column=1, value=title).font = Font(bold=True, size=12)
                row_number += 1
                for column, header in enumerate(headers, start=1):
                    cell = ws.cell(row=row_number, column=column, value=header)
                    cell.font = header_font
                    cell.fill = header_fill
                    cell.alignment = header_alignment
                row_number += 1
                for row in rows:
                    for column, value in enumerate(row, start=1):
                        cell = ws.cell(row=row_number, column=column, value=value)
                        if isinstance(value, Decimal):
                            cell.number_format = '#,##0.00'
                    row_number += 1
                row_number += 1

            for column in ws.columns:
                width = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
                ws.column_dimensions[get_column_letter(column[0].column)].width = min(width + 2, 50)

            output = io.BytesIO()
            wb.save(output)
            return output.getvalue()
        except Exception as e:
            logger.error(f"Excel export failed for {report_type}: {e}")
            raise

    @classmethod
    def _tables(cls, report_data, report_type: str) -> List[Table]:
        builders = {
            "pnl": cls._pnl_tables,
            "schedule_c": cls._schedule_c_tables,
            "form_1099": cls._form_1099_tables,
            "expense_report": cls._expense_report_tables,
            "vendor_analysis": cls._vendor_analysis_tables,
        }
        if report_type not in builders:
            raise ValidationError(f"Unsupported report type: {report_type}", field="report_type")
        return builders[report_type](report_data)

    @staticmethod
    def _pnl_tables(data: Dict[str, Any]) -> List[Table]:
        period = data["period"]
        revenue = data["revenue"]
        expenses = data["expenses"]
        summary = [
            *[(f"Revenue - {category}", amount) for category, amount in revenue["by_category"].items()],
            ("Net revenue", revenue["net_revenue"]),
            ("Cost of goods sold", data["cogs"]),
            ("Gross profit", data["gross_profit"]),
            *[(f"Operating - {name}", amount) for name, amount in expenses["operating_by_category"].items()],
            ("Operating expenses", expenses["operating"]),
            *[(f"Marketing - {name}", amount) for name, amount in expenses["marketing_by_category"].items()],
            ("Marketing expenses", expenses["marketing"]),
            ("Payroll", expenses["payroll"]),
            ("Net income", data["net_income"]),
        ]
        tables = [
            (f"Profit & Loss {period['start']} to {period['end']}", ("Line", "Amount"), summary),
            ("Ratios", ("Ratio", "Percent"), list(data["ratios"].items())),
        ]
        comparison = data.get("comparison")
        if comparison:
            tables.append((
                f"Comparison ({comparison['mode']}) {comparison['period']['start']} to {comparison['period']['end']}",
                ("Line", "Previous", "Change %"),
                [
                    (name, previous, comparison["change_percent"].get(name))
                    for name, previous in comparison["previous"].items()
                ],
            ))
        return tables

    @staticmethod
    def _schedule_c_tables(data: Dict[str, Any]) -> List[Table]:
        period = data["period"]
        part_i = [(name, amount) for name, amount in data["part_i"].items()]
        part_ii = [(line["line"], line["label"], line["amount"]) for line in data["part_ii"]]
        part_ii.append(("28", "Total expenses", data["line_28_total_expenses"]))
        part_ii.append(("31", "Net profit (loss)", data["line_31_net_profit"]))
        return [
            (f"Schedule C {period['start']} to {period['end']} - Part I Income", ("Line", "Amount"), part_i),
            ("Part II Expenses", ("Line", "Description", "Amount"), part_ii),
            ("Part III Cost of Goods Sold", ("Line", "Amount"), list(data["part_iii"].items())),
        ]

    @staticmethod
    def _form_1099_tables(vendors) -> List[Table]:
        rows = []
        for vendor in vendors:
            v = asdict(vendor) if is_dataclass(vendor) else vendor
            rows.append((
                v["vendor_name"],
                v["tax_id"] or "MISSING",
                v["total_paid"],
                v["payment_count"],
                "Yes" if v["requires_1099"] else "No",
                "Yes" if v["near_threshold"] else "No",
            ))
        headers = ("Vendor", "Tax ID", "Total Paid", "Payments", "1099 Required", "Near Threshold")
        return [("1099 Vendor Report", headers, rows)]

    @staticmethod
    def _expense_report_tables(data: Dict[str, Any]) -> List[Table]:
        months = data["months"]
        rows = [
            (row["label"], *[row["by_month"][month] for month in months], row["total"])
            for row in data["categories"]
        ]
        rows.append(("Total", *[""] * len(months), data["total"]))
        period = data["period"]
        return [(
            f"Expenses by Tax Category {period['start']} to {period['end']}",
            ("Category", *months, "Total"),
            rows,
        )]

    @staticmethod
    def _vendor_analysis_tables(vendors) -> List[Table]:
        rows = []
        for vendor in vendors:
            v = asdict(vendor) if is_dataclass(vendor) else vendor
            rows.append((
                v["vendor_name"],
                v["transaction_count"],
                v["total"],
                v["average"],
                v["first_date"],
                v["last_date"],
                v["percent_of_total"],
            ))
        headers = ("Vendor", "Transactions", "Total", "Average", "First", "Last", "% of Total")
        return [("Vendor Analysis", headers, rows)]
