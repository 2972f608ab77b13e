"""
Excel report generator for reconciliation results.
Creates multi-sheet workbooks with formatted output.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Sequence
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..models.transaction import (
    DuplicateAnalysis,
    MatchedTransaction,
    MatchType,
    ReconciliationResult,
    RiskLevel,
    Transaction,
)
from ..config import ReconConfig, SheetConfig
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
VARIANCE_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

MATCH_TYPE_FILLS = {
    MatchType.PERFECT: MATCH_FILL,
    MatchType.MINOR: VARIANCE_FILL,
    MatchType.MAJOR: UNMATCHED_FILL,
}
RISK_FILLS = {
    RiskLevel.LOW: MATCH_FILL,
    RiskLevel.MEDIUM: VARIANCE_FILL,
    RiskLevel.HIGH: UNMATCHED_FILL,
}

TRANSACTION_HEADERS = [
    "Reference",
    "Amount",
    "Currency",
    "Status",
    "Timestamp",
    "Description",
    "Counterparty ID",
    "Fees",
]


def _cell_amount(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def _cell_timestamp(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def _transaction_row(txn: Transaction) -> list[Any]:
    return [
        txn.reference,
        _cell_amount(txn.amount),
        txn.currency,
        txn.status,
        _cell_timestamp(txn.timestamp),
        txn.description or "",
        txn.counterparty_id or "",
        _cell_amount(txn.fees) if txn.fees is not None else "",
    ]


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.sheet_config = config.output.sheets

    def generate_report(
        self,
        result: ReconciliationResult,
        output_path: Path,
        internal_filename: str = "",
        provider_filename: str = "",
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            result: Reconciliation result
            output_path: Path for output file
            internal_filename: Name of the internal export, shown on the summary
            provider_filename: Name of the provider statement, shown on the summary

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be saved
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        sheets = self.sheet_config
        if sheets.summary.enabled:
            self._create_summary_sheet(wb, sheets.summary, result, internal_filename, provider_filename)
        if sheets.matched.enabled:
            self._create_matched_sheet(wb, sheets.matched, result.matched)
        if sheets.discrepancies.enabled:
            self._create_discrepancy_sheet(wb, sheets.discrepancies, result.matches_with_discrepancies)
        if sheets.internal_only.enabled:
            self._create_unmatched_sheet(wb, sheets.internal_only, result.internal_only)
        if sheets.provider_only.enabled:
            self._create_unmatched_sheet(wb, sheets.provider_only, result.provider_only)
        if sheets.duplicates.enabled:
            self._create_duplicates_sheet(wb, sheets.duplicates, result)

        # openpyxl refuses to save a workbook without sheets
        if not wb.sheetnames:
            wb.create_sheet("Report")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(
        self,
        wb: Workbook,
        sheet: SheetConfig,
        result: ReconciliationResult,
        internal_filename: str,
        provider_filename: str,
    ) -> None:
        """Create the summary sheet with key metrics."""
        summary = result.summary
        ws = wb.create_sheet(sheet.name)

        ws["A1"] = "Transaction Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        sections: list[tuple[str, list[tuple[str, Any]]]] = [
            (
                "File Information",
                [
                    ("Internal File:", internal_filename or "-"),
                    ("Provider File:", provider_filename or "-"),
                    ("Reconciliation Date:", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
                    ("Config File:", self.config.config_file_path or "Default"),
                ],
            ),
            (
                "Transaction Counts",
                [
                    ("Total Internal Transactions:", summary.total_internal),
                    ("Total Provider Transactions:", summary.total_provider),
                    ("Matched Transactions:", summary.matched_count),
                    ("Internal Only (Unmatched):", summary.internal_only_count),
                    ("Provider Only (Unmatched):", summary.provider_only_count),
                    ("Total Discrepancies:", summary.total_discrepancies),
                    ("Duplicate Transactions:", summary.total_duplicates),
                ],
            ),
            (
                "Amount Totals",
                [
                    ("Internal Total Amount:", f"{summary.total_internal_amount:,.2f}"),
                    ("Provider Total Amount:", f"{summary.total_provider_amount:,.2f}"),
                ],
            ),
            ("Match Rate", [("Match Rate:", f"{summary.match_rate:.1f}%")]),
            (
                "Matches by Type",
                [(f"{name}:", count) for name, count in summary.match_type_counts],
            ),
        ]

        row = 3
        for title, items in sections:
            ws[f"A{row}"] = title
            ws[f"A{row}"].font = Font(bold=True)
            row += 1
            for label, value in items:
                ws[f"A{row}"] = label
                ws[f"B{row}"] = value
                row += 1
            row += 1

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _write_headers(self, ws: Worksheet, headers: Sequence[str], row: int = 1) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _write_row(
        self, ws: Worksheet, row_num: int, values: Sequence[Any], fill: Optional[PatternFill]
    ) -> None:
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row_num, column=col, value=value)
            cell.border = THIN_BORDER
            if fill is not None:
                cell.fill = fill

    def _create_matched_sheet(
        self, wb: Workbook, sheet: SheetConfig, matches: Sequence[MatchedTransaction]
    ) -> None:
        """Create the matched transactions sheet."""
        ws = wb.create_sheet(sheet.name)
        self._write_headers(
            ws,
            [
                "Reference",
                "Internal Amount",
                "Provider Amount",
                "Internal Currency",
                "Provider Currency",
                "Internal Status",
                "Provider Status",
                "Internal Timestamp",
                "Provider Timestamp",
                "Match Type",
                "Discrepancies",
            ],
        )

        for row_num, match in enumerate(matches, start=2):
            internal, provider = match.internal, match.provider
            values = [
                internal.reference,
                _cell_amount(internal.amount),
                _cell_amount(provider.amount),
                internal.currency,
                provider.currency,
                internal.status,
                provider.status,
                _cell_timestamp(internal.timestamp),
                _cell_timestamp(provider.timestamp),
                match.match_type.value,
                ", ".join(match.discrepancies.fields) or "None",
            ]
            self._write_row(ws, row_num, values, MATCH_TYPE_FILLS[match.match_type])

        self._auto_fit_columns(ws)

    def _create_discrepancy_sheet(
        self, wb: Workbook, sheet: SheetConfig, matches: Sequence[MatchedTransaction]
    ) -> None:
        """Create the sheet detailing each non-perfect match."""
        ws = wb.create_sheet(sheet.name)
        self._write_headers(
            ws,
            [
                "Reference",
                "Match Type",
                "Amount Difference",
                "Amount Difference %",
                "Internal Status",
                "Provider Status",
                "Internal Currency",
                "Provider Currency",
                "Timestamp Difference (Minutes)",
            ],
        )

        for row_num, match in enumerate(matches, start=2):
            d = match.discrepancies
            values = [
                match.internal.reference,
                match.match_type.value,
                float(d.amount.difference) if d.amount else "",
                f"{d.amount.percentage:.2f}%" if d.amount else "",
                d.status.internal if d.status else "",
                d.status.provider if d.status else "",
                d.currency.internal if d.currency else "",
                d.currency.provider if d.currency else "",
                round(d.timestamp.difference_minutes, 2) if d.timestamp else "",
            ]
            self._write_row(ws, row_num, values, MATCH_TYPE_FILLS[match.match_type])

        self._auto_fit_columns(ws)

    def _create_unmatched_sheet(
        self, wb: Workbook, sheet: SheetConfig, transactions: Sequence[Transaction]
    ) -> None:
        """Create a sheet of one-sided transactions."""
        ws = wb.create_sheet(sheet.name)
        self._write_headers(ws, TRANSACTION_HEADERS)

        for row_num, txn in enumerate(transactions, start=2):
            self._write_row(ws, row_num, _transaction_row(txn), UNMATCHED_FILL)

        self._auto_fit_columns(ws)

    def _create_duplicates_sheet(
        self, wb: Workbook, sheet: SheetConfig, result: ReconciliationResult
    ) -> None:
        """Create the duplicates sheet, one row per group member."""
        ws = wb.create_sheet(sheet.name)
        self._write_headers(
            ws,
            [
                "Bucket",
                "Reference",
                "Instance",
                "Amount",
                "Currency",
                "Status",
                "Timestamp",
                "Group Total",
                "Risk Level",
                "Consistency",
                "Potential Overcharge",
                "Recommended Action",
            ],
        )

        buckets: list[tuple[str, DuplicateAnalysis]] = [
            ("Internal Only", result.duplicates.internal_only),
            ("Provider Only", result.duplicates.provider_only),
            ("Matched", result.duplicates.matched),
        ]

        row_num = 2
        for bucket_name, analysis in buckets:
            for group in analysis.duplicate_groups:
                for index, txn in enumerate(group.transactions, start=1):
                    values = [
                        bucket_name,
                        txn.reference,
                        f"{index} of {group.count}",
                        _cell_amount(txn.amount),
                        txn.currency,
                        txn.status,
                        _cell_timestamp(txn.timestamp),
                        float(group.total_amount),
                        group.risk_level.value,
                        "CONSISTENT" if group.consistent else "INCONSISTENT",
                        float(group.potential_overcharge),
                        group.recommended_action,
                    ]
                    self._write_row(ws, row_num, values, RISK_FILLS[group.risk_level])
                    row_num += 1

        self._auto_fit_columns(ws)

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = column_cells[0].column_letter

            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))

            ws.column_dimensions[column].width = min(max_length + 2, 50)
