"""
Transaction file parser for internal exports and provider statements.
Reads CSV, Excel and LibreOffice sheets and converts rows to Transactions.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional
import logging
import re

import pandas as pd

from ..models.transaction import Transaction
from ..config import ReconConfig
from ..utils.exceptions import FileParseError

logger = logging.getLogger(__name__)

# Extension -> pandas Excel engine (None means CSV)
SUPPORTED_EXTENSIONS: dict[str, Optional[str]] = {
    ".csv": None,
    ".xlsx": "openpyxl",
    ".xls": "xlrd",
    ".ods": "odf",
}

FILE_TYPE_DESCRIPTIONS = {
    ".csv": "CSV File",
    ".xlsx": "Excel Workbook",
    ".xls": "Excel 97-2003 Workbook",
    ".ods": "LibreOffice Calc Spreadsheet",
}

_NON_NUMERIC = re.compile(r"[^\d.\-]")


def normalize_header(header: Any) -> str:
    """Lower-case a column header and replace whitespace runs with '_'."""
    return re.sub(r"\s+", "_", str(header).strip().lower())


def get_file_type_description(file_path: Path) -> str:
    """Human-readable description of a file's type."""
    return FILE_TYPE_DESCRIPTIONS.get(file_path.suffix.lower(), "Unknown File Type")


class TransactionFileParser:
    """
    Parser for transaction files from either side of a reconciliation.

    Column names are matched through the configured alias lists, so the same
    parser handles internal exports and provider statements.
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        self.input_config = config.input
        self.column_aliases = {
            field: [normalize_header(alias) for alias in aliases]
            for field, aliases in self.input_config.column_aliases.items()
        }

    def validate_file(self, file_path: Path) -> Optional[str]:
        """
        Check a file before parsing.

        Returns:
            Reason the file is rejected, or None if it is acceptable
        """
        if file_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            return "Please upload a CSV, Excel (.xlsx, .xls), or LibreOffice (.ods) file"

        max_bytes = self.input_config.max_file_size_mb * 1024 * 1024
        if file_path.exists() and file_path.stat().st_size > max_bytes:
            return f"File size must be less than {self.input_config.max_file_size_mb:g}MB"

        return None

    def parse_file(self, file_path: Path) -> list[Transaction]:
        """
        Parse a transaction file.

        Args:
            file_path: Path to a .csv, .xlsx, .xls or .ods file

        Returns:
            List of transactions in file order

        Raises:
            FileParseError: If the file cannot be read or has no usable rows
        """
        logger.info(f"Parsing {get_file_type_description(file_path)}: {file_path}")

        rejection = self.validate_file(file_path)
        if rejection:
            raise FileParseError(f"{file_path.name}: {rejection}")

        df = self._read_frame(file_path)
        transactions = self.parse_dataframe(df, source_name=file_path.name)
        logger.info(f"Extracted {len(transactions)} transactions from {file_path.name}")

        return transactions

    def _read_frame(self, file_path: Path) -> pd.DataFrame:
        engine = SUPPORTED_EXTENSIONS[file_path.suffix.lower()]
        try:
            if engine is None:
                return pd.read_csv(
                    file_path,
                    encoding=self.input_config.encoding,
                    delimiter=self.input_config.delimiter,
                    dtype=str,
                    keep_default_na=False,
                    skip_blank_lines=True,
                )
            # First worksheet only
            return pd.read_excel(
                file_path,
                sheet_name=0,
                engine=engine,
                dtype=object,
            )
        except Exception as e:
            logger.error(f"Failed to read {file_path}: {e}")
            raise FileParseError(f"Failed to read {file_path.name}: {e}") from e

    def parse_dataframe(self, df: pd.DataFrame, source_name: str = "<data>") -> list[Transaction]:
        """
        Convert a DataFrame of raw rows into transactions.

        Args:
            df: Raw rows with the original headers
            source_name: Name used in log and error messages

        Returns:
            List of transactions

        Raises:
            FileParseError: If no reference column exists or no rows remain
        """
        df = df.rename(columns=normalize_header)
        df = df.loc[:, ~df.columns.duplicated()]

        columns = {field: self._resolve_column(df, field) for field in self.column_aliases}
        if columns.get("reference") is None:
            raise FileParseError(
                f"{source_name}: no transaction reference column found "
                f"(expected one of: {', '.join(self.column_aliases.get('reference', []))})"
            )

        transactions: list[Transaction] = []
        empty_references = 0

        for _, row in df.iterrows():
            if all(self._is_blank(value) for value in row.tolist()):
                continue

            txn = self._normalize_row(row, columns)
            if not txn.reference:
                empty_references += 1
            transactions.append(txn)

        if not transactions:
            raise FileParseError(f"{source_name}: file contains no data rows")

        if empty_references:
            logger.warning(
                f"{source_name}: {empty_references} rows have no transaction reference "
                f"and will be excluded from matching"
            )

        return transactions

    def _resolve_column(self, df: pd.DataFrame, field: str) -> Optional[str]:
        for alias in self.column_aliases.get(field, []):
            if alias in df.columns:
                return alias
        return None

    def _normalize_row(self, row: pd.Series, columns: dict[str, Optional[str]]) -> Transaction:
        def value_of(field: str) -> Any:
            column = columns.get(field)
            if column is None:
                return None
            value = row.get(column)
            return None if self._is_blank(value) else value

        currency = self._clean_text(value_of("currency"))
        status = self._clean_text(value_of("status"))

        return Transaction(
            reference=self._clean_text(value_of("reference")) or "",
            amount=self._parse_amount(value_of("amount")),
            currency=currency.upper() if currency else self.input_config.default_currency,
            status=status or self.input_config.default_status,
            timestamp=self._parse_timestamp(value_of("timestamp")),
            description=self._clean_text(value_of("description")),
            counterparty_id=self._clean_text(value_of("counterparty_id")),
            fees=self._parse_fees(value_of("fees")),
        )

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        try:
            if pd.isna(value):
                return True
        except (TypeError, ValueError):
            return False
        return str(value).strip() == ""

    @staticmethod
    def _clean_text(value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def _parse_amount(self, value: Any) -> Any:
        """
        Parse an amount to Decimal.

        Currency symbols and separators are stripped first. Text that still
        is not a number is returned unchanged; the engine treats it as zero.
        """
        if value is None:
            return Decimal("0")

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return Decimal(str(value))

        cleaned = _NON_NUMERIC.sub("", str(value))
        try:
            return Decimal(cleaned)
        except (InvalidOperation, ValueError):
            logger.debug(f"Unparseable amount kept as text: {value!r}")
            return str(value).strip()

    def _parse_fees(self, value: Any) -> Optional[Decimal]:
        if value is None:
            return None
        parsed = self._parse_amount(value)
        return parsed if isinstance(parsed, Decimal) and parsed.is_finite() else None

    @staticmethod
    def _parse_timestamp(value: Any) -> Optional[datetime]:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.to_pydatetime() if isinstance(value, pd.Timestamp) else value

        parsed = pd.to_datetime(str(value).strip(), errors="coerce")
        if pd.isna(parsed):
            logger.debug(f"Unparseable timestamp ignored: {value!r}")
            return None
        return parsed.to_pydatetime()
