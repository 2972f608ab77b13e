"""Tests for the transaction file parser."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pandas as pd
import pytest

from txn_recon.config import ReconConfig
from txn_recon.parsers.file_parser import (
    TransactionFileParser,
    get_file_type_description,
    normalize_header,
)
from txn_recon.utils.exceptions import FileParseError


@pytest.fixture
def parser(config: ReconConfig) -> TransactionFileParser:
    return TransactionFileParser(config)


class TestHeaders:
    """Header normalization."""

    def test_normalize_header(self) -> None:
        assert normalize_header("  Transaction   Reference ") == "transaction_reference"

    def test_file_type_description(self, tmp_path) -> None:
        assert get_file_type_description(tmp_path / "a.ODS") == "LibreOffice Calc Spreadsheet"
        assert get_file_type_description(tmp_path / "a.txt") == "Unknown File Type"


class TestParseCsv:
    """CSV parsing."""

    def test_parses_rows_in_file_order(self, parser: TransactionFileParser, internal_csv) -> None:
        transactions = parser.parse_file(internal_csv)

        assert [t.reference for t in transactions] == [
            "TXN-001",
            "TXN-002",
            "TXN-003",
            "TXN-003",
            "TXN-004",
            "",
        ]

    def test_field_cleanup(self, parser: TransactionFileParser, internal_csv) -> None:
        first, second = parser.parse_file(internal_csv)[:2]

        assert first.amount == Decimal("100.00")
        assert first.currency == "USD"
        assert first.status == "completed"
        assert first.timestamp == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert first.description == "Coffee beans"
        assert first.counterparty_id == "C-1"
        assert second.amount == Decimal("1250.50")

    def test_provider_id_maps_to_counterparty(
        self, parser: TransactionFileParser, provider_csv
    ) -> None:
        assert parser.parse_file(provider_csv)[0].counterparty_id == "P-1"

    def test_defaults_and_unparseable_values(self, parser: TransactionFileParser, tmp_path) -> None:
        path = tmp_path / "odd.csv"
        path.write_text(
            "ref,amount,currency,status,timestamp,fees\n"
            "R-1,pending,,,not a date,abc\n"
            ",,,,,\n"
            "R-2,,eur,settled,2024-01-02 10:00,1.25\n"
        )

        first, second = parser.parse_file(path)

        assert first.amount == "pending"
        assert first.numeric_amount == Decimal("0")
        assert first.currency == "UNKNOWN"
        assert first.status == "unknown"
        assert first.timestamp is None
        assert first.fees is None
        assert second.amount == Decimal("0")
        assert second.currency == "EUR"
        assert second.fees == Decimal("1.25")
        assert second.timestamp == datetime(2024, 1, 2, 10, 0)

    def test_missing_reference_column_is_rejected(
        self, parser: TransactionFileParser, tmp_path
    ) -> None:
        path = tmp_path / "noref.csv"
        path.write_text("amount,currency\n1,USD\n")

        with pytest.raises(FileParseError, match="reference column"):
            parser.parse_file(path)

    def test_header_only_file_is_rejected(self, parser: TransactionFileParser, tmp_path) -> None:
        path = tmp_path / "empty.csv"
        path.write_text("reference,amount\n")

        with pytest.raises(FileParseError, match="no data rows"):
            parser.parse_file(path)


class TestParseExcel:
    """Excel parsing through pandas/openpyxl."""

    def test_parses_first_sheet(self, parser: TransactionFileParser, tmp_path) -> None:
        path = tmp_path / "provider.xlsx"
        pd.DataFrame(
            {
                "Reference": ["A-1", "A-2"],
                "Amount": [12.5, 7],
                "Currency": ["usd", "USD"],
                "Status": ["completed", "failed"],
                "Timestamp": [datetime(2024, 5, 1, 9, 30), datetime(2024, 5, 1, 10, 0)],
            }
        ).to_excel(path, index=False)

        transactions = parser.parse_file(path)

        assert [t.reference for t in transactions] == ["A-1", "A-2"]
        assert transactions[0].amount == Decimal("12.5")
        assert transactions[0].currency == "USD"
        assert transactions[0].timestamp == datetime(2024, 5, 1, 9, 30)
        assert transactions[1].numeric_amount == Decimal("7")


class TestValidateFile:
    """Pre-parse validation."""

    def test_unsupported_extension(self, parser: TransactionFileParser, tmp_path) -> None:
        path = tmp_path / "data.json"
        path.write_text("{}")

        assert "CSV" in parser.validate_file(path)
        with pytest.raises(FileParseError):
            parser.parse_file(path)

    def test_size_limit(self, tmp_path) -> None:
        config = ReconConfig()
        config.input.max_file_size_mb = 0.00001
        path = tmp_path / "big.csv"
        path.write_text("reference,amount\n" + "R,1\n" * 100)

        assert "File size" in TransactionFileParser(config).validate_file(path)

    def test_acceptable_file(self, parser: TransactionFileParser, internal_csv) -> None:
        assert parser.validate_file(internal_csv) is None
