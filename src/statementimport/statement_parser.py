"""
Statement parsing for the supported institution exports.

Each institution has its own parsing strategy with its own sheet and column
contract. A strategy yields one outcome per data row: either a
ParsedTransaction or a SkippedRow explaining why the row was dropped.
Structural problems (missing sheet, header or columns) raise
StatementParseError and abort the whole file.
"""

import io
import logging
import math
import re
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pandas as pd

from .date_normalizer import parse_date
from .errors import StatementParseError, UnknownSourceError, UnsupportedSourceError
from .format_detector import detect_source
from .models import (
    ParsedTransaction,
    ParseReport,
    SkippedRow,
    Source,
    TransactionType,
)

logger = logging.getLogger(__name__)

RowOutcome = ParsedTransaction | SkippedRow

XLSX_MAGIC = b"PK\x03\x04"
XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
CSV_SHEET_NAME = "Sheet1"

AMEX_SHEET = "Summary"
SCOTIA_SHEET = "Transactions"
AMEX_PAYMENT_DESCRIPTION = "Payment - Thank You"
AMEX_DEFAULT_DESCRIPTION = "Amex Transaction"

_AMOUNT_NOISE = re.compile(r"[$,\s]")
_PC_AMOUNT_NOISE = re.compile(r"[$,\s\"]")
_DOLLAR_AMOUNT = re.compile(r"^-?\$")


def _cell_text(value: Any) -> str:
    """Convert a cell value to stripped text, with empty/NaN cells as ''."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def _parse_amount(text: str, noise: re.Pattern = _AMOUNT_NOISE) -> float | None:
    """Parse a money cell, returning None when it is empty or not a number."""
    cleaned = noise.sub("", text)
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _clean_header(name: str) -> str:
    """Normalize a header name: drop BOM and quote characters, lower-case."""
    return name.strip().lstrip("\ufeff\"'").rstrip("\"'").strip().lower()


def load_workbook(file_bytes: bytes, encoding: str = "utf-8") -> dict[str, pd.DataFrame]:
    """
    Read a statement file into raw sheet grids.

    ``.xlsx`` and legacy ``.xls`` files are recognized by their magic bytes;
    anything else is read as CSV and exposed as a single sheet. Every cell is
    read as text, with empty cells as ''.

    Args:
        file_bytes: Raw file content
        encoding: Text encoding used for CSV content

    Returns:
        Mapping of sheet name to a header-less DataFrame
    """
    try:
        if file_bytes.startswith(XLSX_MAGIC):
            engine = "openpyxl"
        elif file_bytes.startswith(XLS_MAGIC):
            engine = "xlrd"
        else:
            return {CSV_SHEET_NAME: _read_csv(file_bytes, encoding)}

        return pd.read_excel(
            io.BytesIO(file_bytes),
            sheet_name=None,
            header=None,
            dtype=str,
            na_filter=False,
            engine=engine,
        )
    except Exception as e:
        raise StatementParseError(f"Could not read statement file: {e}") from e


def _read_csv(file_bytes: bytes, encoding: str) -> pd.DataFrame:
    try:
        return pd.read_csv(
            io.BytesIO(file_bytes),
            header=None,
            dtype=str,
            keep_default_na=False,
            encoding=encoding,
            encoding_errors="replace",
            skip_blank_lines=True,
            engine="python",
            on_bad_lines="skip",
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()


def _grid_rows(grid: pd.DataFrame) -> list[list[str]]:
    return [[_cell_text(cell) for cell in row] for row in grid.values.tolist()]


def _sheet_records(
    grid: pd.DataFrame,
) -> tuple[list[str], list[tuple[int, dict[str, str]]]]:
    """
    Split a grid into its header and keyed data rows.

    Returns:
        Tuple of (header names, list of (spreadsheet row number, row dict))
    """
    rows = _grid_rows(grid)
    if not rows:
        return [], []

    header = rows[0]
    records = []
    for row_number, row in enumerate(rows[1:], start=2):
        record = {name: value for name, value in zip(header, row) if name}
        records.append((row_number, record))
    return header, records


class StatementParser:
    """Parser for statement exports of the supported institutions."""

    def __init__(self, encoding: str = "utf-8", max_header_scan_rows: int = 20):
        self.encoding = encoding
        self.max_header_scan_rows = max_header_scan_rows
        self._strategies: dict[
            Source,
            Callable[[dict[str, pd.DataFrame]], Iterator[RowOutcome]],
        ] = {
            Source.AMEX: self._parse_amex,
            Source.SCOTIA_VISA: self._parse_scotia_visa,
            Source.SCOTIA_CHEQUING: self._parse_scotia_chequing,
            Source.PC: self._parse_pc,
        }

    def parse(self, file_bytes: bytes, source: Source) -> list[ParsedTransaction]:
        """
        Parse statement content into transactions.

        Args:
            file_bytes: Raw file content
            source: Institution whose export layout the file uses

        Returns:
            List of ParsedTransaction objects in file order
        """
        return self.parse_report(file_bytes, source).transactions

    def parse_report(self, file_bytes: bytes, source: Source) -> ParseReport:
        """
        Parse statement content and keep the reasons for skipped rows.

        Raises:
            UnsupportedSourceError: If there is no strategy for the source
            StatementParseError: If the file does not have the expected structure
        """
        strategy = self._strategies.get(source)
        if strategy is None:
            raise UnsupportedSourceError(f"Unsupported statement source: {source.value}")

        sheets = load_workbook(file_bytes, self.encoding)
        report = ParseReport(source=source)

        for outcome in strategy(sheets):
            if isinstance(outcome, SkippedRow):
                logger.debug(
                    f"Skipping {source.value} row {outcome.row_number}: {outcome.reason}",
                )
                report.skipped.append(outcome)
            else:
                report.transactions.append(outcome)

        logger.info(
            f"Parsed {len(report.transactions)} {source.display_name} transactions "
            f"({len(report.skipped)} rows skipped)",
        )
        return report

    def parse_file(self, file_path: str | Path, source: Source | None = None) -> ParseReport:
        """
        Parse a statement file from disk.

        Args:
            file_path: Path to the statement file
            source: Institution; detected from the filename when omitted

        Returns:
            ParseReport for the file

        Raises:
            UnknownSourceError: If no source is given and none can be detected
        """
        path = Path(file_path)
        if source is None:
            source = detect_source(path.name)
            if source is None:
                raise UnknownSourceError(
                    f"Could not detect the statement source of '{path.name}', please choose one",
                )

        logger.info(f"Parsing {path} as {source.display_name}")
        return self.parse_report(path.read_bytes(), source)

    def _require_sheet(
        self,
        sheets: dict[str, pd.DataFrame],
        sheet_name: str,
        source: Source,
    ) -> pd.DataFrame:
        if sheet_name not in sheets:
            raise StatementParseError(
                f"Could not find {sheet_name} sheet in {source.display_name} file. "
                f"Available sheets: {list(sheets.keys())}",
            )
        return sheets[sheet_name]

    def _parse_amex(self, sheets: dict[str, pd.DataFrame]) -> Iterator[RowOutcome]:
        rows = _grid_rows(self._require_sheet(sheets, AMEX_SHEET, Source.AMEX))

        header_index = None
        for index, row in enumerate(rows[: self.max_header_scan_rows]):
            joined = " ".join(row).lower()
            if "date" in joined and "amount" in joined and "description" in joined:
                header_index = index
                break

        if header_index is None:
            raise StatementParseError("Could not find header row in Amex file")

        headers = [cell.lower() for cell in rows[header_index]]
        if "date" not in headers or "amount" not in headers:
            raise StatementParseError(
                "Could not find required columns (Date, Amount) in Amex file",
            )
        date_idx = headers.index("date")
        amount_idx = headers.index("amount")
        desc_idx = headers.index("description") if "description" in headers else None

        for row_number, row in enumerate(rows[header_index + 1 :], start=header_index + 2):
            date_text = row[date_idx] if date_idx < len(row) else ""
            amount_text = row[amount_idx] if amount_idx < len(row) else ""
            description = (
                row[desc_idx] if desc_idx is not None and desc_idx < len(row) else ""
            )

            if not date_text:
                yield SkippedRow(row_number, "missing date")
                continue

            # Payment rows carry the amount in the description column
            if not _AMOUNT_NOISE.sub("", amount_text) and _DOLLAR_AMOUNT.match(description):
                amount_text = description
            if not _AMOUNT_NOISE.sub("", amount_text):
                yield SkippedRow(row_number, "missing amount")
                continue

            date = parse_date(date_text)
            if date is None:
                yield SkippedRow(row_number, f"unparseable date '{date_text}'")
                continue

            amount = _parse_amount(amount_text)
            if amount is None or amount == 0:
                yield SkippedRow(row_number, f"unusable amount '{amount_text}'")
                continue

            if not description or _DOLLAR_AMOUNT.match(description):
                description = (
                    AMEX_PAYMENT_DESCRIPTION if amount < 0 else AMEX_DEFAULT_DESCRIPTION
                )

            yield ParsedTransaction(
                date=date,
                description=description,
                amount=abs(amount),
                type=TransactionType.CREDIT if amount < 0 else TransactionType.DEBIT,
                source=Source.AMEX,
            )

    def _parse_scotia_visa(self, sheets: dict[str, pd.DataFrame]) -> Iterator[RowOutcome]:
        grid = self._require_sheet(sheets, SCOTIA_SHEET, Source.SCOTIA_VISA)
        header, records = _sheet_records(grid)
        if not header:
            return

        missing = [name for name in ("Date", "Amount", "Description") if name not in header]
        if missing:
            raise StatementParseError(
                f"Scotia Visa file is missing columns: {', '.join(missing)}",
            )

        for row_number, row in records:
            date_text = row.get("Date", "").replace("!", "")
            date = parse_date(date_text)
            if date is None:
                yield SkippedRow(row_number, f"unparseable date '{date_text}'")
                continue

            amount = _parse_amount(row.get("Amount", ""))
            if amount is None or amount == 0:
                yield SkippedRow(row_number, f"unusable amount '{row.get('Amount', '')}'")
                continue

            transaction_kind = row.get("Type of Transaction", "").lower()
            is_credit = (
                "payment" in transaction_kind or "return" in transaction_kind or amount < 0
            )

            yield ParsedTransaction(
                date=date,
                description=row.get("Description", ""),
                amount=abs(amount),
                type=TransactionType.CREDIT if is_credit else TransactionType.DEBIT,
                source=Source.SCOTIA_VISA,
                sub_description=row.get("Sub-description") or None,
            )

    def _parse_scotia_chequing(
        self,
        sheets: dict[str, pd.DataFrame],
    ) -> Iterator[RowOutcome]:
        grid = self._require_sheet(sheets, SCOTIA_SHEET, Source.SCOTIA_CHEQUING)
        header, records = _sheet_records(grid)
        if not header:
            return

        if "Date" not in header:
            raise StatementParseError(
                f"Scotia Chequing file is missing columns: Date. Columns found: {header}",
            )

        split_columns = "Withdrawals" in header and "Deposits" in header
        if not split_columns and "Amount" not in header:
            raise StatementParseError(
                "Scotia Chequing file needs either Withdrawals/Deposits or Amount columns",
            )

        for row_number, row in records:
            date_text = row.get("Date", "")
            date = parse_date(date_text)
            if date is None:
                yield SkippedRow(row_number, f"unparseable date '{date_text}'")
                continue

            description = row.get("Transaction Description") or row.get("Description", "")

            if split_columns:
                withdrawal = _parse_amount(row.get("Withdrawals", "")) or 0
                deposit = _parse_amount(row.get("Deposits", "")) or 0
                if withdrawal > 0:
                    amount, kind = withdrawal, TransactionType.DEBIT
                elif deposit > 0:
                    amount, kind = deposit, TransactionType.CREDIT
                else:
                    yield SkippedRow(row_number, "no withdrawal or deposit amount")
                    continue
            else:
                signed = _parse_amount(row.get("Amount", ""))
                if signed is None or signed == 0:
                    yield SkippedRow(row_number, f"unusable amount '{row.get('Amount', '')}'")
                    continue
                # Chequing exports sign withdrawals negative
                amount = abs(signed)
                kind = TransactionType.DEBIT if signed < 0 else TransactionType.CREDIT

            yield ParsedTransaction(
                date=date,
                description=description,
                amount=amount,
                type=kind,
                source=Source.SCOTIA_CHEQUING,
            )

    def _parse_pc(self, sheets: dict[str, pd.DataFrame]) -> Iterator[RowOutcome]:
        if not sheets:
            raise StatementParseError("Could not find data in PC Financial file")

        grid = next(iter(sheets.values()))
        header, records = _sheet_records(grid)
        if not header:
            return

        columns = {_clean_header(name): name for name in header if name}
        missing = [name for name in ("date", "amount", "description") if name not in columns]
        if missing:
            raise StatementParseError(
                f"PC Financial file is missing columns: {', '.join(missing)}. "
                f"Columns found: {header}",
            )
        date_col, amount_col, desc_col = (
            columns["date"],
            columns["amount"],
            columns["description"],
        )

        for row_number, row in records:
            date_text = row.get(date_col, "")
            date = parse_date(date_text)
            if date is None:
                yield SkippedRow(row_number, f"unparseable date '{date_text}'")
                continue

            amount_text = row.get(amount_col, "")
            amount = _parse_amount(amount_text, _PC_AMOUNT_NOISE)
            if amount is None or amount == 0:
                yield SkippedRow(row_number, f"unusable amount '{amount_text}'")
                continue

            description = row.get(desc_col, "")
            if not description:
                yield SkippedRow(row_number, "missing description")
                continue

            # Purchases are negative, refunds and payments positive
            yield ParsedTransaction(
                date=date,
                description=description,
                amount=abs(amount),
                type=TransactionType.CREDIT if amount > 0 else TransactionType.DEBIT,
                source=Source.PC,
            )
