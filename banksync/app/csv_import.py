"""
CSV Import Module

Manual import path for credit card statements exported as CSV
(semicolon separated, decimal comma, Norwegian headers). Rows are normalized
through an explicit header alias table and mapped to YNAB transactions with
the same import_id scheme as the bank sync.
"""

import csv
import io
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from .schemas import SaveTransaction, ClearedStatus
from .reconciliation import OccurrenceCounter, build_import_id, to_milliunits

logger = logging.getLogger(__name__)

CSV_DELIMITER = ';'

# Canonical field -> accepted column headers (compared case-insensitively)
HEADER_ALIASES: Dict[str, Tuple[str, ...]] = {
    'posting_date': ('Posteringsdato', 'Bokført', 'Bokført dato', 'Booking date', 'Posting date'),
    'purchase_date': ('Kjøpsdato', 'Purchase date', 'Transaction date'),
    'description': ('Beskrivelse', 'Tekst', 'Description'),
    'amount': ('Beløp', 'Amount'),
}

REQUIRED_FIELDS = ('posting_date', 'amount')

DATE_FORMATS = ('%Y-%m-%d', '%d.%m.%Y', '%d.%m.%y')


class CsvFormatError(ValueError):
    """Raised when the file has no usable header row."""
    pass


class CsvTransaction:
    """One normalized statement row."""

    def __init__(
        self,
        posting_date: date,
        amount: Decimal,
        description: Optional[str] = None,
        purchase_date: Optional[date] = None
    ):
        self.posting_date = posting_date
        self.amount = amount
        self.description = description
        self.purchase_date = purchase_date

    def __repr__(self):
        return f"CsvTransaction({self.posting_date}, {self.amount}, {self.description!r})"


def _strip_quotes(value: Optional[str]) -> str:
    if not value:
        return ''
    return value.strip().strip('"').strip()


def parse_date(value: Optional[str]) -> date:
    """
    Parse a statement date in YYYY-MM-DD or DD.MM.YYYY format.

    Raises:
        ValueError: If the value is empty or in no known format
    """
    cleaned = _strip_quotes(value)
    if not cleaned:
        raise ValueError("Missing date")

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date: {cleaned}")


def parse_amount(value: Optional[str]) -> Decimal:
    """
    Parse an amount written with decimal comma, e.g. "-1 234,50" or "1.234,50".

    Raises:
        ValueError: If the value is empty, not a number, NaN or infinite
    """
    cleaned = _strip_quotes(value).replace('\xa0', '').replace(' ', '')
    if not cleaned:
        raise ValueError("Missing amount")

    if ',' in cleaned:
        cleaned = cleaned.replace('.', '').replace(',', '.')

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value}")

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value}")
    return amount


def resolve_headers(headers: List[str]) -> Dict[str, str]:
    """
    Map canonical field names to the actual column headers of a file.

    Raises:
        CsvFormatError: If a required column is missing
    """
    by_lower = {h.strip().lower(): h for h in headers if h}
    columns = {}
    for field, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            if alias.lower() in by_lower:
                columns[field] = by_lower[alias.lower()]
                break

    missing = [f for f in REQUIRED_FIELDS if f not in columns]
    if missing:
        raise CsvFormatError(f"CSV is missing required column(s): {', '.join(missing)}")
    return columns


def normalize_row(row: Dict[str, Optional[str]], columns: Dict[str, str]) -> CsvTransaction:
    """
    Turn one DictReader row into a CsvTransaction.

    Raises:
        ValueError: If the posting date or amount cannot be parsed, or the
            amount does not fit in milliunits
    """
    amount = parse_amount(row.get(columns['amount']))
    to_milliunits(amount)

    description = _strip_quotes(row.get(columns['description'])) if 'description' in columns else ''

    purchase_date = None
    if 'purchase_date' in columns and _strip_quotes(row.get(columns['purchase_date'])):
        purchase_date = parse_date(row.get(columns['purchase_date']))

    return CsvTransaction(
        posting_date=parse_date(row.get(columns['posting_date'])),
        amount=amount,
        description=description or None,
        purchase_date=purchase_date
    )


def parse_csv(content: str, delimiter: str = CSV_DELIMITER) -> Tuple[List[CsvTransaction], int]:
    """
    Parse a statement export.

    Malformed rows are skipped and counted; they never abort the import.

    Returns:
        (transactions in file order, number of skipped rows)

    Raises:
        CsvFormatError: If the header row lacks a required column
    """
    lines = content.lstrip("\ufeff").splitlines()
    if not lines:
        raise CsvFormatError("CSV file is empty")
    lines[0] = lines[0].replace('"', '')

    reader = csv.DictReader(io.StringIO('\n'.join(lines)), delimiter=delimiter)
    columns = resolve_headers(reader.fieldnames or [])

    transactions = []
    invalid = 0
    for idx, row in enumerate(reader):
        if not any(_strip_quotes(v) for v in row.values() if isinstance(v, str)):
            continue

        try:
            transactions.append(normalize_row(row, columns))
        except ValueError as e:
            invalid += 1
            logger.warning(f"Skipping CSV row {idx + 2}: {e}")

    return transactions, invalid


def filter_after(transactions: List[CsvTransaction], last_date: date) -> List[CsvTransaction]:
    """Keep rows posted strictly after last_date."""
    return [t for t in transactions if t.posting_date > last_date]


def map_csv_transactions(
    transactions: List[CsvTransaction],
    account_id: str
) -> List[SaveTransaction]:
    """
    Build YNAB transactions with import ids. Statement rows are settled, so
    every transaction is created as cleared.
    """
    counter = OccurrenceCounter()
    result = []

    for transaction in transactions:
        amount = to_milliunits(transaction.amount)
        occurrence = counter.next(transaction.posting_date, amount)
        result.append(SaveTransaction(
            account_id=account_id,
            date=transaction.posting_date,
            amount=amount,
            payee_name=transaction.description,
            cleared=ClearedStatus.CLEARED,
            import_id=build_import_id(amount, transaction.posting_date, occurrence)
        ))

    return result
