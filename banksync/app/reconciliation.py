"""
Transaction Reconciliation Module

Decides how a batch of bank transactions lands in the YNAB ledger:
1. Assign a deterministic import_id to every bank transaction
2. Match BOOKED transactions against recent uncleared ledger entries
3. Split the batch into transactions to add and ledger entries to clear

Everything here is pure: no I/O, no shared state between calls.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from .schemas import (
    BankTransaction, BookingStatus, ClearedStatus,
    SaveTransaction, TransactionDetail, UpdateTransaction
)

DEFAULT_TIMEZONE = "Europe/Oslo"


class InvalidTransactionError(ValueError):
    """Raised when a bank transaction lacks the amount or date needed for an import_id."""
    pass


def to_milliunits(amount) -> int:
    """
    Convert a currency amount to YNAB milliunits.

    Rounds half away from zero so 12.3455 -> 12346 and -12.3455 -> -12346.

    Raises:
        ValueError: If the amount is NaN, infinite or too large to convert

    Example:
        >>> to_milliunits(Decimal("-250.00"))
        -250000
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    if not value.is_finite():
        raise ValueError(f"Amount is not a finite number: {amount}")

    try:
        return int((value * 1000).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise ValueError(f"Amount out of range: {amount}")


def to_local_date(epoch_ms: int, timezone: str = DEFAULT_TIMEZONE) -> date:
    """Settlement date of a bank timestamp (epoch milliseconds) in the given time zone."""
    return datetime.fromtimestamp(epoch_ms / 1000, tz=ZoneInfo(timezone)).date()


def build_import_id(milliunits: int, transaction_date: date, occurrence: int) -> str:
    """
    Compose the ledger idempotency key.

    Example:
        >>> build_import_id(-250000, date(2024, 12, 25), 2)
        'YNAB:-250000:2024-12-25:2'
    """
    return f"YNAB:{milliunits}:{transaction_date.isoformat()}:{occurrence}"


class OccurrenceCounter:
    """
    Counts (date, milliunits) pairs within one batch.

    Create a new counter for every batch; the numbering restarts at 1.
    """

    def __init__(self):
        self._counts: Dict[Tuple[date, int], int] = {}

    def next(self, transaction_date: date, milliunits: int) -> int:
        key = (transaction_date, milliunits)
        self._counts[key] = self._counts.get(key, 0) + 1
        return self._counts[key]


def is_well_formed(transaction: BankTransaction) -> bool:
    """A bank transaction can be synced when it has a convertible amount, a date and a payee."""
    if transaction.amount is None or transaction.date is None or not transaction.payee_name:
        return False

    try:
        to_milliunits(transaction.amount)
    except ValueError:
        return False
    return True


def partition_valid(
    transactions: Iterable[BankTransaction]
) -> Tuple[List[BankTransaction], List[BankTransaction]]:
    """Split transactions into (well formed, malformed), keeping input order."""
    valid = []
    invalid = []
    for transaction in transactions:
        if is_well_formed(transaction):
            valid.append(transaction)
        else:
            invalid.append(transaction)
    return valid, invalid


def map_bank_transactions(
    bank_transactions: Sequence[BankTransaction],
    account_id: str,
    timezone: str = DEFAULT_TIMEZONE
) -> List[SaveTransaction]:
    """
    Build one ledger candidate per bank transaction, each with a unique import_id.

    Two transactions with the same settlement date and amount get occurrence
    suffixes 1, 2, ... in input order, so re-running the same batch yields the
    same keys and the ledger drops the repeats.

    Args:
        bank_transactions: Ordered batch from the bank
        account_id: YNAB account the candidates belong to
        timezone: Time zone used to derive the settlement date

    Returns:
        List of SaveTransaction, same length and order as the input

    Raises:
        InvalidTransactionError: If a transaction has no amount or no date
    """
    counter = OccurrenceCounter()
    candidates = []

    for transaction in bank_transactions:
        if transaction.amount is None:
            raise InvalidTransactionError(f"Transaction {transaction.id} has no amount")
        if transaction.date is None:
            raise InvalidTransactionError(f"Transaction {transaction.id} has no date")

        amount = to_milliunits(transaction.amount)
        transaction_date = to_local_date(transaction.date, timezone)
        occurrence = counter.next(transaction_date, amount)

        candidates.append(SaveTransaction(
            account_id=account_id,
            date=transaction_date,
            amount=amount,
            payee_name=transaction.payee_name,
            cleared=(
                ClearedStatus.CLEARED
                if transaction.booking_status == BookingStatus.BOOKED
                else ClearedStatus.UNCLEARED
            ),
            import_id=build_import_id(amount, transaction_date, occurrence)
        ))

    return candidates


def find_matching_transactions(
    bank_transaction: BankTransaction,
    ledger_transactions: Sequence[TransactionDetail]
) -> List[TransactionDetail]:
    """
    Ledger entries that look like an earlier version of this bank transaction.

    A ledger entry matches when its amount equals the bank amount in
    milliunits and its payee name appears, case-insensitively, inside the
    bank's raw description. Entries without a payee never match.
    """
    if bank_transaction.amount is None or not bank_transaction.description:
        return []

    amount = to_milliunits(bank_transaction.amount)
    description = bank_transaction.description.lower()

    return [
        ledger_transaction for ledger_transaction in ledger_transactions
        if ledger_transaction.payee_name
        and ledger_transaction.amount == amount
        and ledger_transaction.payee_name.lower() in description
    ]


class ReconciliationResult:
    """Outcome of reconcile_transactions()."""

    def __init__(self):
        self.to_add: List[SaveTransaction] = []
        self.to_clear: List[UpdateTransaction] = []
        # Bank transaction ids already represented by a cleared ledger entry
        self.skipped: List[str] = []
        # Bank transaction ids that matched more than one ledger entry
        self.ambiguous: List[str] = []

    def __repr__(self):
        return (
            f"ReconciliationResult(to_add={len(self.to_add)}, to_clear={len(self.to_clear)}, "
            f"skipped={len(self.skipped)}, ambiguous={len(self.ambiguous)})"
        )


def reconcile_transactions(
    bank_transactions: Sequence[BankTransaction],
    ledger_transactions: Sequence[TransactionDetail],
    account_id: str,
    timezone: str = DEFAULT_TIMEZONE
) -> ReconciliationResult:
    """
    Decide add / clear / skip for every bank transaction.

    Pending bank transactions get a clean description ("Netonnet") that ends up
    as the YNAB payee. Once booked, the same purchase comes back as
    "*3301 25.12 NOK 250.00 NETONNET SANDNES Kurs: 1.0000". Adding it again
    would duplicate the entry, so a booked transaction whose amount and
    description match an uncleared ledger entry clears that entry instead,
    keeping the readable payee.

    Rules:
    - PENDING: always added
    - BOOKED, no match: added
    - BOOKED, match is uncleared: ledger entry marked cleared
    - BOOKED, match already cleared or reconciled: skipped

    When several ledger entries match, the first in the given order is used
    and the bank transaction id is reported in `ambiguous`. Which entry wins
    in that case is not a guaranteed part of the contract.

    A ledger entry is cleared at most once per batch. A later booked
    transaction matching an entry that an earlier one already claimed is
    reported in `ambiguous` and is neither cleared nor added, so it is
    dropped for this run.

    Args:
        bank_transactions: Well-formed bank transactions (see partition_valid)
        ledger_transactions: Ledger entries from the recent lookback window
        account_id: YNAB account for the new transactions
        timezone: Time zone used to derive settlement dates

    Returns:
        ReconciliationResult with disjoint to_add and to_clear batches

    Example:
        >>> result = reconcile_transactions(bank_txs, recent_ynab_txs, "acc-1")
        >>> len(result.to_clear), len(result.to_add)
        (1, 0)
    """
    result = ReconciliationResult()
    candidates = map_bank_transactions(bank_transactions, account_id, timezone)
    cleared_ids = set()

    for bank_transaction, candidate in zip(bank_transactions, candidates):
        if bank_transaction.booking_status == BookingStatus.PENDING:
            result.to_add.append(candidate)
            continue

        matches = find_matching_transactions(bank_transaction, ledger_transactions)
        if not matches:
            result.to_add.append(candidate)
            continue

        if len(matches) > 1:
            result.ambiguous.append(bank_transaction.id)

        match = matches[0]
        if match.cleared != ClearedStatus.UNCLEARED:
            result.skipped.append(bank_transaction.id)
        elif match.id in cleared_ids:
            # Another booked transaction in this batch already claimed the entry
            result.ambiguous.append(bank_transaction.id)
        else:
            cleared_ids.add(match.id)
            result.to_clear.append(UpdateTransaction(id=match.id, cleared=ClearedStatus.CLEARED))

    return result


def latest_ledger_date(ledger_transactions: Iterable[TransactionDetail]) -> Optional[date]:
    """Newest date among non-transfer, non-deleted ledger entries."""
    dates = [
        t.date for t in ledger_transactions
        if not t.transfer_account_id and not t.deleted
    ]
    return max(dates) if dates else None
