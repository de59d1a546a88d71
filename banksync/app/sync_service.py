"""
Sync Service

Orchestrates one sync run:
- Refresh the bank access token and persist the rotated refresh token
- Fetch bank transactions since the last sync
- Reconcile them against recent YNAB transactions
- Write the clear and add batches to YNAB
- Advance the last sync date and log the run

Also runs the manual CSV import for the credit card account.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo
from sqlalchemy.orm import Session

from banksync.app.models import SyncLog
from banksync.app.schemas import SyncResult, SyncStatus, SyncType, CsvImportResult
from .bank_integration.providers.base import BaseBankProvider
from .ledger.client import YnabClient
from .token_store.base import BaseTokenStore
from .reconciliation import partition_valid, reconcile_transactions
from .csv_import import parse_csv, filter_after, map_csv_transactions

logger = logging.getLogger(__name__)

# Fetch-from date when the ledger account is empty
EARLIEST_DATE = date(1900, 1, 1)

SYNC_FROM_LAST_SYNC_DATE = 'last_sync_date'
SYNC_FROM_LATEST_LEDGER_TRANSACTION = 'latest_ledger_transaction'


class SyncError(Exception):
    """Raised when a sync run cannot proceed."""
    pass


class SyncService:
    """
    Sequential bank -> YNAB pipeline.

    Each collaborator is injected so the same orchestration runs against any
    token store backend, and against fakes in tests.
    """

    def __init__(
        self,
        settings,
        token_store: BaseTokenStore,
        bank_provider: BaseBankProvider,
        ledger: YnabClient,
        db: Optional[Session] = None,
        today: Optional[Callable[[], date]] = None
    ):
        """
        Args:
            settings: Application settings
            token_store: Where refreshToken and lastSyncDate live
            bank_provider: Bank API client
            ledger: YNAB API client
            db: Session used to record SyncLog rows (optional)
            today: Clock override, defaults to the current date in settings.timezone
        """
        self.settings = settings
        self.token_store = token_store
        self.bank_provider = bank_provider
        self.ledger = ledger
        self.db = db
        self._today = today

    def today(self) -> date:
        if self._today:
            return self._today()
        return datetime.now(ZoneInfo(self.settings.timezone)).date()

    async def _determine_from_date(self) -> date:
        if self.settings.sync_from == SYNC_FROM_LAST_SYNC_DATE:
            return await self.token_store.get_last_sync_date() or self.today()
        elif self.settings.sync_from == SYNC_FROM_LATEST_LEDGER_TRANSACTION:
            latest = await self.ledger.get_latest_transaction_date(self.settings.ynab_account_id)
            return latest or EARLIEST_DATE
        else:
            raise SyncError(f"Unsupported sync_from setting: {self.settings.sync_from}")

    async def sync(self) -> SyncResult:
        """
        Run one bank sync.

        The last sync date is only stored after every YNAB write succeeded;
        on failure the next run fetches the same window again and the import
        ids keep YNAB from creating duplicates.

        Returns:
            SyncResult with the counts of the run

        Raises:
            SyncError: If no refresh token is stored
            BankApiError: If the token refresh or transaction fetch fails
            LedgerApiError: If reading from or writing to YNAB fails

        Example:
            >>> result = await service.sync()
            >>> print(f"Added {result.added}, cleared {result.cleared}")
        """
        sync_log = self._start_log(SyncType.BANK_SYNC)

        try:
            logger.info("Getting new access token...")
            refresh_token = await self.token_store.get_refresh_token()
            if not refresh_token:
                raise SyncError("No refresh token found")

            tokens = await self.bank_provider.refresh_access_token(refresh_token)
            # The old refresh token is invalid from here on, store the new one first
            await self.token_store.set_refresh_token(tokens.refresh_token)
            logger.info("Refresh token saved")

            from_date = await self._determine_from_date()
            result = SyncResult(status=SyncStatus.NO_CHANGES, from_date=from_date)
            if sync_log is not None:
                sync_log.sync_from_date = from_date

            logger.info(f"Getting bank transactions from {from_date} ...")
            bank_transactions = await self.bank_provider.fetch_transactions(
                tokens.access_token,
                self.settings.bank_account_key,
                from_date
            )
            result.fetched = len(bank_transactions)
            logger.info(f"Got {len(bank_transactions)} bank transactions")

            if not bank_transactions:
                logger.info("No new transactions")
                self._finish_log(sync_log, result)
                return result

            valid, invalid = partition_valid(bank_transactions)
            result.invalid = len(invalid)
            for transaction in invalid:
                logger.warning(f"Skipping malformed bank transaction {transaction.id}")

            since_date = self.today() - timedelta(days=self.settings.recent_window_days)
            recent_ledger_transactions = await self.ledger.get_transactions(
                self.settings.ynab_account_id,
                since_date
            )

            reconciliation = reconcile_transactions(
                valid,
                recent_ledger_transactions,
                self.settings.ynab_account_id,
                self.settings.timezone
            )
            logger.info(f"Reconciled: {reconciliation}")
            for bank_id in reconciliation.ambiguous:
                logger.warning(f"Bank transaction {bank_id} matched several YNAB transactions, used the first")

            if reconciliation.to_clear:
                logger.info(f"Clearing {len(reconciliation.to_clear)} existing YNAB transaction(s)")
                await self.ledger.update_transactions(reconciliation.to_clear)
                logger.info("Transactions marked as cleared")

            if reconciliation.to_add:
                logger.info(f"Sending {len(reconciliation.to_add)} new transaction(s) to YNAB...")
                await self.ledger.create_transactions(reconciliation.to_add)
                logger.info("Transactions sent to YNAB")

            await self.token_store.set_last_sync_date(self.today())

            result.added = len(reconciliation.to_add)
            result.cleared = len(reconciliation.to_clear)
            result.skipped = len(reconciliation.skipped)
            result.ambiguous = reconciliation.ambiguous
            if result.added or result.cleared:
                result.status = SyncStatus.SUCCESS

            self._finish_log(sync_log, result)
            return result

        except Exception as e:
            logger.error(f"Sync failed: {e}")
            self._fail_log(sync_log, e)
            raise

    async def import_csv(self, content: str) -> CsvImportResult:
        """
        Import a credit card statement CSV into the credit card account.

        Only rows posted after the newest existing YNAB transaction are sent.
        No pending/cleared matching: statement rows are all settled.

        Raises:
            CsvFormatError: If the file lacks the required columns
            LedgerApiError: If YNAB cannot be read or written
        """
        sync_log = self._start_log(SyncType.CSV_IMPORT)

        try:
            transactions, invalid = parse_csv(content)
            result = CsvImportResult(rows=len(transactions) + invalid, invalid=invalid)

            account_id = self.settings.ynab_credit_card_account_id
            last_date = await self.ledger.get_latest_transaction_date(account_id) or EARLIEST_DATE
            result.last_ledger_date = last_date
            if sync_log is not None:
                sync_log.sync_from_date = last_date

            new_transactions = filter_after(transactions, last_date)
            result.filtered = len(transactions) - len(new_transactions)
            logger.info(
                f"CSV: {len(transactions)} valid row(s), {invalid} invalid, "
                f"{len(new_transactions)} after {last_date}"
            )

            if new_transactions:
                await self.ledger.create_transactions(map_csv_transactions(new_transactions, account_id))
                result.imported = len(new_transactions)

            if sync_log is not None:
                sync_log.transactions_fetched = result.rows
                sync_log.transactions_added = result.imported
                sync_log.transactions_skipped = result.filtered
                sync_log.transactions_invalid = result.invalid
                self._complete_log(
                    sync_log,
                    SyncStatus.SUCCESS if result.imported else SyncStatus.NO_CHANGES
                )
            return result

        except Exception as e:
            logger.error(f"CSV import failed: {e}")
            self._fail_log(sync_log, e)
            raise

    # Sync log bookkeeping

    def _start_log(self, sync_type: SyncType) -> Optional[SyncLog]:
        if self.db is None:
            return None

        sync_log = SyncLog(
            sync_type=sync_type,
            sync_status=SyncStatus.FAILED,  # Assume failure, update on success
            started_at=datetime.utcnow()
        )
        self.db.add(sync_log)
        self.db.flush()
        return sync_log

    def _complete_log(self, sync_log: SyncLog, status: SyncStatus):
        sync_log.sync_status = status
        sync_log.completed_at = datetime.utcnow()
        sync_log.duration_seconds = int((sync_log.completed_at - sync_log.started_at).total_seconds())
        self.db.commit()

    def _finish_log(self, sync_log: Optional[SyncLog], result: SyncResult):
        if sync_log is None:
            return

        sync_log.transactions_fetched = result.fetched
        sync_log.transactions_added = result.added
        sync_log.transactions_cleared = result.cleared
        sync_log.transactions_skipped = result.skipped
        sync_log.transactions_invalid = result.invalid
        self._complete_log(sync_log, result.status)

    def _fail_log(self, sync_log: Optional[SyncLog], error: Exception):
        if sync_log is None:
            return

        sync_log.sync_status = SyncStatus.FAILED
        sync_log.error_message = str(error)
        sync_log.completed_at = datetime.utcnow()
        self.db.commit()
