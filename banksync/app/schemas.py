from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
import enum


class SyncType(str, enum.Enum):
    BANK_SYNC = "BANK_SYNC"
    CSV_IMPORT = "CSV_IMPORT"


class SyncStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    NO_CHANGES = "NO_CHANGES"
    FAILED = "FAILED"


class BookingStatus(str, enum.Enum):
    BOOKED = "BOOKED"
    PENDING = "PENDING"


class ClearedStatus(str, enum.Enum):
    CLEARED = "cleared"
    UNCLEARED = "uncleared"
    RECONCILED = "reconciled"


# Bank side

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    expires_in: Optional[int] = None
    token_type: Optional[str] = None


class BankTransaction(BaseModel):
    """Transaction as returned by the SpareBank 1 transactions endpoint."""
    id: str
    description: Optional[str] = None
    cleaned_description: Optional[str] = Field(None, alias="cleanedDescription")
    amount: Optional[Decimal] = None
    date: Optional[int] = None  # epoch milliseconds
    booking_status: BookingStatus = Field(BookingStatus.BOOKED, alias="bookingStatus")
    currency_code: Optional[str] = Field(None, alias="currencyCode")
    account_key: Optional[str] = Field(None, alias="accountKey")
    account_name: Optional[str] = Field(None, alias="accountName")
    kid_or_message: Optional[str] = Field(None, alias="kidOrMessage")
    source: Optional[str] = None

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def payee_name(self) -> Optional[str]:
        return self.cleaned_description or self.description


# Ledger (YNAB) side

class SaveTransaction(BaseModel):
    account_id: str
    date: date
    amount: int  # milliunits
    payee_name: Optional[str] = None
    cleared: ClearedStatus = ClearedStatus.UNCLEARED
    import_id: Optional[str] = None


class TransactionDetail(BaseModel):
    id: str
    account_id: str
    date: date
    amount: int
    payee_name: Optional[str] = None
    cleared: ClearedStatus = ClearedStatus.UNCLEARED
    import_id: Optional[str] = None
    transfer_account_id: Optional[str] = None
    deleted: bool = False


class UpdateTransaction(BaseModel):
    id: str
    cleared: ClearedStatus


# Results

class SyncResult(BaseModel):
    status: SyncStatus
    from_date: Optional[date] = None
    fetched: int = 0
    added: int = 0
    cleared: int = 0
    skipped: int = 0
    invalid: int = 0
    ambiguous: List[str] = []


class CsvImportResult(BaseModel):
    rows: int = 0
    imported: int = 0
    filtered: int = 0
    invalid: int = 0
    last_ledger_date: Optional[date] = None


class SyncLog(BaseModel):
    id: int
    sync_type: SyncType
    sync_status: SyncStatus
    transactions_fetched: int
    transactions_added: int
    transactions_cleared: int
    transactions_skipped: int
    transactions_invalid: int
    sync_from_date: Optional[date] = None
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None

    class Config:
        from_attributes = True
