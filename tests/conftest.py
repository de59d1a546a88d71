import os

# Settings are read when banksync.database is imported
os.environ.setdefault("BANK_CLIENT_ID", "test-client")
os.environ.setdefault("BANK_CLIENT_SECRET", "test-secret")
os.environ.setdefault("BANK_ACCOUNT_KEY", "account-key-1")
os.environ.setdefault("YNAB_TOKEN", "ynab-token")
os.environ.setdefault("YNAB_BUDGET_ID", "budget-1")
os.environ.setdefault("YNAB_ACCOUNT_ID", "ynab-account-1")
os.environ.setdefault("YNAB_CREDIT_CARD_ACCOUNT_ID", "ynab-cc-1")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BASIC_AUTH_USER", "admin")
os.environ.setdefault("BASIC_AUTH_PASSWORD", "hunter2")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TOKEN_STORE_BACKEND", "memory")

from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from banksync.config import get_settings
from banksync.database import Base
from banksync.app import models  # noqa: F401  (registers tables)
from banksync.app.schemas import (
    BankTransaction, BookingStatus, ClearedStatus, TokenResponse, TransactionDetail
)

OSLO = ZoneInfo("Europe/Oslo")


def epoch_ms(day: date, hour: int = 12) -> int:
    """Bank timestamp for the given day at `hour` o'clock Oslo time."""
    return int(datetime(day.year, day.month, day.day, hour, tzinfo=OSLO).timestamp() * 1000)


def bank_tx(
    id="tx-1",
    amount="-250.00",
    day=date(2024, 12, 25),
    description="*3301 25.12 NOK 250.00 NETONNET SANDNES Kurs: 1.0000",
    cleaned_description="Netonnet",
    status=BookingStatus.BOOKED
) -> BankTransaction:
    return BankTransaction(
        id=id,
        amount=Decimal(amount) if amount is not None else None,
        date=epoch_ms(day) if day is not None else None,
        description=description,
        cleaned_description=cleaned_description,
        booking_status=status,
        currency_code="NOK",
        account_key="account-key-1"
    )


def ledger_tx(
    id="ynab-1",
    amount=-250000,
    payee_name="Netonnet",
    cleared=ClearedStatus.UNCLEARED,
    day=date(2024, 12, 24),
    transfer_account_id=None
) -> TransactionDetail:
    return TransactionDetail(
        id=id,
        account_id="ynab-account-1",
        date=day,
        amount=amount,
        payee_name=payee_name,
        cleared=cleared,
        transfer_account_id=transfer_account_id
    )


class FakeBankProvider:
    def __init__(self, transactions=None, refresh_error=None, fetch_error=None):
        self.transactions = transactions or []
        self.refresh_error = refresh_error
        self.fetch_error = fetch_error
        self.refreshed_with = []
        self.fetch_calls = []
        self._counter = 0

    async def refresh_access_token(self, refresh_token):
        self.refreshed_with.append(refresh_token)
        if self.refresh_error:
            raise self.refresh_error
        self._counter += 1
        return TokenResponse(access_token=f"access-{self._counter}", refresh_token=f"refresh-{self._counter}")

    async def fetch_transactions(self, access_token, account_key, from_date):
        self.fetch_calls.append((access_token, account_key, from_date))
        if self.fetch_error:
            raise self.fetch_error
        return list(self.transactions)


class FakeLedger:
    def __init__(self, transactions=None, latest_date=None, create_error=None, update_error=None):
        self.transactions = transactions or []
        self.latest_date = latest_date
        self.create_error = create_error
        self.update_error = update_error
        self.created = []
        self.updated = []
        self.get_calls = []
        self.calls = []

    async def get_transactions(self, account_id, since_date=None):
        self.get_calls.append((account_id, since_date))
        self.calls.append("get")
        return list(self.transactions)

    async def get_latest_transaction_date(self, account_id):
        self.calls.append("latest")
        return self.latest_date

    async def create_transactions(self, transactions):
        self.calls.append("create")
        if self.create_error:
            raise self.create_error
        self.created.append(list(transactions))
        return {"transaction_ids": [], "duplicate_import_ids": []}

    async def update_transactions(self, transactions):
        self.calls.append("update")
        if self.update_error:
            raise self.update_error
        self.updated.append(list(transactions))
        return {"transactions": []}


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
