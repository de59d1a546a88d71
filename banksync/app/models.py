from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from banksync.database import Base
from .schemas import SyncType, SyncStatus


class KeyValue(Base):
    """Single row per Token Store key (refreshToken, lastSyncDate)."""
    __tablename__ = "key_values"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class SyncLog(Base):
    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, index=True)

    sync_type = Column(SQLEnum(SyncType), nullable=False)
    sync_status = Column(SQLEnum(SyncStatus), nullable=False)

    # Results
    transactions_fetched = Column(Integer, default=0)
    transactions_added = Column(Integer, default=0)
    transactions_cleared = Column(Integer, default=0)
    transactions_skipped = Column(Integer, default=0)
    transactions_invalid = Column(Integer, default=0)

    sync_from_date = Column(Date, nullable=True)

    error_message = Column(Text, nullable=True)

    # Timing
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Integer, nullable=True)
