"""
SQLAlchemy models for the revenue tracker.
"""
from sqlalchemy import (
    Column, Integer, String, BigInteger, DECIMAL, DateTime, CheckConstraint, Index
)
from sqlalchemy.sql import func

from app.core.database import Base


class RevenueEventRow(Base):
    """Append-only revenue event log. The primary key records arrival order."""
    __tablename__ = "revenue_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    channel = Column(String(64), nullable=False)
    cta_id = Column(String(128), nullable=False, default="")
    amount = Column(DECIMAL(14, 2), nullable=False)
    # Client-generated; deliberately not unique.
    transaction_id = Column(String(64), nullable=False)
    page = Column(String(255), nullable=False, default="")

    utm_source = Column(String(255), nullable=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)
    utm_content = Column(String(255), nullable=True)
    utm_term = Column(String(255), nullable=True)

    # Emitter-assigned, milliseconds since epoch.
    timestamp_ms = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("channel <> ''", name="ck_revenue_events_channel_nonempty"),
        CheckConstraint("amount >= 0", name="ck_revenue_events_amount_nonnegative"),
        Index("idx_revenue_events_timestamp_ms", "timestamp_ms"),
        Index("idx_revenue_events_utm_campaign", "utm_campaign"),
    )
