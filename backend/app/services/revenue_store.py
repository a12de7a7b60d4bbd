"""
Append-only revenue event log.

The report engine only talks to the narrow RevenueEventStore surface
(append / scan_since / all / campaigns), so the in-memory and SQL backends can
be swapped without touching aggregation code. Both return events in arrival
order.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache
from threading import Lock
from typing import Callable, Protocol

from sqlalchemy import select, text
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import Base, SessionLocal, engine
from app.models.models import RevenueEventRow
from app.services.revenue_events import UTM_KEYS, RevenueEvent

logger = logging.getLogger(__name__)


class RevenueEventStore(Protocol):
    def append(self, event: RevenueEvent) -> None: ...

    def scan_since(self, lower_bound_ms: int | None) -> list[RevenueEvent]: ...

    def all(self) -> list[RevenueEvent]: ...

    def campaigns(self) -> set[str]: ...

    def ping(self) -> None: ...


class InMemoryRevenueStore:
    """
    Process-lifetime event log.

    Appends and snapshots both happen under one lock, so a reader never sees a
    half-appended event and the campaign set never lags the log.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._events: list[RevenueEvent] = []
        self._campaigns: set[str] = set()

    def append(self, event: RevenueEvent) -> None:
        with self._lock:
            self._events.append(event)
            if event.utm_campaign is not None:
                self._campaigns.add(event.utm_campaign)

    def all(self) -> list[RevenueEvent]:
        with self._lock:
            return list(self._events)

    def scan_since(self, lower_bound_ms: int | None) -> list[RevenueEvent]:
        snapshot = self.all()
        if lower_bound_ms is None:
            return snapshot
        return [event for event in snapshot if event.timestamp >= lower_bound_ms]

    def campaigns(self) -> set[str]:
        with self._lock:
            return set(self._campaigns)

    def ping(self) -> None:
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


def _row_from_event(event: RevenueEvent) -> RevenueEventRow:
    return RevenueEventRow(
        channel=event.channel,
        cta_id=event.cta_id,
        amount=event.amount,
        transaction_id=event.transaction_id,
        page=event.page,
        timestamp_ms=int(event.timestamp),
        **{key: event.utm.get(key) for key in UTM_KEYS},
    )


def _event_from_row(row: RevenueEventRow) -> RevenueEvent:
    return RevenueEvent(
        channel=row.channel,
        amount=Decimal(row.amount),
        transaction_id=row.transaction_id,
        timestamp=int(row.timestamp_ms),
        cta_id=row.cta_id or "",
        page=row.page or "",
        utm={key: getattr(row, key) for key in UTM_KEYS},
    )


class SqlRevenueStore:
    """Event log backed by the revenue_events table. One short session per call."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def append(self, event: RevenueEvent) -> None:
        db = self._session_factory()
        try:
            db.add(_row_from_event(event))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def scan_since(self, lower_bound_ms: int | None) -> list[RevenueEvent]:
        query = select(RevenueEventRow).order_by(RevenueEventRow.id)
        if lower_bound_ms is not None:
            query = query.where(RevenueEventRow.timestamp_ms >= int(lower_bound_ms))
        db = self._session_factory()
        try:
            return [_event_from_row(row) for row in db.scalars(query).all()]
        finally:
            db.close()

    def all(self) -> list[RevenueEvent]:
        return self.scan_since(None)

    def campaigns(self) -> set[str]:
        query = (
            select(RevenueEventRow.utm_campaign)
            .where(RevenueEventRow.utm_campaign.is_not(None))
            .distinct()
        )
        db = self._session_factory()
        try:
            return {str(value) for value in db.scalars(query).all()}
        finally:
            db.close()

    def ping(self) -> None:
        db = self._session_factory()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()


def create_revenue_store(backend: str | None = None) -> RevenueEventStore:
    resolved = str(backend or getattr(settings, "REVENUE_STORE_BACKEND", "memory")).strip().lower()
    if resolved == "memory":
        return InMemoryRevenueStore()
    if resolved == "sql":
        if bool(getattr(settings, "REVENUE_AUTO_CREATE_TABLES", True)):
            Base.metadata.create_all(bind=engine, tables=[RevenueEventRow.__table__])
        return SqlRevenueStore(SessionLocal)
    raise ValueError(f"Unsupported REVENUE_STORE_BACKEND={resolved!r}. Allowed=['memory', 'sql']")


@lru_cache()
def get_revenue_store() -> RevenueEventStore:
    """Process-wide event log (FastAPI dependency)."""
    store = create_revenue_store()
    logger.info("Revenue store ready: backend=%s", type(store).__name__)
    return store
