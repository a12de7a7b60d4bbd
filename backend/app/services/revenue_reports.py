"""
Revenue report engine: filtering, per-channel totals and pagination.

Totals are always summed over the whole filtered set, never over the
unfiltered log and never over the current page. Pages keep the log's arrival
order.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from app.core.config import settings
from app.core.time import MS_PER_DAY, now_ms as current_ms
from app.services.revenue_events import RevenueEvent, RevenueRequestError

ALL = "all"
PERIOD_WINDOWS_DAYS = {
    "last_7_days": 7,
    "last_30_days": 30,
}
# Values sent by the first report page.
PERIOD_ALIASES = {
    "": ALL,
    "7d": "last_7_days",
    "30d": "last_30_days",
}


@dataclass(frozen=True)
class RevenueReport:
    page_data: list[RevenueEvent]
    totals: dict[str, Decimal]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    period: str = ALL
    utm_campaign: str = ALL

    def as_payload(self) -> dict[str, Any]:
        """Wire shape of GET /track/revenue."""
        return {
            "data": [event.as_dict() for event in self.page_data],
            "totals": dict(self.totals),
            "total": self.total_count,
            "page": self.page,
            "pageSize": self.page_size,
            "totalPages": self.total_pages,
        }


def normalize_period(period: str | None) -> str:
    clean = str(period or "").strip().lower()
    clean = PERIOD_ALIASES.get(clean, clean)
    if clean != ALL and clean not in PERIOD_WINDOWS_DAYS:
        raise RevenueRequestError(
            "unsupported_period",
            f"Unsupported period={period!r}. Allowed={[ALL, *sorted(PERIOD_WINDOWS_DAYS)]}",
        )
    return clean


def normalize_campaign(utm_campaign: str | None) -> str:
    clean = str(utm_campaign or "").strip()
    return clean or ALL


def resolve_period_lower_bound(period: str, *, now_ms: int) -> int | None:
    """Inclusive lower timestamp bound for a period; None means unbounded."""
    resolved = normalize_period(period)
    if resolved == ALL:
        return None
    return int(now_ms) - PERIOD_WINDOWS_DAYS[resolved] * MS_PER_DAY


def resolve_page_size(page_size: int | None) -> int:
    default_size = max(1, int(getattr(settings, "DEFAULT_PAGE_SIZE", 10)))
    max_size = max(default_size, int(getattr(settings, "MAX_PAGE_SIZE", 200)))
    if page_size is None or int(page_size) < 1:
        return default_size
    return min(int(page_size), max_size)


def filter_by_campaign(events: list[RevenueEvent], utm_campaign: str) -> list[RevenueEvent]:
    if utm_campaign == ALL:
        return list(events)
    return [event for event in events if event.utm_campaign == utm_campaign]


def sum_by_channel(events: list[RevenueEvent]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for event in events:
        totals[event.channel] = totals.get(event.channel, Decimal("0")) + event.amount
    return totals


def max_channel_revenue(totals: dict[str, Decimal]) -> Decimal:
    """Highest channel total, used to highlight the top channel."""
    return max(totals.values(), default=Decimal("0"))


def build_revenue_report(
    store,
    *,
    period: str | None = ALL,
    utm_campaign: str | None = ALL,
    page: int | None = 1,
    page_size: int | None = None,
    now_ms: int | None = None,
) -> RevenueReport:
    resolved_period = normalize_period(period)
    resolved_campaign = normalize_campaign(utm_campaign)
    resolved_size = resolve_page_size(page_size)
    reference_ms = current_ms() if now_ms is None else int(now_ms)

    lower_bound = resolve_period_lower_bound(resolved_period, now_ms=reference_ms)
    # One scan, so totals and pages come from the same snapshot. The store
    # applies the period bound; the campaign filter runs here.
    filtered = filter_by_campaign(store.scan_since(lower_bound), resolved_campaign)

    total_count = len(filtered)
    total_pages = max(1, math.ceil(total_count / resolved_size))
    # Pages past the end come back empty with the requested page echoed.
    resolved_page = max(1, int(page or 1))
    start = (resolved_page - 1) * resolved_size

    return RevenueReport(
        page_data=filtered[start:start + resolved_size],
        totals=sum_by_channel(filtered),
        total_count=total_count,
        page=resolved_page,
        page_size=resolved_size,
        total_pages=total_pages,
        period=resolved_period,
        utm_campaign=resolved_campaign,
    )


def list_campaigns(store) -> set[str]:
    """Every campaign ever ingested, regardless of any report filter."""
    return set(store.campaigns())
