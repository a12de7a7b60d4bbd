"""
Revenue tracking API Router

POST ingests one revenue event; GET serves the filtered, paginated report.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from app.services.revenue_events import RevenueRequestError, record_revenue_event
from app.services.revenue_reports import build_revenue_report, list_campaigns
from app.services.revenue_store import RevenueEventStore, get_revenue_store

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("")
def track_revenue(
    payload: Any = Body(default=None),
    store: RevenueEventStore = Depends(get_revenue_store),
):
    """Append one revenue event. Partial payloads are default-filled."""
    try:
        return record_revenue_event(store, payload)
    except RevenueRequestError as exc:
        logger.info("Revenue event rejected: reason=%s", exc.reason)
        raise HTTPException(status_code=400, detail=exc.as_detail())
    except Exception:
        logger.exception("Failed to record revenue event")
        raise HTTPException(status_code=500, detail="Failed to record revenue event")


@router.get("")
def revenue_report(
    page: int = Query(1),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    period: str = Query("all", description="all | last_7_days | last_30_days (7d / 30d accepted)"),
    utm_campaign: str = Query("all", description="Exact campaign match, or 'all'"),
    store: RevenueEventStore = Depends(get_revenue_store),
):
    """Filtered page of raw events plus per-channel totals over the whole filtered set."""
    try:
        report = build_revenue_report(
            store,
            period=period,
            utm_campaign=utm_campaign,
            page=page,
            page_size=page_size,
        )
    except RevenueRequestError as exc:
        raise HTTPException(status_code=400, detail=exc.as_detail())
    return report.as_payload()


@router.get("/campaigns")
def revenue_campaigns(store: RevenueEventStore = Depends(get_revenue_store)):
    """Every campaign ever tracked, independent of report filters."""
    return {"campaigns": sorted(list_campaigns(store))}
