"""
Revenue event ingestion.

Accepts partial payloads from every emitter version seen so far and turns
them into one canonical, immutable RevenueEvent before it is appended to the
event log. Only `channel` and `amount` are required; everything else is
default-filled.
"""
from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping

from app.core.config import settings
from app.core.time import now_ms

logger = logging.getLogger(__name__)

# Amounts fit DECIMAL(14, 2); timestamps fit a signed 64-bit column.
AMOUNT_QUANTUM = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000000000")
TIMESTAMP_MIN_MS = -(2**63)
TIMESTAMP_MAX_MS = 2**63 - 1

UTM_KEYS = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
)


def empty_utm() -> dict[str, str | None]:
    return {key: None for key in UTM_KEYS}


class RevenueRequestError(ValueError):
    """Client error carrying a machine-readable reason code."""

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message

    def as_detail(self) -> dict[str, str]:
        return {"reason": self.reason, "message": self.message}


class RevenueEventRejected(RevenueRequestError):
    """Ingestion validation failure."""


@dataclass(frozen=True)
class RevenueEvent:
    channel: str
    amount: Decimal
    transaction_id: str
    timestamp: int
    cta_id: str = ""
    page: str = ""
    utm: dict[str, str | None] = field(default_factory=empty_utm)

    @property
    def utm_campaign(self) -> str | None:
        return self.utm.get("utm_campaign")

    def as_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel,
            "cta_id": self.cta_id,
            "transaction_id": self.transaction_id,
            "amount": self.amount,
            "page": self.page,
            "utm": dict(self.utm),
            "timestamp": self.timestamp,
        }


def _clean_text(value: Any, *, max_len: int) -> str:
    text_value = str(value or "").strip()
    if not text_value:
        return ""
    return text_value[:max_len]


def normalize_utm(value: Any) -> dict[str, str | None]:
    """Complete a UTM mapping to the fixed key set. Anything else counts as absent."""
    utm = empty_utm()
    if not isinstance(value, Mapping):
        return utm
    for key in UTM_KEYS:
        raw = value.get(key)
        if raw is None:
            continue
        utm[key] = _clean_text(raw, max_len=255) or None
    return utm


def parse_amount(value: Any) -> Decimal:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise RevenueEventRejected("amount_required", "amount is required")
    # bool is an int subclass; "true" is not revenue.
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise RevenueEventRejected("amount_not_numeric", "amount must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise RevenueEventRejected("amount_not_numeric", "amount must be a number") from exc
    if not amount.is_finite():
        raise RevenueEventRejected("amount_not_numeric", "amount must be a finite number")
    if amount < 0:
        raise RevenueEventRejected("amount_negative", "amount must be >= 0")
    if amount >= MAX_AMOUNT:
        raise RevenueEventRejected("amount_out_of_range", f"amount must be < {MAX_AMOUNT}")
    # Stored as DECIMAL(14, 2); round here so every backend keeps the same value.
    return amount.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


def _parse_timestamp(value: Any, *, default_ms: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default_ms
    if isinstance(value, float) and not math.isfinite(value):
        return default_ms
    if not TIMESTAMP_MIN_MS <= value <= TIMESTAMP_MAX_MS:
        return default_ms
    return int(value)


def normalize_revenue_event(payload: Any, *, received_at_ms: int | None = None) -> RevenueEvent:
    if not isinstance(payload, Mapping):
        raise RevenueEventRejected("invalid_payload", "payload must be a JSON object")

    channel = _clean_text(payload.get("channel"), max_len=64)
    if not channel:
        raise RevenueEventRejected("channel_required", "channel is required")

    amount = parse_amount(payload.get("amount"))
    received_at = now_ms() if received_at_ms is None else int(received_at_ms)

    return RevenueEvent(
        channel=channel,
        amount=amount,
        transaction_id=_clean_text(payload.get("transaction_id"), max_len=64) or str(uuid.uuid4()),
        timestamp=_parse_timestamp(payload.get("timestamp"), default_ms=received_at),
        cta_id=_clean_text(payload.get("cta_id"), max_len=128),
        page=_clean_text(payload.get("page"), max_len=255),
        utm=normalize_utm(payload.get("utm")),
    )


def record_revenue_event(store, payload: Any) -> dict[str, Any]:
    if not bool(getattr(settings, "REVENUE_INGEST_ENABLED", True)):
        raise RevenueEventRejected("ingest_disabled", "revenue event ingest is disabled")

    event = normalize_revenue_event(payload)
    # transaction_id is not checked for duplicates; a resent event counts twice.
    store.append(event)

    logger.info(
        "Revenue tracked: channel=%s amount=%s cta_id=%s campaign=%s transaction_id=%s",
        event.channel,
        event.amount,
        event.cta_id,
        event.utm_campaign,
        event.transaction_id,
    )
    return {"status": "ok", "transaction_id": event.transaction_id}
