"""
Client-side revenue event emitter.

Builds a normalized revenue event and delivers it at most once, best effort:

- BeaconTransport hands the POST to a background thread and returns at once.
  The send outlives the caller and its result is never reported back.
- FetchTransport is the fallback when the beacon path is unavailable or
  refuses the send. It waits for the response and reports delivered/failed.

Nothing is retried or queued locally; an event lost here stays lost. Callers
get a DeliveryOutcome whatever happens and never see an exception.
"""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from threading import BoundedSemaphore, Lock, Thread, current_thread
from typing import Any, Mapping
from urllib import error as urlerror
from urllib import request as urlrequest
from urllib.parse import parse_qs, urlsplit

from app.core.config import settings
from app.core.time import now_ms
from app.services.revenue_events import UTM_KEYS, empty_utm

logger = logging.getLogger(__name__)

BEACON_MAX_INFLIGHT = 32


@dataclass(frozen=True)
class DeliveryOutcome:
    transport: str
    queued: bool
    # None: sent without waiting for an answer (beacon).
    delivered: bool | None
    status_code: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True when the event left the process (beacon) or was acknowledged (fetch)."""
        if self.delivered is None:
            return self.queued
        return self.delivered


def utm_from_url(url: str | None) -> dict[str, str | None]:
    utm = empty_utm()
    query = parse_qs(urlsplit(str(url or "")).query)
    for key in UTM_KEYS:
        values = query.get(key)
        if values:
            utm[key] = values[0]
    return utm


def build_revenue_event(
    channel: str,
    cta_id: str | None,
    amount: int | float | Decimal,
    *,
    utm: Mapping[str, Any] | None = None,
    current_url: str | None = None,
) -> dict[str, Any]:
    if utm is None:
        resolved_utm = utm_from_url(current_url)
    else:
        resolved_utm = empty_utm()
        resolved_utm.update({key: utm.get(key) for key in UTM_KEYS})

    return {
        "channel": channel,
        "cta_id": cta_id or "",
        "transaction_id": str(uuid.uuid4()),
        "amount": amount,
        "page": urlsplit(str(current_url or "")).path,
        "utm": resolved_utm,
        "timestamp": now_ms(),
    }


def _json_default(value: Any):
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_event(event: Mapping[str, Any]) -> bytes:
    return json.dumps(dict(event), default=_json_default).encode("utf-8")


def _post(url: str, body: bytes, *, timeout: float) -> int:
    req = urlrequest.Request(
        url,
        data=body,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urlrequest.urlopen(req, timeout=timeout) as response:
        return int(response.getcode() or 0)


class FetchTransport:
    """Awaited POST. Any error means "not delivered"."""

    name = "fetch"

    def __init__(self, *, timeout: float | None = None) -> None:
        self._timeout = float(timeout if timeout is not None else settings.EMITTER_TIMEOUT_SECONDS)

    def send(self, url: str, body: bytes) -> DeliveryOutcome:
        try:
            status_code = _post(url, body, timeout=self._timeout)
        except urlerror.HTTPError as exc:
            try:
                detail = exc.read().decode("utf-8", "ignore")[:250]
            except Exception as read_exc:
                detail = f"<unreadable: {read_exc}>"
            logger.warning("[tracker] fetch rejected: status=%s body=%s", exc.code, detail)
            return DeliveryOutcome(
                transport=self.name,
                queued=False,
                delivered=False,
                status_code=int(exc.code),
                error="http_error",
            )
        except Exception as exc:
            logger.warning("[tracker] fetch failed: %s", exc)
            return DeliveryOutcome(transport=self.name, queued=False, delivered=False, error=str(exc))

        return DeliveryOutcome(
            transport=self.name,
            queued=False,
            delivered=200 <= status_code < 300,
            status_code=status_code,
        )


class BeaconTransport:
    """
    Fire-and-forget POST on a background thread.

    Threads are non-daemon so a send in flight finishes even after the caller
    is gone. `send` refuses (returns False) when too many sends are in flight
    or a thread cannot be started.
    """

    name = "beacon"

    def __init__(self, *, timeout: float | None = None, max_inflight: int = BEACON_MAX_INFLIGHT) -> None:
        self._timeout = float(timeout if timeout is not None else settings.EMITTER_TIMEOUT_SECONDS)
        self._slots = BoundedSemaphore(max(1, int(max_inflight)))
        self._threads_lock = Lock()
        self._threads: set[Thread] = set()

    def send(self, url: str, body: bytes) -> bool:
        if not self._slots.acquire(blocking=False):
            return False
        thread = Thread(target=self._deliver, args=(url, body), name="revenue-beacon", daemon=False)
        with self._threads_lock:
            self._threads.add(thread)
        try:
            thread.start()
        except RuntimeError as exc:
            logger.warning("[tracker] beacon unavailable: %s", exc)
            with self._threads_lock:
                self._threads.discard(thread)
            self._slots.release()
            return False
        return True

    def _deliver(self, url: str, body: bytes) -> None:
        try:
            status_code = _post(url, body, timeout=self._timeout)
            logger.debug("[tracker] beacon delivered: status=%s", status_code)
        except Exception as exc:
            logger.warning("[tracker] beacon send failed: %s", exc)
        finally:
            self._slots.release()
            with self._threads_lock:
                self._threads.discard(current_thread())

    def flush(self, timeout: float | None = None) -> None:
        """Wait for in-flight sends (tests and short-lived scripts)."""
        with self._threads_lock:
            pending = list(self._threads)
        for thread in pending:
            thread.join(timeout)


class RevenueEmitter:
    """Builds revenue events and sends them, beacon first, fetch as fallback."""

    def __init__(
        self,
        endpoint_url: str | None = None,
        *,
        beacon: BeaconTransport | None = None,
        fetch: FetchTransport | None = None,
        use_beacon: bool = True,
    ) -> None:
        self.endpoint_url = str(endpoint_url or settings.REVENUE_TRACK_URL)
        self._beacon = (beacon or BeaconTransport()) if use_beacon else None
        self._fetch = fetch or FetchTransport()

    def deliver(self, event: Mapping[str, Any]) -> DeliveryOutcome:
        try:
            body = encode_event(event)
            if self._beacon is not None and self._beacon.send(self.endpoint_url, body):
                logger.info("[tracker] sent via beacon: channel=%s", event.get("channel"))
                return DeliveryOutcome(transport=BeaconTransport.name, queued=True, delivered=None)

            outcome = self._fetch.send(self.endpoint_url, body)
            if outcome.delivered:
                logger.info("[tracker] sent via fetch: channel=%s", event.get("channel"))
            return outcome
        except Exception as exc:
            logger.warning("[tracker] failed: %s", exc)
            return DeliveryOutcome(transport="none", queued=False, delivered=False, error=str(exc))

    def track_revenue(
        self,
        channel: str,
        cta_id: str | None,
        amount: int | float | Decimal,
        *,
        utm: Mapping[str, Any] | None = None,
        current_url: str | None = None,
    ) -> DeliveryOutcome:
        try:
            event = build_revenue_event(channel, cta_id, amount, utm=utm, current_url=current_url)
        except Exception as exc:
            logger.warning("[tracker] failed to build event: %s", exc)
            return DeliveryOutcome(transport="none", queued=False, delivered=False, error=str(exc))
        return self.deliver(event)

    def flush(self, timeout: float | None = None) -> None:
        if self._beacon is not None:
            self._beacon.flush(timeout)
