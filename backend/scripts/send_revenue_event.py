#!/usr/bin/env python3
"""Send revenue events to a running tracker, the way the CTA buttons do."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import settings
from app.services.revenue_emitter import RevenueEmitter

# Buttons on the demo landing page.
DEMO_CHANNELS = (
    ("Facebook", Decimal("120")),
    ("Google", Decimal("200")),
    ("Email", Decimal("75")),
)


def _parse_amount(raw_value: str) -> Decimal:
    try:
        return Decimal(str(raw_value).strip())
    except InvalidOperation as exc:
        raise SystemExit(f"Invalid --amount '{raw_value}'. Expected a number.") from exc


def main() -> int:
    parser = argparse.ArgumentParser(description="Emit revenue events to the tracking endpoint.")
    parser.add_argument("--url", type=str, default=settings.REVENUE_TRACK_URL, help="Tracking endpoint URL")
    parser.add_argument("--channel", type=str, default="", help="Attribution channel, e.g. Facebook")
    parser.add_argument("--amount", type=str, default="", help="Revenue amount")
    parser.add_argument("--cta-id", type=str, default="", help="Call-to-action identifier")
    parser.add_argument(
        "--page-url",
        type=str,
        default="",
        help="Originating page URL; utm_* query parameters are picked up from it",
    )
    parser.add_argument("--demo", action="store_true", help="Send the three demo channel events")
    parser.add_argument(
        "--confirm",
        action="store_true",
        help="Skip the beacon transport and wait for the server to acknowledge each event",
    )
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper()))

    if args.demo:
        events = list(DEMO_CHANNELS)
    else:
        if not args.channel or not args.amount:
            parser.error("--channel and --amount are required unless --demo is set")
        events = [(args.channel, _parse_amount(args.amount))]

    emitter = RevenueEmitter(args.url, use_beacon=not args.confirm)
    results = []
    for channel, amount in events:
        cta_id = args.cta_id or f"buy-{channel.lower()}"
        outcome = emitter.track_revenue(channel, cta_id, amount, current_url=args.page_url or None)
        results.append(
            {
                "channel": channel,
                "amount": float(amount),
                "transport": outcome.transport,
                "queued": outcome.queued,
                "delivered": outcome.delivered,
                "status_code": outcome.status_code,
                "error": outcome.error,
            }
        )
    emitter.flush(timeout=settings.EMITTER_TIMEOUT_SECONDS)

    print(json.dumps(results, indent=2))
    return 0 if all(item["delivered"] is not False for item in results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
