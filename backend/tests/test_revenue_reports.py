from __future__ import annotations

from decimal import Decimal

import pytest

from app.core.time import MS_PER_DAY
from app.services import revenue_reports
from app.services.revenue_events import RevenueRequestError, record_revenue_event
from app.services.revenue_reports import (
    build_revenue_report,
    filter_by_campaign,
    list_campaigns,
    max_channel_revenue,
    resolve_period_lower_bound,
)
from app.services.revenue_store import InMemoryRevenueStore

NOW_MS = 1_790_000_000_000


def _ingest(store, channel, amount, *, days_ago=0, campaign=None, cta_id=""):
    payload = {
        "channel": channel,
        "amount": amount,
        "cta_id": cta_id,
        "timestamp": NOW_MS - int(days_ago * MS_PER_DAY),
    }
    if campaign is not None:
        payload["utm"] = {"utm_campaign": campaign}
    record_revenue_event(store, payload)


def _mixed_store():
    store = InMemoryRevenueStore()
    _ingest(store, "Facebook", 120, days_ago=1, campaign="spring", cta_id="a")
    _ingest(store, "Google", 200, days_ago=40, campaign="summer", cta_id="b")
    _ingest(store, "Email", "75.25", days_ago=10, cta_id="c")
    _ingest(store, "Facebook", 30, days_ago=3, campaign="summer", cta_id="d")
    _ingest(store, "Google", 15, days_ago=0, campaign="spring", cta_id="e")
    _ingest(store, "Email", 5, days_ago=25, campaign="spring", cta_id="f")
    _ingest(store, "Organic", 0, days_ago=60, cta_id="g")
    return store


def _report(store, **kwargs):
    kwargs.setdefault("now_ms", NOW_MS)
    return build_revenue_report(store, **kwargs)


def test_scenario_two_channels_single_page():
    store = InMemoryRevenueStore()
    record_revenue_event(store, {"channel": "Facebook", "amount": 120})
    record_revenue_event(store, {"channel": "Google", "amount": 200})

    report = build_revenue_report(store, period="all", utm_campaign="all", page=1, page_size=10)

    assert report.totals == {"Facebook": Decimal("120"), "Google": Decimal("200")}
    assert report.total_count == 2
    assert report.total_pages == 1
    assert [event.channel for event in report.page_data] == ["Facebook", "Google"]


def test_scenario_second_page_has_remainder_and_full_totals():
    store = InMemoryRevenueStore()
    for _ in range(15):
        record_revenue_event(store, {"channel": "Email", "amount": 10})

    report = build_revenue_report(store, page=2, page_size=10)

    assert len(report.page_data) == 5
    assert report.totals["Email"] == Decimal("150")
    assert report.total_pages == 2
    assert report.total_count == 15


def test_scenario_last_30_days_excludes_old_event():
    store = InMemoryRevenueStore()
    _ingest(store, "Google", 200, days_ago=40)

    recent = _report(store, period="last_30_days", page=1, page_size=10)
    everything = _report(store, period="all", page=1, page_size=10)

    assert recent.totals == {}
    assert recent.page_data == []
    assert recent.total_count == 0
    assert everything.totals == {"Google": Decimal("200")}
    assert len(everything.page_data) == 1


def test_scenario_campaign_filter_keeps_campaign_list_complete():
    store = InMemoryRevenueStore()
    _ingest(store, "Facebook", 120, campaign="spring")
    _ingest(store, "Google", 200, campaign="summer")
    _ingest(store, "Facebook", 30, campaign="spring")

    report = _report(store, utm_campaign="spring", page=1, page_size=10)

    assert report.totals == {"Facebook": Decimal("150")}
    assert all(event.utm_campaign == "spring" for event in report.page_data)
    assert list_campaigns(store) == {"spring", "summer"}


@pytest.mark.parametrize("period", ["all", "last_7_days", "last_30_days"])
@pytest.mark.parametrize("campaign", ["all", "spring", "summer", "missing"])
def test_totals_match_filtered_set_for_every_page_size(period, campaign):
    store = _mixed_store()
    reference = _report(store, period=period, utm_campaign=campaign, page=1, page_size=1000)
    expected_sum = sum((event.amount for event in reference.page_data), Decimal("0"))

    for page_size in (1, 2, 3, 7):
        for page in range(1, reference.total_pages + 2):
            report = _report(store, period=period, utm_campaign=campaign, page=page, page_size=page_size)
            assert report.totals == reference.totals
            assert sum(report.totals.values(), Decimal("0")) == expected_sum


@pytest.mark.parametrize("page_size", [1, 2, 3, 4, 7, 100])
def test_concatenated_pages_reproduce_filtered_set_in_arrival_order(page_size):
    store = _mixed_store()
    expected = [
        event
        for event in store.all()
        if event.timestamp >= NOW_MS - 30 * MS_PER_DAY
    ]

    first = _report(store, period="last_30_days", page=1, page_size=page_size)
    collected = list(first.page_data)
    for page in range(2, first.total_pages + 1):
        collected.extend(_report(store, period="last_30_days", page=page, page_size=page_size).page_data)

    assert collected == expected
    assert [event.cta_id for event in collected] == ["a", "c", "d", "e", "f"]


def test_arrival_order_is_not_resorted_by_timestamp():
    store = InMemoryRevenueStore()
    _ingest(store, "Email", 1, days_ago=0, cta_id="new")
    _ingest(store, "Email", 1, days_ago=5, cta_id="old")

    report = _report(store, page=1, page_size=10)

    assert [event.cta_id for event in report.page_data] == ["new", "old"]


def test_all_filters_total_whole_log():
    store = _mixed_store()
    report = _report(store, period="all", utm_campaign="all", page=1, page_size=2)

    assert report.total_count == len(store.all())
    assert report.totals == {
        "Facebook": Decimal("150"),
        "Google": Decimal("215"),
        "Email": Decimal("80.25"),
        "Organic": Decimal("0"),
    }


def test_period_aliases_match_canonical_names():
    store = _mixed_store()
    assert _report(store, period="7d").totals == _report(store, period="last_7_days").totals
    assert _report(store, period="30d").totals == _report(store, period="last_30_days").totals
    assert _report(store, period="").totals == _report(store, period="all").totals


def test_unsupported_period_is_rejected():
    with pytest.raises(RevenueRequestError) as exc_info:
        _report(InMemoryRevenueStore(), period="last_year")
    assert exc_info.value.reason == "unsupported_period"


def test_period_lower_bound_is_inclusive():
    store = InMemoryRevenueStore()
    _ingest(store, "Email", 3, days_ago=7)
    _ingest(store, "Email", 4, days_ago=7.0001)

    report = _report(store, period="last_7_days")

    assert report.totals == {"Email": Decimal("3")}
    assert resolve_period_lower_bound("last_7_days", now_ms=NOW_MS) == NOW_MS - 7 * MS_PER_DAY
    assert resolve_period_lower_bound("all", now_ms=NOW_MS) is None


def test_future_dated_events_are_included():
    store = InMemoryRevenueStore()
    _ingest(store, "Email", 9, days_ago=-2)

    report = _report(store, period="last_7_days")

    assert report.totals == {"Email": Decimal("9")}


def test_empty_log_report():
    report = _report(InMemoryRevenueStore(), page=1, page_size=10)

    assert report.totals == {}
    assert report.total_count == 0
    assert report.total_pages == 1
    assert report.page_data == []
    assert report.as_payload() == {
        "data": [],
        "totals": {},
        "total": 0,
        "page": 1,
        "pageSize": 10,
        "totalPages": 1,
    }


def test_out_of_range_page_returns_empty_valid_page():
    store = _mixed_store()

    report = _report(store, page=99, page_size=3)

    assert report.page_data == []
    assert report.page == 99
    assert report.total_pages == 3
    assert report.total_count == 7
    assert sum(report.totals.values(), Decimal("0")) == Decimal("445.25")


@pytest.mark.parametrize("page", [0, -3, None])
def test_page_below_one_is_clamped(page):
    store = _mixed_store()
    report = _report(store, page=page, page_size=3)
    assert report.page == 1
    assert [event.cta_id for event in report.page_data] == ["a", "b", "c"]


def test_page_size_defaults_and_cap(monkeypatch):
    monkeypatch.setattr(revenue_reports.settings, "DEFAULT_PAGE_SIZE", 10, raising=False)
    monkeypatch.setattr(revenue_reports.settings, "MAX_PAGE_SIZE", 50, raising=False)
    store = InMemoryRevenueStore()

    assert _report(store, page_size=None).page_size == 10
    assert _report(store, page_size=0).page_size == 10
    assert _report(store, page_size=-4).page_size == 10
    assert _report(store, page_size=500).page_size == 50


def test_repeated_queries_are_identical():
    store = _mixed_store()
    first = _report(store, period="last_30_days", utm_campaign="spring", page=1, page_size=2)
    second = _report(store, period="last_30_days", utm_campaign="spring", page=1, page_size=2)
    assert first == second
    assert first.as_payload() == second.as_payload()


def test_list_campaigns_ignores_null_and_covers_whole_log():
    store = _mixed_store()
    _report(store, period="last_7_days", utm_campaign="spring")
    assert list_campaigns(store) == {"spring", "summer"}


def test_max_channel_revenue_derives_from_totals():
    store = _mixed_store()
    totals = _report(store).totals
    assert max_channel_revenue(totals) == Decimal("215")
    assert max_channel_revenue({}) == Decimal("0")


def test_filter_by_campaign_returns_matching_events_in_order():
    store = InMemoryRevenueStore()
    _ingest(store, "Email", 1, campaign="spring", cta_id="a")
    _ingest(store, "Email", 2, campaign="summer", cta_id="b")
    _ingest(store, "Email", 3, campaign="spring", cta_id="c")
    events = store.all()

    assert [e.cta_id for e in filter_by_campaign(events, "spring")] == ["a", "c"]
    assert filter_by_campaign(events, "all") == events
    assert filter_by_campaign(events, "all") is not events
