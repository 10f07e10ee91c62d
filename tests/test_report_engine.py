from datetime import date, datetime, timezone

import pytest

from app.analyzer.report_engine import build_weekly_report
from app.config import settings
from app.models.optimization_models import PerformanceMetrics
from app.store.campaign_store import upsert_snapshot

END = date(2026, 10, 19)


def test_weekly_totals_ordered_by_spend(session, make_campaign):
    small = make_campaign(name="Small")
    big = make_campaign(name="Big", native_id="222")
    upsert_snapshot(
        session,
        small.id,
        "2026-10-14",
        PerformanceMetrics(impressions=100, clicks=5, spend=10, conversions=1, revenue=20, roas=2.0),
    )
    upsert_snapshot(
        session,
        small.id,
        "2026-10-19",
        PerformanceMetrics(impressions=300, clicks=9, spend=20, conversions=2, revenue=60, roas=3.0),
    )
    upsert_snapshot(session, big.id, "2026-10-15", PerformanceMetrics(impressions=900, spend=75.25))

    report = build_weekly_report(session, end_date=END)

    assert report.date_range_start == "2026-10-13"
    assert report.date_range_end == "2026-10-19"
    assert [row.campaign_name for row in report.campaigns] == ["Big", "Small"]

    row = report.campaigns[1]
    assert row.total_impressions == 400
    assert row.total_clicks == 14
    assert row.total_spend == 30
    assert row.total_conversions == 3
    assert row.avg_roas == pytest.approx(2.5)
    assert report.campaigns[0].total_spend == 75.25
    assert report.summary.total_spend == pytest.approx(105.25)
    assert report.summary.total_revenue == 80


def test_snapshots_outside_window_are_ignored(session, make_campaign):
    campaign = make_campaign()
    upsert_snapshot(session, campaign.id, "2026-10-12", PerformanceMetrics(spend=99))
    upsert_snapshot(session, campaign.id, "2026-10-20", PerformanceMetrics(spend=99))

    report = build_weekly_report(session, end_date=END)
    assert report.campaigns == []
    assert report.summary.total_spend == 0


def test_custom_period(session, make_campaign):
    campaign = make_campaign()
    upsert_snapshot(session, campaign.id, "2026-10-05", PerformanceMetrics(spend=5))
    report = build_weekly_report(session, end_date=END, days=30)
    assert report.period == "Last 30 days"
    assert report.campaigns[0].total_spend == 5


def test_default_window_ends_on_the_account_date(session, make_campaign, monkeypatch):
    monkeypatch.setattr(settings, "account_timezone", "Asia/Kolkata")
    campaign = make_campaign()
    # 20:00 UTC is already the next day in India
    upsert_snapshot(session, campaign.id, "2026-10-20", PerformanceMetrics(spend=15))

    report = build_weekly_report(session, now=datetime(2026, 10, 19, 20, 0, tzinfo=timezone.utc))

    assert report.date_range_end == "2026-10-20"
    assert report.date_range_start == "2026-10-14"
    assert report.summary.total_spend == 15
