import asyncio

from sqlmodel import select

from app.models.campaign_models import Alert, Campaign, Decision, MetricsSnapshot
from app.monitor.pipeline import CampaignMonitor

from conftest import AFTERNOON, MORNING, FakeAdapter

HEALTHY = {"impressions": 500, "clicks": 10, "spend": 10, "conversions": 1, "revenue": 30}


def _monitor(session, adapters, thresholds, now=MORNING):
    return CampaignMonitor(session, adapters, thresholds=thresholds, clock=lambda: now)


def test_full_pass_persists_snapshot_decisions_and_alerts(session, make_campaign, thresholds):
    metrics = {"impressions": 2000, "clicks": 10, "spend": 85, "conversions": 1, "revenue": 0}
    campaign = make_campaign(native_id="111")
    adapter = FakeAdapter(metrics={"111": metrics})

    report = asyncio.run(_monitor(session, {"meta": adapter}, thresholds).monitor_all())

    assert report.campaigns_total == 1
    assert report.campaigns_failed == 0
    outcome = report.outcomes[0]
    # cpl 85 > 50, ctr 0.5% on 2000 impressions, 85% of budget before noon
    assert outcome.actions == ["bid_adjustment", "creative_refresh", "pacing_adjustment"]
    assert outcome.alerts == ["high_cpl"]

    snapshot = session.exec(select(MetricsSnapshot)).one()
    assert snapshot.campaign_id == campaign.id
    assert snapshot.date == "2026-10-19"
    assert snapshot.cpl == 85 and snapshot.cpa == 85

    decisions = session.exec(select(Decision).order_by(Decision.id)).all()
    assert [d.decision_type for d in decisions] == outcome.actions
    assert decisions[0].success is True
    assert decisions[1].success is None
    assert len(adapter.executed) == 1

    alert = session.exec(select(Alert)).one()
    assert (alert.alert_type, alert.severity) == ("high_cpl", "warning")


def test_low_roas_reduces_budget(session, make_campaign, thresholds):
    metrics = {"impressions": 500, "clicks": 100, "spend": 40, "conversions": 20, "revenue": 40}
    campaign = make_campaign(native_id="111", daily_budget=200)
    report = asyncio.run(
        _monitor(session, {"meta": FakeAdapter(metrics={"111": metrics})}, thresholds, AFTERNOON).monitor_all()
    )
    assert report.outcomes[0].actions == ["budget_reallocation"]
    assert report.outcomes[0].alerts == ["low_roas"]
    assert session.get(Campaign, campaign.id).daily_budget == 160.0


def test_failing_campaign_does_not_stop_the_next(session, make_campaign, thresholds):
    broken = make_campaign(name="Broken", native_id="bad")
    healthy = make_campaign(name="Fine", native_id="good")
    adapter = FakeAdapter(
        metrics={"good": {"impressions": 2000, "clicks": 5, "spend": 95, "conversions": 1}},
        fail_metrics_for={"bad"},
    )

    report = asyncio.run(_monitor(session, {"meta": adapter}, thresholds).monitor_all())

    assert report.campaigns_total == 2
    assert report.campaigns_failed == 1
    failed = next(o for o in report.outcomes if o.campaign_id == broken.id)
    assert failed.success is False
    assert "insights unavailable" in failed.error

    snapshots = session.exec(select(MetricsSnapshot)).all()
    assert [s.campaign_id for s in snapshots] == [healthy.id]
    alerts = session.exec(select(Alert)).all()
    assert {a.campaign_id for a in alerts} == {healthy.id}
    assert {a.alert_type for a in alerts} == {"high_cpl", "budget_exceeded"}


def test_unknown_platform_fails_only_that_campaign(session, make_campaign, thresholds):
    make_campaign(name="Other", platform="tiktok", native_id="x")
    fine = make_campaign(name="Fine", native_id="good")
    adapter = FakeAdapter(metrics={"good": HEALTHY})

    report = asyncio.run(_monitor(session, {"meta": adapter}, thresholds).monitor_all())

    assert report.campaigns_failed == 1
    ok = next(o for o in report.outcomes if o.campaign_id == fine.id)
    assert ok.success and ok.actions == [] and ok.alerts == []


def test_platform_error_during_dispatch_is_recorded(session, make_campaign, thresholds):
    make_campaign(native_id="111")
    adapter = FakeAdapter(
        metrics={"111": {"impressions": 100, "clicks": 10, "spend": 60, "conversions": 1}},
        fail_execute=True,
    )
    report = asyncio.run(_monitor(session, {"meta": adapter}, thresholds, AFTERNOON).monitor_all())

    assert report.campaigns_failed == 0
    decision = session.exec(select(Decision)).one()
    assert decision.decision_type == "bid_adjustment"
    assert decision.success is False
    assert session.exec(select(MetricsSnapshot)).one().spend == 60


def test_repeated_passes_overwrite_snapshot_and_repeat_alerts(session, make_campaign, thresholds):
    make_campaign(native_id="111")
    adapter = FakeAdapter(metrics={"111": {"clicks": 10, "spend": 60, "conversions": 1}})
    monitor = _monitor(session, {"meta": adapter}, thresholds, AFTERNOON)

    asyncio.run(monitor.monitor_all())
    adapter.metrics["111"] = {"clicks": 12, "spend": 70, "conversions": 1}
    asyncio.run(monitor.monitor_all())

    snapshot = session.exec(select(MetricsSnapshot)).one()
    assert snapshot.spend == 70
    assert len(session.exec(select(Alert)).all()) == 2
    assert len(session.exec(select(Decision)).all()) == 2


def test_paused_campaigns_are_skipped(session, make_campaign, thresholds):
    make_campaign(status="paused")
    adapter = FakeAdapter()
    report = asyncio.run(_monitor(session, {"meta": adapter}, thresholds).monitor_all())
    assert report.campaigns_total == 0
    assert report.finished_at


def test_decisions_committed_before_a_failure_are_counted(session, make_campaign, thresholds):
    class BreaksOnBudget(FakeAdapter):
        async def execute_decision(self, native_campaign_id, decision):
            if decision.type.value == "budget_reallocation":
                raise RuntimeError("adapter bug")
            return await super().execute_decision(native_campaign_id, decision)

    make_campaign(native_id="111", daily_budget=100000)
    adapter = BreaksOnBudget(metrics={"111": {"clicks": 50, "spend": 1000, "conversions": 11}})

    report = asyncio.run(_monitor(session, {"meta": adapter}, thresholds, AFTERNOON).monitor_all())

    assert report.campaigns_failed == 1
    assert "adapter bug" in report.outcomes[0].error
    decisions = session.exec(select(Decision)).all()
    assert [d.decision_type for d in decisions] == ["bid_adjustment"]
    assert report.decisions_recorded == len(decisions) == 1
