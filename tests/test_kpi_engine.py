import itertools
import math

import pytest

from app.analyzer.kpi_engine import normalize_metrics
from app.core.metric_registry import DERIVED_METRICS, RAW_COUNTERS, MetricType

COUNTER_VALUES = [0, 1, 7, 1000, 12345.67]
KPI_DENOMINATORS = {
    "ctr": "impressions",
    "cpc": "clicks",
    "cpl": "conversions",
    "cpa": "conversions",
    "roas": "spend",
    "conversion_rate": "clicks",
}


def test_formulas():
    m = normalize_metrics(
        {"impressions": 2000, "clicks": 40, "spend": 120, "conversions": 4, "revenue": 300}
    )
    assert m.ctr == pytest.approx(2.0)
    assert m.cpc == pytest.approx(3.0)
    assert m.cpl == pytest.approx(30.0)
    assert m.cpa == pytest.approx(30.0)
    assert m.roas == pytest.approx(2.5)
    assert m.conversion_rate == pytest.approx(10.0)


def test_all_kpis_finite_non_negative_and_zero_on_zero_denominator():
    for values in itertools.product(COUNTER_VALUES, repeat=5):
        raw = dict(zip(RAW_COUNTERS, values))
        m = normalize_metrics(raw).model_dump()
        for name, value in m.items():
            assert math.isfinite(value) and value >= 0, (raw, name)
        for kpi, denominator in KPI_DENOMINATORS.items():
            if raw[denominator] == 0:
                assert m[kpi] == 0, (raw, kpi)


def test_cpl_always_equals_cpa():
    for spend, conversions in itertools.product([0, 0.5, 99.9, 1e6], [0, 1, 3, 17.5]):
        m = normalize_metrics({"spend": spend, "conversions": conversions})
        assert m.cpl == m.cpa


@pytest.mark.parametrize(
    "bad",
    [None, "", "abc", "-5", -5, float("nan"), float("inf"), [1], {"x": 1}],
)
def test_garbage_counters_coerce_to_zero(bad):
    m = normalize_metrics({"impressions": bad, "clicks": 10, "spend": 5})
    assert m.impressions == 0
    assert m.ctr == 0
    assert m.cpc == pytest.approx(0.5)


def test_numeric_strings_are_parsed():
    m = normalize_metrics({"impressions": "1000", "clicks": "25", "spend": "12.50"})
    assert m.ctr == pytest.approx(2.5)
    assert m.cpc == pytest.approx(0.5)


def test_missing_input_and_platform_rates_ignored():
    assert normalize_metrics(None).model_dump() == normalize_metrics({}).model_dump()
    m = normalize_metrics({"impressions": 100, "clicks": 1, "ctr": 99.0, "cpm": 5})
    assert m.ctr == pytest.approx(1.0)


def test_overflowing_ratio_is_zero():
    m = normalize_metrics({"spend": 1e308, "clicks": 1e-308})
    assert m.cpc == 0


def test_registry_drives_every_derived_kpi():
    assert set(RAW_COUNTERS) == {"impressions", "clicks", "spend", "conversions", "revenue"}
    assert set(DERIVED_METRICS) | set(RAW_COUNTERS) == set(normalize_metrics({}).model_dump())
    for name, metric in DERIVED_METRICS.items():
        assert metric.metric_type == MetricType.DERIVED
        assert metric.numerator in RAW_COUNTERS and metric.denominator in RAW_COUNTERS
        assert KPI_DENOMINATORS[name] == metric.denominator
