import logging
from datetime import date, timedelta

import pandas as pd
import pytest

import calc  # noqa
from calc.performance import real_accuracy
from const import Trend

logger = logging.getLogger(__name__)


def samples(pairs):
    start = date(2024, 3, 1)
    return pd.DataFrame.performance.from_records(
        [
            {
                "sample_date": start + timedelta(days=i),
                "actual_inches": actual,
                "predicted_inches": predicted,
            }
            for i, (actual, predicted) in enumerate(pairs)
        ]
    )


def test_real_accuracy():
    assert real_accuracy(110) == 90
    assert real_accuracy(90) == 90
    assert real_accuracy(100) == 100


class TestAccuracy:
    def test_accuracy(self):
        df = samples([(100, 110), (100, 95)]).performance.accuracy()
        assert df.accuracy.tolist() == [pytest.approx(110), pytest.approx(95)]
        assert df.deviation.tolist() == [pytest.approx(10), pytest.approx(5)]
        assert df.real_accuracy.tolist() == [pytest.approx(90), pytest.approx(95)]

    def test_zero_actual(self):
        df = samples([(0, 10)]).performance.accuracy()
        assert df.accuracy.tolist() == [0]

    def test_anomalies_need_enough_rows(self):
        df = samples([(100, 100), (100, 300)]).performance.accuracy()
        assert not df.is_anomaly.any()


class TestStats:
    def test_empty(self):
        stats = samples([]).performance.stats()
        assert stats["pull_count"] == 0
        assert stats["trend"] == Trend.STABLE

    def test_bands(self):
        df = samples([(100, 100), (100, 104), (100, 108), (100, 120)])
        stats = df.performance.stats()
        assert stats["pull_count"] == 4
        assert stats["green_count"] == 2
        assert stats["yellow_count"] == 1
        assert stats["red_count"] == 1
        assert stats["best_accuracy"] == pytest.approx(100)
        assert stats["worst_accuracy"] == pytest.approx(120)

    def test_anomaly_excluded_from_average(self):
        stats = samples([(100, 100)] * 4 + [(100, 180)]).performance.stats()
        assert stats["anomaly_count"] == 1
        assert stats["avg_accuracy"] == 100

    def test_trend_up(self):
        stats = samples([(100, 120)] * 5 + [(100, 100)] * 5).performance.stats()
        assert stats["trend"] == Trend.UP
        assert stats["avg_accuracy"] == 90

    def test_trend_down(self):
        stats = samples([(100, 100)] * 5 + [(100, 120)] * 5).performance.stats()
        assert stats["trend"] == Trend.DOWN

    def test_trend_needs_enough_rows(self):
        stats = samples([(100, 120)] * 4 + [(100, 100)] * 4).performance.stats()
        assert stats["trend"] == Trend.STABLE
