import logging
from datetime import timedelta

import pytest

import calc.levels as levels
from const import READY
from tests.utils import T0, at

logger = logging.getLogger(__name__)


def test_bbls_to_inches():
    assert levels.bbls_to_inches(40, 2) == 12
    assert levels.bbls_to_inches(20, 1) == 12
    assert levels.bbls_to_inches(None, 2) == 0
    assert levels.bbls_to_inches(-5, 2) == 0


def test_tank_after_inches():
    assert levels.tank_after_inches(120, 120, 2) == 84
    assert levels.tank_after_inches(120, None, 2) == 120


@pytest.mark.parametrize(
    "top,prev,expected", [(108, 84, 24), (10, None, 0), (80, 84, 0), (50, 0, 0)],
)
def test_recovery_inches(top, prev, expected):
    assert levels.recovery_inches(top, prev) == expected


def test_flow_rate_days():
    assert levels.flow_rate_days(1, 24) == 0.5
    assert levels.flow_rate_days(0, 24) == 0
    assert levels.flow_rate_days(1, 0) == 0


def test_recovery_needed():
    # 3ft bottom + 200 bbls across two tanks = 96in
    assert levels.recovery_needed(90, 3, 200, 2) == 6
    assert levels.recovery_needed(100, 3, 200, 2) == 0


class TestEstimateNextPull:
    def test_estimate(self):
        est = levels.estimate_next_pull(T0, 6, 0.5)
        assert est.est_days == 0.25
        assert est.est_time_to_pull == "6:00"
        assert est.est_date_time_pull == T0 + timedelta(hours=6)

    def test_ready_now(self):
        assert levels.estimate_next_pull(T0, 0, 0.5) == (0.0, "0:00", T0)

    def test_unknown_rate(self):
        assert levels.estimate_next_pull(T0, 6, 0) == (None, None, None)


def test_bbls_per_day():
    assert levels.bbls_per_day(0.5, 2) == 80
    assert levels.bbls_per_day(3, 1) == 7
    assert levels.bbls_per_day(0, 2) == 0
    assert levels.bbls_per_day(None, 2) == 0


def test_afr_minutes():
    assert levels.afr_minutes(0.5) == 720.0


class TestCurrentLevel:
    def test_rises_since_last_pull(self):
        assert levels.estimate_current_level(90, T0, 720, now=at(1)) == 114

    def test_unknown_rate_holds_level(self):
        assert levels.estimate_current_level(90, T0, 0, now=at(1)) == 90

    def test_missing_inputs(self):
        assert levels.estimate_current_level(None, T0, 720) is None
        assert levels.estimate_current_level(90, None, 720) is None


def test_time_till_pull():
    assert levels.time_till_pull(at(1), now=T0) == "1d 0h 0m"
    assert levels.time_till_pull(T0, now=at(1)) == READY
    assert levels.time_till_pull(None) is None
