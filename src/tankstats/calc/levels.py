""" Tank level arithmetic.

    Levels are tracked in inches from the tank floor. A foot of level in one tank holds
    20 bbls, so hauled volume converts to a level drop spread across all of a well's
    tanks. Flow rates are days per foot of rise.
"""

from datetime import datetime, timedelta
from typing import NamedTuple, Optional

import util.humanize as humanize
from const import (
    BBLS_PER_FOOT_PER_TANK,
    INCHES_PER_FOOT,
    MINUTES_PER_DAY,
    READY,
)
from util.dt import days_between, ensure_utc, utcnow


class PullEstimate(NamedTuple):
    est_days: Optional[float]
    est_time_to_pull: Optional[str]
    est_date_time_pull: Optional[datetime]


def bbls_per_foot(tanks: int) -> float:
    return tanks * BBLS_PER_FOOT_PER_TANK


def bbls_to_inches(bbls: Optional[float], tanks: int) -> float:
    if not bbls or bbls <= 0:
        return 0.0
    return bbls / BBLS_PER_FOOT_PER_TANK / tanks * INCHES_PER_FOOT


def tank_after_inches(top_inches: float, bbls_taken: Optional[float], tanks: int) -> float:
    return top_inches - bbls_to_inches(bbls_taken, tanks)


def recovery_inches(top_inches: float, prev_after_inches: Optional[float]) -> float:
    """ Rise since the previous pull left the tank; 0 without a usable previous level """
    if not prev_after_inches or prev_after_inches <= 0:
        return 0.0
    return max(0.0, top_inches - prev_after_inches)


def flow_rate_days(time_dif_days: float, recovery: float) -> float:
    """ Days per foot of rise observed between two pulls """
    if time_dif_days > 0 and recovery > 0:
        return time_dif_days / recovery * INCHES_PER_FOOT
    return 0.0


def recovery_needed(
    tank_after: float, bottom_level_feet: float, pull_bbls: float, tanks: int
) -> float:
    """ Inches the tank must still rise before a full pull is available """
    target = bottom_level_feet * INCHES_PER_FOOT + bbls_to_inches(pull_bbls, tanks)
    return max(0.0, target - tank_after)


def estimate_next_pull(
    pull_time: datetime, needed_inches: float, afr: float
) -> PullEstimate:
    """ When the tank reaches its pull target, at the well's current AFR """
    if needed_inches <= 0:
        return PullEstimate(0.0, "0:00", pull_time)
    if afr > 0:
        est_days = needed_inches / INCHES_PER_FOOT * afr
        return PullEstimate(
            est_days,
            humanize.days_to_hmm(est_days),
            pull_time + timedelta(days=est_days),
        )
    return PullEstimate(None, None, None)


def bbls_per_day(rate_days: Optional[float], tanks: int) -> int:
    if not rate_days or rate_days <= 0:
        return 0
    return int(humanize.round_half_up(1 / rate_days * bbls_per_foot(tanks)))


def afr_minutes(afr: float) -> float:
    return round(afr * MINUTES_PER_DAY, 2)


def level_growth_inches(elapsed_days: float, afr: Optional[float]) -> float:
    if not afr or afr <= 0 or elapsed_days <= 0:
        return 0.0
    return elapsed_days / afr * INCHES_PER_FOOT


def estimate_current_level(
    bottom_inches: Optional[float],
    last_pull_utc: Optional[datetime],
    flow_rate_minutes: Optional[float],
    now: datetime = None,
) -> Optional[float]:
    """ Live level: where the last pull left the tank plus the rise since then """
    if bottom_inches is None or last_pull_utc is None:
        return None
    afr = (flow_rate_minutes or 0) / MINUTES_PER_DAY
    elapsed = days_between(now or utcnow(), last_pull_utc)
    return bottom_inches + level_growth_inches(elapsed, afr)


def time_till_pull(
    next_pull_utc: Optional[datetime], now: datetime = None
) -> Optional[str]:
    if next_pull_utc is None:
        return None
    remaining = days_between(ensure_utc(next_pull_utc), now or utcnow())
    if remaining <= 0:
        return READY
    return humanize.duration_dhm(remaining)
