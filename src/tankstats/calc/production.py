""" Daily production estimates from a well's pull history.

    Two estimators work off the same history and are expected to disagree:

    - window: the average flow rate of all pull pairs closing in a production day
    - overnight: the single unattended gap between the last pull of the previous
      production day and the first pull of the current one
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

import config as conf
from calc.levels import bbls_per_day, bbls_per_foot
from const import SECONDS_PER_DAY
from schemas.packet import HistoricalPull
from util.dt import ensure_utc, production_date
from util.types import PandasObject

logger = logging.getLogger(__name__)

PULL_COLUMNS: List[str] = HistoricalPull.__dataframe_columns__
RATE_COLUMNS: List[str] = ["timestamp", "prod_date", "recovery_feet", "flow_rate_days"]


def _as_record(obj: Any) -> Dict:
    if isinstance(obj, dict):
        return obj
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return {k: getattr(obj, k) for k in PULL_COLUMNS}


@pd.api.extensions.register_dataframe_accessor("pulls")
class PullHistory:
    max_rate_days: float = conf.MAX_FLOW_RATE_DAYS

    def __init__(self, obj: PandasObject):
        self._obj: PandasObject = obj

    @classmethod
    def from_records(cls, records: Iterable[Any]) -> pd.DataFrame:
        """ Build a chronologically sorted pull frame from HistoricalPull-like
            records """
        df = pd.DataFrame([_as_record(x) for x in records], columns=PULL_COLUMNS)
        df["timestamp"] = pd.to_datetime(df.timestamp, utc=True)
        df["tank_level_feet"] = df.tank_level_feet.astype(float).fillna(0)
        df["bbls_taken"] = df.bbls_taken.astype(float).fillna(0)
        df["well_down"] = df.well_down.fillna(False).astype(bool)
        df = df.dropna(subset=["timestamp"])
        return df.sort_values("timestamp").reset_index(drop=True)

    def _sorted(self) -> pd.DataFrame:
        return self._obj.sort_values("timestamp").reset_index(drop=True)

    def flow_rates(self, tanks: int) -> pd.DataFrame:
        """ Flow rate for each consecutive pull pair, measured from the bottom the
            earlier pull left behind. Pairs involving a down well, no elapsed time, no
            recovery, or an implausible rate are dropped. """
        df = self._sorted()
        if df.shape[0] < 2:
            return pd.DataFrame(columns=RATE_COLUMNS)

        per_foot = bbls_per_foot(tanks)
        prev = df.shift(1)
        prev_down = df.well_down.shift(1, fill_value=False).astype(bool)

        time_dif = (df.timestamp - prev.timestamp).dt.total_seconds() / SECONDS_PER_DAY
        prev_bottom = (prev.tank_level_feet - prev.bbls_taken / per_foot).clip(lower=0)
        recovery = df.tank_level_feet - prev_bottom
        rate = time_dif / recovery

        valid = (
            ~df.well_down
            & ~prev_down
            & (time_dif > 0)
            & (recovery > 0)
            & (rate > 0)
            & (rate < self.max_rate_days)
        )

        rates = pd.DataFrame(
            {
                "timestamp": df.timestamp,
                "recovery_feet": recovery,
                "flow_rate_days": rate,
            }
        )[valid].copy()
        rates["prod_date"] = [production_date(t) for t in rates.timestamp]
        return rates[RATE_COLUMNS].reset_index(drop=True)

    def window_rates(self, tanks: int) -> pd.Series:
        """ Average flow rate per production window, indexed by production date """
        rates = self.flow_rates(tanks)
        if rates.empty:
            return pd.Series(dtype=float, name="flow_rate_days")
        return rates.groupby("prod_date").flow_rate_days.mean()

    def window_bbls_per_day(self, tanks: int, at: datetime) -> int:
        """ bbls/day from the average rate of the window containing `at`, falling
            back to the previous window. 0 when neither has a usable pair. """
        by_window = self.window_rates(tanks)
        current = production_date(at)

        avg: Optional[float] = None
        for key in (current, current - timedelta(days=1)):
            if key in by_window.index:
                avg = float(by_window.loc[key])
                break

        if avg is None or avg <= 0:
            return 0
        return bbls_per_day(avg, tanks)

    def overnight_bbls_per_day(self, tanks: int, at: datetime) -> int:
        """ bbls/day across the gap from the last pull of the previous production day
            to the earliest pull of the production day containing `at` """
        at = ensure_utc(at)
        df = self._sorted()
        df = df[df.timestamp <= pd.Timestamp(at)]
        if df.shape[0] < 2:
            return 0

        today = production_date(at)
        first_today = None
        last_prev = None

        # walk backward; the last match within today is the earliest pull of the day
        for row in df.iloc[::-1].itertuples(index=False):
            if production_date(row.timestamp) == today:
                first_today = row
            else:
                last_prev = row
                break

        if first_today is None or last_prev is None:
            return 0
        if first_today.well_down or last_prev.well_down:
            return 0

        time_dif = (first_today.timestamp - last_prev.timestamp).total_seconds()
        time_dif = time_dif / SECONDS_PER_DAY
        if time_dif <= 0:
            return 0

        prev_bottom = max(
            last_prev.tank_level_feet - last_prev.bbls_taken / bbls_per_foot(tanks), 0
        )
        recovery = first_today.tank_level_feet - prev_bottom
        if recovery <= 0:
            return 0

        return bbls_per_day(time_dif / recovery, tanks)
