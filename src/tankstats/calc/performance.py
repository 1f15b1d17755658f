""" Prediction accuracy of a well's level model, from its performance samples """

import logging
from typing import Any, Dict, Iterable, List

import numpy as np
import pandas as pd

from const import Trend
from util.types import PandasObject

logger = logging.getLogger(__name__)

SAMPLE_COLUMNS: List[str] = ["sample_date", "actual_inches", "predicted_inches"]

ANOMALY_MIN_ROWS: int = 5
ANOMALY_THRESHOLD: float = 30  # percentage points beyond the median deviation
TREND_MIN_ROWS: int = 10
TREND_BAND: float = 2
GREEN_BAND: float = 5
YELLOW_BAND: float = 10


def real_accuracy(accuracy: float) -> float:
    """ Accuracy folded around 100%: 90% and 110% are both 90% accurate """
    return 100 - abs(100 - accuracy)


@pd.api.extensions.register_dataframe_accessor("performance")
class Performance:
    def __init__(self, obj: PandasObject):
        self._obj: PandasObject = obj

    @classmethod
    def from_records(cls, records: Iterable[Any]) -> pd.DataFrame:
        rows: List[Dict] = []
        for x in records:
            if not isinstance(x, dict):
                x = {k: getattr(x, k) for k in SAMPLE_COLUMNS}
            rows.append(x)
        df = pd.DataFrame(rows, columns=SAMPLE_COLUMNS)
        df["sample_date"] = pd.to_datetime(df.sample_date)
        return df.sort_values("sample_date").reset_index(drop=True)

    def accuracy(self) -> pd.DataFrame:
        """ Add accuracy (predicted as a percentage of actual), its deviation from 100
            and an anomaly flag for rows far outside the typical deviation """
        df = self._obj.copy()
        actual = df.actual_inches.astype(float)
        predicted = df.predicted_inches.astype(float)
        df["accuracy"] = np.where(
            actual == 0, 0.0, predicted / actual.replace(0, np.nan) * 100
        )
        df["deviation"] = (100 - df.accuracy).abs()
        df["real_accuracy"] = 100 - df.deviation
        df["is_anomaly"] = False

        if df.shape[0] >= ANOMALY_MIN_ROWS:
            ordered = df.deviation.sort_values().to_numpy()
            median_deviation = ordered[len(ordered) // 2]
            df["is_anomaly"] = df.deviation > median_deviation + ANOMALY_THRESHOLD

        return df

    def stats(self) -> Dict[str, Any]:
        df = self.accuracy()
        if df.empty:
            return {
                "pull_count": 0,
                "avg_accuracy": 0.0,
                "best_accuracy": 0.0,
                "worst_accuracy": 0.0,
                "trend": Trend.STABLE,
                "anomaly_count": 0,
                "green_count": 0,
                "yellow_count": 0,
                "red_count": 0,
            }

        normal = df[~df.is_anomaly]
        for_avg = normal if not normal.empty else df
        avg_accuracy = round(float(for_avg.real_accuracy.mean()), 1)

        best = df.loc[df.real_accuracy.idxmax()]
        worst = df.loc[df.real_accuracy.idxmin()]

        trend = Trend.STABLE
        ordered = normal.sort_values("sample_date")
        if ordered.shape[0] >= TREND_MIN_ROWS:
            mid = ordered.shape[0] // 2
            first_avg = ordered.real_accuracy.iloc[:mid].mean()
            second_avg = ordered.real_accuracy.iloc[mid:].mean()
            if second_avg > first_avg + TREND_BAND:
                trend = Trend.UP
            elif second_avg < first_avg - TREND_BAND:
                trend = Trend.DOWN

        return {
            "pull_count": int(df.shape[0]),
            "avg_accuracy": avg_accuracy,
            "best_accuracy": float(best.accuracy),
            "worst_accuracy": float(worst.accuracy),
            "trend": trend,
            "anomaly_count": int(df.is_anomaly.sum()),
            "green_count": int((df.deviation <= GREEN_BAND).sum()),
            "yellow_count": int(
                ((df.deviation > GREEN_BAND) & (df.deviation <= YELLOW_BAND)).sum()
            ),
            "red_count": int((df.deviation > YELLOW_BAND).sum()),
        }
