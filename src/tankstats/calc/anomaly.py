""" Median-based outlier classification for per-pull flow rates.

    Rates are days required for the tank to rise one foot, so a smaller rate means a
    faster refill. Each rate is judged only against the known-good rates that came
    before it, which keeps a classification stable once it has been made.
"""

import logging
from collections import deque
from typing import Deque, Iterable, List, Optional

import numpy as np

import config as conf
from const import AnomalyLevel

logger = logging.getLogger(__name__)


def median(values: Iterable[float]) -> float:
    values = list(values)
    if not values:
        return 0.0
    return float(np.median(values))


def deviation_ratio(rate: float, reference: float) -> float:
    """ max/min of the two values; always >= 1 for positive inputs """
    return max(rate, reference) / min(rate, reference)


def anomaly_level(
    rate: float,
    reference: float,
    anomaly_ratio: float = None,
    flag_ratio: float = None,
) -> AnomalyLevel:
    anomaly_ratio = anomaly_ratio or conf.ANOMALY_RATIO
    flag_ratio = flag_ratio or conf.FLAG_RATIO

    if rate <= 0 or reference <= 0:
        return AnomalyLevel.NORMAL

    ratio = deviation_ratio(rate, reference)
    if ratio >= anomaly_ratio:
        return AnomalyLevel.ANOMALY
    elif ratio >= flag_ratio:
        return AnomalyLevel.FLAGGED
    return AnomalyLevel.NORMAL


class AnomalyFilter:
    """ Incremental classifier holding a bounded ring of known-good rates.

        The ring is bounded, so a filter replayed over a long history judges each
        rate against the most recent known-good rates only.

        >>> f = AnomalyFilter()
        >>> [f.push(r) for r in [2, 2.1, 1.9, 2, 2.2, 9]][-1]
        <AnomalyLevel.ANOMALY: 2>
        >>> list(f.known)
        [2, 2.1, 1.9, 2, 2.2]
    """

    def __init__(
        self,
        maxlen: Optional[int] = None,
        min_known: int = None,
        anomaly_ratio: float = None,
        flag_ratio: float = None,
    ):
        self.maxlen = maxlen or conf.ANOMALY_RING_SIZE
        self.min_known = min_known or conf.ANOMALY_MIN_KNOWN
        self.anomaly_ratio = anomaly_ratio or conf.ANOMALY_RATIO
        self.flag_ratio = flag_ratio or conf.FLAG_RATIO
        self.known: Deque[float] = deque(maxlen=self.maxlen)
        self.levels: List[AnomalyLevel] = []

    def __repr__(self):
        return f"{self.__class__.__name__}[{len(self.known)}/{self.maxlen}]"

    def __len__(self):
        return len(self.known)

    @property
    def reference(self) -> float:
        return median(self.known)

    def classify(self, rate: float) -> AnomalyLevel:
        """ Classify a rate against the current ring without changing it """
        if len(self.known) < self.min_known:
            return AnomalyLevel.NORMAL
        return anomaly_level(
            rate,
            self.reference,
            anomaly_ratio=self.anomaly_ratio,
            flag_ratio=self.flag_ratio,
        )

    def push(self, rate: float) -> AnomalyLevel:
        """ Classify a rate and admit it to the ring unless it is an anomaly """
        level = self.classify(rate)
        if level != AnomalyLevel.ANOMALY:
            self.known.append(float(rate))
        else:
            logger.debug(
                f"({self}) excluded anomalous rate {rate} (median={self.reference})"
            )
        self.levels.append(level)
        return level

    def replay(self, rates: Iterable[float]) -> List[AnomalyLevel]:
        return [self.push(r) for r in rates]

    def to_list(self) -> List[float]:
        return list(self.known)

