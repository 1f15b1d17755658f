""" Adaptive flow rate (AFR): a smoothed days-per-foot refill rate for a well """

import logging
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

import config as conf
from calc.anomaly import AnomalyFilter, median
from const import AnomalyLevel

logger = logging.getLogger(__name__)

STEP_SAMPLE_SIZE: int = 3


class FlowRateEstimate(NamedTuple):
    afr: float
    method: str  # unknown, latest, step, rolling
    levels: List[AnomalyLevel]
    known: List[float]

    @property
    def last_level(self) -> AnomalyLevel:
        return self.levels[-1] if self.levels else AnomalyLevel.NORMAL


def detect_step(rates: Sequence[float], threshold: float = None) -> Optional[float]:
    """ Return the median of the trailing rates when all of them moved the same
        direction by more than the threshold relative to the average before them """
    threshold = conf.AFR_STEP_THRESHOLD if threshold is None else threshold
    pre, recent = rates[:-STEP_SAMPLE_SIZE], rates[-STEP_SAMPLE_SIZE:]
    if not pre or len(recent) < STEP_SAMPLE_SIZE:
        return None

    baseline = float(np.mean(pre))
    if baseline <= 0:
        return None

    deviations = [(r - baseline) / baseline for r in recent]
    if all(d > threshold for d in deviations) or all(d < -threshold for d in deviations):
        return median(recent)
    return None


def estimate_from_known(
    known: Iterable[float],
    window_size: int = None,
    step_min_rates: int = None,
    step_threshold: float = None,
) -> Tuple[float, str]:
    """ AFR from a chronological sequence of rates that already passed the anomaly
        filter """
    window_size = window_size or conf.AFR_WINDOW_SIZE
    step_min_rates = step_min_rates or conf.AFR_STEP_MIN_RATES
    known = [float(x) for x in known]
    n = len(known)

    if n == 0:
        return 0.0, "unknown"

    if n < conf.ANOMALY_MIN_KNOWN:
        return known[-1], "latest"

    if n >= step_min_rates:
        step = detect_step(known, threshold=step_threshold)
        if step is not None:
            return step, "step"

    return float(np.mean(known[-min(window_size, n) :])), "rolling"


def estimate(rates: Iterable[float], **kwargs) -> FlowRateEstimate:
    """ Replay chronological rates through a fresh anomaly filter large enough to hold
        them all and estimate the AFR from the rates that survive. """
    rates = [float(r) for r in rates if r is not None and r > 0]
    anomaly_filter = AnomalyFilter(maxlen=max(len(rates), conf.ANOMALY_RING_SIZE))

    levels = anomaly_filter.replay(rates)
    afr, method = estimate_from_known(anomaly_filter.known, **kwargs)
    logger.debug(f"({anomaly_filter}) afr={afr:.4f} method={method} rates={len(rates)}")
    return FlowRateEstimate(
        afr=afr, method=method, levels=levels, known=anomaly_filter.to_list()
    )


def adaptive_flow_rate(rates: Iterable[float], **kwargs) -> float:
    return estimate(rates, **kwargs).afr
