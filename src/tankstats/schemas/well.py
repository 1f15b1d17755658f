from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

import config as conf
from const import INCHES_PER_FOOT
from schemas.bases import CustomBaseModel, ORMBase

__all__ = [
    "WellSettings",
    "WellConfigOut",
    "WellStatusOut",
]

logger = logging.getLogger(__name__)


def first_set(*values: Any) -> Any:
    """ First value that is present and non-zero """
    for v in values:
        if v:
            return v
    return None


class WellSettings(CustomBaseModel):
    """ Effective settings for a well after applying legacy fallbacks and defaults """

    well_name: str = Field(..., alias="wellName")
    tanks: int = Field(..., alias="tanks")
    bottom_level: float = Field(..., alias="bottomLevel")  # feet
    pull_bbls: float = Field(..., alias="pullBbls")
    route: Optional[str] = Field(None, alias="route")

    @classmethod
    def from_config(cls, obj: Any = None, well_name: str = None) -> WellSettings:
        return cls(
            well_name=well_name or getattr(obj, "well_name", None) or "",
            tanks=int(
                first_set(
                    getattr(obj, "tanks", None),
                    getattr(obj, "num_tanks", None),
                    conf.DEFAULT_TANKS,
                )
            ),
            bottom_level=float(
                first_set(
                    getattr(obj, "bottom_level", None),
                    getattr(obj, "allowed_bottom", None),
                    conf.DEFAULT_BOTTOM_LEVEL,
                )
            ),
            pull_bbls=float(
                first_set(getattr(obj, "pull_bbls", None), conf.DEFAULT_PULL_BBLS)
            ),
            route=getattr(obj, "route", None),
        )

    @property
    def bottom_inches(self) -> float:
        return self.bottom_level * INCHES_PER_FOOT


class WellConfigOut(ORMBase):
    well_name: str = Field(..., alias="wellName")
    tanks: Optional[int] = None
    bottom_level: Optional[float] = Field(None, alias="bottomLevel")
    pull_bbls: Optional[float] = Field(None, alias="pullBbls")
    route: Optional[str] = None
    avg_flow_rate: Optional[str] = Field(None, alias="avgFlowRate")
    avg_flow_rate_minutes: Optional[float] = Field(None, alias="avgFlowRateMinutes")


class WellStatusOut(ORMBase):
    well_name: str = Field(..., alias="wellName")
    response_id: Optional[str] = Field(None, alias="responseId")
    status: Optional[str] = None
    current_level: Optional[str] = Field(None, alias="currentLevel")
    current_level_inches: Optional[float] = Field(None, alias="currentLevelInches")
    estimated_level_inches: Optional[float] = Field(
        None, alias="estimatedLevelInches"
    )
    flow_rate: Optional[str] = Field(None, alias="flowRate")
    flow_rate_minutes: Optional[float] = Field(None, alias="flowRateMinutes")
    bbls_24hrs: Optional[int] = Field(None, alias="bbls24hrs")
    window_bbls_day: Optional[int] = Field(None, alias="windowBblsDay")
    overnight_bbls_day: Optional[int] = Field(None, alias="overnightBblsDay")
    time_till_pull: Optional[str] = Field(None, alias="timeTillPull")
    next_pull_time: Optional[str] = Field(None, alias="nextPullTime")
    next_pull_time_utc: Optional[datetime] = Field(None, alias="nextPullTimeUTC")
    last_pull_date_time: Optional[str] = Field(None, alias="lastPullDateTime")
    last_pull_date_time_utc: Optional[datetime] = Field(
        None, alias="lastPullDateTimeUTC"
    )
    last_pull_bbls: Optional[float] = Field(None, alias="lastPullBbls")
    last_pull_top_level: Optional[str] = Field(None, alias="lastPullTopLevel")
    last_pull_bottom_level: Optional[str] = Field(None, alias="lastPullBottomLevel")
    last_pull_bottom_level_inches: Optional[float] = Field(
        None, alias="lastPullBottomLevelInches"
    )
    last_pull_driver_name: Optional[str] = Field(None, alias="lastPullDriverName")
    last_pull_packet_id: Optional[str] = Field(None, alias="lastPullPacketId")
    is_down: bool = Field(False, alias="wellDown")
    is_edit: bool = Field(False, alias="isEdit")
    original_packet_id: Optional[str] = Field(None, alias="originalPacketId")
    known_rates: Optional[List[float]] = Field(None, alias="knownRates")
    timestamp: Optional[datetime] = None
    version: Optional[int] = None
