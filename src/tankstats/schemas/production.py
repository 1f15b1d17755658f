from datetime import date
from typing import Optional

from pydantic import Field

from const import Trend
from schemas.bases import CustomBaseModel, ORMBase

__all__ = [
    "ProductionLogOut",
    "PerformanceStats",
]


class ProductionLogOut(ORMBase):
    well_name: Optional[str] = Field(None, alias="wellName")
    prod_date: date = Field(..., alias="prodDate")
    afr_bbls_day: int = Field(0, alias="a")
    window_bbls_day: int = Field(0, alias="w")
    overnight_bbls_day: int = Field(0, alias="o")
    pull_count: int = Field(0, alias="n")


class PerformanceStats(CustomBaseModel):
    well_name: str = Field(..., alias="wellName")
    pull_count: int = Field(0, alias="pullCount")
    avg_accuracy: Optional[float] = Field(None, alias="avgAccuracy")
    best_accuracy: Optional[float] = Field(None, alias="bestAccuracy")
    worst_accuracy: Optional[float] = Field(None, alias="worstAccuracy")
    trend: Optional[Trend] = None
    anomaly_count: int = Field(0, alias="anomalyCount")
    green_count: int = Field(0, alias="greenCount")
    yellow_count: int = Field(0, alias="yellowCount")
    red_count: int = Field(0, alias="redCount")
