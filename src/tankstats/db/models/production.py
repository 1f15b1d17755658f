from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import Column, Date, Float, Integer, String, select
from sqlalchemy.ext.asyncio import AsyncSession

import util
from db.models.bases import Base
from db.types import UTCDateTime
from util.dt import formats, to_local
from util.strings import well_key

logger = logging.getLogger(__name__)


class ProductionLog(Base):
    """ Daily volume estimates, one row per well per production day """

    __tablename__ = "production_log"

    well_key = Column(String(255), primary_key=True)
    prod_date = Column(Date, primary_key=True)
    well_name = Column(String(255), index=True)
    afr_bbls_day = Column(Integer, nullable=False, default=0)  # a
    window_bbls_day = Column(Integer, nullable=False, default=0)  # w
    overnight_bbls_day = Column(Integer, nullable=False, default=0)  # o
    pull_count = Column(Integer, nullable=False, default=1)  # n

    @classmethod
    async def record(
        cls,
        session: AsyncSession,
        well_name: str,
        prod_date: date,
        afr_bbls_day: int,
        window_bbls_day: int,
        overnight_bbls_day: int,
    ) -> int:
        """ Overwrite the day's estimates and count the pull """
        return await cls.bulk_upsert(
            session,
            [
                {
                    "well_key": well_key(well_name),
                    "prod_date": prod_date,
                    "well_name": well_name,
                    "afr_bbls_day": afr_bbls_day,
                    "window_bbls_day": window_bbls_day,
                    "overnight_bbls_day": overnight_bbls_day,
                    "pull_count": 1,
                    "updated_at": util.utcnow(),
                }
            ],
            increment_cols=["pull_count"],
        )

    @classmethod
    async def for_well(
        cls, session: AsyncSession, well_name: str, limit: int = 30
    ) -> List[ProductionLog]:
        stmt = (
            select(cls)
            .where(cls.well_key == well_key(well_name))
            .order_by(cls.prod_date.desc())
            .limit(limit)
        )
        return list((await session.scalars(stmt)).all())


class PerformanceSample(Base):
    """ Actual level observed at a pull against the level the model predicted """

    __tablename__ = "performance_samples"

    well_key = Column(String(255), primary_key=True)
    sample_key = Column(String(25), primary_key=True)  # local YYYYMMDD_HHMMSS
    well_name = Column(String(255), index=True)
    sample_date = Column(Date, nullable=False)  # d
    actual_inches = Column(Float, nullable=False)  # a
    predicted_inches = Column(Float, nullable=False)  # p
    pulled_at = Column(UTCDateTime)

    @classmethod
    async def record(
        cls,
        session: AsyncSession,
        well_name: str,
        pulled_at: datetime,
        actual_inches: float,
        predicted_inches: Optional[float] = None,
    ) -> int:
        local = to_local(pulled_at)
        return await cls.bulk_upsert(
            session,
            [
                {
                    "well_key": well_key(well_name),
                    "sample_key": local.strftime(formats.sample_key),
                    "well_name": well_name,
                    "sample_date": local.date(),
                    "actual_inches": actual_inches,
                    "predicted_inches": actual_inches
                    if predicted_inches is None
                    else predicted_inches,
                    "pulled_at": pulled_at,
                    "updated_at": util.utcnow(),
                }
            ],
        )
