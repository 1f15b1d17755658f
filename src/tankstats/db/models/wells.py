from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import Boolean, Column, Float, Integer, String
from sqlalchemy.ext.asyncio import AsyncSession

import util.humanize as humanize
from calc.levels import afr_minutes
from db.models.bases import Base
from db.types import JSONType, UTCDateTime
from schemas.well import WellSettings
from util.strings import clean_name

logger = logging.getLogger(__name__)


class WellConfig(Base):
    """ Admin managed well settings. Only the cached flow rate columns are written
        by the pipeline. """

    __tablename__ = "well_config"

    well_name = Column(String(255), primary_key=True)
    tanks = Column(Integer)
    num_tanks = Column(Integer)  # legacy
    bottom_level = Column(Float)  # feet
    allowed_bottom = Column(Float)  # legacy
    pull_bbls = Column(Float)
    route = Column(String(255))
    avg_flow_rate = Column(String(25))
    avg_flow_rate_minutes = Column(Float)

    @property
    def settings(self) -> WellSettings:
        return WellSettings.from_config(self)

    @classmethod
    async def resolve(
        cls, session: AsyncSession, well_name: str
    ) -> Tuple[Optional[WellConfig], WellSettings]:
        """ Find a well's config by exact name, then by its legacy no-space key.
            Missing values fall back to the configured defaults. """
        obj = await session.get(cls, well_name)
        legacy = clean_name(well_name)
        if obj is None and legacy != well_name:
            obj = await session.get(cls, legacy)
            if obj is not None:
                logger.debug(f"({cls.__name__}) resolved {well_name} by legacy key {legacy}")

        if obj is None:
            logger.info(f"({cls.__name__}) no config for {well_name}: using defaults")
            return None, WellSettings.from_config(None, well_name=well_name)
        return obj, obj.settings

    @classmethod
    async def cache_flow_rate(
        cls,
        session: AsyncSession,
        well_name: str,
        afr: float,
        obj: Optional[WellConfig] = None,
    ) -> Optional[WellConfig]:
        """ Persist the AFR display string and minutes-per-foot for the dashboard """
        if not afr or afr <= 0:
            return obj

        if obj is None:
            obj = await session.get(cls, well_name)
        if obj is None:
            obj = cls(well_name=well_name)
            session.add(obj)

        obj.avg_flow_rate = humanize.days_to_hmmss(afr)
        obj.avg_flow_rate_minutes = afr_minutes(afr)
        return obj


class WellStatus(Base):
    """ The single current status document for a well.

        The primary key enforces one row per well and the version column turns
        concurrent rewrites into a StaleDataError instead of a silent overwrite.
    """

    __tablename__ = "well_status"

    well_name = Column(String(255), primary_key=True)
    response_id = Column(String(255))
    status = Column(String(25), default="success")

    current_level = Column(String(25))
    current_level_inches = Column(Float)
    flow_rate = Column(String(25))
    flow_rate_minutes = Column(Float)
    bbls_24hrs = Column(Integer)
    window_bbls_day = Column(Integer)
    overnight_bbls_day = Column(Integer)
    time_till_pull = Column(String(50))
    next_pull_time = Column(String(50))
    next_pull_time_utc = Column(UTCDateTime)

    last_pull_date_time = Column(String(50))
    last_pull_date_time_utc = Column(UTCDateTime)
    last_pull_bbls = Column(Float)
    last_pull_top_level = Column(String(25))
    last_pull_top_level_inches = Column(Float)
    last_pull_bottom_level = Column(String(25))
    last_pull_bottom_level_inches = Column(Float)
    last_pull_driver_name = Column(String(255))
    last_pull_packet_id = Column(String(255))

    is_down = Column(Boolean, nullable=False, default=False)
    is_edit = Column(Boolean, nullable=False, default=False)
    original_packet_id = Column(String(255))
    known_rates = Column(JSONType)
    timestamp = Column(UTCDateTime)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def afr(self) -> float:
        return (self.flow_rate_minutes or 0) / 1440

    @classmethod
    async def replace(
        cls, session: AsyncSession, well_name: str, values: Dict[str, Any]
    ) -> WellStatus:
        """ Update the well's status in place, or create it. Every field not in values
            is reset so no stale data survives a rewrite. """
        values = {
            **{c: None for c in cls.c.names if c not in NON_RESETTABLE},
            **values,
        }
        obj = await session.get(cls, well_name)
        if obj is None:
            obj = cls(well_name=well_name)
            session.add(obj)

        for k, v in values.items():
            setattr(obj, k, v)
        obj.is_down = bool(obj.is_down)
        obj.is_edit = bool(obj.is_edit)
        await session.flush()
        logger.debug(f"({cls.__name__}) wrote status for {well_name} (v{obj.version})")
        return obj

    @classmethod
    async def clear(cls, session: AsyncSession, well_name: str) -> bool:
        obj = await session.get(cls, well_name)
        if obj is None:
            return False
        await session.delete(obj)
        await session.flush()
        logger.info(f"({cls.__name__}) cleared status for {well_name}")
        return True


NON_RESETTABLE = {"well_name", "version", "created_at", "updated_at"}
