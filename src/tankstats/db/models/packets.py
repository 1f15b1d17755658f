from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Boolean, Column, Float, Integer, String, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

import util
from const import EXCLUDED_KEY_PREFIXES, AnomalyLevel, RequestType
from db.models.bases import Base
from db.types import JSONType, UTCDateTime

logger = logging.getLogger(__name__)


class IncomingPacket(Base):
    """ Inbox entry awaiting a handler. The row is the unit of work: handlers delete
        it when they finish and the watchdog rewrites rows nobody consumed. """

    __tablename__ = "packets_incoming"

    packet_id = Column(String(255), primary_key=True)
    well_name = Column(String(255), index=True)
    request_type = Column(
        String(25), nullable=False, default=RequestType.PULL.value, index=True
    )
    payload = Column(JSONType, nullable=False, default=dict)
    received_at = Column(UTCDateTime)
    attempts = Column(Integer, nullable=False, default=0)
    dead_lettered_at = Column(UTCDateTime)

    @staticmethod
    def request_type_of(payload: Dict[str, Any]) -> str:
        """ Missing or empty requestType means pull """
        return payload.get("requestType") or RequestType.PULL.value

    @classmethod
    def build(
        cls,
        payload: Dict[str, Any],
        packet_id: str = None,
        received_at: datetime = None,
        attempts: int = 0,
    ) -> IncomingPacket:
        well_name = payload.get("wellName")
        return cls(
            packet_id=packet_id or util.strings.packet_key(well_name or "unknown"),
            well_name=well_name,
            request_type=cls.request_type_of(payload),
            payload=dict(payload),
            received_at=received_at or util.utcnow(),
            attempts=attempts,
        )

    @property
    def event_key(self) -> Tuple[Optional[str], ...]:
        """ Identity of the logical event; resubmissions share it. Requests with
            neither a timestamp nor a target are only equal to themselves. """
        payload = self.payload or {}
        when = payload.get("dateTimeUTC") or payload.get("dateTime")
        target = payload.get("originalPacketId") or payload.get("targetPacketId")
        if not when and not target:
            return (self.packet_id,)
        return (
            self.request_type_of(payload),
            when,
            payload.get("wellName") or self.well_name,
            target,
        )

    @classmethod
    async def pending(cls, session: AsyncSession) -> List[IncomingPacket]:
        stmt = (
            select(cls)
            .where(cls.dead_lettered_at.is_(None))
            .order_by(cls.packet_id)
        )
        return list((await session.scalars(stmt)).all())


class ProcessedPacket(Base):
    """ Permanent pull history, one row per pull """

    __tablename__ = "packets_processed"

    packet_id = Column(String(255), primary_key=True)
    well_name = Column(String(255), nullable=False, index=True)
    request_type = Column(String(25), default=RequestType.PULL.value)
    date_time = Column(String(50))
    date_time_utc = Column(UTCDateTime, nullable=False, index=True)
    tank_level_feet = Column(Float, nullable=False, default=0)
    bbls_taken = Column(Float, nullable=False, default=0)
    driver_name = Column(String(255))
    driver_id = Column(String(255))
    well_down = Column(Boolean, nullable=False, default=False)
    predicted_level_inches = Column(Float)

    tank_top_inches = Column(Float, nullable=False, default=0)
    tank_after_inches = Column(Float, nullable=False, default=0)
    time_dif_days = Column(Float, nullable=False, default=0)
    recovery_inches = Column(Float, nullable=False, default=0)
    flow_rate_days = Column(Float, nullable=False, default=0)
    recovery_needed = Column(Float)
    est_time_to_pull = Column(String(25))
    est_date_time_pull = Column(UTCDateTime)
    anomaly_level = Column(Integer, nullable=False, default=AnomalyLevel.NORMAL.value)
    processed_at = Column(UTCDateTime, default=util.utcnow, index=True)

    edited_at = Column(UTCDateTime)
    edited_by = Column(String(255))
    was_edited = Column(Boolean, nullable=False, default=False)

    @classmethod
    def live_history(cls):
        """ Rows that represent real pulls: excludes imported history, audit copies
            and legacy edited markers """
        clauses = [
            ~cls.packet_id.startswith(p, autoescape=True) for p in EXCLUDED_KEY_PREFIXES
        ]
        return and_(
            *clauses,
            or_(cls.was_edited.is_(None), cls.was_edited.is_(False)),
            or_(
                cls.request_type.is_(None),
                cls.request_type != RequestType.WELL_HISTORY.value,
            ),
        )

    @classmethod
    async def history(
        cls, session: AsyncSession, well_name: str, limit: int = None, *where
    ) -> List[ProcessedPacket]:
        """ The most recent `limit` live pulls for a well, oldest first """
        stmt = (
            select(cls)
            .where(cls.well_name == well_name, cls.live_history(), *where)
            .order_by(cls.date_time_utc.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        rows = list((await session.scalars(stmt)).all())
        rows.reverse()
        return rows

    @classmethod
    async def flow_rates(
        cls,
        session: AsyncSession,
        well_name: str,
        limit: int = None,
        before: datetime = None,
        exclude: str = None,
    ) -> List[float]:
        """ Positive flow rates from the well's most recent `limit` pulls, oldest
            first. Pulls without a rate count toward the limit. """
        where = []
        if before is not None:
            where.append(cls.date_time_utc < before)
        if exclude:
            where.append(cls.packet_id != exclude)
        rows = await cls.history(session, well_name, limit, *where)
        return [x.flow_rate_days for x in rows if (x.flow_rate_days or 0) > 0]

    @classmethod
    async def find_duplicate(
        cls, session: AsyncSession, packet_id: str, well_name: str, at: datetime
    ) -> Optional[ProcessedPacket]:
        stmt = (
            select(cls)
            .where(
                or_(
                    cls.packet_id == packet_id,
                    and_(cls.well_name == well_name, cls.date_time_utc == at),
                )
            )
            .limit(1)
        )
        return await session.scalar(stmt)

    @classmethod
    async def previous(
        cls, session: AsyncSession, well_name: str, before: datetime, exclude: str = None
    ) -> Optional[ProcessedPacket]:
        """ The pull immediately before the given time, excluding a packet id """
        stmt = select(cls).where(cls.well_name == well_name, cls.date_time_utc < before)
        if exclude:
            stmt = stmt.where(cls.packet_id != exclude)
        stmt = stmt.order_by(cls.date_time_utc.desc()).limit(1)
        return await session.scalar(stmt)

    @classmethod
    async def latest(cls, session: AsyncSession, well_name: str) -> Optional[ProcessedPacket]:
        stmt = (
            select(cls)
            .where(cls.well_name == well_name)
            .order_by(cls.date_time_utc.desc())
            .limit(1)
        )
        return await session.scalar(stmt)

    @classmethod
    async def last_processed(cls, session: AsyncSession) -> Optional[ProcessedPacket]:
        stmt = select(cls).order_by(cls.processed_at.desc()).limit(1)
        return await session.scalar(stmt)

    def to_historical_pull(self) -> Dict[str, Any]:
        return {
            "timestamp": self.date_time_utc,
            "tank_level_feet": self.tank_level_feet or 0,
            "bbls_taken": self.bbls_taken or 0,
            "well_down": bool(self.well_down),
        }
