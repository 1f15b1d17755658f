from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, String, Text
from sqlalchemy.ext.asyncio import AsyncSession

import util
from const import HealthCheck, HealthStatus
from db.models.bases import Base
from db.types import JSONType, UTCDateTime

logger = logging.getLogger(__name__)


class SystemHealth(Base):
    """ Latest summary written by each background check """

    __tablename__ = "system_health"

    name = Column(String(50), primary_key=True)
    status = Column(String(25), nullable=False, default=HealthStatus.OK.value)
    message = Column(Text)
    details = Column(JSONType, nullable=False, default=dict)
    checked_at = Column(UTCDateTime, nullable=False, default=util.utcnow)

    @classmethod
    async def write(
        cls,
        session: AsyncSession,
        name: HealthCheck,
        status: HealthStatus,
        details: Dict[str, Any],
        message: Optional[str] = None,
        checked_at: datetime = None,
    ) -> int:
        return await cls.bulk_upsert(
            session,
            [
                {
                    "name": HealthCheck(name).value,
                    "status": HealthStatus(status).value,
                    "message": message,
                    "details": details,
                    "checked_at": checked_at or util.utcnow(),
                    "updated_at": util.utcnow(),
                }
            ],
        )
