import logging
from typing import List

from fastapi import APIRouter
from sqlalchemy import select

from db import db
from db.models import SystemHealth
from schemas.health import SystemHealthOut

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def health():
    return {"status": "ok"}


@router.get("/system", response_model=List[SystemHealthOut])
async def system_health():
    """ Latest summaries written by the watchdog and the health check """
    async with db.session() as session:
        rows = await session.scalars(select(SystemHealth).order_by(SystemHealth.name))
        return [SystemHealthOut.model_validate(x) for x in rows.all()]
