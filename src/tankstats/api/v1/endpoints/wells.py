import logging
from typing import List

import pandas as pd
import starlette.status as codes
from fastapi import APIRouter, HTTPException, Query

import calc  # noqa
from calc.levels import estimate_current_level
from db import db
from db.models import PerformanceSample, ProductionLog, WellStatus
from schemas.production import PerformanceStats, ProductionLogOut
from schemas.well import WellStatusOut
from util.strings import well_key

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{well_name}/status", response_model=WellStatusOut)
async def retrieve_status(well_name: str):
    async with db.session() as session:
        status = await session.get(WellStatus, well_name)

    if status is None:
        raise HTTPException(
            status_code=codes.HTTP_404_NOT_FOUND, detail=f"No status for {well_name}"
        )

    out = WellStatusOut.model_validate(status)
    out.estimated_level_inches = estimate_current_level(
        status.last_pull_bottom_level_inches,
        status.last_pull_date_time_utc,
        status.flow_rate_minutes,
    )
    return out


@router.get("/{well_name}/production", response_model=List[ProductionLogOut])
async def list_production(well_name: str, limit: int = Query(30, ge=1, le=366)):
    """ Daily production estimates, most recent production day first """
    async with db.session() as session:
        rows = await ProductionLog.for_well(session, well_name, limit=limit)
    return [ProductionLogOut.model_validate(x) for x in rows]


@router.get("/{well_name}/performance", response_model=PerformanceStats)
async def performance(well_name: str):
    """ How closely predicted levels matched what drivers found """
    async with db.session() as session:
        df = await PerformanceSample.df(
            session,
            PerformanceSample.well_key == well_key(well_name),
            create_index=False,
        )
    stats = pd.DataFrame.performance.from_records(
        df.to_dict(orient="records")
    ).performance.stats()
    return PerformanceStats(well_name=well_name, **stats)
