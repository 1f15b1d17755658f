import logging
from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from db.models import ProductionLog, SystemHealth

logger = logging.getLogger(__name__)

pytestmark = pytest.mark.asyncio

DAY = date(2024, 3, 1)


class TestMixins:
    async def test_record_increments_pull_count(self, session):
        await ProductionLog.record(session, "Test Well 1", DAY, 80, 70, 60)
        await ProductionLog.record(session, "Test Well 1", DAY, 90, 75, 65)
        await session.commit()

        rows = await ProductionLog.for_well(session, "Test Well 1")
        assert len(rows) == 1
        row = rows[0]
        assert row.well_key == "Test_Well_1"
        assert row.pull_count == 2
        assert (row.afr_bbls_day, row.window_bbls_day, row.overnight_bbls_day) == (
            90,
            75,
            65,
        )

    async def test_bulk_upsert_update_on_conflict(self, session):
        records = [{"name": "overall", "status": "ok", "details": {"a": 1}}]
        await SystemHealth.bulk_upsert(session, records)
        records2 = [{"name": "overall", "status": "warning", "details": {"a": 2}}]
        await SystemHealth.bulk_upsert(session, records2)
        await session.commit()

        row = await session.scalar(select(SystemHealth))
        assert row.status == "warning"
        assert row.details == {"a": 2}

    async def test_bulk_upsert_ignore_on_conflict(self, session):
        records = [{"name": "overall", "status": "ok", "details": {}}]
        await SystemHealth.bulk_upsert(session, records)
        records2 = [{"name": "overall", "status": "warning", "details": {}}]
        await SystemHealth.bulk_upsert(session, records2, ignore_on_conflict=True)
        await session.commit()

        row = await session.scalar(select(SystemHealth))
        assert row.status == "ok"

    async def test_bulk_upsert_raise_on_conflict(self, session, caplog):
        records = [{"name": "overall", "status": "ok", "details": {}}]
        await SystemHealth.bulk_upsert(session, records)
        with pytest.raises(IntegrityError):
            await SystemHealth.bulk_upsert(
                session, records, update_on_conflict=False
            )
        assert "(SystemHealth) IntegrityError" in caplog.text

    async def test_df(self, session):
        await ProductionLog.record(session, "Test Well 1", DAY, 80, 70, 60)
        await session.commit()
        df = await ProductionLog.df(session)
        assert df.index.names == ["well_key", "prod_date"]
        assert df.shape[0] == 1

        df = await ProductionLog.df(
            session, ProductionLog.well_name == "nowhere", create_index=False
        )
        assert df.empty
        assert df.columns.tolist() == ProductionLog.c.names
