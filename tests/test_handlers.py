import logging

import pytest
from sqlalchemy import select

import handlers
from const import UNKNOWN, AnomalyLevel, PacketOutcome
from db import db
from db.models import (
    IncomingPacket,
    PerformanceSample,
    ProcessedPacket,
    ProductionLog,
    WellConfig,
    WellStatus,
)
from tests.utils import at, delete_payload, edit_payload, enqueue, pull_payload, submit

logger = logging.getLogger(__name__)

pytestmark = pytest.mark.asyncio

WELL = "Test Well 1"


async def get(model, key):
    async with db.session() as s:
        return await s.get(model, key)


async def count(model, *where) -> int:
    async with db.session() as s:
        return await model.agg.count(s, *where)


@pytest.fixture
async def two_pulls(well_config):
    """ tanks=2, bottom=3ft, pull=200bbls. The second pull rose 24in in one day. """
    await well_config(WELL)
    await submit(pull_payload("p1", at(0), 10, bbls=120))
    await submit(pull_payload("p2", at(1), 9, bbls=60))
    yield


class TestPullHandler:
    async def test_first_pull_has_no_rate(self, well_config):
        await well_config(WELL)
        _, outcome = await submit(pull_payload("p1", at(0), 10, bbls=120))
        assert outcome == PacketOutcome.PROCESSED

        processed = await get(ProcessedPacket, "p1")
        assert processed.tank_top_inches == 120
        assert processed.tank_after_inches == 84
        assert processed.flow_rate_days == 0
        assert processed.time_dif_days == 0

        status = await get(WellStatus, WELL)
        assert status.flow_rate == UNKNOWN
        assert status.current_level == "7'0\""
        assert status.bbls_24hrs == 0
        assert status.last_pull_packet_id == "p1"

    async def test_second_pull_rates(self, two_pulls):
        processed = await get(ProcessedPacket, "p2")
        assert processed.time_dif_days == pytest.approx(1.0)
        assert processed.recovery_inches == pytest.approx(24)
        assert processed.flow_rate_days == pytest.approx(0.5)
        assert processed.tank_after_inches == pytest.approx(90)
        assert processed.recovery_needed == pytest.approx(6)
        assert processed.est_time_to_pull == "6:00"

        status = await get(WellStatus, WELL)
        assert status.flow_rate == "12:00:00"
        assert status.flow_rate_minutes == 720.0
        assert status.bbls_24hrs == 80
        assert status.window_bbls_day == 80
        assert status.overnight_bbls_day == 80
        assert status.time_till_pull == "6:00"
        assert status.next_pull_time_utc == at(1.25)
        assert status.current_level == "7'6\""
        assert status.last_pull_top_level == "9'0\""
        assert status.known_rates == [pytest.approx(0.5)]
        assert status.is_edit is False

    async def test_caches_flow_rate_on_config(self, two_pulls):
        config = await get(WellConfig, WELL)
        assert config.avg_flow_rate == "12:00:00"
        assert config.avg_flow_rate_minutes == 720.0

    async def test_one_status_per_well(self, two_pulls):
        await submit(pull_payload("p3", at(2), 9, bbls=60))
        assert await count(WellStatus) == 1
        status = await get(WellStatus, WELL)
        assert status.version == 3
        assert status.last_pull_packet_id == "p3"

    async def test_production_log(self, two_pulls):
        async with db.session() as s:
            rows = await ProductionLog.for_well(s, WELL)
        assert [str(x.prod_date) for x in rows] == ["2024-03-02", "2024-03-01"]
        latest = rows[0]
        assert latest.afr_bbls_day == 80
        assert latest.window_bbls_day == 80
        assert latest.overnight_bbls_day == 80
        assert latest.pull_count == 1

    async def test_production_log_counts_pulls_in_day(self, two_pulls):
        await submit(pull_payload("p3", at(1, hours=6), 9, bbls=60))
        async with db.session() as s:
            rows = await ProductionLog.for_well(s, WELL)
        assert rows[0].pull_count == 2

    async def test_predicted_level_from_previous_status(self, two_pulls):
        await submit(pull_payload("p3", at(2), 9, bbls=60))
        async with db.session() as s:
            samples = (await s.scalars(select(PerformanceSample))).all()
        by_time = {x.pulled_at: x for x in samples}
        # left at 90in, rising 24in/day
        assert by_time[at(2)].predicted_inches == 114
        assert by_time[at(2)].actual_inches == 108
        # no flow rate yet: predicted defaults to actual
        assert by_time[at(1)].predicted_inches == by_time[at(1)].actual_inches

    async def test_predicted_level_from_packet(self, two_pulls):
        await submit(
            pull_payload("p3", at(2), 9, bbls=60, predictedLevelInches=110.7)
        )
        async with db.session() as s:
            sample = await s.scalar(
                select(PerformanceSample).where(PerformanceSample.pulled_at == at(2))
            )
        assert sample.predicted_inches == 110

    async def test_anomalous_rate_excluded_from_ring(self, two_pulls):
        await submit(pull_payload("p3", at(2), 9, bbls=60))
        await submit(pull_payload("p4", at(3), 9, bbls=60))
        status = await get(WellStatus, WELL)
        assert len(status.known_rates) == 3
        afr = status.flow_rate_minutes

        await submit(pull_payload("p5", at(3.1), 9, bbls=60))
        processed = await get(ProcessedPacket, "p5")
        assert processed.anomaly_level == AnomalyLevel.ANOMALY.value

        status = await get(WellStatus, WELL)
        assert len(status.known_rates) == 3
        assert status.flow_rate_minutes == afr

    async def test_afr_follows_regime_change(self, well_config):
        """ a sustained slowdown replaces the old rate once it fills the history
            window, even though each slow rate was an anomaly when it first arrived """
        await well_config(WELL)
        # 40 bbls off two tanks lowers the level a foot, so each rate is the days
        # between pulls
        for day in range(6):
            await submit(pull_payload(f"fast{day}", at(day), 9, bbls=40))
        status = await get(WellStatus, WELL)
        assert status.flow_rate_minutes == pytest.approx(1440)

        for n in range(1, 21):
            await submit(pull_payload(f"slow{n}", at(5 + 3 * n), 9, bbls=40))

        processed = await get(ProcessedPacket, "slow20")
        assert processed.flow_rate_days == pytest.approx(3)
        assert processed.anomaly_level == AnomalyLevel.NORMAL.value

        status = await get(WellStatus, WELL)
        assert status.flow_rate_minutes == pytest.approx(4320)
        assert status.known_rates == [pytest.approx(3)] * 16

        config = await get(WellConfig, WELL)
        assert config.avg_flow_rate_minutes == pytest.approx(4320)

    async def test_well_down(self, two_pulls):
        await submit(pull_payload("p3", at(2), 9, bbls=60, wellDown=True))
        status = await get(WellStatus, WELL)
        assert status.is_down is True
        assert status.time_till_pull == "Down"

    async def test_without_config_uses_defaults(self, bind):
        _, outcome = await submit(pull_payload("p1", at(0), 10, bbls=20))
        assert outcome == PacketOutcome.PROCESSED
        processed = await get(ProcessedPacket, "p1")
        # one tank: 20 bbls is a foot
        assert processed.tank_after_inches == pytest.approx(108)

    async def test_legacy_config_key(self, well_config):
        await well_config("TestWell1", tanks=None, num_tanks=4)
        await submit(pull_payload("p1", at(0), 10, bbls=80))
        processed = await get(ProcessedPacket, "p1")
        assert processed.tank_after_inches == pytest.approx(108)

    async def test_local_timestamp(self, well_config):
        await well_config(WELL)
        payload = pull_payload("p1", at(0), 10)
        del payload["dateTimeUTC"]
        payload["dateTime"] = "3/1/2024 8:00 AM"
        await submit(payload)
        processed = await get(ProcessedPacket, "p1")
        assert processed.date_time_utc == at(0)

    async def test_unparsable_timestamp_uses_processing_time(self, well_config):
        await well_config(WELL)
        payload = pull_payload("p1", at(0), 10, dateTimeUTC="not a date")
        await submit(payload, now=at(5))
        processed = await get(ProcessedPacket, "p1")
        assert processed.date_time_utc == at(5)

    async def test_tank_top_inches(self, well_config):
        await well_config(WELL)
        payload = pull_payload("p1", at(0), None, tankTopInches=66)
        del payload["tankLevelFeet"]
        await submit(payload)
        processed = await get(ProcessedPacket, "p1")
        assert processed.tank_level_feet == pytest.approx(5.5)


class TestPacketOutcomes:
    async def test_duplicate_packet_id(self, two_pulls):
        packet_id, outcome = await submit(pull_payload("p2", at(1), 9, bbls=60))
        assert outcome == PacketOutcome.DUPLICATE
        assert await count(ProcessedPacket) == 2
        assert await get(IncomingPacket, packet_id) is None

    async def test_duplicate_well_and_time(self, two_pulls):
        _, outcome = await submit(pull_payload("other", at(1), 9, bbls=60))
        assert outcome == PacketOutcome.DUPLICATE
        assert await get(ProcessedPacket, "other") is None

    async def test_invalid_payload_rejected(self, bind):
        payload = pull_payload("p1", at(0), 10)
        del payload["tankLevelFeet"]
        packet_id, outcome = await submit(payload)
        assert outcome == PacketOutcome.REJECTED
        assert await get(IncomingPacket, packet_id) is None
        assert await count(ProcessedPacket) == 0

    async def test_other_request_type_skipped(self, bind):
        packet = await enqueue(edit_payload("p1"))
        outcome = await handlers.PullHandler().arun(packet.packet_id)
        assert outcome == PacketOutcome.SKIPPED
        assert await get(IncomingPacket, packet.packet_id) is not None

    async def test_request_type_without_handler_skipped(self, bind):
        packet = await enqueue(pull_payload("h1", at(0), 10, requestType="wellHistory"))
        outcome = await handlers.process(packet.packet_id, "wellHistory")
        assert outcome == PacketOutcome.SKIPPED
        assert await get(IncomingPacket, packet.packet_id) is not None
        assert await count(ProcessedPacket) == 0

    async def test_consumed_packet_skipped(self, bind):
        outcome = await handlers.EditHandler().arun("does-not-exist")
        assert outcome == PacketOutcome.SKIPPED

    async def test_dispatch_offers_packet_to_every_handler(self, well_config):
        await well_config(WELL)
        packet = await enqueue(pull_payload("p1", at(0), 10))
        outcomes = await handlers.dispatch(packet.packet_id)
        assert outcomes == [
            PacketOutcome.PROCESSED,
            PacketOutcome.SKIPPED,
            PacketOutcome.SKIPPED,
        ]

    async def test_process_without_request_type(self, well_config):
        await well_config(WELL)
        packet = await enqueue(pull_payload("p1", at(0), 10))
        assert await handlers.process(packet.packet_id) == PacketOutcome.PROCESSED

    async def test_metrics_recorded(self, well_config):
        await well_config(WELL)
        packet = await enqueue(pull_payload("p1", at(0), 10))
        handler = handlers.PullHandler()
        await handler.arun(packet.packet_id)
        assert handler.metrics.shape[0] == 1
        assert handler.metrics.iloc[0]["name"] == "processed"


class TestEditHandler:
    async def test_edit_latest_pull(self, two_pulls):
        _, outcome = await submit(edit_payload("p2", tankTopInches=120, source="ops"))
        assert outcome == PacketOutcome.PROCESSED

        processed = await get(ProcessedPacket, "p2")
        assert processed.tank_top_inches == 120
        assert processed.tank_level_feet == 10
        assert processed.tank_after_inches == pytest.approx(102)
        assert processed.recovery_inches == pytest.approx(36)
        assert processed.flow_rate_days == pytest.approx(1 / 3)
        assert processed.edited_by == "ops"
        assert processed.was_edited is False

        status = await get(WellStatus, WELL)
        assert status.flow_rate_minutes == 480.0
        assert status.is_edit is True
        assert status.original_packet_id == "p2"

        config = await get(WellConfig, WELL)
        assert config.avg_flow_rate_minutes == 480.0

    async def test_edit_round_trip(self, two_pulls):
        before = await get(WellStatus, WELL)
        await submit(edit_payload("p2", tankTopInches=120))
        await submit(edit_payload("p2", tankTopInches=108))

        after = await get(WellStatus, WELL)
        assert after.flow_rate_minutes == before.flow_rate_minutes
        assert after.known_rates == [pytest.approx(0.5)]
        assert after.current_level == before.current_level
        assert await count(ProcessedPacket) == 2

    async def test_edit_with_identical_values(self, two_pulls):
        await submit(pull_payload("p3", at(2), 9, bbls=60))
        before = await get(WellStatus, WELL)
        pull = await get(ProcessedPacket, "p3")

        await submit(edit_payload("p3", tankTopInches=108, bblsTaken=60))

        after = await get(WellStatus, WELL)
        edited = await get(ProcessedPacket, "p3")
        assert after.flow_rate_minutes == before.flow_rate_minutes
        assert after.time_till_pull == before.time_till_pull
        assert after.known_rates == before.known_rates
        assert edited.flow_rate_days == pull.flow_rate_days
        assert edited.est_time_to_pull == pull.est_time_to_pull
        assert edited.anomaly_level == pull.anomaly_level

    async def test_edit_older_pull_only_updates_ring(self, two_pulls):
        await submit(pull_payload("p3", at(2), 9, bbls=60))
        before = await get(WellStatus, WELL)

        await submit(edit_payload("p2", tankTopInches=120))
        status = await get(WellStatus, WELL)
        assert status.last_pull_packet_id == "p3"
        assert status.is_edit is False
        assert status.flow_rate == before.flow_rate
        assert status.known_rates[0] == pytest.approx(1 / 3)

    async def test_edit_time(self, two_pulls):
        await submit(edit_payload("p2", dateTimeUTC=at(2).isoformat()))
        processed = await get(ProcessedPacket, "p2")
        assert processed.date_time_utc == at(2)
        assert processed.time_dif_days == pytest.approx(2)

        status = await get(WellStatus, WELL)
        assert status.last_pull_date_time_utc == at(2)

    async def test_edit_missing_reference(self, two_pulls):
        packet_id, outcome = await submit(edit_payload("missing", tankTopInches=1))
        assert outcome == PacketOutcome.REJECTED
        assert await get(IncomingPacket, packet_id) is None


class TestDeleteHandler:
    async def test_delete_only_pull_clears_status(self, well_config):
        await well_config(WELL)
        await submit(pull_payload("p1", at(0), 10, bbls=120))
        _, outcome = await submit(delete_payload("p1"))
        assert outcome == PacketOutcome.PROCESSED
        assert await get(ProcessedPacket, "p1") is None
        assert await get(WellStatus, WELL) is None

    async def test_delete_latest_rebuilds_from_previous(self, two_pulls):
        await submit(delete_payload("p2"))
        status = await get(WellStatus, WELL)
        assert status.last_pull_packet_id == "p1"
        assert status.flow_rate == UNKNOWN
        assert status.known_rates == []

    async def test_delete_by_original_packet_id(self, two_pulls):
        payload = delete_payload(None, originalPacketId="p1")
        del payload["targetPacketId"]
        await submit(payload)
        assert await get(ProcessedPacket, "p1") is None
        status = await get(WellStatus, WELL)
        assert status.last_pull_packet_id == "p2"

    async def test_delete_missing_reference(self, two_pulls):
        _, outcome = await submit(delete_payload("missing"))
        assert outcome == PacketOutcome.REJECTED
        assert await count(ProcessedPacket) == 2


class TestRebuild:
    async def test_rebuild_matches_incremental_status(self, two_pulls):
        before = await get(WellStatus, WELL)
        async with db.session() as s:
            async with s.begin():
                await handlers.rebuild_well_status(s, WELL)
        after = await get(WellStatus, WELL)
        assert after.flow_rate_minutes == before.flow_rate_minutes
        assert after.window_bbls_day == before.window_bbls_day
        assert after.known_rates == before.known_rates
        assert after.version == before.version + 1
