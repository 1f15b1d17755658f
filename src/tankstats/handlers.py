""" Inbox packet handlers.

    Each handler claims one kind of packet (pull, edit or delete) and ignores the rest,
    so a packet can be broadcast to every handler or routed straight to its own. A
    handler runs in a single transaction: derived history, the well's status, cached
    flow rate, logs and the removal of the inbox row commit together or not at all.
    A failed run leaves the inbox row in place for the watchdog to retrigger.
"""

import logging
import math
import uuid
from datetime import datetime
from timeit import default_timer as timer
from typing import Any, Dict, List, Optional, Tuple, Type

import pandas as pd
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

import calc  # noqa
import calc.levels as levels
import config as conf
import util
from calc.afr import FlowRateEstimate, estimate
from const import (
    CALCULATING,
    INCHES_PER_FOOT,
    UNKNOWN,
    WELL_DOWN,
    AnomalyLevel,
    PacketOutcome,
    RequestType,
)
from db import db
from db.models import (
    IncomingPacket,
    PerformanceSample,
    ProcessedPacket,
    ProductionLog,
    WellConfig,
    WellStatus,
)
from exc import MissingReferenceError
from schemas.bases import CustomBaseModel
from schemas.packet import DeleteRequest, EditRequest, PullPacket, payload_errors
from schemas.well import WellSettings
from util.dt import days_between, format_local, production_date
from util.humanize import days_to_hmmss, inches_to_feet_inches
from util.strings import response_id

logger = logging.getLogger(__name__)


# --- shared calculations ---------------------------------------------------- #


async def windowed_estimate(
    session: AsyncSession,
    well_name: str,
    rate: float,
    at: datetime,
    exclude: str = None,
) -> Tuple[FlowRateEstimate, AnomalyLevel]:
    """ AFR as of a pull at `at`: the rates of the well's previous pulls, up to the
        history limit, plus the pull's own rate, replayed through a fresh anomaly
        filter. Returns the estimate and the level given to the pull's rate. """
    rate = rate or 0.0
    rates = await ProcessedPacket.flow_rates(
        session, well_name, conf.AFR_HISTORY_LIMIT, before=at, exclude=exclude
    )
    if rate > 0:
        rates.append(rate)
    est = estimate(rates)
    level = est.last_level if rate > 0 else AnomalyLevel.NORMAL
    return est, level


async def production_estimates(
    session: AsyncSession, well_name: str, tanks: int, at: datetime
) -> Tuple[int, int]:
    """ Window and overnight bbls/day as of `at`, from the well's stored history """
    history = await ProcessedPacket.history(
        session, well_name, conf.AGGREGATE_HISTORY_LIMIT
    )
    df = pd.DataFrame.pulls.from_records([x.to_historical_pull() for x in history])
    return (
        df.pulls.window_bbls_per_day(tanks, at),
        df.pulls.overnight_bbls_per_day(tanks, at),
    )


def pull_target(
    tank_after: float, settings: WellSettings, at: datetime, afr: float
) -> Tuple[float, levels.PullEstimate]:
    needed = levels.recovery_needed(
        tank_after, settings.bottom_level, settings.pull_bbls, settings.tanks
    )
    return needed, levels.estimate_next_pull(at, needed, afr)


def build_status(
    packet: ProcessedPacket,
    settings: WellSettings,
    afr: float,
    known_rates: List[float],
    window_bbls_day: int = 0,
    overnight_bbls_day: int = 0,
    now: datetime = None,
    is_edit: bool = False,
    original_packet_id: str = None,
) -> Dict[str, Any]:
    """ Status document values describing a well as of its latest pull """
    now = now or util.utcnow()
    after = packet.tank_after_inches
    _, est = pull_target(after, settings, packet.date_time_utc, afr)

    if packet.well_down:
        time_till_pull = WELL_DOWN
    else:
        time_till_pull = est.est_time_to_pull or CALCULATING

    return {
        "response_id": response_id(packet.well_name, now),
        "status": "success",
        "current_level": inches_to_feet_inches(after),
        "current_level_inches": after,
        "flow_rate": days_to_hmmss(afr) if afr > 0 else UNKNOWN,
        "flow_rate_minutes": levels.afr_minutes(afr) if afr > 0 else 0,
        "bbls_24hrs": levels.bbls_per_day(afr, settings.tanks),
        "window_bbls_day": window_bbls_day or None,
        "overnight_bbls_day": overnight_bbls_day or None,
        "time_till_pull": time_till_pull,
        "next_pull_time": format_local(est.est_date_time_pull) or UNKNOWN,
        "next_pull_time_utc": est.est_date_time_pull,
        "last_pull_date_time": packet.date_time or format_local(packet.date_time_utc),
        "last_pull_date_time_utc": packet.date_time_utc,
        "last_pull_bbls": packet.bbls_taken,
        "last_pull_top_level": inches_to_feet_inches(packet.tank_top_inches),
        "last_pull_top_level_inches": packet.tank_top_inches,
        "last_pull_bottom_level": inches_to_feet_inches(after),
        "last_pull_bottom_level_inches": after,
        "last_pull_driver_name": packet.driver_name,
        "last_pull_packet_id": packet.packet_id,
        "is_down": bool(packet.well_down),
        "is_edit": is_edit,
        "original_packet_id": original_packet_id,
        "known_rates": list(known_rates),
        "timestamp": now,
    }


def predicted_level(pull: PullPacket, status: Optional[WellStatus], at: datetime):
    """ The level the driver was shown before the pull: the packet's own value when
        the app sent one, else the previous status grown at its flow rate """
    if pull.predicted_level_inches is not None:
        return math.floor(pull.predicted_level_inches)
    if status is None or status.afr <= 0:
        return None
    if days_between(at, status.last_pull_date_time_utc) <= 0:
        return None
    level = levels.estimate_current_level(
        status.last_pull_bottom_level_inches,
        status.last_pull_date_time_utc,
        status.flow_rate_minutes,
        now=at,
    )
    return math.floor(level) if level is not None else None


async def rebuild_well_status(
    session: AsyncSession, well_name: str, now: datetime = None
) -> Optional[WellStatus]:
    """ Recompute a well's status from its latest remaining pull, or remove the
        status when the well has no pulls left """
    latest = await ProcessedPacket.latest(session, well_name)
    if latest is None:
        await WellStatus.clear(session, well_name)
        return None

    config, settings = await WellConfig.resolve(session, well_name)
    est, _ = await windowed_estimate(
        session,
        well_name,
        latest.flow_rate_days,
        latest.date_time_utc,
        exclude=latest.packet_id,
    )
    afr, method = est.afr, est.method
    window, overnight = await production_estimates(
        session, well_name, settings.tanks, latest.date_time_utc
    )
    status = await WellStatus.replace(
        session,
        well_name,
        build_status(
            latest,
            settings,
            afr,
            est.known,
            window_bbls_day=window,
            overnight_bbls_day=overnight,
            now=now,
        ),
    )
    await WellConfig.cache_flow_rate(session, well_name, afr, obj=config)
    logger.info(
        f"(rebuild) {well_name} rebuilt from {latest.packet_id}: afr={afr:.4f} ({method})"
    )
    return status


# --- handlers --------------------------------------------------------------- #


class BaseHandler:
    request_type: RequestType = None
    schema: Type[CustomBaseModel] = None

    def __init__(self, now: datetime = None):
        self.now = now
        self.metrics: pd.DataFrame = pd.DataFrame(
            columns=["handler", "operation", "name", "seconds", "count"]
        )

    def __repr__(self):
        return f"{self.__class__.__name__}[{self.request_type.value}]"

    @property
    def processing_time(self) -> datetime:
        return self.now or util.utcnow()

    def raise_execution_error(
        self, operation: str, packet_id: str, e: Exception, extra: Dict = None
    ):
        logger.error(
            f"({self}) error during {operation}ing: {packet_id} -- {e.__class__.__name__}: {e}",  # noqa
            extra=extra,
        )
        raise e

    def add_metric(self, operation: str, name: str, seconds: float, count: int):
        logger.info(
            f"({self}) {operation}ed {count} {name} ({seconds}s)",
            extra={"duration": seconds},
        )
        metric = pd.DataFrame(
            [
                {
                    "handler": self.request_type.value,
                    "operation": operation,
                    "name": name,
                    "seconds": seconds,
                    "count": count,
                }
            ]
        )
        self.metrics = (
            metric
            if self.metrics.empty
            else pd.concat([self.metrics, metric], ignore_index=True)
        )

    def claims(self, packet: IncomingPacket) -> bool:
        return IncomingPacket.request_type_of(packet.payload or {}) == (
            self.request_type.value
        )

    async def process(
        self, session: AsyncSession, packet: IncomingPacket, request: Any
    ) -> PacketOutcome:
        raise NotImplementedError

    async def handle(self, packet_id: str) -> PacketOutcome:
        """ Claim and process an inbox packet inside a single transaction """
        async with db.session() as session:
            async with session.begin():
                packet = await session.get(IncomingPacket, packet_id)
                if packet is None:
                    logger.debug(f"({self}) {packet_id} already consumed")
                    return PacketOutcome.SKIPPED

                if not self.claims(packet):
                    return PacketOutcome.SKIPPED

                try:
                    request = self.schema.model_validate(packet.payload or {})
                except ValidationError as e:
                    logger.warning(
                        f"({self}) rejected {packet_id}: {payload_errors(e.errors())}"
                    )
                    await session.delete(packet)
                    return PacketOutcome.REJECTED

                try:
                    outcome = await self.process(session, packet, request)
                except MissingReferenceError as e:
                    logger.warning(f"({self}) discarding {packet_id}: {e}")
                    outcome = PacketOutcome.REJECTED
                except Exception as e:
                    self.raise_execution_error("process", packet_id, e)

                await session.delete(packet)
                return outcome

    async def arun(self, packet_id: str) -> PacketOutcome:
        exec_id = uuid.uuid4().hex[:8]
        ts = timer()
        logger.debug(f"({self}) execution started {exec_id=} {packet_id=}")
        outcome = await self.handle(packet_id)
        exc_time = round(timer() - ts, 2)
        if outcome != PacketOutcome.SKIPPED:
            self.add_metric(
                operation="process", name=outcome.value, seconds=exc_time, count=1
            )
        return outcome

    def run(self, packet_id: str) -> PacketOutcome:
        return util.aio.async_to_sync(self.arun(packet_id))


class PullHandler(BaseHandler):
    request_type = RequestType.PULL
    schema = PullPacket

    async def process(
        self, session: AsyncSession, packet: IncomingPacket, pull: PullPacket
    ) -> PacketOutcome:
        now = self.processing_time
        well_name = pull.well_name
        key = pull.packet_id or packet.packet_id

        at = pull.timestamp
        if at is None:
            logger.warning(
                f"({self}) unparsable timestamp on {packet.packet_id}: using processing time"  # noqa
            )
            at = now

        duplicate = await ProcessedPacket.find_duplicate(session, key, well_name, at)
        if duplicate is not None:
            logger.info(
                f"({self}) {packet.packet_id} duplicates processed pull {duplicate.packet_id}"  # noqa
            )
            return PacketOutcome.DUPLICATE

        config, settings = await WellConfig.resolve(session, well_name)
        status = await session.get(WellStatus, well_name)

        top = pull.tank_top_inches
        after = levels.tank_after_inches(top, pull.bbls_taken, settings.tanks)
        time_dif = 0.0
        recovery = 0.0
        if status is not None:
            time_dif = days_between(at, status.last_pull_date_time_utc)
            recovery = levels.recovery_inches(top, status.last_pull_bottom_level_inches)
        rate = levels.flow_rate_days(time_dif, recovery)

        est, level = await windowed_estimate(session, well_name, rate, at)
        afr, method = est.afr, est.method
        needed, target = pull_target(after, settings, at, afr)
        predicted = predicted_level(pull, status, at)

        processed = ProcessedPacket(
            packet_id=key,
            well_name=well_name,
            request_type=RequestType.PULL.value,
            date_time=pull.date_time,
            date_time_utc=at,
            tank_level_feet=pull.tank_level_feet,
            bbls_taken=pull.bbls_taken,
            driver_name=pull.driver_name,
            driver_id=pull.driver_id,
            well_down=pull.well_down,
            predicted_level_inches=pull.predicted_level_inches,
            tank_top_inches=top,
            tank_after_inches=after,
            time_dif_days=time_dif,
            recovery_inches=recovery,
            flow_rate_days=rate,
            recovery_needed=needed,
            est_time_to_pull=target.est_time_to_pull,
            est_date_time_pull=target.est_date_time_pull,
            anomaly_level=level.value,
            processed_at=now,
        )
        session.add(processed)
        await session.flush()

        window, overnight = await production_estimates(
            session, well_name, settings.tanks, at
        )
        await WellStatus.replace(
            session,
            well_name,
            build_status(
                processed,
                settings,
                afr,
                est.known,
                window_bbls_day=window,
                overnight_bbls_day=overnight,
                now=now,
            ),
        )
        await WellConfig.cache_flow_rate(session, well_name, afr, obj=config)

        actual = math.floor(top)
        await PerformanceSample.record(
            session, well_name, at, actual, actual if predicted is None else predicted
        )
        await ProductionLog.record(
            session,
            well_name,
            production_date(at),
            afr_bbls_day=levels.bbls_per_day(afr, settings.tanks),
            window_bbls_day=window,
            overnight_bbls_day=overnight,
        )

        logger.info(
            f"({self}) {well_name}: {key} rate={rate:.4f} level={level.name} afr={afr:.4f} ({method}) window={window} overnight={overnight}"  # noqa
        )
        return PacketOutcome.PROCESSED


class EditHandler(BaseHandler):
    request_type = RequestType.EDIT
    schema = EditRequest

    async def process(
        self, session: AsyncSession, packet: IncomingPacket, edit: EditRequest
    ) -> PacketOutcome:
        now = self.processing_time
        original = await session.get(ProcessedPacket, edit.original_packet_id)
        if original is None:
            raise MissingReferenceError(edit.original_packet_id)

        well_name = original.well_name
        config, settings = await WellConfig.resolve(session, well_name)

        old_time = original.date_time_utc
        new_time = edit.timestamp or old_time
        top = edit.new_top_inches(original.tank_top_inches)
        bbls = edit.bbls_taken if edit.bbls_taken is not None else original.bbls_taken
        after = levels.tank_after_inches(top, bbls, settings.tanks)

        prev = await ProcessedPacket.previous(
            session, well_name, new_time, exclude=original.packet_id
        )
        time_dif = original.time_dif_days or 0.0
        recovery = 0.0
        if prev is not None:
            time_dif = days_between(new_time, prev.date_time_utc)
            recovery = levels.recovery_inches(top, prev.tank_after_inches)
        rate = levels.flow_rate_days(time_dif, recovery)

        original.tank_top_inches = top
        original.tank_level_feet = top / INCHES_PER_FOOT
        original.bbls_taken = bbls
        original.tank_after_inches = after
        original.time_dif_days = time_dif
        original.recovery_inches = recovery
        original.flow_rate_days = rate
        original.date_time_utc = new_time
        original.date_time = edit.date_time or original.date_time
        original.edited_at = now
        original.edited_by = edit.source
        await session.flush()

        est, level = await windowed_estimate(
            session, well_name, rate, new_time, exclude=original.packet_id
        )
        afr, method = est.afr, est.method
        original.anomaly_level = level.value
        needed, target = pull_target(after, settings, new_time, afr)
        original.recovery_needed = needed
        original.est_time_to_pull = target.est_time_to_pull
        original.est_date_time_pull = target.est_date_time_pull
        await session.flush()

        status = await session.get(WellStatus, well_name)
        is_latest = status is None or status.last_pull_date_time_utc in (
            old_time,
            new_time,
        )

        if is_latest:
            window, overnight = await production_estimates(
                session, well_name, settings.tanks, new_time
            )
            await WellStatus.replace(
                session,
                well_name,
                build_status(
                    original,
                    settings,
                    afr,
                    est.known,
                    window_bbls_day=window,
                    overnight_bbls_day=overnight,
                    now=now,
                    is_edit=True,
                    original_packet_id=original.packet_id,
                ),
            )
            await WellConfig.cache_flow_rate(session, well_name, afr, obj=config)
        else:
            latest = await ProcessedPacket.latest(session, well_name)
            current, _ = await windowed_estimate(
                session,
                well_name,
                latest.flow_rate_days,
                latest.date_time_utc,
                exclude=latest.packet_id,
            )
            status.known_rates = current.known
            await session.flush()

        logger.info(
            f"({self}) {well_name}: edited {original.packet_id} by {edit.source} rate={rate:.4f} afr={afr:.4f} ({method}) latest={is_latest}"  # noqa
        )
        return PacketOutcome.PROCESSED


class DeleteHandler(BaseHandler):
    request_type = RequestType.DELETE
    schema = DeleteRequest

    async def process(
        self, session: AsyncSession, packet: IncomingPacket, request: DeleteRequest
    ) -> PacketOutcome:
        target = request.target
        obj = await session.get(ProcessedPacket, target) if target else None
        if obj is None:
            raise MissingReferenceError(target)

        well_name = obj.well_name
        await session.delete(obj)
        await session.flush()

        status = await rebuild_well_status(session, well_name, now=self.processing_time)
        logger.info(
            f"({self}) {well_name}: deleted {target}, status {'rebuilt' if status else 'cleared'}"  # noqa
        )
        return PacketOutcome.PROCESSED


HANDLERS: Dict[RequestType, Type[BaseHandler]] = {
    RequestType.PULL: PullHandler,
    RequestType.EDIT: EditHandler,
    RequestType.DELETE: DeleteHandler,
}


async def process(
    packet_id: str, request_type: str = None, now: datetime = None
) -> PacketOutcome:
    """ Run the handler for a known request type, or offer the packet to all of
        them """
    if request_type is None:
        outcomes = await dispatch(packet_id, now=now)
        return next(
            (x for x in outcomes if x != PacketOutcome.SKIPPED), PacketOutcome.SKIPPED
        )
    handler_cls = HANDLERS.get(RequestType.coerce(request_type))
    if handler_cls is None:
        logger.warning(f"(process) no handler for {request_type} packets: {packet_id}")
        return PacketOutcome.SKIPPED
    return await handler_cls(now=now).arun(packet_id)


async def dispatch(packet_id: str, now: datetime = None) -> List[PacketOutcome]:
    """ Offer a packet to every handler in turn. Only the matching one acts. """
    return [await cls(now=now).arun(packet_id) for cls in HANDLERS.values()]
