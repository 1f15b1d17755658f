""" Background reconciliation: the inbox watchdog and the overall health check """

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import config as conf
import util
from const import WATCHDOG, HealthCheck, HealthStatus
from db import db
from db.models import (
    IncomingPacket,
    ProcessedPacket,
    SystemHealth,
    WellConfig,
    WellStatus,
)
from ingest import Notifier, notify
from util.dt import parse_key_timestamp
from util.iterables import group_by
from util.strings import packet_key

logger = logging.getLogger(__name__)


class Watchdog:
    """ Repairs work nobody consumed.

        Duplicate submissions of the same event are collapsed to their earliest
        arrival. Anything left in the inbox longer than the stale threshold is
        rewritten under a fresh key and handed back to the workers. A packet that has
        been retriggered too many times is dead-lettered and left for a person.
    """

    def __init__(
        self,
        now: datetime = None,
        on_retrigger: Optional[Notifier] = notify,
        stale_seconds: int = None,
        max_attempts: int = None,
        delay: float = None,
    ):
        self.now = now
        self.on_retrigger = on_retrigger
        self.stale_seconds = stale_seconds or conf.WATCHDOG_STALE_SECONDS
        self.max_attempts = max_attempts or conf.WATCHDOG_MAX_ATTEMPTS
        self.delay = conf.WATCHDOG_RETRIGGER_DELAY if delay is None else delay

    def __repr__(self):
        return f"{self.__class__.__name__}[{self.stale_seconds}s]"

    @staticmethod
    def arrival(packet: IncomingPacket) -> Optional[datetime]:
        return packet.received_at or parse_key_timestamp(packet.packet_id)

    def is_stale(self, packet: IncomingPacket, now: datetime) -> bool:
        """ Unknown arrival counts as stale """
        arrived = self.arrival(packet)
        if arrived is None:
            return True
        return (now - arrived).total_seconds() > self.stale_seconds

    def retrigger(self, packet: IncomingPacket, now: datetime) -> IncomingPacket:
        payload = {
            **(packet.payload or {}),
            "_retriggeredBy": WATCHDOG,
            "_retriggeredAt": now.isoformat(),
        }
        well_name = payload.get("wellName") or packet.well_name or "unknown"
        return IncomingPacket.build(
            payload,
            packet_id=packet_key(well_name, now),
            received_at=now,
            attempts=(packet.attempts or 0) + 1,
        )

    async def reconcile(self, now: datetime) -> Dict[str, Any]:
        retriggered: List[IncomingPacket] = []
        duplicates = 0
        stranded = 0
        dead_lettered = 0

        async with db.session() as session:
            async with session.begin():
                pending = await IncomingPacket.pending(session)
                groups = group_by(pending, key=lambda x: x.event_key)

                for group in groups.values():
                    ordered = sorted(
                        group,
                        key=lambda x: (
                            self.arrival(x) or datetime.min.replace(tzinfo=now.tzinfo),
                            x.packet_id,
                        ),
                    )
                    keep = ordered[0]
                    for extra in ordered[1:]:
                        await session.delete(extra)
                        duplicates += 1

                    if not self.is_stale(keep, now):
                        continue

                    stranded += 1
                    if (keep.attempts or 0) >= self.max_attempts:
                        keep.dead_lettered_at = now
                        dead_lettered += 1
                        logger.warning(
                            f"({self}) dead-lettered {keep.packet_id} after {keep.attempts} attempts"  # noqa
                        )
                        continue

                    replacement = self.retrigger(keep, now)
                    await session.delete(keep)
                    session.add(replacement)
                    retriggered.append(replacement)
                    logger.info(
                        f"({self}) retriggered {keep.well_name}: {keep.packet_id} -> {replacement.packet_id}"  # noqa
                    )

        # only announce rewrites that committed
        for idx, packet in enumerate(retriggered):
            if idx and self.delay:
                await asyncio.sleep(self.delay)
            if self.on_retrigger is not None:
                self.on_retrigger(packet)

        return {
            "lastRun": now.isoformat(),
            "pending": len(pending),
            "strandedFound": stranded,
            "duplicatesDeleted": duplicates,
            "deadLettered": dead_lettered,
            "retriggered": [x.packet_id for x in retriggered],
            "consecutiveFailures": 0,
        }

    async def previous_failures(self) -> int:
        async with db.session() as session:
            row = await session.get(SystemHealth, HealthCheck.WATCHDOG.value)
        details = (row.details or {}) if row is not None else {}
        return int(details.get("consecutiveFailures", 0))

    async def arun(self) -> Dict[str, Any]:
        """ Run one reconciliation pass and record its summary. Failures are
            recorded, never raised. """
        now = self.now or util.utcnow()
        try:
            summary = await self.reconcile(now)
            status = HealthStatus.WARNING if summary["deadLettered"] else HealthStatus.OK
            message = None
            if summary["strandedFound"] == 0:
                logger.info(
                    f"({self}) no stranded packets ({summary['pending']} pending, all recent)"  # noqa
                )
            else:
                logger.info(
                    f"({self}) found {summary['strandedFound']} stranded packets: retriggered {len(summary['retriggered'])}"  # noqa
                )
        except Exception as e:
            logger.exception(f"({self}) run failed -- {e.__class__.__name__}: {e}")
            failures = 1
            try:
                failures += await self.previous_failures()
            except Exception as read_error:
                logger.error(f"({self}) could not read previous summary: {read_error}")
            status = HealthStatus.ERROR
            message = str(e)
            summary = {"lastRun": now.isoformat(), "consecutiveFailures": failures}

        summary["status"] = status.value
        try:
            async with db.session() as session:
                async with session.begin():
                    await SystemHealth.write(
                        session,
                        HealthCheck.WATCHDOG,
                        status,
                        summary,
                        message=message,
                        checked_at=now,
                    )
        except Exception as e:
            logger.error(f"({self}) could not write summary: {e}")
        return summary

    def run(self) -> Dict[str, Any]:
        return util.aio.async_to_sync(self.arun())


class HealthMonitor:
    def __init__(
        self, now: datetime = None, warning: int = None, critical: int = None,
    ):
        self.now = now
        self.warning = warning or conf.HEALTH_WARNING_THRESHOLD
        self.critical = critical or conf.HEALTH_CRITICAL_THRESHOLD

    def __repr__(self):
        return f"{self.__class__.__name__}[{self.warning}/{self.critical}]"

    def evaluate(self, stuck: int):
        if stuck > self.critical:
            return (
                HealthStatus.CRITICAL,
                f"CRITICAL: {stuck} packets stuck - processing may be down",
            )
        if stuck > self.warning:
            return HealthStatus.WARNING, f"{stuck} packets stuck in incoming queue"
        return HealthStatus.OK, "All systems operational"

    async def arun(self) -> Dict[str, Any]:
        now = self.now or util.utcnow()
        async with db.session() as session:
            async with session.begin():
                last = await ProcessedPacket.last_processed(session)
                stuck = await IncomingPacket.agg.count(
                    session, IncomingPacket.dead_lettered_at.is_(None)
                )
                dead = await IncomingPacket.agg.count(
                    session, IncomingPacket.dead_lettered_at.isnot(None)
                )
                active = await WellStatus.agg.count(session)
                configured = await WellConfig.agg.count(session)

                hours_ago = None
                if last is not None and last.processed_at is not None:
                    hours_ago = util.humanize.round_half_up(
                        (now - last.processed_at).total_seconds() / 3600, 1
                    )

                status, message = self.evaluate(stuck)
                summary = {
                    "lastCheck": now.isoformat(),
                    "status": status.value,
                    "message": message,
                    "metrics": {
                        "lastProcessedHoursAgo": hours_ago,
                        "lastProcessedWell": last.well_name if last else "unknown",
                        "stuckIncoming": stuck,
                        "deadLettered": dead,
                        "activeWells": active,
                        "configuredWells": configured,
                    },
                }
                await SystemHealth.write(
                    session,
                    HealthCheck.OVERALL,
                    status,
                    summary,
                    message=message,
                    checked_at=now,
                )

        logger.info(f"({self}) status: {status.value} - {message}")
        return summary

    def run(self) -> Dict[str, Any]:
        return util.aio.async_to_sync(self.arun())
