import random
import string
from datetime import datetime, timedelta
from typing import Any, Dict, Tuple

import pytz

import handlers
import ingest
from const import PacketOutcome
from db import db
from db.models import IncomingPacket

T0 = pytz.utc.localize(datetime(2024, 3, 1, 14, 0))  # 8am CST, production day 3/1


def rand_str(length: int = 10) -> str:
    return "".join(random.choice(string.ascii_letters) for i in range(length))


def at(days: float = 0, hours: float = 0) -> datetime:
    return T0 + timedelta(days=days, hours=hours)


def pull_payload(
    packet_id: str,
    when: datetime,
    level_feet: float,
    bbls: float = 0,
    well_name: str = "Test Well 1",
    **kwargs,
) -> Dict[str, Any]:
    return {
        "packetId": packet_id,
        "wellName": well_name,
        "dateTimeUTC": when.isoformat(),
        "tankLevelFeet": level_feet,
        "bblsTaken": bbls,
        "driverName": "J. Smith",
        **kwargs,
    }


def edit_payload(original_packet_id: str, well_name: str = "Test Well 1", **kwargs):
    return {
        "requestType": "edit",
        "wellName": well_name,
        "originalPacketId": original_packet_id,
        **kwargs,
    }


def delete_payload(target: str, well_name: str = "Test Well 1", **kwargs):
    return {
        "requestType": "delete",
        "wellName": well_name,
        "targetPacketId": target,
        **kwargs,
    }


async def enqueue(payload: Dict[str, Any], **kwargs) -> IncomingPacket:
    async with db.session() as s:
        async with s.begin():
            return await ingest.enqueue_packet(s, payload, **kwargs)


async def submit(payload: Dict[str, Any], now: datetime = None) -> Tuple[str, Any]:
    """ Add a packet to the inbox and run its handler, as a worker would """
    packet = await enqueue(payload)
    outcome: PacketOutcome = await handlers.process(
        packet.packet_id, IncomingPacket.request_type_of(payload), now=now
    )
    return packet.packet_id, outcome
