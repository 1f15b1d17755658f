""" Producer side of the inbox: persist a raw packet, then hand its key to the
    worker queue for its request type. """

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from kombu.exceptions import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from db import db
from db.models import IncomingPacket

logger = logging.getLogger(__name__)

Notifier = Callable[[IncomingPacket], bool]


async def enqueue_packet(
    session: AsyncSession,
    payload: Dict[str, Any],
    packet_id: str = None,
    received_at: datetime = None,
    attempts: int = 0,
) -> IncomingPacket:
    """ Add a packet to the inbox within the caller's transaction """
    packet = IncomingPacket.build(
        payload, packet_id=packet_id, received_at=received_at, attempts=attempts
    )
    session.add(packet)
    await session.flush()
    logger.debug(f"(ingest) queued {packet.request_type} {packet.packet_id}")
    return packet


def notify(packet: IncomingPacket) -> bool:
    """ Send the packet's key to its worker queue. An unreachable broker is logged and
        left to the watchdog, which retriggers whatever remains in the inbox. """
    from cq.tasks import process_packet

    try:
        process_packet.apply_async(
            kwargs={
                "packet_id": packet.packet_id,
                "request_type": packet.request_type,
            }
        )
        return True
    except OperationalError as e:
        logger.warning(f"(ingest) broker unavailable for {packet.packet_id}: {e}")
        return False


async def submit(
    payload: Dict[str, Any],
    packet_id: str = None,
    on_created: Optional[Notifier] = notify,
) -> Tuple[IncomingPacket, bool]:
    """ Commit a packet to the inbox, then notify the workers """
    async with db.session() as session:
        async with session.begin():
            packet = await enqueue_packet(session, payload, packet_id=packet_id)

    queued = on_created(packet) if on_created else False
    return packet, queued
