import logging

import starlette.status as codes
from fastapi import APIRouter

import ingest
from schemas.packet import PacketAccepted, PacketIn

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=PacketAccepted, status_code=codes.HTTP_202_ACCEPTED)
async def create_packet(packet: PacketIn):
    """ Add a packet to the inbox and queue it for its handler """
    packet, queued = await ingest.submit(packet.payload())
    return PacketAccepted(
        packet_id=packet.packet_id, request_type=packet.request_type, queued=queued
    )
