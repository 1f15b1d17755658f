from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from const import INCHES_PER_FOOT, RequestType
from schemas.bases import CustomBaseModel, ORMBase
from util.dt import parse_packet_timestamp

__all__ = [
    "PullPacket",
    "EditRequest",
    "DeleteRequest",
    "HistoricalPull",
    "PacketIn",
    "PacketAccepted",
    "ProcessedPacketOut",
]

logger = logging.getLogger(__name__)


class PacketBase(CustomBaseModel):
    packet_id: Optional[str] = Field(None, alias="packetId")
    well_name: str = Field(..., alias="wellName", min_length=1)
    request_type: RequestType = Field(RequestType.PULL, alias="requestType")

    @field_validator("request_type", mode="before")
    @classmethod
    def default_request_type(cls, v: Any) -> Any:
        return v or RequestType.PULL

    @field_validator("well_name", mode="before")
    @classmethod
    def strip_well_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class PullPacket(PacketBase):
    """ A pull as submitted by the hauler app. Level may arrive in feet or, from the
        dashboard, as tank top inches. """

    date_time: Optional[str] = Field(None, alias="dateTime")
    date_time_utc: Optional[str] = Field(None, alias="dateTimeUTC")
    tank_level_feet: float = Field(..., alias="tankLevelFeet")
    bbls_taken: float = Field(0, alias="bblsTaken")
    driver_name: Optional[str] = Field(None, alias="driverName")
    driver_id: Optional[str] = Field(None, alias="driverId")
    well_down: bool = Field(False, alias="wellDown")
    predicted_level_inches: Optional[float] = Field(None, alias="predictedLevelInches")

    @model_validator(mode="before")
    @classmethod
    def level_from_inches(cls, values: Any) -> Any:
        if isinstance(values, dict):
            feet = values.get("tankLevelFeet", values.get("tank_level_feet"))
            inches = values.get("tankTopInches", values.get("tank_top_inches"))
            if feet is None and inches is not None:
                values = {**values, "tankLevelFeet": float(inches) / INCHES_PER_FOOT}
        return values

    @field_validator("bbls_taken", mode="before")
    @classmethod
    def none_to_zero(cls, v: Any) -> Any:
        return v or 0

    @field_validator("well_down", mode="before")
    @classmethod
    def none_to_false(cls, v: Any) -> Any:
        return bool(v)

    @field_validator("driver_id", "date_time_utc", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        if isinstance(v, datetime):
            return v.isoformat()
        return str(v)

    @property
    def tank_top_inches(self) -> float:
        return self.tank_level_feet * INCHES_PER_FOOT

    @property
    def timestamp(self) -> Optional[datetime]:
        return parse_packet_timestamp(self.date_time_utc, self.date_time)


class EditRequest(PacketBase):
    """ Overlay for a processed pull. Only supplied fields change. """

    request_type: RequestType = Field(RequestType.EDIT, alias="requestType")
    original_packet_id: str = Field(..., alias="originalPacketId", min_length=1)
    tank_top_inches: Optional[float] = Field(None, alias="tankTopInches")
    tank_level_feet: Optional[float] = Field(None, alias="tankLevelFeet")
    bbls_taken: Optional[float] = Field(None, alias="bblsTaken")
    date_time: Optional[str] = Field(None, alias="dateTime")
    date_time_utc: Optional[str] = Field(None, alias="dateTimeUTC")
    source: str = Field("dashboard", alias="source")

    @field_validator("source", mode="before")
    @classmethod
    def default_source(cls, v: Any) -> Any:
        return v or "dashboard"

    def new_top_inches(self, current: float) -> float:
        if self.tank_top_inches is not None:
            return self.tank_top_inches
        if self.tank_level_feet is not None:
            return self.tank_level_feet * INCHES_PER_FOOT
        return current

    @property
    def timestamp(self) -> Optional[datetime]:
        return parse_packet_timestamp(self.date_time_utc, self.date_time)


class DeleteRequest(PacketBase):
    request_type: RequestType = Field(RequestType.DELETE, alias="requestType")
    target_packet_id: Optional[str] = Field(None, alias="targetPacketId")
    original_packet_id: Optional[str] = Field(None, alias="originalPacketId")

    @property
    def target(self) -> Optional[str]:
        """ The processed packet to remove. Older producers put it in packetId. """
        return self.target_packet_id or self.original_packet_id or self.packet_id


class HistoricalPull(CustomBaseModel):
    """ Projection of a processed pull used by the production aggregator """

    timestamp: datetime
    tank_level_feet: float = 0
    bbls_taken: float = 0
    well_down: bool = False


class PacketIn(CustomBaseModel):
    """ Raw inbox document. Validation against the request schema happens in the
        handler that claims it. """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    well_name: str = Field(..., alias="wellName", min_length=1)
    request_type: Optional[RequestType] = Field(None, alias="requestType")
    packet_id: Optional[str] = Field(None, alias="packetId")

    @field_validator("request_type")
    @classmethod
    def not_well_history(cls, v: Optional[RequestType]) -> Optional[RequestType]:
        if v == RequestType.WELL_HISTORY:
            raise ValueError("wellHistory packets have no handler")
        return v

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class PacketAccepted(CustomBaseModel):
    packet_id: str = Field(..., alias="packetId")
    request_type: str = Field(..., alias="requestType")
    queued: bool = False


class ProcessedPacketOut(ORMBase):
    packet_id: str = Field(..., alias="packetId")
    well_name: str = Field(..., alias="wellName")
    date_time: Optional[str] = Field(None, alias="dateTime")
    date_time_utc: datetime = Field(..., alias="dateTimeUTC")
    tank_level_feet: float = Field(..., alias="tankLevelFeet")
    bbls_taken: float = Field(..., alias="bblsTaken")
    driver_name: Optional[str] = Field(None, alias="driverName")
    well_down: bool = Field(False, alias="wellDown")
    tank_top_inches: float = Field(..., alias="tankTopInches")
    tank_after_inches: float = Field(..., alias="tankAfterInches")
    time_dif_days: float = Field(..., alias="timeDifDays")
    recovery_inches: float = Field(..., alias="recoveryInches")
    flow_rate_days: float = Field(..., alias="flowRateDays")
    recovery_needed: Optional[float] = Field(None, alias="recoveryNeeded")
    est_time_to_pull: Optional[str] = Field(None, alias="estTimeToPull")
    est_date_time_pull: Optional[datetime] = Field(None, alias="estDateTimePull")
    anomaly_level: int = Field(0, alias="anomalyLevel")
    edited_by: Optional[str] = Field(None, alias="editedBy")
    was_edited: bool = Field(False, alias="wasEdited")


def payload_errors(errors: List[Dict[str, Any]]) -> List[str]:
    """ Compact 'field: message' strings from a pydantic ValidationError """
    return [f"{'.'.join(str(x) for x in e.get('loc', ()))}: {e.get('msg')}" for e in errors]
