# flake8: noqa
from db.models.bases import Base, Model
from db.models.health import SystemHealth
from db.models.packets import IncomingPacket, ProcessedPacket
from db.models.production import PerformanceSample, ProductionLog
from db.models.wells import WellConfig, WellStatus
