""" Constants """
from util.enums import Enum

BBLS_PER_FOOT_PER_TANK: int = 20
INCHES_PER_FOOT: int = 12
MINUTES_PER_DAY: int = 1440
SECONDS_PER_DAY: int = 86400

UNKNOWN: str = "Unknown"
CALCULATING: str = "Calculating..."
WELL_DOWN: str = "Down"
READY: str = "Ready"

WATCHDOG: str = "watchdog"

# processed packets with these prefixes are imported or audit copies, never live pulls
EXCLUDED_KEY_PREFIXES = ("history_", "edit_")

# ---Enums-------------------------------------------------------------------- #


class RequestType(str, Enum):
    PULL = "pull"
    EDIT = "edit"
    DELETE = "delete"
    WELL_HISTORY = "wellHistory"


class AnomalyLevel(int, Enum):
    NORMAL = 0
    FLAGGED = 1
    ANOMALY = 2


class PacketOutcome(str, Enum):
    PROCESSED = "processed"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"


class HealthStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"
    ERROR = "error"


class HealthCheck(str, Enum):
    WATCHDOG = "watchdog"
    OVERALL = "overall"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"
