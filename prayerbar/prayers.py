"""Prayer kinds, calculation presets and schedule data types."""

import datetime
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


class Prayer(str, Enum):
    # Declaration order is the canonical order and the tie-break order.
    FAJR = "Fajr"
    SUNRISE = "Sunrise"
    DHUHR = "Dhuhr"
    ASR = "Asr"
    MAGHRIB = "Maghrib"
    ISHA = "Isha"


DISPLAY_PRAYERS = (Prayer.FAJR, Prayer.DHUHR, Prayer.ASR, Prayer.MAGHRIB, Prayer.ISHA)

JUMUAH = "Jumuah"

# Minutes after adhan when iqama (congregation) starts
DEFAULT_IQAMA_OFFSETS = {
    Prayer.FAJR: 20,
    Prayer.DHUHR: 15,
    Prayer.ASR: 10,
    Prayer.MAGHRIB: 5,
    Prayer.ISHA: 15,
}
MIN_IQAMA_OFFSET = 0
MAX_IQAMA_OFFSET = 60


class CalculationMethodOption(str, Enum):
    NORTH_AMERICA = "North America (ISNA)"
    MUSLIM_WORLD_LEAGUE = "Muslim World League"
    EGYPTIAN = "Egyptian"
    KARACHI = "Karachi"
    UMM_AL_QURA = "Umm al-Qura"
    MOON_SIGHTING_COMMITTEE = "Moonsighting Committee"


DEFAULT_METHOD = CalculationMethodOption.NORTH_AMERICA


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float


@dataclass(frozen=True)
class DailyTimes:
    """The six astronomical events of one calendar day, as aware datetimes."""

    date: datetime.date
    times: Mapping[Prayer, datetime.datetime] = field(default_factory=dict)

    def time_of(self, prayer: Prayer) -> datetime.datetime:
        return self.times[prayer]

    def next_prayer(self, now: datetime.datetime) -> Optional[Prayer]:
        """
        Return the earliest event strictly after `now`, or None if all passed.

        Equal instants resolve to the kind declared first in `Prayer`.
        """
        upcoming = [p for p in Prayer if self.times[p] > now]
        if not upcoming:
            return None
        return min(upcoming, key=lambda p: self.times[p])


@dataclass(frozen=True)
class ScheduleEntry:
    id: str
    name: str
    adhan_time: datetime.datetime
    iqama_time: datetime.datetime
    is_next: bool = False


def iqama_offset_minutes(offsets: Mapping, prayer: Prayer) -> int:
    """
    Look up the iqama offset for `prayer`, clamped to [0, 60] minutes.

    Missing or malformed values fall back to the default offset.
    """
    default = DEFAULT_IQAMA_OFFSETS[prayer]
    raw = offsets.get(prayer, default) if offsets else default
    try:
        minutes = int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid iqama offset {raw!r} for {prayer.value}, using {default}")
        minutes = default
    return max(MIN_IQAMA_OFFSET, min(MAX_IQAMA_OFFSET, minutes))
