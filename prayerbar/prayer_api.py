"""Astronomical time providers: local adhanpy computation or the Aladhan API."""

import datetime
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import pytz
import requests
from adhanpy.PrayerTimes import PrayerTimes
from adhanpy.calculation import CalculationMethod

from prayerbar.errors import ProviderTimeout
from prayerbar.prayers import (
    CalculationMethodOption,
    Coordinates,
    DailyTimes,
    DEFAULT_METHOD,
    Prayer,
)

ALADHAN_BASE = "https://api.aladhan.com/v1"

PRAYER_NAMES = [p.value for p in Prayer]

ADHANPY_METHODS = {
    CalculationMethodOption.NORTH_AMERICA: CalculationMethod.NORTH_AMERICA,
    CalculationMethodOption.MUSLIM_WORLD_LEAGUE: CalculationMethod.MUSLIM_WORLD_LEAGUE,
    CalculationMethodOption.EGYPTIAN: CalculationMethod.EGYPTIAN,
    CalculationMethodOption.KARACHI: CalculationMethod.KARACHI,
    CalculationMethodOption.UMM_AL_QURA: CalculationMethod.UMM_AL_QURA,
    CalculationMethodOption.MOON_SIGHTING_COMMITTEE: CalculationMethod.MOON_SIGHTING_COMMITTEE,
}

# Aladhan method ids: 1 = Karachi, 2 = ISNA, 3 = MWL, 4 = Umm al-Qura,
# 5 = Egyptian, 15 = Moonsighting Committee
ALADHAN_METHODS = {
    CalculationMethodOption.KARACHI: 1,
    CalculationMethodOption.NORTH_AMERICA: 2,
    CalculationMethodOption.MUSLIM_WORLD_LEAGUE: 3,
    CalculationMethodOption.UMM_AL_QURA: 4,
    CalculationMethodOption.EGYPTIAN: 5,
    CalculationMethodOption.MOON_SIGHTING_COMMITTEE: 15,
}


class TimeProvider(ABC):
    """Computes the six prayer events of one day for a location."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def compute(
        self,
        coordinates: Coordinates,
        date: datetime.date,
        method: CalculationMethodOption = DEFAULT_METHOD,
        tz=None,
    ) -> Optional[DailyTimes]:
        """
        Return the day's prayer times in `tz` (UTC when None).

        Returns None when the times are undefined for the location and date,
        e.g. at polar latitudes.
        """


class AdhanpyProvider(TimeProvider):
    """Local astronomical computation through the adhanpy library."""

    def compute(self, coordinates, date, method=DEFAULT_METHOD, tz=None):
        tz = tz or pytz.utc
        try:
            pt = PrayerTimes(
                (coordinates.lat, coordinates.lon),
                datetime.datetime(date.year, date.month, date.day),
                ADHANPY_METHODS[CalculationMethodOption(method)],
                time_zone=tz,
            )
        except (ArithmeticError, RuntimeError, ValueError) as e:
            self.logger.warning(f"Prayer times undefined at {coordinates} on {date}: {e}")
            return None

        times = {}
        for prayer in Prayer:
            value = getattr(pt, prayer.name.lower(), None)
            if value is None:
                self.logger.warning(f"{prayer.value} undefined at {coordinates} on {date}")
                return None
            times[prayer] = value
        return DailyTimes(date=date, times=times)


class AladhanProvider(TimeProvider):
    """Prayer times from api.aladhan.com, cached per location, date and method."""

    def __init__(self, timeout: int = 10):
        super().__init__()
        self.timeout = timeout
        self._cache: Dict[Tuple, DailyTimes] = {}

    def compute(self, coordinates, date, method=DEFAULT_METHOD, tz=None):
        tz = tz or pytz.utc
        method = CalculationMethodOption(method)
        key = (coordinates, date, method, str(tz))
        if key in self._cache:
            return self._cache[key]

        try:
            timings = fetch_timings(coordinates.lat, coordinates.lon, date, ALADHAN_METHODS[method], self.timeout)
            times = {p: time_str_to_dt(timings[p.value], date, tz) for p in Prayer}
        except requests.Timeout as e:
            raise ProviderTimeout(str(e)) from e
        except (requests.RequestException, ValueError, KeyError) as e:
            self.logger.error(f"Error fetching prayer times: {e}")
            return None

        daily = DailyTimes(date=date, times=times)
        self._cache[key] = daily
        return daily


def fetch_timings(lat: float, lon: float, date: datetime.date, method: int, timeout: int = 10) -> dict:
    """
    Fetch the six main prayer times for given coordinates and date.

    Returns {prayer_name: "HH:MM"}.
    Raises requests.RequestException or ValueError on failure.
    """
    date_str = date.strftime("%d-%m-%Y")
    url = f"{ALADHAN_BASE}/timings/{date_str}"
    params = {
        "latitude": lat,
        "longitude": lon,
        "method": method,
    }
    resp = requests.get(url, params=params, timeout=timeout)
    resp.raise_for_status()
    body = resp.json()
    if body.get("code") != 200:
        raise ValueError(f"Aladhan API error: {body.get('status')}")

    raw_timings = body["data"]["timings"]

    # Strip timezone suffixes like "04:30 (PKT)"
    timings = {}
    for name in PRAYER_NAMES:
        raw = raw_timings.get(name)
        if not raw:
            raise ValueError(f"Aladhan API returned no time for {name}")
        timings[name] = raw[:5]
    return timings


def time_str_to_dt(time_str: str, date: datetime.date, tz) -> datetime.datetime:
    """Convert an 'HH:MM' string on `date` to an aware datetime in `tz`."""
    hour, minute = map(int, time_str.split(":"))
    naive = datetime.datetime.combine(date, datetime.time(hour, minute))
    return tz.localize(naive) if hasattr(tz, "localize") else naive.replace(tzinfo=tz)
