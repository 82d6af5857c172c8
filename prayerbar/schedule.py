"""Derive the displayed daily schedule and the next prayer."""

import datetime
import logging
from dataclasses import replace
from typing import Mapping, Optional, Tuple

from prayerbar.errors import ComputationUnavailable
from prayerbar.prayers import (
    CalculationMethodOption,
    Coordinates,
    DailyTimes,
    DISPLAY_PRAYERS,
    JUMUAH,
    Prayer,
    ScheduleEntry,
    iqama_offset_minutes,
)

logger = logging.getLogger(__name__)

FRIDAY = 4  # datetime.date.weekday()


def display_name(prayer: Prayer, date: datetime.date) -> str:
    """Dhuhr is shown as Jumuah on Fridays."""
    if prayer is Prayer.DHUHR and date.weekday() == FRIDAY:
        return JUMUAH
    return prayer.value


def make_entry(times: DailyTimes, prayer: Prayer, offsets: Mapping, is_next: bool = False) -> ScheduleEntry:
    adhan = times.time_of(prayer)
    offset = iqama_offset_minutes(offsets, prayer)
    return ScheduleEntry(
        id=prayer.value,
        name=display_name(prayer, times.date),
        adhan_time=adhan,
        iqama_time=adhan + datetime.timedelta(minutes=offset),
        is_next=is_next,
    )


def _compute(provider, coordinates, date, method, tz) -> DailyTimes:
    times = provider.compute(coordinates, date, method, tz)
    if times is None:
        raise ComputationUnavailable(f"No prayer times for {coordinates} on {date}")
    return times


def build_schedule(
    provider,
    coordinates: Coordinates,
    date: datetime.date,
    method: CalculationMethodOption,
    iqama_offsets: Mapping,
    now: datetime.datetime,
    tz=None,
) -> Tuple[Tuple[ScheduleEntry, ...], Optional[ScheduleEntry]]:
    """
    Build the five displayed entries for `date` and pick the next prayer.

    Returns (entries, next_entry). After the last prayer of the day the next
    entry is a Fajr entry for the following day which is not part of
    `entries`.

    Raises ComputationUnavailable when the provider has no result; callers
    keep their previous schedule in that case.
    """
    times = _compute(provider, coordinates, date, method, tz)

    raw_next = times.next_prayer(now)
    if raw_next is Prayer.SUNRISE:
        raw_next = Prayer.DHUHR

    entries = tuple(
        make_entry(times, p, iqama_offsets, is_next=(p is raw_next)) for p in DISPLAY_PRAYERS
    )
    isha = entries[-1]

    # Both checks are kept: an Isha iqama offset can reach past midnight.
    if raw_next is None or now > isha.iqama_time:
        tomorrow = _compute(provider, coordinates, date + datetime.timedelta(days=1), method, tz)
        next_entry = make_entry(tomorrow, Prayer.FAJR, iqama_offsets, is_next=True)
        logger.debug(f"All prayers passed for {date}, next is Fajr at {next_entry.adhan_time}")
        return tuple(replace(e, is_next=False) for e in entries), next_entry

    next_entry = next(e for e in entries if e.is_next)
    return entries, next_entry
