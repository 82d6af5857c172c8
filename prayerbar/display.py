"""Countdown strings, menu-bar text and the widget snapshot."""

import datetime
import logging
from enum import Enum
from typing import Optional, Sequence, Tuple

from hijri_converter import Gregorian

from prayerbar.prayers import ScheduleEntry

logger = logging.getLogger(__name__)

NOW = "Now"


class MenuBarDisplayMode(str, Enum):
    NAME_AND_COUNTDOWN = "Name + Countdown"
    COUNTDOWN_ONLY = "Countdown Only"
    NAME_AND_TIME = "Name + Time"
    ICON_ONLY = "Icon Only"


DEFAULT_DISPLAY_MODE = MenuBarDisplayMode.NAME_AND_COUNTDOWN


def format_remaining(target: datetime.datetime, now: datetime.datetime) -> str:
    """
    Format the time left until `target` as "2h 5m" or "5m".

    Hours and minutes are truncated, never rounded: 59 seconds is "0m".
    Returns "Now" once `target` is reached.
    """
    if target <= now:
        return NOW
    seconds = int((target - now).total_seconds())
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_clock(dt: datetime.datetime) -> str:
    return dt.strftime("%H:%M")


def countdown_info(entry: ScheduleEntry, now: datetime.datetime) -> Tuple[str, str]:
    """
    Return (label, time) for the countdown line of `entry`.

    Counts down to the adhan, then to the iqama ("Fajr iqama", "15m"),
    then reports "Now".
    """
    if now < entry.adhan_time:
        return entry.name, format_remaining(entry.adhan_time, now)
    if now < entry.iqama_time:
        return f"{entry.name} iqama", format_remaining(entry.iqama_time, now)
    return entry.name, NOW


def menu_bar_text(
    next_entry: Optional[ScheduleEntry],
    mode: MenuBarDisplayMode,
    now: datetime.datetime,
) -> str:
    if next_entry is None:
        return ""
    mode = MenuBarDisplayMode(mode)
    if mode is MenuBarDisplayMode.ICON_ONLY:
        return ""
    if mode is MenuBarDisplayMode.NAME_AND_TIME:
        return f"{next_entry.name} {format_clock(next_entry.adhan_time)}"
    countdown = format_remaining(next_entry.adhan_time, now)
    if mode is MenuBarDisplayMode.COUNTDOWN_ONLY:
        return countdown
    return f"{next_entry.name} {countdown}"


def hijri_date_string(date: datetime.date) -> str:
    """Hijri date like "15 Sha'ban 1447", or "" outside the supported range."""
    try:
        hijri = Gregorian(date.year, date.month, date.day).to_hijri()
    except OverflowError:
        logger.warning(f"No Hijri date available for {date}")
        return ""
    return f"{hijri.day} {hijri.month_name()} {hijri.year}"


def widget_snapshot(
    entries: Sequence[ScheduleEntry],
    next_entry: Optional[ScheduleEntry],
    hijri: str = "",
) -> dict:
    """
    Build the JSON document shared with the desktop widget.

    Times are epoch seconds.
    """
    snapshot = {
        "hijriDate": hijri,
        "allPrayerTimes": [
            {"name": e.name, "time": e.adhan_time.timestamp(), "isNext": e.is_next}
            for e in entries
        ],
    }
    if next_entry is not None:
        snapshot["nextPrayerName"] = next_entry.name
        snapshot["nextPrayerTime"] = next_entry.adhan_time.timestamp()
        snapshot["nextIqamaTime"] = next_entry.iqama_time.timestamp()
    return snapshot
