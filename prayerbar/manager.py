"""Single evaluation entry point driven by timer ticks, location and settings."""

import datetime
import json
import logging
import os
import threading
from typing import Callable, List, Optional, Tuple

import pytz

from prayerbar.display import (
    countdown_info,
    format_remaining,
    hijri_date_string,
    menu_bar_text,
    widget_snapshot,
)
from prayerbar.errors import ComputationUnavailable, LocationUnavailable, ProviderTimeout
from prayerbar.prayers import CalculationMethodOption, Prayer, ScheduleEntry
from prayerbar.schedule import build_schedule
from prayerbar.settings import CALCULATION_METHOD, CONFIG_DIR, IQAMA_KEYS, SettingsStore
from prayerbar.triggers import TICK_INTERVAL_SECONDS, TriggerScheduler

WIDGET_FILE = os.path.join(CONFIG_DIR, "widget.json")


class PrayerManager:
    """
    Keeps the published schedule for the current location.

    Every external event (timer tick, location update, settings change)
    calls `evaluate`, which runs under one lock so a tick never sees a
    half-published schedule.
    """

    def __init__(
        self,
        provider,
        settings: SettingsStore,
        location_source,
        player,
        sink,
        scheduler: Optional[TriggerScheduler] = None,
        widget_path: Optional[str] = WIDGET_FILE,
        clock: Optional[Callable[[object], datetime.datetime]] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.provider = provider
        self.settings = settings
        self.location_source = location_source
        self.player = player
        self.scheduler = scheduler or TriggerScheduler(player, sink)
        self.widget_path = widget_path
        self._clock = clock or datetime.datetime.now
        self._lock = threading.RLock()
        self._listeners: List[Callable[["PrayerManager"], None]] = []
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.entries: Tuple[ScheduleEntry, ...] = ()
        self.next_entry: Optional[ScheduleEntry] = None
        self.menu_bar_text = ""
        self.hijri_date = ""

        settings.add_listener(self._on_settings_changed)
        location_source.subscribe(self._on_location_changed)

    @property
    def location_name(self) -> str:
        return self.location_source.name

    @property
    def tz(self):
        location = self.location_source.location
        if location is None:
            return pytz.utc
        try:
            return pytz.timezone(location.timezone)
        except pytz.UnknownTimeZoneError:
            self.logger.warning(f"Unknown time zone {location.timezone}, using UTC")
            return pytz.utc

    def now(self) -> datetime.datetime:
        return self._clock(self.tz)

    def add_listener(self, listener: Callable[["PrayerManager"], None]) -> None:
        """Register `listener(manager)`, called after every evaluation."""
        self._listeners.append(listener)

    def schedule(self) -> Tuple[Tuple[ScheduleEntry, ...], Optional[ScheduleEntry]]:
        """The published (entries, next_entry) pair, read under the evaluation lock."""
        with self._lock:
            return self.entries, self.next_entry

    def evaluate(self, now: Optional[datetime.datetime] = None, triggers: bool = True) -> bool:
        """
        Rebuild the schedule, rearm notifications and check for adhan.

        With `triggers=False` only the schedule and menu-bar text are
        published, for callers that just print them.

        Returns False when the previous schedule was kept because no location
        or no prayer times were available.
        """
        with self._lock:
            now = now or self.now()
            updated = self._rebuild(now, triggers)
            self.menu_bar_text = menu_bar_text(self.next_entry, self.settings.display_mode(), now)

        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                self.logger.error(f"Listener failed: {e}", exc_info=True)
        return updated

    def _rebuild(self, now: datetime.datetime, triggers: bool = True) -> bool:
        try:
            location = self.location_source.require()
            entries, next_entry = build_schedule(
                self.provider,
                location.coordinates,
                now.date(),
                self.settings.calculation_method(),
                self.settings.iqama_offsets(),
                now,
                self.tz,
            )
        except LocationUnavailable:
            self.logger.debug("No location yet, keeping current schedule")
            return False
        except (ComputationUnavailable, ProviderTimeout) as e:
            self.logger.warning(f"Keeping previous schedule: {e}")
            return False

        self.entries = entries
        self.next_entry = next_entry
        self.hijri_date = hijri_date_string(now.date())
        if not triggers:
            return True

        self.scheduler.reschedule_notifications(entries, now)
        self.player.volume = self.settings.volume()
        self.scheduler.evaluate(
            entries,
            now,
            audio_enabled=self.settings.audio_enabled(),
            quiet_hours=self.settings.quiet_hours(),
        )
        self._write_widget_snapshot()
        return True

    def _write_widget_snapshot(self) -> None:
        if not self.widget_path:
            return
        snapshot = widget_snapshot(self.entries, self.next_entry, self.hijri_date)
        try:
            os.makedirs(os.path.dirname(self.widget_path) or ".", exist_ok=True)
            with open(self.widget_path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
        except OSError as e:
            self.logger.error(f"Error writing widget snapshot: {e}")

    def countdown_info(self, entry: Optional[ScheduleEntry] = None, now=None) -> Tuple[str, str]:
        entry = entry or self.next_entry
        if entry is None:
            return "", ""
        return countdown_info(entry, now or self.now())

    def time_remaining(self, entry: ScheduleEntry, now=None) -> str:
        return format_remaining(entry.adhan_time, now or self.now())

    def set_iqama_offset(self, prayer: Prayer, minutes: int) -> None:
        self.settings.set(IQAMA_KEYS[Prayer(prayer)], minutes)

    def set_calculation_method(self, method: CalculationMethodOption) -> None:
        self.settings.set(CALCULATION_METHOD, CalculationMethodOption(method).value)

    def _on_settings_changed(self, keys) -> None:
        self.logger.debug(f"Settings changed: {keys}")
        self.evaluate()

    def _on_location_changed(self, location) -> None:
        self.evaluate()

    def start(self, interval: float = TICK_INTERVAL_SECONDS) -> threading.Thread:
        """Evaluate now and then every `interval` seconds on a daemon thread."""
        self._stop.clear()

        def run():
            while True:
                try:
                    self.evaluate()
                except Exception as e:
                    self.logger.error(f"Evaluation failed: {e}", exc_info=True)
                if self._stop.wait(interval):
                    break

        self._thread = threading.Thread(target=run, name="prayerbar-tick", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
