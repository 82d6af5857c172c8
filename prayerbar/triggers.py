"""Fire the adhan once per prayer per day and arm prayer notifications."""

import datetime
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from prayerbar.prayers import ScheduleEntry

TICK_INTERVAL_SECONDS = 30
ADHAN_WINDOW_SECONDS = 45


def date_key(now: datetime.datetime) -> str:
    return now.strftime("%Y-%m-%d")


@dataclass
class QuietHours:
    """Muted span in minutes of the day; `start > end` wraps past midnight."""

    enabled: bool = False
    start: int = 23 * 60
    end: int = 7 * 60

    def contains(self, now: datetime.datetime) -> bool:
        if not self.enabled or self.start == self.end:
            return False
        minute = now.hour * 60 + now.minute
        if self.start < self.end:
            return self.start <= minute < self.end
        return minute >= self.start or minute < self.end


@dataclass
class TriggerState:
    current_date_key: str = ""
    fired: Set[Tuple[str, str]] = field(default_factory=set)

    def roll_over(self, key: str) -> bool:
        """Start a clean day when `key` differs from the current one."""
        if key == self.current_date_key:
            return False
        self.current_date_key = key
        self.fired.clear()
        return True


class TriggerScheduler:
    """Sole owner of the fired-prayer state."""

    def __init__(self, player, sink, state: Optional[TriggerState] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.player = player
        self.sink = sink
        self.state = state or TriggerState()

    def evaluate(
        self,
        entries: Sequence[ScheduleEntry],
        now: datetime.datetime,
        audio_enabled: bool = True,
        quiet_hours: Optional[QuietHours] = None,
    ) -> List[str]:
        """
        Play the adhan for any entry whose adhan time is within the window
        around `now`, at most once per prayer per day.

        Returns the ids marked as fired on this call.
        """
        key = date_key(now)
        if self.state.roll_over(key):
            self.logger.info(f"New day {key}, adhan state reset")

        if not audio_enabled:
            return []

        muted = quiet_hours is not None and quiet_hours.contains(now)
        window = datetime.timedelta(seconds=ADHAN_WINDOW_SECONDS)
        fired = []
        for entry in entries:
            try:
                if abs(now - entry.adhan_time) >= window:
                    continue
                fired_key = (key, entry.id)
                if fired_key in self.state.fired:
                    continue
                self.state.fired.add(fired_key)
                fired.append(entry.id)
                if muted:
                    self.logger.info(f"Quiet hours, adhan for {entry.name} muted")
                    continue
                self.logger.info(f"Time for {entry.name}, playing adhan")
                self.player.play()
            except Exception as e:
                self.logger.error(f"Error checking adhan for {entry.id}: {e}", exc_info=True)
        return fired

    def reschedule_notifications(self, entries: Sequence[ScheduleEntry], now: datetime.datetime) -> int:
        """
        Replace all armed notifications with one per upcoming adhan and iqama.

        Returns the number of requests armed.
        """
        self.sink.clear_all()
        armed = 0
        for entry in entries:
            pending = [
                (f"adhan-{entry.id}", entry.adhan_time, entry.name, f"It's time for {entry.name} prayer"),
                (f"iqama-{entry.id}", entry.iqama_time, f"{entry.name} Iqama", f"Iqama for {entry.name} - prayer is starting"),
            ]
            for request_id, fire_at, title, body in pending:
                if fire_at <= now:
                    continue
                try:
                    self.sink.arm(request_id, fire_at, title, body)
                    armed += 1
                except Exception as e:
                    self.logger.error(f"Error scheduling notification {request_id}: {e}", exc_info=True)
        return armed
