"""Desktop notifications armed for a wall-clock time of day."""

import datetime
import logging
import threading
from typing import Callable, Dict, Optional

from plyer import notification as plyer_notification

APP_NAME = "Prayer Times"
APP_ICON = ""  # Path to icon file; empty = default


def _send_plyer(title: str, message: str, timeout: int = 10) -> None:
    """Send a desktop notification via plyer (cross-platform)."""
    kwargs = dict(
        app_name=APP_NAME,
        title=title,
        message=message,
        timeout=timeout,
    )
    if APP_ICON:
        kwargs["app_icon"] = APP_ICON
    plyer_notification.notify(**kwargs)


def next_wall_clock_occurrence(fire_at: datetime.datetime, now: datetime.datetime) -> datetime.datetime:
    """
    Return the next time at or after `now` whose time of day matches
    `fire_at`, on whichever day that is.
    """
    candidate = now.replace(
        hour=fire_at.hour,
        minute=fire_at.minute,
        second=fire_at.second,
        microsecond=fire_at.microsecond,
    )
    if candidate < now:
        candidate += datetime.timedelta(days=1)
    return candidate


class DesktopNotificationSink:
    """
    Notification requests keyed by a stable identifier.

    Arming an identifier again replaces the pending request.
    """

    def __init__(self, callback: Optional[Callable[[str, str], None]] = None, clock=None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.callback = callback
        self._clock = clock or datetime.datetime.now
        self._lock = threading.Lock()
        self._timers: Dict[str, threading.Timer] = {}

    @property
    def pending_ids(self) -> list:
        with self._lock:
            return sorted(self._timers)

    def arm(self, request_id: str, fire_at: datetime.datetime, title: str, body: str) -> None:
        now = self._clock(fire_at.tzinfo) if fire_at.tzinfo else self._clock()
        when = next_wall_clock_occurrence(fire_at, now)
        delay = (when - now).total_seconds()

        timer = threading.Timer(delay, self._deliver, args=(request_id, title, body))
        timer.daemon = True
        with self._lock:
            previous = self._timers.pop(request_id, None)
            if previous is not None:
                previous.cancel()
            self._timers[request_id] = timer
        timer.start()
        self.logger.debug(f"Armed {request_id} for {when} ({int(delay)}s)")

    def clear_all(self) -> None:
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()

    def _deliver(self, request_id: str, title: str, body: str) -> None:
        with self._lock:
            self._timers.pop(request_id, None)
        try:
            _send_plyer(title, body, timeout=30)
        except Exception as e:
            self.logger.error(f"Error sending notification {request_id}: {e}")
        if self.callback:
            self.callback(title, body)
