"""User settings persisted as JSON, with an adapter for a remote replica."""

import json
import logging
import os
import threading
from typing import Any, Callable, Dict, List

from prayerbar.display import DEFAULT_DISPLAY_MODE, MenuBarDisplayMode
from prayerbar.location import CONFIG_DIR
from prayerbar.prayers import (
    CalculationMethodOption,
    DEFAULT_IQAMA_OFFSETS,
    DEFAULT_METHOD,
    DISPLAY_PRAYERS,
    Prayer,
)
from prayerbar.triggers import QuietHours

SETTINGS_FILE = os.path.join(CONFIG_DIR, "settings.json")

ADHAN_ENABLED = "adhanEnabled"
ADHAN_VOLUME = "adhanVolume"
CALCULATION_METHOD = "calculationMethod"
MENU_BAR_DISPLAY_MODE = "menuBarDisplayMode"
DND_ENABLED = "dndEnabled"
DND_START = "dndStart"
DND_END = "dndEnd"

IQAMA_KEYS = {p: f"iqama{p.value}" for p in DISPLAY_PRAYERS}

DEFAULTS: Dict[str, Any] = {
    ADHAN_ENABLED: True,
    ADHAN_VOLUME: 0.8,
    CALCULATION_METHOD: DEFAULT_METHOD.value,
    MENU_BAR_DISPLAY_MODE: DEFAULT_DISPLAY_MODE.value,
    DND_ENABLED: False,
    DND_START: 1380,  # 23:00
    DND_END: 420,  # 07:00
}
DEFAULTS.update({IQAMA_KEYS[p]: DEFAULT_IQAMA_OFFSETS[p] for p in DISPLAY_PRAYERS})

# Keys replicated between devices
SYNC_KEYS = [ADHAN_ENABLED, CALCULATION_METHOD, MENU_BAR_DISPLAY_MODE] + [IQAMA_KEYS[p] for p in DISPLAY_PRAYERS]

# Reasons a remote replica reports for an external change
SERVER_CHANGE = 0
INITIAL_SYNC_CHANGE = 1
QUOTA_VIOLATION_CHANGE = 2
ACCOUNT_CHANGE = 3


class SettingsStore:
    """Key-value settings over a JSON file; unset keys read their defaults."""

    def __init__(self, path: str = SETTINGS_FILE):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.path = path
        self._lock = threading.Lock()
        self._listeners: List[Callable[[List[str]], None]] = []
        self._values = self._load()

    def _load(self) -> dict:
        if not os.path.isfile(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Ignoring unreadable settings file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring settings file {self.path}: not an object")
            return {}
        return data

    def _save(self) -> None:
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._values, f, indent=2)

    def add_listener(self, listener: Callable[[List[str]], None]) -> None:
        """Register `listener(changed_keys)` to be called after every change."""
        self._listeners.append(listener)

    def _notify(self, keys: List[str]) -> None:
        for listener in list(self._listeners):
            try:
                listener(keys)
            except Exception as e:
                self.logger.error(f"Settings listener failed: {e}", exc_info=True)

    def get(self, key: str) -> Any:
        with self._lock:
            if key in self._values:
                return self._values[key]
        return DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._values

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: Dict[str, Any]) -> None:
        """
        Store several values, persist once and notify listeners once.

        A failed write is logged; the new values stay in effect for this run
        and listeners are still notified.
        """
        if not values:
            return
        with self._lock:
            self._values.update(values)
            try:
                self._save()
            except OSError as e:
                self.logger.error(f"Error saving settings to {self.path}: {e}")
        self._notify(list(values))

    def audio_enabled(self) -> bool:
        return bool(self.get(ADHAN_ENABLED))

    def volume(self) -> float:
        try:
            return max(0.0, min(1.0, float(self.get(ADHAN_VOLUME))))
        except (TypeError, ValueError):
            return DEFAULTS[ADHAN_VOLUME]

    def calculation_method(self) -> CalculationMethodOption:
        raw = self.get(CALCULATION_METHOD)
        try:
            return CalculationMethodOption(raw)
        except ValueError:
            self.logger.warning(f"Unknown calculation method {raw!r}, using {DEFAULT_METHOD.value}")
            return DEFAULT_METHOD

    def display_mode(self) -> MenuBarDisplayMode:
        raw = self.get(MENU_BAR_DISPLAY_MODE)
        try:
            return MenuBarDisplayMode(raw)
        except ValueError:
            self.logger.warning(f"Unknown menu bar display mode {raw!r}")
            return DEFAULT_DISPLAY_MODE

    def iqama_offsets(self) -> Dict[Prayer, Any]:
        """Raw offsets; clamping and validation happen when the schedule is built."""
        return {p: self.get(IQAMA_KEYS[p]) for p in DISPLAY_PRAYERS}

    def quiet_hours(self) -> QuietHours:
        try:
            start, end = int(self.get(DND_START)), int(self.get(DND_END))
        except (TypeError, ValueError):
            start, end = DEFAULTS[DND_START], DEFAULTS[DND_END]
        return QuietHours(enabled=bool(self.get(DND_ENABLED)), start=start, end=end)


class SettingsSync:
    """
    Mirror the synced keys between the local store and a remote replica.

    `remote` is any mapping-like object (get / __setitem__); the replica
    calls `on_remote_change` when values change on another device.
    """

    def __init__(self, store: SettingsStore, remote):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.store = store
        self.remote = remote

    def start(self) -> None:
        """Push local settings to the replica (local wins on first launch)."""
        self.push_to_remote()

    def push_to_remote(self) -> None:
        for key in SYNC_KEYS:
            if self.store.has(key):
                self.remote[key] = self.store.get(key)

    def on_remote_change(self, reason: int, changed_keys: List[str]) -> List[str]:
        """
        Pull changed values into the local store.

        Only server changes and the initial sync are applied. Returns the keys
        that were pulled.
        """
        if reason not in (SERVER_CHANGE, INITIAL_SYNC_CHANGE):
            self.logger.info(f"Ignoring remote settings change, reason {reason}")
            return []

        pulled = {}
        for key in changed_keys:
            if key not in SYNC_KEYS:
                continue
            value = self.remote.get(key)
            if value is not None:
                pulled[key] = value
        self.store.update(pulled)
        return list(pulled)
