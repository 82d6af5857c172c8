"""Location detection using IP geolocation and manual config."""

import json
import logging
import os
import threading
from dataclasses import asdict, dataclass
from typing import Callable, List, Optional

import requests

from prayerbar.errors import LocationUnavailable
from prayerbar.prayers import Coordinates

IPAPI_URL = "http://ip-api.com/json/"

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".prayerbar")
CONFIG_FILE = os.path.join(CONFIG_DIR, "location.json")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    lat: float
    lon: float
    name: str = "Unknown"
    timezone: str = "UTC"

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(self.lat, self.lon)


def place_name(city: Optional[str], country: Optional[str]) -> str:
    """Join the non-empty parts as "City, Country"."""
    name = ", ".join(part for part in (city, country) if part)
    return name or "Unknown"


def get_location(timeout: int = 5) -> Optional[Location]:
    """
    Detect current location via IP geolocation.

    Returns None when the lookup fails.
    """
    try:
        resp = requests.get(
            IPAPI_URL,
            params={"fields": "city,country,lat,lon,timezone,status,message"},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"IP geolocation failed: {e}")
        return None

    if data.get("status") != "success":
        logger.warning(f"IP geolocation refused: {data.get('message')}")
        return None
    try:
        return Location(
            lat=float(data["lat"]),
            lon=float(data["lon"]),
            name=place_name(data.get("city"), data.get("country")),
            timezone=data.get("timezone") or "UTC",
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"IP geolocation returned no coordinates: {e}")
        return None


def save_manual_location(location: Location) -> None:
    """Save a manually-set location to the config file."""
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        json.dump(asdict(location), f, indent=2)


def load_manual_location() -> Optional[Location]:
    """Load a previously saved manual location, or return None."""
    if not os.path.isfile(CONFIG_FILE):
        return None
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
        return Location(
            lat=float(data["lat"]),
            lon=float(data["lon"]),
            name=data.get("name", "Unknown"),
            timezone=data.get("timezone", "UTC"),
        )
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"Ignoring saved location: {e}")
    return None


def clear_manual_location() -> None:
    """Remove the saved manual location config."""
    if os.path.isfile(CONFIG_FILE):
        os.remove(CONFIG_FILE)


class LocationSource:
    """Holds the most recent location and tells subscribers about updates."""

    def __init__(self, location: Optional[Location] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._location = location
        self._subscribers: List[Callable[[Location], None]] = []

    @property
    def location(self) -> Optional[Location]:
        return self._location

    @property
    def name(self) -> str:
        return self._location.name if self._location else "Locating..."

    def require(self) -> Location:
        if self._location is None:
            raise LocationUnavailable("No location yet")
        return self._location

    def subscribe(self, callback: Callable[[Location], None]) -> None:
        self._subscribers.append(callback)

    def update(self, location: Location) -> None:
        self._location = location
        self.logger.info(f"Location updated: {location.name} ({location.lat}, {location.lon})")
        for callback in list(self._subscribers):
            try:
                callback(location)
            except Exception as e:
                self.logger.error(f"Location subscriber failed: {e}", exc_info=True)

    def refresh(self) -> Optional[Location]:
        """Use the saved manual location, else look it up by IP."""
        location = load_manual_location() or get_location()
        if location is None:
            self.logger.warning("Location unavailable")
            return None
        self.update(location)
        return location

    def refresh_async(self) -> threading.Thread:
        t = threading.Thread(target=self.refresh, daemon=True)
        t.start()
        return t
