#!/usr/bin/env python3
"""
Prayer Times menu-bar runner.

Computes the daily prayer times for the current location and every 30
seconds:
  - logs the menu-bar text (next prayer and countdown)
  - plays the adhan once at each prayer time
  - arms desktop notifications at each adhan and iqama time
"""

import argparse
import logging
import sys
import time

from prayerbar.audio import AdhanPlayer
from prayerbar.display import countdown_info, format_clock
from prayerbar.location import Location, LocationSource
from prayerbar.manager import PrayerManager
from prayerbar.notifier import DesktopNotificationSink
from prayerbar.prayer_api import AdhanpyProvider, AladhanProvider
from prayerbar.settings import SettingsStore
from prayerbar.triggers import TICK_INTERVAL_SECONDS

PROVIDERS = {
    "adhanpy": AdhanpyProvider,
    "aladhan": AladhanProvider,
}

logger = logging.getLogger("prayerbar")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Prayer times with adhan and notifications")
    parser.add_argument("--lat", type=float, help="latitude (overrides saved/IP location)")
    parser.add_argument("--lon", type=float, help="longitude")
    parser.add_argument("--tz", default="UTC", help="time zone name used with --lat/--lon")
    parser.add_argument("--name", default="Custom", help="place name used with --lat/--lon")
    parser.add_argument("--provider", choices=sorted(PROVIDERS), default="adhanpy")
    parser.add_argument("--once", action="store_true", help="print today's times and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)
    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --lon must be given together")
    return args


def print_schedule(manager: PrayerManager) -> None:
    entries, next_entry = manager.schedule()
    print(f"{manager.location_name}  {manager.hijri_date}")
    print(f"{'':10}{'Adhan':>8}{'Iqama':>8}")
    for entry in entries:
        marker = "*" if entry.is_next else " "
        print(f"{marker} {entry.name:8}{format_clock(entry.adhan_time):>8}{format_clock(entry.iqama_time):>8}")
    if next_entry is not None:
        label, remaining = countdown_info(next_entry, manager.now())
        print(f"{label} in {remaining}")


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = SettingsStore()
    location_source = LocationSource()
    if args.lat is not None:
        location_source.update(Location(args.lat, args.lon, args.name, args.tz))
    elif location_source.refresh() is None:
        logger.error("Could not determine location; pass --lat and --lon")
        return 1

    player = AdhanPlayer(volume=settings.volume())
    sink = DesktopNotificationSink(callback=lambda title, body: logger.info(f"{title}: {body}"))
    manager = PrayerManager(PROVIDERS[args.provider](), settings, location_source, player, sink)

    if args.once:
        # Print only: no notifications or adhan from a process about to exit
        if not manager.evaluate(triggers=False):
            logger.error("Prayer times are not available for this location")
            return 1
        print_schedule(manager)
        return 0

    manager.add_listener(lambda m: logger.info(f"Menu bar: {m.menu_bar_text or '(icon)'}"))
    manager.start(TICK_INTERVAL_SECONDS)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        manager.stop()
        sink.clear_all()
        player.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
