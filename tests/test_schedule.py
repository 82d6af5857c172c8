"""Tests for the schedule module."""

import datetime
import unittest

import pytz

from prayerbar.errors import ComputationUnavailable
from prayerbar.prayer_api import time_str_to_dt
from prayerbar.prayers import (
    Coordinates,
    DailyTimes,
    DEFAULT_METHOD,
    DISPLAY_PRAYERS,
    Prayer,
    iqama_offset_minutes,
)
from prayerbar.schedule import build_schedule, display_name

TIMINGS = {
    "Fajr": "05:10",
    "Sunrise": "06:30",
    "Dhuhr": "12:15",
    "Asr": "15:30",
    "Maghrib": "18:05",
    "Isha": "19:30",
}

COORDS = Coordinates(32.78, -96.80)
THURSDAY = datetime.date(2025, 3, 6)
FRIDAY = datetime.date(2025, 3, 7)


class FakeProvider:
    def __init__(self, timings=TIMINGS, fail_dates=()):
        self.timings = timings
        self.fail_dates = set(fail_dates)
        self.calls = []

    def compute(self, coordinates, date, method=DEFAULT_METHOD, tz=None):
        self.calls.append(date)
        if self.timings is None or date in self.fail_dates:
            return None
        tz = tz or pytz.utc
        return DailyTimes(date, {p: time_str_to_dt(self.timings[p.value], date, tz) for p in Prayer})


def at(date, hour, minute, second=0):
    return pytz.utc.localize(datetime.datetime(date.year, date.month, date.day, hour, minute, second))


def build(now, provider=None, offsets=None, date=None):
    return build_schedule(
        provider or FakeProvider(),
        COORDS,
        date or now.date(),
        DEFAULT_METHOD,
        offsets if offsets is not None else {},
        now,
        pytz.utc,
    )


class TestBuildSchedule(unittest.TestCase):
    def test_five_entries_in_canonical_order(self):
        entries, _ = build(at(THURSDAY, 12, 0))
        self.assertEqual([e.id for e in entries], ["Fajr", "Dhuhr", "Asr", "Maghrib", "Isha"])
        for entry in entries:
            self.assertGreater(entry.iqama_time, entry.adhan_time)

    def test_default_iqama_offsets(self):
        entries, _ = build(at(THURSDAY, 12, 0))
        fajr = entries[0]
        self.assertEqual(fajr.adhan_time, at(THURSDAY, 5, 10))
        self.assertEqual(fajr.iqama_time, at(THURSDAY, 5, 30))
        self.assertEqual(entries[3].iqama_time, at(THURSDAY, 18, 10))

    def test_custom_offsets(self):
        entries, _ = build(at(THURSDAY, 12, 0), offsets={Prayer.ASR: 25})
        self.assertEqual(entries[2].iqama_time, at(THURSDAY, 15, 55))

    def test_next_prayer_is_upcoming_one(self):
        entries, next_entry = build(at(THURSDAY, 12, 0))
        self.assertEqual(next_entry.id, "Dhuhr")
        self.assertTrue(next_entry.is_next)
        self.assertEqual(sum(e.is_next for e in entries), 1)

    def test_next_before_fajr(self):
        _, next_entry = build(at(THURSDAY, 3, 0))
        self.assertEqual(next_entry.id, "Fajr")

    def test_sunrise_advances_to_dhuhr(self):
        entries, next_entry = build(at(THURSDAY, 6, 0))
        self.assertEqual(next_entry.id, "Dhuhr")
        self.assertTrue(entries[1].is_next)

    def test_next_is_in_displayed_entries(self):
        entries, next_entry = build(at(THURSDAY, 16, 0))
        self.assertEqual(next_entry.id, "Maghrib")
        self.assertIn(next_entry, entries)

    def test_exactly_one_next_throughout_the_day(self):
        now = at(THURSDAY, 0, 0)
        while now.date() == THURSDAY:
            entries, next_entry = build(now)
            flagged = [e for e in entries if e.is_next]
            if next_entry in entries:
                self.assertEqual(flagged, [next_entry])
            else:
                self.assertEqual(flagged, [])
                self.assertTrue(next_entry.is_next)
            now += datetime.timedelta(minutes=7)


class TestFridayRule(unittest.TestCase):
    def test_dhuhr_is_jumuah_on_friday(self):
        entries, _ = build(at(FRIDAY, 9, 0))
        dhuhr = entries[1]
        self.assertEqual(dhuhr.name, "Jumuah")
        self.assertEqual(dhuhr.id, "Dhuhr")

    def test_dhuhr_on_other_days(self):
        for offset in range(7):
            date = THURSDAY + datetime.timedelta(days=offset)
            if date == FRIDAY:
                continue
            self.assertEqual(display_name(Prayer.DHUHR, date), "Dhuhr")

    def test_other_prayers_keep_name_on_friday(self):
        self.assertEqual(display_name(Prayer.ASR, FRIDAY), "Asr")


class TestRollover(unittest.TestCase):
    def test_after_isha_iqama_next_is_tomorrow_fajr(self):
        timings = dict(TIMINGS, Isha="23:35")
        provider = FakeProvider(timings)
        entries, next_entry = build(at(FRIDAY, 23, 58), provider=provider)

        self.assertEqual(entries[-1].iqama_time, at(FRIDAY, 23, 50))
        self.assertEqual(next_entry.id, "Fajr")
        self.assertEqual(next_entry.name, "Fajr")
        self.assertTrue(next_entry.is_next)
        self.assertEqual(next_entry.adhan_time, at(FRIDAY + datetime.timedelta(days=1), 5, 10))
        self.assertNotIn(next_entry, entries)
        self.assertEqual(len(entries), 5)
        self.assertFalse(any(e.is_next for e in entries))
        self.assertEqual(provider.calls, [FRIDAY, FRIDAY + datetime.timedelta(days=1)])

    def test_between_isha_adhan_and_iqama_rolls_over(self):
        # Every adhan of the day has passed, so the next prayer is tomorrow's Fajr.
        _, next_entry = build(at(THURSDAY, 19, 35))
        self.assertEqual(next_entry.adhan_time.date(), FRIDAY)

    def test_tomorrow_fajr_uses_fajr_offset(self):
        _, next_entry = build(at(THURSDAY, 22, 0), offsets={Prayer.FAJR: 30})
        self.assertEqual(next_entry.iqama_time, at(FRIDAY, 5, 40))

    def test_tomorrow_unavailable_raises(self):
        provider = FakeProvider(fail_dates=[FRIDAY])
        with self.assertRaises(ComputationUnavailable):
            build(at(THURSDAY, 22, 0), provider=provider)


class TestComputationUnavailable(unittest.TestCase):
    def test_raises_when_provider_has_no_result(self):
        with self.assertRaises(ComputationUnavailable):
            build(at(THURSDAY, 12, 0), provider=FakeProvider(timings=None))


class TestIqamaOffset(unittest.TestCase):
    def test_defaults_when_missing(self):
        self.assertEqual(iqama_offset_minutes({}, Prayer.FAJR), 20)
        self.assertEqual(iqama_offset_minutes(None, Prayer.MAGHRIB), 5)

    def test_clamps_out_of_range(self):
        self.assertEqual(iqama_offset_minutes({Prayer.ISHA: 90}, Prayer.ISHA), 60)
        self.assertEqual(iqama_offset_minutes({Prayer.ISHA: -5}, Prayer.ISHA), 0)

    def test_malformed_value_uses_default(self):
        self.assertEqual(iqama_offset_minutes({Prayer.ASR: "soon"}, Prayer.ASR), 10)
        self.assertEqual(iqama_offset_minutes({Prayer.ASR: None}, Prayer.ASR), 10)

    def test_numeric_string_accepted(self):
        self.assertEqual(iqama_offset_minutes({Prayer.DHUHR: "25"}, Prayer.DHUHR), 25)

    def test_string_keys_match(self):
        self.assertEqual(iqama_offset_minutes({"Fajr": 30}, Prayer.FAJR), 30)


class TestNextPrayer(unittest.TestCase):
    def test_tie_resolves_to_canonical_order(self):
        same = at(THURSDAY, 12, 0)
        times = {p: same for p in Prayer}
        daily = DailyTimes(THURSDAY, times)
        self.assertEqual(daily.next_prayer(at(THURSDAY, 11, 0)), Prayer.FAJR)

    def test_none_when_all_passed(self):
        daily = FakeProvider().compute(COORDS, THURSDAY, tz=pytz.utc)
        self.assertIsNone(daily.next_prayer(at(THURSDAY, 23, 0)))

    def test_strictly_after_now(self):
        daily = FakeProvider().compute(COORDS, THURSDAY, tz=pytz.utc)
        self.assertEqual(daily.next_prayer(at(THURSDAY, 12, 15)), Prayer.ASR)

    def test_display_prayers_exclude_sunrise(self):
        self.assertNotIn(Prayer.SUNRISE, DISPLAY_PRAYERS)


if __name__ == "__main__":
    unittest.main()
